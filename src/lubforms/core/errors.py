"""
Error types for lubforms.

User-data-shaped problems never raise: unknown field types and operators
degrade to permissive defaults and validation failures are returned as
results. Only transport failures and contract violations raise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .ir import ApiError


class LubFormsError(Exception):
    """Base exception for all lubforms errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class DefinitionError(LubFormsError):
    """
    Raised when the engine is invoked without a field model.

    Examples:
    - Resolver called with ``None`` instead of a field list
    - Session asked for steps before a definition was loaded
    """

    pass


class FormApiError(LubFormsError):
    """
    Raised by the client for any fetch/submit/confirm failure.

    Wraps the normalized ``ApiError`` object; ``status_code`` is set when
    the server answered with a non-2xx status.
    """

    def __init__(self, api_error: ApiError, status_code: int | None = None):
        self.api_error = api_error
        self.status_code = status_code
        super().__init__(api_error.error)


class SessionStateError(LubFormsError):
    """
    Raised when a session operation is not allowed in the current state.

    Examples:
    - Navigating steps before the form has loaded
    - Submitting again after a successful submission
    - Using a destroyed session
    """

    pass


class SubmissionInFlightError(SessionStateError):
    """Raised for a second submit while one is still in flight."""

    pass
