"""
Client for the public forms API.

Endpoints:
    GET  {base}/public/forms/{form_id}          -> FormDefinition
    POST {base}/public/forms/{form_id}/submit   -> SubmitFormResponse
    GET  {base}/public/forms/confirm/{token}    -> ConfirmOptInResponse

Every failure (network error, non-2xx status, unparseable or malformed
body) is raised as FormApiError carrying a normalized ApiError.

Usage:
    async with LubFormsClient("https://api.example.com") as client:
        form = await client.get_form("contact")
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from lubforms.core.config import DEFAULT_TIMEOUT
from lubforms.core.errors import FormApiError
from lubforms.core.ir import (
    ApiError,
    ConfirmOptInResponse,
    FormDefinition,
    SubmitFormRequest,
    SubmitFormResponse,
)

from .logging import get_client_logger, log_with_context

logger = get_client_logger()

ModelT = TypeVar("ModelT", bound=BaseModel)


class LubFormsClient:
    """
    Async HTTP client for fetching and submitting public forms.

    An ``httpx.AsyncClient`` may be injected (e.g. one built on
    ``httpx.MockTransport``); otherwise one is created per client and
    closed by ``aclose()``.
    """

    def __init__(
        self,
        base_url: str = "",
        *,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> LubFormsClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    # =========================================================================
    # Public API
    # =========================================================================

    async def get_form(self, form_id: str) -> FormDefinition:
        """Fetch a form definition for public display."""
        url = f"{self.base_url}/public/forms/{form_id}"
        return await self._request("GET", url, FormDefinition)

    async def submit_form(self, form_id: str, request: SubmitFormRequest) -> SubmitFormResponse:
        """Submit form data."""
        url = f"{self.base_url}/public/forms/{form_id}/submit"
        body = request.model_dump(mode="json", exclude_none=True)
        return await self._request("POST", url, SubmitFormResponse, json=body)

    async def confirm_opt_in(self, token: str) -> ConfirmOptInResponse:
        """Confirm a double opt-in submission."""
        url = f"{self.base_url}/public/forms/confirm/{token}"
        return await self._request("GET", url, ConfirmOptInResponse)

    # =========================================================================
    # Internals
    # =========================================================================

    async def _request(
        self,
        method: str,
        url: str,
        model: type[ModelT],
        json: dict[str, Any] | None = None,
    ) -> ModelT:
        headers = {"Accept": "application/json"}
        if json is not None:
            headers["Content-Type"] = "application/json"

        try:
            response = await self._http.request(method, url, headers=headers, json=json)
        except httpx.HTTPError as exc:
            log_with_context(logger, logging.WARNING, "Request failed", method=method, url=url)
            raise FormApiError(ApiError(error=str(exc) or "Network error")) from exc

        if not response.is_success:
            error = parse_error(response)
            log_with_context(
                logger,
                logging.WARNING,
                "Request returned an error status",
                method=method,
                url=url,
                status=response.status_code,
                error=error.error,
            )
            raise FormApiError(error, status_code=response.status_code)

        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            log_with_context(logger, logging.WARNING, "Malformed response body", url=url)
            raise FormApiError(
                ApiError(error=f"Invalid response from {url}"), status_code=response.status_code
            ) from exc


def parse_error(response: httpx.Response) -> ApiError:
    """
    Translate a non-2xx response into an ApiError.

    Uses the JSON body's ``error`` (or ``message``), ``code`` and ``details``
    when present, else ``HTTP {status}: {reason}``.
    """
    try:
        data = response.json()
    except ValueError:
        return ApiError(error=f"HTTP {response.status_code}: {response.reason_phrase}")

    if not isinstance(data, dict):
        return ApiError(error=f"HTTP {response.status_code}: {response.reason_phrase}")

    code = data.get("code")
    details = data.get("details")
    return ApiError(
        error=str(data.get("error") or data.get("message") or "An error occurred"),
        code=str(code) if code is not None else None,
        details=details if isinstance(details, dict) else None,
    )


# =============================================================================
# Default Client
# =============================================================================

_default_client: LubFormsClient | None = None


def set_default_client(client: LubFormsClient | None) -> None:
    global _default_client
    _default_client = client


def get_default_client() -> LubFormsClient | None:
    return _default_client


def create_client(base_url: str, **kwargs: Any) -> LubFormsClient:
    return LubFormsClient(base_url, **kwargs)
