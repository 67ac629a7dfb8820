"""
lubforms - rule engine and client for server-defined forms.

Evaluates conditional field logic, compiles validation schemas, partitions
fields into steps and drives a form session against the public forms API.
"""

from __future__ import annotations

import re
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _metadata_version
from pathlib import Path as _Path

from .core import ir
from .core.config import LubFormsConfig
from .core.errors import (
    DefinitionError,
    FormApiError,
    LubFormsError,
    SessionStateError,
    SubmissionInFlightError,
)


def _get_version() -> str:
    """Get version from pyproject.toml (editable) or importlib.metadata (installed)."""
    pyproject = _Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        content = pyproject.read_text()
        if match := re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE):
            return match.group(1)

    try:
        return _metadata_version("lubforms")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    "ir",
    "LubFormsConfig",
    "LubFormsError",
    "DefinitionError",
    "FormApiError",
    "SessionStateError",
    "SubmissionInFlightError",
]
