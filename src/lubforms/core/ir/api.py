"""
Request and response types exchanged with the public forms API.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

UTM_KEYS = ("source", "medium", "campaign", "term", "content")


class UTMParameters(BaseModel):
    source: str | None = None
    medium: str | None = None
    campaign: str | None = None
    term: str | None = None
    content: str | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class SubmitFormRequest(BaseModel):
    """Body of ``POST /public/forms/{form_id}/submit``."""

    data: dict[str, Any] = Field(default_factory=dict)
    utm_parameters: UTMParameters | None = None
    referrer: str | None = None
    recaptcha_token: str | None = None
    honeypot: str | None = None

    model_config = ConfigDict(frozen=True)


class SubmitFormResponse(BaseModel):
    success: bool
    submission_id: str = ""
    message: str = ""
    requires_confirmation: bool | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class ConfirmOptInResponse(BaseModel):
    """Response of the double opt-in confirmation endpoint."""

    success: bool
    message: str = ""
    submission_id: str = ""

    model_config = ConfigDict(frozen=True, extra="ignore")


class ApiError(BaseModel):
    """Error object surfaced for every transport or server failure."""

    error: str
    code: str | None = None
    details: dict[str, Any] | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")
