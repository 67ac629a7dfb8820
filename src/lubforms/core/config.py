"""
Runtime configuration for lubforms.

Values come from explicit arguments first, then ``LUBFORMS_*``
environment variables, then defaults.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_TIMEOUT = 30.0


class LubFormsConfig(BaseModel):
    """Client and logging configuration."""

    base_url: str = ""
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = "INFO"
    log_dir: Path | None = None

    model_config = ConfigDict(frozen=True)

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def from_env(cls, **overrides: object) -> LubFormsConfig:
        """Build a config from ``LUBFORMS_*`` variables, applying non-None overrides."""
        values: dict[str, object] = {
            "base_url": os.environ.get("LUBFORMS_BASE_URL", ""),
            "timeout": float(os.environ.get("LUBFORMS_TIMEOUT", str(DEFAULT_TIMEOUT))),
            "log_level": os.environ.get("LUBFORMS_LOG_LEVEL", "INFO"),
            "log_dir": os.environ.get("LUBFORMS_LOG_DIR") or None,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls.model_validate(values)
