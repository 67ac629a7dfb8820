"""
Tests for LubFormsConfig.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from lubforms.core.config import DEFAULT_TIMEOUT, LubFormsConfig

ENV_VARS = ("LUBFORMS_BASE_URL", "LUBFORMS_TIMEOUT", "LUBFORMS_LOG_LEVEL", "LUBFORMS_LOG_DIR")


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestLubFormsConfig:
    def test_defaults(self, clean_env):
        config = LubFormsConfig.from_env()
        assert config.base_url == ""
        assert config.timeout == DEFAULT_TIMEOUT
        assert config.log_level == "INFO"
        assert config.log_dir is None

    def test_reads_environment(self, clean_env, tmp_path):
        clean_env.setenv("LUBFORMS_BASE_URL", "https://api.example.com/")
        clean_env.setenv("LUBFORMS_TIMEOUT", "5")
        clean_env.setenv("LUBFORMS_LOG_LEVEL", "debug")
        clean_env.setenv("LUBFORMS_LOG_DIR", str(tmp_path))

        config = LubFormsConfig.from_env()

        assert config.base_url == "https://api.example.com"
        assert config.timeout == 5.0
        assert config.log_level == "DEBUG"
        assert config.log_dir == Path(tmp_path)

    def test_explicit_overrides_win_over_environment(self, clean_env):
        clean_env.setenv("LUBFORMS_BASE_URL", "https://env.example.com")
        config = LubFormsConfig.from_env(base_url="https://cli.example.com", log_level=None)
        assert config.base_url == "https://cli.example.com"
        assert config.log_level == "INFO"

    def test_is_frozen(self):
        config = LubFormsConfig()
        with pytest.raises(ValidationError):
            config.base_url = "https://other.example.com"
