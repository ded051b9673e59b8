"""
Tests for environment configuration
"""

import pytest

from core.environment import (
    require_store_credentials,
    warn_missing_service_keys,
    load_settings,
    get_env_bool,
    get_env_list,
)
from services.error_types import ConfigurationError


class TestEnvironment:

    def test_store_credentials_present(self):
        require_store_credentials()

    def test_missing_store_credentials_are_named(self, monkeypatch):
        monkeypatch.delenv("STORE_ACCESS_KEY_ID", raising=False)
        monkeypatch.delenv("STORE_BUCKET", raising=False)

        with pytest.raises(ConfigurationError) as exc_info:
            require_store_credentials()

        assert exc_info.value.details["missing"] == ["STORE_ACCESS_KEY_ID", "STORE_BUCKET"]
        assert "STORE_ACCESS_KEY_ID" in exc_info.value.message

    def test_missing_service_keys_only_warn(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_VISION_API_KEY", raising=False)
        assert "GOOGLE_VISION_API_KEY" in warn_missing_service_keys()

    def test_settings_from_environment(self, monkeypatch):
        monkeypatch.setenv("STORE_BUCKET", "bucket-x")
        monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.test, https://b.test")
        monkeypatch.setenv("DISABLE_PDF", "yes")

        settings = load_settings()

        assert settings.store_bucket == "bucket-x"
        assert settings.allowed_origins == ["https://a.test", "https://b.test"]
        assert settings.disable_pdf is True

    def test_env_helpers(self, monkeypatch):
        monkeypatch.setenv("FLAG", "off")
        assert get_env_bool("FLAG", default=True) is False
        assert get_env_list("UNSET_LIST_VAR", default=["x"]) == ["x"]
