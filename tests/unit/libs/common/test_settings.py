"""Tests for application settings."""

import os
import tempfile

import pytest
from pydantic import ValidationError

from libs.common.settings import Settings, get_settings


class TestSettings:
    """Test settings configuration."""

    def test_settings_from_env_file(self):
        """Test settings loaded from a dotenv file."""
        env_vars = {
            "MOUSELAW_MISTRAL_API_KEY": "mistral-key",
            "MOUSELAW_SUPABASE_URL": "https://project.supabase.co/",
            "MOUSELAW_SUPABASE_SERVICE_KEY": "service-key",
        }

        with tempfile.NamedTemporaryFile(mode="w", suffix=".env", delete=False) as f:
            for key, value in env_vars.items():
                f.write(f"{key}={value}\n")
            env_file = f.name

        try:
            settings = Settings(_env_file=env_file)
            assert settings.mistral_api_key == "mistral-key"
            assert settings.supabase_url == "https://project.supabase.co"
            assert settings.supabase_service_key == "service-key"
        finally:
            os.unlink(env_file)

    def test_settings_validation_threshold_out_of_range(self):
        """Test that similarity thresholds outside [-1, 1] are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            Settings(article_threshold=1.2)
        assert "Similarity threshold must be between -1 and 1" in str(exc_info.value)

    def test_settings_validation_limit(self):
        """Test that result limits must be positive."""
        with pytest.raises(ValidationError):
            Settings(case_law_limit=0)

    def test_settings_environment_properties(self):
        """Test environment detection properties."""
        dev_settings = Settings(app_env="development")
        assert dev_settings.is_development is True
        assert dev_settings.is_production is False

        prod_settings = Settings(app_env="production")
        assert prod_settings.is_development is False
        assert prod_settings.is_production is True

    def test_settings_defaults(self):
        """Test default values are set correctly."""
        settings = Settings()

        assert settings.log_level == "INFO"
        assert settings.embedding_model == "mistral-embed"
        assert settings.embedding_dimensions == 1024
        assert settings.chat_model == "open-mistral-7b"
        assert (settings.article_limit, settings.article_threshold) == (3, 0.75)
        assert (settings.case_law_limit, settings.case_law_threshold) == (8, 0.40)
        assert (settings.methodology_limit, settings.methodology_threshold) == (3, 0.60)
        assert settings.rate_limit_requests == 30
        assert settings.rate_limit_window_seconds == 60

    def test_settings_env_prefix(self, monkeypatch):
        """Test that environment variables use MOUSELAW_ prefix."""
        monkeypatch.setenv("MOUSELAW_CASE_LAW_THRESHOLD", "0.5")
        monkeypatch.setenv("CASE_LAW_THRESHOLD", "0.9")

        settings = Settings()
        assert settings.case_law_threshold == 0.5

    def test_app_env_from_test_fixture(self):
        """Test that the autouse fixture puts settings in test mode."""
        assert get_settings().app_env == "test"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
