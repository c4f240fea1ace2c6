"""
Unit Tests for Settings and Logging Configuration
"""
import pytest
from pydantic import ValidationError

from cancercare.config.config import Settings
from cancercare.config.logging_config import REDACTED, redact_sensitive


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.app_name == "CancerCare AI"
        assert settings.arango_database == "cancercare"
        assert settings.audit_timeout_seconds == 2.0
        assert settings.is_production is False

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ARANGO_HOST", "http://arango.internal:8529/")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = Settings(_env_file=None)

        assert settings.arango_host == "http://arango.internal:8529"
        assert settings.log_level == "DEBUG"
        assert settings.is_production is True

    def test_invalid_timeout(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, audit_timeout_seconds=0)

    def test_safe_config_masks_password(self):
        settings = Settings(_env_file=None, arango_password="s3cret")

        config = settings.get_safe_config_dict()

        assert config["arango_password"] == "***REDACTED***"
        assert config["arango_username"] == "root"


class TestRedaction:

    def test_top_level_keys(self):
        event = redact_sensitive(None, "info", {"event": "x", "patient_code": "PT00001", "patient_id": "12"})

        assert event["patient_code"] == REDACTED
        assert event["patient_id"] == "12"

    def test_nested_config(self):
        event = redact_sensitive(
            None, "info", {"event": "start", "config": {"arango_password": "pw", "port": 8000}}
        )

        assert event["config"] == {"arango_password": REDACTED, "port": 8000}

    def test_empty_password_left_alone(self):
        event = redact_sensitive(None, "info", {"event": "start", "config": {"arango_password": ""}})

        assert event["config"]["arango_password"] == ""
