"""
Unit Tests for configuration, logging and error tracking helpers

Run with: pytest tests/test_config.py -v
"""

import json
import logging

import pytest

from config import Settings, get_settings, validate_environment
from logging_config import JSONFormatter, RunContextFilter
from sentry_integration import redact_dict, filter_sensitive_data, capture_exception


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.OPEN_DATA_PAGE_SIZE == 5000
        assert settings.VIOLATION_CATEGORY == "IDLING"
        assert settings.MAX_ENRICHMENT_FAILURES == 3
        assert settings.HEARING_DATE_FLOOR == "2022-01-01"
        assert "{reference_number}" in settings.SUMMONS_PDF_URL_TEMPLATE
        assert "{reference_number}" in settings.VIDEO_URL_TEMPLATE

    def test_production_requirements(self):
        settings = Settings(_env_file=None, ENVIRONMENT="production", DATABASE_URL="", INTERNAL_API_KEY="")
        errors = settings.validate_production_config()

        assert "DATABASE_URL is required" in errors
        assert "INTERNAL_API_KEY is required in production" in errors

    def test_unknown_collision_policy(self):
        settings = Settings(_env_file=None, ALIAS_COLLISION_POLICY="random")
        assert any("ALIAS_COLLISION_POLICY" in e for e in settings.validate_production_config())

    def test_get_settings_refuses_invalid_production(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("DATABASE_URL", "")

        with pytest.raises(ValueError):
            get_settings()

    def test_validate_environment_reports_missing_database(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "")

        status = validate_environment()

        assert status["valid"] is False
        assert status["variables"]["INTERNAL_API_KEY"] == "✓ Set"


class TestLogging:

    def test_json_formatter_includes_extra_and_run_context(self):
        record = logging.LogRecord("sweep", logging.INFO, __file__, 1, "Sweep event: %s", ("x",), None)
        record.event = "sweep.run_started"

        context = RunContextFilter()
        context.set_run_context("run-1", "scheduler")
        context.filter(record)

        payload = json.loads(JSONFormatter(service_name="summons-core").format(record))

        assert payload["message"] == "Sweep event: x"
        assert payload["service"] == "summons-core"
        assert payload["extra"]["event"] == "sweep.run_started"
        assert payload["extra"]["run_id"] == "run-1"
        assert payload["extra"]["trigger"] == "scheduler"


class TestSentryHelpers:

    def test_redact_nested(self):
        redacted = redact_dict({
            "X-Internal-Api-Key": "secret",
            "nested": {"X-App-Token": "t", "ok": 1},
            "items": [{"password": "p"}]
        })

        assert redacted["X-Internal-Api-Key"] == "[REDACTED]"
        assert redacted["nested"] == {"X-App-Token": "[REDACTED]", "ok": 1}
        assert redacted["items"] == [{"password": "[REDACTED]"}]

    def test_filter_sensitive_data(self):
        event = {"request": {"headers": {"Authorization": "Bearer x"}}, "extra": {"token": "y"}}
        filtered = filter_sensitive_data(event, {})

        assert filtered["request"]["headers"]["Authorization"] == "[REDACTED]"
        assert filtered["extra"]["token"] == "[REDACTED]"

    def test_capture_exception_is_noop_when_not_initialized(self):
        assert capture_exception(RuntimeError("boom"), run_id="r1") is None
