"""Tests for configuration and logging helpers."""

import json
import logging
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from devtrack.core.config import ClientSettings, Settings
from devtrack.core.datetime_utils import to_rfc3339
from devtrack.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    clear_request_id,
    log_error,
    set_request_id,
)


class TestSettings:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("postgresql://u@db/devtrack", "postgresql+asyncpg://u@db/devtrack"),
            ("sqlite:///./devtrack.db", "sqlite+aiosqlite:///./devtrack.db"),
            ("postgresql+asyncpg://u@db/x", "postgresql+asyncpg://u@db/x"),
        ],
    )
    def test_async_database_url(self, url, expected):
        assert Settings(database_url=url).async_database_url == expected

    def test_allowed_origins_are_split(self):
        settings = Settings(allowed_origins_str="http://a, http://b,,")
        assert settings.allowed_origins == ["http://a", "http://b"]

    def test_resolver_needs_an_attempt(self):
        with pytest.raises(ValidationError):
            Settings(resolver_max_attempts=0)

    def test_client_reads_prefixed_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("DEVTRACK_SERVER_URL", "http://collector:8000")
        monkeypatch.setenv("DEVTRACK_DATABASE_PATH", str(tmp_path / "e.db"))

        settings = ClientSettings()

        assert settings.server_url == "http://collector:8000"
        assert settings.local_database_url == f"sqlite:///{tmp_path / 'e.db'}"

    def test_client_rejects_zero_interval(self):
        with pytest.raises(ValidationError):
            ClientSettings(monitor_interval_seconds=0)


class TestLogging:
    def make_record(self, msg, **extra) -> logging.LogRecord:
        record = logging.LogRecord("devtrack.test", logging.INFO, __file__, 1, msg, None, None)
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_sensitive_values_are_redacted(self):
        record = self.make_record("database_url=postgresql://u:pw@db/x")
        SensitiveDataFilter().filter(record)
        assert record.msg == "database_url=***REDACTED***"

    def test_plain_messages_pass_through(self):
        record = self.make_record("Event recorded")
        SensitiveDataFilter().filter(record)
        assert record.msg == "Event recorded"

    def test_json_formatter_includes_context(self):
        set_request_id("req-1")
        try:
            output = JsonFormatter().format(self.make_record("hello", event_type="event_recorded", event_id=7))
        finally:
            clear_request_id()

        data = json.loads(output)
        assert data["message"] == "hello"
        assert data["request_id"] == "req-1"
        assert data["event_type"] == "event_recorded"
        assert data["event_id"] == 7

    def test_log_error_marks_event_type(self, caplog):
        logger = logging.getLogger("devtrack.test")
        with caplog.at_level(logging.ERROR, logger="devtrack.test"):
            log_error(logger, "Failed", ValueError("boom"), {"dimension": "apps"})

        record = caplog.records[-1]
        assert record.event_type == "error"
        assert record.dimension == "apps"
        assert "boom" in record.getMessage()


class TestRfc3339:
    def test_naive_is_treated_as_utc(self):
        assert to_rfc3339(datetime(2026, 5, 1, 10, 0)) == "2026-05-01T10:00:00+00:00"

    def test_aware_is_converted_to_utc(self):
        local = datetime(2026, 5, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
        assert to_rfc3339(local) == "2026-05-01T10:00:00+00:00"
