"""
Tests for logging infrastructure.
"""

import json
import logging
import sys

import pytest

from localoidc.core.logging_config import (
    setup_logging,
    get_logger,
    set_request_id,
    clear_request_id,
    log_with_context,
    request_id,
    JSONFormatter,
    SensitiveDataFilter,
    _parse_size
)


def make_record(msg: str, level: int = logging.INFO, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=level,
        pathname="",
        lineno=0,
        msg=msg,
        args=(),
        exc_info=exc_info
    )


@pytest.fixture(autouse=True)
def restore_root_logger():
    """setup_logging replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLoggingSetup:
    """Test suite for logging setup."""

    def test_setup_logging_defaults(self):
        """Test setting up logging with defaults."""
        setup_logging()

        root_logger = logging.getLogger()
        assert root_logger.level == logging.INFO
        assert len(root_logger.handlers) == 1

    def test_setup_logging_with_file(self, tmp_path):
        """Test setting up logging with file output."""
        log_file = tmp_path / "logs" / "localoidc.log"
        setup_logging(level="DEBUG", format_type="text", log_file=str(log_file))

        get_logger(__name__).info("Test message")

        assert log_file.exists()
        assert "Test message" in log_file.read_text()

    def test_setup_logging_with_module_levels(self):
        """Test per-module log levels."""
        setup_logging(
            level="INFO",
            module_levels={"localoidc.services.oidc": "DEBUG", "uvicorn.access": "error"}
        )

        assert logging.getLogger("localoidc.services.oidc").level == logging.DEBUG
        assert logging.getLogger("uvicorn.access").level == logging.ERROR
        assert not get_logger("test.info_module").isEnabledFor(logging.DEBUG)


class TestJSONFormatter:
    """Test suite for JSON formatter."""

    def test_format_basic_message(self):
        """Test formatting a basic log message."""
        data = json.loads(JSONFormatter().format(make_record("Test message")))

        assert data["level"] == "INFO"
        assert data["module"] == "test"
        assert data["message"] == "Test message"
        assert "timestamp" in data
        assert "request_id" not in data

    def test_format_with_request_id(self):
        """Test the current request id is included."""
        set_request_id("req-1")
        try:
            data = json.loads(JSONFormatter().format(make_record("Test message")))
            assert data["request_id"] == "req-1"
        finally:
            clear_request_id()

    def test_format_with_context(self):
        """Test extra context is nested under 'context'."""
        record = make_record("Token request failed")
        record.context = {"error": "invalid_grant", "status_code": 400}

        data = json.loads(JSONFormatter().format(record))

        assert data["context"] == {"error": "invalid_grant", "status_code": 400}

    def test_format_with_exception(self):
        """Test formatting with exception info."""
        try:
            raise ValueError("Test error")
        except ValueError:
            record = make_record("Error occurred", logging.ERROR, sys.exc_info())

        data = json.loads(JSONFormatter().format(record))

        assert "ValueError" in data["exception"]


class TestSensitiveDataFilter:
    """Test suite for sensitive data filter."""

    @pytest.mark.parametrize(
        "msg,secret",
        [
            ("Authorization: Bearer secret_token_here", "secret_token_here"),
            ("access_token=AT-secret&scope=openid", "AT-secret"),
            ('{"id_token": "opaque-id-token"}', "opaque-id-token"),
            ("POST /token code=c0de-123", "c0de-123"),
        ],
    )
    def test_redact_credentials(self, msg, secret):
        """Test credentials are masked."""
        record = make_record(msg)
        SensitiveDataFilter().filter(record)

        assert secret not in record.msg
        assert "***REDACTED***" in record.msg

    def test_redact_jwt(self):
        """Test compact JWS strings are masked wherever they appear."""
        record = make_record("issued eyJhbGciOiJSUzI1NiJ9.eyJzdWIiOiJhIn0.c2ln for alice")
        SensitiveDataFilter().filter(record)

        assert record.msg == "issued ***JWT*** for alice"

    def test_status_code_not_redacted(self):
        """Test names merely ending in 'code' are left alone."""
        record = make_record("status_code=400")
        SensitiveDataFilter().filter(record)

        assert record.msg == "status_code=400"


class TestRequestId:
    """Test suite for request id management."""

    def test_set_and_clear(self):
        set_request_id("test-id-123")
        assert request_id.get() == "test-id-123"

        clear_request_id()
        assert request_id.get() is None

    def test_log_with_context(self, caplog):
        """Test the context dict is attached to the record."""
        logger = get_logger("test.context")

        with caplog.at_level(logging.INFO, logger="test.context"):
            log_with_context(logger, logging.INFO, "Test message", user_id="alice")

        assert caplog.records[-1].context == {"user_id": "alice"}


class TestParseSize:
    """Test suite for size parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("100", 100),
            ("100B", 100),
            ("10KB", 10240),
            ("1mb", 1048576),
            (" 10 MB ", 10485760),
            ("1GB", 1073741824),
            ("1.5MB", int(1.5 * 1048576)),
        ],
    )
    def test_parse(self, text, expected):
        assert _parse_size(text) == expected
