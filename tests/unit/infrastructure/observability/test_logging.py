"""Tests for structured logging and the log helpers."""

import json
import logging
import sys

import pytest

from echometa.infrastructure.observability import (
    LogMessages,
    log_operation,
    log_slow_operation,
)
from echometa.infrastructure.observability.logging import (
    CompactExceptionFormatter,
    CorrelationIdFilter,
    CustomJsonFormatter,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


class TestCorrelationId:
    """Test correlation ID functionality."""

    def test_set_and_get_correlation_id(self):
        result = set_correlation_id("run-123-abc")
        assert result == "run-123-abc"
        assert get_correlation_id() == "run-123-abc"

    def test_set_correlation_id_generates_uuid_when_none(self):
        result = set_correlation_id(None)
        assert len(result) == 36
        assert get_correlation_id() == result

    def test_filter_stamps_records(self):
        set_correlation_id("run-789")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "hello", None, None)

        assert CorrelationIdFilter().filter(record)
        assert record.correlation_id == "run-789"


class TestLoggingConfiguration:
    """Test logging configuration."""

    def test_configure_logging_debug_level(self):
        configure_logging(log_level="DEBUG", json_format=False, app_name="test-app")
        assert logging.getLogger("test").getEffectiveLevel() <= logging.DEBUG

    def test_unknown_level_falls_back_to_info(self):
        configure_logging(log_level="chatty")
        assert logging.getLogger().level == logging.INFO

    @pytest.mark.parametrize(
        ("json_format", "formatter_cls"),
        [(True, CustomJsonFormatter), (False, CompactExceptionFormatter)],
    )
    def test_single_handler_with_formatter(self, json_format, formatter_cls):
        configure_logging(json_format=json_format)
        configure_logging(json_format=json_format)

        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, formatter_cls)

    def test_http_libraries_are_quiet(self):
        configure_logging(log_level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING


class TestFormatters:
    def test_json_output_carries_correlation_id(self):
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
        record = logging.LogRecord(
            "echometa.test", logging.WARNING, __file__, 10, "provider failed", None, None
        )
        record.correlation_id = "run-42"

        payload = json.loads(formatter.format(record))

        assert payload["message"] == "provider failed"
        assert payload["level"] == "WARNING"
        assert payload["correlation_id"] == "run-42"

    def test_compact_exception_shows_cause_chain(self):
        formatter = CompactExceptionFormatter()
        try:
            try:
                raise OSError("disk full")
            except OSError as e:
                raise RuntimeError("store unavailable") from e
        except RuntimeError:
            text = formatter.formatException(sys.exc_info())

        assert text.index("OSError: disk full") < text.index("RuntimeError: store unavailable")


class TestLogHelpers:
    async def test_log_operation_logs_start_and_end(self, caplog):
        logger = logging.getLogger("echometa.test.ops")

        with caplog.at_level(logging.INFO, logger="echometa.test.ops"):
            async with log_operation(logger, "enrichment.run", run_id="r-1"):
                pass

        messages = [r.getMessage() for r in caplog.records]
        assert messages == ["enrichment.run.started", "enrichment.run.completed"]
        assert caplog.records[1].run_id == "r-1"
        assert caplog.records[1].duration_ms >= 0

    async def test_log_operation_reraises(self, caplog):
        logger = logging.getLogger("echometa.test.ops")

        with caplog.at_level(logging.INFO, logger="echometa.test.ops"):
            with pytest.raises(ValueError):
                async with log_operation(logger, "conflict.accept"):
                    raise ValueError("bad")

        failed = caplog.records[-1]
        assert failed.getMessage() == "conflict.accept.failed"
        assert failed.error_type == "ValueError"

    def test_log_slow_operation_only_above_threshold(self, caplog):
        logger = logging.getLogger("echometa.test.slow")

        with caplog.at_level(logging.WARNING, logger="echometa.test.slow"):
            log_slow_operation(logger, "lastfm.artist.getInfo", 50, threshold_ms=100)
            log_slow_operation(logger, "lastfm.artist.getInfo", 6200, threshold_ms=5000)

        assert len(caplog.records) == 1
        assert caplog.records[0].duration_ms == 6200

    def test_messages_are_readable(self):
        text = LogMessages.provider_failed("lastfm", "album 42 (Abbey Road)", "HTTP 503")

        assert text.splitlines()[0] == "🔴 lastfm Provider Failed"
        assert "├─ Reason: HTTP 503" in text
        assert text.splitlines()[-1].startswith("└─ 💡")

    def test_braces_in_user_data_are_kept(self):
        text = LogMessages.conflict_queued("lastfm", "album {Live}", "bio", confidence=0.5)

        assert "album {Live}" in text
        assert "Confidence: 0.50" in text
