# tests/unit/test_logger.py
"""Tests for Logger: buffering, flush triggers, level shorthands and metrics."""

import base64
from unittest.mock import patch

import httpx
import pytest
import respx

from logdna_shipper.defaults import MAX_LINE_LENGTH, TRUNCATION_MARKER
from logdna_shipper.errors import LoggerConfigError
from logdna_shipper.records import FlushResultKind, LogResultKind
from logdna_shipper.registry import LoggerRegistry
from logdna_shipper.scheduler import SchedulerState
from tests.helpers.ingest import FIXED_NOW_MS, INGESTION_KEY, sent_lines
from tests.helpers.timers import FakeTimerFactory


class TestLoggerConstruction:
    def test_source_from_options(self, registry: LoggerRegistry) -> None:
        log = registry.create_logger(INGESTION_KEY, {"app": "svc", "level": "WARN", "env": "prod", "tags": "a, b"})

        assert log.source.app == "svc"
        assert log.source.level == "WARN"
        assert log.source.env == "prod"
        assert log.source.tags == "a,b"

    def test_source_defaults(self, registry: LoggerRegistry) -> None:
        log = registry.create_logger(INGESTION_KEY)

        assert log.source.app == "default"
        assert log.source.level == "INFO"
        assert log.transport.url == "https://logs.logdna.com/logs/ingest"

    def test_handles_are_unique(self, registry: LoggerRegistry) -> None:
        first = registry.create_logger(INGESTION_KEY)
        second = registry.create_logger(INGESTION_KEY)
        assert first.handle != second.handle

    @pytest.mark.parametrize(
        ("key", "options"),
        [
            (None, None),
            ("k" * 81, None),
            (INGESTION_KEY, {"mac": "nope"}),
            (INGESTION_KEY, {"timeout": 999_999}),
        ],
    )
    def test_invalid_construction_registers_nothing(self, registry: LoggerRegistry, key: object, options: object) -> None:
        with pytest.raises(LoggerConfigError):
            registry.create_logger(key, options)  # type: ignore[arg-type]
        assert len(registry) == 0


class TestLoggerLog:
    def test_log_buffers_info_record(self, registry: LoggerRegistry, logger_options: dict[str, object]) -> None:
        log = registry.create_logger(INGESTION_KEY, logger_options)

        result = log.log("hello")

        assert result.kind == LogResultKind.BUFFERED
        assert result.record is not None
        assert result.record.level == "INFO"
        assert result.record.app == "svc"
        assert result.record.timestamp == FIXED_NOW_MS
        assert len(log.buffer) == 1

    def test_log_schedules_flush(self, registry: LoggerRegistry, fake_timers: FakeTimerFactory) -> None:
        log = registry.create_logger(INGESTION_KEY)

        log.log("one")
        log.log("two")

        assert log.scheduler_state == SchedulerState.SCHEDULED
        assert len(fake_timers.timers) == 1

    def test_nothing_sent_before_timer(self, registry: LoggerRegistry, logger_options: dict[str, object], ingest: respx.Route) -> None:
        log = registry.create_logger(INGESTION_KEY, logger_options)

        log.log("hello")

        assert not ingest.called

    def test_invalid_options_type(self, registry: LoggerRegistry, fake_timers: FakeTimerFactory) -> None:
        log = registry.create_logger(INGESTION_KEY)

        result = log.log("x", 123)

        assert result.kind == LogResultKind.INVALID_OPTIONS_TYPE
        assert result.is_error
        assert log.buffer.is_empty()
        assert fake_timers.timers == []

    def test_empty_statement(self, registry: LoggerRegistry, fake_timers: FakeTimerFactory) -> None:
        log = registry.create_logger(INGESTION_KEY)

        assert log.log("").kind == LogResultKind.EMPTY
        assert log.log(None).kind == LogResultKind.EMPTY
        assert fake_timers.timers == []

    def test_overlong_line_truncated(self, registry: LoggerRegistry) -> None:
        log = registry.create_logger(INGESTION_KEY)

        result = log.log("z" * (MAX_LINE_LENGTH + 1))

        assert result.kind == LogResultKind.TRUNCATED
        assert log.buffer.drain()[0].line == "z" * MAX_LINE_LENGTH + TRUNCATION_MARKER

    def test_max_length_disabled(self, registry: LoggerRegistry) -> None:
        log = registry.create_logger(INGESTION_KEY, {"max_length": False})

        result = log.log("z" * (MAX_LINE_LENGTH + 1))

        assert result.kind == LogResultKind.BUFFERED

    def test_logger_index_meta_default(self, registry: LoggerRegistry) -> None:
        log = registry.create_logger(INGESTION_KEY, {"index_meta": True})

        result = log.log("x", {"meta": {"order": 1}})

        assert result.record is not None
        assert result.record.meta == {"order": 1}

    def test_closed_logger_rejects(self, registry: LoggerRegistry) -> None:
        log = registry.create_logger(INGESTION_KEY)
        log.close()

        with patch("logdna_shipper.logger.logger") as mock_logger:
            result = log.log("late")

        assert log.closed
        assert result.kind == LogResultKind.CLOSED
        mock_logger.warning.assert_called_once()


    def test_close_drops_buffered_lines_with_warning(self, registry: LoggerRegistry, fake_timers: FakeTimerFactory) -> None:
        log = registry.create_logger(INGESTION_KEY)
        log.info("a")
        log.info("b")

        with patch("logdna_shipper.logger.logger") as mock_logger:
            log.close()
            log.close()

        mock_logger.warning.assert_called_once()
        assert mock_logger.warning.call_args.kwargs["lines"] == 2
        assert log.health_metrics["lines_dropped"] == 2
        assert log.buffer.is_empty()
        assert fake_timers.timers[0].cancelled

    def test_begin_shutdown_keeps_buffer_for_flush(self, registry: LoggerRegistry, ingest: respx.Route) -> None:
        log = registry.create_logger(INGESTION_KEY)
        log.info("kept")

        log.begin_shutdown()

        assert log.closed
        assert log.info("refused").kind == LogResultKind.CLOSED
        assert log.flush().result(timeout=5).kind == FlushResultKind.SENT
        assert [line["line"] for line in sent_lines(ingest.calls.last.request)] == ["kept"]

class TestLevelShorthands:
    @pytest.mark.parametrize(
        ("method", "level"),
        [("trace", "TRACE"), ("debug", "DEBUG"), ("info", "INFO"), ("warn", "WARN"), ("error", "ERROR"), ("fatal", "FATAL")],
    )
    def test_level_applied(self, registry: LoggerRegistry, method: str, level: str) -> None:
        log = registry.create_logger(INGESTION_KEY)

        result = getattr(log, method)("msg")

        assert result.record is not None
        assert result.record.level == level

    def test_mapping_options_kept_level_forced(self, registry: LoggerRegistry) -> None:
        log = registry.create_logger(INGESTION_KEY)
        options = {"app": "other", "level": "DEBUG"}

        result = log.error("msg", options)

        assert result.record is not None
        assert result.record.level == "ERROR"
        assert result.record.app == "other"
        assert options == {"app": "other", "level": "DEBUG"}

    def test_string_options_ignored(self, registry: LoggerRegistry) -> None:
        log = registry.create_logger(INGESTION_KEY)

        result = log.warn("msg", "DEBUG")

        assert result.record is not None
        assert result.record.level == "WARN"

    def test_invalid_options_type(self, registry: LoggerRegistry) -> None:
        log = registry.create_logger(INGESTION_KEY)
        assert log.info("msg", 42).kind == LogResultKind.INVALID_OPTIONS_TYPE


class TestLoggerFlush:
    def test_explicit_flush_sends_batch(self, registry: LoggerRegistry, logger_options: dict[str, object], ingest: respx.Route) -> None:
        log = registry.create_logger(INGESTION_KEY, logger_options)
        log.info("hello")
        log.warn("careful", {"env": "staging"})

        result = log.flush().result(timeout=5)

        assert result.kind == FlushResultKind.SENT
        assert result.line_count == 2
        assert log.buffer.is_empty()
        assert log.scheduler_state == SchedulerState.IDLE
        request = ingest.calls.last.request
        assert sent_lines(request) == [
            {"timestamp": FIXED_NOW_MS, "line": "hello", "level": "INFO", "app": "svc"},
            {"timestamp": FIXED_NOW_MS, "line": "careful", "level": "WARN", "app": "svc", "env": "staging"},
        ]
        assert request.url.params["hostname"] == "web-1"
        assert request.headers["Authorization"] == "Basic " + base64.b64encode(INGESTION_KEY.encode()).decode()

    def test_flush_empty_buffer(self, registry: LoggerRegistry, ingest: respx.Route) -> None:
        log = registry.create_logger(INGESTION_KEY)

        assert log.flush().result(timeout=5).kind == FlushResultKind.EMPTY
        assert not ingest.called

    def test_timer_triggers_flush(
        self,
        registry: LoggerRegistry,
        logger_options: dict[str, object],
        fake_timers: FakeTimerFactory,
        ingest: respx.Route,
    ) -> None:
        log = registry.create_logger(INGESTION_KEY, logger_options)
        log.info("a")
        log.info("b")

        fake_timers.fire_all()
        registry.close(timeout=5)

        assert ingest.call_count == 1
        assert [line["line"] for line in sent_lines(ingest.calls.last.request)] == ["a", "b"]
        assert log.scheduler_state == SchedulerState.IDLE

    def test_explicit_flush_cancels_timer(
        self,
        registry: LoggerRegistry,
        logger_options: dict[str, object],
        fake_timers: FakeTimerFactory,
        ingest: respx.Route,
    ) -> None:
        log = registry.create_logger(INGESTION_KEY, logger_options)
        log.info("a")
        timer = fake_timers.timers[0]

        log.flush().result(timeout=5)
        timer.fire()

        assert timer.cancelled
        assert ingest.call_count == 1

    def test_byte_limit_flushes_immediately(
        self,
        registry: LoggerRegistry,
        logger_options: dict[str, object],
        fake_timers: FakeTimerFactory,
        ingest: respx.Route,
    ) -> None:
        log = registry.create_logger(INGESTION_KEY, {**logger_options, "flush_byte_limit": 50})

        log.info("x" * 30)

        assert log.buffer.is_empty()
        assert log.scheduler_state == SchedulerState.IDLE
        assert fake_timers.timers == []
        registry.close(timeout=5)
        assert ingest.call_count == 1

    def test_below_byte_limit_waits(self, registry: LoggerRegistry, logger_options: dict[str, object], ingest: respx.Route) -> None:
        log = registry.create_logger(INGESTION_KEY, {**logger_options, "flush_byte_limit": 10_000})

        log.info("small")

        assert len(log.buffer) == 1
        assert log.scheduler_state == SchedulerState.SCHEDULED
        assert not ingest.called

    def test_append_after_flush_goes_to_next_batch(
        self,
        registry: LoggerRegistry,
        logger_options: dict[str, object],
        ingest: respx.Route,
    ) -> None:
        log = registry.create_logger(INGESTION_KEY, logger_options)
        log.info("first")
        in_flight = log.flush()
        log.info("second")

        in_flight.result(timeout=5)
        log.flush().result(timeout=5)

        batches = [[line["line"] for line in sent_lines(call.request)] for call in ingest.calls]
        assert batches == [["first"], ["second"]]

    def test_failed_flush_reported(self, registry: LoggerRegistry, logger_options: dict[str, object], ingest: respx.Route) -> None:
        ingest.mock(return_value=httpx.Response(500))
        log = registry.create_logger(INGESTION_KEY, logger_options)
        log.info("lost")

        result = log.flush().result(timeout=5)

        assert result.kind == FlushResultKind.HTTP_ERROR
        assert result.http_status == 500
        assert log.buffer.is_empty()


class TestHealthMetrics:
    def test_counts_sent_and_failed(self, registry: LoggerRegistry, logger_options: dict[str, object], ingest: respx.Route) -> None:
        log = registry.create_logger(INGESTION_KEY, logger_options)
        log.info("a")
        log.info("b")
        log.flush().result(timeout=5)
        ingest.mock(side_effect=httpx.ConnectError("down"))
        log.info("c")
        log.flush().result(timeout=5)
        log.info("pending")
        registry.unregister(log)
        registry.close(timeout=5)

        metrics = log.health_metrics

        assert metrics["batches_sent"] == 1
        assert metrics["lines_sent"] == 2
        assert metrics["failed_flushes"] == 1
        assert metrics["lines_dropped"] == 1
        assert metrics["buffered_lines"] == 1
        assert metrics["buffered_bytes"] == log.buffer.current_size > 0

    def test_empty_flush_not_counted(self, registry: LoggerRegistry) -> None:
        log = registry.create_logger(INGESTION_KEY)
        log.flush().result(timeout=5)

        assert log.health_metrics["batches_sent"] == 0
        assert log.health_metrics["failed_flushes"] == 0
