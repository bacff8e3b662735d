from __future__ import annotations

import asyncio
import json
import logging
import sys
from collections.abc import Mapping
from datetime import timedelta

import pytest

from insightops import InsightOpsHandler, InsightOpsSink, LogEvent


class _CollectingSink:
    def __init__(self) -> None:
        self.events: list[LogEvent] = []

    def __call__(self, event: LogEvent) -> None:
        self.events.append(event)


def _record(msg: str, *args: object, level: int = logging.INFO, exc_info=None, name: str = "app") -> logging.LogRecord:  # noqa: ANN001
    return logging.LogRecord(name, level, __file__, 10, msg, args, exc_info)


def test_from_record_copies_fields() -> None:
    record = _record("user %s logged in", "alice", level=logging.WARNING, name="app.auth")

    event = LogEvent.from_record(record, sequence_number=4)

    assert event.message == "user alice logged in"
    assert event.logger_name == "app.auth"
    assert event.level == "WARNING"
    assert event.sequence_number == 4
    assert event.time.utcoffset() == timedelta(0)
    assert event.time.timestamp() == pytest.approx(record.created)
    assert event.error is None
    assert event.stack_trace is None


def test_from_record_with_exception() -> None:
    try:
        raise ZeroDivisionError("division by zero")
    except ZeroDivisionError:
        record = _record("boom", level=logging.ERROR, exc_info=sys.exc_info())

    event = LogEvent.from_record(record, sequence_number=0)

    assert isinstance(event.error, ZeroDivisionError)
    assert event.stack_trace is not None
    assert "Traceback" in event.stack_trace
    assert "ZeroDivisionError: division by zero" in event.stack_trace


def test_from_record_with_stack_info_only() -> None:
    record = _record("where am I")
    record.stack_info = "Stack (most recent call last):\n  File ..."

    event = LogEvent.from_record(record, sequence_number=0)

    assert event.error is None
    assert event.stack_trace == record.stack_info


def test_handler_assigns_sequence_numbers() -> None:
    sink = _CollectingSink()
    handler = InsightOpsHandler(sink)  # type: ignore[arg-type]

    for i in range(3):
        handler.handle(_record(f"msg {i}"))

    assert [e.sequence_number for e in sink.events] == [0, 1, 2]
    assert [e.message for e in sink.events] == ["msg 0", "msg 1", "msg 2"]


def test_handler_respects_level() -> None:
    sink = _CollectingSink()
    handler = InsightOpsHandler(sink, level=logging.WARNING)  # type: ignore[arg-type]
    app_logger = logging.getLogger("test_handler.levels")
    app_logger.setLevel(logging.DEBUG)
    app_logger.addHandler(handler)
    try:
        app_logger.debug("debug noise")
        app_logger.error("disk full")
    finally:
        app_logger.removeHandler(handler)

    assert [e.message for e in sink.events] == ["disk full"]
    assert [e.sequence_number for e in sink.events] == [0]


def test_handler_ignores_own_records() -> None:
    sink = _CollectingSink()
    handler = InsightOpsHandler(sink)  # type: ignore[arg-type]

    handler.handle(_record("log delivery attempt 1 failed", level=logging.WARNING, name="insightops.backoff"))
    handler.handle(_record("from a neighbour", name="insightopsx"))

    assert [e.logger_name for e in sink.events] == ["insightopsx"]


def test_handler_reports_sink_errors_via_handle_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_sink(event: LogEvent) -> None:
        raise RuntimeError("sink exploded")

    handler = InsightOpsHandler(broken_sink)  # type: ignore[arg-type]
    handled: list[logging.LogRecord] = []
    monkeypatch.setattr(handler, "handleError", handled.append)

    record = _record("hello")
    handler.handle(record)

    assert handled == [record]


@pytest.mark.asyncio
async def test_logger_records_reach_endpoint() -> None:
    bodies: list[dict] = []

    async def post(url: str, *, headers: Mapping[str, str], body: str) -> None:
        bodies.append(json.loads(body))

    async def get_meta() -> dict[str, str]:
        return {"environment": "test"}

    sink = InsightOpsSink("https://example.test/logs", get_meta=get_meta, post=post)
    handler = InsightOpsHandler(sink)
    app_logger = logging.getLogger("test_handler.app")
    app_logger.setLevel(logging.INFO)
    app_logger.addHandler(handler)
    try:
        app_logger.info("order %d placed", 42)
        for _ in range(100):
            if bodies:
                break
            await asyncio.sleep(0)

        assert len(bodies) == 1
        body = bodies[0]
        assert body["message"] == "order 42 placed"
        assert body["loggerName"] == "test_handler.app"
        assert body["level"] == "INFO"
        assert body["sequenceNumber"] == 0
        assert body["environment"] == "test"
        assert "error" not in body and "stackTrace" not in body
    finally:
        app_logger.removeHandler(handler)
        await sink.aclose()
