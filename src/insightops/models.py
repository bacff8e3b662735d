"""Log event models.

Events are designed to be:
- Read-only snapshots of one emitted log record.
- Independent of the stdlib `logging` module, so any log source can feed the sink.
- Consumed once by the serializer and then discarded.
"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, TypeAlias, Union

from pydantic import BaseModel, ConfigDict, field_validator

JsonValue: TypeAlias = Union[None, bool, int, float, str, list["JsonValue"], dict[str, "JsonValue"]]
MetadataMap: TypeAlias = Mapping[str, JsonValue]

# Wire names of the fields every payload carries. Metadata never overrides these.
CANONICAL_FIELDS: frozenset[str] = frozenset(
    {"message", "loggerName", "sequenceNumber", "time", "level", "stackTrace", "error"}
)


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(tz=timezone.utc)


class LogEvent(BaseModel):
    """A single structured log event handed to the sink."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    message: str
    logger_name: str
    # Monotonic per log source.
    sequence_number: int
    time: datetime
    level: str

    # Optional; omitted from the payload entirely when absent.
    error: Any | None = None
    stack_trace: str | None = None

    @field_validator("time")
    def validate_time(cls, v: datetime) -> datetime:
        """Treat naive timestamps as UTC so the ISO-8601 output always has an offset."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def from_record(cls, record: logging.LogRecord, *, sequence_number: int) -> LogEvent:
        """Build an event from a stdlib `logging.LogRecord`.

        The error is taken from `exc_info`; the stack trace is the formatted
        exception traceback, falling back to `stack_info` when only `stack_info=True`
        was requested.
        """
        error: BaseException | None = None
        stack_trace: str | None = None
        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            stack_trace = "".join(traceback.format_exception(*record.exc_info)).rstrip()
        elif record.stack_info:
            stack_trace = record.stack_info

        return cls(
            message=record.getMessage(),
            logger_name=record.name,
            sequence_number=sequence_number,
            time=datetime.fromtimestamp(record.created, tz=timezone.utc),
            level=record.levelname,
            error=error,
            stack_trace=stack_trace,
        )
