"""Bridge from the stdlib `logging` module to an `InsightOpsSink`."""

from __future__ import annotations

import itertools
import logging

from .models import LogEvent
from .sink import InsightOpsSink

# Records from the sink's own loggers are never shipped; a failing endpoint would
# otherwise feed its own retry warnings back into the queue.
_OWN_LOGGER_PREFIX = __name__.split(".")[0]


def _is_own_record(record: logging.LogRecord) -> bool:
    """Whether `record` comes from one of this package's own loggers."""
    return record.name == _OWN_LOGGER_PREFIX or record.name.startswith(_OWN_LOGGER_PREFIX + ".")


class InsightOpsHandler(logging.Handler):
    """`logging.Handler` that forwards every record to a sink as a `LogEvent`.

    Sequence numbers are assigned per handler, starting at 0, in the order
    records reach `emit`.
    """

    def __init__(self, sink: InsightOpsSink, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.sink = sink
        self._sequence = itertools.count()

    def emit(self, record: logging.LogRecord) -> None:
        """Convert `record` to a `LogEvent` and hand it to the sink (fire-and-forget)."""
        if _is_own_record(record):
            return
        try:
            event = LogEvent.from_record(record, sequence_number=next(self._sequence))
            self.sink(event)
        except Exception:  # noqa: BLE001 - logging must never raise into the caller
            self.handleError(record)
