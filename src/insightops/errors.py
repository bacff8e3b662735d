"""Error types raised by the sink and its collaborators."""

from __future__ import annotations


class InsightOpsError(RuntimeError):
    """Base class for all sink errors."""


class SerializationError(InsightOpsError):
    """A log event (or its metadata) could not be encoded as JSON."""


class TransportError(InsightOpsError):
    """HTTP-level failure returned by the ingestion endpoint."""

    def __init__(self, *, status_code: int, body: str | None = None):
        """Create an error capturing HTTP status code and response text (if any)."""
        self.status_code = status_code
        self.body = body
        super().__init__(f"insightOps HTTP {status_code}: {body}")


class QueueClosed(InsightOpsError):
    """The delivery queue was closed; no further payloads will be yielded."""


class SinkDisposed(InsightOpsError):
    """The sink was disposed and no longer accepts events."""
