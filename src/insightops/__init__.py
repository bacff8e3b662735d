"""Ship log events to an insightOps endpoint.

This package provides a small, non-blocking log sink:
- Serializing each log event (plus provider metadata) into a flat JSON document.
- Buffering payloads in an unbounded in-memory FIFO.
- Delivering them one at a time from a background task, retrying with
  exponential backoff until the endpoint accepts them.

Producers never wait on the network and never observe delivery failures.
"""

from .backoff import BackoffPolicy, BackoffState, deliver_with_retry
from .errors import InsightOpsError, QueueClosed, SerializationError, SinkDisposed, TransportError
from .handler import InsightOpsHandler
from .models import CANONICAL_FIELDS, JsonValue, LogEvent, MetadataMap
from .queue import DeliveryQueue
from .serializer import build_body, encode_payload, serialize
from .sink import DeliveryState, InsightOpsSink
from .transport import PostHandler, requests_post

__all__ = [
    "CANONICAL_FIELDS",
    "BackoffPolicy",
    "BackoffState",
    "DeliveryQueue",
    "DeliveryState",
    "InsightOpsError",
    "InsightOpsHandler",
    "InsightOpsSink",
    "JsonValue",
    "LogEvent",
    "MetadataMap",
    "PostHandler",
    "QueueClosed",
    "SerializationError",
    "SinkDisposed",
    "TransportError",
    "build_body",
    "deliver_with_retry",
    "encode_payload",
    "requests_post",
    "serialize",
]
