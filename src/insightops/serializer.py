"""Turn log events into transport-ready JSON payloads."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .errors import SerializationError
from .models import CANONICAL_FIELDS, JsonValue, LogEvent, MetadataMap

logger = logging.getLogger(__name__)

MetaGetter = Callable[[], Awaitable[MetadataMap]]


async def no_meta() -> MetadataMap:
    """Default metadata provider: attach nothing."""
    return {}


def build_body(event: LogEvent, meta: MetadataMap | None) -> dict[str, JsonValue]:
    """Build the flat payload mapping for one event.

    Canonical event fields always win: metadata keys that collide with them are
    dropped rather than overwriting the event's own values.
    """
    body: dict[str, JsonValue] = {
        "message": event.message,
        "loggerName": event.logger_name,
        "sequenceNumber": event.sequence_number,
        "time": event.time.isoformat(),
        "level": event.level,
    }
    if event.stack_trace is not None:
        body["stackTrace"] = event.stack_trace
    if event.error is not None:
        body["error"] = str(event.error)

    if not meta:
        return body

    dropped = sorted(key for key in meta if key in CANONICAL_FIELDS)
    if dropped:
        logger.debug("dropping metadata keys that collide with event fields: %s", dropped)
    for key, value in meta.items():
        if key not in CANONICAL_FIELDS:
            body[key] = value
    return body


def encode_payload(body: dict[str, Any]) -> str:
    """Encode a payload mapping as a JSON document."""
    try:
        return json.dumps(body, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"log payload is not JSON-encodable: {exc}") from exc


async def serialize(event: LogEvent, get_meta: MetaGetter = no_meta) -> str:
    """Await metadata for `event` (exactly once) and return the encoded payload."""
    meta = await get_meta()
    return encode_payload(build_body(event, meta))
