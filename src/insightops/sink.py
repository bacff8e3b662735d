"""Log sink that ships events to an insightOps endpoint without blocking producers.

The sink implements a small async pipeline:

- `emit` awaits serialization (including the metadata provider) and enqueues the
  JSON payload. It never waits for the network.
- A single background task consumes the queue serially and drives the
  retry/backoff engine, so at most one payload is in flight. A payload that keeps
  failing blocks everything queued behind it; order is preserved over throughput.
- `dispose` closes the queue (dropping anything still buffered) and cancels the
  background task without waiting for in-flight delivery.

Payloads are delivered in the order they were *enqueued*. Because serialization
awaits the metadata provider, two overlapping `emit` calls may enqueue in either
order.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from functools import partial
from typing import TYPE_CHECKING

from .backoff import BackoffPolicy, BackoffState, Sleep, deliver_with_retry
from .errors import QueueClosed, SinkDisposed
from .models import LogEvent
from .queue import DeliveryQueue
from .serializer import MetaGetter, no_meta, serialize
from .transport import CONTENT_TYPE_HEADER, PostHandler, make_requests_post

if TYPE_CHECKING:
    from config import SinkConfig

logger = logging.getLogger(__name__)


class DeliveryState(str, enum.Enum):
    """Lifecycle of the delivery loop."""

    IDLE = "idle"
    DELIVERING = "delivering"
    STOPPED = "stopped"


class InsightOpsSink:
    """Queues log events and POSTs them one at a time from a background task.

    Members:
    - Endpoint: `url`
    - Metadata provider: `_get_meta` (awaited once per event, merged into the payload)
    - Transport: `_post` (one HTTP POST per attempt)
    - Delivery queue: `_queue` (unbounded FIFO of JSON payloads)
    - Background task: `_worker` (the only consumer of `_queue`)
    - Retry state: `_backoff` (private to the background task)
    """

    def __init__(
        self,
        url: str,
        *,
        get_meta: MetaGetter | None = None,
        post: PostHandler | None = None,
        policy: BackoffPolicy | None = None,
        content_type_header: str = CONTENT_TYPE_HEADER,
        sleep: Sleep | None = None,
    ) -> None:
        """Create a sink for `url`.

        Args:
            url: insightOps webhook URL of the target log.
            get_meta: Async provider of extra fields merged into every payload.
            post: Transport performing one POST; defaults to `requests` in a thread.
            policy: Retry/backoff schedule; defaults to 2s doubling up to 2 minutes.
            content_type_header: Header name announcing the JSON body.
            sleep: Coroutine used for backoff delays (inject to simulate time).

        The delivery loop starts immediately when called from a running event
        loop; otherwise it starts on the first emitted event or on `start()`.
        """
        self.url = url
        self._get_meta: MetaGetter = get_meta or no_meta
        self._post: PostHandler = post or make_requests_post()
        self._policy = policy or BackoffPolicy()
        self._backoff = BackoffState(self._policy)
        self._headers = {content_type_header: "application/json"}
        self._sleep: Sleep = sleep or asyncio.sleep

        self._queue = DeliveryQueue()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._worker: asyncio.Task[None] | None = None
        self._emits: set[asyncio.Task[None]] = set()
        self._state = DeliveryState.IDLE
        self._disposed = False

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self.start()

    @classmethod
    def from_config(
        cls,
        config: SinkConfig,
        *,
        get_meta: MetaGetter | None = None,
        post: PostHandler | None = None,
        sleep: Sleep | None = None,
    ) -> InsightOpsSink:
        """Create a sink from a loaded `SinkConfig`."""
        return cls(
            config.url,
            get_meta=get_meta,
            post=post or make_requests_post(config.timeout),
            policy=config.backoff_policy,
            content_type_header=config.content_type_header,
            sleep=sleep,
        )

    @property
    def state(self) -> DeliveryState:
        """Current state of the delivery loop."""
        return self._state

    @property
    def pending(self) -> int:
        """Number of payloads buffered and not yet taken by the delivery loop."""
        return len(self._queue)

    @property
    def disposed(self) -> bool:
        """Whether `dispose()` has been called."""
        return self._disposed

    @property
    def current_delay(self) -> float:
        """Delay the next failed attempt will sleep for."""
        return self._backoff.current_delay

    def start(self) -> None:
        """Start the background delivery task on the running loop (idempotent)."""
        if self._disposed:
            raise SinkDisposed("sink has been disposed")
        if self._worker is not None:
            return
        self._loop = asyncio.get_running_loop()
        self._worker = self._loop.create_task(self._run(), name="insightops-delivery")

    async def emit(self, event: LogEvent) -> None:
        """Serialize `event` and enqueue it for delivery (does not wait for the network).

        Raises `SinkDisposed` after disposal. Errors from the metadata provider or
        JSON encoding propagate to the caller; nothing is enqueued in that case.
        """
        if self._disposed:
            raise SinkDisposed("sink has been disposed")
        self.start()
        payload = await serialize(event, self._get_meta)
        self._queue.put(payload)

    def __call__(self, event: LogEvent) -> None:
        """Fire-and-forget `emit`; safe to call from any thread.

        Never raises: events that cannot be scheduled or serialized are logged and
        dropped.
        """
        if self._disposed:
            return

        try:
            running: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        loop = self._loop
        if loop is None:
            if running is None:
                logger.warning("no running event loop; dropping log event #%d", event.sequence_number)
                return
            self.start()
            loop = running

        if running is loop:
            self._spawn_emit(event)
            return
        try:
            loop.call_soon_threadsafe(self._spawn_emit, event)
        except RuntimeError:
            logger.warning("event loop is closed; dropping log event #%d", event.sequence_number)

    def dispose(self) -> None:
        """Stop delivering and release the queue. Safe to call multiple times.

        Buffered payloads are discarded and in-flight delivery is cancelled, not
        awaited. Must be called from the sink's event loop thread.
        """
        if self._disposed:
            return
        self._disposed = True
        self._queue.close()
        for task in list(self._emits):
            task.cancel()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
        self._state = DeliveryState.STOPPED

    async def aclose(self) -> None:
        """Dispose the sink and wait for its background tasks to finish unwinding."""
        self.dispose()
        tasks = [task for task in (self._worker, *self._emits) if task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def __aenter__(self) -> InsightOpsSink:
        self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def _spawn_emit(self, event: LogEvent) -> None:
        """Run `emit` as a tracked task on the sink's loop."""
        if self._disposed:
            return
        task = asyncio.get_running_loop().create_task(self.emit(event))
        self._emits.add(task)
        task.add_done_callback(self._on_emit_done)

    def _on_emit_done(self, task: asyncio.Task[None]) -> None:
        """Report failures of fire-and-forget emits (producers never see them)."""
        self._emits.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None or isinstance(exc, SinkDisposed):
            return
        logger.error("failed to serialize log event; event dropped", exc_info=exc)

    async def _run(self) -> None:
        """Background loop: take one payload, deliver it (retrying), repeat."""
        try:
            while True:
                self._state = DeliveryState.IDLE
                payload = await self._queue.get()
                self._state = DeliveryState.DELIVERING
                await deliver_with_retry(partial(self._send, payload), state=self._backoff, sleep=self._sleep)
        except QueueClosed:
            logger.debug("delivery queue closed; stopping delivery loop")
        finally:
            self._state = DeliveryState.STOPPED

    async def _send(self, payload: str) -> None:
        """One delivery attempt: exactly one transport call."""
        await self._post(self.url, headers=dict(self._headers), body=payload)
