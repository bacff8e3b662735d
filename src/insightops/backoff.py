"""Retry/backoff engine for delivering a single payload.

Delivery of a payload is retried until it succeeds:

- After each failed attempt the engine sleeps for the current delay, then grows
  the delay by `multiplier` unless the grown value would exceed `max_delay`
  (in which case the delay stays where it is).
- After a success the delay resets to `initial_delay` for the next payload.
- With `max_attempts` set, a payload that keeps failing is dropped instead of
  retried forever.

Sleeping goes through an injectable `sleep` coroutine so tests can simulate time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from pydantic import BaseModel, ConfigDict, Field, model_validator

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Attempt = Callable[[], Awaitable[object]]


class BackoffPolicy(BaseModel):
    """Delay schedule between delivery attempts of the same payload."""

    model_config = ConfigDict(frozen=True)

    initial_delay: float = Field(default=2.0, gt=0.0)
    max_delay: float = Field(default=120.0, gt=0.0)
    multiplier: float = Field(default=2.0, ge=1.0)
    # None: retry forever.
    max_attempts: int | None = Field(default=None, ge=1)

    @model_validator(mode="after")
    def validate_delays(self) -> BackoffPolicy:
        """Ensure the first retry delay does not already exceed the ceiling."""
        if self.initial_delay > self.max_delay:
            raise ValueError("initial_delay must not exceed max_delay")
        return self

    def next_delay(self, current: float) -> float:
        """Grow `current` by the multiplier, keeping it if that would pass the ceiling."""
        grown = current * self.multiplier
        if grown <= self.max_delay:
            return grown
        return current

    def delay_for(self, failures: int) -> float:
        """Return the delay slept after the `failures`-th consecutive failure (1-based)."""
        if failures < 1:
            raise ValueError(f"failures must be >= 1. Got: {failures}")
        delay = self.initial_delay
        for _ in range(failures - 1):
            grown = self.next_delay(delay)
            if grown == delay:
                break
            delay = grown
        return delay


class BackoffState:
    """Mutable retry state owned by the delivery loop."""

    def __init__(self, policy: BackoffPolicy) -> None:
        self.policy = policy
        self.current_delay: float = policy.initial_delay
        self.failures = 0

    def record_failure(self) -> float:
        """Count a failed attempt and return how long to sleep before the next one."""
        delay = self.current_delay
        self.failures += 1
        self.current_delay = self.policy.next_delay(delay)
        return delay

    def reset(self) -> None:
        """Return to the initial delay (after a success or a dropped payload)."""
        self.current_delay = self.policy.initial_delay
        self.failures = 0


async def deliver_with_retry(
    attempt: Attempt,
    *,
    state: BackoffState,
    sleep: Sleep = asyncio.sleep,
) -> bool:
    """Run `attempt` until it succeeds.

    Any exception from `attempt` counts as a failed delivery; cancellation is not
    an exception here and propagates to the caller.

    Returns True once delivered, False if the payload was dropped after
    `policy.max_attempts` failures.
    """
    max_attempts = state.policy.max_attempts
    while True:
        try:
            await attempt()
        except Exception as exc:  # noqa: BLE001 - every transport failure is retried
            attempt_no = state.failures + 1
            if max_attempts is not None and attempt_no >= max_attempts:
                logger.error("dropping log payload after %d failed delivery attempts: %s", attempt_no, exc)
                state.reset()
                return False
            delay = state.record_failure()
            logger.warning("log delivery attempt %d failed: %s; retrying in %.1fs", attempt_no, exc, delay)
            await sleep(delay)
        else:
            state.reset()
            return True
