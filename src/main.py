"""Demo entrypoint shipping a few log records to insightOps.

This module intentionally contains a small, end-to-end "smoke test" that:

- Loads configuration from environment.
- Attaches an `InsightOpsHandler` to the "demo" logger.
- Emits a handful of records (including one with an exception).
- Gives the background delivery loop a moment, then disposes the sink.

It is **not** intended to be production wiring; it is a convenient manual
integration harness for checking an endpoint end to end.
"""

from __future__ import annotations

import asyncio
import logging
import os
import platform
import socket

from config import load_config
from insightops import DeliveryState, InsightOpsHandler, InsightOpsSink, MetadataMap


async def _host_meta() -> MetadataMap:
    """Attach coarse host/deployment tags to every record."""
    return {
        "host": socket.gethostname(),
        "python": platform.python_version(),
        "environment": os.getenv("DEMO_ENVIRONMENT", "dev"),
    }


async def run_demo() -> None:
    """Send a few records and wait briefly for delivery (best-effort)."""
    cfg = load_config()

    logging.basicConfig(level=logging.INFO)
    sink = InsightOpsSink.from_config(cfg, get_meta=_host_meta)
    handler = InsightOpsHandler(sink)

    demo_logger = logging.getLogger("demo")
    demo_logger.addHandler(handler)
    try:
        demo_logger.info("demo started")
        demo_logger.warning("disk usage at %d%%", 91)
        try:
            1 / 0
        except ZeroDivisionError:
            demo_logger.exception("division failed")

        wait_s = float(os.getenv("DEMO_WAIT_SECONDS", "5"))
        loop = asyncio.get_running_loop()
        deadline = loop.time() + wait_s
        await asyncio.sleep(0.1)
        while loop.time() < deadline and (sink.pending or sink.state is DeliveryState.DELIVERING):
            await asyncio.sleep(0.1)
        print(f"[demo] pending={sink.pending} state={sink.state.value}")
    finally:
        demo_logger.removeHandler(handler)
        await sink.aclose()


if __name__ == "__main__":
    asyncio.run(run_demo())
