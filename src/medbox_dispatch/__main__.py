"""Entry point: ``python -m medbox_dispatch`` / ``medbox-dispatch``."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from .app import DispatchApplication
from .config.logging import configure_logging
from .config.settings import DispatchSettings

logger = logging.getLogger("medbox.app")


async def serve(app: DispatchApplication, stop: asyncio.Event | None = None) -> None:
    """Run *app* until *stop* is set (by default, on SIGINT or SIGTERM)."""
    if stop is None:
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, stop.set)
    await app.start()
    try:
        await stop.wait()
        logger.info("Shutdown requested")
    finally:
        await app.stop()


def main() -> int:
    settings = DispatchSettings()
    configure_logging(settings.log_level, json_output=settings.log_json)
    asyncio.run(serve(DispatchApplication(settings)))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
