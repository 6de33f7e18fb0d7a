from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import sys
from typing import Optional

from aiohttp import web

from weit.config import AppConfig, create_example_config, load_config
from weit.state import AppState
from weit.webserver import make_app

logger = logging.getLogger(__name__)


def setup_logging(level: Optional[str] = None) -> None:
    """Configure root logging; the level defaults to ``LOG_LEVEL`` or INFO."""
    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
        force=True,
    )
    # aiohttp logs every request at INFO
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def _configure_asyncio() -> None:
    """
    Windows: avoid noisy Proactor transport errors on abrupt socket closes by
    using the selector event loop policy.
    """
    if os.name == "nt":
        asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())  # type: ignore[attr-defined]


def _install_loop_exception_handler(loop: asyncio.AbstractEventLoop) -> None:
    def handler(_loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        # Ignore the common Windows disconnect error (client closed the tab)
        if isinstance(exc, ConnectionResetError) and getattr(exc, "winerror", None) == 10054:
            return
        _loop.default_exception_handler(context)

    loop.set_exception_handler(handler)


async def warm_cache_forever(state: AppState, interval: int) -> None:
    """Refresh the BTTV top emote list every ``interval`` seconds."""
    while True:
        try:
            emotes = await state.bttv.list_top(force=True)
            if emotes is None:
                logger.warning("BTTV: Top emote list refresh failed")
        except Exception:
            logger.exception("BTTV: Error refreshing top emote list")
        await asyncio.sleep(interval)


async def _run_server(config: AppConfig) -> None:
    state = AppState.create(config)

    app = make_app(state)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, config.server_host, config.server_port)
    await site.start()
    logger.info("Serving on http://%s:%s", config.server_host, config.server_port)

    if not config.twitch.is_configured():
        logger.warning("Twitch credentials not configured, Twitch emote lists are unavailable")

    warm_task: Optional[asyncio.Task] = None
    if config.warm_interval > 0:
        warm_task = asyncio.create_task(warm_cache_forever(state, config.warm_interval))

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        if warm_task is not None:
            warm_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await warm_task
        await runner.cleanup()
        await state.close()


def run_forever(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """
    Blocking entrypoint for console usage.
    """
    setup_logging()
    create_example_config()
    config = load_config()
    if host is not None:
        config.server_host = host
    if port is not None:
        config.server_port = port
    if config.debug:
        logging.getLogger("weit").setLevel(logging.DEBUG)

    _configure_asyncio()
    loop = asyncio.new_event_loop()
    _install_loop_exception_handler(loop)
    asyncio.set_event_loop(loop)
    try:
        loop.run_until_complete(_run_server(config))
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        loop.close()
