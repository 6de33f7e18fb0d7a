"""Shared aiohttp client session configuration."""

from __future__ import annotations

import logging
from typing import Any, Optional

import aiohttp

logger = logging.getLogger(__name__)

USER_AGENT = "weit (+https://github.com/woranov/yeah-but-weit)"


def create_session(**kwargs: Any) -> aiohttp.ClientSession:
    """Create the process-wide ClientSession.

    No total timeout is set: a slow upstream stalls only the request that
    waits on it. The caller closes the session on shutdown.
    """
    headers = {"User-Agent": USER_AGENT}
    headers.update(kwargs.pop("headers", {}))
    return aiohttp.ClientSession(
        timeout=aiohttp.ClientTimeout(total=None),
        headers=headers,
        **kwargs,
    )


async def read_json(resp: Any) -> Optional[Any]:
    """Decode a response body as JSON regardless of its content type, or None."""
    try:
        return await resp.json(content_type=None)
    except ValueError:
        logger.debug("Non-JSON response body from %s", getattr(resp, "url", "?"))
        return None
