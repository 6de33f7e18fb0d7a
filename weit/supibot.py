from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

import aiohttp

from weit.caching import KeyValueStore, cached
from weit.config import MEDIUM_CACHE_TTL, SHORT_CACHE_TTL, SUPIBOT_USER_AGENT
from weit.http import read_json
from weit.models import Emote, SupibotOrigin

logger = logging.getLogger(__name__)

ORIGIN_LIST_URL = "https://supinic.com/api/data/origin/list"
ORIGIN_LIST_KEY = "list:supibot:origins"
ORIGIN_LIST_TIMEOUT = 5.0


def origin_url(origin_id: str) -> str:
    return f"https://supinic.com/data/origin/detail/{origin_id}"


class OriginLookup:
    """Supibot emote origins, joined to emotes by id."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        store: KeyValueStore,
        timeout: float = ORIGIN_LIST_TIMEOUT,
    ):
        self.session = session
        self.store = store
        self.timeout = timeout
        # fetches that lost the timeout race and are still finishing
        self._pending: Set[asyncio.Task] = set()

    async def _fetch_origins(self) -> Optional[List[Dict[str, Any]]]:
        async with self.session.get(
            ORIGIN_LIST_URL, headers={"User-Agent": SUPIBOT_USER_AGENT},
        ) as resp:
            if resp.status != 200:
                logger.warning("Supibot: Origin list returned status %s", resp.status)
                return None
            data = await read_json(resp)
        return (data or {}).get("data")

    async def list_origins(self) -> List[SupibotOrigin]:
        """
        The full origin list.

        Filling the cache may take at most ``timeout`` seconds; after that an
        empty list is cached briefly and returned while the fetch finishes in
        the background.
        """
        task = asyncio.ensure_future(
            cached(self.store, ORIGIN_LIST_KEY, self._fetch_origins, ttl=MEDIUM_CACHE_TTL)
        )
        try:
            data = await asyncio.wait_for(asyncio.shield(task), self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Supibot: Origin list not available within %.0fs", self.timeout)
            self._pending.add(task)
            task.add_done_callback(self._forget)
            data = None
        except aiohttp.ClientError as e:
            logger.warning("Supibot: Error fetching origin list: %s", e)
            data = None

        if data is None:
            await self.store.put(ORIGIN_LIST_KEY, "[]", ttl=SHORT_CACHE_TTL)
            return []

        return [SupibotOrigin.from_dict(entry) for entry in data]

    def _forget(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Supibot: Background origin fetch failed: %s", task.exception())

    async def find(self, emote: Emote) -> Optional[SupibotOrigin]:
        emote_id = str(emote.id)
        for origin in await self.list_origins():
            if origin.emote_id == emote_id:
                return origin
        return None

    async def wait_pending(self) -> None:
        """Wait for fetches that outlived their request (used on shutdown)."""
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
