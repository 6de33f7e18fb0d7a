from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from weit.caching import cached
from weit.config import CACHE_TTL, LONG_CACHE_TTL
from weit.http import read_json
from weit.models import Channel, Emote, EmoteKind, EmoteList, Provider
from weit.providers.base import EmoteProvider, matching_code

logger = logging.getLogger(__name__)

API_URL = "https://api.betterttv.net/3"
PER_PAGE = 100
TOP_EMOTE_COUNT = 4_500
CONSIDER_NEWEST = 5


def _creator(user: Dict[str, Any]) -> Channel:
    return Channel(
        id=user.get("providerId"),
        name=user["name"],
        display_name=user.get("displayName") or user["name"],
    )


class BttvProvider(EmoteProvider):
    """BetterTTV emotes."""

    name = Provider.BTTV
    code_regex = re.compile(r"[-_A-Za-z0-9():!?']{2,100}", re.ASCII)

    async def list_global(self) -> Optional[List[Emote]]:
        async def fetch() -> Optional[List[Dict[str, Any]]]:
            _, data = await self._get(f"{API_URL}/cached/emotes/global")
            return data

        data = await cached(self.store, "list:bttv:global", fetch, ttl=CACHE_TTL)
        if data is None:
            return None
        return [
            Emote(provider=self.name, id=e["id"], code=e["code"], kind=EmoteKind.GLOBAL)
            for e in data
        ]

    async def list_channel(self, channel: Channel) -> EmoteList:
        async def fetch() -> Optional[Dict[str, Any]]:
            async with self.session.get(f"{API_URL}/cached/users/twitch/{channel.id}") as resp:
                if resp.status == 404:
                    # user does not have any BTTV emotes
                    return {"channelEmotes": [], "sharedEmotes": []}
                if resp.status != 200:
                    logger.warning("BTTV: Channel %s returned status %s", channel.name, resp.status)
                    return None
                return await read_json(resp)

        data = await cached(self.store, f"list:bttv:{channel.id}", fetch, ttl=CACHE_TTL)
        if data is None:
            return EmoteList(provider=self.name, overview_url=self._overview_url(None), emotes=None)

        emotes = [
            Emote(
                provider=self.name,
                id=e["id"],
                code=e["code"],
                kind=EmoteKind.CHANNEL,
                creator=channel,
                is_shared=False,
            )
            for e in data.get("channelEmotes", [])
        ]
        emotes += [
            Emote(
                provider=self.name,
                id=e["id"],
                code=e["code"],
                kind=EmoteKind.CHANNEL,
                creator=_creator(e["user"]),
                is_shared=True,
            )
            for e in data.get("sharedEmotes", [])
        ]
        return EmoteList(
            provider=self.name,
            overview_url=self._overview_url(data.get("id")),
            emotes=emotes,
        )

    @staticmethod
    def _overview_url(bttv_user_id: Optional[str]) -> str:
        if bttv_user_id:
            return f"https://betterttv.com/users/{bttv_user_id}"
        return "https://betterttv.com/emotes/shared"

    async def list_top(self, count: int = TOP_EMOTE_COUNT, force: bool = False) -> Optional[List[Emote]]:
        """The most used shared emotes, paginated by offset until ``count`` entries."""
        async def fetch() -> Optional[List[Dict[str, Any]]]:
            entries: List[Dict[str, Any]] = []
            offset = 0
            remaining = count

            while remaining > 0:
                _, page = await self._get(
                    f"{API_URL}/emotes/shared/top?offset={offset}&limit={PER_PAGE}"
                )
                if page is None:
                    return None
                entries.extend(page)
                remaining -= len(page)
                offset += PER_PAGE
                if len(page) < PER_PAGE:
                    break

            logger.info("BTTV: Fetched %d top shared emotes", len(entries))
            return entries

        data = await cached(
            self.store, "list:bttv:top", fetch, force_refresh=force, ttl=LONG_CACHE_TTL,
        )
        if data is None:
            return None
        return [
            Emote(
                provider=self.name,
                id=entry["emote"]["id"],
                code=entry["emote"]["code"],
                kind=EmoteKind.CHANNEL,
                creator=_creator(entry["emote"]["user"]),
                usage_count=entry.get("total"),
                is_shared=True,
            )
            for entry in data
        ]

    async def shared_count(self, emote_id: str) -> Optional[int]:
        """Number of channels an emote is shared to, read from the ``x-total`` header."""
        async def fetch() -> Optional[int]:
            async with self.session.get(f"{API_URL}/emotes/{emote_id}/shared?limit=1") as resp:
                if resp.status != 200:
                    return None
                total = resp.headers.get("x-total")
            if total is None or not total.isdigit():
                return None
            return int(total)

        value = await cached(
            self.store, f"count:bttv:{emote_id}", fetch, type="text", ttl=CACHE_TTL,
        )
        return int(value) if value is not None else None

    async def find_code(self, code: str, consider_newest: int = CONSIDER_NEWEST) -> Optional[List[Emote]]:
        """
        Search shared emotes for ``code``.

        Only the ``consider_newest`` latest exact matches are kept; their
        usage counts are fetched concurrently and the result is ordered by
        descending usage.
        """
        async def fetch() -> Optional[List[Dict[str, Any]]]:
            results: List[Dict[str, Any]] = []
            offset = 0

            while True:
                _, page = await self._get(
                    f"{API_URL}/emotes/shared/search"
                    f"?query={quote(code)}&offset={offset}&limit={PER_PAGE}"
                )
                if page is None:
                    return None
                results.extend(e for e in page if e["code"].lower() == code.lower())
                if len(page) < PER_PAGE:
                    break
                offset += PER_PAGE

            return results

        data = await cached(self.store, f"search:bttv:{code.lower()}", fetch, ttl=CACHE_TTL)
        if not data:
            return None

        candidates = data[-consider_newest:][::-1]
        counts = await asyncio.gather(*(self.shared_count(entry["id"]) for entry in candidates))

        emotes = [
            Emote(
                provider=self.name,
                id=entry["id"],
                code=entry["code"],
                kind=EmoteKind.CHANNEL,
                creator=_creator(entry["user"]),
                usage_count=count,
                is_shared=True,
            )
            for entry, count in zip(candidates, counts)
        ]
        emotes.sort(key=lambda e: e.usage_count if e.usage_count is not None else -1, reverse=True)
        return emotes

    async def search(self, code: str) -> Optional[List[Emote]]:
        top_emotes = await self.list_top()
        if top_emotes:
            matches = matching_code(top_emotes, code)
            if matches:
                return matches
        return await self.find_code(code)

