from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from weit.caching import cached
from weit.config import CACHE_TTL
from weit.http import read_json
from weit.models import Channel, Emote, EmoteKind, EmoteList, Provider
from weit.providers.base import EmoteProvider

logger = logging.getLogger(__name__)

API_URL = "https://api.frankerfacez.com/v1"
SEARCH_PAGE_LIMIT = 2
SEARCH_PER_PAGE = 200


def _scales(urls: Dict[str, str]) -> List[int]:
    return sorted(int(scale) for scale in urls if scale.isdigit()) or [1]


class FfzProvider(EmoteProvider):
    """FrankerFaceZ emotes."""

    name = Provider.FFZ
    code_regex = re.compile(r"!?[-\w():]{3,100}", re.ASCII)

    def _parse(self, entry: Dict[str, Any], kind: EmoteKind) -> Emote:
        owner = entry.get("owner") or {}
        creator = None
        if kind != EmoteKind.GLOBAL and owner:
            creator = Channel(
                name=owner["name"],
                display_name=owner.get("display_name") or owner["name"],
            )
        return Emote(
            provider=self.name,
            id=entry["id"],
            code=entry["name"],
            kind=kind,
            creator=creator,
            usage_count=entry.get("usage_count") if kind != EmoteKind.GLOBAL else None,
            available_scales=_scales(entry.get("urls") or {}),
        )

    async def list_global(self) -> Optional[List[Emote]]:
        async def fetch() -> Optional[Dict[str, Any]]:
            _, data = await self._get(f"{API_URL}/set/global")
            return data

        data = await cached(self.store, "list:ffz:global", fetch, ttl=CACHE_TTL)
        if data is None:
            return None

        # Only the "default_sets" are available in every channel
        emotes = []
        for set_id in data.get("default_sets", []):
            emote_set = data["sets"].get(str(set_id), {})
            emotes += [self._parse(e, EmoteKind.GLOBAL) for e in emote_set.get("emoticons", [])]
        return emotes

    async def list_channel(self, channel: Channel) -> EmoteList:
        async def fetch() -> Optional[Dict[str, Any]]:
            async with self.session.get(f"{API_URL}/room/id/{channel.id}") as resp:
                if resp.status == 404:
                    # user does not have any FFZ emotes
                    return {"room": None, "sets": {}}
                if resp.status != 200:
                    logger.warning("FFZ: Channel %s returned status %s", channel.name, resp.status)
                    return None
                return await read_json(resp)

        overview_url = f"https://www.frankerfacez.com/channel/{channel.name}"
        data = await cached(self.store, f"list:ffz:{channel.id}", fetch, ttl=CACHE_TTL)
        if data is None:
            return EmoteList(provider=self.name, overview_url=overview_url, emotes=None)

        room = data.get("room")
        if not room:
            return EmoteList(provider=self.name, overview_url=overview_url, emotes=[])

        emote_set = data["sets"].get(str(room["set"]), {})
        return EmoteList(
            provider=self.name,
            overview_url=overview_url,
            emotes=[self._parse(e, EmoteKind.CHANNEL) for e in emote_set.get("emoticons", [])],
        )

    async def find_code(self, code: str) -> Optional[List[Emote]]:
        """Search by code, most used first. At most two pages are read."""
        async def fetch() -> Optional[List[Dict[str, Any]]]:
            results: List[Dict[str, Any]] = []
            page = 1

            while page <= SEARCH_PAGE_LIMIT:
                _, data = await self._get(
                    f"{API_URL}/emotes?q={quote(code)}&sensitive=false&sort=count-desc"
                    f"&page={page}&per_page={SEARCH_PER_PAGE}"
                )
                if data is None:
                    return None
                results.extend(data.get("emoticons", []))
                if page >= data.get("_pages", 1):
                    break
                page += 1

            return [e for e in results if e["name"].lower() == code.lower()]

        data = await cached(self.store, f"search:ffz:{code.lower()}", fetch, ttl=CACHE_TTL)
        if not data:
            return None
        return [self._parse(e, EmoteKind.CHANNEL) for e in data]
