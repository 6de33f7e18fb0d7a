from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

from weit.caching import cached
from weit.config import CACHE_TTL
from weit.http import read_json
from weit.models import Channel, Emote, EmoteKind, EmoteList, Provider
from weit.providers.base import EmoteProvider

logger = logging.getLogger(__name__)

REST_URL = "https://7tv.io/v3"
GQL_URL = "https://api.7tv.app/v4/gql"
SEARCH_PER_PAGE = 72  # Max per page for 7TV
SEARCH_MAX_PAGES = 20
SCALES = [1, 2, 3, 4]

# 7TV GraphQL query for emote search by name, most popular first
SEVENTV_SEARCH_QUERY = """
query EmoteSearch($query: String, $page: Int, $perPage: Int!) {
  emotes {
    search(
      query: $query
      tags: {tags: [], match: ANY}
      sort: {sortBy: TOP_ALL_TIME, order: DESCENDING}
      filters: {}
      page: $page
      perPage: $perPage
    ) {
      items {
        id
        defaultName
        owner {
          id
          mainConnection {
            platformId
            platformUsername
            platformDisplayName
          }
        }
      }
      totalCount
      pageCount
    }
  }
}
"""

GQL_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "Origin": "https://7tv.app",
    "Referer": "https://7tv.app/",
}


class SevenTvProvider(EmoteProvider):
    """7TV emotes."""

    name = Provider.SEVENTV
    code_regex = re.compile(r"[-_A-Za-z():0-9]{2,100}", re.ASCII)

    def _parse_active(self, entry: Dict[str, Any], kind: EmoteKind) -> Emote:
        emote_data = entry.get("data") or {}
        owner = emote_data.get("owner")
        creator = None
        if kind != EmoteKind.GLOBAL and owner:
            creator = Channel(
                name=owner["username"],
                display_name=owner.get("display_name") or owner["username"],
            )
        return Emote(
            provider=self.name,
            id=entry["id"],
            code=entry["name"],
            kind=kind,
            creator=creator,
            visibility=emote_data.get("flags", 0),
            available_scales=list(SCALES),
        )

    def _parse_search_item(self, item: Dict[str, Any]) -> Emote:
        owner = item.get("owner") or {}
        connection = owner.get("mainConnection") or {}
        creator = None
        if connection.get("platformUsername"):
            creator = Channel(
                id=connection.get("platformId"),
                name=connection["platformUsername"].lower(),
                display_name=connection.get("platformDisplayName") or connection["platformUsername"],
            )
        return Emote(
            provider=self.name,
            id=item["id"],
            code=item["defaultName"],
            kind=EmoteKind.CHANNEL,
            creator=creator,
            available_scales=list(SCALES),
        )

    async def list_global(self) -> Optional[List[Emote]]:
        async def fetch() -> Optional[List[Dict[str, Any]]]:
            _, data = await self._get(f"{REST_URL}/emote-sets/global")
            return data.get("emotes", []) if data is not None else None

        data = await cached(self.store, "list:7tv:global", fetch, ttl=CACHE_TTL)
        if data is None:
            return None
        return [self._parse_active(e, EmoteKind.GLOBAL) for e in data]

    async def list_channel(self, channel: Channel) -> EmoteList:
        async def fetch() -> Optional[Dict[str, Any]]:
            async with self.session.get(f"{REST_URL}/users/twitch/{channel.id}") as resp:
                if resp.status == 404:
                    # no 7TV account linked to this channel
                    return {"user": None, "emote_set": None}
                if resp.status != 200:
                    logger.warning("7TV: Channel %s returned status %s", channel.name, resp.status)
                    return None
                return await read_json(resp)

        data = await cached(self.store, f"list:7tv:{channel.id}", fetch, ttl=CACHE_TTL)
        if data is None:
            return EmoteList(
                provider=self.name, overview_url="https://7tv.app/emotes", emotes=None,
            )

        user = data.get("user") or {}
        overview_url = (
            f"https://7tv.app/users/{user['id']}" if user.get("id") else "https://7tv.app/emotes"
        )
        emote_set = data.get("emote_set") or {}
        return EmoteList(
            provider=self.name,
            overview_url=overview_url,
            emotes=[self._parse_active(e, EmoteKind.CHANNEL) for e in emote_set.get("emotes") or []],
        )

    async def find_code(self, code: str) -> Optional[List[Emote]]:
        """Search by name, following pages until the reported total is collected."""
        async def fetch() -> Optional[List[Dict[str, Any]]]:
            results: List[Dict[str, Any]] = []
            total_count: Optional[int] = None
            page = 1

            while (total_count is None or len(results) < total_count) and page <= SEARCH_MAX_PAGES:
                payload = {
                    "operationName": "EmoteSearch",
                    "query": SEVENTV_SEARCH_QUERY,
                    "variables": {
                        "query": code,
                        "page": page,
                        "perPage": SEARCH_PER_PAGE,
                    },
                }
                async with self.session.post(GQL_URL, json=payload, headers=GQL_HEADERS) as resp:
                    if resp.status != 200:
                        logger.warning("7TV: Search page %d returned status %s", page, resp.status)
                        return None
                    result = await read_json(resp) or {}

                search_data = ((result.get("data") or {}).get("emotes") or {}).get("search") or {}
                items = search_data.get("items") or []
                if not items:
                    break
                results.extend(items)
                total_count = search_data.get("totalCount", 0)
                page += 1

            return [e for e in results if e["defaultName"].lower() == code.lower()]

        data = await cached(self.store, f"search:7tv:{code.lower()}", fetch, ttl=CACHE_TTL)
        if not data:
            return None
        return [self._parse_search_item(e) for e in data]
