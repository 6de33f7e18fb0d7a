from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union
from urllib.parse import quote

import aiohttp

from weit.caching import KeyValueStore, cached
from weit.config import CACHE_TTL
from weit.http import read_json
from weit.models import Channel, Emote, EmoteKind, EmoteList, Provider
from weit.providers.base import EmoteProvider, prefer_case_sensitive_find
from weit.twitch import TwitchApi, check_emote_code

logger = logging.getLogger(__name__)

IVR_EMOTE_URL = "https://api.ivr.fi/v2/twitch/emotes"

HELIX_TIERS: Dict[str, int] = {
    "1000": 1,
    "2000": 2,
    "3000": 3,
}

# Cached for codes IVR does not know, so they are not looked up again
DOES_NOT_EXIST_SENTINEL_EMOTE_ID = "-1"
DOES_NOT_EXIST_SENTINEL = {"emoteID": DOES_NOT_EXIST_SENTINEL_EMOTE_ID}


class ChannelNotFoundQuirk(Exception):
    """The channel emote API answered 404 "channel not found" for an existing channel."""

    def __init__(self, channel_name: str):
        super().__init__(f"channel emote list reported {channel_name!r} as not found")
        self.channel_name = channel_name


def _scales(scale_names: List[str]) -> List[int]:
    scales = sorted({int(float(s)) for s in scale_names})
    return scales or [1, 2, 3]


def _tier(value: Optional[str]) -> Union[int, str]:
    if value in HELIX_TIERS:
        return HELIX_TIERS[value]
    if value in ("1", "2", "3"):
        return int(value)
    return "special"


class TwitchProvider(EmoteProvider):
    """
    Twitch emotes.

    Lists come from Helix and need app credentials. Single codes are looked
    up through IVR, which also knows emotes of channels nobody asked about.
    """

    name = Provider.TWITCH

    def __init__(self, session: aiohttp.ClientSession, store: KeyValueStore, api: TwitchApi):
        super().__init__(session, store)
        self.api = api

    def check_code(self, code: str) -> bool:
        return check_emote_code(code, case_sensitive=False)

    async def list_global(self) -> Optional[List[Emote]]:
        if not self.api.configured:
            return None

        async def fetch() -> Optional[List[Dict[str, Any]]]:
            status, data = await self.api.helix("chat/emotes/global")
            if status != 200 or data is None:
                logger.warning("TTV: Global emotes returned status %s", status)
                return None
            return data.get("data", [])

        data = await cached(self.store, "list:ttv:global", fetch, ttl=CACHE_TTL)
        if data is None:
            return None
        return [
            Emote(
                provider=self.name,
                id=e["id"],
                code=e["name"],
                kind=EmoteKind.GLOBAL,
                available_scales=_scales(e.get("scale") or []),
            )
            for e in data
        ]

    async def list_channel(self, channel: Channel) -> EmoteList:
        """
        Subscriber, bits and follower emotes of ``channel``.

        Raises ChannelNotFoundQuirk when the API claims the channel does not
        exist, which it does for some valid channels.
        """
        overview_url = f"https://twitchemotes.com/channels/{channel.id}"
        if not self.api.configured:
            return EmoteList(provider=self.name, overview_url=overview_url, emotes=None)

        async def fetch() -> Optional[List[Dict[str, Any]]]:
            status, data = await self.api.helix(f"chat/emotes?broadcaster_id={channel.id}")
            if status == 200 and data is not None:
                return data.get("data", [])
            if status == 404 and data:
                message = str(data.get("message") or data.get("error") or "")
                if "channel not found" in message.lower():
                    raise ChannelNotFoundQuirk(channel.name)
            logger.warning("TTV: Channel %s returned status %s", channel.name, status)
            return None

        data = await cached(self.store, f"list:ttv:{channel.id}", fetch, ttl=CACHE_TTL)
        if data is None:
            return EmoteList(provider=self.name, overview_url=overview_url, emotes=None)
        return EmoteList(
            provider=self.name,
            overview_url=overview_url,
            emotes=[self._parse_channel_emote(e, channel) for e in data],
        )

    def _parse_channel_emote(self, entry: Dict[str, Any], channel: Channel) -> Emote:
        emote_type = entry.get("emote_type")
        tier: Optional[Union[int, str]] = None
        if emote_type == "subscriptions":
            kind = EmoteKind.SUBSCRIBER
            tier = _tier(entry.get("tier"))
        elif emote_type == "bitstier":
            kind = EmoteKind.BITS
        elif emote_type == "follower":
            kind = EmoteKind.FOLLOWER
        else:
            kind = EmoteKind.CHANNEL
        return Emote(
            provider=self.name,
            id=entry["id"],
            code=entry["name"],
            kind=kind,
            creator=channel,
            tier=tier,
            available_scales=_scales(entry.get("scale") or []),
        )

    async def lookup(self, code: str) -> Optional[Emote]:
        """Look up a single code through IVR."""
        async def fetch() -> Optional[Dict[str, Any]]:
            async with self.session.get(f"{IVR_EMOTE_URL}/{quote(code)}") as resp:
                if resp.status == 404:
                    return DOES_NOT_EXIST_SENTINEL
                if resp.status != 200:
                    logger.warning("TTV: Emote lookup for %s returned status %s", code, resp.status)
                    return None
                return await read_json(resp)

        data = await cached(self.store, f"ttv:{code}", fetch, ttl=CACHE_TTL)
        if not data or data.get("emoteID") == DOES_NOT_EXIST_SENTINEL_EMOTE_ID:
            return None

        if not data.get("channelLogin"):
            return Emote(provider=self.name, id=data["emoteID"], code=data["emoteCode"])

        emote_type = (data.get("emoteType") or "").upper()
        if emote_type == "BITS_BADGE_TIERS":
            kind, tier = EmoteKind.BITS, None
        elif emote_type == "FOLLOWER":
            kind, tier = EmoteKind.FOLLOWER, None
        else:
            kind, tier = EmoteKind.SUBSCRIBER, _tier(data.get("emoteTier"))
        return Emote(
            provider=self.name,
            id=data["emoteID"],
            code=data["emoteCode"],
            kind=kind,
            creator=Channel(
                id=data.get("channelID"),
                name=data["channelLogin"],
                display_name=data.get("channelName") or data["channelLogin"],
            ),
            tier=tier,
        )

    async def find_code(self, code: str) -> Optional[List[Emote]]:
        emote = await self.lookup(code)
        return [emote] if emote is not None else None

    async def find(self, code: str, channel: Optional[Channel] = None) -> Optional[Emote]:
        if not self.check_code(code):
            return None
        # IVR is only asked for codes that look like real Twitch emote codes
        lookup_allowed = check_emote_code(code, case_sensitive=True)

        emote: Optional[Emote] = None
        global_emotes = await self.list_global()
        if global_emotes:
            emote = prefer_case_sensitive_find(global_emotes, code)

        if channel is None:
            if emote is None and lookup_allowed:
                emote = await self.lookup(code)
            return emote

        try:
            channel_emotes = await self.list_channel(channel)
        except ChannelNotFoundQuirk:
            logger.info("TTV: Channel emotes of %s unavailable, looking up %s", channel.name, code)
            if lookup_allowed:
                found = await self.lookup(code)
                if (
                    found is not None
                    and not found.is_global
                    and found.creator is not None
                    and found.creator.name == channel.name
                ):
                    return found
            return emote

        if channel_emotes.emotes:
            emote = prefer_case_sensitive_find(channel_emotes.emotes, code) or emote
        if emote is None and lookup_allowed:
            # not in the channel's list, so only a global emote can match
            found = await self.lookup(code)
            if found is not None and found.is_global:
                emote = found
        return emote
