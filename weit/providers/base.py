from __future__ import annotations

import logging
import re
from typing import Any, Iterable, List, Optional, Sequence, Tuple, TypeVar

import aiohttp

from weit.caching import KeyValueStore
from weit.http import read_json
from weit.models import Channel, Emote, EmoteList, Provider

logger = logging.getLogger(__name__)

E = TypeVar("E")


def prefer_case_sensitive_find(emotes: Sequence[E], code: str) -> Optional[E]:
    """
    Pick the emote for ``code`` out of same-code candidates.

    An exact (case-sensitive) match wins; otherwise the first candidate whose
    code matches case-insensitively.
    """
    for emote in emotes:
        if emote.code == code:  # type: ignore[attr-defined]
            return emote
    lowered = code.lower()
    for emote in emotes:
        if emote.code.lower() == lowered:  # type: ignore[attr-defined]
            return emote
    return None


def matching_code(emotes: Iterable[E], code: str) -> List[E]:
    """Candidates whose code equals ``code`` ignoring case, in order."""
    lowered = code.lower()
    return [e for e in emotes if e.code.lower() == lowered]  # type: ignore[attr-defined]


class EmoteProvider:
    """
    Resolver for one emote provider.

    Subclasses implement the listing and search calls; ``find`` combines
    them: globals first, a channel's own emotes shadow globals, and the
    search endpoint is only consulted without channel context.
    """

    name: Provider
    code_regex: re.Pattern

    def __init__(self, session: aiohttp.ClientSession, store: KeyValueStore):
        self.session = session
        self.store = store

    @property
    def label(self) -> str:
        return self.name.value.upper()

    def check_code(self, code: str) -> bool:
        return self.code_regex.fullmatch(code) is not None

    async def _get(self, url: str, **kwargs: Any) -> Tuple[int, Optional[Any]]:
        async with self.session.get(url, **kwargs) as resp:
            if resp.status != 200:
                logger.warning("%s: %s returned status %s", self.label, url, resp.status)
                return resp.status, None
            return resp.status, await read_json(resp)

    async def list_global(self) -> Optional[List[Emote]]:
        raise NotImplementedError

    async def list_channel(self, channel: Channel) -> EmoteList:
        raise NotImplementedError

    async def find_code(self, code: str) -> Optional[List[Emote]]:
        raise NotImplementedError

    async def search(self, code: str) -> Optional[List[Emote]]:
        """Candidates for ``code`` when no channel is given."""
        return await self.find_code(code)

    async def find(self, code: str, channel: Optional[Channel] = None) -> Optional[Emote]:
        if not self.check_code(code):
            return None

        emote: Optional[Emote] = None

        global_emotes = await self.list_global()
        if global_emotes:
            emote = prefer_case_sensitive_find(global_emotes, code)

        if channel is not None:
            channel_emotes = await self.list_channel(channel)
            if channel_emotes.emotes:
                emote = prefer_case_sensitive_find(channel_emotes.emotes, code) or emote
        elif emote is None:
            results = await self.search(code)
            if results:
                emote = prefer_case_sensitive_find(results, code)

        return emote
