"""Cross-provider emote resolution."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Union

from weit.models import Channel, Emote, Provider
from weit.providers.base import EmoteProvider

logger = logging.getLogger(__name__)

# Twitch is authoritative for its own codes, the rest by community popularity
DEFAULT_PRECEDENCE = (Provider.TWITCH, Provider.FFZ, Provider.BTTV)


def pick_most_popular(candidates: Sequence[Emote]) -> Optional[Emote]:
    """
    Choose one emote out of same-code candidates from different providers.

    A candidate with an unknown usage count wins outright, since it is known
    to exist and only its count is missing. Otherwise the strictly highest
    count wins and ties keep the earlier candidate.
    """
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    for candidate in candidates:
        if candidate.usage_count is None:
            return candidate

    most_popular = candidates[0]
    for candidate in candidates[1:]:
        if candidate.usage_count > most_popular.usage_count:  # type: ignore[operator]
            most_popular = candidate
    return most_popular


class ProviderRegistry:
    """The emote providers of one running service, keyed by provider name."""

    def __init__(
        self,
        providers: Iterable[EmoteProvider],
        precedence: Sequence[Provider] = DEFAULT_PRECEDENCE,
    ):
        self.providers: Dict[Provider, EmoteProvider] = {p.name: p for p in providers}
        self.precedence = [p for p in precedence if p in self.providers]

    def __getitem__(self, name: Union[Provider, str]) -> EmoteProvider:
        return self.providers[Provider(name)]

    def __contains__(self, name: object) -> bool:
        try:
            return Provider(name) in self.providers  # type: ignore[arg-type]
        except ValueError:
            return False

    def __iter__(self):
        return iter(self.providers.values())

    async def find(
        self,
        code: str,
        channel: Optional[Channel] = None,
        provider: Optional[Union[Provider, str]] = None,
    ) -> Optional[Emote]:
        """Resolve ``code`` to one emote, optionally restricted to one provider."""
        if provider is not None:
            return await self[provider].find(code, channel)

        candidates: List[Emote] = []
        global_fallback: Optional[Emote] = None

        for name in self.precedence:
            emote = await self.providers[name].find(code, channel)
            if emote is None:
                continue
            if name == Provider.TWITCH:
                return emote

            if emote.is_global:
                if channel is None:
                    return emote
                # a later provider may still have the channel's own emote
                if global_fallback is None:
                    global_fallback = emote
            elif channel is not None:
                return emote
            else:
                candidates.append(emote)

        if global_fallback is not None:
            return global_fallback

        if code != code.lower():
            exact = pick_most_popular([c for c in candidates if c.code == code])
            if exact is not None:
                return exact

        emote = pick_most_popular(candidates)
        if emote is not None and len(candidates) > 1:
            logger.debug(
                "Picked %s %s out of %d candidates for %s",
                emote.provider.value, emote.id, len(candidates), code,
            )
        return emote
