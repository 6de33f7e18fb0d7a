from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from weit.formatting import format_number, pluralize


class Provider(str, Enum):
    TWITCH = "ttv"
    BTTV = "bttv"
    FFZ = "ffz"
    SEVENTV = "7tv"


class EmoteKind(str, Enum):
    GLOBAL = "global"
    SUBSCRIBER = "subscriber"
    BITS = "bits"
    FOLLOWER = "follower"
    CHANNEL = "channel"


# 7TV emote flags (v3 API)
SEVENTV_FLAG_PRIVATE = 1 << 0
SEVENTV_FLAG_ZERO_WIDTH = 1 << 8


@dataclass
class Channel:
    """A Twitch channel. ``id`` is the Twitch user id shared by all providers."""
    name: str
    display_name: str
    id: Optional[str] = None
    profile_image_url: Optional[str] = None


@dataclass
class Emote:
    """
    An emote from any provider.

    The variant is given by ``provider`` and ``kind``; description and URLs
    are dispatched on those tags.
    """
    provider: Provider
    id: Union[int, str]
    code: str
    kind: EmoteKind = EmoteKind.GLOBAL
    creator: Optional[Channel] = None
    usage_count: Optional[int] = None
    tier: Optional[Union[int, str]] = None  # 1, 2, 3 or "special"
    is_shared: Optional[bool] = None  # BTTV shared vs. channel emote
    visibility: int = 0  # 7TV flags
    available_scales: List[int] = field(default_factory=lambda: [1, 2, 3])

    def __post_init__(self) -> None:
        if 1 not in self.available_scales:
            self.available_scales = sorted({1, *self.available_scales})

    @property
    def is_global(self) -> bool:
        return self.kind == EmoteKind.GLOBAL

    @property
    def description(self) -> str:
        if self.provider == Provider.TWITCH:
            return self._twitch_description()
        if self.provider == Provider.BTTV:
            return self._bttv_description()
        if self.provider == Provider.FFZ:
            return self._ffz_description()
        return self._seventv_description()

    def _creator_mention(self) -> str:
        return f"@{self.creator.name}" if self.creator else "unknown"

    def _usage_suffix(self) -> str:
        if self.usage_count is None:
            return ""
        return (
            f", available in {format_number(self.usage_count)} "
            f"{pluralize('channel', self.usage_count)}"
        )

    def _twitch_description(self) -> str:
        if self.is_global:
            return "Global Twitch Emote"
        if self.kind == EmoteKind.SUBSCRIBER:
            if self.tier == "special":
                return f"Special {self._creator_mention()} Emote"
            return f"Tier {self.tier} {self._creator_mention()} Emote"
        if self.kind == EmoteKind.BITS:
            return f"Bits {self._creator_mention()} Emote"
        if self.kind == EmoteKind.FOLLOWER:
            return f"Follower {self._creator_mention()} Emote"
        return f"{self._creator_mention()} Twitch Emote"

    def _bttv_description(self) -> str:
        if self.is_global:
            return "Global BTTV Emote"
        description = "BTTV Emote"
        if self.is_shared is not None:
            description = f"{'Shared' if self.is_shared else 'Channel'} {description}"
        return f"{description}, by {self._creator_mention()}{self._usage_suffix()}"

    def _ffz_description(self) -> str:
        if self.is_global:
            return "Global FFZ Emote"
        return f"FFZ Emote, by {self._creator_mention()}{self._usage_suffix()}"

    def _seventv_description(self) -> str:
        if self.is_global:
            return "Global 7TV Emote"
        description = "7TV Emote"
        if self.visibility & SEVENTV_FLAG_ZERO_WIDTH:
            description = f"Zero-Width {description}"
        if self.visibility & SEVENTV_FLAG_PRIVATE:
            description = f"Private {description}"
        return f"{description}, by {self._creator_mention()}{self._usage_suffix()}"

    def image_url(self, prefer_scale: Optional[int] = None) -> str:
        """Image URL at ``prefer_scale``, or at the largest scale if unsupported."""
        if prefer_scale in self.available_scales:
            scale = prefer_scale
        else:
            scale = max(self.available_scales)

        if self.provider == Provider.TWITCH:
            return f"https://static-cdn.jtvnw.net/emoticons/v2/{self.id}/default/dark/{scale}.0"
        if self.provider == Provider.BTTV:
            return f"https://cdn.betterttv.net/emote/{self.id}/{scale}x"
        if self.provider == Provider.FFZ:
            return f"https://cdn.frankerfacez.com/emote/{self.id}/{scale}"
        return f"https://cdn.7tv.app/emote/{self.id}/{scale}x.webp"

    @property
    def info_url(self) -> str:
        if self.provider == Provider.TWITCH:
            return f"https://twitchemotes.com/emotes/{self.id}"
        if self.provider == Provider.BTTV:
            return f"https://betterttv.com/emotes/{self.id}"
        if self.provider == Provider.FFZ:
            return f"https://www.frankerfacez.com/emoticon/{self.id}"
        return f"https://7tv.app/emotes/{self.id}"


@dataclass
class EmoteList:
    """
    A provider's emotes for one channel.

    ``emotes`` is ``None`` when the provider could not be reached and an
    empty list when it answered without emotes.
    """
    provider: Provider
    overview_url: str
    emotes: Optional[List[Emote]]

    @property
    def available(self) -> bool:
        return self.emotes is not None


@dataclass
class SupibotOrigin:
    """Supibot emote origin record."""
    id: str
    emote_id: Optional[str]
    type: Optional[str] = None
    author: Optional[str] = None
    reporter: Optional[str] = None
    text: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SupibotOrigin":
        emote_id = data.get("emoteID")
        return cls(
            id=str(data["ID"]),
            emote_id=str(emote_id) if emote_id is not None else None,
            type=data.get("type"),
            author=data.get("author"),
            reporter=data.get("reporter"),
            text=data.get("text"),
            notes=data.get("notes"),
        )


@dataclass
class AuthTokens:
    """OAuth tokens for the Twitch API."""
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    scope: List[str] = field(default_factory=list)

    def is_expired(self) -> bool:
        if not self.expires_at:
            return False
        return datetime.now() >= self.expires_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "scope": self.scope,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthTokens":
        return cls(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            expires_at=(
                datetime.fromisoformat(data["expires_at"])
                if data.get("expires_at")
                else None
            ),
            scope=data.get("scope") or [],
        )
