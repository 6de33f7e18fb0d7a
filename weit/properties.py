"""Emote properties addressable through ``?raw=`` and ``?goto=``."""

from __future__ import annotations

import re
from typing import Dict, List, Optional
from urllib.parse import quote

from yarl import URL

from weit.models import Emote, SupibotOrigin
from weit.supibot import origin_url

# Properties that are URLs and can be redirected to
REDIRECT_PROPERTY_ALIASES: Dict[str, List[str]] = {
    "EMOTE_IMAGE_URL": ["image", "file", "dl", "imageurl", "fileurl", "dlurl", "cdn", "cdnurl"],
    "EMOTE_INFO_PAGE_URL": ["info", "page", "infopage", "infourl", "pageurl", "infopageurl"],
    "EMOTE_TESTER_URL": ["test", "tester", "emotetester", "testurl", "testerurl", "emotetesterurl"],
    "EMOTE_CREATOR_CHANNEL_URL": ["channel", "channelurl"],
    "EMOTE_SUPIBOT_ORIGIN_URL": ["origin", "originurl"],
}

EMOTE_PROPERTY_ALIASES: Dict[str, List[str]] = {
    "EMOTE_CODE": ["code", "emote", "emotecode"],
    "EMOTE_CREATOR": ["creator"],
    "EMOTE_DESCRIPTION": ["description"],
    "WEIT_URL": ["weiturl"],
    "EMOTE_SUPIBOT_ORIGIN_INFO": ["origininfo"],
}

ALL_PROPERTY_ALIASES: Dict[str, List[str]] = {**EMOTE_PROPERTY_ALIASES, **REDIRECT_PROPERTY_ALIASES}

DEFAULT_RAW_ALIASES = ["weiturl", "description"]

EMOTE_TESTER_URL = "https://emotetester.gempir.com/"

_LAST_PATH_SEGMENT = re.compile(r"/[^/]+/?$")


def resolve_alias(alias: str, aliases: Dict[str, List[str]] = ALL_PROPERTY_ALIASES) -> Optional[str]:
    alias = alias.strip().lower()
    for property_name, property_aliases in aliases.items():
        if alias in property_aliases:
            return property_name
    return None


def is_space_separated(property_name: str) -> bool:
    """URLs and codes are joined with spaces in raw output, everything else with commas."""
    return property_name.endswith("_URL") or property_name.endswith("_CODE")


def get_property(
    request_url: URL,
    emote: Emote,
    property_name: str,
    origin: Optional[SupibotOrigin] = None,
) -> Optional[str]:
    """Value of ``property_name`` for ``emote``, or None if it has none."""
    if property_name == "EMOTE_CODE":
        return emote.code
    if property_name == "EMOTE_DESCRIPTION":
        return emote.description
    if property_name == "EMOTE_CREATOR":
        return f"@{emote.creator.name}" if emote.creator else None
    if property_name == "WEIT_URL":
        path = _LAST_PATH_SEGMENT.sub(f"/{emote.code}", request_url.path)
        return f"{request_url.host}{path}"
    if property_name == "EMOTE_SUPIBOT_ORIGIN_INFO":
        return "Supibot origin available" if origin else "No origin available"
    if property_name == "EMOTE_IMAGE_URL":
        return emote.image_url()
    if property_name == "EMOTE_INFO_PAGE_URL":
        return emote.info_url
    if property_name == "EMOTE_TESTER_URL":
        return f"{EMOTE_TESTER_URL}?emoteUrl={quote(emote.image_url(1), safe='')}&resize=0"
    if property_name == "EMOTE_CREATOR_CHANNEL_URL":
        return f"https://www.twitch.tv/{emote.creator.name}" if emote.creator else None
    if property_name == "EMOTE_SUPIBOT_ORIGIN_URL":
        return origin_url(origin.id) if origin else None
    raise ValueError(f"unknown property: {property_name!r}")


def needs_origin(property_names: List[str]) -> bool:
    return any(name.startswith("EMOTE_SUPIBOT_ORIGIN") for name in property_names)


def parse_raw_aliases(value: str) -> List[str]:
    """Deduplicated, lower-cased aliases from a ``?raw=`` value, in request order."""
    aliases: List[str] = []
    for alias in value.lower().split(","):
        alias = alias.strip()
        if alias and alias not in aliases:
            aliases.append(alias)
    return aliases or list(DEFAULT_RAW_ALIASES)


def format_raw(values: List[tuple]) -> str:
    """Join ``(property_name, value)`` pairs into the plain-text raw response."""
    output = ""
    for property_name, value in values:
        if not value:
            continue
        output += f"{value} " if is_space_separated(property_name) else f"{value}, "
    return output.rstrip(" ").rstrip(",")
