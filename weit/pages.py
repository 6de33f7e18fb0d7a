"""HTML pages, rendered from the packaged page template."""

from __future__ import annotations

import functools
import re
from html import escape
from typing import Callable, Iterable, List, Optional, Sequence
from urllib.parse import quote

from weit.models import Channel, Emote, EmoteKind, EmoteList, Provider, SupibotOrigin
from weit.paths import get_web_assets_dir
from weit.supibot import origin_url

DEFAULT_FAVICON = "https://cdn.betterttv.net/emote/5e500538e383e37d5d9dd3ec/2x"

AT_MENTION_REGEX = re.compile(r"@([a-zA-Z0-9_]+)")

LIST_PAGE_HEAD = """
<style>
  main {
    padding: 3rem;
    max-width: 60rem;
    margin: 0 auto;
  }
  main > a img {
    max-width: 200px;
  }
  main .provider-emote-list + h2 {
    margin-top: 5rem;
  }
</style>
"""

CHANNEL_LINKS_HEAD = """
<style>
  .goto-channel-emotes-links {
    margin-top: 5rem;
  }
</style>
"""


@functools.lru_cache(maxsize=1)
def _template() -> str:
    return (get_web_assets_dir() / "page.html").read_text(encoding="utf-8")


def link_at_mentions(text: str) -> str:
    """Turn ``@name`` into a link to the Twitch channel."""
    return AT_MENTION_REGEX.sub(
        lambda m: f"<a href='https://www.twitch.tv/{m.group(1).lower()}'>@{m.group(1)}</a>",
        text,
    )


def create_html(
    title: str,
    title_url: Optional[str] = None,
    description: Optional[str] = None,
    image_url: Optional[str] = None,
    image_alt: str = "",
    og_title: Optional[str] = None,
    og_description: Optional[str] = None,
    og_image_url: Optional[str] = None,
    head: str = "",
    html: str = "",
    text_transformers: Sequence[Callable[[str], str]] = (),
    favicon: str = DEFAULT_FAVICON,
) -> str:
    """
    Render a page: optional image, a title and a description.

    The Open Graph properties default to the visible title, description and
    image. Text transformers run on the escaped title and description.
    """
    def transform(text: str) -> str:
        text = escape(text)
        for transformer in text_transformers:
            text = transformer(text)
        return text

    og_title = og_title if og_title is not None else title
    og_description = og_description if og_description is not None else description
    og_image_url = og_image_url if og_image_url is not None else image_url

    meta: List[str] = []
    if og_title:
        meta.append(f"<meta property='og:title' content='{escape(og_title)}'>")
    if og_description:
        meta.append(f"<meta property='og:description' content='{escape(og_description)}'>")
    if og_image_url:
        meta.append("<meta property='twitter:card' content='summary_large_image'>")
        meta.append(f"<meta property='og:image' content='{escape(og_image_url)}'>")

    main: List[str] = []
    if image_url:
        main.append(
            f"<a href='{escape(image_url)}' class='main-img'>"
            f"<img class='image' src='{escape(image_url)}' alt='{escape(image_alt)}'></a>"
        )
    if title_url:
        main.append(f"<h1><a href='{escape(title_url)}'>{transform(title)}</a></h1>")
    else:
        main.append(f"<h1>{transform(title)}</h1>")
    if description:
        main.append(f"<p>{transform(description)}</p>")
    main.append(html)

    return (
        _template()
        .replace("{{TITLE}}", escape(title))
        .replace("{{FAVICON}}", escape(favicon))
        .replace("{{META}}", "\n  ".join(meta))
        .replace("{{HEAD}}", head)
        .replace("{{MAIN}}", "\n".join(main))
    )


def emote_page(emote: Emote, channel: Optional[Channel], origin: Optional[SupibotOrigin]) -> str:
    extra_head = ""
    extra_html = ""

    if origin is not None:
        extra_html += (
            "<h2>Origin</h2>"
            f"<p>Available on <a href='{escape(origin_url(origin.id))}'>supinic.com</a></p>"
        )

    context_channel_names: List[str] = []
    for name in (channel.name if channel else None, emote.creator.name if emote.creator else None):
        if name and name not in context_channel_names:
            context_channel_names.append(name)

    if context_channel_names:
        extra_head += CHANNEL_LINKS_HEAD
        links = "\n".join(
            f"<li><a href='/list/{quote(name)}'>@{escape(name)} Emote List</a></li>"
            for name in context_channel_names
        )
        extra_html += f"<ul class='goto-channel-emotes-links'>{links}</ul>"

    description = emote.description
    return create_html(
        title=emote.code,
        title_url=emote.info_url,
        description=description,
        image_url=emote.image_url(),
        image_alt=emote.code,
        og_description=description + (" (Supibot origin available)" if origin else ""),
        head=extra_head,
        html=extra_html,
        text_transformers=[link_at_mentions],
    )


def _emote_items(provider: Provider, channel: Channel, emotes: Iterable[Emote]) -> str:
    items = "\n".join(
        f"<li><a href='/{provider.value}/{quote(channel.name.lower())}/{quote(emote.code, safe='')}'"
        f" title='{escape(emote.code)} – {escape(emote.description)}'>"
        f"<img src='{escape(emote.image_url(2))}' alt='{escape(emote.code)}'></a></li>"
        for emote in emotes
    )
    return f"<ul class='provider-emote-list'>{items}</ul>"


def _section(heading: str, provider: Provider, channel: Channel, emotes: List[Emote]) -> str:
    if not emotes:
        return ""
    return f"<h3>{heading}</h3>{_emote_items(provider, channel, emotes)}"


def _twitch_sections(channel: Channel, emotes: List[Emote]) -> str:
    subs = [e for e in emotes if e.kind == EmoteKind.SUBSCRIBER]
    html = _emote_items(Provider.TWITCH, channel, [e for e in subs if e.tier == 1])
    html += _section("Tier 2", Provider.TWITCH, channel, [e for e in subs if e.tier == 2])
    html += _section("Tier 3", Provider.TWITCH, channel, [e for e in subs if e.tier == 3])
    html += _section("Special", Provider.TWITCH, channel, [e for e in subs if e.tier == "special"])
    html += _section("Bits", Provider.TWITCH, channel, [e for e in emotes if e.kind == EmoteKind.BITS])
    html += _section("Follower", Provider.TWITCH, channel, [e for e in emotes if e.kind == EmoteKind.FOLLOWER])
    html += _section(
        "Other",
        Provider.TWITCH,
        channel,
        [e for e in emotes if e.kind in (EmoteKind.CHANNEL, EmoteKind.GLOBAL)],
    )
    return html


def _bttv_sections(channel: Channel, emotes: List[Emote]) -> str:
    html = ""
    channel_emotes = [e for e in emotes if not e.is_shared]
    if channel_emotes:
        html += _emote_items(Provider.BTTV, channel, channel_emotes)
    html += _section("Shared", Provider.BTTV, channel, [e for e in emotes if e.is_shared])
    return html


def emote_list_summary(emote_lists: Sequence[EmoteList]) -> str:
    """E.g. ``"12 TTV, 3 FFZ, 0 BTTV Emotes"``, over the available lists."""
    counts = [
        f"{len(emote_list.emotes)} {emote_list.provider.value.upper()}"
        for emote_list in emote_lists
        if emote_list.emotes is not None
    ]
    return ", ".join(counts) + " Emotes"


def emote_list_page(channel: Channel, emote_lists: Sequence[EmoteList]) -> str:
    total = sum(len(e.emotes) for e in emote_lists if e.emotes is not None)

    sections = []
    for emote_list in emote_lists:
        label = emote_list.provider.value.upper()
        overview_url = escape(emote_list.overview_url)
        if emote_list.emotes is None:
            sections.append(
                f"<h2><a href='{overview_url}'>{label}</a></h2>"
                "<em class='provider-emote-list'>unavailable</em>"
            )
            continue

        if emote_list.provider == Provider.TWITCH:
            body = _twitch_sections(channel, emote_list.emotes)
        elif emote_list.provider == Provider.BTTV:
            body = _bttv_sections(channel, emote_list.emotes)
        else:
            body = _emote_items(emote_list.provider, channel, emote_list.emotes)
        sections.append(
            f"<h2><a href='{overview_url}'>{label} ({len(emote_list.emotes)})</a></h2>{body}"
        )

    return create_html(
        title=f"@{channel.name} Emote List",
        description=f"{total} Emotes",
        image_url=channel.profile_image_url,
        image_alt=channel.name,
        og_title=f"{channel.name} Emote List",
        og_description=emote_list_summary(emote_lists),
        head=LIST_PAGE_HEAD,
        html="\n".join(sections),
        text_transformers=[link_at_mentions],
    )


def not_found_page() -> str:
    return create_html(
        title="404",
        image_url="https://cdn.betterttv.net/emote/603ad0ce7c74605395f35949/3x",
        image_alt="ppLurking",
    )


def error_page(status: int, description: str = "Server Error") -> str:
    return create_html(
        title=str(status),
        description=description,
        image_url="https://cdn.betterttv.net/emote/5ad22a7096065b6c6bddf7f3/3x",
        image_alt="WAYTOODANK",
    )


def ok_page() -> str:
    return create_html(
        title="DUN",
        image_url="https://cdn.frankerfacez.com/emote/438696/4",
        image_alt="Okayeg",
    )


def unauthorized_page() -> str:
    return create_html(
        title="401",
        description="Unauthorized",
        image_url="https://cdn.betterttv.net/emote/5f10cdc819a5bd0524ecc8f7/3x",
        image_alt="NOIDONTTHINKSO",
    )


def teapot_page() -> str:
    return create_html(
        title="418",
        description="I'm a teapot",
        image_url="https://cdn.betterttv.net/emote/56f6eb647ee3e8fc6e4fe48e/3x",
        image_alt="TeaTime",
    )
