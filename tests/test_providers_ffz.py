"""Tests for the FFZ resolver."""

from __future__ import annotations

import pytest

from weit.models import Channel, EmoteKind
from weit.providers.ffz import API_URL, SEARCH_PER_PAGE, FfzProvider

CHANNEL = Channel(name="forsen", display_name="forsen", id="22484632")

GLOBAL_URL = f"{API_URL}/set/global"
ROOM_URL = f"{API_URL}/room/id/{CHANNEL.id}"


def ffz_emote(emote_id: int, name: str, usage_count: int = 1, owner: str = "someone") -> dict:
    return {
        "id": emote_id,
        "name": name,
        "usage_count": usage_count,
        "owner": {"name": owner, "display_name": owner},
        "urls": {"1": "//cdn/1", "2": "//cdn/2", "4": "//cdn/4"},
    }


def search_url(code: str, page: int) -> str:
    return (
        f"{API_URL}/emotes?q={code}&sensitive=false&sort=count-desc"
        f"&page={page}&per_page={SEARCH_PER_PAGE}"
    )


class TestListGlobal:
    @pytest.mark.asyncio
    async def test_only_default_sets(self, session, store):
        session.on_get(GLOBAL_URL, {
            "default_sets": [3],
            "sets": {
                "3": {"emoticons": [ffz_emote(9, "ZrehplaR")]},
                "4330": {"emoticons": [ffz_emote(10, "NotGlobal")]},
            },
        })
        emotes = await FfzProvider(session, store).list_global()

        assert [e.code for e in emotes] == ["ZrehplaR"]
        assert emotes[0].kind == EmoteKind.GLOBAL
        assert emotes[0].creator is None
        assert emotes[0].available_scales == [1, 2, 4]


class TestListChannel:
    @pytest.mark.asyncio
    async def test_room_set(self, session, store):
        session.on_get(ROOM_URL, {
            "room": {"set": 123},
            "sets": {"123": {"emoticons": [ffz_emote(1, "LULW", usage_count=50000, owner="forsen")]}},
        })
        emote_list = await FfzProvider(session, store).list_channel(CHANNEL)

        assert emote_list.overview_url == "https://www.frankerfacez.com/channel/forsen"
        [emote] = emote_list.emotes
        assert (emote.code, emote.usage_count, emote.creator.name) == ("LULW", 50000, "forsen")

    @pytest.mark.asyncio
    async def test_missing_room_is_empty(self, session, store):
        session.on_get(ROOM_URL, {"error": "Not Found"}, status=404)
        provider = FfzProvider(session, store)

        assert (await provider.list_channel(CHANNEL)).emotes == []
        assert (await provider.list_channel(CHANNEL)).emotes == []
        assert session.count(ROOM_URL) == 1

    @pytest.mark.asyncio
    async def test_outage_is_none(self, session, store):
        session.on_get(ROOM_URL, None, status=503)
        assert (await FfzProvider(session, store).list_channel(CHANNEL)).emotes is None


class TestFindCode:
    @pytest.mark.asyncio
    async def test_reads_at_most_two_pages(self, session, store):
        session.on_get(search_url("OMEGALUL", 1), {"_pages": 5, "emoticons": [ffz_emote(1, "OMEGALUL", 900)]})
        session.on_get(search_url("OMEGALUL", 2), {"_pages": 5, "emoticons": [ffz_emote(2, "omegalul", 10)]})

        results = await FfzProvider(session, store).find_code("OMEGALUL")

        assert [e.id for e in results] == [1, 2]
        assert session.count(search_url("OMEGALUL", 3)) == 0

    @pytest.mark.asyncio
    async def test_single_page(self, session, store):
        session.on_get(search_url("LULW", 1), {"_pages": 1, "emoticons": [ffz_emote(1, "LULW"), ffz_emote(2, "LULWW")]})

        results = await FfzProvider(session, store).find_code("LULW")

        assert [e.code for e in results] == ["LULW"]
        assert session.count(search_url("LULW", 2)) == 0

    @pytest.mark.asyncio
    async def test_find_prefers_exact_case(self, session, store):
        session.on_get(GLOBAL_URL, {"default_sets": [], "sets": {}})
        session.on_get(search_url("omegalul", 1), {
            "_pages": 1,
            "emoticons": [ffz_emote(1, "OMEGALUL", 900), ffz_emote(2, "omegalul", 10)],
        })

        emote = await FfzProvider(session, store).find("omegalul")
        assert emote.id == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code", ["OMEGALUL\n", "OMEGALÜL", "OMEGA٠LUL"])
    async def test_code_with_trailing_newline_or_non_ascii_makes_no_request(self, session, store, code):
        assert await FfzProvider(session, store).find(code) is None
        assert session.calls == []
