"""Tests for emote models, descriptions and URLs."""

from __future__ import annotations

import pytest

from weit.formatting import format_number, pluralize
from weit.models import (
    SEVENTV_FLAG_PRIVATE,
    SEVENTV_FLAG_ZERO_WIDTH,
    Channel,
    Emote,
    EmoteKind,
    EmoteList,
    Provider,
    SupibotOrigin,
)

FORSEN = Channel(name="forsen", display_name="forsen", id="22484632")

ALL_PROVIDERS = [Provider.TWITCH, Provider.BTTV, Provider.FFZ, Provider.SEVENTV]


class TestScales:
    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    def test_unsupported_scale_uses_largest(self, provider):
        emote = Emote(provider=provider, id="1", code="Foo", available_scales=[1, 2])
        assert emote.image_url(4) == emote.image_url(2)
        assert emote.image_url() == emote.image_url(2)

    @pytest.mark.parametrize("provider", ALL_PROVIDERS)
    def test_scales_never_empty(self, provider):
        emote = Emote(provider=provider, id="1", code="Foo", available_scales=[])
        assert emote.available_scales == [1]
        assert emote.image_url(3) == emote.image_url(1)

    def test_scale_one_is_always_available(self):
        emote = Emote(provider=Provider.FFZ, id="1", code="Foo", available_scales=[2, 4])
        assert emote.available_scales == [1, 2, 4]

    def test_supported_scale_is_used(self):
        emote = Emote(provider=Provider.BTTV, id="abc", code="Foo")
        assert emote.image_url(2) == "https://cdn.betterttv.net/emote/abc/2x"


class TestUrls:
    def test_twitch(self):
        emote = Emote(provider=Provider.TWITCH, id="25", code="Kappa")
        assert emote.image_url() == "https://static-cdn.jtvnw.net/emoticons/v2/25/default/dark/3.0"
        assert emote.info_url == "https://twitchemotes.com/emotes/25"

    def test_ffz(self):
        emote = Emote(provider=Provider.FFZ, id=9, code="ZrehplaR", available_scales=[1, 2, 4])
        assert emote.image_url() == "https://cdn.frankerfacez.com/emote/9/4"
        assert emote.info_url == "https://www.frankerfacez.com/emoticon/9"

    def test_seventv(self):
        emote = Emote(provider=Provider.SEVENTV, id="x1", code="EZ", available_scales=[1, 2, 3, 4])
        assert emote.image_url(1) == "https://cdn.7tv.app/emote/x1/1x.webp"
        assert emote.info_url == "https://7tv.app/emotes/x1"


class TestDescriptions:
    def test_global_twitch(self):
        assert Emote(provider=Provider.TWITCH, id="25", code="Kappa").description == "Global Twitch Emote"

    def test_twitch_tiers(self):
        def twitch(tier):
            return Emote(
                provider=Provider.TWITCH, id="1", code="forsenE",
                kind=EmoteKind.SUBSCRIBER, creator=FORSEN, tier=tier,
            )

        assert twitch(1).description == "Tier 1 @forsen Emote"
        assert twitch(3).description == "Tier 3 @forsen Emote"
        assert twitch("special").description == "Special @forsen Emote"

    def test_twitch_bits_and_follower(self):
        bits = Emote(provider=Provider.TWITCH, id="1", code="a", kind=EmoteKind.BITS, creator=FORSEN)
        follower = Emote(provider=Provider.TWITCH, id="1", code="a", kind=EmoteKind.FOLLOWER, creator=FORSEN)
        assert bits.description == "Bits @forsen Emote"
        assert follower.description == "Follower @forsen Emote"

    def test_bttv_shared_with_count(self):
        emote = Emote(
            provider=Provider.BTTV, id="1", code="forsenPls", kind=EmoteKind.CHANNEL,
            creator=FORSEN, is_shared=True, usage_count=12345,
        )
        assert emote.description == "Shared BTTV Emote, by @forsen, available in 12\u2009345 channels"

    def test_bttv_channel_single(self):
        emote = Emote(
            provider=Provider.BTTV, id="1", code="forsenPls", kind=EmoteKind.CHANNEL,
            creator=FORSEN, is_shared=False, usage_count=1,
        )
        assert emote.description == "Channel BTTV Emote, by @forsen, available in 1 channel"

    def test_ffz_without_count(self):
        emote = Emote(provider=Provider.FFZ, id="1", code="LULW", kind=EmoteKind.CHANNEL, creator=FORSEN)
        assert emote.description == "FFZ Emote, by @forsen"

    def test_seventv_flags(self):
        emote = Emote(
            provider=Provider.SEVENTV, id="1", code="RainTime", kind=EmoteKind.CHANNEL,
            creator=FORSEN, visibility=SEVENTV_FLAG_PRIVATE | SEVENTV_FLAG_ZERO_WIDTH,
        )
        assert emote.description == "Private Zero-Width 7TV Emote, by @forsen"

    def test_globals(self):
        assert Emote(provider=Provider.BTTV, id="1", code="a").description == "Global BTTV Emote"
        assert Emote(provider=Provider.FFZ, id="1", code="a").description == "Global FFZ Emote"
        assert Emote(provider=Provider.SEVENTV, id="1", code="a").description == "Global 7TV Emote"


class TestEmoteList:
    def test_available(self):
        assert EmoteList(provider=Provider.BTTV, overview_url="", emotes=[]).available
        assert not EmoteList(provider=Provider.BTTV, overview_url="", emotes=None).available


class TestSupibotOrigin:
    def test_from_dict(self):
        origin = SupibotOrigin.from_dict({"ID": 17, "emoteID": 25, "type": "Twitch - global"})
        assert origin.id == "17"
        assert origin.emote_id == "25"
        assert origin.type == "Twitch - global"

    def test_without_emote_id(self):
        assert SupibotOrigin.from_dict({"ID": 1}).emote_id is None


class TestFormatting:
    def test_format_number(self):
        assert format_number(999) == "999"
        assert format_number(1234567) == "1\u2009234\u2009567"

    def test_pluralize(self):
        assert pluralize("channel", 1) == "channel"
        assert pluralize("channel", 0) == "channels"
