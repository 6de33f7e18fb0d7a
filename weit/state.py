from __future__ import annotations

from typing import Optional

import aiohttp

from weit.caching import KeyValueStore, make_store
from weit.config import AppConfig
from weit.emotes import ProviderRegistry
from weit.http import create_session
from weit.providers.bttv import BttvProvider
from weit.providers.ffz import FfzProvider
from weit.providers.seventv import SevenTvProvider
from weit.providers.ttv import TwitchProvider
from weit.supibot import OriginLookup
from weit.twitch import TwitchApi


class AppState:
    """
    Everything a request handler needs, built once at startup.

    Handlers read it from ``request.app["state"]``.
    """

    def __init__(
        self,
        config: AppConfig,
        session: aiohttp.ClientSession,
        store: KeyValueStore,
    ) -> None:
        self.config = config
        self.session = session
        self.store = store

        self.twitch = TwitchApi(session, store, config.twitch)
        self.bttv = BttvProvider(session, store)
        self.registry = ProviderRegistry([
            TwitchProvider(session, store, self.twitch),
            self.bttv,
            FfzProvider(session, store),
            SevenTvProvider(session, store),
        ])
        self.origins = OriginLookup(session, store)

    @classmethod
    def create(
        cls,
        config: AppConfig,
        session: Optional[aiohttp.ClientSession] = None,
        store: Optional[KeyValueStore] = None,
    ) -> "AppState":
        return cls(
            config,
            session if session is not None else create_session(),
            store if store is not None else make_store(config.cache_backend),
        )

    async def close(self) -> None:
        await self.origins.wait_pending()
        await self.session.close()
