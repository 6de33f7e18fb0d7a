"""Shared fixtures and a fake aiohttp session for provider tests."""

from __future__ import annotations

import asyncio
import copy
import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from weit.caching import MemoryStore
from weit.config import AppConfig, TwitchCredentials
from weit.twitch import HELIX_URL, TOKEN_URL


# ---------------------------------------------------------------------------
# Fake aiohttp session
# ---------------------------------------------------------------------------


class FakeResponse:
    """Duck-typed stand-in for ``aiohttp.ClientResponse`` used as a context manager."""

    def __init__(
        self,
        status: int = 200,
        json_data: Any = None,
        headers: Optional[Dict[str, str]] = None,
        delay: float = 0.0,
    ) -> None:
        self.status = status
        self._json = json_data
        self.headers = headers or {}
        self.delay = delay
        self.url = None

    async def json(self, content_type: Optional[str] = "application/json", **kwargs: Any) -> Any:
        if self._json is None:
            raise ValueError("no JSON body")
        return copy.deepcopy(self._json)

    async def text(self) -> str:
        return json.dumps(self._json) if self._json is not None else ""

    async def __aenter__(self) -> "FakeResponse":
        if self.delay:
            await asyncio.sleep(self.delay)
        return self

    async def __aexit__(self, *exc: Any) -> bool:
        return False


Responder = Union[FakeResponse, List[FakeResponse], Exception, Callable[[Dict[str, Any]], FakeResponse]]


class FakeSession:
    """
    Routes ``(method, url)`` to canned responses and records every call.

    A list of responses is served in order, repeating the last one. Unrouted
    URLs answer 503 so they behave like an unavailable upstream.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], Responder] = {}
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []
        self.closed = False

    def add(self, method: str, url: str, response: Responder) -> None:
        self.routes[(method.upper(), url)] = response

    def on_get(self, url: str, json_data: Any = None, status: int = 200, **kwargs: Any) -> None:
        self.add("GET", url, FakeResponse(status=status, json_data=json_data, **kwargs))

    def on_post(self, url: str, json_data: Any = None, status: int = 200, **kwargs: Any) -> None:
        self.add("POST", url, FakeResponse(status=status, json_data=json_data, **kwargs))

    def _request(self, method: str, url: str, kwargs: Dict[str, Any]) -> FakeResponse:
        self.calls.append((method, url, kwargs))
        responder = self.routes.get((method, url))
        if responder is None:
            return FakeResponse(status=503)
        if isinstance(responder, Exception):
            raise responder
        if isinstance(responder, list):
            return responder.pop(0) if len(responder) > 1 else responder[0]
        if callable(responder) and not isinstance(responder, FakeResponse):
            return responder(kwargs)
        return responder

    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._request("GET", url, kwargs)

    def post(self, url: str, **kwargs: Any) -> FakeResponse:
        return self._request("POST", url, kwargs)

    def count(self, url: str, method: str = "GET") -> int:
        return sum(1 for m, u, _ in self.calls if m == method and u == url)

    def count_prefix(self, prefix: str) -> int:
        return sum(1 for _, u, _ in self.calls if u.startswith(prefix))

    async def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def credentials() -> TwitchCredentials:
    return TwitchCredentials(client_id="client-id", client_secret="client-secret")


@pytest.fixture
def config(credentials: TwitchCredentials) -> AppConfig:
    return AppConfig(twitch=credentials, admin_token="secret", warm_interval=0)


def add_twitch_token(session: FakeSession, access_token: str = "token-1") -> None:
    session.on_post(TOKEN_URL, {"access_token": access_token, "expires_in": 3600, "token_type": "bearer"})


def helix_url(path: str) -> str:
    return f"{HELIX_URL}/{path}"


def twitch_global_emote(emote_id: str, name: str) -> Dict[str, Any]:
    return {
        "id": emote_id,
        "name": name,
        "images": {},
        "format": ["static"],
        "scale": ["1.0", "2.0", "3.0"],
        "theme_mode": ["light", "dark"],
    }
