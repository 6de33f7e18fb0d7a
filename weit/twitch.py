from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Optional, Tuple
from urllib.parse import quote

import aiohttp

from weit.caching import KeyValueStore
from weit.config import TwitchCredentials
from weit.http import read_json
from weit.models import AuthTokens, Channel

logger = logging.getLogger(__name__)

CHANNEL_NAME_REGEX = re.compile(r"[a-zA-Z0-9_]{4,25}", re.ASCII)
CASE_SENSITIVE_EMOTE_CODE_REGEX = re.compile(r"[a-z0-9]*[A-Z0-9]\w*", re.ASCII)
CASE_INSENSITIVE_EMOTE_CODE_REGEX = re.compile(r"[a-zA-Z0-9]{3,}\w+", re.ASCII)

ACCESS_TOKEN_KEY = "_ACCESS_TOKEN"

TOKEN_URL = "https://id.twitch.tv/oauth2/token"
HELIX_URL = "https://api.twitch.tv/helix"
IVR_USER_URL = "https://api.ivr.fi/v2/twitch/user"


def check_channel_name(channel_name: str) -> bool:
    return CHANNEL_NAME_REGEX.fullmatch(channel_name) is not None


def check_emote_code(emote_code: str, case_sensitive: bool) -> bool:
    """
    Whether ``emote_code`` can be a Twitch emote code.

    The case-sensitive form additionally requires the code to contain an
    uppercase letter or digit after a lowercase prefix, which is how Twitch
    channel emote codes look (``forsenE``, ``Kappa``).
    """
    regex = CASE_SENSITIVE_EMOTE_CODE_REGEX if case_sensitive else CASE_INSENSITIVE_EMOTE_CODE_REGEX
    return regex.fullmatch(emote_code) is not None


class TwitchApi:
    """
    Helix client authenticated with an app access token.

    The token record lives in the cache store so every worker sharing the
    store shares the token.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        store: KeyValueStore,
        credentials: TwitchCredentials,
    ):
        self.session = session
        self.store = store
        self.credentials = credentials

    @property
    def configured(self) -> bool:
        return self.credentials.is_configured()

    async def _request_token(self, data: dict[str, str]) -> Optional[AuthTokens]:
        async with self.session.post(TOKEN_URL, data=data) as resp:
            if resp.status != 200:
                logger.warning("Twitch: Token request failed (status %s)", resp.status)
                await self.store.delete(ACCESS_TOKEN_KEY)
                return None
            token_data = await resp.json()

        expires_in = token_data.get("expires_in", 3600)
        scope = token_data.get("scope") or []
        tokens = AuthTokens(
            access_token=token_data["access_token"],
            refresh_token=token_data.get("refresh_token"),
            expires_at=datetime.now() + timedelta(seconds=expires_in),
            scope=scope if isinstance(scope, list) else scope.split(),
        )
        await self.store.put(ACCESS_TOKEN_KEY, json.dumps(tokens.to_dict()))
        return tokens

    async def _grant_token(self) -> Optional[AuthTokens]:
        logger.info("Twitch: Requesting app access token")
        return await self._request_token({
            "client_id": self.credentials.client_id,
            "client_secret": self.credentials.client_secret,
            "grant_type": "client_credentials",
        })

    async def refresh_token(self) -> Optional[AuthTokens]:
        """Refresh the stored token, or grant a new one if it has no refresh token."""
        tokens = await self._stored_token()
        if tokens is None or not tokens.refresh_token:
            return await self._grant_token()

        logger.info("Twitch: Refreshing access token")
        return await self._request_token({
            "client_id": self.credentials.client_id,
            "client_secret": self.credentials.client_secret,
            "grant_type": "refresh_token",
            "refresh_token": tokens.refresh_token,
        })

    async def _stored_token(self) -> Optional[AuthTokens]:
        raw = await self.store.get(ACCESS_TOKEN_KEY)
        if raw is None:
            return None
        try:
            return AuthTokens.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError):
            logger.warning("Twitch: Discarding malformed stored token")
            return None

    async def get_token(self) -> Optional[AuthTokens]:
        tokens = await self._stored_token()
        if tokens is None or tokens.is_expired():
            return await self._grant_token()
        return tokens

    async def _get(self, url: str, tokens: Optional[AuthTokens]) -> Tuple[int, Optional[Any]]:
        headers = {"Client-Id": self.credentials.client_id}
        if tokens is not None:
            headers["Authorization"] = f"Bearer {tokens.access_token}"
        async with self.session.get(url, headers=headers) as resp:
            return resp.status, await read_json(resp)

    async def helix(self, path: str) -> Tuple[int, Optional[Any]]:
        """GET ``/helix/{path}``; on 401 the token is refreshed and the call repeated once."""
        url = f"{HELIX_URL}/{path}"
        status, data = await self._get(url, await self.get_token())
        if status == 401:
            status, data = await self._get(url, await self.refresh_token())
        return status, data

    async def fetch_channel(self, channel_name: str) -> Optional[Channel]:
        """Resolve a login name to a Channel, or None if it does not exist."""
        login = channel_name.lower()
        try:
            if self.configured:
                return await self._fetch_channel_helix(login)
            return await self._fetch_channel_ivr(login)
        except aiohttp.ClientError as e:
            logger.warning("Twitch: Error looking up channel %s: %s", login, e)
            return None

    async def _fetch_channel_helix(self, login: str) -> Optional[Channel]:
        status, data = await self.helix(f"users?login={quote(login)}")
        if status != 200 or not data or not data.get("data"):
            return None
        user = data["data"][0]
        return Channel(
            id=str(user["id"]),
            name=user["login"],
            display_name=user.get("display_name") or user["login"],
            profile_image_url=user.get("profile_image_url"),
        )

    async def _fetch_channel_ivr(self, login: str) -> Optional[Channel]:
        # Use the unofficial IVR API when no Helix credentials are configured
        async with self.session.get(f"{IVR_USER_URL}?login={quote(login)}") as resp:
            if resp.status != 200:
                return None
            data = await read_json(resp)
        if not data:
            return None
        user = data[0]
        return Channel(
            id=str(user["id"]),
            name=user["login"],
            display_name=user.get("displayName") or user["login"],
            profile_image_url=user.get("logo"),
        )
