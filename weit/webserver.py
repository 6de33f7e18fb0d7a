from __future__ import annotations

import logging
import secrets
from typing import Awaitable, Callable, List, Optional

from aiohttp import web

from weit import pages
from weit.models import Channel, Emote, EmoteList, Provider
from weit.properties import (
    REDIRECT_PROPERTY_ALIASES,
    format_raw,
    get_property,
    needs_origin,
    parse_raw_aliases,
    resolve_alias,
)
from weit.providers.ttv import ChannelNotFoundQuirk
from weit.state import AppState
from weit.twitch import check_channel_name

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

# Providers with their own routes, in list page order
ROUTED_PROVIDERS = [Provider.TWITCH, Provider.BTTV, Provider.FFZ, Provider.SEVENTV]
LIST_PAGE_PROVIDERS = [Provider.TWITCH, Provider.FFZ, Provider.BTTV, Provider.SEVENTV]


def html_response(html: str, status: int = 200) -> web.Response:
    return web.Response(text=html, status=status, content_type="text/html")


def _lower_query(request: web.Request) -> dict:
    return {key.lower(): value for key, value in request.query.items()}


async def _resolve_channel(state: AppState, channel_name: str) -> Channel:
    if not check_channel_name(channel_name):
        raise web.HTTPNotFound()
    channel = await state.twitch.fetch_channel(channel_name)
    if channel is None:
        raise web.HTTPNotFound()
    return channel


async def _raw_response(request: web.Request, state: AppState, emote: Emote, raw: str) -> web.Response:
    property_names: List[str] = []
    for alias in parse_raw_aliases(raw):
        property_name = resolve_alias(alias)
        if property_name is not None:
            property_names.append(property_name)

    origin = await state.origins.find(emote) if needs_origin(property_names) else None
    values = [
        (name, get_property(request.url, emote, name, origin))
        for name in property_names
    ]
    return web.Response(text=format_raw(values))


async def _goto_response(request: web.Request, state: AppState, emote: Emote, goto: str) -> web.Response:
    property_name = resolve_alias(goto, REDIRECT_PROPERTY_ALIASES)
    if property_name is None:
        raise web.HTTPNotFound()

    origin = await state.origins.find(emote) if needs_origin([property_name]) else None
    url = get_property(request.url, emote, property_name, origin)
    if not url:
        raise web.HTTPNotFound()
    raise web.HTTPFound(url)


def make_emote_handler(provider: Optional[Provider] = None) -> Handler:
    """Handler for the emote routes, optionally bound to a single provider."""

    async def handle_emote(request: web.Request) -> web.Response:
        state: AppState = request.app["state"]
        code = request.match_info["code"]
        channel_name = request.match_info.get("channel")

        channel = await _resolve_channel(state, channel_name) if channel_name else None
        emote = await state.registry.find(code, channel, provider)

        query = _lower_query(request)
        if "raw" in query:
            if emote is None:
                return web.Response(text="Emote not found", status=404)
            return await _raw_response(request, state, emote, query["raw"])

        if emote is None:
            raise web.HTTPNotFound()

        if "goto" in query:
            return await _goto_response(request, state, emote, query["goto"])

        origin = await state.origins.find(emote)
        return html_response(pages.emote_page(emote, channel, origin))

    return handle_emote


async def handle_list(request: web.Request) -> web.Response:
    state: AppState = request.app["state"]
    channel = await _resolve_channel(state, request.match_info["channel"])

    emote_lists: List[EmoteList] = []
    for name in LIST_PAGE_PROVIDERS:
        if name not in state.registry:
            continue
        provider = state.registry[name]
        try:
            emote_lists.append(await provider.list_channel(channel))
        except ChannelNotFoundQuirk:
            logger.info("TTV: Channel emote list of %s unavailable", channel.name)
            emote_lists.append(EmoteList(
                provider=name,
                overview_url=f"https://twitchemotes.com/channels/{channel.id}",
                emotes=None,
            ))

    return html_response(pages.emote_list_page(channel, emote_lists))


async def handle_clear_cache(request: web.Request) -> web.Response:
    state: AppState = request.app["state"]
    token = request.query.get("token", "")
    admin_token = state.config.admin_token
    if not token or not secrets.compare_digest(token.encode(), admin_token.encode()):
        return html_response(pages.unauthorized_page(), status=401)

    channel_name = request.match_info.get("channel")
    if channel_name:
        channel = await _resolve_channel(state, channel_name)
        for name in ROUTED_PROVIDERS:
            await state.store.delete(f"list:{name.value}:{channel.id}")
        logger.info("Cleared emote lists of %s", channel.name)
    else:
        key = request.match_info["key"]
        await state.store.delete(key)
        logger.info("Cleared cache key %s", key)

    return html_response(pages.ok_page())


async def handle_teapot(request: web.Request) -> web.Response:
    return html_response(pages.teapot_page(), status=418)


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPNotFound:
        return html_response(pages.not_found_page(), status=404)
    except web.HTTPException as e:
        if e.status < 400:
            raise
        return html_response(pages.error_page(e.status, e.reason), status=e.status)
    except Exception as e:
        logger.exception("Unhandled error for %s %s", request.method, request.path)
        state: AppState = request.app["state"]
        description = f"{type(e).__name__}: {e}" if state.config.debug else "Server Error"
        return html_response(pages.error_page(500, description), status=500)


def make_app(state: AppState) -> web.Application:
    app = web.Application(middlewares=[error_middleware])
    app["state"] = state

    router = app.router

    if state.config.admin_token:
        router.add_get("/clear-cache/channel/{channel}", handle_clear_cache)
        router.add_get("/clear-cache/{key}", handle_clear_cache)

    router.add_get("/418", handle_teapot)

    any_provider = make_emote_handler()
    provider_handlers = {p: make_emote_handler(p) for p in ROUTED_PROVIDERS}

    # Literal prefixes first, so "/list/..." and "/ttv/..." are not taken for channel names
    router.add_get("/list/{channel}", handle_list)
    router.add_get("/list/{channel}/{code}", any_provider)
    for provider, handler in provider_handlers.items():
        router.add_get(f"/list/{provider.value}/{{channel}}/{{code}}", handler)
        router.add_get(f"/list/{{channel}}/{provider.value}/{{code}}", handler)

    for provider, handler in provider_handlers.items():
        router.add_get(f"/{provider.value}/{{code}}", handler)
        router.add_get(f"/{provider.value}/{{channel}}/{{code}}", handler)

    router.add_get("/{code}", any_provider)
    router.add_get("/{channel}/{code}", any_provider)
    for provider, handler in provider_handlers.items():
        router.add_get(f"/{{channel}}/{provider.value}/{{code}}", handler)

    return app
