"""HTTP router — thin aiohttp JSON handlers over the rewards stores.

Every response carries ``ok``. ``ValueError`` (missing user id, malformed
JSON) maps to 400; anything else is logged and returned as 500.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web

if TYPE_CHECKING:
    from .main import RewardsApp

rewards_app_key: web.AppKey[Any] = web.AppKey("rewards_app")
logger_key: web.AppKey[logging.Logger] = web.AppKey("logger", logging.Logger)


def _rewards(request: web.Request) -> RewardsApp:
    return request.app[rewards_app_key]


async def _body(request: web.Request) -> dict[str, Any]:
    if not request.can_read_body:
        return {}
    data = await request.json()
    return data if isinstance(data, dict) else {}


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except ValueError as e:
        return web.json_response({"ok": False, "error": str(e)}, status=400)
    except Exception as e:
        request.app[logger_key].exception("%s %s failed", request.method, request.path)
        return web.json_response({"ok": False, "error": str(e) or "Unknown error"}, status=500)


# ══════════════════════════════════════════════════════════
#  Handlers
# ══════════════════════════════════════════════════════════

async def health(request: web.Request) -> web.Response:
    return web.json_response({"ok": True, "status": "healthy"})


async def get_settings(request: web.Request) -> web.Response:
    app = _rewards(request)
    settings, automation, summary = await asyncio.gather(
        app.settings.get_reward_settings(),
        app.settings.get_reward_automation(),
        app.summary.get_reward_summary(),
    )
    return web.json_response({"ok": True, "settings": settings, "automation": automation, "summary": summary})


async def patch_settings(request: web.Request) -> web.Response:
    settings = await _rewards(request).settings.update_reward_settings(await _body(request))
    return web.json_response({"ok": True, "settings": settings})


async def get_automation(request: web.Request) -> web.Response:
    automation = await _rewards(request).settings.get_reward_automation()
    return web.json_response({"ok": True, "automation": automation})


async def patch_automation(request: web.Request) -> web.Response:
    automation = await _rewards(request).settings.update_reward_automation(await _body(request))
    return web.json_response({"ok": True, "automation": automation})


async def get_summary(request: web.Request) -> web.Response:
    summary = await _rewards(request).summary.get_reward_summary()
    return web.json_response({"ok": True, "summary": summary})


async def get_profile(request: web.Request) -> web.Response:
    profile = await _rewards(request).profiles.get_reward_profile(request.match_info["user_id"])
    return web.json_response({"ok": True, "profile": profile})


async def post_fortune(request: web.Request) -> web.Response:
    profile = await _rewards(request).profiles.record_fortune_result(
        request.match_info["user_id"], await _body(request),
    )
    return web.json_response({"ok": True, "profile": profile})


async def post_streak(request: web.Request) -> web.Response:
    profile = await _rewards(request).profiles.update_reward_streak(
        request.match_info["user_id"], await _body(request),
    )
    return web.json_response({"ok": True, "profile": profile})


async def get_winners(request: web.Request) -> web.Response:
    winners = await _rewards(request).winners.get_recent_winners()
    return web.json_response({"ok": True, "winners": winners})


async def post_winner(request: web.Request) -> web.Response:
    winners = await _rewards(request).winners.add_winner(await _body(request))
    return web.json_response({"ok": True, "winners": winners})


async def get_events(request: web.Request) -> web.Response:
    events = await _rewards(request).events.list_reward_events()
    return web.json_response({"ok": True, "events": events})


async def patch_events(request: web.Request) -> web.Response:
    events = await _rewards(request).events.update_reward_events(await _body(request))
    return web.json_response({"ok": True, "events": events})


def create_web_app(rewards: RewardsApp, logger: logging.Logger) -> web.Application:
    """Build the aiohttp application serving the rewards routes."""
    app = web.Application(middlewares=[error_middleware], client_max_size=1024 ** 2)
    app[rewards_app_key] = rewards
    app[logger_key] = logger
    app.router.add_get("/health", health)
    app.router.add_get("/settings", get_settings)
    app.router.add_patch("/settings", patch_settings)
    app.router.add_get("/automation", get_automation)
    app.router.add_patch("/automation", patch_automation)
    app.router.add_get("/summary", get_summary)
    app.router.add_get("/profiles/{user_id}", get_profile)
    app.router.add_post("/profiles/{user_id}/fortune", post_fortune)
    app.router.add_post("/profiles/{user_id}/streak", post_streak)
    app.router.add_get("/winners", get_winners)
    app.router.add_post("/winners", post_winner)
    app.router.add_get("/events", get_events)
    app.router.add_patch("/events", patch_events)
    return app
