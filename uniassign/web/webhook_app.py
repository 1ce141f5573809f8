"""Inbound Telegram webhook: one route that feeds updates to the Router.

Non-POST requests answer with a liveness payload. Bodies that are not JSON
objects are acknowledged and dropped so Telegram does not redeliver them.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from aiohttp import web
from telegram import Update

from uniassign.bot.router import Router

LOGGER = logging.getLogger(__name__)

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"
LIVENESS_PAYLOAD = {"message": "UniAssignment Bot Webhook Active"}


async def handle_webhook(request: web.Request) -> web.Response:
    if request.method != "POST":
        return web.json_response(LIVENESS_PAYLOAD)

    secret: str | None = request.app["webhook_secret"]
    if secret and request.headers.get(SECRET_HEADER) != secret:
        LOGGER.warning("Webhook rejected: bad secret token remote=%s", request.remote)
        return web.json_response({"error": "Forbidden"}, status=403)

    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError):
        LOGGER.warning("Webhook body is not JSON, ignoring")
        return web.json_response({"ok": True})
    if not isinstance(payload, dict):
        LOGGER.warning("Webhook body is not an object, ignoring: type=%s", type(payload).__name__)
        return web.json_response({"ok": True})

    router: Router = request.app["router"]
    try:
        update = Update.de_json(payload, request.app["bot"])
        if update is not None:
            await router.handle_update(update)
    except Exception:
        LOGGER.exception("Webhook handler failed: update_id=%s", payload.get("update_id"))
        return web.json_response({"error": "Internal Server Error"}, status=500)
    return web.json_response({"ok": True})


def create_webhook_app(
    router: Router,
    *,
    path: str = "/telegram/webhook",
    secret: str | None = None,
    bot: Any = None,
) -> web.Application:
    app = web.Application()
    app["router"] = router
    app["webhook_secret"] = secret
    app["bot"] = bot
    app.router.add_route("*", path, handle_webhook)
    return app
