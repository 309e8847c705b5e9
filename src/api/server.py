"""Async HTTP API for the chat client.

Routes:
- ``POST /chat`` — one chat turn for the bearer-token user.
- ``GET /health`` — basic liveness check.

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web

from src.llm.client import GenerationError
from src.orchestrator.models import ChatTurn

if TYPE_CHECKING:
    from src.services import Services

logger = logging.getLogger(__name__)

SERVICES_KEY: web.AppKey[Services] = web.AppKey("services")

GENERIC_ERROR = "Failed to generate response. Please try again."


def _bearer_token(request: web.Request) -> str:
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return ""
    return token.strip()


def _parse_history(raw: Any) -> list[ChatTurn]:
    if not isinstance(raw, list):
        return []
    turns = (ChatTurn.from_dict(item) for item in raw)
    return [t for t in turns if t is not None]


async def _handle_chat(request: web.Request) -> web.Response:
    """POST /chat — authenticate, validate, run the pipeline."""
    services = request.app[SERVICES_KEY]

    try:
        user = await services.sessions.get_current_user(_bearer_token(request))
    except Exception:
        logger.exception("Session lookup failed")
        user = None
    if user is None:
        logger.warning("Chat rejected: unauthorized")
        return web.json_response({"error": "Unauthorized"}, status=401)

    try:
        body: Any = await request.json()
    except Exception:
        logger.warning("Chat bad request: invalid JSON (user=%s)", user.id[:8])
        return web.json_response({"error": "Message is required"}, status=400)

    message = body.get("message") if isinstance(body, dict) else None
    if not isinstance(message, str) or not message.strip():
        return web.json_response({"error": "Message is required"}, status=400)

    history = _parse_history(body.get("conversationHistory"))
    logger.info(
        "Chat from %s: %d chars, %d history turns", user.id[:8], len(message), len(history)
    )

    try:
        result = await services.pipeline.handle(user, message, history)
    except GenerationError as exc:
        logger.error("Reply generation failed (%s): %s", exc.kind, exc.detail)
        return web.json_response(
            {"error": exc.user_message, "category": str(exc.kind)}, status=500
        )
    except Exception:
        logger.exception("Chat turn failed for %s", user.id[:8])
        return web.json_response({"error": GENERIC_ERROR}, status=500)

    return web.json_response(result.to_dict())


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


def create_app(services: Services) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application()
    app[SERVICES_KEY] = services
    app.router.add_get("/health", _health)
    app.router.add_post("/chat", _handle_chat)
    return app


class ChatServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(self, services: Services, host: str = "0.0.0.0", port: int = 8080) -> None:
        self.services = services
        self.host = host
        self.port = port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        app = create_app(self.services)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Chat server listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Chat server stopped")
        await self.services.close()
