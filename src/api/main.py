"""Mindline API entry point."""

import asyncio
import logging

from src.config import settings

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
)
logger = logging.getLogger(__name__)


async def _serve() -> None:
    from src.api.server import ChatServer
    from src.services import build_services

    server = ChatServer(build_services(settings), settings.server_host, settings.server_port)
    await server.start()
    try:
        await asyncio.Event().wait()
    finally:
        await server.stop()


def main() -> None:
    """Start the chat API and serve until interrupted."""
    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is empty — every chat turn will fail with a 500")
    logger.info("Starting Mindline API on %s:%d...", settings.server_host, settings.server_port)
    try:
        asyncio.run(_serve())
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
