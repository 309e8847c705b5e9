"""Tests for service wiring."""

from unittest.mock import AsyncMock, MagicMock

from src.config import Settings
from src.llm.client import LLMClient
from src.memory.store import MemoryStore
from src.orchestrator.pipeline import ChatPipeline
from src.services import build_services


def test_build_without_credentials_degrades() -> None:
    services = build_services(Settings())

    assert isinstance(services.pipeline, ChatPipeline)
    assert not services.llm.enabled
    assert not services.memory.enabled
    assert not services.knowledge.enabled
    assert services.alerts.name == "email"


def test_overrides_are_used(sdk: MagicMock) -> None:
    llm = LLMClient(sdk)
    memory = MemoryStore(AsyncMock())

    services = build_services(Settings(), llm=llm, memory=memory)

    assert services.llm is llm
    assert services.memory is memory
    assert services.memory_writer._store is memory


async def test_close_drains_and_releases() -> None:
    services = build_services(Settings())
    services.memory_writer = MagicMock(drain=AsyncMock())
    services.fitbit = MagicMock(close=AsyncMock())

    await services.close()

    services.memory_writer.drain.assert_awaited_once()
    services.fitbit.close.assert_awaited_once()
