"""Shared test fixtures."""

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.llm.client import LLMClient
from src.llm.models import ModelRoles


@pytest.fixture(autouse=False)
def _no_turso(monkeypatch: pytest.MonkeyPatch) -> None:
    """Ensure tests use local file, not remote Turso."""
    monkeypatch.setattr("src.config.settings.turso_database_url", "")


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


# -- Anthropic SDK fakes ------------------------------------------------------


def text_response(text: str) -> SimpleNamespace:
    """A messages.create() result holding one text block."""
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


def tool_use_response(name: str, arguments: dict | None = None, text: str = "") -> SimpleNamespace:
    """A messages.create() result in which the model called *name*."""
    blocks = []
    if text:
        blocks.append(SimpleNamespace(type="text", text=text))
    blocks.append(SimpleNamespace(type="tool_use", name=name, input=arguments or {}))
    return SimpleNamespace(content=blocks)


@pytest.fixture
def sdk() -> MagicMock:
    """A mocked ``AsyncAnthropic`` client."""
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=text_response("ok"))
    return client


@pytest.fixture
def llm(sdk: MagicMock) -> LLMClient:
    return LLMClient(sdk, ModelRoles("sonnet", "haiku"))


@pytest.fixture
def text_reply():
    """Factory for text-only SDK responses."""
    return text_response


@pytest.fixture
def tool_call():
    """Factory for SDK responses containing a tool call."""
    return tool_use_response
