"""Tests for the per-user memory store."""

from unittest.mock import AsyncMock

import pytest

from src.config import Settings
from src.memory.models import MemoryCategory, MemoryRecord, TurnMessage
from src.memory.store import MemoryStore


@pytest.fixture
def store() -> MemoryStore:
    """Create a MemoryStore with a mocked Mem0 client."""
    return MemoryStore(AsyncMock(), search_limit=5, search_threshold=0.3)


@pytest.fixture
def disabled_store() -> MemoryStore:
    return MemoryStore(None)


TURN = [
    TurnMessage(role="user", content="Exams are stressing me out"),
    TurnMessage(role="assistant", content="That sounds like a lot."),
]


def test_categories() -> None:
    assert {str(c) for c in MemoryCategory} == {
        "profile",
        "health-insight",
        "conversation",
        "concern",
        "goal",
    }


# -- append ------------------------------------------------------------------


async def test_append_calls_client_with_metadata(store: MemoryStore) -> None:
    store._client.add.return_value = [{"id": "mem_1"}]

    ids = await store.append("user-123", TURN, MemoryCategory.CONVERSATION)

    assert ids == ["mem_1"]
    args, kwargs = store._client.add.call_args
    assert args[0] == [
        {"role": "user", "content": "Exams are stressing me out"},
        {"role": "assistant", "content": "That sounds like a lot."},
    ]
    assert kwargs["user_id"] == "user-123"
    assert kwargs["metadata"]["category"] == "conversation"
    assert "created_at" in kwargs["metadata"]


async def test_append_extra_metadata(store: MemoryStore) -> None:
    store._client.add.return_value = {"results": [{"id": "a"}, {"memory_id": "b"}]}

    ids = await store.append("u", TURN, MemoryCategory.HEALTH_INSIGHT, {"urgency": "high"})

    assert ids == ["a", "b"]
    _, kwargs = store._client.add.call_args
    assert kwargs["metadata"]["urgency"] == "high"
    assert kwargs["metadata"]["category"] == "health-insight"


async def test_append_single_id_dict(store: MemoryStore) -> None:
    store._client.add.return_value = {"id": "solo"}
    assert await store.append("u", TURN, MemoryCategory.GOAL) == ["solo"]


async def test_append_disabled_returns_none(disabled_store: MemoryStore) -> None:
    assert await disabled_store.append("u", TURN, MemoryCategory.CONVERSATION) is None


async def test_append_propagates_errors(store: MemoryStore) -> None:
    store._client.add.side_effect = RuntimeError("mem0 down")
    with pytest.raises(RuntimeError):
        await store.append("u", TURN, MemoryCategory.CONVERSATION)


# -- search ------------------------------------------------------------------


async def test_search_returns_records(store: MemoryStore) -> None:
    store._client.search.return_value = {
        "results": [
            {
                "id": "mem_1",
                "memory": "Has exams in March",
                "score": 0.9,
                "metadata": {"category": "academic", "created_at": "2024-01-01T00:00:00"},
            }
        ]
    }

    results = await store.search("user-123", "exams")

    assert results == [
        MemoryRecord(
            id="mem_1",
            text="Has exams in March",
            category="academic",
            relevance_score=0.9,
            created_at="2024-01-01T00:00:00",
        )
    ]
    args, kwargs = store._client.search.call_args
    assert args == ("exams",)
    assert kwargs["user_id"] == "user-123"
    assert kwargs["limit"] == 5
    assert kwargs["threshold"] == 0.3
    assert "filters" not in kwargs


async def test_search_list_shape_and_alternate_keys(store: MemoryStore) -> None:
    store._client.search.return_value = [
        {"id": "a", "text": "Likes running", "score": 0.5},
        {"id": "b", "content": "Lives in hostel", "score": 0.8},
    ]

    results = await store.search("u", "q")

    assert [r.text for r in results] == ["Lives in hostel", "Likes running"]
    assert results[0].category == "conversation"


async def test_search_drops_below_threshold_and_empty(store: MemoryStore) -> None:
    store._client.search.return_value = [
        {"id": "a", "memory": "weak", "score": 0.1},
        {"id": "b", "memory": "", "score": 0.9},
        {"id": "c", "memory": "strong", "score": 0.7},
        "not a dict",
    ]
    results = await store.search("u", "q")
    assert [r.id for r in results] == ["c"]


async def test_search_category_filter(store: MemoryStore) -> None:
    store._client.search.return_value = []
    await store.search("u", "q", categories=[MemoryCategory.GOAL, MemoryCategory.PROFILE])
    _, kwargs = store._client.search.call_args
    assert kwargs["filters"] == {"category": "goal"}


async def test_search_respects_limit(store: MemoryStore) -> None:
    store._client.search.return_value = [
        {"id": str(i), "memory": f"m{i}", "score": 0.5 + i / 100} for i in range(10)
    ]
    results = await store.search("u", "q", limit=3)
    assert len(results) == 3
    assert store._client.search.call_args.kwargs["limit"] == 3


async def test_search_disabled_returns_empty(disabled_store: MemoryStore) -> None:
    assert await disabled_store.search("u", "q") == []


async def test_search_propagates_errors(store: MemoryStore) -> None:
    store._client.search.side_effect = RuntimeError("mem0 down")
    with pytest.raises(RuntimeError):
        await store.search("u", "q")


def test_from_settings_without_key_is_disabled() -> None:
    store = MemoryStore.from_settings(Settings(mem0_api_key=""))
    assert not store.enabled
