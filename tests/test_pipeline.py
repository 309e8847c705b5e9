"""End-to-end tests for one chat turn through ChatPipeline."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.auth.sessions import AuthenticatedUser
from src.knowledge.retriever import KnowledgeChunk
from src.llm.client import GenerationError, LLMClient
from src.memory.store import MemoryStore
from src.memory.writer import MemoryWriter
from src.orchestrator.fanout import SignalFanOut
from src.orchestrator.generator import ResponseGenerator
from src.orchestrator.models import HealthInsight, ToolName, Urgency
from src.orchestrator.pipeline import ChatPipeline
from src.orchestrator.summarizer import ContextSummarizer
from src.profiles.store import UserProfile
from src.safety.crisis import emergency_resources_text, severe_emergency_text
from src.wearable.models import WearableRecord

USER = AuthenticatedUser(id="user-1234567890", email="asha@uni.edu")
PROFILE = UserProfile("user-1234567890", "Asha", "asha@uni.edu", "mum@example.com")
HISTORY = [
    WearableRecord.from_row("2024-03-01", "sleep", {"minutesAsleep": 200}),
    WearableRecord.from_row("2024-03-03", "sleep", {"minutesAsleep": 220}),
]


@pytest.fixture
def providers() -> dict[str, AsyncMock]:
    names = ("memory", "wearables", "wellness", "profiles", "knowledge", "policy", "analyzer")
    d = {name: AsyncMock() for name in names}
    d["memory"].search.return_value = []
    d["wearables"].get_recent.return_value = None
    d["wellness"].fetch.return_value = None
    d["profiles"].get_profile.return_value = PROFILE
    d["knowledge"].search.return_value = []
    d["policy"].should_retrieve_knowledge_base.return_value = False
    d["analyzer"].analyze.return_value = None
    return d


@pytest.fixture
def memory_client() -> AsyncMock:
    client = AsyncMock()
    client.add.return_value = [{"id": "m1"}]
    return client


@pytest.fixture
def transcripts() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def alerts() -> MagicMock:
    channel = MagicMock()
    channel.name = "email"
    channel.send_emergency_alert = AsyncMock(return_value=True)
    return channel


@pytest.fixture
def writer(memory_client: AsyncMock) -> MemoryWriter:
    return MemoryWriter(MemoryStore(memory_client))


@pytest.fixture
def pipeline(
    llm: LLMClient,
    sdk: MagicMock,
    text_reply,
    providers: dict[str, AsyncMock],
    writer: MemoryWriter,
    transcripts: AsyncMock,
    alerts: MagicMock,
) -> ChatPipeline:
    sdk.messages.create.return_value = text_reply("I hear you, Asha.")
    return ChatPipeline(
        fanout=SignalFanOut(**providers, timeout_s=2.0),
        summarizer=ContextSummarizer(llm),
        generator=ResponseGenerator(llm),
        memory_writer=writer,
        profiles=providers["profiles"],
        transcripts=transcripts,
        alerts=alerts,
    )


# -- Severe crisis -----------------------------------------------------------------


async def test_severe_crisis_short_circuits(
    pipeline: ChatPipeline,
    sdk: MagicMock,
    providers: dict[str, AsyncMock],
    transcripts: AsyncMock,
    alerts: MagicMock,
    writer: MemoryWriter,
    memory_client: AsyncMock,
) -> None:
    result = await pipeline.handle(USER, "I want to kill myself", [])

    assert result.response == severe_emergency_text()
    assert result.tools_used == []
    payload = result.to_dict()
    assert payload["severeCrisis"] is True
    assert payload["chatDisabled"] is True
    assert payload["emailSent"] is True
    assert payload["crisisDetected"] is True
    assert payload["toolsUsed"] == []

    sdk.messages.create.assert_not_called()
    providers["memory"].search.assert_not_called()
    providers["knowledge"].search.assert_not_called()
    transcripts.append_exchange.assert_awaited_once_with(
        USER.id, "I want to kill myself", severe_emergency_text(), severe_crisis=True
    )
    alert = alerts.send_emergency_alert.call_args.args[0]
    assert alert.contact_email == "mum@example.com"
    assert alert.user_name == "Asha"
    await writer.drain()
    memory_client.add.assert_not_called()


async def test_severe_crisis_without_contact(
    pipeline: ChatPipeline, providers: dict[str, AsyncMock], alerts: MagicMock
) -> None:
    providers["profiles"].get_profile.return_value = UserProfile("u", "Asha", "asha@uni.edu")

    result = await pipeline.handle(USER, "I've been thinking about suicide", [])

    assert result.chat_disabled
    assert result.to_dict()["emailSent"] is False
    alerts.send_emergency_alert.assert_not_called()


async def test_severe_crisis_alert_failure_still_replies(
    pipeline: ChatPipeline, alerts: MagicMock
) -> None:
    alerts.send_emergency_alert.side_effect = RuntimeError("smtp down")

    result = await pipeline.handle(USER, "I want to end it all", [])

    assert result.response == severe_emergency_text()
    assert result.email_sent is False


# -- Normal turns ------------------------------------------------------------------


async def test_knowledge_question_reports_sources(
    pipeline: ChatPipeline, providers: dict[str, AsyncMock]
) -> None:
    providers["policy"].should_retrieve_knowledge_base.return_value = True
    providers["knowledge"].search.return_value = [
        KnowledgeChunk("CBT is a structured therapy...", "cbt_guide.pdf", 0.82, page_number=4)
    ]

    payload = (await pipeline.handle(USER, "What is CBT?", [])).to_dict()

    assert payload["success"] is True
    assert payload["response"] == "I hear you, Asha."
    assert payload["contextUsed"] is True
    assert payload["sources"] == [{"filename": "cbt_guide.pdf", "score": 0.82, "pageNumber": 4}]
    assert "knowledge_base" in payload["toolsUsed"]
    assert payload["crisisDetected"] is False
    assert "severeCrisis" not in payload


async def test_all_providers_failing_still_replies(
    pipeline: ChatPipeline, providers: dict[str, AsyncMock], transcripts: AsyncMock
) -> None:
    providers["memory"].search.side_effect = RuntimeError("down")
    providers["wearables"].get_recent.side_effect = RuntimeError("down")
    providers["wellness"].fetch.side_effect = RuntimeError("down")
    providers["profiles"].get_profile.side_effect = RuntimeError("down")
    providers["policy"].should_retrieve_knowledge_base.side_effect = RuntimeError("down")

    result = await pipeline.handle(USER, "Rough day", [])

    assert result.response == "I hear you, Asha."
    assert result.tools_used == []
    assert result.fitbit_data_used is False
    assert not result.context_used
    transcripts.append_exchange.assert_awaited_once()


async def test_concern_appends_resources_and_skips_memory(
    pipeline: ChatPipeline, writer: MemoryWriter, memory_client: AsyncMock
) -> None:
    result = await pipeline.handle(USER, "I feel hopeless", [])

    assert result.crisis_detected
    assert not result.severe_crisis
    assert result.response.endswith(emergency_resources_text())
    assert "chatDisabled" not in result.to_dict()
    await writer.drain()
    memory_client.add.assert_not_called()


async def test_normal_turn_writes_conversation_memory(
    pipeline: ChatPipeline, writer: MemoryWriter, memory_client: AsyncMock
) -> None:
    await pipeline.handle(USER, "Exams are next week", [])
    await writer.drain()

    args, kwargs = memory_client.add.call_args
    assert args[0][0] == {"role": "user", "content": "Exams are next week"}
    assert kwargs["metadata"]["category"] == "conversation"


async def test_health_insight_is_written_to_memory(
    pipeline: ChatPipeline,
    providers: dict[str, AsyncMock],
    writer: MemoryWriter,
    memory_client: AsyncMock,
) -> None:
    providers["wearables"].get_recent.return_value = HISTORY
    providers["analyzer"].analyze.return_value = HealthInsight(
        "Sleep is short.", "Raises anxiety.", urgency_level=Urgency.HIGH
    )

    result = await pipeline.handle(USER, "I'm so tired", [])
    await writer.drain()

    assert result.fitbit_data_used
    assert ToolName.HEALTH_ANALYSIS in result.tools_used
    categories = [c.kwargs["metadata"]["category"] for c in memory_client.add.call_args_list]
    assert sorted(categories) == ["conversation", "health-insight"]
    (insight_call,) = [
        c
        for c in memory_client.add.call_args_list
        if c.kwargs["metadata"]["category"] == "health-insight"
    ]
    assert insight_call.kwargs["metadata"]["urgency"] == "high"
    assert insight_call.kwargs["metadata"]["date_range"] == "2024-03-01 to 2024-03-03"
    assert insight_call.args[0][0]["content"].startswith(
        "[HEALTH ANALYSIS 2024-03-01 to 2024-03-03] Sleep is short."
    )


async def test_generation_failure_propagates_without_persisting(
    pipeline: ChatPipeline, sdk: MagicMock, transcripts: AsyncMock
) -> None:
    sdk.messages.create.side_effect = TimeoutError()

    with pytest.raises(GenerationError):
        await pipeline.handle(USER, "hello", [])

    transcripts.append_exchange.assert_not_called()


async def test_transcript_failure_is_tolerated(
    pipeline: ChatPipeline, transcripts: AsyncMock
) -> None:
    transcripts.append_exchange.side_effect = RuntimeError("db locked")

    result = await pipeline.handle(USER, "hello", [])

    assert result.response == "I hear you, Asha."
