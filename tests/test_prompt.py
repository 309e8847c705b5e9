"""Tests for prompt assembly."""

from unittest.mock import patch

from src.llm.prompt import STYLE_CONTRACT, build_reply_prompt, build_system_prompt
from src.orchestrator.models import ChatTurn

HISTORY = [
    ChatTurn(role="user", content="I have three exams next week"),
    ChatTurn(role="assistant", content="That's a heavy week."),
]


def test_system_prompt_contains_persona() -> None:
    prompt = build_system_prompt()
    assert "mental health companion" in prompt


def test_system_prompt_contains_style_and_time() -> None:
    prompt = build_system_prompt(timezone="Asia/Kolkata")
    assert "# Style" in prompt
    assert "Current time:" in prompt
    assert "IST" in prompt


def test_system_prompt_crisis_addition_only_on_crisis() -> None:
    assert "CRITICAL SAFETY ALERT" not in build_system_prompt(crisis=False)
    assert "CRITICAL SAFETY ALERT" in build_system_prompt(crisis=True)


def test_system_prompt_defaults_when_config_missing() -> None:
    with patch("src.llm.prompt._read_config", return_value=""):
        prompt = build_system_prompt()
    assert "college students" in prompt
    assert STYLE_CONTRACT in prompt


def test_system_prompt_unknown_timezone_uses_utc() -> None:
    assert "UTC" in build_system_prompt(timezone="Nowhere/Special")


def test_reply_prompt_sections_in_order() -> None:
    prompt = build_reply_prompt(
        "How do I stop panicking?", "Asha has been sleeping 5 hours.", HISTORY, "Asha"
    )

    order = [
        prompt.index("## Context"),
        prompt.index("## Recent chat"),
        prompt.index("## Asha's message"),
        prompt.index("## Your reply"),
    ]
    assert order == sorted(order)
    assert "Asha: I have three exams next week" in prompt
    assert "You: That's a heavy week." in prompt
    assert "Asha has been sleeping 5 hours." in prompt


def test_reply_prompt_without_context_or_history() -> None:
    prompt = build_reply_prompt("hi", "", [], "Asha")

    assert "No additional context about Asha is available." in prompt
    assert "## Recent chat" not in prompt


def test_reply_prompt_marks_crisis() -> None:
    prompt = build_reply_prompt("I feel hopeless", "brief", [], "Asha", crisis=True)
    assert "CRISIS SITUATION. brief" in prompt
