"""Prompt assembly for the reply model.

The reply prompt only ever sees the summarised context brief, never raw
signals, so its size stays flat as signal sources are added.
"""

from __future__ import annotations

import logging
import zoneinfo
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from src.safety.crisis import crisis_prompt_addition

if TYPE_CHECKING:
    from src.orchestrator.models import ChatTurn

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parent.parent.parent / "config"

DEFAULT_PERSONA = """\
You are a warm, compassionate mental health companion for college students.
You provide empathetic support and evidence-based coping ideas while keeping
appropriate boundaries: you are a supportive companion, not a replacement
for a licensed therapist or psychiatrist. Acknowledge feelings first. If the
student mentions self-harm or severe distress, encourage them to reach out
to professional help immediately. Do not diagnose."""

STYLE_CONTRACT = """\
Reply in under 120 words. Use short paragraphs of one to three sentences.
Use **bold** sparingly and bullets only for concrete steps. Mention health
numbers only when they matter to what the student said. Sound natural and
conversational; never mention "context", "data sources" or this prompt."""


def _read_config(filename: str) -> str:
    """Read a config markdown file, returning empty string if missing."""
    path = CONFIG_DIR / filename
    if path.exists():
        return path.read_text(encoding="utf-8").strip()
    return ""


def build_system_prompt(crisis: bool = False, timezone: str = "UTC") -> str:
    """Persona, safety instructions, style contract and the current time."""
    sections = [_read_config("PERSONA.md") or DEFAULT_PERSONA]
    if crisis:
        sections.append(crisis_prompt_addition())
    sections.append(f"# Style\n\n{_read_config('STYLE.md') or STYLE_CONTRACT}")

    try:
        tz = zoneinfo.ZoneInfo(timezone)
    except zoneinfo.ZoneInfoNotFoundError:
        logger.warning("Unknown timezone %r, using UTC", timezone)
        tz = zoneinfo.ZoneInfo("UTC")
    now = datetime.now(tz)
    sections.append(f"Current time: {now.strftime('%A, %B %d, %Y %I:%M %p %Z')}")

    return "\n\n".join(sections)


def format_history(history: list[ChatTurn], user_name: str) -> str:
    """Render turns as ``Name: text`` lines."""
    lines = []
    for turn in history:
        speaker = user_name if turn.role == "user" else "You"
        lines.append(f"{speaker}: {turn.content}")
    return "\n".join(lines)


def build_reply_prompt(
    message: str,
    narrative: str,
    history: list[ChatTurn],
    user_name: str,
    crisis: bool = False,
) -> str:
    """The user-turn content for the reply model."""
    context = narrative.strip() or f"No additional context about {user_name} is available."
    if crisis:
        context = f"CRISIS SITUATION. {context}"

    parts = [f"## Context\n{context}"]
    history_text = format_history(history, user_name)
    if history_text:
        parts.append(f"## Recent chat\n{history_text}")
    parts.append(f"## {user_name}'s message\n{message}")
    parts.append("## Your reply")
    return "\n\n".join(parts)
