"""Context summarizer: condenses a SignalBundle into a short brief.

This is the only place the amount of context handed to the reply model is
controlled. Whatever the bundle holds, the narrative never exceeds
``max_chars``.
"""

from __future__ import annotations

import logging
import re
import time
from typing import TYPE_CHECKING

from src.orchestrator.models import ContextBrief
from src.wearable.models import (
    RecordKind,
    average_resting_heart_rate,
    average_sleep_hours,
    average_steps,
)

if TYPE_CHECKING:
    from src.llm.client import LLMClient
    from src.orchestrator.models import SignalBundle
    from src.wearable.models import WearableRecord, WellnessSnapshot

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n\n---\n\n"
KNOWLEDGE_SNIPPET_CHARS = 300
MAX_KEY_POINTS = 5

SUMMARIZER_SYSTEM_PROMPT = """\
You are a context summarizer for a mental health chatbot. Create CONCISE, \
NATURAL paragraph summaries.

RULES:
1. Format as 1-2 flowing sentences (NOT bullet points or structured data)
2. ALWAYS start with: "[userName] has..."
3. Include SPECIFIC health numbers only if relevant to the message
4. Sound natural and conversational
5. Focus ONLY on what's relevant to their current message
6. Never use headers, section markers or labels like "CURRENT VITALS"

Example output:
Sarah has been taking around 3,500 steps daily with a resting heart rate of \
72 bpm, and she mentioned feeling stressed about exams last week."""

_BULLET = re.compile(r"^\s*[-•]\s*(.+)$")
_LABEL = re.compile(r"^\s*[A-Z][A-Z0-9 ()/&-]{2,}:\s*")
_SENTENCE_END = re.compile(r"[.!?](?=\s|$)")


# -- Raw context -----------------------------------------------------------------


def _wearable_summary(records: list[WearableRecord]) -> str:
    lines = []
    sleep = [r for r in records if r.kind is RecordKind.SLEEP and r.minutes_asleep]
    if sleep:
        lines.append(
            f"SLEEP (last {len(sleep)} days): average {average_sleep_hours(sleep):.1f} hrs / night"
        )
        last = sleep[0]
        if last.efficiency:
            lines.append(
                f"  Last night: {last.minutes_asleep / 60:.1f} hrs, {last.efficiency}% efficiency"
            )
    activity = [r for r in records if r.kind is RecordKind.ACTIVITY and r.steps]
    if activity:
        lines.append(
            f"ACTIVITY (last {len(activity)} days): "
            f"average {round(average_steps(activity)):,} steps / day"
        )
        latest = activity[0]
        lines.append(f"  Latest: {latest.steps:,} steps, {latest.calories or 0:,} calories")
    heart = [r for r in records if r.kind is RecordKind.HEART_RATE and r.resting_heart_rate]
    if heart:
        lines.append(
            f"RESTING HEART RATE (last {len(heart)} days): average "
            f"{round(average_resting_heart_rate(heart))} bpm"
        )
    return "\n".join(lines) or "No historical wearable data available"


def _wellness_sentence(snapshot: WellnessSnapshot, user_name: str) -> str:
    details = []
    if snapshot.heart_rate is not None:
        details.append(f"a heart rate of {snapshot.heart_rate.average} bpm")
    if snapshot.recent_steps is not None:
        details.append(f"{snapshot.recent_steps} steps")
    if snapshot.hrv_rmssd is not None:
        rmssd = snapshot.hrv_rmssd
        status = "stressed" if rmssd < 30 else "relaxed" if rmssd > 50 else "neutral"
        details.append(f"HRV {rmssd:g}ms ({status})")
    if snapshot.breathing_rate is not None:
        details.append(f"a breathing rate of {snapshot.breathing_rate:g}/min")
    if not details:
        return f"{user_name} has no recent vital data available."

    ind = snapshot.indicators
    return (
        f"{user_name} has {', '.join(details)}. "
        f"Stress {ind.stress_level}, anxiety risk {ind.anxiety_risk}, fatigue {ind.fatigue_level}."
    )


def build_raw_context(bundle: SignalBundle, user_name: str) -> str:
    """Join every present signal into labelled sections."""
    sections = []

    if bundle.profile is not None:
        text = f"User Profile: {bundle.profile.username or 'User'}"
        if bundle.profile.email:
            text += f" ({bundle.profile.email})"
        sections.append(text)

    if bundle.memories:
        lines = [f"{i}. [{m.category}] {m.text}" for i, m in enumerate(bundle.memories, 1)]
        sections.append(f"## USER MEMORIES ({len(bundle.memories)} found):\n" + "\n".join(lines))

    if bundle.wearable_history:
        sections.append(
            "## WEARABLE HEALTH DATA (Last 7 days):\n" + _wearable_summary(bundle.wearable_history)
        )

    if bundle.recent_wellness is not None:
        sections.append(
            "## CURRENT WELLNESS (Last 30 minutes):\n"
            + _wellness_sentence(bundle.recent_wellness, user_name)
        )

    if bundle.health_insight is not None:
        sections.append("## AI HEALTH ANALYSIS:\n" + bundle.health_insight.for_context())

    if bundle.knowledge:
        snippets = [
            f"{i}. {c.text[:KNOWLEDGE_SNIPPET_CHARS]}..." for i, c in enumerate(bundle.knowledge, 1)
        ]
        sections.append(
            f"## KNOWLEDGE BASE ({len(bundle.knowledge)} relevant chunks):\n"
            + "\n\n".join(snippets)
        )

    return SECTION_SEPARATOR.join(sections)


# -- Output shaping ----------------------------------------------------------------


def extract_key_points(text: str) -> tuple[str, ...]:
    points = []
    for line in text.splitlines():
        match = _BULLET.match(line)
        if match and match.group(1).strip():
            points.append(match.group(1).strip())
    return tuple(points[:MAX_KEY_POINTS])


def bound(text: str, max_chars: int) -> str:
    """Trim *text* to at most *max_chars*, preferring a sentence boundary."""
    text = text.strip()
    if len(text) <= max_chars:
        return text

    window = text[:max_chars]
    ends = [m.end() for m in _SENTENCE_END.finditer(window)]
    if ends and ends[-1] >= max_chars // 3:
        return window[: ends[-1]].strip()

    cut = text[: max(max_chars - 3, 0)]
    if " " in cut:
        cut = cut.rsplit(" ", 1)[0]
    return (cut.rstrip() + "...")[:max_chars]


def clean_narrative(text: str, max_chars: int) -> str:
    """Flatten model output into bounded prose: no headers, separators or labels."""
    pieces = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or set(stripped) <= {"-", "=", "*", "_"}:
            continue
        bullet = _BULLET.match(stripped)
        if bullet:
            stripped = bullet.group(1).strip()
        stripped = _LABEL.sub("", stripped)
        if stripped:
            pieces.append(stripped)
    prose = " ".join(" ".join(pieces).split())
    if len(prose) >= 2 and prose[0] == prose[-1] and prose[0] in "\"'":
        prose = prose[1:-1].strip()
    return bound(prose, max_chars)


# -- Summarizer --------------------------------------------------------------------


class ContextSummarizer:
    def __init__(
        self,
        llm: LLMClient,
        passthrough_chars: int = 300,
        max_chars: int = 600,
        timeout_s: float | None = None,
    ) -> None:
        self._llm = llm
        self.passthrough_chars = passthrough_chars
        self.max_chars = max_chars
        self._timeout = timeout_s

    def _passthrough(self, raw: str, elapsed_ms: int) -> ContextBrief:
        return ContextBrief(narrative=bound(raw, self.max_chars), summarization_time_ms=elapsed_ms)

    async def summarize(self, message: str, bundle: SignalBundle, user_name: str) -> ContextBrief:
        """Condense *bundle* into a brief. Never raises."""
        started = time.monotonic()
        raw = build_raw_context(bundle, user_name)

        def elapsed() -> int:
            return int((time.monotonic() - started) * 1000)

        if len(raw) < self.passthrough_chars:
            return self._passthrough(raw, elapsed())

        prompt = (
            f"User: {user_name}\n"
            f'Message: "{message}"\n\n'
            f"Context data:\n{raw}\n\n"
            f'Create a 1-2 sentence summary. Start with "{user_name} has..." '
            "and keep it conversational."
        )
        try:
            text = await self._llm.complete_text(
                [{"role": "user", "content": prompt}],
                system=SUMMARIZER_SYSTEM_PROMPT,
                model=self._llm.models.fast,
                max_tokens=512,
                temperature=0.3,
                timeout=self._timeout,
            )
        except Exception as exc:
            logger.warning("Context summarization failed, using raw context: %s", exc)
            return self._passthrough(raw, elapsed())

        narrative = clean_narrative(text, self.max_chars)
        if not narrative:
            logger.warning("Context summarization returned nothing usable, using raw context")
            narrative = bound(raw, self.max_chars)

        brief = ContextBrief(
            narrative=narrative,
            key_points=extract_key_points(text),
            summarization_time_ms=elapsed(),
        )
        logger.info(
            "Context summarized in %dms (%d -> %d chars)",
            brief.summarization_time_ms,
            len(raw),
            len(narrative),
        )
        return brief
