"""Derived-signal analyzer: AI reading of a week of wearable history.

Runs only when stored history exists. The model is asked for a fixed JSON
shape; the reply is decoded leniently and anything unusable yields None.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from src.llm.jsonparse import loads_object
from src.orchestrator.models import HealthInsight, Urgency, max_urgency
from src.wearable.models import RecordKind, average_sleep_hours

if TYPE_CHECKING:
    from src.llm.client import LLMClient
    from src.wearable.models import WearableRecord

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """\
You are a specialized assistant that analyzes health data and identifies \
correlations with mental health for college students.

## Health Data (Last 7 Days):

{data}

{context}## Task:
Analyze this health data and provide insights in JSON format:

{{
  "summary": "Brief 2-3 sentence summary of overall health patterns",
  "mentalHealthCorrelation": "How these health metrics may affect mental well-being (anxiety, stress, mood, cognition)",
  "recommendations": ["Specific actionable recommendation 1", "Specific actionable recommendation 2", "Specific actionable recommendation 3"],
  "urgencyLevel": "low|moderate|high",
  "patterns": ["Notable pattern 1", "Notable pattern 2"]
}}

## Guidelines:
- Focus on mental health implications (stress, anxiety, depression, cognitive function)
- Be empathetic and supportive in tone
- Provide specific, actionable recommendations
- Consider college student context (exams, social life, sleep schedule)
- Set urgencyLevel based on concerning patterns (e.g., severe sleep deprivation = high)
- Identify trends over the 7-day period

IMPORTANT: Return ONLY valid JSON, no additional text."""


# -- Formatting ----------------------------------------------------------------


def format_history(records: list[WearableRecord]) -> str:
    """Render records as per-type bullet lists for the prompt."""
    sleep = [r for r in records if r.kind is RecordKind.SLEEP]
    activity = [r for r in records if r.kind is RecordKind.ACTIVITY]
    heart = [r for r in records if r.kind is RecordKind.HEART_RATE]
    parts = []

    if sleep:
        lines = ["### Sleep Patterns:"]
        for r in sleep:
            minutes = r.minutes_asleep or 0
            line = (
                f"- {r.date}: {minutes // 60}h {minutes % 60}m sleep, "
                f"{r.efficiency or 'N/A'}% efficiency"
            )
            if r.deep_minutes is not None or r.rem_minutes is not None:
                line += (
                    f" (Deep: {r.deep_minutes or 0}m, REM: {r.rem_minutes or 0}m, "
                    f"Light: {r.light_minutes or 0}m)"
                )
            lines.append(line)
        parts.append("\n".join(lines))

    if activity:
        lines = ["### Physical Activity:"]
        lines += [
            f"- {r.date}: {r.steps or 0} steps, {r.active_minutes or 0} active mins, "
            f"{r.calories or 0} cal, {r.distance_km or 0} km"
            for r in activity
        ]
        parts.append("\n".join(lines))

    if heart:
        lines = ["### Heart Rate:"]
        for r in heart:
            line = f"- {r.date}: Resting HR {r.resting_heart_rate or 'N/A'} bpm"
            if r.cardio_minutes or r.fat_burn_minutes:
                line += (
                    f", Cardio: {r.cardio_minutes or 0}min, "
                    f"Fat Burn: {r.fat_burn_minutes or 0}min"
                )
            lines.append(line)
        parts.append("\n".join(lines))

    return "\n\n".join(parts)


# -- Parsing -------------------------------------------------------------------


def _str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


def parse_insight(text: str) -> HealthInsight | None:
    data = loads_object(text)
    if data is None:
        return None

    summary = str(data.get("summary") or "").strip()
    if not summary:
        return None
    try:
        urgency = Urgency(str(data.get("urgencyLevel", "low")).strip().lower())
    except ValueError:
        urgency = Urgency.LOW

    return HealthInsight(
        summary=summary,
        mental_health_correlation=str(data.get("mentalHealthCorrelation") or "").strip(),
        recommendations=_str_list(data.get("recommendations")),
        urgency_level=urgency,
        patterns=_str_list(data.get("patterns")),
    )


def urgency_floor(records: list[WearableRecord]) -> Urgency:
    """Minimum urgency implied by the data itself, independent of the model."""
    avg_sleep = average_sleep_hours(records)
    if avg_sleep is None:
        return Urgency.LOW
    if avg_sleep < 4:
        return Urgency.HIGH
    if avg_sleep < 6:
        return Urgency.MODERATE
    return Urgency.LOW


# -- Analyzer ------------------------------------------------------------------


class HealthAnalyzer:
    def __init__(self, llm: LLMClient, timeout_s: float | None = None) -> None:
        self._llm = llm
        self._timeout = timeout_s

    async def analyze(
        self,
        history: list[WearableRecord] | None,
        memory_context: str | None = None,
    ) -> HealthInsight | None:
        """Return a :class:`HealthInsight`, or None. Never raises."""
        if not history:
            return None

        context = f"## Student Context:\n{memory_context}\n\n" if memory_context else ""
        prompt = ANALYSIS_PROMPT.format(data=format_history(history), context=context)
        try:
            text = await self._llm.complete_text(
                [{"role": "user", "content": prompt}],
                model=self._llm.models.fast,
                max_tokens=1024,
                temperature=0.5,
                timeout=self._timeout,
            )
        except Exception as exc:
            logger.warning("Health analysis failed: %s", exc)
            return None

        insight = parse_insight(text)
        if insight is None:
            logger.warning("Health analysis returned unparseable output (%d chars)", len(text))
            return None

        floor = urgency_floor(history)
        raised = max_urgency(insight.urgency_level, floor)
        if raised is not insight.urgency_level:
            logger.info("Health analysis urgency raised %s -> %s", insight.urgency_level, raised)
            insight.urgency_level = raised
        return insight
