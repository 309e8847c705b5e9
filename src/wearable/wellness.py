"""Recent-wellness provider: the last few minutes of physiology.

Five intraday metrics are fetched concurrently; any that fail are simply
missing from the snapshot. Stress, anxiety and fatigue indicators are then
derived from whatever readings arrived.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from src.wearable.models import HeartRateStats, Level, WellnessIndicators, WellnessSnapshot

if TYPE_CHECKING:
    from src.wearable.intraday import FitbitClient
    from src.wearable.store import WearableStore

logger = logging.getLogger(__name__)


# -- Indicator derivation ----------------------------------------------------


def stress_level(heart_rate: HeartRateStats | None, hrv_rmssd: float | None) -> Level:
    """HRV is the primary signal; heart rate alone gives at most moderate."""
    if heart_rate is not None and hrv_rmssd is not None:
        if hrv_rmssd < 20 and heart_rate.average > 80:
            return Level.HIGH
        if hrv_rmssd < 40 or heart_rate.average > 75:
            return Level.MODERATE
        return Level.LOW
    if heart_rate is not None:
        return Level.MODERATE if heart_rate.average > 80 else Level.LOW
    return Level.UNKNOWN


def anxiety_risk(heart_rate: HeartRateStats | None, breathing_rate: float | None) -> Level:
    if heart_rate is not None and breathing_rate is not None:
        if heart_rate.average > 85 and breathing_rate > 18:
            return Level.HIGH
        if heart_rate.average > 75 or breathing_rate > 16:
            return Level.MODERATE
        return Level.LOW
    if heart_rate is not None:
        return Level.MODERATE if heart_rate.average > 85 else Level.LOW
    return Level.UNKNOWN


def fatigue_level(hrv_rmssd: float | None) -> Level:
    if hrv_rmssd is None:
        return Level.UNKNOWN
    if hrv_rmssd < 25:
        return Level.HIGH
    if hrv_rmssd < 45:
        return Level.MODERATE
    return Level.LOW


def derive_indicators(
    heart_rate: HeartRateStats | None,
    hrv_rmssd: float | None,
    breathing_rate: float | None,
) -> WellnessIndicators:
    return WellnessIndicators(
        stress_level=stress_level(heart_rate, hrv_rmssd),
        anxiety_risk=anxiety_risk(heart_rate, breathing_rate),
        fatigue_level=fatigue_level(hrv_rmssd),
    )


# -- Payload parsing -----------------------------------------------------------
#
# Parsers return None for payloads of the wrong shape.


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return float(value)


def _dataset(payload: Any, key: str) -> list[dict[str, Any]]:
    """``payload[key]["dataset"]`` entries that are dicts."""
    if not isinstance(payload, dict):
        return []
    intraday = payload.get(key)
    if not isinstance(intraday, dict):
        return []
    dataset = intraday.get("dataset")
    if not isinstance(dataset, list):
        return []
    return [d for d in dataset if isinstance(d, dict)]


def _first_value(payload: Any, key: str) -> dict[str, Any]:
    """``payload[key][0]["value"]`` or an empty dict."""
    if not isinstance(payload, dict):
        return {}
    entries = payload.get(key)
    if not isinstance(entries, list) or not entries or not isinstance(entries[0], dict):
        return {}
    value = entries[0].get("value")
    return value if isinstance(value, dict) else {}


def parse_heart_rate(payload: Any) -> HeartRateStats | None:
    values = [
        v
        for v in (_number(d.get("value")) for d in _dataset(payload, "activities-heart-intraday"))
        if v is not None
    ]
    if not values:
        return None
    return HeartRateStats(
        average=round(sum(values) / len(values)),
        minimum=round(min(values)),
        maximum=round(max(values)),
    )


def parse_hrv(payload: Any) -> tuple[float | None, float | None]:
    """Return ``(rmssd, coverage)``."""
    value = _first_value(payload, "hrv")
    rmssd = _number(value.get("dailyRmssd")) or _number(value.get("rmssd"))
    if not rmssd:
        return None, None
    return rmssd, _number(value.get("coverage")) or 0.0


def parse_breathing_rate(payload: Any) -> float | None:
    return _number(_first_value(payload, "br").get("breathingRate")) or None


def parse_spo2(payload: Any) -> float | None:
    if not isinstance(payload, dict):
        return None
    value = payload.get("value")
    if not isinstance(value, dict):
        return None
    return _number(value.get("avg")) or _number(value.get("max")) or None


def parse_steps(payload: Any) -> int | None:
    if not isinstance(payload, dict) or not isinstance(
        payload.get("activities-steps-intraday"), dict
    ):
        return None
    dataset = _dataset(payload, "activities-steps-intraday")
    return int(sum(_number(d.get("value")) or 0 for d in dataset))


# -- Provider ------------------------------------------------------------------


class RecentWellnessProvider:
    """Builds a :class:`WellnessSnapshot` for the trailing window."""

    def __init__(
        self,
        store: WearableStore,
        client: FitbitClient,
        window_minutes: int = 30,
    ) -> None:
        self._store = store
        self._client = client
        self._window = timedelta(minutes=window_minutes)

    async def fetch(self, user_id: str, now: datetime | None = None) -> WellnessSnapshot | None:
        """Return the snapshot, or None if the user has no wearable connection."""
        if not await self._store.has_connection(user_id):
            logger.debug("No wearable connection for %s", user_id[:8])
            return None

        now = now or datetime.now().astimezone()
        start = (now - self._window).strftime("%H:%M")
        end = now.strftime("%H:%M")
        today = now.strftime("%Y-%m-%d")

        names = ("heart_rate", "hrv", "breathing_rate", "spo2", "steps")
        results = await asyncio.gather(
            self._client.heart_rate(user_id, today, start, end),
            self._client.hrv(user_id, today),
            self._client.breathing_rate(user_id, today),
            self._client.spo2(user_id, today),
            self._client.steps(user_id, today, start, end, detail="15min"),
            return_exceptions=True,
        )
        payloads: dict[str, Any] = {}
        for name, result in zip(names, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("Wellness metric %s failed: %s", name, result)
                payloads[name] = None
            else:
                payloads[name] = result

        heart_rate = parse_heart_rate(payloads["heart_rate"])
        rmssd, coverage = parse_hrv(payloads["hrv"])
        breathing = parse_breathing_rate(payloads["breathing_rate"])

        snapshot = WellnessSnapshot(
            timestamp=now.isoformat(),
            heart_rate=heart_rate,
            hrv_rmssd=rmssd,
            hrv_coverage=coverage,
            breathing_rate=breathing,
            spo2=parse_spo2(payloads["spo2"]),
            recent_steps=parse_steps(payloads["steps"]),
            indicators=derive_indicators(heart_rate, rmssd, breathing),
        )
        logger.info(
            "Recent wellness for %s: hr=%s hrv=%s stress=%s",
            user_id[:8],
            heart_rate.average if heart_rate else None,
            rmssd,
            snapshot.indicators.stress_level,
        )
        return snapshot
