"""Typed wearable data: daily history records and the recent-wellness snapshot."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)


class RecordKind(StrEnum):
    SLEEP = "sleep"
    ACTIVITY = "activity"
    HEART_RATE = "heartrate"


class Level(StrEnum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    UNKNOWN = "unknown"


def _num(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _int(value: Any) -> int | None:
    number = _num(value)
    return None if number is None else int(number)


# -- Daily history -----------------------------------------------------------


@dataclass
class WearableRecord:
    """One stored day of one data type.

    Only the fields matching ``kind`` are populated; the rest stay None.
    """

    date: str
    kind: RecordKind
    # sleep
    minutes_asleep: int | None = None
    efficiency: int | None = None
    deep_minutes: int | None = None
    rem_minutes: int | None = None
    light_minutes: int | None = None
    # activity
    steps: int | None = None
    active_minutes: int | None = None
    calories: int | None = None
    distance_km: float | None = None
    # heart rate
    resting_heart_rate: int | None = None
    cardio_minutes: int | None = None
    fat_burn_minutes: int | None = None

    @classmethod
    def from_row(cls, date: str, data_type: str, data: str | dict | None) -> WearableRecord | None:
        """Build a record from a stored ``(date, data_type, data)`` row.

        Returns None for unknown data types or undecodable payloads.
        """
        try:
            kind = RecordKind(data_type)
        except ValueError:
            logger.debug("Skipping wearable row with unknown type %r", data_type)
            return None

        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Undecodable wearable payload for %s/%s", date, data_type)
                return None
        if not isinstance(data, dict):
            return None

        record = cls(date=date, kind=kind)
        if kind is RecordKind.SLEEP:
            stages = data.get("stages") or {}
            record.minutes_asleep = _int(data.get("minutesAsleep"))
            record.efficiency = _int(data.get("efficiency"))
            record.deep_minutes = _int(stages.get("deep"))
            record.rem_minutes = _int(stages.get("rem"))
            record.light_minutes = _int(stages.get("light"))
        elif kind is RecordKind.ACTIVITY:
            record.steps = _int(data.get("steps"))
            record.active_minutes = _int(data.get("activeMinutes"))
            record.calories = _int(data.get("calories"))
            record.distance_km = _num(data.get("distance"))
        else:
            record.resting_heart_rate = _int(data.get("restingHeartRate"))
            zones = {z.get("name"): z for z in data.get("zones") or [] if isinstance(z, dict)}
            record.cardio_minutes = _int((zones.get("Cardio") or {}).get("minutes"))
            record.fat_burn_minutes = _int((zones.get("Fat Burn") or {}).get("minutes"))
        return record


def _average(values: list[float]) -> float | None:
    return sum(values) / len(values) if values else None


def average_sleep_hours(records: list[WearableRecord]) -> float | None:
    values = [
        r.minutes_asleep / 60
        for r in records
        if r.kind is RecordKind.SLEEP and r.minutes_asleep is not None
    ]
    return _average(values)


def average_steps(records: list[WearableRecord]) -> float | None:
    values = [r.steps for r in records if r.kind is RecordKind.ACTIVITY and r.steps is not None]
    return _average(values)


def average_resting_heart_rate(records: list[WearableRecord]) -> float | None:
    values = [
        r.resting_heart_rate
        for r in records
        if r.kind is RecordKind.HEART_RATE and r.resting_heart_rate is not None
    ]
    return _average(values)


def date_range(records: list[WearableRecord]) -> str:
    """``first to last`` over the record dates, or empty string."""
    dates = sorted({r.date for r in records if r.date})
    if not dates:
        return ""
    if len(dates) == 1:
        return dates[0]
    return f"{dates[0]} to {dates[-1]}"


# -- Recent wellness ---------------------------------------------------------


@dataclass
class HeartRateStats:
    average: int
    minimum: int
    maximum: int


@dataclass
class WellnessIndicators:
    stress_level: Level = Level.UNKNOWN
    anxiety_risk: Level = Level.UNKNOWN
    fatigue_level: Level = Level.UNKNOWN


@dataclass
class WellnessSnapshot:
    """Physiological readings from the last few minutes. Never persisted."""

    timestamp: str
    heart_rate: HeartRateStats | None = None
    hrv_rmssd: float | None = None
    hrv_coverage: float | None = None
    breathing_rate: float | None = None
    spo2: float | None = None
    recent_steps: int | None = None
    indicators: WellnessIndicators = field(default_factory=WellnessIndicators)

    @property
    def has_readings(self) -> bool:
        return any(
            v is not None
            for v in (
                self.heart_rate,
                self.hrv_rmssd,
                self.breathing_rate,
                self.spo2,
                self.recent_steps,
            )
        )
