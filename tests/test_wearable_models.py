"""Tests for typed wearable records and their aggregates."""

import json

from src.wearable.models import (
    RecordKind,
    WearableRecord,
    WellnessSnapshot,
    average_resting_heart_rate,
    average_sleep_hours,
    average_steps,
    date_range,
)


def _sleep(date: str, minutes: int) -> WearableRecord:
    return WearableRecord.from_row(date, "sleep", {"minutesAsleep": minutes, "efficiency": 90})


# -- from_row ------------------------------------------------------------------


def test_sleep_row_from_json_text() -> None:
    payload = json.dumps(
        {"minutesAsleep": 412, "efficiency": 88, "stages": {"deep": 60, "rem": 90, "light": 250}}
    )
    record = WearableRecord.from_row("2024-03-01", "sleep", payload)

    assert record.kind is RecordKind.SLEEP
    assert record.minutes_asleep == 412
    assert record.efficiency == 88
    assert (record.deep_minutes, record.rem_minutes, record.light_minutes) == (60, 90, 250)
    assert record.steps is None


def test_activity_row() -> None:
    record = WearableRecord.from_row(
        "2024-03-01",
        "activity",
        {"steps": "8123", "activeMinutes": 42, "calories": 2100, "distance": 5.6},
    )
    assert record.kind is RecordKind.ACTIVITY
    assert record.steps == 8123
    assert record.active_minutes == 42
    assert record.distance_km == 5.6


def test_heart_rate_row_with_zones() -> None:
    record = WearableRecord.from_row(
        "2024-03-01",
        "heartrate",
        {
            "restingHeartRate": 64,
            "zones": [{"name": "Cardio", "minutes": 12}, {"name": "Fat Burn", "minutes": 30}],
        },
    )
    assert record.kind is RecordKind.HEART_RATE
    assert record.resting_heart_rate == 64
    assert record.cardio_minutes == 12
    assert record.fat_burn_minutes == 30


def test_unknown_type_is_skipped() -> None:
    assert WearableRecord.from_row("2024-03-01", "profile", {}) is None


def test_bad_payload_is_skipped() -> None:
    assert WearableRecord.from_row("2024-03-01", "sleep", "{not json") is None
    assert WearableRecord.from_row("2024-03-01", "sleep", None) is None


def test_non_numeric_fields_become_none() -> None:
    record = WearableRecord.from_row("2024-03-01", "activity", {"steps": "lots", "calories": True})
    assert record.steps is None
    assert record.calories is None


# -- Aggregates ----------------------------------------------------------------


def test_average_sleep_hours() -> None:
    records = [_sleep("2024-03-01", 180), _sleep("2024-03-02", 240)]
    assert average_sleep_hours(records) == 3.5


def test_averages_ignore_other_kinds() -> None:
    records = [
        _sleep("2024-03-01", 420),
        WearableRecord.from_row("2024-03-01", "activity", {"steps": 4000}),
        WearableRecord.from_row("2024-03-02", "activity", {"steps": 6000}),
        WearableRecord.from_row("2024-03-01", "heartrate", {"restingHeartRate": 70}),
    ]
    assert average_sleep_hours(records) == 7.0
    assert average_steps(records) == 5000
    assert average_resting_heart_rate(records) == 70


def test_averages_empty() -> None:
    assert average_sleep_hours([]) is None
    assert average_steps([]) is None


def test_date_range() -> None:
    records = [_sleep("2024-03-07", 400), _sleep("2024-03-01", 400), _sleep("2024-03-04", 400)]
    assert date_range(records) == "2024-03-01 to 2024-03-07"
    assert date_range(records[:1]) == "2024-03-07"
    assert date_range([]) == ""


def test_snapshot_has_readings() -> None:
    assert not WellnessSnapshot(timestamp="t").has_readings
    assert WellnessSnapshot(timestamp="t", spo2=97.0).has_readings
