"""Tests for crisis-language classification and resource texts."""

import pytest

from src.safety.crisis import (
    CRISIS_KEYWORDS,
    SEVERE_CRISIS_KEYWORDS,
    CrisisSeverity,
    classify,
    crisis_prompt_addition,
    emergency_resources_text,
    is_crisis,
    is_severe_crisis,
    severe_emergency_text,
)

# -- classify ----------------------------------------------------------------


def test_plain_message_is_none() -> None:
    verdict = classify("I had a nice walk today")
    assert verdict.severity is CrisisSeverity.NONE
    assert verdict.matched is None
    assert not verdict.is_crisis
    assert not verdict.is_severe


def test_severe_keyword() -> None:
    verdict = classify("I want to kill myself")
    assert verdict.severity is CrisisSeverity.SEVERE
    assert verdict.matched == "kill myself"
    assert verdict.is_severe
    assert verdict.is_crisis


def test_concern_keyword() -> None:
    verdict = classify("Everything feels hopeless lately")
    assert verdict.severity is CrisisSeverity.CONCERN
    assert verdict.matched == "hopeless"
    assert verdict.is_crisis
    assert not verdict.is_severe


def test_case_insensitive() -> None:
    assert classify("I FEEL WORTHLESS").severity is CrisisSeverity.CONCERN
    assert classify("Thinking About SUICIDE").severity is CrisisSeverity.SEVERE


def test_severe_checked_before_concern() -> None:
    # "overdose" is a concern keyword, "overdose on purpose" is severe.
    assert classify("I might overdose on purpose").severity is CrisisSeverity.SEVERE


def test_no_negation_handling() -> None:
    assert classify("I don't want to kill myself").severity is CrisisSeverity.SEVERE


def test_substring_false_positive_is_preserved() -> None:
    # "jump off" matches inside unrelated phrasing; this sensitivity is kept.
    assert classify("we should jump off the diving board").is_severe


@pytest.mark.parametrize("message", ["", None, 42])
def test_empty_or_non_string(message) -> None:
    assert classify(message).severity is CrisisSeverity.NONE


def test_idempotent() -> None:
    message = "I feel hopeless and want to end it all"
    assert classify(message) == classify(message)


@pytest.mark.parametrize("keyword", SEVERE_CRISIS_KEYWORDS)
def test_every_severe_keyword_satisfies_concern_predicate(keyword: str) -> None:
    message = f"honestly {keyword} right now"
    assert is_severe_crisis(message)
    assert is_crisis(message)
    assert classify(message).is_crisis


@pytest.mark.parametrize("keyword", CRISIS_KEYWORDS)
def test_every_concern_keyword_detected(keyword: str) -> None:
    assert is_crisis(f"I feel like {keyword}")


# -- Resource texts ----------------------------------------------------------


def test_severe_text_lists_hotlines() -> None:
    text = severe_emergency_text()
    assert "91-9820466726" in text
    assert "108" in text
    assert "temporarily disabled" in text


def test_resources_text_lists_hotlines_and_campus() -> None:
    text = emergency_resources_text()
    assert "91-9820466726" in text
    assert "9152987821" in text
    assert "Campus Counseling Center" in text


def test_prompt_addition_does_not_list_numbers() -> None:
    text = crisis_prompt_addition()
    assert "CRITICAL SAFETY ALERT" in text
    assert "91-9820466726" not in text
