from __future__ import annotations

from datetime import timedelta

import pytest

from careerplan.durations import DEFAULT_DURATION, parse_duration


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("2 weeks", timedelta(days=14)),
        ("1 month", timedelta(days=30)),
        ("3 days", timedelta(days=3)),
        ("  6 Months ", timedelta(days=180)),
        ("week", timedelta(days=7)),
        ("a couple of weeks", timedelta(days=7)),
        ("0 days", timedelta(0)),
    ],
)
def test_parse_duration_units(text: str, expected: timedelta) -> None:
    assert parse_duration(text) == expected


def test_week_takes_precedence_over_month_and_day() -> None:
    assert parse_duration("2 weeks (about half a month)") == timedelta(days=14)
    assert parse_duration("1 month, checking in every day") == timedelta(days=30)


@pytest.mark.parametrize("text", ["banana", "", "ASAP", "10"])
def test_unrecognised_text_uses_default(text: str) -> None:
    assert parse_duration(text) == DEFAULT_DURATION == timedelta(days=14)


def test_non_string_input_never_raises() -> None:
    assert parse_duration(None) == DEFAULT_DURATION
    assert parse_duration(42) == DEFAULT_DURATION  # type: ignore[arg-type]


def test_signed_magnitude_falls_back_to_one() -> None:
    assert parse_duration("-3 weeks") == timedelta(days=7)


@pytest.mark.parametrize("text", ["99999999999 weeks", "1000000000 days", "142857143 weeks"])
def test_huge_magnitude_saturates(text: str) -> None:
    assert parse_duration(text) == timedelta.max


def test_largest_representable_magnitude_is_exact() -> None:
    assert parse_duration("999999999 days") == timedelta(days=999999999)
