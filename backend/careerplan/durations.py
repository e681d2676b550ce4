"""Convert free-text step timeframes ("2 weeks", "1 month") into durations."""

from __future__ import annotations

import re
from datetime import timedelta

DEFAULT_DURATION = timedelta(days=14)

_LEADING_INTEGER = re.compile(r"^\s*(\d+)")
_MAX_DAYS = timedelta.max.days
_UNIT_DAYS = (
    ("week", 7),
    ("month", 30),
    ("day", 1),
)


def parse_duration(text: str | None) -> timedelta:
    """Return the duration described by ``text``.

    The leading integer is the magnitude (1 when missing); the unit is the first
    of week, month, day found in the text. Text without a known unit maps to
    ``DEFAULT_DURATION``. Magnitudes past what ``timedelta`` can hold saturate at
    ``timedelta.max``. Never raises.
    """
    if not isinstance(text, str):
        return DEFAULT_DURATION
    normalized = text.strip().lower()

    match = _LEADING_INTEGER.match(normalized)
    magnitude = int(match.group(1)) if match else 1

    for unit, days in _UNIT_DAYS:
        if unit in normalized:
            total = magnitude * days
            return timedelta(days=total) if total <= _MAX_DAYS else timedelta.max
    return DEFAULT_DURATION


__all__ = ["DEFAULT_DURATION", "parse_duration"]
