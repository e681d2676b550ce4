"""Derived status and timeline progress for plan steps."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .career_models import PlanStep, StepProgress, StepStatus, ensure_utc
from .durations import parse_duration


@dataclass(frozen=True)
class StepProgressSnapshot:
    status: StepStatus
    timeline_percent: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute_progress(
    step: PlanStep,
    progress: Optional[StepProgress],
    *,
    now: datetime,
) -> StepProgressSnapshot:
    """Return the step's status and the share of its timeframe elapsed since it started."""
    if progress is None or progress.status is StepStatus.NOT_STARTED:
        return StepProgressSnapshot(StepStatus.NOT_STARTED, 0)
    if progress.status is StepStatus.COMPLETED:
        return StepProgressSnapshot(StepStatus.COMPLETED, 100)

    started_at = ensure_utc(progress.started_at)
    if started_at is None:
        return StepProgressSnapshot(StepStatus.IN_PROGRESS, 0)
    elapsed = (ensure_utc(now) or now) - started_at
    duration = parse_duration(step.timeframe)

    if elapsed.total_seconds() <= 0:
        percent = 0
    elif duration.total_seconds() <= 0 or elapsed >= duration:
        percent = 100
    else:
        percent = _round_half_up(elapsed * 100 / duration)
    return StepProgressSnapshot(StepStatus.IN_PROGRESS, min(max(percent, 0), 100))


__all__ = ["StepProgressSnapshot", "compute_progress"]
