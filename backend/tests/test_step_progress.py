from __future__ import annotations

from datetime import timedelta

import pytest

from careerplan.career_models import PlanStep, StepProgress, StepStatus
from careerplan.step_progress import compute_progress

from conftest import T0


def _step(timeframe: str = "2 weeks") -> PlanStep:
    return PlanStep(id="step-1", plan_id="plan-1", position=1, title="Learn PyTorch", timeframe=timeframe)


def _started(offset: timedelta = timedelta(0)) -> StepProgress:
    return StepProgress(
        user_id="ada",
        step_id="step-1",
        status=StepStatus.IN_PROGRESS,
        started_at=T0 + offset,
    )


def test_missing_record_is_not_started() -> None:
    snapshot = compute_progress(_step(), None, now=T0)
    assert (snapshot.status, snapshot.timeline_percent) == (StepStatus.NOT_STARTED, 0)


def test_not_started_record_reports_zero() -> None:
    record = StepProgress(user_id="ada", step_id="step-1")
    snapshot = compute_progress(_step(), record, now=T0 + timedelta(days=30))
    assert (snapshot.status, snapshot.timeline_percent) == (StepStatus.NOT_STARTED, 0)


def test_completed_is_always_full() -> None:
    record = StepProgress(
        user_id="ada",
        step_id="step-1",
        status=StepStatus.COMPLETED,
        started_at=T0,
        completed_at=T0 + timedelta(hours=1),
    )
    snapshot = compute_progress(_step(), record, now=T0 + timedelta(hours=2))
    assert (snapshot.status, snapshot.timeline_percent) == (StepStatus.COMPLETED, 100)


@pytest.mark.parametrize(
    ("elapsed", "expected"),
    [
        (timedelta(0), 0),
        (timedelta(days=7), 50),
        (timedelta(days=3, hours=12), 25),
        (timedelta(days=14), 100),
        (timedelta(days=40), 100),
    ],
)
def test_in_progress_percent_tracks_elapsed_share(elapsed: timedelta, expected: int) -> None:
    snapshot = compute_progress(_step(), _started(), now=T0 + elapsed)
    assert snapshot.status is StepStatus.IN_PROGRESS
    assert snapshot.timeline_percent == expected


def test_half_percent_rounds_up() -> None:
    # 0.5% of 100 days is 12 hours.
    snapshot = compute_progress(_step("100 days"), _started(), now=T0 + timedelta(hours=12))
    assert snapshot.timeline_percent == 1


def test_start_in_the_future_clamps_to_zero() -> None:
    snapshot = compute_progress(_step(), _started(timedelta(days=2)), now=T0)
    assert snapshot.timeline_percent == 0


def test_zero_length_timeframe_is_complete_once_started() -> None:
    snapshot = compute_progress(_step("0 days"), _started(), now=T0 + timedelta(seconds=1))
    assert snapshot.timeline_percent == 100


def test_percent_is_monotonic_while_in_progress() -> None:
    values = [
        compute_progress(_step("1 month"), _started(), now=T0 + timedelta(hours=hours)).timeline_percent
        for hours in range(0, 24 * 40, 7)
    ]
    assert values == sorted(values)
    assert all(0 <= value <= 100 for value in values)


def test_naive_start_time_is_treated_as_utc() -> None:
    record = StepProgress(
        user_id="ada",
        step_id="step-1",
        status=StepStatus.IN_PROGRESS,
        started_at=T0.replace(tzinfo=None),
    )
    snapshot = compute_progress(_step(), record, now=T0 + timedelta(days=7))
    assert snapshot.timeline_percent == 50


def test_huge_timeframe_reads_as_barely_started() -> None:
    snapshot = compute_progress(_step("99999999999 weeks"), _started(), now=T0 + timedelta(days=365))
    assert (snapshot.status, snapshot.timeline_percent) == (StepStatus.IN_PROGRESS, 0)
