"""State machine governing each user's progress through plan steps."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

from .career_models import NotificationType, PlanStep, StepProgress, StepStatus, _now, ensure_utc
from .errors import ConflictingWriteError, InvalidTransitionError, NotFoundError
from .locks import KeyedLock
from .notifications import NotificationDraft, NotificationEmitter, NotificationOutbox
from .plan_cache import normalize_user_id
from .step_progress import compute_progress
from .storage import CareerPlanStorage
from .telemetry import emit_event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StepView:
    """A plan step joined with the user's progress on it."""

    step: PlanStep
    status: StepStatus
    timeline_percent: int
    started_at: Optional[datetime]
    completed_at: Optional[datetime]


def _step_label(step: PlanStep) -> str:
    return f"step {step.position}: {step.title}"


class StepLifecycleController:
    """Applies start, restart, complete and reset transitions and records a notification for each.

    Transitions for one user are serialized in-process; the storage layer's
    compare-and-set write catches races with other processes, in which case
    the winner's record is returned and no second notification is written.
    """

    def __init__(
        self,
        storage: CareerPlanStorage,
        emitter: NotificationEmitter,
        *,
        outbox: Optional[NotificationOutbox] = None,
        clock: Callable[[], datetime] = _now,
        locks: Optional[KeyedLock] = None,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._locks = locks or KeyedLock()
        self.outbox = outbox or NotificationOutbox(emitter)

    def start(self, user_id: str, step_id: str) -> StepProgress:
        """Begin a step. Starting a step that is already in progress changes nothing."""
        user_id = normalize_user_id(user_id)
        with self._locks.hold(user_id):
            step = self._require_step(user_id, step_id)
            current = self._storage.find_step_progress(user_id, step.id)
            status = current.status if current else StepStatus.NOT_STARTED

            if status is StepStatus.COMPLETED:
                raise InvalidTransitionError("start", status.value)
            if status is StepStatus.IN_PROGRESS:
                assert current is not None
                return current

            message = f"You've started {_step_label(step)}. Good luck!"
            return self._transition(
                user_id,
                step,
                current,
                StepStatus.IN_PROGRESS,
                started_at=self._clock(),
                completed_at=None,
                notification=NotificationDraft(user_id, NotificationType.INFO, message, step.id),
            )

    def restart(self, user_id: str, step_id: str, expected_started_at: datetime) -> StepProgress:
        """Restart the timeline of an in-progress step.

        ``expected_started_at`` is the start time the caller saw. When the
        timeline has moved since then, another restart won and the current
        record is returned without a notification.
        """
        user_id = normalize_user_id(user_id)
        with self._locks.hold(user_id):
            step = self._require_step(user_id, step_id)
            current = self._storage.find_step_progress(user_id, step.id)
            status = current.status if current else StepStatus.NOT_STARTED
            if current is None or status is not StepStatus.IN_PROGRESS:
                raise InvalidTransitionError("restart", status.value)

            if current.started_at != ensure_utc(expected_started_at):
                logger.info("Step %s for %s was already restarted; keeping %s", step.id, user_id, current.started_at)
                emit_event("step_transition_conflict", user_id=user_id, step_id=step.id, status=current.status)
                return current

            message = f"You've restarted {_step_label(step)}. The timeline starts over today."
            return self._transition(
                user_id,
                step,
                current,
                StepStatus.IN_PROGRESS,
                started_at=self._clock(),
                completed_at=None,
                notification=NotificationDraft(user_id, NotificationType.INFO, message, step.id),
                expected_started_at=current.started_at,
            )

    def complete(self, user_id: str, step_id: str) -> StepProgress:
        user_id = normalize_user_id(user_id)
        with self._locks.hold(user_id):
            step = self._require_step(user_id, step_id)
            current = self._storage.find_step_progress(user_id, step.id)
            if current is None or current.status is StepStatus.NOT_STARTED:
                raise InvalidTransitionError("complete", StepStatus.NOT_STARTED.value)
            if current.status is StepStatus.COMPLETED:
                return current

            message = f"Congratulations! You completed {_step_label(step)}."
            return self._transition(
                user_id,
                step,
                current,
                StepStatus.COMPLETED,
                started_at=current.started_at,
                completed_at=self._clock(),
                notification=NotificationDraft(user_id, NotificationType.SUCCESS, message, step.id),
            )

    def reset(self, user_id: str, step_id: str) -> StepProgress:
        user_id = normalize_user_id(user_id)
        with self._locks.hold(user_id):
            step = self._require_step(user_id, step_id)
            current = self._storage.find_step_progress(user_id, step.id)
            if current is None:
                return StepProgress(user_id=user_id, step_id=step.id)
            if current.status is StepStatus.NOT_STARTED:
                return current

            message = f"Step {step.position}: {step.title} was reset and is no longer in progress."
            return self._transition(
                user_id,
                step,
                current,
                StepStatus.NOT_STARTED,
                started_at=None,
                completed_at=None,
                notification=NotificationDraft(user_id, NotificationType.WARNING, message, step.id),
            )

    def describe_step(self, user_id: str, step_id: str) -> StepView:
        user_id = normalize_user_id(user_id)
        step = self._require_step(user_id, step_id)
        return self._view(step, self._storage.find_step_progress(user_id, step.id))

    def list_current_steps(self, user_id: str) -> List[StepView]:
        user_id = normalize_user_id(user_id)
        plan = self._storage.find_latest_plan(user_id)
        if plan is None:
            return []
        records = {
            record.step_id: record
            for record in self._storage.list_step_progress(user_id, [step.id for step in plan.steps])
        }
        return [self._view(step, records.get(step.id)) for step in plan.steps]

    def _view(self, step: PlanStep, progress: Optional[StepProgress]) -> StepView:
        snapshot = compute_progress(step, progress, now=self._clock())
        return StepView(
            step=step,
            status=snapshot.status,
            timeline_percent=snapshot.timeline_percent,
            started_at=progress.started_at if progress else None,
            completed_at=progress.completed_at if progress else None,
        )

    def _require_step(self, user_id: str, step_id: str) -> PlanStep:
        found = self._storage.find_step(step_id)
        if found is None:
            raise NotFoundError(f"Step '{step_id}' was not found.")
        step, owner_id = found
        if owner_id != user_id:
            raise NotFoundError(f"Step '{step_id}' was not found.")
        return step

    def _transition(
        self,
        user_id: str,
        step: PlanStep,
        current: Optional[StepProgress],
        target: StepStatus,
        *,
        started_at: Optional[datetime],
        completed_at: Optional[datetime],
        notification: NotificationDraft,
        expected_started_at: Optional[datetime] = None,
    ) -> StepProgress:
        previous = current.status if current else None
        try:
            updated = self._storage.upsert_step_progress(
                user_id,
                step.id,
                target,
                started_at,
                completed_at,
                expected_status=previous,
                expected_started_at=expected_started_at,
            )
        except ConflictingWriteError:
            winner = self._storage.find_step_progress(user_id, step.id)
            if winner is None:
                raise
            logger.info(
                "Concurrent transition on step %s for %s; keeping %s",
                step.id,
                user_id,
                winner.status.value,
            )
            emit_event("step_transition_conflict", user_id=user_id, step_id=step.id, status=winner.status)
            return winner

        emit_event(
            "step_transition",
            user_id=user_id,
            step_id=step.id,
            from_status=previous or StepStatus.NOT_STARTED,
            to_status=target,
        )
        self.outbox.deliver(notification)
        return updated


__all__ = ["StepLifecycleController", "StepView"]
