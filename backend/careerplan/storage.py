"""Storage interface consumed by the plan cache, lifecycle controller, and emitter."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, List, Optional, Protocol

from .career_models import (
    CompletionStats,
    Notification,
    NotificationType,
    PlanContent,
    PlanDocument,
    PlanStep,
    StepProgress,
    StepStatus,
    UserProfile,
    UserTask,
)


class CareerPlanStorage(Protocol):
    """Persistence operations the engine relies on.

    Implementations raise ``StorageError`` for persistence failures and
    ``ConflictingWriteError`` when a conditional write loses a race.
    """

    def get_user_profile(self, user_id: str) -> Optional[UserProfile]:  # pragma: no cover - protocol definition
        ...

    def upsert_user_profile(self, profile: UserProfile) -> UserProfile:  # pragma: no cover - protocol definition
        ...

    def create_task(self, user_id: str, title: str, priority: str = "medium") -> UserTask:  # pragma: no cover
        ...

    def set_task_completed(self, user_id: str, task_id: str, completed: bool) -> UserTask:  # pragma: no cover
        ...

    def completion_stats(self, user_id: str) -> CompletionStats:  # pragma: no cover - protocol definition
        ...

    def find_latest_plan(self, user_id: str) -> Optional[PlanDocument]:  # pragma: no cover - protocol definition
        ...

    def list_plans(self, user_id: str) -> List[PlanDocument]:  # pragma: no cover - protocol definition
        ...

    def create_plan(
        self,
        user_id: str,
        content: PlanContent,
        *,
        created_at: datetime,
        supersedes_id: Optional[str],
    ) -> PlanDocument:  # pragma: no cover - protocol definition
        """Persist a plan with its ordered steps.

        Raises ``ConflictingWriteError`` when another plan already superseded
        ``supersedes_id`` for this user.
        """
        ...

    def find_step(self, step_id: str) -> Optional[tuple[PlanStep, str]]:  # pragma: no cover - protocol definition
        """Return the step and the id of the user owning its plan."""
        ...

    def find_step_progress(self, user_id: str, step_id: str) -> Optional[StepProgress]:  # pragma: no cover
        ...

    def list_step_progress(self, user_id: str, step_ids: Iterable[str]) -> List[StepProgress]:  # pragma: no cover
        ...

    def upsert_step_progress(
        self,
        user_id: str,
        step_id: str,
        status: StepStatus,
        started_at: Optional[datetime] = None,
        completed_at: Optional[datetime] = None,
        *,
        expected_status: Optional[StepStatus],
        expected_started_at: Optional[datetime] = None,
    ) -> StepProgress:  # pragma: no cover - protocol definition
        """Compare-and-set write keyed by (user_id, step_id).

        ``expected_status=None`` inserts and requires that no record exists;
        otherwise the stored status must still equal ``expected_status``, and
        the stored ``started_at`` must equal ``expected_started_at`` when given.
        """
        ...

    def create_notification(
        self,
        user_id: str,
        type: NotificationType,
        message: str,
        *,
        created_at: datetime,
        step_id: Optional[str] = None,
    ) -> Notification:  # pragma: no cover - protocol definition
        ...

    def list_notifications(self, user_id: str, *, unread_only: bool = False) -> List[Notification]:  # pragma: no cover
        ...

    def mark_notifications_read(
        self, user_id: str, notification_ids: Optional[Iterable[str]] = None
    ) -> int:  # pragma: no cover - protocol definition
        ...


__all__ = ["CareerPlanStorage"]
