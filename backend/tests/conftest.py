from __future__ import annotations

import os
import threading
import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

import pytest

os.environ.setdefault("CAREERPLAN_DATABASE_URL", "sqlite://")

from careerplan.career_models import (  # noqa: E402
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
from careerplan.config import Settings  # noqa: E402
from careerplan.errors import ConflictingWriteError, NotFoundError, StorageError  # noqa: E402
from careerplan.plan_generator import PlanPromptContext  # noqa: E402
from careerplan.telemetry import TelemetryEvent, clear_listeners, register_listener  # noqa: E402

T0 = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


class MutableClock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class InMemoryCareerPlanStore:
    """Thread-safe storage double honouring the compare-and-set contract."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.profiles: Dict[str, UserProfile] = {}
        self.tasks: Dict[str, UserTask] = {}
        self.plans: List[PlanDocument] = []
        self.progress: Dict[tuple[str, str], StepProgress] = {}
        self.notifications: List[Notification] = []
        self.fail_notifications = False
        self.create_plan_calls = 0

    def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        return self.profiles.get(user_id)

    def upsert_user_profile(self, profile: UserProfile) -> UserProfile:
        self.profiles[profile.user_id] = profile
        return profile

    def create_task(self, user_id: str, title: str, priority: str = "medium") -> UserTask:
        if user_id not in self.profiles:
            raise NotFoundError(f"User '{user_id}' was not found.")
        task = UserTask(id=str(uuid.uuid4()), user_id=user_id, title=title, priority=priority)
        self.tasks[task.id] = task
        return task

    def set_task_completed(self, user_id: str, task_id: str, completed: bool) -> UserTask:
        task = self.tasks.get(task_id)
        if task is None or task.user_id != user_id:
            raise NotFoundError(f"Task '{task_id}' was not found.")
        task = task.model_copy(update={"completed": completed})
        self.tasks[task_id] = task
        return task

    def completion_stats(self, user_id: str) -> CompletionStats:
        tasks = [task for task in self.tasks.values() if task.user_id == user_id]
        latest = self.find_latest_plan(user_id)
        steps = latest.steps if latest else []
        completed_steps = sum(
            1
            for step in steps
            if (record := self.progress.get((user_id, step.id))) and record.status is StepStatus.COMPLETED
        )
        return CompletionStats(
            completed_tasks=sum(1 for task in tasks if task.completed),
            total_tasks=len(tasks),
            completed_steps=completed_steps,
            total_steps=len(steps),
        )

    def find_latest_plan(self, user_id: str) -> Optional[PlanDocument]:
        owned = [plan for plan in self.plans if plan.user_id == user_id]
        return max(owned, key=lambda plan: plan.created_at) if owned else None

    def list_plans(self, user_id: str) -> List[PlanDocument]:
        owned = [plan for plan in self.plans if plan.user_id == user_id]
        return sorted(owned, key=lambda plan: plan.created_at, reverse=True)

    def create_plan(
        self,
        user_id: str,
        content: PlanContent,
        *,
        created_at: datetime,
        supersedes_id: Optional[str],
    ) -> PlanDocument:
        with self._lock:
            self.create_plan_calls += 1
            if any(p.user_id == user_id and p.supersedes_id == supersedes_id for p in self.plans):
                raise ConflictingWriteError("plan already superseded")
            plan_id = str(uuid.uuid4())
            plan = PlanDocument(
                id=plan_id,
                user_id=user_id,
                created_at=created_at,
                supersedes_id=supersedes_id,
                progress_percentage=content.progress_percentage,
                analysis=content.analysis,
                next_steps=content.next_steps,
                risk_assessment=content.risk_assessment,
                progress_breakdown=content.progress_breakdown,
                steps=[
                    PlanStep(
                        id=str(uuid.uuid4()),
                        plan_id=plan_id,
                        position=index,
                        title=draft.title,
                        description=draft.description,
                        timeframe=draft.timeframe,
                        priority=draft.priority,
                        resources=draft.resources,
                        category=draft.category,
                        skill_type=draft.skill_type,
                        success_metrics=draft.success_metrics,
                        urgency=draft.urgency,
                    )
                    for index, draft in enumerate(content.steps, start=1)
                ],
            )
            self.plans.append(plan)
            return plan

    def find_step(self, step_id: str) -> Optional[tuple[PlanStep, str]]:
        for plan in self.plans:
            step = plan.step(step_id)
            if step is not None:
                return step, plan.user_id
        return None

    def find_step_progress(self, user_id: str, step_id: str) -> Optional[StepProgress]:
        return self.progress.get((user_id, step_id))

    def list_step_progress(self, user_id: str, step_ids: Iterable[str]) -> List[StepProgress]:
        return [self.progress[(user_id, step_id)] for step_id in step_ids if (user_id, step_id) in self.progress]

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
    ) -> StepProgress:
        with self._lock:
            current = self.progress.get((user_id, step_id))
            stored = current.status if current else None
            timeline_moved = (
                expected_started_at is not None and current is not None and current.started_at != expected_started_at
            )
            if stored != expected_status or timeline_moved:
                raise ConflictingWriteError("step progress changed")
            record = StepProgress(
                user_id=user_id,
                step_id=step_id,
                status=status,
                started_at=started_at,
                completed_at=completed_at,
            )
            self.progress[(user_id, step_id)] = record
            return record

    def create_notification(
        self,
        user_id: str,
        type: NotificationType,
        message: str,
        *,
        created_at: datetime,
        step_id: Optional[str] = None,
    ) -> Notification:
        if self.fail_notifications:
            raise StorageError("notifications table unavailable")
        with self._lock:
            notification = Notification(
                id=str(uuid.uuid4()),
                user_id=user_id,
                type=type,
                message=message,
                created_at=created_at,
                step_id=step_id,
            )
            self.notifications.append(notification)
            return notification

    def list_notifications(self, user_id: str, *, unread_only: bool = False) -> List[Notification]:
        owned = [
            (n.created_at, index, n)
            for index, n in enumerate(self.notifications)
            if n.user_id == user_id and not (unread_only and n.read)
        ]
        return [n for _, _, n in sorted(owned, key=lambda entry: entry[:2], reverse=True)]

    def mark_notifications_read(self, user_id: str, notification_ids: Optional[Iterable[str]] = None) -> int:
        wanted = set(notification_ids) if notification_ids is not None else None
        updated = 0
        for index, notification in enumerate(self.notifications):
            if notification.user_id != user_id or notification.read:
                continue
            if wanted is not None and notification.id not in wanted:
                continue
            self.notifications[index] = notification.model_copy(update={"read": True})
            updated += 1
        return updated


def plan_payload(*timeframes: str) -> dict:
    frames = timeframes or ("2 weeks", "1 month")
    return {
        "progressPercentage": 35,
        "analysis": "Solid backend foundation; close the ML gap.",
        "tasks": [
            {
                "title": f"Step {index}",
                "description": f"Work item {index}",
                "timeframe": frame,
                "priority": "High" if index == 1 else "low",
                "resources": [{"name": "Course", "url": "https://example.com", "type": "course"}],
            }
            for index, frame in enumerate(frames, start=1)
        ],
        "nextSteps": [{"step": "Enroll", "reason": "Start learning"}],
        "riskAssessment": {"level": "low", "factors": ["time"], "mitigationSteps": ["plan weekly"]},
    }


class FakePlanGenerator:
    def __init__(self, payload: Optional[dict] = None) -> None:
        self.payload = payload or plan_payload()
        self.calls: List[PlanPromptContext] = []
        self.error: Optional[Exception] = None
        self.gate: Optional[threading.Event] = None

    def generate(self, context: PlanPromptContext) -> PlanContent:
        self.calls.append(context)
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return PlanContent.model_validate(self.payload)


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock()


@pytest.fixture
def store() -> InMemoryCareerPlanStore:
    memory = InMemoryCareerPlanStore()
    memory.upsert_user_profile(
        UserProfile(
            user_id="ada",
            bio="Backend engineer",
            skills=["Python", "SQL", "python"],
            dream_job="ML Engineer",
            dream_company="Example Labs",
        )
    )
    return memory


@pytest.fixture
def generator() -> FakePlanGenerator:
    return FakePlanGenerator()


@pytest.fixture
def settings() -> Settings:
    return Settings(CAREERPLAN_DATABASE_URL="sqlite://")  # type: ignore[call-arg]


@pytest.fixture
def events():
    collected: List[TelemetryEvent] = []
    clear_listeners()
    register_listener(collected.append)
    yield collected
    clear_listeners()


@pytest.fixture
def sqlite_store(tmp_path, monkeypatch):
    from careerplan.config import get_settings
    from careerplan.db import models  # noqa: F401
    from careerplan.db.base import Base
    from careerplan.db.session import dispose_engine, get_engine
    from careerplan.repositories import DatabaseCareerPlanStore

    monkeypatch.setenv("CAREERPLAN_DATABASE_URL", f"sqlite:///{tmp_path}/careerplan.db")
    get_settings.cache_clear()
    dispose_engine()
    Base.metadata.create_all(get_engine())
    try:
        yield DatabaseCareerPlanStore()
    finally:
        dispose_engine()
        get_settings.cache_clear()
