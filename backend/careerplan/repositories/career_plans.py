"""Database-backed storage for profiles, plans, step progress, and notifications."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Generator, Iterable, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..career_models import (
    CompletionStats,
    NextStep,
    Notification,
    NotificationType,
    PlanContent,
    PlanDocument,
    PlanResource,
    PlanStep,
    ProgressBreakdown,
    RiskAssessment,
    StepProgress,
    StepStatus,
    StructuredProfileData,
    UserProfile,
    UserTask,
    ensure_utc,
)
from ..db.models import (
    CareerPlanModel,
    NotificationModel,
    PlanStepModel,
    StepProgressModel,
    UserProfileModel,
    UserTaskModel,
)
from ..db.session import session_scope
from ..errors import CareerPlanError, ConflictingWriteError, NotFoundError, StorageError

logger = logging.getLogger(__name__)

_STEP_DETAIL_FIELDS = {"category", "skill_type", "success_metrics", "urgency"}


class CareerPlanRepository:
    """Session-scoped persistence operations. Callers own the transaction."""

    def get_profile(self, session: Session, user_id: str) -> UserProfile | None:
        model = session.get(UserProfileModel, user_id)
        return self._profile_to_domain(model) if model else None

    def upsert_profile(self, session: Session, profile: UserProfile) -> UserProfile:
        model = session.get(UserProfileModel, profile.user_id)
        if model is None:
            model = UserProfileModel(id=profile.user_id)
            session.add(model)
        model.email = profile.email
        model.bio = profile.bio
        model.dream_job = profile.dream_job
        model.dream_company = profile.dream_company
        model.dream_salary = profile.dream_salary
        model.skills = list(profile.skills)
        model.structured_profile = profile.structured.model_dump(mode="json")
        model.updated_at = datetime.now(timezone.utc)
        session.flush()
        return self._profile_to_domain(model)

    def create_task(self, session: Session, user_id: str, title: str, priority: str) -> UserTask:
        self._require_profile(session, user_id)
        model = UserTaskModel(user_id=user_id, title=title, priority=priority)
        session.add(model)
        session.flush()
        return self._task_to_domain(model)

    def set_task_completed(self, session: Session, user_id: str, task_id: str, completed: bool) -> UserTask:
        model = session.get(UserTaskModel, task_id)
        if model is None or model.user_id != user_id:
            raise NotFoundError(f"Task '{task_id}' was not found.")
        model.completed = completed
        session.flush()
        return self._task_to_domain(model)

    def completion_stats(self, session: Session, user_id: str) -> CompletionStats:
        total_tasks = session.execute(
            select(func.count()).select_from(UserTaskModel).where(UserTaskModel.user_id == user_id)
        ).scalar_one()
        completed_tasks = session.execute(
            select(func.count())
            .select_from(UserTaskModel)
            .where(UserTaskModel.user_id == user_id, UserTaskModel.completed.is_(True))
        ).scalar_one()

        latest = self._latest_plan_model(session, user_id)
        step_ids = [step.id for step in latest.steps] if latest else []
        completed_steps = 0
        if step_ids:
            completed_steps = session.execute(
                select(func.count())
                .select_from(StepProgressModel)
                .where(
                    StepProgressModel.user_id == user_id,
                    StepProgressModel.step_id.in_(step_ids),
                    StepProgressModel.status == StepStatus.COMPLETED.value,
                )
            ).scalar_one()
        return CompletionStats(
            completed_tasks=completed_tasks,
            total_tasks=total_tasks,
            completed_steps=completed_steps,
            total_steps=len(step_ids),
        )

    def find_latest_plan(self, session: Session, user_id: str) -> PlanDocument | None:
        model = self._latest_plan_model(session, user_id)
        return self._plan_to_domain(model) if model else None

    def list_plans(self, session: Session, user_id: str) -> List[PlanDocument]:
        stmt = (
            select(CareerPlanModel)
            .where(CareerPlanModel.user_id == user_id)
            .options(selectinload(CareerPlanModel.steps))
            .order_by(CareerPlanModel.created_at.desc())
        )
        return [self._plan_to_domain(model) for model in session.execute(stmt).scalars().all()]

    def create_plan(
        self,
        session: Session,
        user_id: str,
        content: PlanContent,
        *,
        created_at: datetime,
        supersedes_id: Optional[str],
    ) -> PlanDocument:
        self._require_profile(session, user_id)
        model = CareerPlanModel(
            user_id=user_id,
            created_at=created_at,
            supersedes_id=supersedes_id or "",
            content=content.model_dump(mode="json", exclude={"steps"}),
        )
        model.steps = [
            PlanStepModel(
                position=index,
                title=draft.title,
                description=draft.description,
                timeframe=draft.timeframe,
                priority=draft.priority,
                resources=[resource.model_dump(mode="json") for resource in draft.resources],
                details=draft.model_dump(mode="json", include=_STEP_DETAIL_FIELDS),
            )
            for index, draft in enumerate(content.steps, start=1)
        ]
        session.add(model)
        session.flush()
        return self._plan_to_domain(model)

    def find_step(self, session: Session, step_id: str) -> tuple[PlanStep, str] | None:
        stmt = (
            select(PlanStepModel, CareerPlanModel.user_id)
            .join(CareerPlanModel, PlanStepModel.plan_id == CareerPlanModel.id)
            .where(PlanStepModel.id == step_id)
        )
        row = session.execute(stmt).first()
        if row is None:
            return None
        step_model, owner_id = row
        return self._step_to_domain(step_model), owner_id

    def find_step_progress(self, session: Session, user_id: str, step_id: str) -> StepProgress | None:
        model = self._progress_model(session, user_id, step_id)
        return self._progress_to_domain(model) if model else None

    def list_step_progress(self, session: Session, user_id: str, step_ids: Iterable[str]) -> List[StepProgress]:
        ids = list(step_ids)
        if not ids:
            return []
        stmt = select(StepProgressModel).where(
            StepProgressModel.user_id == user_id,
            StepProgressModel.step_id.in_(ids),
        )
        return [self._progress_to_domain(model) for model in session.execute(stmt).scalars().all()]

    def upsert_step_progress(
        self,
        session: Session,
        user_id: str,
        step_id: str,
        status: StepStatus,
        started_at: Optional[datetime],
        completed_at: Optional[datetime],
        *,
        expected_status: Optional[StepStatus],
        expected_started_at: Optional[datetime] = None,
    ) -> StepProgress:
        # Validate the invariant before touching the row.
        StepProgress(
            user_id=user_id,
            step_id=step_id,
            status=status,
            started_at=started_at,
            completed_at=completed_at,
        )
        now = datetime.now(timezone.utc)
        if expected_status is None:
            model = StepProgressModel(
                user_id=user_id,
                step_id=step_id,
                status=status.value,
                started_at=started_at,
                completed_at=completed_at,
            )
            session.add(model)
            session.flush()
            return self._progress_to_domain(model)

        stmt = update(StepProgressModel).where(
            StepProgressModel.user_id == user_id,
            StepProgressModel.step_id == step_id,
            StepProgressModel.status == expected_status.value,
        )
        if expected_started_at is not None:
            stmt = stmt.where(StepProgressModel.started_at == expected_started_at)
        stmt = stmt.values(
            status=status.value, started_at=started_at, completed_at=completed_at, updated_at=now
        ).execution_options(synchronize_session=False)
        result = session.execute(stmt)
        if result.rowcount == 0:
            raise ConflictingWriteError(
                f"Step progress for ({user_id}, {step_id}) is no longer {expected_status.value}."
            )
        model = self._progress_model(session, user_id, step_id)
        assert model is not None
        session.refresh(model)
        return self._progress_to_domain(model)

    def create_notification(
        self,
        session: Session,
        user_id: str,
        type: NotificationType,
        message: str,
        *,
        created_at: datetime,
        step_id: Optional[str],
    ) -> Notification:
        model = NotificationModel(
            user_id=user_id,
            type=type.value,
            message=message,
            created_at=created_at,
            read=False,
            step_id=step_id,
        )
        session.add(model)
        session.flush()
        return self._notification_to_domain(model)

    def list_notifications(self, session: Session, user_id: str, *, unread_only: bool) -> List[Notification]:
        stmt = select(NotificationModel).where(NotificationModel.user_id == user_id)
        if unread_only:
            stmt = stmt.where(NotificationModel.read.is_(False))
        stmt = stmt.order_by(NotificationModel.created_at.desc(), NotificationModel.seq.desc())
        return [self._notification_to_domain(model) for model in session.execute(stmt).scalars().all()]

    def mark_notifications_read(
        self, session: Session, user_id: str, notification_ids: Optional[Iterable[str]]
    ) -> int:
        stmt = update(NotificationModel).where(
            NotificationModel.user_id == user_id,
            NotificationModel.read.is_(False),
        )
        if notification_ids is not None:
            stmt = stmt.where(NotificationModel.id.in_(list(notification_ids)))
        result = session.execute(stmt.values(read=True).execution_options(synchronize_session=False))
        return int(result.rowcount or 0)

    # internal helpers ---------------------------------------------------------

    def _require_profile(self, session: Session, user_id: str) -> UserProfileModel:
        model = session.get(UserProfileModel, user_id)
        if model is None:
            raise NotFoundError(f"User '{user_id}' was not found.")
        return model

    def _latest_plan_model(self, session: Session, user_id: str) -> CareerPlanModel | None:
        stmt = (
            select(CareerPlanModel)
            .where(CareerPlanModel.user_id == user_id)
            .options(selectinload(CareerPlanModel.steps))
            .order_by(CareerPlanModel.created_at.desc())
            .limit(1)
        )
        return session.execute(stmt).scalar_one_or_none()

    def _progress_model(self, session: Session, user_id: str, step_id: str) -> StepProgressModel | None:
        stmt = select(StepProgressModel).where(
            StepProgressModel.user_id == user_id,
            StepProgressModel.step_id == step_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    @staticmethod
    def _profile_to_domain(model: UserProfileModel) -> UserProfile:
        return UserProfile(
            user_id=model.id,
            email=model.email,
            bio=model.bio or "",
            skills=list(model.skills or []),
            dream_job=model.dream_job,
            dream_company=model.dream_company,
            dream_salary=model.dream_salary,
            structured=StructuredProfileData.model_validate(model.structured_profile or {}),
            updated_at=ensure_utc(model.updated_at) or datetime.now(timezone.utc),
        )

    @staticmethod
    def _task_to_domain(model: UserTaskModel) -> UserTask:
        return UserTask(
            id=model.id,
            user_id=model.user_id,
            title=model.title,
            priority=model.priority if model.priority in {"high", "medium", "low"} else "medium",
            completed=model.completed,
            due_date=ensure_utc(model.due_date),
        )

    @staticmethod
    def _step_to_domain(model: PlanStepModel) -> PlanStep:
        return PlanStep(
            id=model.id,
            plan_id=model.plan_id,
            position=model.position,
            title=model.title,
            description=model.description or "",
            timeframe=model.timeframe or "",
            priority=model.priority if model.priority in {"high", "medium", "low"} else "medium",
            resources=[PlanResource.model_validate(entry) for entry in model.resources or []],
            **{key: value for key, value in (model.details or {}).items() if key in _STEP_DETAIL_FIELDS},
        )

    def _plan_to_domain(self, model: CareerPlanModel) -> PlanDocument:
        content = model.content or {}
        risk = content.get("risk_assessment")
        breakdown = content.get("progress_breakdown")
        created_at = ensure_utc(model.created_at)
        assert created_at is not None
        return PlanDocument(
            id=model.id,
            user_id=model.user_id,
            created_at=created_at,
            supersedes_id=model.supersedes_id or None,
            progress_percentage=int(content.get("progress_percentage", 0)),
            analysis=content.get("analysis", ""),
            next_steps=[NextStep.model_validate(entry) for entry in content.get("next_steps", [])],
            risk_assessment=RiskAssessment.model_validate(risk) if risk else None,
            progress_breakdown=ProgressBreakdown.model_validate(breakdown) if breakdown else None,
            steps=[self._step_to_domain(step) for step in sorted(model.steps, key=lambda s: s.position)],
        )

    @staticmethod
    def _progress_to_domain(model: StepProgressModel) -> StepProgress:
        return StepProgress(
            user_id=model.user_id,
            step_id=model.step_id,
            status=StepStatus(model.status),
            started_at=ensure_utc(model.started_at),
            completed_at=ensure_utc(model.completed_at),
            updated_at=ensure_utc(model.updated_at),
        )

    @staticmethod
    def _notification_to_domain(model: NotificationModel) -> Notification:
        created_at = ensure_utc(model.created_at)
        assert created_at is not None
        return Notification(
            id=model.id,
            user_id=model.user_id,
            type=NotificationType(model.type),
            message=model.message,
            created_at=created_at,
            read=model.read,
            step_id=model.step_id,
        )


career_plans = CareerPlanRepository()


@contextmanager
def _storage_errors(operation: str) -> Generator[None, None, None]:
    try:
        yield
    except CareerPlanError:
        raise
    except IntegrityError as exc:
        logger.info("Conflicting write during %s: %s", operation, exc.orig)
        raise ConflictingWriteError(f"Conflicting write during {operation}.") from exc
    except SQLAlchemyError as exc:
        logger.exception("Storage failure during %s", operation)
        raise StorageError(f"Storage failure during {operation}: {exc}") from exc


class DatabaseCareerPlanStore:
    """``CareerPlanStorage`` implementation that runs each call in its own transaction."""

    def __init__(self, repository: Optional[CareerPlanRepository] = None) -> None:
        self._repo = repository or career_plans

    def get_user_profile(self, user_id: str) -> Optional[UserProfile]:
        with _storage_errors("get_user_profile"), session_scope(commit=False) as session:
            return self._repo.get_profile(session, user_id)

    def upsert_user_profile(self, profile: UserProfile) -> UserProfile:
        with _storage_errors("upsert_user_profile"), session_scope() as session:
            return self._repo.upsert_profile(session, profile)

    def create_task(self, user_id: str, title: str, priority: str = "medium") -> UserTask:
        with _storage_errors("create_task"), session_scope() as session:
            return self._repo.create_task(session, user_id, title, priority)

    def set_task_completed(self, user_id: str, task_id: str, completed: bool) -> UserTask:
        with _storage_errors("set_task_completed"), session_scope() as session:
            return self._repo.set_task_completed(session, user_id, task_id, completed)

    def completion_stats(self, user_id: str) -> CompletionStats:
        with _storage_errors("completion_stats"), session_scope(commit=False) as session:
            return self._repo.completion_stats(session, user_id)

    def find_latest_plan(self, user_id: str) -> Optional[PlanDocument]:
        with _storage_errors("find_latest_plan"), session_scope(commit=False) as session:
            return self._repo.find_latest_plan(session, user_id)

    def list_plans(self, user_id: str) -> List[PlanDocument]:
        with _storage_errors("list_plans"), session_scope(commit=False) as session:
            return self._repo.list_plans(session, user_id)

    def create_plan(
        self,
        user_id: str,
        content: PlanContent,
        *,
        created_at: datetime,
        supersedes_id: Optional[str],
    ) -> PlanDocument:
        with _storage_errors("create_plan"), session_scope() as session:
            return self._repo.create_plan(
                session, user_id, content, created_at=created_at, supersedes_id=supersedes_id
            )

    def find_step(self, step_id: str) -> Optional[tuple[PlanStep, str]]:
        with _storage_errors("find_step"), session_scope(commit=False) as session:
            return self._repo.find_step(session, step_id)

    def find_step_progress(self, user_id: str, step_id: str) -> Optional[StepProgress]:
        with _storage_errors("find_step_progress"), session_scope(commit=False) as session:
            return self._repo.find_step_progress(session, user_id, step_id)

    def list_step_progress(self, user_id: str, step_ids: Iterable[str]) -> List[StepProgress]:
        with _storage_errors("list_step_progress"), session_scope(commit=False) as session:
            return self._repo.list_step_progress(session, user_id, step_ids)

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
        with _storage_errors("upsert_step_progress"), session_scope() as session:
            return self._repo.upsert_step_progress(
                session,
                user_id,
                step_id,
                status,
                started_at,
                completed_at,
                expected_status=expected_status,
                expected_started_at=expected_started_at,
            )

    def create_notification(
        self,
        user_id: str,
        type: NotificationType,
        message: str,
        *,
        created_at: datetime,
        step_id: Optional[str] = None,
    ) -> Notification:
        with _storage_errors("create_notification"), session_scope() as session:
            return self._repo.create_notification(
                session, user_id, type, message, created_at=created_at, step_id=step_id
            )

    def list_notifications(self, user_id: str, *, unread_only: bool = False) -> List[Notification]:
        with _storage_errors("list_notifications"), session_scope(commit=False) as session:
            return self._repo.list_notifications(session, user_id, unread_only=unread_only)

    def mark_notifications_read(self, user_id: str, notification_ids: Optional[Iterable[str]] = None) -> int:
        with _storage_errors("mark_notifications_read"), session_scope() as session:
            return self._repo.mark_notifications_read(session, user_id, notification_ids)


__all__ = ["CareerPlanRepository", "DatabaseCareerPlanStore", "career_plans"]
