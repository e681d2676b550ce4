"""ORM models backing the career plan persistence layer."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from ..career_models import EMAIL_MAX_LENGTH, SALARY_MAX_LENGTH, TIMEFRAME_MAX_LENGTH
from .base import Base, TimestampMixin

JSONType = JSON


def _uuid() -> str:
    return str(uuid.uuid4())


class UserProfileModel(TimestampMixin, Base):
    __tablename__ = "user_profiles"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    email: Mapped[str | None] = mapped_column(String(EMAIL_MAX_LENGTH), nullable=True)
    bio: Mapped[str] = mapped_column(Text, default="", nullable=False)
    dream_job: Mapped[str | None] = mapped_column(Text, nullable=True)
    dream_company: Mapped[str | None] = mapped_column(Text, nullable=True)
    dream_salary: Mapped[str | None] = mapped_column(String(SALARY_MAX_LENGTH), nullable=True)
    skills: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    structured_profile: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    tasks: Mapped[list["UserTaskModel"]] = relationship(back_populates="user", cascade="all, delete-orphan")
    plans: Mapped[list["CareerPlanModel"]] = relationship(back_populates="user", cascade="all, delete-orphan")


class UserTaskModel(TimestampMixin, Base):
    __tablename__ = "user_tasks"
    __table_args__ = (Index("ix_user_tasks_user", "user_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(String(16), default="medium", nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped[UserProfileModel] = relationship(back_populates="tasks")


class CareerPlanModel(Base):
    __tablename__ = "career_plans"
    __table_args__ = (
        Index("ix_career_plans_user_created", "user_id", "created_at"),
        UniqueConstraint("user_id", "supersedes_id", name="uq_career_plan_supersedes"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    # Empty string for a user's first plan; NULLs would not collide in the unique constraint.
    supersedes_id: Mapped[str] = mapped_column(String(36), default="", nullable=False)
    content: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    user: Mapped[UserProfileModel] = relationship(back_populates="plans")
    steps: Mapped[list["PlanStepModel"]] = relationship(
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="PlanStepModel.position",
    )


class PlanStepModel(Base):
    __tablename__ = "plan_steps"
    __table_args__ = (UniqueConstraint("plan_id", "position", name="uq_plan_step_position"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("career_plans.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    timeframe: Mapped[str] = mapped_column(String(TIMEFRAME_MAX_LENGTH), default="", nullable=False)
    priority: Mapped[str] = mapped_column(String(16), default="medium", nullable=False)
    resources: Mapped[list[dict]] = mapped_column(JSONType, default=list, nullable=False)
    # category, skill_type, success_metrics, urgency as generated.
    details: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)

    plan: Mapped[CareerPlanModel] = relationship(back_populates="steps")


class StepProgressModel(TimestampMixin, Base):
    __tablename__ = "step_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "step_id", name="uq_step_progress_user_step"),
        Index("ix_step_progress_user", "user_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    step_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("plan_steps.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class NotificationModel(Base):
    __tablename__ = "notifications"
    __table_args__ = (Index("ix_notifications_user_created", "user_id", "created_at"),)

    # Insertion order; breaks ties between notifications sharing a created_at.
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, default=_uuid)
    user_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("user_profiles.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    step_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("plan_steps.id", ondelete="SET NULL"), nullable=True
    )


__all__ = [
    "CareerPlanModel",
    "NotificationModel",
    "PlanStepModel",
    "StepProgressModel",
    "UserProfileModel",
    "UserTaskModel",
]
