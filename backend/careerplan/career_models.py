"""Domain models for profiles, generated plans, step progress, and notifications."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

StepPriority = Literal["high", "medium", "low"]
_PRIORITIES = {"high", "medium", "low"}

# Column widths shared with the ORM models.
USER_ID_MAX_LENGTH = 128
EMAIL_MAX_LENGTH = 320
SALARY_MAX_LENGTH = 64
TIMEFRAME_MAX_LENGTH = 128


def _now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo) and convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class StepStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class NotificationType(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"


class StructuredProfileData(BaseModel):
    """Structured supplementary profile fields extracted from the free-text bio."""

    current_role: Optional[str] = None
    years_of_experience: Optional[float] = Field(default=None, ge=0)
    education: Optional[str] = None
    industries: List[str] = Field(default_factory=list)
    preferences: Dict[str, Any] = Field(default_factory=dict)


class UserProfile(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=USER_ID_MAX_LENGTH)
    email: Optional[str] = Field(default=None, max_length=EMAIL_MAX_LENGTH)
    bio: str = ""
    skills: List[str] = Field(default_factory=list)
    dream_job: Optional[str] = None
    dream_company: Optional[str] = None
    dream_salary: Optional[str] = Field(default=None, max_length=SALARY_MAX_LENGTH)
    structured: StructuredProfileData = Field(default_factory=StructuredProfileData)
    updated_at: datetime = Field(default_factory=_now)

    @field_validator("skills")
    @classmethod
    def _dedupe_skills(cls, value: List[str]) -> List[str]:
        seen: Dict[str, str] = {}
        for skill in value:
            trimmed = skill.strip()
            if trimmed and trimmed.lower() not in seen:
                seen[trimmed.lower()] = trimmed
        return list(seen.values())


class UserTask(BaseModel):
    id: str
    user_id: str
    title: str
    priority: StepPriority = "medium"
    completed: bool = False
    due_date: Optional[datetime] = None


class CompletionStats(BaseModel):
    """Counts feeding the progress breakdown at generation time."""

    completed_tasks: int = Field(default=0, ge=0)
    total_tasks: int = Field(default=0, ge=0)
    completed_steps: int = Field(default=0, ge=0)
    total_steps: int = Field(default=0, ge=0)


class ProgressBreakdown(BaseModel):
    preexisting_experience: float = Field(default=0.0, ge=0, le=100)
    app_progress: float = Field(default=0.0, ge=0, le=100)
    total_progress: float = Field(default=0.0, ge=0, le=100)


class PlanResource(BaseModel):
    """Learning resource attached to a step. Passed through as generated."""

    model_config = ConfigDict(extra="allow")

    name: str
    url: Optional[str] = None
    type: str = "article"
    description: str = ""


class PlanStepDraft(BaseModel):
    """A step as produced by the generative service, before it is persisted."""

    title: str = Field(..., min_length=1)
    description: str = ""
    timeframe: str = Field(default="", max_length=TIMEFRAME_MAX_LENGTH)
    priority: StepPriority = "medium"
    resources: List[PlanResource] = Field(default_factory=list)
    category: Optional[str] = None
    skill_type: Optional[str] = Field(default=None, validation_alias=AliasChoices("skill_type", "skillType"))
    success_metrics: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("success_metrics", "successMetrics"),
    )
    urgency: Optional[str] = None

    @field_validator("timeframe", mode="before")
    @classmethod
    def _clip_timeframe(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip()[:TIMEFRAME_MAX_LENGTH]
        return value

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in _PRIORITIES:
            return value.strip().lower()
        return "medium"

    @field_validator("resources", mode="before")
    @classmethod
    def _coerce_resources(cls, value: Any) -> Any:
        return value if isinstance(value, list) else []

    @field_validator("success_metrics", mode="before")
    @classmethod
    def _coerce_metrics(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [str(metric).strip() for metric in value if str(metric).strip()]


class NextStep(BaseModel):
    step: str
    reason: str = ""


class RiskAssessment(BaseModel):
    level: str = "medium"
    factors: List[str] = Field(default_factory=list)
    mitigation_steps: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("mitigation_steps", "mitigationSteps"),
    )


class PlanContent(BaseModel):
    """Validated output of the generative service."""

    model_config = ConfigDict(populate_by_name=True)

    progress_percentage: int = Field(
        default=0,
        ge=0,
        le=100,
        validation_alias=AliasChoices("progress_percentage", "progressPercentage"),
    )
    analysis: str = ""
    steps: List[PlanStepDraft] = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("steps", "tasks"),
    )
    next_steps: List[NextStep] = Field(
        default_factory=list,
        validation_alias=AliasChoices("next_steps", "nextSteps"),
    )
    risk_assessment: Optional[RiskAssessment] = Field(
        default=None,
        validation_alias=AliasChoices("risk_assessment", "riskAssessment"),
    )
    progress_breakdown: Optional[ProgressBreakdown] = None

    @field_validator("progress_percentage", mode="before")
    @classmethod
    def _clamp_percentage(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(min(max(round(value), 0), 100))
        return value


class PlanStep(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    plan_id: str
    position: int = Field(..., ge=1)
    title: str
    description: str = ""
    timeframe: str = ""
    priority: StepPriority = "medium"
    resources: List[PlanResource] = Field(default_factory=list)
    category: Optional[str] = None
    skill_type: Optional[str] = None
    success_metrics: List[str] = Field(default_factory=list)
    urgency: Optional[str] = None


class PlanDocument(BaseModel):
    """Immutable snapshot of a generated plan and its ordered steps."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    created_at: datetime
    supersedes_id: Optional[str] = None
    progress_percentage: int = 0
    analysis: str = ""
    next_steps: List[NextStep] = Field(default_factory=list)
    risk_assessment: Optional[RiskAssessment] = None
    progress_breakdown: Optional[ProgressBreakdown] = None
    steps: List[PlanStep] = Field(default_factory=list)

    def step(self, step_id: str) -> Optional[PlanStep]:
        return next((step for step in self.steps if step.id == step_id), None)


class StepProgress(BaseModel):
    user_id: str
    step_id: str
    status: StepStatus = StepStatus.NOT_STARTED
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_timestamps(self) -> "StepProgress":
        if (self.completed_at is not None) != (self.status is StepStatus.COMPLETED):
            raise ValueError("completed_at must be set exactly when the step is COMPLETED.")
        if (self.started_at is None) != (self.status is StepStatus.NOT_STARTED):
            raise ValueError("started_at must be cleared exactly when the step is NOT_STARTED.")
        return self


class Notification(BaseModel):
    id: str
    user_id: str
    type: NotificationType
    message: str
    created_at: datetime
    read: bool = False
    step_id: Optional[str] = None


__all__ = [
    "CompletionStats",
    "EMAIL_MAX_LENGTH",
    "NextStep",
    "Notification",
    "NotificationType",
    "PlanContent",
    "PlanDocument",
    "PlanResource",
    "PlanStep",
    "PlanStepDraft",
    "ProgressBreakdown",
    "RiskAssessment",
    "SALARY_MAX_LENGTH",
    "StepPriority",
    "StepProgress",
    "StepStatus",
    "StructuredProfileData",
    "TIMEFRAME_MAX_LENGTH",
    "USER_ID_MAX_LENGTH",
    "UserProfile",
    "UserTask",
    "ensure_utc",
]
