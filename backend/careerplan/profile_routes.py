"""Profile and task endpoints feeding plan generation."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from .career_models import (
    EMAIL_MAX_LENGTH,
    SALARY_MAX_LENGTH,
    StepPriority,
    StructuredProfileData,
    UserProfile,
    UserTask,
)
from .errors import NotFoundError
from .services import get_storage
from .storage import CareerPlanStorage

router = APIRouter(prefix="/api/profile", tags=["profile"])
logger = logging.getLogger(__name__)


class ProfileUpdateRequest(BaseModel):
    email: Optional[str] = Field(default=None, max_length=EMAIL_MAX_LENGTH)
    bio: str = ""
    skills: List[str] = Field(default_factory=list)
    dream_job: Optional[str] = None
    dream_company: Optional[str] = None
    dream_salary: Optional[str] = Field(default=None, max_length=SALARY_MAX_LENGTH)
    structured: StructuredProfileData = Field(default_factory=StructuredProfileData)


class TaskCreateRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    priority: StepPriority = "medium"


class TaskUpdateRequest(BaseModel):
    completed: bool


@router.put("/{user_id}", response_model=UserProfile)
def upsert_profile(
    user_id: str,
    payload: ProfileUpdateRequest,
    storage: CareerPlanStorage = Depends(get_storage),
) -> UserProfile:
    profile = UserProfile(
        user_id=user_id.strip(),
        updated_at=datetime.now(timezone.utc),
        **payload.model_dump(),
    )
    saved = storage.upsert_user_profile(profile)
    logger.info("Saved profile for %s (%s skills)", saved.user_id, len(saved.skills))
    return saved


@router.get("/{user_id}", response_model=UserProfile)
def get_profile(user_id: str, storage: CareerPlanStorage = Depends(get_storage)) -> UserProfile:
    profile = storage.get_user_profile(user_id)
    if profile is None:
        raise NotFoundError(f"User '{user_id}' was not found.")
    return profile


@router.post("/{user_id}/tasks", response_model=UserTask, status_code=201)
def create_task(
    user_id: str,
    payload: TaskCreateRequest,
    storage: CareerPlanStorage = Depends(get_storage),
) -> UserTask:
    return storage.create_task(user_id, payload.title.strip(), payload.priority)


@router.patch("/{user_id}/tasks/{task_id}", response_model=UserTask)
def update_task(
    user_id: str,
    task_id: str,
    payload: TaskUpdateRequest,
    storage: CareerPlanStorage = Depends(get_storage),
) -> UserTask:
    return storage.set_task_completed(user_id, task_id, payload.completed)
