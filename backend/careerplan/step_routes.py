"""Step board and lifecycle transition endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from .career_models import PlanStep, StepProgress, StepStatus
from .services import get_step_lifecycle
from .step_lifecycle import StepLifecycleController, StepView

router = APIRouter(prefix="/api/steps", tags=["steps"])


class StepActionRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class StepRestartRequest(StepActionRequest):
    started_at: datetime = Field(..., description="Start time of the timeline being restarted.")


class StepViewPayload(BaseModel):
    step: PlanStep
    status: StepStatus
    timeline_percent: int = Field(..., ge=0, le=100)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


def _view_payload(view: StepView) -> StepViewPayload:
    return StepViewPayload(
        step=view.step,
        status=view.status,
        timeline_percent=view.timeline_percent,
        started_at=view.started_at,
        completed_at=view.completed_at,
    )


@router.get("", response_model=List[StepViewPayload])
def list_steps(
    user_id: str = Query(..., min_length=1),
    lifecycle: StepLifecycleController = Depends(get_step_lifecycle),
) -> List[StepViewPayload]:
    return [_view_payload(view) for view in lifecycle.list_current_steps(user_id)]


@router.get("/{step_id}", response_model=StepViewPayload)
def get_step(
    step_id: str,
    user_id: str = Query(..., min_length=1),
    lifecycle: StepLifecycleController = Depends(get_step_lifecycle),
) -> StepViewPayload:
    return _view_payload(lifecycle.describe_step(user_id, step_id))


@router.post("/{step_id}/start", response_model=StepProgress)
def start_step(
    step_id: str,
    payload: StepActionRequest,
    lifecycle: StepLifecycleController = Depends(get_step_lifecycle),
) -> StepProgress:
    return lifecycle.start(payload.user_id, step_id)


@router.post("/{step_id}/complete", response_model=StepProgress)
def complete_step(
    step_id: str,
    payload: StepActionRequest,
    lifecycle: StepLifecycleController = Depends(get_step_lifecycle),
) -> StepProgress:
    return lifecycle.complete(payload.user_id, step_id)


@router.post("/{step_id}/reset", response_model=StepProgress)
def reset_step(
    step_id: str,
    payload: StepActionRequest,
    lifecycle: StepLifecycleController = Depends(get_step_lifecycle),
) -> StepProgress:
    return lifecycle.reset(payload.user_id, step_id)


@router.post("/{step_id}/restart", response_model=StepProgress)
def restart_step(
    step_id: str,
    payload: StepRestartRequest,
    lifecycle: StepLifecycleController = Depends(get_step_lifecycle),
) -> StepProgress:
    return lifecycle.restart(payload.user_id, step_id, payload.started_at)
