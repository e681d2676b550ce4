"""Career plan endpoints: fetch-or-generate and plan history."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Query

from .career_models import PlanDocument
from .plan_cache import PlanCache
from .services import get_plan_cache

router = APIRouter(prefix="/api/plans", tags=["plans"])
logger = logging.getLogger(__name__)


@router.post("/{user_id}", response_model=PlanDocument)
def get_or_create_plan(
    user_id: str,
    refresh: bool = Query(default=False, description="Generate a new plan even if a fresh one exists."),
    cache: PlanCache = Depends(get_plan_cache),
) -> PlanDocument:
    plan = cache.get_or_create_plan(user_id, force_refresh=refresh)
    logger.info("Serving plan %s for %s (%s steps)", plan.id, user_id, len(plan.steps))
    return plan


@router.get("/{user_id}/history", response_model=List[PlanDocument])
def plan_history(user_id: str, cache: PlanCache = Depends(get_plan_cache)) -> List[PlanDocument]:
    return cache.list_plans(user_id)
