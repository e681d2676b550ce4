"""Process-wide engine instances shared by the HTTP routes."""

from __future__ import annotations

from typing import Optional

from .notifications import NotificationEmitter, NotificationOutbox
from .plan_cache import PlanCache
from .plan_generator import AgentPlanGenerator
from .repositories import DatabaseCareerPlanStore
from .step_lifecycle import StepLifecycleController
from .storage import CareerPlanStorage

_storage: Optional[CareerPlanStorage] = None
_emitter: Optional[NotificationEmitter] = None
_plan_cache: Optional[PlanCache] = None
_step_lifecycle: Optional[StepLifecycleController] = None


def get_storage() -> CareerPlanStorage:
    global _storage
    if _storage is None:
        _storage = DatabaseCareerPlanStore()
    return _storage


def get_notification_emitter() -> NotificationEmitter:
    global _emitter
    if _emitter is None:
        _emitter = NotificationEmitter(get_storage())
    return _emitter


def get_plan_cache() -> PlanCache:
    global _plan_cache
    if _plan_cache is None:
        _plan_cache = PlanCache(get_storage(), AgentPlanGenerator())
    return _plan_cache


def get_step_lifecycle() -> StepLifecycleController:
    global _step_lifecycle
    if _step_lifecycle is None:
        emitter = get_notification_emitter()
        _step_lifecycle = StepLifecycleController(
            get_storage(),
            emitter,
            outbox=NotificationOutbox(emitter),
        )
    return _step_lifecycle


def reset_services() -> None:
    """Drop cached instances so the next lookup rebuilds them from current settings."""
    global _storage, _emitter, _plan_cache, _step_lifecycle
    _storage = None
    _emitter = None
    _plan_cache = None
    _step_lifecycle = None


__all__ = [
    "get_notification_emitter",
    "get_plan_cache",
    "get_step_lifecycle",
    "get_storage",
    "reset_services",
]
