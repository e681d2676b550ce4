"""Reuse-or-regenerate decisions for a user's current career plan."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from time import perf_counter
from typing import Callable, List, Optional

from .career_models import PlanDocument, _now, ensure_utc
from .config import Settings, get_settings
from .errors import (
    ConflictingWriteError,
    InvalidPlanResponse,
    NotFoundError,
    PlanGenerationError,
    PlanGenerationTimeout,
)
from .locks import KeyedLock
from .plan_generator import PlanGenerator, build_prompt_context, coerce_plan_content
from .storage import CareerPlanStorage
from .telemetry import emit_event

logger = logging.getLogger(__name__)


def normalize_user_id(user_id: str) -> str:
    normalized = (user_id or "").strip()
    if not normalized:
        raise ValueError("User id cannot be empty.")
    return normalized


def is_plan_fresh(
    plan: PlanDocument,
    now: datetime,
    *,
    policy: str = "window",
    window: timedelta = timedelta(hours=24),
) -> bool:
    if policy == "latest":
        return True
    created_at = ensure_utc(plan.created_at)
    assert created_at is not None
    return now - created_at < window


class PlanCache:
    """Returns the user's fresh plan, generating and persisting one when needed.

    Generation is serialized per user, so concurrent callers inside this
    process wait for the first generation and then reuse its result. Across
    processes the storage layer rejects a second plan superseding the same
    predecessor and the loser returns the winner's plan.
    """

    def __init__(
        self,
        storage: CareerPlanStorage,
        generator: PlanGenerator,
        *,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _now,
        locks: Optional[KeyedLock] = None,
    ) -> None:
        resolved = settings or get_settings()
        self._storage = storage
        self._generator = generator
        self._clock = clock
        self._locks = locks or KeyedLock()
        self.policy = resolved.plan_reuse_policy
        self.freshness_window = timedelta(hours=resolved.plan_freshness_hours)

    def get_or_create_plan(self, user_id: str, *, force_refresh: bool = False) -> PlanDocument:
        user_id = normalize_user_id(user_id)
        with self._locks.hold(user_id):
            latest = self._storage.find_latest_plan(user_id)
            now = self._clock()
            if (
                latest is not None
                and not force_refresh
                and is_plan_fresh(latest, now, policy=self.policy, window=self.freshness_window)
            ):
                emit_event("plan_cache_hit", user_id=user_id, plan_id=latest.id, created_at=latest.created_at)
                return latest
            return self._generate(user_id, latest)

    def list_plans(self, user_id: str) -> List[PlanDocument]:
        return self._storage.list_plans(normalize_user_id(user_id))

    def _generate(self, user_id: str, latest: Optional[PlanDocument]) -> PlanDocument:
        profile = self._storage.get_user_profile(user_id)
        if profile is None:
            raise NotFoundError(f"User '{user_id}' was not found.")
        context = build_prompt_context(profile, self._storage.completion_stats(user_id))

        started = perf_counter()
        try:
            content = coerce_plan_content(self._generator.generate(context))
        except PlanGenerationError as exc:
            self._record_failure(user_id, exc, started)
            raise
        except Exception as exc:  # noqa: BLE001
            failure = PlanGenerationError(f"Plan generator failed: {exc}")
            self._record_failure(user_id, failure, started)
            raise failure from exc

        content = content.model_copy(update={"progress_breakdown": context.progress_breakdown})
        supersedes_id = latest.id if latest else None
        try:
            plan = self._storage.create_plan(
                user_id,
                content,
                created_at=self._clock(),
                supersedes_id=supersedes_id,
            )
        except ConflictingWriteError:
            winner = self._storage.find_latest_plan(user_id)
            if winner is None or winner.id == supersedes_id:
                raise
            logger.info("Plan for %s was generated concurrently; returning plan %s", user_id, winner.id)
            emit_event("plan_generation_conflict", user_id=user_id, plan_id=winner.id)
            return winner

        emit_event(
            "plan_generation",
            user_id=user_id,
            status="success",
            plan_id=plan.id,
            step_count=len(plan.steps),
            latency_ms=round((perf_counter() - started) * 1000.0, 2),
        )
        return plan

    @staticmethod
    def _record_failure(user_id: str, exc: PlanGenerationError, started: float) -> None:
        if isinstance(exc, PlanGenerationTimeout):
            status = "timeout"
        elif isinstance(exc, InvalidPlanResponse):
            status = "invalid"
        else:
            status = "failed"
        logger.warning("Plan generation %s for %s: %s", status, user_id, exc)
        emit_event(
            "plan_generation",
            user_id=user_id,
            status=status,
            retryable=exc.retryable,
            latency_ms=round((perf_counter() - started) * 1000.0, 2),
        )


__all__ = ["PlanCache", "is_plan_fresh", "normalize_user_id"]
