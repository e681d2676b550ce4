"""Error taxonomy surfaced by the plan cache and step lifecycle engine."""

from __future__ import annotations


class CareerPlanError(RuntimeError):
    """Base class for engine errors. ``retryable`` tells callers whether a retry can succeed."""

    retryable = False


class NotFoundError(CareerPlanError, LookupError):
    """Raised when a user, plan, or step does not exist (or is not owned by the caller)."""


class InvalidTransitionError(CareerPlanError):
    """Raised when a step lifecycle action is illegal from the current status."""

    def __init__(self, action: str, current_status: str) -> None:
        super().__init__(f"Cannot {action} a step that is {current_status}.")
        self.action = action
        self.current_status = current_status


class PlanGenerationError(CareerPlanError):
    """Raised when the generative service fails to produce a usable plan."""

    retryable = True


class PlanGenerationTimeout(PlanGenerationError):
    """Raised when plan generation exceeds the configured timeout."""


class InvalidPlanResponse(PlanGenerationError):
    """Raised when the generative service returns content that fails validation."""

    retryable = False


class ConflictingWriteError(CareerPlanError):
    """Raised by storage when a concurrent writer already changed the targeted row."""

    retryable = True


class StorageError(CareerPlanError):
    """Raised when the persistence layer fails."""

    retryable = True


__all__ = [
    "CareerPlanError",
    "ConflictingWriteError",
    "InvalidPlanResponse",
    "InvalidTransitionError",
    "NotFoundError",
    "PlanGenerationError",
    "PlanGenerationTimeout",
    "StorageError",
]
