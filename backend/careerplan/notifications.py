"""Notification records describing step lifecycle transitions."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Deque, List, Optional

from .career_models import Notification, NotificationType, _now
from .errors import StorageError
from .storage import CareerPlanStorage
from .telemetry import emit_event

logger = logging.getLogger(__name__)


class NotificationEmitter:
    """Append-only writer for notification records."""

    def __init__(self, storage: CareerPlanStorage, *, clock: Callable[[], datetime] = _now) -> None:
        self._storage = storage
        self._clock = clock

    def emit(
        self,
        user_id: str,
        type: NotificationType | str,
        message: str,
        step_id: Optional[str] = None,
    ) -> str:
        notification = self._storage.create_notification(
            user_id,
            NotificationType(type),
            message,
            created_at=self._clock(),
            step_id=step_id,
        )
        return notification.id

    def list_for_user(self, user_id: str, *, unread_only: bool = False) -> List[Notification]:
        return self._storage.list_notifications(user_id, unread_only=unread_only)

    def mark_read(self, user_id: str, notification_ids: Optional[List[str]] = None) -> int:
        return self._storage.mark_notifications_read(user_id, notification_ids)


@dataclass(frozen=True)
class NotificationDraft:
    user_id: str
    type: NotificationType
    message: str
    step_id: Optional[str] = None


class NotificationOutbox:
    """Holds notifications whose emission failed after the transition was committed."""

    def __init__(self, emitter: NotificationEmitter) -> None:
        self._emitter = emitter
        self._pending: Deque[NotificationDraft] = deque()
        self._lock = threading.Lock()

    def deliver(self, draft: NotificationDraft) -> Optional[str]:
        """Emit ``draft`` now, queueing it for retry on storage failure."""
        try:
            return self._emitter.emit(draft.user_id, draft.type, draft.message, draft.step_id)
        except StorageError as exc:
            logger.warning(
                "Queued %s notification for %s after emit failure: %s",
                draft.type.value,
                draft.user_id,
                exc,
            )
            emit_event(
                "notification_emit_failed",
                user_id=draft.user_id,
                step_id=draft.step_id,
                type=draft.type,
            )
            with self._lock:
                self._pending.append(draft)
            return None

    def retry_pending(self) -> int:
        """Re-attempt queued drafts once each. Returns the number delivered."""
        with self._lock:
            batch = list(self._pending)
            self._pending.clear()

        delivered = 0
        failed: List[NotificationDraft] = []
        for draft in batch:
            try:
                self._emitter.emit(draft.user_id, draft.type, draft.message, draft.step_id)
                delivered += 1
            except StorageError:
                failed.append(draft)

        if failed:
            with self._lock:
                self._pending.extendleft(reversed(failed))
        emit_event("notification_retry", delivered=delivered, remaining=len(failed))
        return delivered

    def pending(self) -> List[NotificationDraft]:
        with self._lock:
            return list(self._pending)


__all__ = ["NotificationDraft", "NotificationEmitter", "NotificationOutbox"]
