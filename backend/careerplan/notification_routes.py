"""Notification inbox endpoints."""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from .career_models import Notification
from .notifications import NotificationEmitter
from .services import get_notification_emitter

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


class MarkReadRequest(BaseModel):
    notification_ids: Optional[List[str]] = None


class MarkReadResponse(BaseModel):
    updated: int


@router.get("/{user_id}", response_model=List[Notification])
def list_notifications(
    user_id: str,
    unread_only: bool = Query(default=False),
    emitter: NotificationEmitter = Depends(get_notification_emitter),
) -> List[Notification]:
    return emitter.list_for_user(user_id, unread_only=unread_only)


@router.post("/{user_id}/read", response_model=MarkReadResponse)
def mark_notifications_read(
    user_id: str,
    payload: MarkReadRequest,
    emitter: NotificationEmitter = Depends(get_notification_emitter),
) -> MarkReadResponse:
    return MarkReadResponse(updated=emitter.mark_read(user_id, payload.notification_ids))
