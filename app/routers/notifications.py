"""Notification endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_actor, get_db_client
from app.services.common import Actor
from app.services.notification_service import NotificationService
from supabase import Client

router = APIRouter()


@router.get("")
def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return notifications for the caller."""
    notifications = NotificationService(client).list_notifications(
        user_id=actor.user_id,
        unread_only=unread_only,
        limit=limit,
    )
    return {"success": True, "notifications": notifications}


@router.put("/read-all")
def mark_all_read(
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Mark all of the caller's notifications as read."""
    count = NotificationService(client).mark_all_read(user_id=actor.user_id)
    return {"success": True, "count": count}


@router.put("/{notification_id}/read")
def mark_read(
    notification_id: str,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Mark a single notification as read."""
    notification = NotificationService(client).mark_read(
        user_id=actor.user_id,
        notification_id=notification_id,
    )
    return {"success": True, "notification": notification}
