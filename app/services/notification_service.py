"""Notification service."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from app.config import settings
from app.services.common import SupabaseService
from app.utils.errors import NotFoundError
from supabase import Client

logger = logging.getLogger(__name__)

CANDIDACY_STATUS_LABELS = {
    "Validee": "Validée",
    "Rejetee": "Rejetée",
    "EnAttente": "En attente",
}


class NotificationService:
    """Create and manage user notifications and queued e-mails."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def create_notification(
        self,
        user_id: str,
        notification_type: str,
        title: str,
        body: str,
    ) -> dict[str, Any]:
        """Create a notification row."""
        return self.db.insert_one(
            "notifications",
            {
                "user_id": user_id,
                "type": notification_type,
                "title": title,
                "body": body,
            },
        )

    def queue_email(self, to_email: str, subject: str, body: str) -> dict[str, Any]:
        """Queue one e-mail in the outbox drained by the mailer."""
        return self.db.insert_one(
            "email_outbox",
            {
                "to_email": to_email,
                "subject": subject,
                "body": body,
                "status": "pending",
            },
        )

    def dispatch_best_effort(self, label: str, send: Callable[[], Any]) -> bool:
        """Run a side effect whose failure must never fail the caller.

        Returns whether the dispatch went through.
        """
        if not settings.notifications_enabled:
            return False
        try:
            send()
        except Exception:
            logger.exception("Best-effort dispatch failed: %s", label)
            return False
        return True

    def notify_candidacy_status(
        self,
        user: dict[str, Any],
        candidate_name: str,
        election_title: str,
        position_title: str,
        status: str,
    ) -> None:
        """Tell a candidate their candidacy was decided, in-app and by e-mail."""
        label = CANDIDACY_STATUS_LABELS.get(status, "En attente")
        title = f"Candidature {label.lower()}"
        body = (
            f"Bonjour {candidate_name or user.get('name') or ''},\n\n"
            f"Votre candidature au poste de {position_title} pour l'élection "
            f"« {election_title} » est désormais : {label}."
        )
        self.create_notification(
            user_id=str(user["id"]),
            notification_type="candidacy",
            title=title,
            body=body,
        )
        email = user.get("email")
        if email:
            self.queue_email(email, f"{title} - {election_title}", body)

    def list_notifications(
        self,
        user_id: str,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[dict[str, Any]]:
        """Return notifications for a user in reverse chronological order."""
        query = (
            self.db.client.table("notifications")
            .select("*")
            .eq("user_id", user_id)
            .order("created_at", desc=True)
            .limit(limit)
        )
        if unread_only:
            query = query.eq("read", False)
        return self.db.execute(query, default=[])

    def mark_read(self, user_id: str, notification_id: str) -> dict[str, Any]:
        """Mark a single notification as read."""
        rows = self.db.update(
            "notifications",
            {"id": notification_id, "user_id": user_id},
            {"read": True},
        )
        if not rows:
            raise NotFoundError("Notification")
        return rows[0]

    def mark_all_read(self, user_id: str) -> int:
        """Mark all unread notifications as read and return affected count."""
        updated = self.db.update(
            "notifications",
            {"user_id": user_id, "read": False},
            {"read": True},
        )
        return len(updated)
