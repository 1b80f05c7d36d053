"""Shared Supabase data access helpers."""

from __future__ import annotations

import logging
import time
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from postgrest import APIError

from app.config import settings
from app.utils.errors import AppError, ForbiddenError, InvalidInputError, NotFoundError
from supabase import Client

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION_CODE = "23505"
FOREIGN_KEY_VIOLATION_CODE = "23503"


@dataclass(frozen=True)
class Actor:
    """Authenticated caller passed explicitly to every service operation."""

    user_id: str
    email: str | None = None
    role: str | None = None
    member_id: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == settings.admin_role


def is_unique_violation(exc: APIError) -> bool:
    """Return True when a write failed on a unique constraint."""
    message = str(getattr(exc, "message", "")).lower()
    code = str(getattr(exc, "code", "")).lower()
    return code == UNIQUE_VIOLATION_CODE or "duplicate key value" in message


def is_foreign_key_violation(exc: APIError) -> bool:
    """Return True when a write failed because other rows still reference it."""
    return str(getattr(exc, "code", "")) == FOREIGN_KEY_VIOLATION_CODE


def _apply_filters(query, filters: dict[str, Any] | None):
    if not filters:
        return query
    for key, value in filters.items():
        if isinstance(value, list | tuple | set):
            query = query.in_(key, [str(item) for item in value])
        else:
            query = query.eq(key, value)
    return query


class SupabaseService:
    """Thin helper wrapper around a Supabase client."""

    def __init__(self, client: Client) -> None:
        self.client = client

    def execute(
        self,
        query,
        default: Any = None,
        conflict: AppError | None = None,
        referenced: AppError | None = None,
    ) -> Any:
        """Execute a Supabase query and normalize API errors.

        ``conflict`` is raised instead of the generic input error when the
        database rejects the write with a unique-constraint violation, and
        ``referenced`` when rows that other rows still point to are removed.
        """
        started = time.perf_counter()
        try:
            response = query.execute()
        except APIError as exc:
            if conflict is not None and is_unique_violation(exc):
                raise conflict from exc
            if referenced is not None and is_foreign_key_violation(exc):
                raise referenced from exc
            message = getattr(exc, "message", None) or "Database request failed"
            raise InvalidInputError(str(message)) from exc

        elapsed_ms = (time.perf_counter() - started) * 1000
        threshold_ms = settings.slow_query_log_threshold_ms
        if threshold_ms > 0 and elapsed_ms >= threshold_ms:
            logger.warning("Slow Supabase query %.1fms", elapsed_ms)
        data = response.data
        return default if data is None and default is not None else data

    def select_one(
        self,
        table: str,
        filters: dict[str, Any],
        columns: str = "*",
        not_found_label: str | None = None,
        not_found_message: str | None = None,
    ) -> dict[str, Any]:
        """Select a single row and raise NotFoundError when missing."""
        query = _apply_filters(self.client.table(table).select(columns), filters)
        rows = self.execute(query.limit(1), default=[])
        if not rows:
            raise NotFoundError(not_found_label or table, message=not_found_message)
        return rows[0]

    def find_one(self, table: str, filters: dict[str, Any]) -> dict[str, Any] | None:
        """Select a single row or return None."""
        rows = self.select_many(table, filters=filters, limit=1)
        return rows[0] if rows else None

    def select_many(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        columns: str = "*",
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict[str, Any]]:
        """Select many rows with optional filters and paging.

        List-valued filters become ``IN`` clauses.
        """
        query = _apply_filters(self.client.table(table).select(columns), filters)
        if order_by:
            query = query.order(order_by, desc=descending)
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        return self.execute(query, default=[])

    def count(self, table: str, filters: dict[str, Any] | None = None) -> int:
        """Count rows in a table with optional equality filters."""
        query = _apply_filters(
            self.client.table(table).select("*", count="exact", head=True), filters
        )
        try:
            response = query.execute()
            return response.count or 0
        except APIError as exc:
            message = getattr(exc, "message", None) or "Database request failed"
            raise InvalidInputError(str(message)) from exc

    def insert_one(
        self,
        table: str,
        payload: dict[str, Any],
        conflict: AppError | None = None,
    ) -> dict[str, Any]:
        """Insert one row and return the created object."""
        query = self.client.table(table).insert(payload)
        rows = self.execute(query, default=[], conflict=conflict)
        if not rows:
            raise InvalidInputError(f"Failed to insert into {table}")
        return rows[0]

    def insert_many(
        self,
        table: str,
        payloads: list[dict[str, Any]],
        conflict: AppError | None = None,
    ) -> list[dict[str, Any]]:
        """Insert many rows in one statement and return inserted rows."""
        if not payloads:
            return []
        query = self.client.table(table).insert(payloads)
        return self.execute(query, default=[], conflict=conflict)

    def update(
        self,
        table: str,
        filters: dict[str, Any],
        payload: dict[str, Any],
        conflict: AppError | None = None,
    ) -> list[dict[str, Any]]:
        """Update rows by equality filters and return the updated rows."""
        query = _apply_filters(self.client.table(table).update(payload), filters)
        return self.execute(query, default=[], conflict=conflict)

    def delete(
        self,
        table: str,
        filters: dict[str, Any],
        referenced: AppError | None = None,
    ) -> list[dict[str, Any]]:
        """Delete rows by equality filters and return removed rows."""
        query = _apply_filters(self.client.table(table).delete(), filters)
        return self.execute(query, default=[], referenced=referenced)

    def rpc(
        self,
        function: str,
        params: dict[str, Any],
        conflict: AppError | None = None,
        referenced: AppError | None = None,
    ) -> list[dict[str, Any]]:
        """Call a Postgres function; its body runs in one transaction."""
        return self.execute(
            self.client.rpc(function, params),
            default=[],
            conflict=conflict,
            referenced=referenced,
        )

    def get_user(self, user_id: str) -> dict[str, Any]:
        """Return a public user record."""
        return self.select_one("users", {"id": user_id}, not_found_label="Utilisateur")

    def get_role(self, user_id: str) -> str | None:
        """Return the application role of a user, or None when unknown."""
        row = self.find_one("users", {"id": user_id})
        return row.get("role") if row else None

    def ensure_role(self, user_id: str, required: set[str], reason: str) -> None:
        """Raise ForbiddenError unless the user's current role is in ``required``."""
        if self.get_role(user_id) not in required:
            raise ForbiddenError(reason)

    def is_admin(self, user_id: str) -> bool:
        """Return whether the user currently holds the administrator role."""
        return self.get_role(user_id) == settings.admin_role

    def ensure_admin(self, user_id: str, reason: str = "Accès refusé - Admin requis") -> None:
        """Ensure the user is an administrator, reading the role fresh."""
        self.ensure_role(user_id, {settings.admin_role}, reason)

    def get_member_by_user(self, user_id: str) -> dict[str, Any] | None:
        """Return the member profile linked to a user account."""
        return self.find_one("members", {"user_id": user_id})

    def get_members_map(self, member_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        """Fetch multiple members and return an id-keyed mapping."""
        ids = sorted({str(mid) for mid in member_ids if mid})
        if not ids:
            return {}
        rows = self.select_many("members", filters={"id": ids})
        return {str(row["id"]): row for row in rows}


def member_display_name(member: dict[str, Any] | None) -> str:
    """Compose the civility + first + last name label shown to users."""
    if not member:
        return ""
    parts = [member.get("civility"), member.get("first_name"), member.get("last_name")]
    return " ".join(str(part).strip() for part in parts if part and str(part).strip())


def index_by(rows: list[dict[str, Any]], key: str = "id") -> dict[str, dict[str, Any]]:
    """Index rows by a unique key."""
    return {str(row[key]): row for row in rows}


def group_by(rows: list[dict[str, Any]], key: str) -> dict[str, list[dict[str, Any]]]:
    """Group rows by an arbitrary key."""
    grouped: dict[str, list[dict[str, Any]]] = defaultdict(list)
    for row in rows:
        grouped[str(row[key])].append(row)
    return grouped
