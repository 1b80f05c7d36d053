"""In-memory stand-in for the Supabase client used by service tests.

Only the query-builder surface the services touch is emulated. Constraints
mirror the migration and raise ``postgrest.APIError`` with the SQLSTATE
PostgREST reports: 23505 for unique keys, 23514 for check constraints and
23503 when a delete leaves ballots pointing at a removed candidacy.
"""

from __future__ import annotations

import copy
import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any

from postgrest import APIError

from app.services.common import Actor
from app.services.position_service import build_position_payload
from app.utils.time import now_utc, to_iso

UNIQUE_KEYS: dict[str, list[tuple[str, ...]]] = {
    "users": [("id",)],
    "members": [("user_id",)],
    "candidacies": [("election_id", "position_id", "member_id")],
    "votes": [("election_id", "position_id", "member_id")],
}
CASCADES: dict[str, list[tuple[str, str]]] = {
    "elections": [
        ("positions", "election_id"),
        ("candidacies", "election_id"),
        ("votes", "election_id"),
    ],
    "positions": [("candidacies", "position_id"), ("votes", "position_id")],
}


def _norm(value: Any) -> Any:
    return None if value is None else str(value)


def _comparable(value: Any) -> Any:
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)
    return value


def _dates_in_order(row: dict[str, Any]) -> bool:
    if row.get("status") == "Cloturee":
        return True
    return _comparable(row["closes_at"]) >= _comparable(row["opens_at"])


CHECKS: dict[str, list[tuple[str, Callable[[dict[str, Any]], bool]]]] = {
    "elections": [("elections_dates_check", _dates_in_order)],
    "votes": [
        (
            "votes_status_check",
            lambda row: (row.get("status") == "Blanc") == (row.get("candidacy_id") is None),
        )
    ],
}


def check_error(constraint: str) -> APIError:
    return APIError(
        {
            "message": f'new row violates check constraint "{constraint}"',
            "code": "23514",
            "hint": None,
            "details": None,
        }
    )


def reference_error() -> APIError:
    return APIError(
        {
            "message": 'update or delete on table "candidacies" violates foreign key '
            'constraint "votes_candidacy_id_fkey" on table "votes"',
            "code": "23503",
            "hint": None,
            "details": None,
        }
    )


def duplicate_error(table: str) -> APIError:
    return APIError(
        {
            "message": f'duplicate key value violates unique constraint "{table}_key"',
            "code": "23505",
            "hint": None,
            "details": None,
        }
    )


class FakeQuery:
    """Chainable query mirroring the postgrest request builders."""

    def __init__(self, db: FakeSupabase, table: str) -> None:
        self.db = db
        self.table = table
        self.operation = "select"
        self.columns = "*"
        self.payload: Any = None
        self.count: str | None = None
        self.head = False
        self.filters: list[Callable[[dict[str, Any]], bool]] = []
        self.ordering: list[tuple[str, bool]] = []
        self._limit: int | None = None
        self._offset = 0

    def select(self, columns: str = "*", count: str | None = None, head: bool = False):
        self.columns = columns
        self.count = count
        self.head = head
        return self

    def insert(self, payload: Any):
        self.operation = "insert"
        self.payload = payload
        return self

    def update(self, payload: dict[str, Any]):
        self.operation = "update"
        self.payload = payload
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def eq(self, column: str, value: Any):
        self.filters.append(lambda row: _norm(row.get(column)) == _norm(value))
        return self

    def neq(self, column: str, value: Any):
        self.filters.append(lambda row: _norm(row.get(column)) != _norm(value))
        return self

    def in_(self, column: str, values: list[Any]):
        wanted = {_norm(value) for value in values}
        self.filters.append(lambda row: _norm(row.get(column)) in wanted)
        return self

    def _compare(self, column: str, value: Any, test: Callable[[Any, Any], bool]):
        def check(row: dict[str, Any]) -> bool:
            current = row.get(column)
            return current is not None and test(_comparable(current), _comparable(value))

        self.filters.append(check)
        return self

    def lt(self, column: str, value: Any):
        return self._compare(column, value, lambda a, b: a < b)

    def lte(self, column: str, value: Any):
        return self._compare(column, value, lambda a, b: a <= b)

    def gt(self, column: str, value: Any):
        return self._compare(column, value, lambda a, b: a > b)

    def gte(self, column: str, value: Any):
        return self._compare(column, value, lambda a, b: a >= b)

    def order(self, column: str, desc: bool = False):
        self.ordering.append((column, desc))
        return self

    def limit(self, size: int):
        self._limit = size
        return self

    def offset(self, size: int):
        self._offset = size
        return self

    def _matches(self) -> list[dict[str, Any]]:
        return [row for row in self.db.tables[self.table] if all(f(row) for f in self.filters)]

    def _project(self, row: dict[str, Any]) -> dict[str, Any]:
        if self.columns.strip() == "*":
            return copy.deepcopy(row)
        names = [name.strip() for name in self.columns.split(",")]
        return {name: copy.deepcopy(row.get(name)) for name in names}

    def execute(self) -> SimpleNamespace:
        self.db.run_hooks(self.table, self.operation)
        if self.operation == "insert":
            rows = self.payload if isinstance(self.payload, list) else [self.payload]
            return SimpleNamespace(data=self.db.insert_rows(self.table, rows), count=None)
        if self.operation == "update":
            return SimpleNamespace(
                data=self.db.update_rows(self.table, self._matches(), self.payload), count=None
            )
        if self.operation == "delete":
            snapshot = copy.deepcopy(self.db.tables)
            removed = self.db.delete_rows(self.table, self._matches())
            try:
                self.db.check_references()
            except APIError:
                self.db.tables = snapshot
                raise
            return SimpleNamespace(data=removed, count=None)

        rows = self._matches()
        for column, desc in reversed(self.ordering):
            rows.sort(key=lambda row: (row.get(column) is None, _comparable(row.get(column))))
            if desc:
                rows.reverse()
        total = len(rows)
        rows = rows[self._offset :]
        if self._limit is not None:
            rows = rows[: self._limit]
        data = [] if self.head else [self._project(row) for row in rows]
        return SimpleNamespace(data=data, count=total if self.count else None)


class FakeRpc:
    def __init__(self, db: FakeSupabase, function: str, params: dict[str, Any]) -> None:
        self.db = db
        self.function = function
        self.params = params

    def execute(self) -> SimpleNamespace:
        self.db.run_hooks("rpc", self.function)
        handler = getattr(self.db, f"rpc_{self.function}")
        snapshot = copy.deepcopy(self.db.tables)
        try:
            data = handler(**self.params)
            self.db.check_references()
        except APIError:
            self.db.tables = snapshot
            raise
        return SimpleNamespace(data=data, count=None)


class FakeSupabase:
    """Tables held in dicts, with seeding helpers for the election domain."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {
            name: []
            for name in (
                "users",
                "members",
                "elections",
                "positions",
                "candidacies",
                "votes",
                "notifications",
                "email_outbox",
            )
        }
        self.hooks: dict[tuple[str, str], list[Callable[[], None]]] = {}
        self._clock = datetime(2026, 1, 1, tzinfo=UTC)

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def rpc(self, function: str, params: dict[str, Any]) -> FakeRpc:
        return FakeRpc(self, function, params)

    def before(self, table: str, operation: str, hook: Callable[[], None]) -> None:
        """Run ``hook`` before every ``operation`` on ``table`` (``"rpc"`` for functions)."""
        self.hooks.setdefault((table, operation), []).append(hook)

    def run_hooks(self, table: str, operation: str) -> None:
        for hook in self.hooks.get((table, operation), []):
            hook()

    def _tick(self) -> str:
        self._clock += timedelta(milliseconds=1)
        return to_iso(self._clock)

    def _violates(self, table: str, candidate: dict[str, Any], rows: list[dict[str, Any]]) -> bool:
        for key in UNIQUE_KEYS.get(table, []):
            wanted = tuple(_norm(candidate.get(column)) for column in key)
            for row in rows:
                if row is not candidate and tuple(_norm(row.get(c)) for c in key) == wanted:
                    return True
        return False

    def _check(self, table: str, row: dict[str, Any]) -> None:
        for constraint, holds in CHECKS.get(table, []):
            if not holds(row):
                raise check_error(constraint)

    def check_references(self) -> None:
        """Fail like the deferred-to-statement-end ballot foreign key."""
        candidacy_ids = {_norm(row["id"]) for row in self.tables["candidacies"]}
        for vote in self.tables["votes"]:
            candidacy_id = vote.get("candidacy_id")
            if candidacy_id is not None and _norm(candidacy_id) not in candidacy_ids:
                raise reference_error()

    def insert_rows(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        prepared = []
        for payload in rows:
            row = copy.deepcopy(payload)
            row.setdefault("id", str(uuid.uuid4()))
            row.setdefault("created_at", self._tick())
            if table == "notifications":
                row.setdefault("read", False)
            self._check(table, row)
            prepared.append(row)

        # All rows are checked before any is stored, like one INSERT statement.
        existing = self.tables[table]
        for index, row in enumerate(prepared):
            if self._violates(table, row, existing + prepared[:index]):
                raise duplicate_error(table)
        existing.extend(prepared)
        return copy.deepcopy(prepared)

    def update_rows(
        self,
        table: str,
        rows: list[dict[str, Any]],
        payload: dict[str, Any],
    ) -> list[dict[str, Any]]:
        for row in rows:
            merged = {**row, **payload}
            self._check(table, merged)
            others = [other for other in self.tables[table] if other is not row]
            if self._violates(table, merged, others):
                raise duplicate_error(table)
        for row in rows:
            row.update(copy.deepcopy(payload))
        return copy.deepcopy(rows)

    def delete_rows(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        removed_ids = {id(row) for row in rows}
        self.tables[table] = [row for row in self.tables[table] if id(row) not in removed_ids]
        for child, column in CASCADES.get(table, []):
            parent_ids = {_norm(row["id"]) for row in rows}
            orphans = [row for row in self.tables[child] if _norm(row.get(column)) in parent_ids]
            self.delete_rows(child, orphans)
        return copy.deepcopy(rows)

    def rpc_update_candidacy_positions(
        self,
        p_member_id: str,
        p_election_id: str,
        p_candidacy_id: str,
        p_remove_position_ids: list[str],
        p_add_position_ids: list[str],
        p_motivation: str,
        p_programme: str,
    ) -> list[dict[str, Any]]:
        mine = [
            row
            for row in self.tables["candidacies"]
            if _norm(row["member_id"]) == _norm(p_member_id)
            and _norm(row["election_id"]) == _norm(p_election_id)
        ]
        removed = {_norm(value) for value in p_remove_position_ids}
        self.delete_rows(
            "candidacies", [row for row in mine if _norm(row["position_id"]) in removed]
        )
        for row in self.tables["candidacies"]:
            if _norm(row["id"]) == _norm(p_candidacy_id):
                row.update({"motivation": p_motivation, "programme": p_programme})
        for position_id in p_add_position_ids:
            self.insert_rows(
                "candidacies",
                [
                    {
                        "election_id": p_election_id,
                        "position_id": position_id,
                        "member_id": p_member_id,
                        "motivation": p_motivation,
                        "programme": p_programme,
                        "status": "EnAttente",
                    }
                ],
            )
        return copy.deepcopy(
            [
                row
                for row in self.tables["candidacies"]
                if _norm(row["member_id"]) == _norm(p_member_id)
                and _norm(row["election_id"]) == _norm(p_election_id)
            ]
        )

    # Seeding helpers

    def add_actor(
        self,
        role: str = "MEMBRE",
        member: bool = True,
        complete: bool = True,
        first_name: str = "Camille",
        last_name: str = "Martin",
    ) -> Actor:
        """Create a user, optionally with a member profile, and return its actor."""
        user_id = str(uuid.uuid4())
        email = f"{user_id[:8]}@example.org"
        self.insert_rows(
            "users",
            [{"id": user_id, "email": email, "name": f"{first_name} {last_name}", "role": role}],
        )
        member_id = None
        if member:
            (row,) = self.insert_rows(
                "members",
                [
                    {
                        "user_id": user_id,
                        "civility": "Mme",
                        "first_name": first_name,
                        "last_name": last_name,
                        "phone": "0600000000" if complete else None,
                    }
                ],
            )
            member_id = row["id"]
        return Actor(user_id=user_id, email=email, role=role, member_id=member_id)

    def add_election(
        self,
        status: str = "Ouverte",
        position_types: tuple[str, ...] = ("President", "Tresorier"),
        **overrides: Any,
    ) -> dict[str, Any]:
        """Create an election with preset positions; positions are under ``"positions"``."""
        opens_at = now_utc() - timedelta(days=1)
        values = {
            "title": "Assemblée générale",
            "opens_at": to_iso(opens_at),
            "ballot_at": to_iso(opens_at + timedelta(days=10)),
            "closes_at": to_iso(opens_at + timedelta(days=11)),
            "status": status,
        }
        values.update(overrides)
        (election,) = self.insert_rows("elections", [values])
        positions = self.insert_rows(
            "positions",
            [build_position_payload(election["id"], kind) for kind in position_types],
        )
        return {**election, "positions": positions}

    def add_candidacy(
        self,
        election: dict[str, Any],
        position: dict[str, Any],
        actor: Actor,
        status: str = "EnAttente",
    ) -> dict[str, Any]:
        (row,) = self.insert_rows(
            "candidacies",
            [
                {
                    "election_id": election["id"],
                    "position_id": position["id"],
                    "member_id": actor.member_id,
                    "motivation": "",
                    "programme": "",
                    "status": status,
                }
            ],
        )
        return row

    def rows(self, table: str, **filters: Any) -> list[dict[str, Any]]:
        """Return stored rows matching equality filters."""
        return [
            row
            for row in self.tables[table]
            if all(_norm(row.get(key)) == _norm(value) for key, value in filters.items())
        ]
