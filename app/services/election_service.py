"""Election creation, status lifecycle, and closure logic."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from app.schemas.election import ElectionStatus, PositionType
from app.services.common import Actor, SupabaseService, group_by
from app.services.member_service import MemberService
from app.services.position_service import build_position_payload
from app.utils.errors import AppError, ConflictError, InvalidInputError
from app.utils.time import now_utc, parse_timestamp, to_iso
from supabase import Client

logger = logging.getLogger(__name__)

TRANSITIONS: dict[ElectionStatus, frozenset[ElectionStatus]] = {
    ElectionStatus.PREPARATION: frozenset({ElectionStatus.OUVERTE, ElectionStatus.ANNULEE}),
    ElectionStatus.OUVERTE: frozenset({ElectionStatus.CLOTUREE, ElectionStatus.ANNULEE}),
    ElectionStatus.CLOTUREE: frozenset(),
    ElectionStatus.ANNULEE: frozenset(),
}
TERMINAL_STATUSES = frozenset({ElectionStatus.CLOTUREE, ElectionStatus.ANNULEE})

ELECTION_FIELDS = (
    "title",
    "description",
    "opens_at",
    "closes_at",
    "ballot_at",
    "candidacy_closes_at",
    "quorum_required",
    "majority_rule",
    "seats",
)
DATE_FIELDS = ("opens_at", "closes_at", "ballot_at", "candidacy_closes_at")
NULLABLE_FIELDS = (
    "description",
    "candidacy_closes_at",
    "quorum_required",
    "majority_rule",
    "seats",
)


def can_transition(current: ElectionStatus | str, target: ElectionStatus | str) -> bool:
    """Return True when ``current -> target`` is an allowed status change."""
    return ElectionStatus(target) in TRANSITIONS[ElectionStatus(current)]


def validate_election_dates(
    opens_at: datetime,
    closes_at: datetime,
    ballot_at: datetime,
    candidacy_closes_at: datetime | None = None,
) -> None:
    """Check the ordering of election dates, raising InvalidInputError."""
    if closes_at < opens_at:
        raise InvalidInputError(
            "La date de clôture doit être postérieure à la date d'ouverture"
        )
    if candidacy_closes_at is not None:
        if opens_at >= candidacy_closes_at:
            raise InvalidInputError(
                "La date d'ouverture doit être antérieure à la date de clôture des candidatures"
            )
        if candidacy_closes_at >= ballot_at:
            raise InvalidInputError(
                "La date de clôture des candidatures doit être antérieure à la date du scrutin"
            )
    if closes_at <= ballot_at:
        raise InvalidInputError("La date de clôture doit être postérieure à la date du scrutin")


def _serialize(fields: dict[str, Any]) -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for key, value in fields.items():
        if key not in ELECTION_FIELDS:
            continue
        payload[key] = to_iso(value) if isinstance(value, datetime) else value
    return payload


class ElectionService:
    """Manage the election lifecycle from preparation to closure."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)
        self.members = MemberService(client)

    def get(self, election_id: str) -> dict[str, Any]:
        """Return one election row."""
        return self.db.select_one(
            "elections",
            {"id": election_id},
            not_found_label="Élection",
            not_found_message="Élection introuvable",
        )

    def list_elections(self) -> list[dict[str, Any]]:
        """Return all elections, most recent opening first, with their positions."""
        elections = self.db.select_many("elections", order_by="opens_at", descending=True)
        if not elections:
            return []
        positions = self.db.select_many(
            "positions",
            filters={"election_id": [row["id"] for row in elections]},
            order_by="created_at",
        )
        by_election = group_by(positions, "election_id")
        return [
            {**election, "positions": by_election.get(str(election["id"]), [])}
            for election in elections
        ]

    def get_election(self, election_id: str) -> dict[str, Any]:
        """Return an election with positions and their candidacies."""
        election = self.get(election_id)
        positions = self.db.select_many(
            "positions", filters={"election_id": election_id}, order_by="created_at"
        )
        candidacies = self.db.select_many(
            "candidacies", filters={"election_id": election_id}, order_by="created_at"
        )
        members = self.members.display_map([str(row["member_id"]) for row in candidacies])
        by_position = group_by(candidacies, "position_id")

        hydrated_positions = []
        for position in positions:
            rows = by_position.get(str(position["id"]), [])
            hydrated_positions.append(
                {
                    **position,
                    "candidacies": [
                        {**row, "member": members.get(str(row["member_id"]))} for row in rows
                    ],
                }
            )
        return {**election, "positions": hydrated_positions}

    def create(
        self,
        actor: Actor,
        data: dict[str, Any],
        position_types: list[PositionType | str],
    ) -> dict[str, Any]:
        """Create an election in Preparation with one position per preset type."""
        self.db.ensure_admin(
            actor.user_id, "Seuls les administrateurs peuvent créer des élections"
        )

        types = list(dict.fromkeys(PositionType(value) for value in position_types))
        if not types:
            raise InvalidInputError("Veuillez sélectionner au moins un poste")

        dates = {key: parse_timestamp(data.get(key)) for key in DATE_FIELDS}
        if not all(dates[key] for key in ("opens_at", "closes_at", "ballot_at")):
            raise InvalidInputError(
                "Les dates d'ouverture, de scrutin et de clôture sont obligatoires"
            )
        validate_election_dates(**dates)

        payload = _serialize({key: value for key, value in data.items() if value is not None})
        payload.update({"status": ElectionStatus.PREPARATION.value, "created_by": actor.user_id})
        election = self.db.insert_one("elections", payload)

        try:
            positions = self.db.insert_many(
                "positions",
                [build_position_payload(str(election["id"]), kind) for kind in types],
            )
        except AppError:
            logger.warning("Removing election %s after position insert failure", election["id"])
            self.db.delete("elections", {"id": election["id"]})
            raise

        logger.info(
            "Election %s created by %s with %s positions",
            election["id"],
            actor.user_id,
            len(positions),
        )
        return {**election, "positions": positions}

    def update(self, actor: Actor, election_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Update provided fields after validating the merged date set."""
        self.db.ensure_admin(
            actor.user_id, "Seuls les administrateurs peuvent modifier une élection"
        )
        election = self.get(election_id)
        if ElectionStatus(election["status"]) in TERMINAL_STATUSES:
            raise ConflictError(
                "Une élection clôturée ou annulée ne peut plus être modifiée",
                code="ELECTION_LOCKED",
            )

        fields = {
            key: value
            for key, value in fields.items()
            if value is not None or key in NULLABLE_FIELDS
        }
        merged = {key: parse_timestamp(election.get(key)) for key in DATE_FIELDS}
        merged.update({key: parse_timestamp(fields[key]) for key in DATE_FIELDS if key in fields})
        validate_election_dates(
            opens_at=merged["opens_at"],
            closes_at=merged["closes_at"],
            ballot_at=merged["ballot_at"],
            candidacy_closes_at=merged["candidacy_closes_at"],
        )

        payload = _serialize(fields)
        if not payload:
            return election
        payload["updated_at"] = to_iso(now_utc())
        rows = self.db.update("elections", {"id": election_id}, payload)
        return rows[0] if rows else election

    def delete(self, actor: Actor, election_id: str) -> None:
        """Delete an election that never opened or was cancelled."""
        self.db.ensure_admin(actor.user_id, "Admin requis")
        election = self.get(election_id)
        status = ElectionStatus(election["status"])
        if status not in {ElectionStatus.PREPARATION, ElectionStatus.ANNULEE}:
            raise ConflictError(
                "Seule une élection en préparation ou annulée peut être supprimée",
                code="ELECTION_LOCKED",
            )
        self.db.delete("elections", {"id": election_id})
        logger.info("Election %s deleted by %s", election_id, actor.user_id)

    def validate(self, actor: Actor, election_id: str) -> dict[str, Any]:
        """Open an election to candidacies and votes."""
        return self.update_status(actor, election_id, ElectionStatus.OUVERTE)

    def close(self, actor: Actor, election_id: str) -> dict[str, Any]:
        """Close an open election; its close date becomes now."""
        return self.update_status(actor, election_id, ElectionStatus.CLOTUREE)

    def cancel(self, actor: Actor, election_id: str) -> dict[str, Any]:
        """Cancel an election that is being prepared or is open."""
        return self.update_status(actor, election_id, ElectionStatus.ANNULEE)

    def update_status(
        self,
        actor: Actor,
        election_id: str,
        status: ElectionStatus | str,
    ) -> dict[str, Any]:
        """Apply one state-machine transition (administrators only)."""
        self.db.ensure_admin(
            actor.user_id,
            "Seuls les administrateurs peuvent modifier le statut des élections",
        )
        target = ElectionStatus(status)
        election = self.get(election_id)
        current = ElectionStatus(election["status"])
        if not can_transition(current, target):
            raise ConflictError(
                f"Transition de statut impossible : {current.value} vers {target.value}",
                code="INVALID_TRANSITION",
            )

        now = to_iso(now_utc())
        payload: dict[str, Any] = {"status": target.value, "updated_at": now}
        if target == ElectionStatus.CLOTUREE:
            payload["closes_at"] = now

        # Compare-and-set on the current status so racing transitions cannot both win.
        rows = self.db.update(
            "elections", {"id": election_id, "status": current.value}, payload
        )
        if not rows:
            raise ConflictError(
                "Le statut de l'élection a changé entre-temps",
                code="INVALID_TRANSITION",
            )

        logger.info(
            "Election %s moved %s -> %s by %s",
            election_id,
            current.value,
            target.value,
            actor.user_id,
        )
        return rows[0]

    def close_overdue(self, now: datetime | None = None) -> list[dict[str, Any]]:
        """Close every open election whose close date has passed."""
        cutoff = to_iso(now or now_utc())
        overdue = self.db.execute(
            self.db.client.table("elections")
            .select("*")
            .eq("status", ElectionStatus.OUVERTE.value)
            .lte("closes_at", cutoff),
            default=[],
        )

        closed: list[dict[str, Any]] = []
        for election in overdue:
            rows = self.db.update(
                "elections",
                {"id": election["id"], "status": ElectionStatus.OUVERTE.value},
                {"status": ElectionStatus.CLOTUREE.value, "updated_at": cutoff},
            )
            closed.extend(rows)
        return closed
