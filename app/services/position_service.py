"""Position presets and administrator position management."""

from __future__ import annotations

import logging
from typing import Any

from app.schemas.election import ElectionStatus, PositionType
from app.services.common import Actor, SupabaseService
from app.utils.errors import ConflictError, InvalidInputError
from supabase import Client

logger = logging.getLogger(__name__)

# type -> (label, default number of mandates)
POSITION_PRESETS: dict[PositionType, tuple[str, int]] = {
    PositionType.PRESIDENT: ("Président", 1),
    PositionType.VICE_PRESIDENT: ("Vice-Président", 1),
    PositionType.SECRETAIRE: ("Secrétaire", 1),
    PositionType.VICE_SECRETAIRE: ("Vice-Secrétaire", 1),
    PositionType.TRESORIER: ("Trésorier", 1),
    PositionType.VICE_TRESORIER: ("Vice-Trésorier", 1),
    PositionType.COMMISSAIRE_COMPTES: ("Commissaire aux comptes", 1),
    PositionType.MEMBRE_COMITE_DIRECTEUR: ("Membre du comité directeur", 6),
}
DEFAULT_MANDATE_MONTHS = 24
DEFAULT_CONDITIONS = "Être membre actif de l'association"

POSITION_FIELDS = ("title", "description", "mandates", "mandate_months", "conditions")


def build_position_payload(
    election_id: str,
    position_type: PositionType | str,
    overrides: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Return an insertable position row filled from the preset for its type."""
    kind = PositionType(position_type)
    label, mandates = POSITION_PRESETS[kind]
    values = {key: value for key, value in (overrides or {}).items() if value is not None}
    return {
        "election_id": election_id,
        "type": kind.value,
        "title": values.get("title") or label,
        "description": values.get("description") or f"Poste de {label.lower()}",
        "mandates": values.get("mandates") or mandates,
        "mandate_months": values.get("mandate_months") or DEFAULT_MANDATE_MONTHS,
        "conditions": values.get("conditions") or DEFAULT_CONDITIONS,
    }


class PositionService:
    """Add, edit, and remove the seats contested in an election."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def _election(self, election_id: str) -> dict[str, Any]:
        return self.db.select_one(
            "elections",
            {"id": election_id},
            not_found_label="Élection",
            not_found_message="Élection introuvable",
        )

    def get(self, position_id: str) -> dict[str, Any]:
        """Return one position by id."""
        return self.db.select_one(
            "positions",
            {"id": position_id},
            not_found_label="Poste",
            not_found_message="Poste introuvable",
        )

    def list_for_election(self, election_id: str) -> list[dict[str, Any]]:
        """Return an election's positions in creation order."""
        return self.db.select_many(
            "positions", filters={"election_id": election_id}, order_by="created_at"
        )

    def add_positions(
        self,
        actor: Actor,
        election_id: str,
        positions: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Add positions while the election is still being prepared or open."""
        self.db.ensure_admin(actor.user_id, "Seuls les administrateurs peuvent créer des postes")
        if not positions:
            raise InvalidInputError("Veuillez sélectionner au moins un poste")

        election = self._election(election_id)
        status = ElectionStatus(election["status"])
        if status not in {ElectionStatus.PREPARATION, ElectionStatus.OUVERTE}:
            raise ConflictError(
                "Impossible d'ajouter un poste à une élection terminée",
                code="ELECTION_LOCKED",
            )

        payloads = [
            build_position_payload(
                election_id,
                item["type"],
                {key: item.get(key) for key in POSITION_FIELDS},
            )
            for item in positions
        ]
        created = self.db.insert_many("positions", payloads)
        logger.info("Added %s positions to election %s", len(created), election_id)
        return created

    def update_position(
        self,
        actor: Actor,
        position_id: str,
        fields: dict[str, Any],
    ) -> dict[str, Any]:
        """Update descriptive fields of a position."""
        self.db.ensure_admin(actor.user_id, "Seuls les administrateurs peuvent modifier un poste")
        position = self.get(position_id)
        election = self._election(str(position["election_id"]))
        if ElectionStatus(election["status"]) in {ElectionStatus.CLOTUREE, ElectionStatus.ANNULEE}:
            raise ConflictError(
                "Impossible de modifier un poste d'une élection terminée",
                code="ELECTION_LOCKED",
            )

        payload = {key: value for key, value in fields.items() if key in POSITION_FIELDS}
        if not payload:
            return position
        rows = self.db.update("positions", {"id": position_id}, payload)
        return rows[0] if rows else position

    def delete_position(self, actor: Actor, position_id: str) -> None:
        """Delete a position; only allowed before the election opens."""
        self.db.ensure_admin(
            actor.user_id, "Seuls les administrateurs peuvent supprimer un poste"
        )
        position = self.get(position_id)
        election = self._election(str(position["election_id"]))
        if election["status"] != ElectionStatus.PREPARATION:
            raise ConflictError(
                "Un poste ne peut être supprimé qu'avant l'ouverture de l'élection",
                code="ELECTION_LOCKED",
            )
        self.db.delete("positions", {"id": position_id})
        logger.info("Deleted position %s from election %s", position_id, election["id"])
