"""Candidacy submission, editing, and moderation logic."""

from __future__ import annotations

import logging
from typing import Any

from app.schemas.candidacy import CandidacyStatus
from app.schemas.election import ElectionStatus
from app.services.common import Actor, SupabaseService, index_by, member_display_name
from app.services.member_service import MemberService
from app.services.notification_service import NotificationService
from app.utils.errors import (
    ConflictError,
    DuplicateCandidacyError,
    ElectionNotOpenError,
    InvalidInputError,
    NotFoundError,
)
from app.utils.time import now_utc, parse_timestamp, to_iso
from supabase import Client

logger = logging.getLogger(__name__)


def unique_position_ids(position_ids: list[str]) -> list[str]:
    """Return position ids in request order, rejecting empty or repeated lists."""
    ids = [str(position_id) for position_id in position_ids]
    if not ids:
        raise InvalidInputError("Veuillez sélectionner au moins un poste")
    if len(set(ids)) != len(ids):
        raise InvalidInputError("Un même poste ne peut être sélectionné qu'une seule fois")
    return ids


def diff_positions(current: set[str], desired: list[str]) -> tuple[list[str], list[str]]:
    """Return ``(to_add, to_remove)`` turning ``current`` into ``desired``."""
    to_add = [position_id for position_id in desired if position_id not in current]
    to_remove = sorted(current.difference(desired))
    return to_add, to_remove


def candidacy_has_votes() -> ConflictError:
    return ConflictError(
        "Cette candidature a déjà reçu des votes et ne peut plus être retirée",
        code="CANDIDACY_HAS_VOTES",
    )


class CandidacyService:
    """Members apply for positions; administrators decide on the applications."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)
        self.members = MemberService(client)
        self.notifications = NotificationService(client)

    def _election_open_for_candidacies(self, election_id: str) -> dict[str, Any]:
        election = self.db.find_one("elections", {"id": election_id})
        if not election or election["status"] != ElectionStatus.OUVERTE:
            raise ElectionNotOpenError("L'élection n'est pas ouverte aux candidatures")

        deadline = parse_timestamp(election.get("candidacy_closes_at"))
        if deadline and now_utc() > deadline:
            raise ConflictError(
                "La période de candidature est fermée. La date limite était le "
                f"{deadline.strftime('%d/%m/%Y')}",
                code="CANDIDACY_PERIOD_CLOSED",
            )
        return election

    def _election_open_for_changes(self, election_id: str) -> dict[str, Any]:
        election = self.db.find_one("elections", {"id": election_id})
        if not election or election["status"] != ElectionStatus.OUVERTE:
            raise ElectionNotOpenError("L'élection n'est plus ouverte aux modifications")
        return election

    def _owned_candidacy(self, member: dict[str, Any], candidacy_id: str) -> dict[str, Any]:
        return self.db.select_one(
            "candidacies",
            {"id": candidacy_id, "member_id": member["id"]},
            not_found_label="Candidature",
            not_found_message="Candidature non trouvée",
        )

    def _ensure_without_votes(self, candidacy_ids: list[str]) -> None:
        if not candidacy_ids:
            return
        if self.db.select_many("votes", filters={"candidacy_id": candidacy_ids}, limit=1):
            raise candidacy_has_votes()

    def _hydrate(
        self,
        rows: list[dict[str, Any]],
        with_election: bool = False,
    ) -> list[dict[str, Any]]:
        """Attach position and member display data to candidacy rows."""
        if not rows:
            return []
        positions = index_by(
            self.db.select_many(
                "positions", filters={"id": sorted({str(r["position_id"]) for r in rows})}
            )
        )
        members = self.members.display_map([str(row["member_id"]) for row in rows])
        elections: dict[str, dict[str, Any]] = {}
        if with_election:
            elections = index_by(
                self.db.select_many(
                    "elections",
                    filters={"id": sorted({str(r["election_id"]) for r in rows})},
                )
            )

        hydrated = []
        for row in rows:
            payload = dict(row)
            payload["position"] = positions.get(str(row["position_id"]))
            payload["member"] = members.get(str(row["member_id"]))
            if with_election:
                payload["election"] = elections.get(str(row["election_id"]))
            hydrated.append(payload)
        return hydrated

    def submit_candidacy(
        self,
        actor: Actor,
        election_id: str,
        position_id: str,
        motivation: str,
        programme: str,
        documents: list[str] | None = None,
    ) -> dict[str, Any]:
        """Apply for one position of an open election."""
        member = self.members.require_complete_profile(actor, "postuler à un poste")
        self._election_open_for_candidacies(election_id)

        existing = self.db.find_one(
            "candidacies",
            {"member_id": member["id"], "election_id": election_id, "position_id": position_id},
        )
        if existing:
            raise DuplicateCandidacyError()

        position = self.db.find_one("positions", {"id": position_id, "election_id": election_id})
        if not position:
            raise NotFoundError(
                "Poste", message="Le poste sélectionné n'existe pas pour cette élection"
            )

        created = self.db.insert_one(
            "candidacies",
            {
                "election_id": election_id,
                "position_id": position_id,
                "member_id": member["id"],
                "motivation": motivation,
                "programme": programme,
                "documents": list(documents) if documents else None,
                "status": CandidacyStatus.EN_ATTENTE.value,
            },
            conflict=DuplicateCandidacyError(),
        )
        logger.info("Candidacy %s submitted for position %s", created["id"], position_id)
        return self._hydrate([created])[0]

    def submit_multiple_candidacies(
        self,
        actor: Actor,
        election_id: str,
        position_ids: list[str],
        motivation: str,
        programme: str,
    ) -> list[dict[str, Any]]:
        """Apply for several positions at once; either all are created or none."""
        member = self.members.require_complete_profile(actor, "postuler à un poste")
        self._election_open_for_candidacies(election_id)
        ids = unique_position_ids(position_ids)

        positions = self.db.select_many(
            "positions", filters={"election_id": election_id, "id": ids}
        )
        if len(positions) != len(ids):
            raise NotFoundError(
                "Poste",
                message="Un ou plusieurs postes sélectionnés n'existent pas pour cette élection",
            )

        conflict = DuplicateCandidacyError(
            "Vous avez déjà postulé pour certains postes. "
            "Veuillez retirer les postes déjà candidatés."
        )
        existing = self.db.select_many(
            "candidacies",
            filters={"member_id": member["id"], "election_id": election_id, "position_id": ids},
        )
        if existing:
            raise conflict

        # One bulk insert is one statement, so a constraint failure keeps no row.
        created = self.db.insert_many(
            "candidacies",
            [
                {
                    "election_id": election_id,
                    "position_id": position_id,
                    "member_id": member["id"],
                    "motivation": motivation,
                    "programme": programme,
                    "status": CandidacyStatus.EN_ATTENTE.value,
                }
                for position_id in ids
            ],
            conflict=conflict,
        )
        logger.info("Submitted %s candidacies in election %s", len(created), election_id)
        return self._hydrate(created)

    def update_candidacy(
        self,
        actor: Actor,
        candidacy_id: str,
        motivation: str,
        programme: str,
        new_position_id: str | None = None,
    ) -> dict[str, Any]:
        """Edit a pending candidacy, optionally moving it to another position."""
        member = self.members.require_member(actor)
        candidacy = self._owned_candidacy(member, candidacy_id)
        election_id = str(candidacy["election_id"])
        self._election_open_for_changes(election_id)

        if candidacy["status"] != CandidacyStatus.EN_ATTENTE:
            raise ConflictError(
                "Cette candidature a déjà été traitée et ne peut plus être modifiée",
                code="CANDIDACY_DECIDED",
            )

        payload: dict[str, Any] = {"motivation": motivation, "programme": programme}
        conflict = DuplicateCandidacyError(
            "Vous avez déjà une candidature pour ce poste dans cette élection"
        )
        if new_position_id and new_position_id != str(candidacy["position_id"]):
            position = self.db.find_one(
                "positions", {"id": new_position_id, "election_id": election_id}
            )
            if not position:
                raise NotFoundError(
                    "Poste",
                    message="Le nouveau poste sélectionné n'existe pas pour cette élection",
                )
            duplicate = self.db.find_one(
                "candidacies",
                {
                    "member_id": member["id"],
                    "election_id": election_id,
                    "position_id": new_position_id,
                },
            )
            if duplicate:
                raise conflict
            self._ensure_without_votes([candidacy_id])
            payload["position_id"] = new_position_id

        rows = self.db.update(
            "candidacies",
            {"id": candidacy_id, "member_id": member["id"]},
            payload,
            conflict=conflict,
        )
        return self._hydrate(rows or [candidacy])[0]

    def update_candidacy_positions(
        self,
        actor: Actor,
        candidacy_id: str,
        motivation: str,
        programme: str,
        desired_position_ids: list[str],
    ) -> list[dict[str, Any]]:
        """Make the member's candidacies in one election match ``desired_position_ids``.

        Removals, the update of the edited candidacy, and insertions run in
        a single database transaction.
        """
        member = self.members.require_member(actor)
        anchor = self._owned_candidacy(member, candidacy_id)
        election_id = str(anchor["election_id"])
        self._election_open_for_changes(election_id)

        desired = unique_position_ids(desired_position_ids)
        positions = self.db.select_many(
            "positions", filters={"election_id": election_id, "id": desired}
        )
        if len(positions) != len(desired):
            raise NotFoundError(
                "Poste",
                message="Un ou plusieurs postes sélectionnés n'existent pas pour cette élection",
            )

        current_rows = self.db.select_many(
            "candidacies", filters={"member_id": member["id"], "election_id": election_id}
        )
        to_add, to_remove = diff_positions(
            {str(row["position_id"]) for row in current_rows}, desired
        )

        removed_ids = [
            str(row["id"]) for row in current_rows if str(row["position_id"]) in to_remove
        ]
        self._ensure_without_votes(removed_ids)

        # to_add excludes positions the member already holds, so only a concurrent
        # insert can clash; the unique key catches it inside the transaction.
        rows = self.db.rpc(
            "update_candidacy_positions",
            {
                "p_member_id": member["id"],
                "p_election_id": election_id,
                "p_candidacy_id": candidacy_id,
                "p_remove_position_ids": to_remove,
                "p_add_position_ids": to_add,
                "p_motivation": motivation,
                "p_programme": programme,
            },
            conflict=DuplicateCandidacyError(),
            referenced=candidacy_has_votes(),
        )
        logger.info(
            "Candidacy positions updated in election %s: +%s -%s",
            election_id,
            len(to_add),
            len(to_remove),
        )
        return self._hydrate(rows)

    def list_member_candidacies(self, actor: Actor) -> list[dict[str, Any]]:
        """Return the actor's own candidacies, newest first."""
        member = self.members.require_member(actor)
        rows = self.db.select_many(
            "candidacies",
            filters={"member_id": member["id"]},
            order_by="created_at",
            descending=True,
        )
        return self._hydrate(rows, with_election=True)

    def list_candidacies(
        self,
        actor: Actor,
        election_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Return every candidacy, optionally for one election (administrators only)."""
        self.db.ensure_admin(actor.user_id)
        filters = {"election_id": election_id} if election_id else None
        rows = self.db.select_many(
            "candidacies", filters=filters, order_by="created_at", descending=True
        )
        return self._hydrate(rows, with_election=True)

    def get_candidacy(self, actor: Actor, candidacy_id: str) -> dict[str, Any]:
        """Return one candidacy to an administrator or to its owner."""
        candidacy = self.db.select_one(
            "candidacies",
            {"id": candidacy_id},
            not_found_label="Candidature",
            not_found_message="Candidature non trouvée",
        )
        is_owner = actor.member_id is not None and str(candidacy["member_id"]) == actor.member_id
        # Other members get the same answer as for a missing row.
        if not is_owner and not self.db.is_admin(actor.user_id):
            raise NotFoundError("Candidature", message="Candidature non trouvée")
        return self._hydrate([candidacy], with_election=True)[0]

    def decide_candidacy(
        self,
        actor: Actor,
        candidacy_id: str,
        status: CandidacyStatus | str,
        comments: str | None = None,
    ) -> dict[str, Any]:
        """Validate or reject a candidacy, then notify the candidate best-effort."""
        self.db.ensure_admin(
            actor.user_id, "Seuls les administrateurs peuvent valider les candidatures"
        )
        decision = CandidacyStatus(status)
        candidacy = self.db.select_one(
            "candidacies",
            {"id": candidacy_id},
            not_found_label="Candidature",
            not_found_message="Candidature non trouvée",
        )

        rows = self.db.update(
            "candidacies",
            {"id": candidacy_id},
            {
                "status": decision.value,
                "validated_by": actor.user_id,
                "validated_at": to_iso(now_utc()),
                "comments": comments,
            },
        )
        updated = rows[0] if rows else candidacy
        logger.info("Candidacy %s set to %s by %s", candidacy_id, decision.value, actor.user_id)

        if candidacy["status"] != decision.value:
            self.notifications.dispatch_best_effort(
                f"candidacy {candidacy_id} decision",
                lambda: self._announce_decision(updated),
            )
        return self._hydrate([updated])[0]

    def admin_update_candidacy(
        self,
        actor: Actor,
        candidacy_id: str,
        motivation: str | None = None,
        programme: str | None = None,
        status: CandidacyStatus | str | None = None,
        position_id: str | None = None,
    ) -> dict[str, Any]:
        """Edit any candidacy on behalf of its owner.

        Only the provided fields change. Moving to another position keeps the
        one-candidacy-per-position rule; a status change notifies the candidate.
        """
        self.db.ensure_admin(actor.user_id, "Admin requis")
        candidacy = self.db.select_one(
            "candidacies",
            {"id": candidacy_id},
            not_found_label="Candidature",
            not_found_message="Candidature introuvable",
        )
        election_id = str(candidacy["election_id"])

        payload: dict[str, Any] = {}
        if motivation is not None:
            payload["motivation"] = motivation
        if programme is not None:
            payload["programme"] = programme
        if status is not None:
            payload["status"] = CandidacyStatus(status).value

        conflict = DuplicateCandidacyError("Une candidature existe déjà pour ce poste")
        if position_id and position_id != str(candidacy["position_id"]):
            position = self.db.find_one(
                "positions", {"id": position_id, "election_id": election_id}
            )
            if not position:
                raise NotFoundError("Poste", message="Nouveau poste invalide pour cette élection")
            duplicate = self.db.find_one(
                "candidacies",
                {
                    "member_id": candidacy["member_id"],
                    "election_id": election_id,
                    "position_id": position_id,
                },
            )
            if duplicate:
                raise conflict
            self._ensure_without_votes([candidacy_id])
            payload["position_id"] = position_id

        if not payload:
            return self._hydrate([candidacy], with_election=True)[0]

        rows = self.db.update("candidacies", {"id": candidacy_id}, payload, conflict=conflict)
        updated = rows[0] if rows else {**candidacy, **payload}
        logger.info("Candidacy %s edited by %s", candidacy_id, actor.user_id)

        if "status" in payload and candidacy["status"] != payload["status"]:
            self.notifications.dispatch_best_effort(
                f"candidacy {candidacy_id} decision",
                lambda: self._announce_decision(updated),
            )
        return self._hydrate([updated], with_election=True)[0]

    def admin_delete_candidacy(self, actor: Actor, candidacy_id: str) -> None:
        """Remove a candidacy that has not received any vote."""
        self.db.ensure_admin(actor.user_id, "Admin requis")
        self.db.select_one(
            "candidacies",
            {"id": candidacy_id},
            not_found_label="Candidature",
            not_found_message="Candidature introuvable",
        )
        self._ensure_without_votes([candidacy_id])
        self.db.delete("candidacies", {"id": candidacy_id}, referenced=candidacy_has_votes())
        logger.info("Candidacy %s deleted by %s", candidacy_id, actor.user_id)

    def _announce_decision(self, candidacy: dict[str, Any]) -> None:
        member = self.db.select_one("members", {"id": candidacy["member_id"]})
        user = self.db.get_user(str(member["user_id"]))
        position = self.db.select_one("positions", {"id": candidacy["position_id"]})
        election = self.db.select_one("elections", {"id": candidacy["election_id"]})
        self.notifications.notify_candidacy_status(
            user=user,
            candidate_name=member_display_name(member),
            election_title=str(election["title"]),
            position_title=str(position["title"]),
            status=str(candidacy["status"]),
        )
