"""Ballot casting and ballot reads."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from app.schemas.candidacy import CandidacyStatus
from app.schemas.election import ElectionStatus
from app.schemas.vote import VoteStatus
from app.services.common import Actor, SupabaseService, group_by, index_by
from app.services.member_service import MemberService
from app.utils.errors import (
    DuplicateVoteError,
    ElectionNotOpenError,
    InvalidInputError,
    NotFoundError,
)
from supabase import Client

logger = logging.getLogger(__name__)


class VoteService:
    """One immutable ballot per member and position."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)
        self.members = MemberService(client)

    def cast_vote(
        self,
        actor: Actor,
        election_id: str,
        position_id: str,
        candidacy_id: str | None = None,
    ) -> dict[str, Any]:
        """Record a ballot; without a candidacy the ballot is blank."""
        member = self.members.require_complete_profile(actor, "voter")

        election = self.db.find_one("elections", {"id": election_id})
        if not election or election["status"] != ElectionStatus.OUVERTE:
            raise ElectionNotOpenError("L'élection n'est pas ouverte au vote")

        existing = self.db.find_one(
            "votes",
            {"member_id": member["id"], "election_id": election_id, "position_id": position_id},
        )
        if existing:
            raise DuplicateVoteError()

        position = self.db.find_one("positions", {"id": position_id, "election_id": election_id})
        if not position:
            raise NotFoundError("Poste", message="Poste introuvable pour cette élection")

        status = VoteStatus.BLANC
        if candidacy_id:
            candidacy = self.db.find_one(
                "candidacies",
                {"id": candidacy_id, "election_id": election_id, "position_id": position_id},
            )
            if not candidacy:
                raise InvalidInputError("Candidature invalide pour ce poste/élection")
            if candidacy["status"] == CandidacyStatus.REJETEE:
                raise InvalidInputError("Cette candidature a été rejetée")
            status = VoteStatus.VALIDE

        vote = self.db.insert_one(
            "votes",
            {
                "election_id": election_id,
                "position_id": position_id,
                "member_id": member["id"],
                "candidacy_id": candidacy_id or None,
                "status": status.value,
            },
            conflict=DuplicateVoteError(),
        )
        # The chosen candidacy stays out of the logs.
        logger.info("Ballot recorded for position %s in election %s", position_id, election_id)
        return vote

    def list_member_votes(self, actor: Actor, election_id: str) -> list[dict[str, Any]]:
        """Return the actor's own ballots for one election."""
        member = self.members.require_member(actor)
        return self.db.select_many(
            "votes",
            filters={"member_id": member["id"], "election_id": election_id},
            order_by="created_at",
        )

    def list_votes(self, actor: Actor, election_id: str | None = None) -> list[dict[str, Any]]:
        """Return ballots, optionally for one election (administrators only)."""
        self.db.ensure_admin(actor.user_id, "Seuls les administrateurs peuvent consulter les votes")
        filters = {"election_id": election_id} if election_id else None
        return self.db.select_many(
            "votes", filters=filters, order_by="created_at", descending=True
        )

    def vote_history(self, actor: Actor) -> list[dict[str, Any]]:
        """Return every election, latest opening first, with the actor's own ballots.

        Each position carries its candidacies and the actor's ballot for it
        (``None`` when the actor did not vote there). ``total_votes`` counts
        every ballot of the election.
        """
        member = self.members.require_member(actor)
        elections = self.db.select_many("elections", order_by="opens_at", descending=True)
        if not elections:
            return []
        election_ids = [str(election["id"]) for election in elections]

        positions = self.db.select_many(
            "positions", filters={"election_id": election_ids}, order_by="title"
        )
        candidacies = self.db.select_many(
            "candidacies", filters={"election_id": election_ids}, order_by="created_at"
        )
        own_votes = index_by(
            self.db.select_many("votes", filters={"member_id": member["id"]}), "position_id"
        )
        totals = Counter(
            str(row["election_id"])
            for row in self.db.select_many(
                "votes", filters={"election_id": election_ids}, columns="election_id"
            )
        )
        members = self.members.display_map([str(row["member_id"]) for row in candidacies])
        hydrated = {
            str(row["id"]): {**row, "member": members.get(str(row["member_id"]))}
            for row in candidacies
        }

        candidacies_by_position = group_by(candidacies, "position_id")
        positions_by_election = group_by(positions, "election_id")
        history = []
        for election in elections:
            election_id = str(election["id"])
            entries = []
            for position in positions_by_election.get(election_id, []):
                position_id = str(position["id"])
                vote = own_votes.get(position_id)
                if vote is not None:
                    vote = {**vote, "candidacy": hydrated.get(str(vote.get("candidacy_id")))}
                entries.append(
                    {
                        **position,
                        "candidacies": [
                            hydrated[str(row["id"])]
                            for row in candidacies_by_position.get(position_id, [])
                        ],
                        "my_vote": vote,
                    }
                )
            history.append(
                {**election, "positions": entries, "total_votes": totals.get(election_id, 0)}
            )
        return history
