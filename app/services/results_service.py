"""Per-position vote tallies and participation figures."""

from __future__ import annotations

from collections import Counter
from typing import Any

from app.schemas.vote import VoteStatus
from app.services.common import SupabaseService, group_by
from app.services.member_service import MemberService
from supabase import Client


def compute_results(
    positions: list[dict[str, Any]],
    candidacies: list[dict[str, Any]],
    votes: list[dict[str, Any]],
    members: dict[str, dict[str, Any]] | None = None,
) -> list[dict[str, Any]]:
    """Tally votes for every position.

    Candidacies keep their input order among equal counts. Quorum and
    majority are not evaluated here.
    """
    members = members or {}
    candidacies_by_position = group_by(candidacies, "position_id")
    votes_by_position = group_by(votes, "position_id")

    results = []
    for position in positions:
        position_id = str(position["id"])
        position_votes = votes_by_position.get(position_id, [])
        total = len(position_votes)
        counts = Counter(
            str(vote["candidacy_id"]) for vote in position_votes if vote.get("candidacy_id")
        )

        tallies = []
        for candidacy in candidacies_by_position.get(position_id, []):
            votes_count = counts.get(str(candidacy["id"]), 0)
            tallies.append(
                {
                    "candidacy": {
                        **candidacy,
                        "member": members.get(str(candidacy["member_id"])),
                    },
                    "votes_count": votes_count,
                    "percentage": votes_count / total * 100 if total else 0.0,
                }
            )
        tallies.sort(key=lambda item: item["votes_count"], reverse=True)

        results.append(
            {
                "position": position,
                "candidacies": tallies,
                "total_votes": total,
                "blank_votes": sum(
                    1 for vote in position_votes if vote.get("status") == VoteStatus.BLANC
                ),
            }
        )
    return results


class ResultsService:
    """Read-side reporting over an election's ballots."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)
        self.members = MemberService(client)

    def _election(self, election_id: str) -> dict[str, Any]:
        return self.db.select_one(
            "elections",
            {"id": election_id},
            not_found_label="Élection",
            not_found_message="Élection introuvable",
        )

    def results(self, election_id: str) -> dict[str, Any]:
        """Return the election and its per-position tallies."""
        election = self._election(election_id)
        positions = self.db.select_many(
            "positions", filters={"election_id": election_id}, order_by="created_at"
        )
        candidacies = self.db.select_many(
            "candidacies", filters={"election_id": election_id}, order_by="created_at"
        )
        votes = self.db.select_many("votes", filters={"election_id": election_id})
        members = self.members.display_map([str(row["member_id"]) for row in candidacies])
        return {
            "election": election,
            "positions": compute_results(positions, candidacies, votes, members),
        }

    def participation(self, election_id: str) -> dict[str, Any]:
        """Return turnout figures; quorum and majority are echoed, not judged."""
        election = self._election(election_id)
        votes = self.db.select_many(
            "votes", filters={"election_id": election_id}, columns="member_id"
        )
        voters = len({str(vote["member_id"]) for vote in votes})
        eligible = self.db.count("members")
        rate = round(voters / eligible * 100, 2) if eligible else 0.0
        return {
            "election_id": str(election["id"]),
            "voters": voters,
            "eligible_members": eligible,
            "participation_rate": rate,
            "total_ballots": len(votes),
            "quorum_required": election.get("quorum_required"),
            "majority_rule": election.get("majority_rule"),
        }
