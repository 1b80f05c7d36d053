"""Ballot endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_actor, get_db_client
from app.schemas.vote import VoteCreate
from app.services.common import Actor
from app.services.vote_service import VoteService
from supabase import Client

router = APIRouter()


@router.post("", status_code=201)
def cast_vote(
    payload: VoteCreate,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Cast one ballot; omit the candidacy to vote blank."""
    vote = VoteService(client).cast_vote(
        actor,
        election_id=payload.election_id,
        position_id=payload.position_id,
        candidacy_id=payload.candidacy_id,
    )
    return {"success": True, "vote": vote}


@router.get("/mine")
def list_my_votes(
    election_id: str = Query(...),
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return the caller's ballots in one election."""
    votes = VoteService(client).list_member_votes(actor, election_id)
    return {"success": True, "votes": votes}


@router.get("/history")
def vote_history(
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return every election with the caller's ballots."""
    elections = VoteService(client).vote_history(actor)
    return {"success": True, "elections": elections}


@router.get("")
def list_votes(
    election_id: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return ballots (administrators only)."""
    votes = VoteService(client).list_votes(actor, election_id=election_id)
    return {"success": True, "votes": votes}
