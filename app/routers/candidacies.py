"""Candidacy endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.dependencies import get_actor, get_db_client
from app.schemas.candidacy import (
    CandidacyAdminUpdate,
    CandidacyBatchCreate,
    CandidacyCreate,
    CandidacyDecision,
    CandidacyPositionsUpdate,
    CandidacyUpdate,
)
from app.services.candidacy_service import CandidacyService
from app.services.common import Actor
from supabase import Client

router = APIRouter()


@router.post("", status_code=201)
def submit_candidacy(
    payload: CandidacyCreate,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Apply for one position."""
    candidacy = CandidacyService(client).submit_candidacy(
        actor,
        election_id=payload.election_id,
        position_id=payload.position_id,
        motivation=payload.motivation,
        programme=payload.programme,
        documents=payload.documents,
    )
    return {"success": True, "candidacy": candidacy}


@router.post("/batch", status_code=201)
def submit_multiple_candidacies(
    payload: CandidacyBatchCreate,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Apply for several positions in one request."""
    candidacies = CandidacyService(client).submit_multiple_candidacies(
        actor,
        election_id=payload.election_id,
        position_ids=payload.position_ids,
        motivation=payload.motivation,
        programme=payload.programme,
    )
    return {"success": True, "candidacies": candidacies}


@router.get("/mine")
def list_my_candidacies(
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return the caller's candidacies."""
    candidacies = CandidacyService(client).list_member_candidacies(actor)
    return {"success": True, "candidacies": candidacies}


@router.get("")
def list_candidacies(
    election_id: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return every candidacy (administrators only)."""
    candidacies = CandidacyService(client).list_candidacies(actor, election_id=election_id)
    return {"success": True, "candidacies": candidacies}


@router.get("/{candidacy_id}")
def get_candidacy(
    candidacy_id: str,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return one candidacy."""
    candidacy = CandidacyService(client).get_candidacy(actor, candidacy_id)
    return {"success": True, "candidacy": candidacy}


@router.patch("/{candidacy_id}")
def update_candidacy(
    candidacy_id: str,
    payload: CandidacyUpdate,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Edit a pending candidacy."""
    candidacy = CandidacyService(client).update_candidacy(
        actor,
        candidacy_id,
        motivation=payload.motivation,
        programme=payload.programme,
        new_position_id=payload.position_id,
    )
    return {"success": True, "candidacy": candidacy}


@router.put("/{candidacy_id}")
def admin_update_candidacy(
    candidacy_id: str,
    payload: CandidacyAdminUpdate,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Edit any candidacy (administrators only)."""
    candidacy = CandidacyService(client).admin_update_candidacy(
        actor,
        candidacy_id,
        motivation=payload.motivation,
        programme=payload.programme,
        status=payload.status,
        position_id=payload.position_id,
    )
    return {"success": True, "candidacy": candidacy}


@router.delete("/{candidacy_id}")
def admin_delete_candidacy(
    candidacy_id: str,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Delete a candidacy without ballots (administrators only)."""
    CandidacyService(client).admin_delete_candidacy(actor, candidacy_id)
    return {"success": True}


@router.put("/{candidacy_id}/positions")
def update_candidacy_positions(
    candidacy_id: str,
    payload: CandidacyPositionsUpdate,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Replace the set of positions the caller applies for in this election."""
    candidacies = CandidacyService(client).update_candidacy_positions(
        actor,
        candidacy_id,
        motivation=payload.motivation,
        programme=payload.programme,
        desired_position_ids=payload.position_ids,
    )
    return {"success": True, "candidacies": candidacies}


@router.put("/{candidacy_id}/status")
def decide_candidacy(
    candidacy_id: str,
    payload: CandidacyDecision,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Validate or reject a candidacy."""
    candidacy = CandidacyService(client).decide_candidacy(
        actor, candidacy_id, status=payload.status, comments=payload.comments
    )
    return {"success": True, "candidacy": candidacy}
