"""Election endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from app.dependencies import get_actor, get_authenticated_user, get_db_client
from app.schemas.election import (
    ElectionCreate,
    ElectionStatusUpdate,
    ElectionUpdate,
    PositionsAdd,
)
from app.services.common import Actor
from app.services.election_service import ElectionService
from app.services.position_service import PositionService
from app.services.results_service import ResultsService
from supabase import Client

router = APIRouter()


@router.get("")
def list_elections(
    _: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return all elections with their positions."""
    elections = ElectionService(client).list_elections()
    return {"success": True, "elections": elections}


@router.post("", status_code=201)
def create_election(
    payload: ElectionCreate,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Create an election in preparation with preset positions."""
    election = ElectionService(client).create(
        actor,
        payload.model_dump(exclude={"position_types"}),
        position_types=payload.position_types,
    )
    return {"success": True, "election": election}


@router.get("/{election_id}")
def get_election(
    election_id: str,
    _: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return one election with positions and candidacies."""
    election = ElectionService(client).get_election(election_id)
    return {"success": True, "election": election}


@router.patch("/{election_id}")
def update_election(
    election_id: str,
    payload: ElectionUpdate,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Update the provided election fields."""
    election = ElectionService(client).update(
        actor, election_id, payload.model_dump(exclude_unset=True)
    )
    return {"success": True, "election": election}


@router.delete("/{election_id}")
def delete_election(
    election_id: str,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Delete an election still in preparation or already cancelled."""
    ElectionService(client).delete(actor, election_id)
    return {"success": True}


@router.post("/{election_id}/validate")
def validate_election(
    election_id: str,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Open the election to candidacies and ballots."""
    election = ElectionService(client).validate(actor, election_id)
    return {"success": True, "election": election}


@router.post("/{election_id}/close")
def close_election(
    election_id: str,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Close an open election now."""
    election = ElectionService(client).close(actor, election_id)
    return {"success": True, "election": election}


@router.post("/{election_id}/cancel")
def cancel_election(
    election_id: str,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Cancel an election."""
    election = ElectionService(client).cancel(actor, election_id)
    return {"success": True, "election": election}


@router.put("/{election_id}/status")
def update_election_status(
    election_id: str,
    payload: ElectionStatusUpdate,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Apply a status transition."""
    election = ElectionService(client).update_status(actor, election_id, payload.status)
    return {"success": True, "election": election}


@router.get("/{election_id}/results")
def election_results(
    election_id: str,
    _: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return per-position tallies."""
    results = ResultsService(client).results(election_id)
    return {"success": True, "results": results}


@router.get("/{election_id}/participation")
def election_participation(
    election_id: str,
    _: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return turnout figures."""
    participation = ResultsService(client).participation(election_id)
    return {"success": True, "participation": participation}


@router.get("/{election_id}/positions")
def list_positions(
    election_id: str,
    _: Any = Depends(get_authenticated_user),
    client: Client = Depends(get_db_client),
) -> dict:
    """Return the positions contested in an election."""
    positions = PositionService(client).list_for_election(election_id)
    return {"success": True, "positions": positions}


@router.post("/{election_id}/positions", status_code=201)
def add_positions(
    election_id: str,
    payload: PositionsAdd,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Add positions to an election."""
    positions = PositionService(client).add_positions(
        actor,
        election_id,
        [item.model_dump() for item in payload.positions],
    )
    return {"success": True, "positions": positions}
