"""Position endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.dependencies import get_actor, get_db_client
from app.schemas.election import PositionUpdate
from app.services.common import Actor
from app.services.position_service import PositionService
from supabase import Client

router = APIRouter()


@router.patch("/{position_id}")
def update_position(
    position_id: str,
    payload: PositionUpdate,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Update descriptive fields of a position."""
    position = PositionService(client).update_position(
        actor, position_id, payload.model_dump(exclude_unset=True)
    )
    return {"success": True, "position": position}


@router.delete("/{position_id}")
def delete_position(
    position_id: str,
    actor: Actor = Depends(get_actor),
    client: Client = Depends(get_db_client),
) -> dict:
    """Delete a position of an election in preparation."""
    PositionService(client).delete_position(actor, position_id)
    return {"success": True}
