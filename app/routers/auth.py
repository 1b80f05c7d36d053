"""Authentication endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.dependencies import get_actor
from app.schemas.user import ActorResponse
from app.services.common import Actor

router = APIRouter()


@router.get("/me")
def auth_me(actor: Actor = Depends(get_actor)) -> dict:
    """Return the caller's identity, role, and member profile id."""
    profile = ActorResponse(
        user_id=actor.user_id,
        email=actor.email,
        role=actor.role,
        member_id=actor.member_id,
        is_admin=actor.is_admin,
    )
    return {"success": True, "actor": profile.model_dump()}
