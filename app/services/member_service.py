"""Member profile resolution for candidacy and voting flows."""

from __future__ import annotations

from typing import Any

from app.services.common import Actor, SupabaseService, member_display_name
from app.utils.errors import InvalidInputError, NotAMemberError
from supabase import Client


def has_contact_details(member: dict[str, Any]) -> bool:
    """Return True when the member left a phone number or a complete address."""
    phone = str(member.get("phone") or "").strip()
    if phone:
        return True
    address_fields = ("street", "city", "postal_code")
    return all(str(member.get(field) or "").strip() for field in address_fields)


class MemberService:
    """Look up the member behind an actor and compose display data."""

    def __init__(self, client: Client) -> None:
        self.db = SupabaseService(client)

    def require_member(self, actor: Actor) -> dict[str, Any]:
        """Return the actor's member profile or raise NotAMemberError."""
        member = None
        if actor.member_id:
            member = self.db.find_one("members", {"id": actor.member_id})
        if member is None:
            member = self.db.get_member_by_user(actor.user_id)
        if member is None:
            raise NotAMemberError()
        return member

    def require_complete_profile(self, actor: Actor, action: str) -> dict[str, Any]:
        """Return the member profile, requiring contact details for ``action``."""
        member = self.require_member(actor)
        if not has_contact_details(member):
            raise InvalidInputError(
                "Vous devez compléter vos informations personnelles (adresse ou téléphone) "
                f"dans votre profil avant de pouvoir {action}."
            )
        return member

    def display_map(self, member_ids: list[str]) -> dict[str, dict[str, Any]]:
        """Return public display data keyed by member id."""
        members = self.db.get_members_map(member_ids)
        return {
            member_id: {
                "id": member_id,
                "user_id": member.get("user_id"),
                "display_name": member_display_name(member),
            }
            for member_id, member in members.items()
        }
