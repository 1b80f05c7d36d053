"""Member service utility tests."""

from __future__ import annotations

import pytest

from app.services.common import Actor, member_display_name
from app.services.member_service import MemberService, has_contact_details
from app.utils.errors import InvalidInputError, NotAMemberError


def test_has_contact_details_accepts_phone_only() -> None:
    """A phone number alone should be enough."""
    assert has_contact_details({"phone": "0612345678"})


def test_has_contact_details_requires_complete_address() -> None:
    """An address counts only when street, city and postal code are all set."""
    assert has_contact_details({"street": "1 rue Haute", "city": "Lyon", "postal_code": "69001"})
    assert not has_contact_details({"street": "1 rue Haute", "city": "Lyon"})
    assert not has_contact_details({"phone": "   "})


def test_member_display_name_joins_civility_and_names() -> None:
    """Display names should skip blank parts."""
    member = {"civility": "M.", "first_name": "Paul", "last_name": " Durand "}
    assert member_display_name(member) == "M. Paul Durand"
    assert member_display_name(None) == ""


def test_require_member_raises_without_profile(fake) -> None:
    """Users without a member profile should be rejected."""
    actor = fake.add_actor(member=False)
    with pytest.raises(NotAMemberError):
        MemberService(fake).require_member(actor)


def test_require_member_falls_back_to_user_lookup(fake) -> None:
    """A stale actor without member id should still resolve the profile."""
    actor = fake.add_actor()
    stale = Actor(user_id=actor.user_id)
    member = MemberService(fake).require_member(stale)
    assert member["id"] == actor.member_id


def test_require_complete_profile_names_the_action(fake) -> None:
    """Incomplete profiles should be told what to fill in and why."""
    actor = fake.add_actor(complete=False)
    with pytest.raises(InvalidInputError) as exc_info:
        MemberService(fake).require_complete_profile(actor, "voter")
    assert "avant de pouvoir voter" in exc_info.value.message
