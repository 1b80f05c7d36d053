"""HTTP layer tests: authentication, success and failure bodies."""

from __future__ import annotations

from collections.abc import Iterator
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from app.dependencies import get_authenticated_user, get_db_client
from app.main import app


@pytest.fixture
def signed_in(fake) -> Iterator:
    """Route requests to the fake database, signed in as the returned setter's actor."""
    current: dict = {}

    app.dependency_overrides[get_db_client] = lambda: fake
    app.dependency_overrides[get_authenticated_user] = lambda: SimpleNamespace(
        id=current["actor"].user_id, email=current["actor"].email
    )

    def sign_in(actor) -> None:
        current["actor"] = actor

    yield sign_in
    app.dependency_overrides.clear()


def test_missing_token_is_unauthorized(client: TestClient) -> None:
    """Requests without bearer token fail with the standard error body."""
    response = client.get("/elections")
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Non autorisé", "code": "UNAUTHORIZED"}


def test_auth_me_resolves_member_and_role(client: TestClient, fake, signed_in, admin) -> None:
    """The actor endpoint reads role and member profile from the database."""
    signed_in(admin)
    response = client.get("/auth/me")
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["actor"]["is_admin"] is True
    assert payload["actor"]["member_id"] is None


def test_duplicate_candidacy_body(client: TestClient, fake, signed_in, member) -> None:
    """A second application returns the duplicate message in the failure body."""
    election = fake.add_election()
    body = {"election_id": election["id"], "position_id": election["positions"][0]["id"]}
    signed_in(member)

    first = client.post("/candidacies", json=body)
    assert first.status_code == 201
    assert first.json()["success"] is True
    assert first.json()["candidacy"]["status"] == "EnAttente"

    second = client.post("/candidacies", json=body)
    assert second.status_code == 409
    assert second.json() == {
        "success": False,
        "error": "Vous avez déjà postulé pour ce poste dans cette élection.",
        "code": "DUPLICATE_CANDIDACY",
    }


def test_close_then_vote_is_refused(client: TestClient, fake, signed_in, admin, member) -> None:
    """Closing through the API blocks later ballots with ELECTION_NOT_OPEN."""
    election = fake.add_election()
    signed_in(admin)
    closed = client.post(f"/elections/{election['id']}/close")
    assert closed.status_code == 200
    assert closed.json()["election"]["status"] == "Cloturee"

    signed_in(member)
    response = client.post(
        "/votes",
        json={"election_id": election["id"], "position_id": election["positions"][0]["id"]},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "ELECTION_NOT_OPEN"


def test_results_endpoint(client: TestClient, fake, signed_in, member) -> None:
    """Results are wrapped in the success body."""
    election = fake.add_election(position_types=("President",))
    signed_in(member)
    response = client.get(f"/elections/{election['id']}/results")
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["results"]["positions"][0]["total_votes"] == 0


def test_invalid_body_is_validation_error(client: TestClient, fake, signed_in, admin) -> None:
    """Malformed payloads return VALIDATION_ERROR."""
    signed_in(admin)
    response = client.post("/elections", json={"title": ""})
    assert response.status_code == 422
    assert response.json()["success"] is False
    assert response.json()["code"] == "VALIDATION_ERROR"


def test_member_cannot_open_election(client: TestClient, fake, signed_in, member) -> None:
    """Status transitions are administrator-only."""
    election = fake.add_election(status="Preparation")
    signed_in(member)
    response = client.put(f"/elections/{election['id']}/status", json={"status": "Ouverte"})
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


def test_admin_delete_of_voted_candidacy_is_a_conflict(
    client: TestClient, fake, signed_in, admin, member
) -> None:
    """Removing a candidacy with ballots answers 409 instead of a database error."""
    election = fake.add_election()
    position = election["positions"][0]
    candidacy = fake.add_candidacy(election, position, member, status="Validee")
    signed_in(member)
    voted = client.post(
        "/votes",
        json={
            "election_id": election["id"],
            "position_id": position["id"],
            "candidacy_id": candidacy["id"],
        },
    )
    assert voted.status_code == 201

    signed_in(admin)
    response = client.delete(f"/candidacies/{candidacy['id']}")
    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "error": "Cette candidature a déjà reçu des votes et ne peut plus être retirée",
        "code": "CANDIDACY_HAS_VOTES",
    }


def test_vote_history_endpoint(client: TestClient, fake, signed_in, member) -> None:
    """Vote history is wrapped in the success body."""
    election = fake.add_election(position_types=("President",))
    signed_in(member)
    response = client.get("/votes/history")
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert [row["id"] for row in payload["elections"]] == [election["id"]]
    assert payload["elections"][0]["positions"][0]["my_vote"] is None
