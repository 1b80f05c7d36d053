"""Pytest fixtures for backend tests."""

from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient


def _set_default_env() -> None:
    os.environ.setdefault("SUPABASE_URL", "https://example.supabase.co")
    os.environ.setdefault("SUPABASE_ANON_KEY", "anon-key")
    os.environ.setdefault("SUPABASE_SERVICE_KEY", "service-key")
    os.environ.setdefault("ENABLE_SCHEDULER", "false")


# Settings are read when app modules are first imported.
_set_default_env()

from fake_supabase import FakeSupabase  # noqa: E402


@pytest.fixture(scope="session")
def client() -> TestClient:
    """Create a FastAPI test client."""
    from app.main import app

    return TestClient(app)


@pytest.fixture
def fake() -> FakeSupabase:
    """Return an empty in-memory database."""
    return FakeSupabase()


@pytest.fixture
def admin(fake: FakeSupabase):
    """Return an administrator actor without a member profile."""
    return fake.add_actor(role="ADMIN", member=False)


@pytest.fixture
def member(fake: FakeSupabase):
    """Return a member actor with complete contact details."""
    return fake.add_actor()
