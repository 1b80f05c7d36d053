"""API router package."""

from app.routers import auth, candidacies, elections, notifications, positions, votes

__all__ = [
    "auth",
    "candidacies",
    "elections",
    "notifications",
    "positions",
    "votes",
]
