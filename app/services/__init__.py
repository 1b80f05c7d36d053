"""Service package exports with lazy loading."""

from __future__ import annotations

from importlib import import_module
from typing import Any

_EXPORTS = {
    "Actor": "app.services.common",
    "CandidacyService": "app.services.candidacy_service",
    "ElectionService": "app.services.election_service",
    "MemberService": "app.services.member_service",
    "NotificationService": "app.services.notification_service",
    "PositionService": "app.services.position_service",
    "ResultsService": "app.services.results_service",
    "SupabaseService": "app.services.common",
    "VoteService": "app.services.vote_service",
}

__all__ = sorted(_EXPORTS.keys())


def __getattr__(name: str) -> Any:
    if name not in _EXPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    module = import_module(_EXPORTS[name])
    return getattr(module, name)
