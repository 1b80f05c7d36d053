"""Candidacy schemas."""

from enum import StrEnum

from pydantic import BaseModel, Field


class CandidacyStatus(StrEnum):
    """Moderation state of a candidacy."""

    EN_ATTENTE = "EnAttente"
    VALIDEE = "Validee"
    REJETEE = "Rejetee"


class CandidacyCreate(BaseModel):
    """Request body for applying to one position."""

    election_id: str
    position_id: str
    motivation: str = ""
    programme: str = ""
    documents: list[str] | None = None


class CandidacyBatchCreate(BaseModel):
    """Request body for applying to several positions at once."""

    election_id: str
    position_ids: list[str]
    motivation: str = ""
    programme: str = ""


class CandidacyUpdate(BaseModel):
    """Owner edit of a pending candidacy."""

    motivation: str = ""
    programme: str = ""
    position_id: str | None = None


class CandidacyPositionsUpdate(BaseModel):
    """Desired set of positions for a member's candidacies in one election."""

    motivation: str = ""
    programme: str = ""
    position_ids: list[str]


class CandidacyDecision(BaseModel):
    """Administrator decision on a candidacy."""

    status: CandidacyStatus
    comments: str | None = Field(None, max_length=2000)


class CandidacyAdminUpdate(BaseModel):
    """Administrator edit of any candidacy; omitted fields stay unchanged."""

    motivation: str | None = None
    programme: str | None = None
    status: CandidacyStatus | None = None
    position_id: str | None = None
