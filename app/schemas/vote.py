"""Vote schemas."""

from enum import StrEnum

from pydantic import BaseModel


class VoteStatus(StrEnum):
    """Ballot kind; a blank ballot has no candidacy."""

    VALIDE = "Valide"
    BLANC = "Blanc"


class VoteCreate(BaseModel):
    """Request body for casting a ballot; omit ``candidacy_id`` to vote blank."""

    election_id: str
    position_id: str
    candidacy_id: str | None = None
