"""Election and position schemas."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class ElectionStatus(StrEnum):
    """Lifecycle states of an election."""

    PREPARATION = "Preparation"
    OUVERTE = "Ouverte"
    CLOTUREE = "Cloturee"
    ANNULEE = "Annulee"


class PositionType(StrEnum):
    """Preset categories of contested seats."""

    PRESIDENT = "President"
    VICE_PRESIDENT = "VicePresident"
    SECRETAIRE = "Secretaire"
    VICE_SECRETAIRE = "ViceSecretaire"
    TRESORIER = "Tresorier"
    VICE_TRESORIER = "ViceTresorier"
    COMMISSAIRE_COMPTES = "CommissaireComptes"
    MEMBRE_COMITE_DIRECTEUR = "MembreComiteDirecteur"


class ElectionCreate(BaseModel):
    """Request body for creating an election with its preset positions."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    opens_at: datetime
    closes_at: datetime
    ballot_at: datetime
    candidacy_closes_at: datetime | None = None
    quorum_required: float | None = Field(None, ge=0, le=100)
    majority_rule: str | None = None
    seats: int | None = Field(None, ge=1)
    position_types: list[PositionType] = Field(default_factory=list)


class ElectionUpdate(BaseModel):
    """Partial election update; only provided fields are written."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    opens_at: datetime | None = None
    closes_at: datetime | None = None
    ballot_at: datetime | None = None
    candidacy_closes_at: datetime | None = None
    quorum_required: float | None = Field(None, ge=0, le=100)
    majority_rule: str | None = None
    seats: int | None = Field(None, ge=1)


class ElectionStatusUpdate(BaseModel):
    """Request body for the generic status transition endpoint."""

    status: ElectionStatus


class PositionCreate(BaseModel):
    """A position to add to an existing election."""

    type: PositionType
    title: str | None = Field(None, max_length=200)
    description: str | None = None
    mandates: int | None = Field(None, ge=1)
    mandate_months: int | None = Field(None, ge=1)
    conditions: str | None = None


class PositionsAdd(BaseModel):
    """Request body for adding positions to an election."""

    positions: list[PositionCreate] = Field(..., min_length=1)


class PositionUpdate(BaseModel):
    """Partial position update."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    mandates: int | None = Field(None, ge=1)
    mandate_months: int | None = Field(None, ge=1)
    conditions: str | None = None
