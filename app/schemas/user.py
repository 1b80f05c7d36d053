"""User-related schemas."""

from pydantic import BaseModel


class ActorResponse(BaseModel):
    """The authenticated caller as resolved for this request."""

    user_id: str
    email: str | None = None
    role: str | None = None
    member_id: str | None = None
    is_admin: bool = False
