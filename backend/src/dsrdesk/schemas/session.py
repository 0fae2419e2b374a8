"""Session shape supplied by the external authentication provider."""
from pydantic import BaseModel, Field


class SessionInfo(BaseModel):
    """The session record itself."""

    id: str = Field(..., description="Session identifier")
    user_id: str = Field(..., description="Owner of the session")


class SessionUser(BaseModel):
    """Identity fields of the signed-in user."""

    id: str
    email: str | None = None
    name: str | None = None


class AuthSession(BaseModel):
    """An authenticated session: ``{session: {id, user_id}, user: {id, email, name}}``."""

    session: SessionInfo
    user: SessionUser
