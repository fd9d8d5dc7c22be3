"""Session-related Pydantic schemas."""

from pydantic import BaseModel


class TokenPair(BaseModel):
    """Tokens the browser hands over after signing in with the auth provider."""

    access_token: str | None = None
    refresh_token: str | None = None


class SessionUser(BaseModel):
    """Minimal identity exposed to the browser."""

    id: str
    email: str | None = None


class ProtectedExampleResponse(BaseModel):
    """Payload of the protected example endpoint."""

    message: str
    user: SessionUser
    timestamp: str
