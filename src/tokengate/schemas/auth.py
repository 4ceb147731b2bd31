"""Token and authentication Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TokenPayload(BaseModel):
    """Claims carried inside a signed access token.

    ``iss``, ``aud``, ``exp`` and ``iat`` are filled in by the codec when
    signing and are populated again on verification.
    """

    sub: str = Field(..., min_length=1, description="Subject (user) identifier")
    email: str = Field(..., description="Email address of the subject")
    type: Literal["access", "refresh"] = Field(..., description="Token type")
    jti: str = Field(..., min_length=1, description="Unique token identifier")
    fingerprint: str | None = Field(None, description="Truncated device fingerprint")
    session_id: str | None = Field(None, description="Login session identifier")
    iss: str | None = None
    aud: str | None = None
    exp: int | None = None
    iat: int | None = None

    model_config = ConfigDict(extra="ignore")


class TokenPair(BaseModel):
    """Access and refresh tokens returned to the client."""

    access_token: str = Field(..., description="Signed JWT access token")
    refresh_token: str = Field(..., description="Opaque refresh token")
    expires_in: int = Field(..., description="Access token lifetime in seconds")
    refresh_expires_in: int = Field(..., description="Refresh token lifetime in seconds")
    token_type: Literal["Bearer"] = "Bearer"


class RefreshRequest(BaseModel):
    """Body of refresh and logout calls."""

    refresh_token: str = Field(..., min_length=1, description="Opaque refresh token")


class AuthContextResponse(BaseModel):
    """The caller's identity as seen by the auth gate."""

    user_id: str
    email: str
    session_id: str | None = None

    model_config = ConfigDict(from_attributes=True)


class SessionResponse(BaseModel):
    """Result of an optionally authenticated lookup."""

    authenticated: bool
    user_id: str | None = None
    email: str | None = None
