"""Pydantic schemas for admin session authentication."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class TokenHeader(BaseModel):
    """Decoded header segment of an admin session token."""

    alg: Literal["HS256"]
    typ: str = "JWT"


class SessionClaims(BaseModel):
    """Decoded payload segment of an admin session token.

    Field names match the registered JWT claim names so the payload stays
    readable by any JWT tooling.
    """

    model_config = ConfigDict(extra="ignore")

    sub: str = Field(..., min_length=1, description="Admin identity")
    iat: int = Field(..., description="Issued-at, Unix seconds")
    exp: int = Field(..., description="Expiry, Unix seconds")
    jti: str = Field(..., min_length=1, description="Session id, registry key")


class LoginRequest(BaseModel):
    """Request for admin login."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=1, max_length=128)
    password: str = Field(..., min_length=1, max_length=256)


class OkResponse(BaseModel):
    """Uniform outcome body for login, validation and logout."""

    ok: bool


class SessionInfoResponse(BaseModel):
    """Metadata for the current admin session."""

    subject: str
    session_id: str
    issued_at: int
    expires_at: int
    last_activity: float | None = None


class LoginHintResponse(BaseModel):
    """Returned by the public login page route."""

    detail: str
    login_endpoint: str
