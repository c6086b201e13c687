# Marketplace Admin Pydantic Schemas
from app.schemas.auth import (
    LoginHintResponse,
    LoginRequest,
    OkResponse,
    SessionClaims,
    SessionInfoResponse,
    TokenHeader,
)

__all__ = [
    "LoginHintResponse",
    "LoginRequest",
    "OkResponse",
    "SessionClaims",
    "SessionInfoResponse",
    "TokenHeader",
]
