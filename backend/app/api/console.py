"""Admin console routes.

Everything under /admin except the login page sits behind
AdminSessionMiddleware; the console routes also re-check the session through
the get_current_session dependency.
"""

from fastapi import APIRouter, Depends

from app.api.admin_session import get_current_session, get_session_registry, session_info
from app.schemas.auth import LoginHintResponse, SessionClaims, SessionInfoResponse
from app.services.session_registry import SessionRegistry

router = APIRouter(prefix="/admin", tags=["admin-console"])


@router.get("", response_model=SessionInfoResponse)
async def console_home(
    claims: SessionClaims = Depends(get_current_session),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionInfoResponse:
    """Summary of the signed-in admin's session."""
    return session_info(claims, registry)


@router.get("/login", response_model=LoginHintResponse)
async def login_page() -> LoginHintResponse:
    """Public landing route for unauthenticated admins."""
    return LoginHintResponse(
        detail="Admin sign-in required",
        login_endpoint="/api/admin/login",
    )
