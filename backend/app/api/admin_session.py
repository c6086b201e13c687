"""Admin session API endpoints: login, validation, logout, session info."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from app.core.config import Settings
from app.core.request_utils import get_client_ip
from app.schemas.auth import LoginRequest, OkResponse, SessionClaims, SessionInfoResponse
from app.services.auth import (
    AdminAuthenticator,
    AuthError,
    InvalidCredentialsError,
    MissingSecretError,
    SessionTokenService,
    authenticate_session,
)
from app.services.login_rate_limit import LoginRateLimiter
from app.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin-session"])


# --- Dependencies: components owned by the application (see app.main) ---


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> SessionTokenService:
    return request.app.state.token_service


def get_session_registry(request: Request) -> SessionRegistry:
    return request.app.state.session_registry


def get_login_rate_limiter(request: Request) -> LoginRateLimiter:
    return request.app.state.login_rate_limiter


def get_admin_authenticator(
    settings: Settings = Depends(get_app_settings),
) -> AdminAuthenticator:
    return AdminAuthenticator(settings)


def _unauthenticated() -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"ok": False})


def set_session_cookie(response: Response, token: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.admin_session_cookie_name,
        value=token,
        max_age=settings.admin_session_ttl_seconds,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="strict",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.admin_session_cookie_name,
        path="/",
        secure=settings.cookie_secure,
        httponly=True,
        samesite="strict",
    )


async def get_current_session(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    token_service: SessionTokenService = Depends(get_token_service),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionClaims:
    """Dependency returning the claims of the cookie's live admin session."""
    token = request.cookies.get(settings.admin_session_cookie_name)
    try:
        return authenticate_session(token, token_service, registry)
    except AuthError as e:
        logger.debug(f"Admin session rejected: {type(e).__name__}: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        ) from e
    except Exception as e:
        logger.exception("Unexpected error validating admin session")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        ) from e


@router.post(
    "/login",
    response_model=OkResponse,
    responses={
        status.HTTP_401_UNAUTHORIZED: {"model": OkResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"description": "Too many failed attempts"},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"description": "Admin login not configured"},
    },
)
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    token_service: SessionTokenService = Depends(get_token_service),
    registry: SessionRegistry = Depends(get_session_registry),
    rate_limiter: LoginRateLimiter = Depends(get_login_rate_limiter),
    authenticator: AdminAuthenticator = Depends(get_admin_authenticator),
) -> OkResponse | JSONResponse:
    """Authenticate the admin and start a session.

    Sets the session cookie on success. Failed attempts are throttled per
    client IP.
    """
    client_ip = get_client_ip(request)
    if await rate_limiter.is_limited(client_ip):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Please try again later.",
        )

    if not authenticator.is_configured or not settings.admin_session_secret:
        logger.error(
            "Missing admin configuration. Required: ADMIN_USERNAME, "
            "ADMIN_PASSWORD_HASH (or ADMIN_PASSWORD_HASH_B64), ADMIN_SESSION_SECRET"
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error",
        )

    try:
        subject = authenticator.authenticate(body.username, body.password)
    except InvalidCredentialsError:
        await rate_limiter.record_failure(client_ip)
        logger.warning(f"Failed admin login from {client_ip}")
        return _unauthenticated()

    try:
        issued = token_service.issue(subject)
    except MissingSecretError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error",
        ) from e

    registry.activate(issued.claims.jti, subject=subject, expires_at=issued.claims.exp)
    set_session_cookie(response, issued.token, settings)
    logger.info(f"Admin logged in: {subject} from {client_ip}")
    return OkResponse(ok=True)


@router.get(
    "/session/validate",
    response_model=OkResponse,
    responses={status.HTTP_401_UNAUTHORIZED: {"model": OkResponse}},
)
async def validate_session(
    request: Request,
    settings: Settings = Depends(get_app_settings),
    token_service: SessionTokenService = Depends(get_token_service),
    registry: SessionRegistry = Depends(get_session_registry),
) -> OkResponse | JSONResponse:
    """Report whether the cookie's admin session is currently valid.

    Every failure produces the same 401 body; the reason is only logged.
    """
    token = request.cookies.get(settings.admin_session_cookie_name)
    try:
        authenticate_session(token, token_service, registry)
    except AuthError as e:
        logger.info(f"Admin session validation failed: {type(e).__name__}")
        return _unauthenticated()
    except Exception:
        logger.exception("Unexpected error during admin session validation")
        return _unauthenticated()
    return OkResponse(ok=True)


@router.post("/logout", response_model=OkResponse)
async def logout(
    request: Request,
    response: Response,
    settings: Settings = Depends(get_app_settings),
    registry: SessionRegistry = Depends(get_session_registry),
) -> OkResponse:
    """Revoke the cookie's session and clear the cookie.

    Always succeeds. Expired or unsigned tokens are still revoked as long as
    a session id can be read from them.
    """
    try:
        token = request.cookies.get(settings.admin_session_cookie_name)
        session_id = SessionTokenService.peek_session_id(token)
        if session_id:
            registry.deactivate(session_id)
    except Exception:
        logger.exception("Error revoking admin session during logout")
    clear_session_cookie(response, settings)
    return OkResponse(ok=True)


@router.get("/session", response_model=SessionInfoResponse)
async def get_session_info(
    claims: SessionClaims = Depends(get_current_session),
    registry: SessionRegistry = Depends(get_session_registry),
) -> SessionInfoResponse:
    """Get metadata for the current admin session."""
    return session_info(claims, registry)


def session_info(claims: SessionClaims, registry: SessionRegistry) -> SessionInfoResponse:
    record = registry.get(claims.jti)
    return SessionInfoResponse(
        subject=claims.sub,
        session_id=claims.jti,
        issued_at=claims.iat,
        expires_at=claims.exp,
        last_activity=record.last_activity if record else None,
    )
