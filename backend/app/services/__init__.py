# Marketplace Admin Services
from app.services.auth import AdminAuthenticator, SessionTokenService, authenticate_session
from app.services.login_rate_limit import LoginRateLimiter
from app.services.session_registry import SessionRecord, SessionRegistry

__all__ = [
    "AdminAuthenticator",
    "LoginRateLimiter",
    "SessionRecord",
    "SessionRegistry",
    "SessionTokenService",
    "authenticate_session",
]
