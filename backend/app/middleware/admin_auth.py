"""Admin console gate.

Requests for protected admin pages must carry a valid session cookie: the
token signature and expiry must check out and its session id must still be
in the active-session registry. Anything else is redirected to the login
page. Paths outside the protected prefixes pass straight through.
"""

import logging

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import RedirectResponse
from starlette.types import ASGIApp

from app.services.auth import AuthError, SessionTokenService, authenticate_session
from app.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


def path_matches(path: str, prefix: str) -> bool:
    """Exact or segment-boundary prefix match.

    "/admin" matches "/admin" and "/admin/users" but not "/administrator".
    """
    if prefix == "/":
        return True
    return path == prefix or path.startswith(prefix + "/")


class AdminSessionMiddleware(BaseHTTPMiddleware):
    """Redirect unauthenticated requests for protected admin paths to login.

    - Session token is read from the session cookie
    - Redirects (307) when the cookie is missing, the token fails
      verification, or the session has been revoked
    - Never grants access on an unexpected error
    """

    def __init__(
        self,
        app: ASGIApp,
        token_service: SessionTokenService,
        registry: SessionRegistry,
        cookie_name: str = "admin_session",
        login_path: str = "/admin/login",
        protected_prefixes: list[str] | None = None,
        public_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.token_service = token_service
        self.registry = registry
        self.cookie_name = cookie_name
        self.login_path = login_path
        self.protected_prefixes = protected_prefixes or ["/admin"]
        # The login page is always reachable, otherwise the redirect would loop
        self.public_paths = [login_path, *(public_paths or [])]

    def is_protected(self, path: str) -> bool:
        if any(path_matches(path, public) for public in self.public_paths):
            return False
        return any(path_matches(path, prefix) for prefix in self.protected_prefixes)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path

        # CORS preflight is answered by CORSMiddleware
        if request.method == "OPTIONS" or not self.is_protected(path):
            return await call_next(request)

        token = request.cookies.get(self.cookie_name)
        if not token:
            logger.debug(f"Admin request without session cookie: {request.method} {path}")
            return self._redirect_to_login()

        try:
            authenticate_session(token, self.token_service, self.registry)
        except AuthError as e:
            logger.warning(
                f"Admin session rejected for {request.method} {path}: "
                f"{type(e).__name__}: {e}"
            )
            return self._redirect_to_login()
        except Exception:
            logger.exception(f"Unexpected error validating admin session for {path}")
            return self._redirect_to_login()

        return await call_next(request)

    def _redirect_to_login(self) -> RedirectResponse:
        return RedirectResponse(url=self.login_path, status_code=307)
