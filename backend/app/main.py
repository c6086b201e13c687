"""Marketplace Admin Backend - FastAPI Application Factory."""

import time
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import api_router
from app.core import Settings, get_settings
from app.core.lifespan import run_shutdown, run_startup
from app.core.logging import get_logger
from app.middleware import AdminSessionMiddleware, SecurityHeadersMiddleware
from app.services.auth import SessionTokenService
from app.services.login_rate_limit import LoginRateLimiter
from app.services.session_registry import SessionRegistry

logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    app_settings: Settings = app.state.settings
    logger.info(f"Starting {app_settings.app_name} v{app_settings.app_version}")

    tasks = await run_startup(
        logger,
        app_settings,
        app.state.session_registry,
        app.state.login_rate_limiter,
    )

    yield

    logger.info("Shutting down...")
    await run_shutdown(logger, tasks)


def create_app(
    app_settings: Settings | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> FastAPI:
    """Create and configure the FastAPI application.

    The session registry lives for the lifetime of the returned app and is
    never persisted, so restarting the process signs every admin out.
    """
    app_settings = app_settings or get_settings()

    app = FastAPI(
        title=app_settings.app_name,
        description="Admin session authentication for the marketplace console",
        version=app_settings.app_version,
        lifespan=lifespan,
        docs_url="/docs" if app_settings.debug else None,
        redoc_url="/redoc" if app_settings.debug else None,
        openapi_url="/openapi.json" if app_settings.debug else None,
    )

    token_service = SessionTokenService(
        secret=app_settings.admin_session_secret,
        ttl_seconds=app_settings.admin_session_ttl_seconds,
        clock=clock,
    )
    session_registry = SessionRegistry(clock=clock)
    login_rate_limiter = LoginRateLimiter(
        max_attempts=app_settings.login_rate_limit_attempts,
        window_seconds=app_settings.login_rate_limit_window_seconds,
    )

    app.state.settings = app_settings
    app.state.token_service = token_service
    app.state.session_registry = session_registry
    app.state.login_rate_limiter = login_rate_limiter

    # Admin console gate: redirects unauthenticated /admin/* requests to login
    app.add_middleware(
        AdminSessionMiddleware,
        token_service=token_service,
        registry=session_registry,
        cookie_name=app_settings.admin_session_cookie_name,
        login_path=app_settings.admin_login_path,
        protected_prefixes=app_settings.protected_prefixes_list,
        public_paths=app_settings.public_paths_list,
    )

    app.add_middleware(SecurityHeadersMiddleware)

    # CORS middleware - MUST be outermost (added last in Starlette LIFO order)
    # so that CORS headers are present on redirects and 401s as well.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "X-Request-ID"],
    )

    app.include_router(api_router)

    return app


# Application instance
app = create_app()


def serve() -> None:
    """Run the application with uvicorn (console entry point)."""
    import uvicorn

    app_settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        log_level=app_settings.log_level.lower(),
        reload=app_settings.debug,
    )
