"""Startup/shutdown sequence and background maintenance tasks."""

import asyncio
import logging

from app.core.config import Settings
from app.core.logging import get_logger, setup_logging
from app.services.login_rate_limit import LoginRateLimiter
from app.services.session_registry import SessionRegistry

_logger = get_logger("lifespan")

# Login throttle entries are small; hourly cleanup is enough
LOGIN_THROTTLE_CLEANUP_INTERVAL = 3600


def task_done_callback(task: asyncio.Task[None]) -> None:
    """Log unhandled exceptions from background tasks."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        _logger.error(f"Background task {task.get_name()} failed: {exc}")


async def session_sweep_loop(registry: SessionRegistry, interval: float) -> None:
    """Periodically remove expired sessions from the registry."""
    while True:
        await asyncio.sleep(interval)
        try:
            removed = registry.sweep_expired()
            if removed > 0:
                _logger.info(f"Swept {removed} expired admin sessions")
        except Exception:
            _logger.exception("Error sweeping admin session registry")


async def login_throttle_cleanup_loop(rate_limiter: LoginRateLimiter) -> None:
    """Periodically drop idle login throttle entries."""
    while True:
        try:
            await asyncio.sleep(LOGIN_THROTTLE_CLEANUP_INTERVAL)
            await rate_limiter.cleanup()
        except asyncio.CancelledError:
            break
        except Exception as e:
            _logger.warning(f"Login throttle cleanup error: {e}")


async def run_startup(
    logger: logging.Logger,
    settings: Settings,
    registry: SessionRegistry,
    rate_limiter: LoginRateLimiter,
) -> list[asyncio.Task]:
    """Configure logging, report security warnings and start maintenance tasks.

    Returns the background tasks that must be cancelled on shutdown via
    ``run_shutdown``.
    """
    setup_logging(
        level=settings.log_level,
        format_type="structured" if not settings.debug else "dev",
        cookie_name=settings.admin_session_cookie_name,
    )

    for warning in settings.check_security_configuration():
        logger.warning(f"SECURITY: {warning}")

    tasks: list[asyncio.Task] = []

    sweep_task = asyncio.create_task(
        session_sweep_loop(registry, settings.session_sweep_interval_seconds),
        name="session-sweep",
    )
    sweep_task.add_done_callback(task_done_callback)
    tasks.append(sweep_task)

    throttle_task = asyncio.create_task(
        login_throttle_cleanup_loop(rate_limiter),
        name="login-throttle-cleanup",
    )
    throttle_task.add_done_callback(task_done_callback)
    tasks.append(throttle_task)

    return tasks


async def run_shutdown(logger: logging.Logger, tasks: list[asyncio.Task]) -> None:
    """Cancel background tasks started by ``run_startup``."""
    for task in tasks:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
    logger.info("Background tasks stopped")
