"""Middleware module for the marketplace admin backend."""

from app.middleware.admin_auth import AdminSessionMiddleware
from app.middleware.security_headers import SecurityHeadersMiddleware

__all__ = [
    "AdminSessionMiddleware",
    "SecurityHeadersMiddleware",
]
