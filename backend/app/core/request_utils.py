"""Request utility functions for handling common request operations."""

import ipaddress
import logging

from fastapi import Request

logger = logging.getLogger(__name__)

# Hosts allowed to report the real client address via X-Real-IP
_LOCAL_PROXY_HOSTS = ("127.0.0.1", "::1", "localhost")


def _is_valid_ip(ip_str: str) -> bool:
    """Check if a string is a valid IP address."""
    try:
        ipaddress.ip_address(ip_str)
        return True
    except ValueError:
        return False


def get_client_ip(request: Request) -> str:
    """Get the client IP address used to key login throttling.

    Priority order:
    1. X-Real-IP, only when the direct peer is a local reverse proxy
    2. Direct client connection
    3. "unknown" when neither is available

    X-Forwarded-For is NOT trusted as clients can set it freely.
    """
    if request.client and request.client.host in _LOCAL_PROXY_HOSTS:
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            ip = real_ip.strip()
            if _is_valid_ip(ip):
                return ip
            logger.warning(f"Invalid X-Real-IP: {real_ip}")

    if request.client and request.client.host:
        return request.client.host

    return "unknown"
