"""
Client metadata resolution for FastAPI requests.

Used when a session is created to record where the login came from.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request


def get_client_ip(request: Request) -> str:
    """Extract the real client IP from a FastAPI ``Request``.

    Checks proxy headers in priority order before falling back to the
    direct connection address:

    1. ``CF-Connecting-IP`` — Cloudflare
    2. ``X-Forwarded-For`` — standard proxy header (first IP in list)
    3. ``X-Real-IP`` — nginx / other reverse proxies

    Returns:
        The resolved client IP string, or ``""`` if none can be found.
    """
    for header in ("CF-Connecting-IP", "X-Forwarded-For", "X-Real-IP"):
        ip_value: str | None = request.headers.get(header)
        if ip_value:
            client_ip = ip_value.split(",")[0].strip()
            if client_ip:
                return client_ip

    return request.client.host if request.client else ""


def get_user_agent(request: Request, max_length: int = 255) -> Optional[str]:
    """Return the (truncated) User-Agent header, or ``None`` when absent."""
    user_agent = request.headers.get("User-Agent")
    if not user_agent:
        return None
    return user_agent[:max_length]
