"""
Client IP resolution for FastAPI requests.

The resolved address is the actor key for the per-IP windowed rate limits.
"""

from __future__ import annotations

from fastapi import Request

# Checked in order; the first non-empty value wins
_PROXY_HEADERS = ("X-Forwarded-For", "X-Real-IP", "CF-Connecting-IP")


def get_client_ip(request: Request) -> str:
    """Return the caller's IP, or ``""`` when it cannot be resolved.

    Proxy headers take precedence over the socket peer. For
    ``X-Forwarded-For`` only the left-most (original client) entry is used.
    """
    for header in _PROXY_HEADERS:
        forwarded = request.headers.get(header, "")
        candidate = forwarded.split(",")[0].strip()
        if candidate:
            return candidate

    return request.client.host if request.client else ""
