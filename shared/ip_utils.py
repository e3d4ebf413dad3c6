"""
Client IP resolution for FastAPI requests.

Used for the guest rate limiter bucket key and for the hashed IP bound into
request logs.
"""

from __future__ import annotations

from fastapi import Request

# Proxy headers checked in priority order before the socket peer address:
# Cloudflare, Akamai and others, standard proxies (first hop), nginx.
_IP_HEADERS: tuple[str, ...] = (
    "CF-Connecting-IP",
    "True-Client-IP",
    "X-Forwarded-For",
    "X-Real-IP",
)


def get_client_ip(request: Request) -> str:
    """Extract the real client IP from a FastAPI ``Request``.

    Returns:
        The resolved client IP string, or ``""`` if none can be found.
    """
    for header in _IP_HEADERS:
        ip_value: str | None = request.headers.get(header)
        if ip_value:
            client_ip = ip_value.split(",")[0].strip()
            if client_ip:
                return client_ip

    return request.client.host if request.client else ""


def rate_limit_key(request: Request, scope: str) -> str:
    """Bucket key for per-IP rate limiting of *scope* (e.g. ``"guest"``)."""
    return f"{scope}:{get_client_ip(request) or 'unknown'}"
