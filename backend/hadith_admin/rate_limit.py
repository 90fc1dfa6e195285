"""Login throttling for the admin console (slowapi)."""

from fastapi import Request
from slowapi import Limiter


def client_ip(request: Request) -> str:
    """Client address behind a proxy: first X-Forwarded-For hop, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
    if forwarded:
        return forwarded
    real_ip = request.headers.get("X-Real-IP", "").strip()
    if real_ip:
        return real_ip
    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=client_ip, headers_enabled=False)
