from __future__ import annotations
from fastapi import Request

from app.connections.redis import get_redis
from app.utils.base.errors import RateLimited


def limit_route(seconds: int):
    """Return a FastAPI dependency that rate-limits a client on a route for N seconds.

    Uses Redis TTL to block repeated calls from the same client address to the
    same path within the configured time window. A window of 0 disables it.
    """

    def _dependency(request: Request) -> None:
        if seconds <= 0:
            return
        client = get_redis()
        host = request.client.host if request.client else "unknown"
        key = f"rl:{host}:{request.url.path}"

        # If a TTL exists, the client must wait; otherwise set a new TTL.
        ttl = client.ttl(key)
        if ttl and ttl > 0:
            raise RateLimited(f"Rate limited. Try again in {ttl}s")
        client.setex(name=key, time=seconds, value="1")

    return _dependency
