from __future__ import annotations

import json
from typing import Any, Optional

from app.connections.redis import get_redis


def cache_set(key: str, value: str, ttl_seconds: int | None = None) -> bool:
    client = get_redis()
    if ttl_seconds is None:
        return bool(client.set(name=key, value=value))
    return bool(client.setex(name=key, time=ttl_seconds, value=value))


def cache_get(key: str) -> Optional[str]:
    client = get_redis()
    return client.get(name=key)


def cache_delete(key: str) -> int:
    client = get_redis()
    return int(client.delete(key))


def cache_get_json(key: str) -> Any | None:
    raw = cache_get(key)
    if not isinstance(raw, str):
        return None
    return json.loads(raw)


def cache_set_json(key: str, value: Any, ttl_seconds: int | None = None) -> bool:
    return cache_set(key, json.dumps(value), ttl_seconds=ttl_seconds)
