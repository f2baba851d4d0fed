import logging

import redis
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from fastapi import FastAPI

from app.utils.config import Settings, settings as default_settings


logger = logging.getLogger("campus.redis")


# Shared by the cache helpers and the rate limiter
_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    assert _redis_client is not None, "Redis not initialized"
    return _redis_client


def init_redis(settings: Settings = default_settings) -> None:
    global _redis_client
    _redis_client = redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        password=settings.redis_password,
        decode_responses=True,
        socket_timeout=2.0,
    )
    logger.info("Redis client configured for %s:%s/%s", settings.redis_host, settings.redis_port, settings.redis_db)


def close_redis() -> None:
    global _redis_client
    if _redis_client is not None:
        try:
            _redis_client.close()
        finally:
            _redis_client = None


@asynccontextmanager
async def redis_lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_redis(getattr(app.state, "settings", default_settings))
    try:
        yield
    finally:
        close_redis()
