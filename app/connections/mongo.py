import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import certifi
from fastapi import FastAPI
from mongoengine import connect, disconnect

from app.utils.config import Settings, settings as default_settings


logger = logging.getLogger("campus.mongo")

MONGO_ALIAS = "default"


def init_mongo(settings: Settings = default_settings) -> None:
    """Register the default mongoengine connection used by every document."""
    connect(host=settings.mongo_uri, alias=MONGO_ALIAS, tlsCAFile=certifi.where(), tz_aware=True)
    logger.info("Connected to MongoDB database %s on %s", settings.mongo_db, settings.mongo_host)


def close_mongo() -> None:
    disconnect(alias=MONGO_ALIAS)
    logger.info("Disconnected from MongoDB")


@asynccontextmanager
async def mongo_lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_mongo(getattr(app.state, "settings", default_settings))
    try:
        yield
    finally:
        close_mongo()
