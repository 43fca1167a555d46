import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from bluezone.config import Settings, get_settings


logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo(settings: Optional[Settings] = None) -> AsyncIOMotorDatabase:
    global _client, _database
    if settings is None:
        settings = get_settings()
    _client = AsyncIOMotorClient(settings.mongo_url)
    _database = _client[settings.mongo_db]
    logger.info("Connected to MongoDB database %s", settings.mongo_db)
    return _database


async def close_mongo_connection() -> None:
    global _client, _database
    if _client is not None:
        _client.close()
        logger.info("MongoDB connection closed")
    _client = None
    _database = None


def use_database(db: AsyncIOMotorDatabase) -> None:
    """Install an already-built database handle (tests, scripts)."""
    global _database
    _database = db


def get_database() -> AsyncIOMotorDatabase:
    if _database is None:
        raise RuntimeError("MongoDB is not connected")
    return _database


async def mongo_db_dependency() -> AsyncIOMotorDatabase:
    return get_database()
