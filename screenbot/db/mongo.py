"""
screenbot/db/mongo.py

Purpose: MongoDB connection setup

- One Motor client per process, opened at startup and closed at shutdown
- Single collection: kv (key/value records with per-key expiry)
- Startup retries with exponential backoff
"""

import asyncio
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from screenbot.core.config import settings
from screenbot.core.logging import get_logger

logger = get_logger(__name__)

KV_COLLECTION = "kv"

# Small pool: every request does a handful of single-document reads/writes
CLIENT_OPTIONS = {
    "maxPoolSize": 20,
    "minPoolSize": 1,
    "serverSelectionTimeoutMS": 5000,
    "connectTimeoutMS": 10000,
    "retryWrites": True,
    "retryReads": True,
    "tz_aware": True,
}

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


async def connect_to_mongo(
    url: Optional[str] = None,
    db_name: Optional[str] = None,
    max_retries: int = 3,
    retry_delay: float = 2.0,
):
    """
    Opens the shared client and verifies it with a ping.

    Raises:
        ConnectionError: If the server is still unreachable after max_retries
    """
    global _client, _database

    if _client is not None:
        logger.warning("MongoDB client already initialized")
        return

    url = url or settings.MONGODB_URL
    db_name = db_name or settings.MONGODB_DB_NAME
    delay = retry_delay
    last_error: Optional[Exception] = None

    for attempt in range(1, max_retries + 1):
        client = AsyncIOMotorClient(url, **CLIENT_OPTIONS)
        try:
            await client.admin.command("ping")
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            client.close()
            last_error = e
            logger.error(f"MongoDB unreachable (attempt {attempt}/{max_retries}): {e}")
            if attempt < max_retries:
                await asyncio.sleep(delay)
                delay *= 2
            continue

        _client = client
        _database = client[db_name]
        logger.info(f"✅ Connected to MongoDB database '{db_name}'")
        return

    logger.critical("Giving up on MongoDB after all retries")
    raise ConnectionError("Could not establish MongoDB connection") from last_error


async def close_mongo_connection():
    global _client, _database

    if _client is None:
        return

    _client.close()
    _client = None
    _database = None
    logger.info("MongoDB connection closed")


def get_kv_collection() -> AsyncIOMotorCollection:
    """
    Returns the key/value collection.

    Document fields:
    - _id: str (store key, e.g. "wa:573001234567")
    - value: str (opaque payload, usually JSON)
    - expires_at: datetime (TTL index removes the document after this instant)
    - updated_at: datetime
    """
    if _database is None:
        raise RuntimeError("Database not initialized. Call connect_to_mongo() during startup.")
    return _database[KV_COLLECTION]
