"""
screenbot/db/indexes.py

Purpose: Database index management

- TTL index giving every key/value record its own expiry
- Idempotent; safe to run on every startup
"""

from screenbot.db.mongo import get_kv_collection
from screenbot.core.logging import get_logger

logger = get_logger(__name__)


async def create_indexes(collection=None):
    """
    Creates the indexes the key/value store relies on.
    The _id index already makes keys unique.
    """
    kv = collection if collection is not None else get_kv_collection()

    try:
        logger.info("Creating database indexes...")

        # Mongo's TTL monitor deletes a document once expires_at has passed
        await kv.create_index(
            "expires_at",
            expireAfterSeconds=0,
            name="kv_expiry_ttl_idx"
        )
        logger.debug("Created TTL index on kv.expires_at")

        logger.info("✅ All database indexes created successfully")

    except Exception as e:
        logger.error(f"Failed to create indexes: {str(e)}", exc_info=True)
        raise


if __name__ == "__main__":
    """
    Run this script directly to create indexes manually.
    """
    import asyncio
    from screenbot.db.mongo import connect_to_mongo, close_mongo_connection

    async def main():
        await connect_to_mongo()
        await create_indexes()
        await close_mongo_connection()

    asyncio.run(main())
