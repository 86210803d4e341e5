"""
screenbot/services/store_service.py

Purpose: Fail-safe key/value store with per-key TTL

- get / put / delete over the Mongo kv collection
- Never raises: backend errors are logged and become None / no-op
- Expired records are treated as absent even before the TTL monitor
  removes them
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from screenbot.core.logging import get_logger

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class KeyedStore:
    """
    Key/value adapter. Callers never see a store failure; the worst case
    is a missing value, which every caller already has to handle.
    """

    def __init__(self, collection, clock: Callable[[], datetime] = _utcnow):
        self.collection = collection
        self.clock = clock

    async def get(self, key: str) -> Optional[str]:
        try:
            doc = await self.collection.find_one({"_id": key})
        except Exception as e:
            logger.error(f"Store get failed for key '{key}': {e}", exc_info=True)
            return None

        if not doc:
            return None

        expires_at = doc.get("expires_at")
        if expires_at is not None and _as_aware(expires_at) <= self.clock():
            return None

        return doc.get("value")

    async def put(self, key: str, value: str, ttl_seconds: int) -> None:
        now = self.clock()
        try:
            await self.collection.update_one(
                {"_id": key},
                {
                    "$set": {
                        "value": value,
                        "expires_at": now + timedelta(seconds=ttl_seconds),
                        "updated_at": now,
                    }
                },
                upsert=True,
            )
        except Exception as e:
            logger.error(f"Store put failed for key '{key}': {e}", exc_info=True)

    async def delete(self, key: str) -> None:
        try:
            await self.collection.delete_one({"_id": key})
        except Exception as e:
            logger.error(f"Store delete failed for key '{key}': {e}", exc_info=True)

    async def get_json(self, key: str) -> Optional[Any]:
        """Decoded JSON value; malformed payloads count as absent."""
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning(f"Discarding malformed JSON stored under '{key}'")
            return None

    async def put_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        await self.put(key, json.dumps(value, default=str), ttl_seconds)

    async def ping(self) -> bool:
        """True when the backing collection answers a trivial query."""
        try:
            await self.collection.find_one({"_id": "__ping__"})
            return True
        except Exception as e:
            logger.error(f"Store health check failed: {e}")
            return False
