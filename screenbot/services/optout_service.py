"""
screenbot/services/optout_service.py

Purpose: Opt-out registry

- Persists a per-user "do not contact" flag with a long TTL
- Consulted before any processing of non-command messages
"""

from screenbot.core.logging import get_logger
from screenbot.services.store_service import KeyedStore
from screenbot.utils.constants import OPTOUT_KEY_PREFIX, OPTOUT_TTL_SECONDS

logger = get_logger(__name__)

OPTED_OUT = "true"


class OptOutRegistry:

    def __init__(self, store: KeyedStore, ttl_seconds: int = OPTOUT_TTL_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    def _key(self, identity: str) -> str:
        return f"{OPTOUT_KEY_PREFIX}{identity}"

    async def is_opted_out(self, identity: str) -> bool:
        return await self.store.get(self._key(identity)) == OPTED_OUT

    async def set_opt_out(self, identity: str) -> None:
        await self.store.put(self._key(identity), OPTED_OUT, self.ttl_seconds)
        logger.info("User opted out", extra={"user_id": identity})

    async def clear_opt_out(self, identity: str) -> None:
        await self.store.delete(self._key(identity))
        logger.info("User opted back in", extra={"user_id": identity})
