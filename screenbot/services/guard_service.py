"""
screenbot/services/guard_service.py

Purpose: Delivery-reliability guards

- Inbound message dedup (provider retries of the same message id)
- Command dedup (duplicate START within a short window)
- Per-user sliding-window rate limiting

All guards are best-effort: the store adapter never raises, so a store
outage reads as "not seen" / "not limited" and the conversation goes on.
No compare-and-swap is used; concurrent duplicates may both pass.
"""

import time
from enum import Enum
from typing import Callable, Optional

from screenbot.core.config import GuardConfig
from screenbot.core.logging import get_logger
from screenbot.services.store_service import KeyedStore
from screenbot.utils.constants import (
    MESSAGE_ID_KEY_PREFIX,
    MESSAGE_ID_TTL_SECONDS,
    RATE_LIMIT_KEY_PREFIX,
    RATE_LIMIT_TTL_SECONDS,
    START_DEDUP_KEY_PREFIX,
    START_DEDUP_TTL_SECONDS,
)

logger = get_logger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class MessageDeduplicator:
    """Remembers provider message ids for longer than the provider retries them."""

    def __init__(self, store: KeyedStore, ttl_seconds: int = MESSAGE_ID_TTL_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    async def seen_before(self, message_id: Optional[str]) -> bool:
        """
        True if this message id was already accepted; otherwise marks it.
        Events without an id can't be deduplicated and are always new.
        """
        if not message_id:
            return False

        key = f"{MESSAGE_ID_KEY_PREFIX}{message_id}"
        if await self.store.get(key):
            logger.info(f"🔁 Duplicate delivery ignored: msgId={message_id}")
            return True

        await self.store.put(key, "1", self.ttl_seconds)
        return False


class CommandDeduplicator:
    """Collapses repeated START commands from one user inside a short window."""

    def __init__(self, store: KeyedStore, ttl_seconds: int = START_DEDUP_TTL_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    def _key(self, identity: str) -> str:
        return f"{START_DEDUP_KEY_PREFIX}{identity}"

    async def check_and_mark(self, identity: str) -> bool:
        """
        Returns True if the command was already processed within the window.
        Otherwise sets the marker and returns False.
        """
        key = self._key(identity)
        if await self.store.get(key):
            return True
        await self.store.put(key, "1", self.ttl_seconds)
        return False

    async def clear(self, identity: str) -> None:
        await self.store.delete(self._key(identity))


class RateDecision(str, Enum):
    ALLOWED = "allowed"
    THROTTLED = "throttled"              # first rejection of a burst
    THROTTLED_QUIET = "throttled_quiet"  # burst already notified


class RateLimiter:
    """
    Sliding window of `rate_limit_max` events per `rate_limit_window_ms`.

    Rejected attempts are not recorded, so a burst never eats into the
    budget of the next window. The record remembers whether the current
    burst was already told to slow down; the next admitted event starts
    a fresh record and so clears that mark.
    """

    def __init__(
        self,
        store: KeyedStore,
        config: Optional[GuardConfig] = None,
        clock_ms: Callable[[], int] = _now_ms,
        ttl_seconds: int = RATE_LIMIT_TTL_SECONDS,
    ):
        self.store = store
        self.config = config or GuardConfig()
        self.clock_ms = clock_ms
        self.ttl_seconds = ttl_seconds

    def _key(self, identity: str) -> str:
        return f"{RATE_LIMIT_KEY_PREFIX}{identity}"

    async def check(self, identity: str) -> RateDecision:
        """
        Admits and records one event, or rejects it.
        Only the first rejection of a burst comes back as THROTTLED.
        """
        key = self._key(identity)
        now = self.clock_ms()
        window_start = now - self.config.rate_limit_window_ms

        record = await self.store.get_json(key)
        if not isinstance(record, dict):
            record = {}
        timestamps = [
            ts for ts in record.get("timestamps", [])
            if isinstance(ts, (int, float)) and ts > window_start
        ]

        if len(timestamps) >= self.config.rate_limit_max:
            if record.get("notified"):
                logger.info("Rate limited, burst already notified", extra={"user_id": identity})
                return RateDecision.THROTTLED_QUIET

            logger.warning(
                f"Rate limit exceeded ({len(timestamps)}/{self.config.rate_limit_max})",
                extra={"user_id": identity}
            )
            await self.store.put_json(key, {"timestamps": timestamps, "notified": True}, self.ttl_seconds)
            return RateDecision.THROTTLED

        timestamps.append(now)
        await self.store.put_json(key, {"timestamps": timestamps}, self.ttl_seconds)
        return RateDecision.ALLOWED

    async def allow(self, identity: str) -> bool:
        return await self.check(identity) is RateDecision.ALLOWED
