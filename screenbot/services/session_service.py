"""
screenbot/services/session_service.py

Purpose: Session persistence

- Loads and saves the full session record for an identity
- Every save refreshes last_activity_at and the sliding 7-day TTL
- Records are always rewritten whole, never partially updated
- Expiry is left to the store TTL
"""

from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from screenbot.core.logging import get_logger
from screenbot.schemas.session import Session, utcnow
from screenbot.services.store_service import KeyedStore
from screenbot.utils.constants import SESSION_KEY_PREFIX, SESSION_TTL_SECONDS

logger = get_logger(__name__)


class SessionStore:

    def __init__(self, store: KeyedStore, ttl_seconds: int = SESSION_TTL_SECONDS):
        self.store = store
        self.ttl_seconds = ttl_seconds

    def _key(self, identity: str) -> str:
        return f"{SESSION_KEY_PREFIX}{identity}"

    @staticmethod
    def create() -> Session:
        """Fresh session positioned at the first question."""
        now = utcnow()
        return Session(started_at=now, last_activity_at=now)

    async def load(self, identity: str) -> Optional[Session]:
        """
        Retrieves the session for a user.

        Returns:
            Session, or None if absent, expired or unreadable
        """
        raw = await self.store.get(self._key(identity))
        if not raw:
            return None

        try:
            return Session.model_validate_json(raw)
        except PydanticValidationError as e:
            logger.warning(
                f"Discarding unreadable session: {e.error_count()} error(s)",
                extra={"user_id": identity}
            )
            return None

    async def save(self, identity: str, session: Session) -> Session:
        """
        Persists the whole record with a refreshed activity timestamp.

        Returns:
            The session as written
        """
        stored = session.model_copy(update={"last_activity_at": utcnow()})
        await self.store.put(self._key(identity), stored.model_dump_json(), self.ttl_seconds)
        logger.debug(
            f"Session saved at step {stored.step.value} (completed={stored.completed})",
            extra={"user_id": identity}
        )
        return stored

    async def delete(self, identity: str) -> None:
        await self.store.delete(self._key(identity))
