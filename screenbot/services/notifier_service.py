"""
screenbot/services/notifier_service.py

Purpose: Result notification

- Posts terminal screening results to an external webhook
- Fire-and-forget: a detached task nobody awaits, no retry, no ack
- Failures are logged and dropped
"""

import asyncio
from typing import Optional, Set

import httpx

from screenbot.core.logging import get_logger
from screenbot.schemas.session import ResultPayload

logger = get_logger(__name__)


class ResultNotifier:

    def __init__(
        self,
        url: Optional[str],
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
    ):
        self.url = url
        self._client = client
        self._owns_client = client is None
        self.timeout = timeout
        # Strong references so pending tasks are not garbage-collected
        self._pending: Set[asyncio.Task] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def notify(self, payload: ResultPayload) -> Optional[asyncio.Task]:
        """
        Schedules delivery of `payload` and returns immediately.
        Must be called from a running event loop.
        """
        if not self.enabled:
            return None

        task = asyncio.create_task(self._post(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _post(self, payload: ResultPayload) -> None:
        try:
            response = await self.client.post(self.url, json=payload.model_dump(mode="json"))
            if response.is_success:
                logger.info(
                    f"📬 Result webhook delivered ({payload.result})",
                    extra={"user_id": payload.whatsapp_from}
                )
            else:
                logger.error(
                    f"Result webhook POST returned {response.status_code}",
                    extra={"user_id": payload.whatsapp_from}
                )
        except Exception as e:
            logger.error(
                f"Result webhook POST failed: {e}",
                extra={"user_id": payload.whatsapp_from}
            )

    async def drain(self) -> None:
        """Waits for in-flight notifications (used on shutdown and in tests)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def aclose(self) -> None:
        await self.drain()
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None
