"""
screenbot/services/outbound_service.py

Purpose: Outbound message channel

- Sanitizes text before every send
- Randomized pacing before each send
- Retries provider rate limiting with exponential backoff
- Sends questions as quick replies when possible, falling back to
  plain text on any failure so the conversation never stalls
- Send failures are logged and reported as False, never raised
"""

import asyncio
import hashlib
import random
from typing import Awaitable, Callable, Optional

from screenbot.core.config import OutboundConfig
from screenbot.core.exceptions import TemplateError
from screenbot.core.logging import get_logger
from screenbot.flow.states import ScreeningStep, get_step_metadata
from screenbot.services.provider_service import MessagingProvider, SendResult
from screenbot.services.store_service import KeyedStore
from screenbot.utils.constants import QUESTION_TEXT, TEMPLATE_KEY_PREFIX, TEMPLATE_TTL_SECONDS
from screenbot.utils.whatsapp_utils import (
    MAX_QUICK_REPLY_BUTTONS,
    build_quick_reply_actions,
    sanitize_text,
)

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class OutboundChannel:

    def __init__(
        self,
        provider: MessagingProvider,
        store: KeyedStore,
        config: Optional[OutboundConfig] = None,
        sleep: Sleep = asyncio.sleep,
        jitter: Callable[[float, float], float] = random.uniform,
    ):
        self.provider = provider
        self.store = store
        self.config = config or OutboundConfig()
        self.sleep = sleep
        self.jitter = jitter

    async def _pace(self):
        delay = self.jitter(self.config.min_delay_seconds, self.config.max_delay_seconds)
        if delay > 0:
            await self.sleep(delay)

    async def _deliver(self, kind: str, send: Callable[[], Awaitable[SendResult]]) -> SendResult:
        """
        Runs `send` up to max_attempts times.
        Only rate-limited responses are retried, after 2s, 4s, 8s...
        """
        result = SendResult(success=False, error="not attempted")
        for attempt in range(self.config.max_attempts):
            if attempt > 0:
                backoff = 2 ** attempt
                logger.warning(f"[{kind}] 429 rate-limited, retry attempt={attempt} backoff={backoff}s")
                await self.sleep(backoff)

            result = await send()

            if result.success:
                logger.info(f"[{kind}] ✅ sent (id={result.message_id or 'n/a'})")
                return result

            if not result.retryable:
                break

        if result.auth_failed:
            logger.error(
                f"[{kind}] auth error {result.status_code}, check {self.provider.name} credentials "
                f"(instance may be disconnected). body={result.error}"
            )
        else:
            logger.error(f"[{kind}] ❌ send failed status={result.status_code} error={result.error}")
        return result

    async def send_text(self, identity: str, text: str) -> bool:
        """
        Sends a plain text message.

        Returns:
            True if the provider accepted it
        """
        if not text:
            logger.warning("⚠️ Empty outbound message skipped")
            return False

        await self._pace()
        body = sanitize_text(text)
        result = await self._deliver("send_text", lambda: self.provider.send_text(identity, body))
        return result.success

    def _can_use_quick_replies(self, step: ScreeningStep) -> bool:
        metadata = get_step_metadata(step)
        return (
            self.config.quick_replies_enabled
            and self.provider.supports_quick_replies
            and not metadata.is_free_text
            and len(metadata.options) <= MAX_QUICK_REPLY_BUTTONS
        )

    async def _template_id(self, step: ScreeningStep, body: str) -> str:
        """
        Provider template for a step's quick replies, created on first use.
        The content hash in the key makes edited wording create a new template.
        """
        digest = hashlib.sha256(body.encode("utf-8")).hexdigest()[:12]
        key = f"{TEMPLATE_KEY_PREFIX}{self.provider.name}:{step.value}:{digest}"

        cached = await self.store.get(key)
        if cached:
            return cached

        actions = build_quick_reply_actions(get_step_metadata(step).options)
        template_id = await self.provider.create_quick_reply_template(
            name=f"screening_{step.value.lower()}_{digest}",
            body=body,
            actions=actions,
        )
        await self.store.put(key, template_id, TEMPLATE_TTL_SECONDS)
        return template_id

    async def send_question(self, identity: str, step: ScreeningStep, prefix: Optional[str] = None) -> bool:
        """
        Sends the prompt for `step`, optionally preceded by `prefix`
        (e.g. an invalid-input hint) in the same message.
        """
        text = QUESTION_TEXT[step]
        if prefix:
            text = f"{prefix}\n\n{text}"

        if self._can_use_quick_replies(step):
            body = sanitize_text(text)
            try:
                template_id = await self._template_id(step, body)
                await self._pace()
                result = await self._deliver(
                    "send_quick_reply",
                    lambda: self.provider.send_template(identity, template_id),
                )
                if result.success:
                    return True
                logger.warning(f"Quick reply for {step.value} not delivered, falling back to text")
            except Exception as e:
                logger.warning(
                    f"Quick reply for {step.value} unavailable ({e}), falling back to text",
                    exc_info=not isinstance(e, TemplateError),
                )

        return await self.send_text(identity, text)
