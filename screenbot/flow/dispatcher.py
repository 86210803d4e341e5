"""
screenbot/flow/dispatcher.py

Purpose: Conversation orchestrator

- Receives normalized messages after the webhook has been acknowledged
- Handles STOP, START and RESTART ahead of the guards
- Applies opt-out and rate-limit guards (one throttle notice per burst)
- Answers PING once past the guards
- Runs the screening state machine and executes its action
- Never lets an exception escape; the user always gets a way out
"""

from typing import Optional

from screenbot.core.config import ScreeningConfig
from screenbot.core.logging import get_logger, LogContext
from screenbot.flow.machine import Advance, Reject, Terminate, evaluate
from screenbot.flow.vocabulary import normalize_input
from screenbot.schemas.session import ResultPayload, Session, utcnow
from screenbot.schemas.webhook import InboundMessage
from screenbot.services.guard_service import CommandDeduplicator, RateDecision, RateLimiter
from screenbot.services.notifier_service import ResultNotifier
from screenbot.services.optout_service import OptOutRegistry
from screenbot.services.outbound_service import OutboundChannel
from screenbot.services.session_service import SessionStore
from screenbot.utils.constants import (
    ALREADY_STARTED_MESSAGE,
    COMMAND_PING,
    COMMAND_RESTART,
    COMMAND_START,
    COMMAND_STOP,
    FAIL_MESSAGES,
    GENERIC_ERROR_MESSAGE,
    GENERIC_FAIL_MESSAGE,
    INVALID_HINT,
    NO_SESSION_MESSAGE,
    OPT_OUT_CONFIRMATION,
    PASS_MESSAGE,
    PONG_MESSAGE,
    RATE_LIMITED_MESSAGE,
)

logger = get_logger(__name__)


class ConversationOrchestrator:

    def __init__(
        self,
        sessions: SessionStore,
        optouts: OptOutRegistry,
        command_dedup: CommandDeduplicator,
        rate_limiter: RateLimiter,
        outbound: OutboundChannel,
        notifier: ResultNotifier,
        config: Optional[ScreeningConfig] = None,
    ):
        self.sessions = sessions
        self.optouts = optouts
        self.command_dedup = command_dedup
        self.rate_limiter = rate_limiter
        self.outbound = outbound
        self.notifier = notifier
        self.config = config or ScreeningConfig()

    async def handle(self, message: InboundMessage) -> None:
        """
        Processes one inbound message end to end.
        Any unexpected fault becomes a single "reply RESTART" message.
        """
        identity = message.identity
        with LogContext(user_id=identity, message_id=message.message_id):
            try:
                logger.info(f"📨 Processing message: {message.text[:50]!r}")
                await self._process(message)
            except Exception as e:
                logger.error(f"❌ Dispatcher error: {e}", exc_info=True)
                try:
                    await self.outbound.send_text(identity, GENERIC_ERROR_MESSAGE)
                except Exception:
                    logger.exception("Failed to deliver the generic error message")

    async def _process(self, message: InboundMessage) -> None:
        identity = message.identity
        command = normalize_input(message.text)

        if command == COMMAND_STOP:
            await self.optouts.set_opt_out(identity)
            await self.outbound.send_text(identity, OPT_OUT_CONFIRMATION)
            return

        if command in (COMMAND_START, COMMAND_RESTART):
            await self._start(identity, command)
            return

        if await self.optouts.is_opted_out(identity):
            logger.info("Opted out, ignoring")
            return

        decision = await self.rate_limiter.check(identity)
        if decision is RateDecision.THROTTLED:
            await self.outbound.send_text(identity, RATE_LIMITED_MESSAGE)
            return
        if decision is RateDecision.THROTTLED_QUIET:
            return

        # Diagnostic; answers with or without a session but counts against the window
        if command == COMMAND_PING:
            await self.outbound.send_text(identity, PONG_MESSAGE)
            return

        session = await self.sessions.load(identity)
        if session is None:
            await self.outbound.send_text(identity, NO_SESSION_MESSAGE)
            return

        if session.completed:
            logger.info("Session already completed, ignoring input")
            return

        await self._answer(identity, session, message.answer)

    async def _start(self, identity: str, command: str) -> None:
        """
        START and RESTART both wipe the session and send the first question.
        START is deduplicated; RESTART always resets.
        """
        if await self.optouts.is_opted_out(identity):
            # Re-opt-in gets a clean start, never treated as a duplicate
            await self.optouts.clear_opt_out(identity)
            await self.command_dedup.clear(identity)
        elif command == COMMAND_START and await self.command_dedup.check_and_mark(identity):
            logger.info("Duplicate START within window, reminding instead of resetting")
            await self.outbound.send_text(identity, ALREADY_STARTED_MESSAGE)
            return

        logger.info(f"command={command}, resetting session")
        await self.sessions.delete(identity)
        session = await self.sessions.save(identity, self.sessions.create())
        await self.outbound.send_question(identity, session.step)

    async def _answer(self, identity: str, session: Session, raw_answer: str) -> None:
        step = session.step
        with LogContext(step=step.value):
            action = evaluate(step, normalize_input(raw_answer), session.answers, self.config)
            logger.info(f"[handle_step] step.before={step.value} action={type(action).__name__}")

            if isinstance(action, Reject):
                await self.outbound.send_question(identity, step, prefix=INVALID_HINT[step])
                return

            if isinstance(action, Advance):
                await self.sessions.save(
                    identity,
                    session.model_copy(update={"step": action.next_step, "answers": action.answers}),
                )
                await self.outbound.send_question(identity, action.next_step)
                return

            if isinstance(action, Terminate):
                await self._terminate(identity, session, action)
                return

            raise TypeError(f"Unhandled action {action!r}")

    async def _terminate(self, identity: str, session: Session, action: Terminate) -> None:
        # Completed sessions are kept (flagged) until their TTL runs out
        finished = session.model_copy(update={
            "answers": action.answers,
            "completed": True,
            "outcome": action.outcome,
            "reason": action.reason,
        })
        await self.sessions.save(identity, finished)

        self.notifier.notify(ResultPayload(
            whatsapp_from=identity,
            result=action.outcome.result,
            reason=action.reason,
            answers=action.answers,
            completed_at=utcnow(),
        ))

        logger.info(f"🏁 Screening finished: {action.outcome.result} reason={action.reason or '-'}")
        await self.outbound.send_text(identity, self._outcome_message(action))

    def _outcome_message(self, action: Terminate) -> str:
        if action.passed:
            return PASS_MESSAGE.format(handoff_link=self.config.handoff_link)

        template = FAIL_MESSAGES.get(action.step, GENERIC_FAIL_MESSAGE)
        return template.format(
            min_weekly_hours=self.config.min_weekly_hours,
            age_cutoff=self.config.age_cutoff,
        )
