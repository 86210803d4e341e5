import pytest

from screenbot.flow.states import Outcome, ScreeningStep
from screenbot.schemas.session import Answers
from screenbot.services.session_service import SessionStore
from screenbot.utils.constants import (
    ALREADY_STARTED_MESSAGE,
    FAIL_MESSAGES,
    GENERIC_ERROR_MESSAGE,
    INVALID_HINT,
    NO_SESSION_MESSAGE,
    OPT_OUT_CONFIRMATION,
    PONG_MESSAGE,
    QUESTION_TEXT,
    RATE_LIMITED_MESSAGE,
)
from screenbot.utils.whatsapp_utils import sanitize_text

from conftest import IDENTITY


def question(step):
    return sanitize_text(QUESTION_TEXT[step])


class Conversation:
    """Drives the orchestrator with spaced-out messages so the rate limit stays idle."""

    def __init__(self, orchestrator, make_message, millis_clock, spacing_ms=3_000):
        self.orchestrator = orchestrator
        self.make_message = make_message
        self.millis_clock = millis_clock
        self.spacing_ms = spacing_ms

    async def say(self, text, **kwargs):
        self.millis_clock.now += self.spacing_ms
        await self.orchestrator.handle(self.make_message(text, **kwargs))


@pytest.fixture
def chat(orchestrator, make_message, millis_clock):
    return Conversation(orchestrator, make_message, millis_clock)


@pytest.fixture
def sessions(store):
    return SessionStore(store)


async def seed(sessions, step, answers=None):
    session = SessionStore.create().model_copy(update={"step": step, "answers": answers or Answers()})
    await sessions.save(IDENTITY, session)


class TestCommands:
    @pytest.mark.asyncio
    async def test_ping(self, chat, provider, sessions):
        await chat.say("ping")
        assert provider.sent_bodies == [PONG_MESSAGE]
        assert await sessions.load(IDENTITY) is None

    @pytest.mark.asyncio
    async def test_start_sends_first_question(self, chat, provider, sessions):
        await chat.say("start")
        assert provider.sent_bodies == [question(ScreeningStep.Q1)]
        session = await sessions.load(IDENTITY)
        assert session.step is ScreeningStep.Q1
        assert session.completed is False

    @pytest.mark.asyncio
    async def test_duplicate_start_sends_reminder(self, chat, provider, sessions):
        await chat.say("START")
        await chat.say("1")
        await chat.say("START")

        assert provider.sent_bodies[-1] == sanitize_text(ALREADY_STARTED_MESSAGE)
        session = await sessions.load(IDENTITY)
        assert session.step is ScreeningStep.Q2

    @pytest.mark.asyncio
    async def test_restart_always_resets(self, chat, provider, sessions):
        await chat.say("START")
        await chat.say("1")
        await chat.say("RESTART")
        await chat.say("restart")

        session = await sessions.load(IDENTITY)
        assert session.step is ScreeningStep.Q1
        assert session.answers.team_role is None
        assert provider.sent_bodies[-2:] == [question(ScreeningStep.Q1)] * 2

    @pytest.mark.asyncio
    async def test_no_session_prompts_start(self, chat, provider):
        await chat.say("hola")
        assert provider.sent_bodies == [sanitize_text(NO_SESSION_MESSAGE)]


class TestOptOut:
    @pytest.mark.asyncio
    async def test_stop_silences_until_start(self, chat, provider, sessions):
        await chat.say("START")
        await chat.say("stop")
        assert provider.sent_bodies[-1] == sanitize_text(OPT_OUT_CONFIRMATION)

        sent = len(provider.texts)
        await chat.say("1")
        await chat.say("hola")
        assert len(provider.texts) == sent
        assert (await sessions.load(IDENTITY)).step is ScreeningStep.Q1

        await chat.say("START")
        assert provider.sent_bodies[-1] == question(ScreeningStep.Q1)

        await chat.say("1")
        assert (await sessions.load(IDENTITY)).step is ScreeningStep.Q2

    @pytest.mark.asyncio
    async def test_reopt_in_start_is_not_deduplicated(self, chat, provider):
        await chat.say("START")
        await chat.say("STOP")
        await chat.say("START")
        assert provider.sent_bodies[-1] == question(ScreeningStep.Q1)

    @pytest.mark.asyncio
    async def test_ping_is_silent_while_opted_out(self, chat, provider):
        await chat.say("STOP")
        sent = len(provider.texts)
        await chat.say("ping")
        await chat.say("PING")
        assert len(provider.texts) == sent
        assert PONG_MESSAGE not in provider.sent_bodies


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_burst_gets_one_notice_and_no_advance(self, orchestrator, make_message, provider, sessions):
        await orchestrator.handle(make_message("START"))
        for _ in range(5):
            await orchestrator.handle(make_message("maybe"))
        sent = len(provider.texts)

        await orchestrator.handle(make_message("1"))

        assert provider.sent_bodies[sent:] == [RATE_LIMITED_MESSAGE]
        assert provider.sent_bodies.count(RATE_LIMITED_MESSAGE) == 1
        session = await sessions.load(IDENTITY)
        assert session.step is ScreeningStep.Q1
        assert session.answers.team_role is None

    @pytest.mark.asyncio
    async def test_ping_counts_against_the_window(self, orchestrator, make_message, provider):
        for _ in range(5):
            await orchestrator.handle(make_message("maybe"))
        await orchestrator.handle(make_message("PING"))
        assert provider.sent_bodies[-1] == RATE_LIMITED_MESSAGE
        assert PONG_MESSAGE not in provider.sent_bodies

    @pytest.mark.asyncio
    async def test_stop_and_start_are_never_throttled(self, orchestrator, make_message, provider):
        for _ in range(6):
            await orchestrator.handle(make_message("maybe"))
        await orchestrator.handle(make_message("START"))
        assert provider.sent_bodies[-1] == question(ScreeningStep.Q1)
        await orchestrator.handle(make_message("STOP"))
        assert provider.sent_bodies[-1] == sanitize_text(OPT_OUT_CONFIRMATION)

    @pytest.mark.asyncio
    async def test_one_notice_per_rejected_burst(self, orchestrator, make_message, provider, sessions):
        await orchestrator.handle(make_message("START"))
        for _ in range(5):
            await orchestrator.handle(make_message("maybe"))
        sent = len(provider.texts)

        for _ in range(5):
            await orchestrator.handle(make_message("1"))

        assert provider.sent_bodies[sent:] == [RATE_LIMITED_MESSAGE]
        assert (await sessions.load(IDENTITY)).step is ScreeningStep.Q1

    @pytest.mark.asyncio
    async def test_next_burst_gets_a_new_notice(self, orchestrator, make_message, provider, millis_clock):
        await orchestrator.handle(make_message("START"))
        for _ in range(7):
            await orchestrator.handle(make_message("maybe"))
        millis_clock.now += 10_000
        for _ in range(7):
            await orchestrator.handle(make_message("maybe"))
        assert provider.sent_bodies.count(RATE_LIMITED_MESSAGE) == 2

    @pytest.mark.asyncio
    async def test_window_recovers(self, orchestrator, make_message, provider, millis_clock, sessions):
        await orchestrator.handle(make_message("START"))
        for _ in range(6):
            await orchestrator.handle(make_message("maybe"))
        millis_clock.now += 10_000
        await orchestrator.handle(make_message("1"))
        assert (await sessions.load(IDENTITY)).step is ScreeningStep.Q2


class TestScreening:
    @pytest.mark.asyncio
    async def test_pass_flow(self, chat, provider, notifier, sessions):
        await chat.say("START")
        for answer in ["1", "1", "1", "1", "1", "2", "24", "3"]:
            await chat.say(answer)

        bodies = provider.sent_bodies
        assert bodies[:8] == [question(step) for step in ScreeningStep]
        assert "https://wa.me/000?text=hi" in bodies[-1]

        session = await sessions.load(IDENTITY)
        assert session.completed is True
        assert session.outcome is Outcome.PASSED

        assert len(notifier.payloads) == 1
        payload = notifier.payloads[0]
        assert payload.result == "pass"
        assert payload.reason == ""
        assert payload.whatsapp_from == IDENTITY
        assert payload.answers.age == 24
        assert payload.answers.student_types == "adults"

    @pytest.mark.asyncio
    async def test_fail_then_silence(self, chat, provider, notifier, sessions):
        await chat.say("START")
        await chat.say("2")

        assert provider.sent_bodies[-1] == sanitize_text(FAIL_MESSAGES[ScreeningStep.Q1])
        assert notifier.payloads[0].result == "fail"
        assert notifier.payloads[0].reason == "not_team_role"

        sent = len(provider.texts)
        await chat.say("1")
        await chat.say("hola")
        assert len(provider.texts) == sent
        assert len(notifier.payloads) == 1

        session = await sessions.load(IDENTITY)
        assert session.completed is True
        assert session.reason == "not_team_role"

    @pytest.mark.asyncio
    async def test_start_after_completion_begins_again(self, chat, provider, sessions):
        await chat.say("START")
        await chat.say("no")
        await chat.say("RESTART")
        session = await sessions.load(IDENTITY)
        assert session.completed is False
        assert session.step is ScreeningStep.Q1

    @pytest.mark.asyncio
    async def test_low_availability_fails(self, chat, provider, notifier, sessions):
        await seed(sessions, ScreeningStep.Q2, Answers(team_role="yes"))
        await chat.say("3")

        assert notifier.payloads[0].reason == "low_availability"
        assert notifier.payloads[0].answers.weekly_availability == "low"
        assert "15 horas/semana" in provider.sent_bodies[-1]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["abc", "200"])
    async def test_invalid_age_reasks(self, chat, provider, notifier, sessions, raw):
        await seed(sessions, ScreeningStep.Q7)
        await chat.say(raw)

        expected = sanitize_text(f"{INVALID_HINT[ScreeningStep.Q7]}\n\n{QUESTION_TEXT[ScreeningStep.Q7]}")
        assert provider.sent_bodies == [expected]
        session = await sessions.load(IDENTITY)
        assert session.step is ScreeningStep.Q7
        assert session.answers.age is None
        assert notifier.payloads == []

    @pytest.mark.asyncio
    async def test_age_over_cutoff_fails(self, chat, provider, notifier, sessions):
        await seed(sessions, ScreeningStep.Q7)
        await chat.say("35")
        assert notifier.payloads[0].reason == "age_over_limit"
        assert "menores de 35" in provider.sent_bodies[-1]

    @pytest.mark.asyncio
    async def test_button_id_wins_over_text(self, chat, sessions):
        await seed(sessions, ScreeningStep.Q1)
        await chat.say("No estoy seguro", button_id="1")
        session = await sessions.load(IDENTITY)
        assert session.step is ScreeningStep.Q2
        assert session.answers.team_role == "yes"


class TestFaults:
    @pytest.mark.asyncio
    async def test_unexpected_error_sends_generic_message(self, chat, orchestrator, provider, monkeypatch):
        async def broken_load(identity):
            raise RuntimeError("decoder exploded")

        monkeypatch.setattr(orchestrator.sessions, "load", broken_load)
        await chat.say("1")
        assert provider.sent_bodies == [sanitize_text(GENERIC_ERROR_MESSAGE)]

    @pytest.mark.asyncio
    async def test_store_outage_still_answers(self, chat, provider, collection):
        collection.fail = True
        await chat.say("hola")
        assert provider.sent_bodies == [sanitize_text(NO_SESSION_MESSAGE)]
