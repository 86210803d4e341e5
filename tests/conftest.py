from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from screenbot.core.config import GuardConfig, OutboundConfig, ScreeningConfig
from screenbot.flow.dispatcher import ConversationOrchestrator
from screenbot.schemas.webhook import InboundMessage
from screenbot.services.guard_service import CommandDeduplicator, RateLimiter
from screenbot.services.notifier_service import ResultNotifier
from screenbot.services.optout_service import OptOutRegistry
from screenbot.services.outbound_service import OutboundChannel
from screenbot.services.provider_service import MessagingProvider, SendResult
from screenbot.services.session_service import SessionStore
from screenbot.services.store_service import KeyedStore


IDENTITY = "573001234567"


class FakeCollection:
    """In-memory stand-in for the Motor kv collection."""

    def __init__(self):
        self.docs: Dict[str, dict] = {}
        self.fail = False
        self.indexes: List[tuple] = []

    def _check(self):
        if self.fail:
            raise ConnectionError("store unavailable")

    async def find_one(self, query):
        self._check()
        doc = self.docs.get(query["_id"])
        return dict(doc) if doc else None

    async def update_one(self, query, update, upsert=False):
        self._check()
        key = query["_id"]
        if key not in self.docs and not upsert:
            return
        doc = self.docs.setdefault(key, {"_id": key})
        doc.update(update["$set"])

    async def delete_one(self, query):
        self._check()
        self.docs.pop(query["_id"], None)

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))


class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float):
        self.now += timedelta(seconds=seconds)


class FakeProvider(MessagingProvider):
    """Records sends; results can be queued per call."""

    name = "fake"

    def __init__(self, supports_quick_replies: bool = False):
        super().__init__()
        self.supports_quick_replies = supports_quick_replies
        self.texts: List[tuple] = []
        self.template_sends: List[tuple] = []
        self.created_templates: List[dict] = []
        self.text_results: List[SendResult] = []
        self.template_results: List[SendResult] = []
        self.template_error: Optional[Exception] = None

    async def send_text(self, identity, text):
        self.texts.append((identity, text))
        if self.text_results:
            return self.text_results.pop(0)
        return SendResult(success=True, status_code=200, message_id=f"out-{len(self.texts)}")

    async def send_template(self, identity, template_id):
        self.template_sends.append((identity, template_id))
        if self.template_results:
            return self.template_results.pop(0)
        return SendResult(success=True, status_code=201, message_id="SMtemplate")

    async def create_quick_reply_template(self, name, body, actions):
        if self.template_error:
            raise self.template_error
        self.created_templates.append({"name": name, "body": body, "actions": actions})
        return f"HX{len(self.created_templates):04d}"

    @property
    def sent_bodies(self) -> List[str]:
        return [text for _, text in self.texts]


class RecordingNotifier(ResultNotifier):
    def __init__(self):
        super().__init__(url=None)
        self.payloads = []

    def notify(self, payload):
        self.payloads.append(payload)
        return None


class FakeMillisClock:
    def __init__(self, start: int = 1_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now


@pytest.fixture
def collection():
    return FakeCollection()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(collection, clock):
    return KeyedStore(collection, clock=clock)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def outbound(provider, store, sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    return OutboundChannel(
        provider,
        store,
        OutboundConfig(min_delay_seconds=2.0, max_delay_seconds=4.0, max_attempts=4),
        sleep=fake_sleep,
        jitter=lambda low, high: low,
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def millis_clock():
    return FakeMillisClock()


@pytest.fixture
def screening_config():
    return ScreeningConfig(handoff_link="https://wa.me/000?text=hi")


@pytest.fixture
def orchestrator(store, outbound, notifier, millis_clock, screening_config):
    return ConversationOrchestrator(
        sessions=SessionStore(store),
        optouts=OptOutRegistry(store),
        command_dedup=CommandDeduplicator(store),
        rate_limiter=RateLimiter(store, GuardConfig(rate_limit_max=5, rate_limit_window_ms=10_000), clock_ms=millis_clock),
        outbound=outbound,
        notifier=notifier,
        config=screening_config,
    )


@pytest.fixture
def make_message():
    counter = {"n": 0}

    def factory(text, identity=IDENTITY, message_id=None, button_id=None):
        counter["n"] += 1
        return InboundMessage(
            identity=identity,
            text=text,
            message_id=message_id or f"msg-{counter['n']}",
            button_id=button_id,
            platform="greenapi",
        )

    return factory
