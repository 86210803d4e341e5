import json

import httpx
import pytest

from screenbot.schemas.session import Answers, ResultPayload
from screenbot.services.notifier_service import ResultNotifier

from conftest import IDENTITY


def make_payload(result="fail", reason="english_low"):
    return ResultPayload(
        whatsapp_from=IDENTITY,
        result=result,
        reason=reason,
        answers=Answers(team_role="yes", weekly_availability="full_time", english_level="low"),
    )


@pytest.mark.asyncio
async def test_disabled_without_url():
    notifier = ResultNotifier(url=None)
    assert notifier.enabled is False
    assert notifier.notify(make_payload()) is None


@pytest.mark.asyncio
async def test_posts_payload_json():
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = ResultNotifier(url="https://hooks.example.com/results", client=client)

    task = notifier.notify(make_payload())
    assert task is not None
    await notifier.drain()

    assert len(requests) == 1
    body = json.loads(requests[0].content)
    assert body["whatsapp_from"] == IDENTITY
    assert body["result"] == "fail"
    assert body["reason"] == "english_low"
    assert body["answers"]["english_level"] == "low"
    assert body["answers"]["age"] is None
    assert "completed_at" in body


@pytest.mark.asyncio
async def test_failures_are_swallowed():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = ResultNotifier(url="https://hooks.example.com/results", client=client)

    task = notifier.notify(make_payload(result="pass", reason=""))
    await notifier.drain()
    assert task.exception() is None


@pytest.mark.asyncio
async def test_error_status_is_not_retried():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(500)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    notifier = ResultNotifier(url="https://hooks.example.com/results", client=client)

    notifier.notify(make_payload())
    await notifier.drain()
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_pending_tasks_are_released():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(204)))
    notifier = ResultNotifier(url="https://hooks.example.com/results", client=client)

    notifier.notify(make_payload())
    notifier.notify(make_payload())
    await notifier.aclose()
    assert notifier._pending == set()
