"""
screenbot/api/webhook.py

Purpose: Unified WhatsApp webhook endpoint

- Receives incoming messages from Green-API (JSON) or Twilio (form data)
- Auto-detects platform based on content type
- Drops provider retries by message id
- Schedules processing in the background and acknowledges at once
- Always answers 200 so the provider never re-sends on our errors
"""

import json

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import PlainTextResponse, Response

from screenbot.core.logging import get_logger
from screenbot.flow.dispatcher import ConversationOrchestrator
from screenbot.schemas.webhook import parse_greenapi_payload, parse_twilio_form
from screenbot.services.guard_service import MessageDeduplicator

logger = get_logger(__name__)
router = APIRouter()

EMPTY_TWIML = '<?xml version="1.0" encoding="UTF-8"?><Response></Response>'


def get_orchestrator(request: Request) -> ConversationOrchestrator:
    return request.app.state.orchestrator


def get_message_dedup(request: Request) -> MessageDeduplicator:
    return request.app.state.message_dedup


def _is_form(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    return content_type.startswith("application/x-www-form-urlencoded") or content_type.startswith("multipart/form-data")


def _ack(platform: str) -> Response:
    if platform == "twilio":
        # Replies go out through the REST API, not TwiML
        return Response(content=EMPTY_TWIML, media_type="application/xml")
    return PlainTextResponse("ok")


@router.post("/webhook")
@router.post("/greenapi/webhook")
async def webhook_handler(
    request: Request,
    background_tasks: BackgroundTasks,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
    message_dedup: MessageDeduplicator = Depends(get_message_dedup),
):
    """
    Unified webhook endpoint for WhatsApp messages

    Supports:
    - Green-API notifications (JSON)
    - Twilio WhatsApp (form data)
    """
    platform = "twilio" if _is_form(request) else "greenapi"

    try:
        if platform == "twilio":
            form = await request.form()
            message = parse_twilio_form(form)
        else:
            try:
                payload = await request.json()
            except (json.JSONDecodeError, UnicodeDecodeError):
                logger.warning("Malformed webhook JSON, acknowledging and discarding")
                return _ack(platform)
            message = parse_greenapi_payload(payload)

        if message is None:
            return _ack(platform)

        logger.info(
            f"[webhook] platform={platform} from={message.identity} text={message.text[:50]!r}",
            extra={"message_id": message.message_id}
        )

        if await message_dedup.seen_before(message.message_id):
            return _ack(platform)

        background_tasks.add_task(orchestrator.handle, message)

    except Exception as e:
        logger.error(f"Webhook error: {e}", exc_info=True)

    return _ack(platform)
