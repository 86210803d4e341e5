"""
screenbot/schemas/webhook.py

Purpose: WhatsApp webhook payload schemas and parsers

- Validates incoming messages from Green-API and Twilio
- Normalizes different formats into InboundMessage
- Returns None for events the bot does not handle (groups, media,
  status callbacks, empty text)
"""

from typing import Any, Literal, Mapping, Optional

from pydantic import BaseModel, Field

from screenbot.core.logging import get_logger
from screenbot.utils.whatsapp_utils import chat_id_to_identity, is_group_chat

logger = get_logger(__name__)

SUPPORTED_GREENAPI_TYPES = ("textMessage", "extendedTextMessage")


class InboundMessage(BaseModel):
    """
    Normalized message format for internal processing.
    Works with both Green-API and Twilio.
    """
    identity: str = Field(..., description="Phone digits identifying the user")
    text: str = Field(..., description="Message text content")
    message_id: Optional[str] = Field(default=None, description="Provider message id")
    button_id: Optional[str] = Field(default=None, description="Quick-reply id if a button was tapped")
    platform: Literal["greenapi", "twilio"]

    @property
    def answer(self) -> str:
        """Button id when present, otherwise the typed text."""
        return self.button_id or self.text

    model_config = {
        "json_schema_extra": {
            "example": {
                "identity": "573001234567",
                "text": "START",
                "message_id": "BAE5F4886F6F2D05",
                "platform": "greenapi"
            }
        }
    }


def parse_greenapi_payload(payload: Any) -> Optional[InboundMessage]:
    """
    Parses a Green-API webhook notification.

    Green-API format (JSON):
    {
        "typeWebhook": "incomingMessageReceived",
        "idMessage": "BAE5F4886F6F2D05",
        "senderData": {"chatId": "573001234567@c.us", ...},
        "messageData": {
            "typeMessage": "textMessage",
            "textMessageData": {"textMessage": "Hola"}
        }
    }

    Other notification types are recognized by shape rather than by
    typeWebhook, since the latter varies across API versions.
    """
    if not isinstance(payload, dict):
        return None

    sender = payload.get("senderData") or {}
    chat_id = sender.get("chatId") or ""
    if not chat_id:
        logger.info(f"[webhook] no chatId (typeWebhook={payload.get('typeWebhook', '?')}), ignoring")
        return None

    if is_group_chat(chat_id):
        logger.info(f"[webhook] ignoring group chat chatId={chat_id}")
        return None

    message_data = payload.get("messageData") or {}
    type_message = message_data.get("typeMessage") or ""

    if type_message == "textMessage":
        text = (message_data.get("textMessageData") or {}).get("textMessage") or ""
    elif type_message == "extendedTextMessage":
        # Quoted/forwarded messages carry text here
        text = (message_data.get("extendedTextMessageData") or {}).get("text") or ""
    else:
        logger.info(f"[webhook] ignoring typeMessage={type_message} chatId={chat_id}")
        return None

    text = text.strip()
    identity = chat_id_to_identity(chat_id)
    if not text or not identity:
        return None

    return InboundMessage(
        identity=identity,
        text=text,
        message_id=payload.get("idMessage"),
        platform="greenapi",
    )


def parse_twilio_form(form: Mapping[str, Any]) -> Optional[InboundMessage]:
    """
    Parses a Twilio WhatsApp webhook (form data).

    - From: whatsapp:+573001234567
    - Body: message text
    - MessageSid: SM...
    - ButtonPayload: quick-reply id when a button was tapped
    """
    from_number = str(form.get("From") or "")
    body = str(form.get("Body") or "").strip()
    button_payload = str(form.get("ButtonPayload") or "").strip() or None

    identity = chat_id_to_identity(from_number)
    if not identity:
        logger.info("[webhook] Twilio payload without sender, ignoring")
        return None

    if not body and not button_payload:
        logger.info(f"[webhook] ignoring Twilio message without text from {identity}")
        return None

    return InboundMessage(
        identity=identity,
        text=body or button_payload,
        message_id=form.get("MessageSid") or None,
        button_id=button_payload,
        platform="twilio",
    )
