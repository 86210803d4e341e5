"""
screenbot/utils/whatsapp_utils.py

Purpose: WhatsApp addressing and message helpers

- Derives the user identity from provider addresses
- Rebuilds provider addresses from an identity
- Sanitizes outbound text
- Builds quick-reply button definitions
"""

import re
from typing import Dict, List, Sequence, Tuple


GREENAPI_USER_SUFFIX = "@c.us"
GREENAPI_GROUP_SUFFIX = "@g.us"
TWILIO_WHATSAPP_PREFIX = "whatsapp:"

MAX_QUICK_REPLY_BUTTONS = 3  # WhatsApp allows max 3 quick reply buttons
MAX_BUTTON_TITLE_LENGTH = 20

# Code points the provider may reject or mis-render
_TYPOGRAPHIC_REPLACEMENTS = str.maketrans({
    "—": "-",    # em dash
    "‘": "'",    # left single quote
    "’": "'",    # right single quote
    "“": '"',    # left double quote
    "”": '"',    # right double quote
})

_NON_DIGITS = re.compile(r"\D")


def sanitize_text(text: str) -> str:
    """
    Replaces typographic punctuation with ASCII equivalents.

    Args:
        text: Outbound message text

    Returns:
        Text safe to hand to the provider
    """
    return text.translate(_TYPOGRAPHIC_REPLACEMENTS)


def is_group_chat(chat_id: str) -> bool:
    return chat_id.endswith(GREENAPI_GROUP_SUFFIX)


def chat_id_to_identity(chat_id: str) -> str:
    """
    Extracts the stable per-user identity (phone digits) from a provider address.

    "573001234567@c.us"       -> "573001234567"
    "whatsapp:+573001234567"  -> "573001234567"
    """
    address = chat_id.strip()
    if address.startswith(TWILIO_WHATSAPP_PREFIX):
        address = address[len(TWILIO_WHATSAPP_PREFIX):]
    address = address.split("@", 1)[0]
    return _NON_DIGITS.sub("", address)


def identity_to_greenapi_chat_id(identity: str) -> str:
    return f"{identity}{GREENAPI_USER_SUFFIX}"


def identity_to_twilio_address(identity: str) -> str:
    return f"{TWILIO_WHATSAPP_PREFIX}+{identity}"


def build_quick_reply_actions(options: Sequence[Tuple[str, str]]) -> List[Dict[str, str]]:
    """
    Creates quick-reply button definitions from (id, title) pairs.

    Titles are sanitized and truncated to the WhatsApp limit.

    Raises:
        ValueError: If more options exist than quick replies allow
    """
    if not options:
        raise ValueError("Quick replies need at least one option")
    if len(options) > MAX_QUICK_REPLY_BUTTONS:
        raise ValueError(
            f"Quick replies allow at most {MAX_QUICK_REPLY_BUTTONS} buttons, got {len(options)}"
        )

    return [
        {"id": button_id, "title": sanitize_text(title)[:MAX_BUTTON_TITLE_LENGTH]}
        for button_id, title in options
    ]
