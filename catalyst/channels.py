"""Normalise inbound webhook payloads into ``InboundMessage`` envelopes."""

from __future__ import annotations

import logging
from typing import Any

from catalyst.models import InboundMessage

LOGGER = logging.getLogger(__name__)


def normalize_payload(channel: str, body: dict[str, Any]) -> InboundMessage | None:
    """Extract text and a session id from a channel-specific webhook body.

    Returns ``None`` when the payload carries no message text.
    """

    channel = channel.lower()
    if channel == "whatsapp":
        text = _first(body.get("text"), _dig(body, "message", "text"), body.get("Body"))
        sender = _first(body.get("from"), body.get("From"), body.get("sender"))
        reply_to = _first(body.get("from"), body.get("From"))
    elif channel == "email":
        text = _first(body.get("text"), body.get("plain"), body.get("body"))
        sender = _first(body.get("from"), body.get("sender"), _dig(body, "envelope", "from"))
        reply_to = sender
    elif channel == "telegram":
        text = _first(_dig(body, "message", "text"))
        chat_id = _dig(body, "message", "chat", "id")
        sender = str(chat_id) if chat_id is not None else None
        reply_to = sender
    else:
        text = _first(body.get("message"), body.get("text"), body.get("content"))
        sender = _first(body.get("sessionId"), body.get("from"), body.get("sender"))
        reply_to = _first(body.get("from"), body.get("sender"))

    if not text:
        LOGGER.info("Webhook on %s carried no message text", channel)
        return None

    metadata: dict[str, Any] = {}
    if channel == "email" and isinstance(body.get("subject"), str):
        metadata["subject"] = body["subject"]
    return InboundMessage(
        channel=channel,
        session_id=sender or "unknown",
        text=text,
        reply_to=reply_to,
        metadata=metadata,
    )


def _dig(body: Any, *keys: str) -> Any:
    for key in keys:
        if not isinstance(body, dict):
            return None
        body = body.get(key)
    return body


def _first(*candidates: Any) -> str | None:
    for value in candidates:
        if isinstance(value, str) and value.strip():
            return value.strip()
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
    return None
