"""Extração de mensagens do payload de webhook da Meta.

Formato: entry[].changes[].value.messages[]. Notificações de status
(entregue, lido) não têm `messages` e são ignoradas.
"""

from __future__ import annotations

import logging
from typing import Any

from lembre_ai.adapters.whatsapp.models import NormalizedWhatsAppMessage
from lembre_ai.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

_MEDIA_TYPES = frozenset({"image", "document", "sticker", "video", "audio"})


def _extract_text(msg: dict[str, Any], message_type: str) -> str | None:
    if message_type == "text":
        block = msg.get("text")
        return block.get("body") if isinstance(block, dict) else None
    if message_type in _MEDIA_TYPES:
        block = msg.get(message_type)
        return block.get("caption") if isinstance(block, dict) else None
    if message_type == "button":
        block = msg.get("button")
        return block.get("text") if isinstance(block, dict) else None
    if message_type == "interactive":
        block = msg.get("interactive") or {}
        reply = block.get("button_reply") or block.get("list_reply") or {}
        return reply.get("title") if isinstance(reply, dict) else None
    return None


def _extract_media(msg: dict[str, Any], message_type: str) -> tuple[str | None, str | None]:
    if message_type not in _MEDIA_TYPES:
        return None, None
    block = msg.get(message_type)
    if not isinstance(block, dict):
        return None, None
    return block.get("id"), block.get("mime_type")


def _normalize_message(msg: Any) -> NormalizedWhatsAppMessage | None:
    if not isinstance(msg, dict):
        return None
    message_id = msg.get("id")
    from_number = msg.get("from")
    message_type = msg.get("type")
    if not message_id or not from_number or not message_type:
        return None

    media_id, mime_type = _extract_media(msg, message_type)
    return NormalizedWhatsAppMessage(
        message_id=message_id,
        from_number=from_number,
        timestamp=msg.get("timestamp"),
        message_type=message_type,
        text=_extract_text(msg, message_type),
        media_id=media_id,
        media_mime_type=mime_type,
    )


def extract_inbound_messages(payload: dict[str, Any]) -> list[NormalizedWhatsAppMessage]:
    """Lista de mensagens normalizadas, na ordem do payload."""
    messages: list[NormalizedWhatsAppMessage] = []
    for entry in payload.get("entry") or []:
        if not isinstance(entry, dict):
            continue
        for change in entry.get("changes") or []:
            value = change.get("value") if isinstance(change, dict) else None
            if not isinstance(value, dict):
                continue
            for raw in value.get("messages") or []:
                normalized = _normalize_message(raw)
                if normalized is None:
                    logger.debug("inbound_message_skipped")
                    continue
                messages.append(normalized)
    return messages
