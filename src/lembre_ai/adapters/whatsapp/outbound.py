"""Envio de mensagens de texto ao usuário.

`MessageSender.send` é best-effort: devolve False em falha e nunca
levanta exceção para dentro do loop de conversa.
"""

from __future__ import annotations

import logging
from typing import Protocol

from lembre_ai.adapters.whatsapp.http_client import WhatsAppHttpClient
from lembre_ai.infra.http import HttpError
from lembre_ai.observability.logging import get_logger, mask_conversation_id

logger: logging.Logger = get_logger(__name__)


class MessageSender(Protocol):
    """Transporte de mensagens de saída."""

    async def send(self, conversation_id: str, text: str) -> bool: ...


class WhatsAppTextSender:
    """MessageSender sobre a WhatsApp Cloud API."""

    def __init__(self, client: WhatsAppHttpClient) -> None:
        self._client = client

    async def send(self, conversation_id: str, text: str) -> bool:
        try:
            await self._client.send_text(conversation_id, text)
        except HttpError as e:
            logger.error(
                "outbound_send_failed",
                extra={
                    "conversation": mask_conversation_id(conversation_id),
                    "status_code": e.status_code,
                    "is_retryable": e.is_retryable,
                },
            )
            return False
        except Exception as e:  # noqa: BLE001 - envio nunca derruba a conversa
            logger.error(
                "outbound_send_unexpected_error",
                extra={
                    "conversation": mask_conversation_id(conversation_id),
                    "error_type": type(e).__name__,
                },
            )
            return False

        logger.info("outbound_sent", extra={"conversation": mask_conversation_id(conversation_id)})
        return True

    async def close(self) -> None:
        await self._client.close()


class LoggingSender:
    """Sender de desenvolvimento: só loga (sem credenciais WhatsApp)."""

    async def send(self, conversation_id: str, text: str) -> bool:
        logger.info(
            "outbound_logged",
            extra={
                "conversation": mask_conversation_id(conversation_id),
                "text_length": len(text),
            },
        )
        return True
