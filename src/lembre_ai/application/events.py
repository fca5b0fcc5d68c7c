"""Evento de entrada da conversa, independente do transporte."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

MediaReader = Callable[[], Awaitable[bytes | None]]


@dataclass(slots=True)
class InboundEvent:
    """Uma mensagem recebida.

    `read_media` baixa os bytes sob demanda: a imagem só é buscada se a
    conversa ainda precisa da validade.
    """

    conversation_id: str
    body: str | None = None
    has_media: bool = False
    media_reader: MediaReader | None = None
    message_id: str | None = None

    async def read_media(self) -> bytes | None:
        if not self.has_media or self.media_reader is None:
            return None
        return await self.media_reader()
