"""Modelos normalizados para WhatsApp.

Preservam apenas o que a conversa usa (sem payload bruto).
"""

from __future__ import annotations

from pydantic import BaseModel


class NormalizedWhatsAppMessage(BaseModel):
    """Mensagem de entrada normalizada.

    Para imagens, `text` recebe a legenda (caption), se houver.
    """

    message_id: str
    from_number: str
    timestamp: str | None = None
    message_type: str  # text, image, document, sticker...
    text: str | None = None
    media_id: str | None = None
    media_mime_type: str | None = None

    @property
    def has_image(self) -> bool:
        if not self.media_id:
            return False
        if self.message_type == "image":
            return True
        # Foto enviada "como documento"
        return self.message_type == "document" and (self.media_mime_type or "").startswith(
            "image/"
        )


class WebhookProcessingSummary(BaseModel):
    """Resumo do processamento do webhook (sem PII)."""

    total_received: int
    accepted: int
    ignored: int
