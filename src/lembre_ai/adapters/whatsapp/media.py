"""Download de mídia recebida (foto do rótulo)."""

from __future__ import annotations

import logging

from lembre_ai.adapters.whatsapp.http_client import WhatsAppHttpClient
from lembre_ai.infra.http import HttpError
from lembre_ai.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

MAX_MEDIA_BYTES = 10 * 1024 * 1024


class WhatsAppMediaDownloader:
    """Resolve media_id -> URL temporária -> bytes."""

    def __init__(self, client: WhatsAppHttpClient, max_bytes: int = MAX_MEDIA_BYTES) -> None:
        self._client = client
        self._max_bytes = max_bytes

    async def download(self, media_id: str) -> bytes | None:
        """Bytes da mídia, ou None se indisponível/grande demais."""
        try:
            url = await self._client.get_media_url(media_id)
            content = await self._client.download(url)
        except HttpError as e:
            logger.warning(
                "media_download_failed",
                extra={"status_code": e.status_code, "is_retryable": e.is_retryable},
            )
            return None

        if not content:
            return None
        if len(content) > self._max_bytes:
            logger.warning("media_too_large", extra={"size_bytes": len(content)})
            return None
        return content
