"""ExtractionAdapter: fronteira única entre a conversa e os extratores.

Contrato:
- text(raw) -> ExtractionResult | None
- image(bytes) -> data canônica | None
- Qualquer exceção do extrator é logada como fallback e vira None
- Respostas triviais ("sim", "ok", "cancelar") e textos com menos de
  2 caracteres não chegam ao modelo
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from lembre_ai.ai.contracts import (
    ImageDateExtractor,
    NullImageDateExtractor,
    NullTextExtractor,
    TextExtractor,
)
from lembre_ai.ai.openai_client import (
    OpenAIOcrDateExtractor,
    OpenAITextExtractor,
    OpenAIVisionDateExtractor,
    create_openai_client,
)
from lembre_ai.domain.conversation.replies import is_trivial_reply
from lembre_ai.domain.dates import is_canonical_date
from lembre_ai.domain.draft import ExtractionResult
from lembre_ai.observability.logging import get_logger, log_fallback

if TYPE_CHECKING:
    from openai import AsyncOpenAI

    from lembre_ai.config.settings import Settings

logger: logging.Logger = get_logger(__name__)

MIN_TEXT_LENGTH = 2


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 1)


class ExtractionAdapter:
    """Contrato uniforme de resultado opcional sobre extratores não confiáveis."""

    def __init__(
        self,
        text_extractor: TextExtractor | None = None,
        image_extractor: ImageDateExtractor | None = None,
        *,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._text = text_extractor or NullTextExtractor()
        self._image = image_extractor or NullImageDateExtractor()
        self._client = client

    async def text(self, raw: str | None) -> ExtractionResult | None:
        if raw is None:
            return None
        stripped = raw.strip()
        if len(stripped) < MIN_TEXT_LENGTH or is_trivial_reply(stripped):
            return None

        started = time.perf_counter()
        try:
            result = await self._text.extract(stripped)
        except Exception as e:  # noqa: BLE001 - qualquer falha degrada para None
            log_fallback(
                logger,
                "text_extraction",
                reason=type(e).__name__,
                elapsed_ms=_elapsed_ms(started),
            )
            return None

        if result is None or result.is_empty():
            return None
        return result

    async def image(self, data: bytes | None) -> str | None:
        if not data:
            return None

        started = time.perf_counter()
        try:
            validade = await self._image.extract_date(data)
        except Exception as e:  # noqa: BLE001 - qualquer falha degrada para None
            log_fallback(
                logger,
                "image_date_extraction",
                reason=type(e).__name__,
                elapsed_ms=_elapsed_ms(started),
            )
            return None

        if not is_canonical_date(validade):
            return None
        return validade

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()


def create_extraction_adapter(settings: Settings) -> ExtractionAdapter:
    """Monta o adapter conforme OPENAI_ENABLED e IMAGE_EXTRACTOR_BACKEND."""
    if not settings.openai_enabled or not settings.openai_api_key:
        logger.info("extraction_disabled", extra={"openai_enabled": settings.openai_enabled})
        return ExtractionAdapter()

    client = create_openai_client(settings.openai_api_key, settings.openai_timeout_seconds)
    text_extractor = OpenAITextExtractor(
        client,
        model=settings.openai_model,
        timeout=settings.openai_timeout_seconds,
        tz=settings.timezone,
    )

    backend = settings.image_extractor_backend.lower()
    image_extractor: ImageDateExtractor
    if backend == "vision":
        image_extractor = OpenAIVisionDateExtractor(
            client,
            model=settings.vision_model,
            timeout=settings.openai_timeout_seconds,
            tz=settings.timezone,
        )
    elif backend == "ocr":
        image_extractor = OpenAIOcrDateExtractor(
            client,
            model=settings.vision_model,
            timeout=settings.openai_timeout_seconds,
            tz=settings.timezone,
        )
    else:
        image_extractor = NullImageDateExtractor()

    logger.info(
        "extraction_configured",
        extra={"model": settings.openai_model, "image_backend": backend},
    )
    return ExtractionAdapter(text_extractor, image_extractor, client=client)
