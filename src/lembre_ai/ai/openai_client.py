"""Extratores baseados na API OpenAI.

- OpenAITextExtractor: texto livre -> JSON {produto, validade, diasAntes}
- OpenAIVisionDateExtractor: foto -> "YYYY-MM-DD" | "null"
- OpenAIOcrDateExtractor: foto -> transcrição do rótulo -> data achada localmente

Erros de API viram ExtractionError; quem absorve é o ExtractionAdapter.
"""

from __future__ import annotations

import logging
from typing import Any

from openai import APIError, APITimeoutError, AsyncOpenAI

from lembre_ai.ai import parser, prompts
from lembre_ai.ai.contracts import ImageDateExtractor, TextExtractor
from lembre_ai.ai.image import ImageMode, prepare_image
from lembre_ai.domain.dates import DEFAULT_TIMEZONE, find_date_in_text, today_in
from lembre_ai.domain.draft import ExtractionResult
from lembre_ai.domain.errors import ExtractionError
from lembre_ai.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

DEFAULT_MODEL = "gpt-4o-mini"


def create_openai_client(api_key: str | None, timeout: float = 15.0) -> AsyncOpenAI:
    return AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=1)


class _OpenAIExtractor:
    """Base comum: cliente, modelo, timeout e chamada de chat completion."""

    def __init__(
        self,
        client: AsyncOpenAI,
        *,
        model: str = DEFAULT_MODEL,
        timeout: float = 15.0,
        tz: str = DEFAULT_TIMEZONE,
    ) -> None:
        self._client = client
        self._model = model
        self._timeout = timeout
        self._tz = tz

    async def _complete(
        self,
        messages: list[dict[str, Any]],
        *,
        max_tokens: int,
        operation: str,
    ) -> str | None:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,  # type: ignore[arg-type]
                temperature=0,
                max_tokens=max_tokens,
                timeout=self._timeout,
            )
        except (APIError, APITimeoutError) as e:
            logger.warning(
                f"{operation}_error",
                extra={"error_type": type(e).__name__, "model": self._model},
            )
            raise ExtractionError(f"{operation} falhou: {type(e).__name__}") from e

        text = parser.response_text(response)
        if text is None:
            logger.info(f"{operation}_unrecognized_response", extra={"model": self._model})
        return text


class OpenAITextExtractor(_OpenAIExtractor, TextExtractor):
    """Texto livre -> ExtractionResult."""

    async def extract(self, text: str) -> ExtractionResult | None:
        today = today_in(self._tz)
        raw = await self._complete(
            [
                {"role": "system", "content": prompts.text_extraction_prompt(today, self._tz)},
                {"role": "user", "content": text},
            ],
            max_tokens=200,
            operation="text_extraction",
        )
        payload = parser.parse_json_object(raw)
        if payload is None:
            logger.debug("text_extraction_no_json")
            return None
        return parser.coerce_extraction(payload, today=today, tz=self._tz)


class _OpenAIImageExtractor(_OpenAIExtractor, ImageDateExtractor):
    mode: ImageMode = "vision"
    instruction: str = prompts.VISION_DATE_PROMPT
    max_tokens: int = 20

    async def _ask_about_image(self, image: bytes) -> str | None:
        prepared = await prepare_image(image, self.mode)
        return await self._complete(
            [
                {"role": "system", "content": self.instruction},
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": prepared.data_uri()}},
                    ],
                },
            ],
            max_tokens=self.max_tokens,
            operation=f"image_{self.mode}",
        )


class OpenAIVisionDateExtractor(_OpenAIImageExtractor):
    """O modelo responde a data diretamente."""

    async def extract_date(self, image: bytes) -> str | None:
        answer = await self._ask_about_image(image)
        return parser.parse_date_answer(answer, today=today_in(self._tz), tz=self._tz)


class OpenAIOcrDateExtractor(_OpenAIImageExtractor):
    """O modelo transcreve o rótulo; a data é procurada localmente."""

    mode: ImageMode = "ocr"
    instruction = prompts.OCR_TRANSCRIPTION_PROMPT
    max_tokens = 400

    async def extract_date(self, image: bytes) -> str | None:
        transcript = parser.clean_model_output(await self._ask_about_image(image))
        if not transcript or transcript.lower() == "null":
            return None
        # Rótulos com só mês/ano ("VAL 01/27") valem até o fim do mês
        return find_date_in_text(
            transcript, today=today_in(self._tz), month_year="last", tz=self._tz
        )
