"""Testes do pré-processamento de imagens (Pillow)."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from lembre_ai.ai.image import (
    OCR_MAX_WIDTH,
    VISION_MAX_WIDTH,
    prepare_image,
    prepare_image_sync,
)
from lembre_ai.domain.errors import ExtractionError


def _image_bytes(size: tuple[int, int], fmt: str = "PNG", mode: str = "RGBA") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, size, color=(200, 10, 10, 255) if mode == "RGBA" else 128).save(
        buffer, format=fmt
    )
    return buffer.getvalue()


def _decode(data: bytes) -> Image.Image:
    return Image.open(io.BytesIO(data))


class TestPrepareImage:
    def test_vision_shrinks_and_converts_to_jpeg(self) -> None:
        prepared = prepare_image_sync(_image_bytes((1800, 600)), "vision")

        decoded = _decode(prepared.data)
        assert decoded.format == "JPEG"
        assert decoded.mode == "RGB"
        assert decoded.size == (VISION_MAX_WIDTH, 300)
        assert prepared.data_uri().startswith("data:image/jpeg;base64,")

    def test_small_image_keeps_size(self) -> None:
        decoded = _decode(prepare_image_sync(_image_bytes((300, 200)), "vision").data)
        assert decoded.size == (300, 200)

    def test_ocr_is_grayscale(self) -> None:
        decoded = _decode(prepare_image_sync(_image_bytes((2800, 1400)), "ocr").data)
        assert decoded.mode == "L"
        assert decoded.width == OCR_MAX_WIDTH

    @pytest.mark.parametrize("raw", [b"", b"definitely not an image"])
    def test_invalid_bytes(self, raw: bytes) -> None:
        with pytest.raises(ExtractionError):
            prepare_image_sync(raw)

    @pytest.mark.asyncio
    async def test_async_wrapper(self) -> None:
        prepared = await prepare_image(_image_bytes((10, 10)))
        assert prepared.mime_type == "image/jpeg"
