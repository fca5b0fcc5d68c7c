"""Pré-processamento de imagens de rótulo (Pillow).

Duas variantes:
- vision: reduz para até 900px de largura, JPEG q75 (menos tokens visuais)
- ocr: até 1400px, tons de cinza, contraste automático e nitidez

O trabalho é CPU-bound e roda em thread (`asyncio.to_thread`).
"""

from __future__ import annotations

import asyncio
import base64
import io
from dataclasses import dataclass
from typing import Literal

from PIL import Image, ImageFilter, ImageOps, UnidentifiedImageError

from lembre_ai.domain.errors import ExtractionError

ImageMode = Literal["vision", "ocr"]

VISION_MAX_WIDTH = 900
VISION_JPEG_QUALITY = 75
OCR_MAX_WIDTH = 1400
OCR_JPEG_QUALITY = 90


@dataclass(frozen=True, slots=True)
class PreparedImage:
    """Imagem reprocessada pronta para envio."""

    data: bytes
    mime_type: str = "image/jpeg"

    def data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"


def _shrink(image: Image.Image, max_width: int) -> Image.Image:
    if image.width <= max_width:
        return image
    height = round(image.height * max_width / image.width)
    return image.resize((max_width, max(height, 1)), Image.Resampling.LANCZOS)


def prepare_image_sync(raw: bytes, mode: ImageMode = "vision") -> PreparedImage:
    """Decodifica, corrige orientação EXIF, reduz e recodifica como JPEG.

    Raises:
        ExtractionError: bytes não são uma imagem reconhecível
    """
    if not raw:
        raise ExtractionError("imagem vazia")
    try:
        with Image.open(io.BytesIO(raw)) as opened:
            image = ImageOps.exif_transpose(opened)
            if mode == "ocr":
                image = _shrink(image, OCR_MAX_WIDTH)
                image = ImageOps.grayscale(image)
                image = ImageOps.autocontrast(image)
                image = image.filter(ImageFilter.SHARPEN)
                quality = OCR_JPEG_QUALITY
            else:
                image = _shrink(image, VISION_MAX_WIDTH).convert("RGB")
                quality = VISION_JPEG_QUALITY

            buffer = io.BytesIO()
            image.save(buffer, format="JPEG", quality=quality)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ExtractionError(f"imagem ilegível: {type(exc).__name__}") from exc
    return PreparedImage(data=buffer.getvalue())


async def prepare_image(raw: bytes, mode: ImageMode = "vision") -> PreparedImage:
    return await asyncio.to_thread(prepare_image_sync, raw, mode)
