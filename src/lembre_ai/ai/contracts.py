"""Contratos dos extratores (texto -> campos, imagem -> data)."""

from __future__ import annotations

from abc import ABC, abstractmethod

from lembre_ai.domain.draft import ExtractionResult


class TextExtractor(ABC):
    """Extrai produto/validade/dias_antes de texto livre."""

    @abstractmethod
    async def extract(self, text: str) -> ExtractionResult | None:
        """Retorna o resultado validado ou None.

        Raises:
            ExtractionError: falha do serviço subjacente
        """
        ...


class ImageDateExtractor(ABC):
    """Extrai a data de validade de uma foto de rótulo."""

    @abstractmethod
    async def extract_date(self, image: bytes) -> str | None:
        """Retorna data canônica (YYYY-MM-DD) ou None.

        Raises:
            ExtractionError: falha do serviço subjacente ou imagem ilegível
        """
        ...


class NullTextExtractor(TextExtractor):
    """Extrator desligado (OPENAI_ENABLED=false)."""

    async def extract(self, text: str) -> ExtractionResult | None:
        return None


class NullImageDateExtractor(ImageDateExtractor):
    """Leitura de imagem desligada."""

    async def extract_date(self, image: bytes) -> str | None:
        return None
