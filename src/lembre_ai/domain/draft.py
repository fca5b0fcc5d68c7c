"""Rascunho do lembrete e resultado de extração.

Regra set-once: um campo já preenchido no rascunho nunca é sobrescrito
por uma extração posterior (ex: a data lida da foto não é trocada por um
palpite do texto livre).
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lembre_ai.domain.dates import is_canonical_date

DRAFT_FIELDS: tuple[str, ...] = ("produto", "validade", "dias_antes")
MAX_LEAD_DAYS = 3650


class Draft(BaseModel):
    """Campos coletados até agora na conversa."""

    produto: str | None = None
    validade: str | None = None
    dias_antes: int | None = None

    def missing_fields(self) -> list[str]:
        return [name for name in DRAFT_FIELDS if getattr(self, name) is None]

    def is_complete(self) -> bool:
        return not self.missing_fields()


class ExtractionResult(BaseModel):
    """Resultado validado de uma extração (texto ou imagem).

    Construído uma única vez na fronteira do ExtractionAdapter; o restante
    do fluxo confia nos tipos daqui.
    """

    model_config = ConfigDict(frozen=True)

    produto: str | None = None
    validade: str | None = None
    dias_antes: int | None = Field(default=None, ge=0, le=MAX_LEAD_DAYS)

    @field_validator("validade")
    @classmethod
    def _canonical_validade(cls, value: str | None) -> str | None:
        if value is not None and not is_canonical_date(value):
            raise ValueError("validade deve estar em YYYY-MM-DD")
        return value

    def is_empty(self) -> bool:
        return self.produto is None and self.validade is None and self.dias_antes is None


def merge_extraction(draft: Draft, extraction: ExtractionResult | None) -> list[str]:
    """Copia para o rascunho apenas os campos ainda ausentes.

    Returns:
        Nomes dos campos efetivamente preenchidos nesta chamada, na ordem
        produto, validade, dias_antes.
    """
    if extraction is None:
        return []

    filled: list[str] = []
    for name in DRAFT_FIELDS:
        incoming = getattr(extraction, name)
        if incoming is None or getattr(draft, name) is not None:
            continue
        setattr(draft, name, incoming)
        filled.append(name)
    return filled
