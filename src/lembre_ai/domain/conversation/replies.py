"""Classificação de respostas curtas do usuário."""

from __future__ import annotations

import re
from dataclasses import dataclass

from lembre_ai.domain.dates import strip_accents
from lembre_ai.domain.draft import MAX_LEAD_DAYS

AFFIRMATIVE = frozenset({"sim", "s", "confirmo", "confirmar"})
NEGATIVE = frozenset({"nao", "n", "cancel", "cancelar"})

# Respostas que não carregam dado nenhum: não vale chamar o extrator
_TRIVIAL = re.compile(r"^(sim|s|ok|okay|yes|no|nao|n|cancelar|cancel|confirmo|confirmar)$")
_LEAD_TIME = re.compile(r'^\s*"?(-?\d+)"?\s*(?:dias?)?\s*$', re.IGNORECASE)


def _normalize(text: str | None) -> str:
    if not text:
        return ""
    cleaned = strip_accents(text).strip().lower()
    return cleaned.rstrip("!.?").strip()


def is_cancel_command(text: str | None) -> bool:
    """Comando global: a mensagem é exatamente "cancelar"."""
    return (text or "").strip().lower() == "cancelar"


def is_affirmative(text: str | None) -> bool:
    return _normalize(text) in AFFIRMATIVE


def is_negative(text: str | None) -> bool:
    return _normalize(text) in NEGATIVE


def is_trivial_reply(text: str | None) -> bool:
    return bool(_TRIVIAL.match(_normalize(text)))


@dataclass(frozen=True, slots=True)
class LeadTimeAnswer:
    """Número de dias digitado diretamente no estado WAIT_DAYS."""

    days: int
    valid: bool


def parse_lead_time(text: str | None) -> LeadTimeAnswer | None:
    """Reconhece um inteiro literal ("7", "\"7\"", "7 dias").

    Returns:
        None se a mensagem não é um inteiro literal; caso contrário a
        resposta com `valid=False` quando fora de 0..3650.
    """
    if not text:
        return None
    match = _LEAD_TIME.match(text)
    if not match:
        return None
    days = int(match.group(1))
    return LeadTimeAnswer(days=days, valid=0 <= days <= MAX_LEAD_DAYS)
