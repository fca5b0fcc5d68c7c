"""Estados da coleta de um lembrete.

A ordem de coleta é fixa: validade, depois antecedência, depois produto.
O estado é sempre derivado do rascunho (ver `transitions.next_state`).
"""

from __future__ import annotations

from enum import StrEnum


class ConversationState(StrEnum):
    """4 estados da conversa."""

    WAIT_IMAGE = "WAIT_IMAGE"
    """Aguardando a validade (foto do rótulo ou data digitada)."""

    WAIT_DAYS = "WAIT_DAYS"
    """Aguardando com quantos dias de antecedência avisar."""

    WAIT_PRODUCT = "WAIT_PRODUCT"
    """Aguardando o nome do produto."""

    CONFIRM = "CONFIRM"
    """Rascunho completo; aguardando sim/não."""
