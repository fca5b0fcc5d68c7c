"""Cálculo puro do próximo estado a partir do rascunho."""

from __future__ import annotations

from lembre_ai.domain.conversation.states import ConversationState
from lembre_ai.domain.draft import Draft


def next_state(draft: Draft) -> ConversationState:
    """Primeiro campo ausente na ordem validade > dias_antes > produto.

    Exemplos:
        {}                                  -> WAIT_IMAGE
        {validade}                          -> WAIT_DAYS
        {validade, dias_antes}              -> WAIT_PRODUCT
        {validade, dias_antes, produto}     -> CONFIRM
    """
    if draft.validade is None:
        return ConversationState.WAIT_IMAGE
    if draft.dias_antes is None:
        return ConversationState.WAIT_DAYS
    if draft.produto is None:
        return ConversationState.WAIT_PRODUCT
    return ConversationState.CONFIRM
