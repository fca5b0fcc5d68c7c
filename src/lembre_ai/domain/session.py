"""Sessão de conversa (uma por conversation_id)."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field

from lembre_ai.domain.conversation.states import ConversationState
from lembre_ai.domain.draft import Draft


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class ConversationSession(BaseModel):
    """Estado efêmero da coleta de um lembrete.

    Criada na primeira mensagem; destruída em cancelamento, negação ou
    commit bem-sucedido.
    """

    conversation_id: str
    state: ConversationState = ConversationState.WAIT_IMAGE
    draft: Draft = Field(default_factory=Draft)
    reminder_id: str | None = None  # reservado no primeiro commit; reusado em retentativas
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def touch(self) -> None:
        self.updated_at = _utcnow()
