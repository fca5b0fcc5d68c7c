"""Máquina de estados da conversa (pura, sem I/O)."""

from lembre_ai.domain.conversation.replies import (
    LeadTimeAnswer,
    is_affirmative,
    is_cancel_command,
    is_negative,
    is_trivial_reply,
    parse_lead_time,
)
from lembre_ai.domain.conversation.states import ConversationState
from lembre_ai.domain.conversation.transitions import next_state

__all__ = [
    "ConversationState",
    "LeadTimeAnswer",
    "is_affirmative",
    "is_cancel_command",
    "is_negative",
    "is_trivial_reply",
    "next_state",
    "parse_lead_time",
]
