"""Textos enviados ao usuário (pt-BR)."""

from __future__ import annotations

from lembre_ai.domain.conversation.states import ConversationState
from lembre_ai.domain.dates import format_date_br
from lembre_ai.domain.draft import Draft

GREETING = (
    "Olá! 👋 Eu sou o *Lembre Aí* 🕒📦\n\n"
    "Minha tarefa é te ajudar a lembrar da *validade dos seus produtos* "
    "para evitar desperdícios.\n\n"
    "👉 Por favor, envie a *foto do rótulo com a data de validade* "
    "para que eu possa criar um lembrete para você."
)
ASK_EXPIRY = (
    "👉 Envie a *foto do rótulo com a data de validade* "
    "ou digite a data (ex.: 10/01/2026)."
)
ASK_LEAD_DAYS = (
    "Perfeito! ⏰✨\n\n"
    "Agora me conta: *com quantos dias de antecedência* você gostaria de "
    "receber o lembrete antes da validade?"
)
ASK_PRODUCT = (
    "Ótimo! 😊\n\n"
    "Agora me diga: *qual é o nome do produto*?\n\n"
    "👉 Exemplo: Leite Integral, Iogurte Natural, Molho de Tomate"
)

CANCELLED = "Operação cancelada ✅"
DENIED = "Cancelado ❌\n\nTudo bem! Se precisar, é só me chamar 😊"
INCOMPLETE = "Quase lá! 😄 Parece que ainda falta alguma informação."
SAVED = (
    "✅ Lembrete salvo com sucesso!\n\n"
    "Pode ficar tranquilo(a), eu te aviso na hora certa 🕒📦"
)
SAVED_PAST_DUE = (
    "✅ Lembrete salvo, mas a data do aviso já passou 😕\n\n"
    "Pela validade e a antecedência informadas, não tenho mais como te avisar "
    "a tempo. Confira o produto!"
)
SAVE_FAILED = (
    "Opa 😕 ocorreu um erro ao salvar o lembrete.\n\n"
    "Responda *sim* para tentar novamente ou *cancelar* para desistir."
)
INVALID_LEAD_DAYS = (
    "Hmm, esse número parece inválido. "
    "Por favor envie um número inteiro de dias (ex.: 3)."
)
PROCESSING_IMAGE = "Processando a imagem... ⏳📸"
IMAGE_UNREADABLE = (
    "Ops! 😕 Não consegui ler a imagem.\n\n"
    "Pode tentar enviar outra foto, de preferência com a *data de validade bem visível*?"
)
IMAGE_NO_DATE = (
    "Não consegui identificar a data de validade nessa imagem 😕\n\n"
    "Pode enviar outra foto mais nítida ou com a *data bem visível*, por favor?"
)
EXPIRY_ALREADY_SET = "Perfeito! ✅ Já encontrei a data de validade."
UNEXPECTED_ERROR = "Ocorreu um erro inesperado 😕\n\nPode tentar novamente, por favor?"

_FIELD_LABELS = {
    "produto": "produto",
    "validade": "validade",
    "dias_antes": "aviso",
}


def lead_days_accepted(days: int) -> str:
    return f"Perfeito, vou te avisar {days} dias antes. ✅"


def confirmation_card(draft: Draft) -> str:
    validade = format_date_br(draft.validade) or draft.validade
    return (
        "Tudo certo por aqui! ✅\n\n"
        f"📦 *Produto:* {draft.produto}\n"
        f"📅 *Validade:* {validade}\n"
        f"⏰ *Aviso:* {draft.dias_antes} dias antes\n\n"
        "👉 Responda *sim* para confirmar ou *cancelar* para abortar."
    )


def prompt_for(state: ConversationState, draft: Draft, *, greeting: bool = False) -> str:
    """Pergunta correspondente ao estado.

    `greeting=True` usa a apresentação completa (só em sessão nova).
    """
    if state is ConversationState.WAIT_IMAGE:
        return GREETING if greeting else ASK_EXPIRY
    if state is ConversationState.WAIT_DAYS:
        return ASK_LEAD_DAYS
    if state is ConversationState.WAIT_PRODUCT:
        return ASK_PRODUCT
    return confirmation_card(draft)


def feedback_line(filled: list[str], draft: Draft) -> str | None:
    """Resumo dos campos recém-preenchidos, ex: "📝 Anotei: produto *Leite*."."""
    parts: list[str] = []
    for name in filled:
        if name == "produto":
            parts.append(f"{_FIELD_LABELS[name]} *{draft.produto}*")
        elif name == "validade":
            parts.append(f"{_FIELD_LABELS[name]} *{format_date_br(draft.validade)}*")
        elif name == "dias_antes":
            parts.append(f"{_FIELD_LABELS[name]} *{draft.dias_antes} dias antes*")
    if not parts:
        return None
    return f"📝 Anotei: {', '.join(parts)}."


def compose(*blocks: str | None) -> str:
    """Junta blocos de texto não vazios com linha em branco."""
    return "\n\n".join(block for block in blocks if block)
