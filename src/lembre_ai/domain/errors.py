"""Erros de domínio do Lembre Aí."""

from __future__ import annotations


class LembreAiError(Exception):
    """Erro base da aplicação."""

    code: str = "LEMBRE_AI_ERROR"


class IncompleteReminderError(LembreAiError):
    """Lembrete sem algum campo obrigatório (produto, validade, dias_antes).

    Levantado antes de qualquer escrita; nada é persistido.
    """

    code = "INCOMPLETE_REMINDER"

    def __init__(self, missing_fields: list[str]) -> None:
        self.missing_fields = list(missing_fields)
        super().__init__(f"Lembrete incompleto: faltando {', '.join(self.missing_fields)}")


class ReminderStoreError(LembreAiError):
    """Falha de I/O no armazenamento de lembretes."""

    code = "REMINDER_STORE_ERROR"


class ExtractionError(LembreAiError):
    """Falha de um extrator (rede, timeout, resposta ilegível).

    Nunca atravessa o ExtractionAdapter: é convertida em resultado vazio.
    """

    code = "EXTRACTION_ERROR"
