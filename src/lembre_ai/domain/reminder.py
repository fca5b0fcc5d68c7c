"""Lembrete persistido e cálculo do instante de disparo."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta
from enum import StrEnum
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lembre_ai.domain.dates import format_date_br, is_canonical_date, parse_canonical
from lembre_ai.domain.draft import DRAFT_FIELDS, MAX_LEAD_DAYS, Draft

DEFAULT_FIRE_TIME = time(9, 0)


class InsertOutcome(StrEnum):
    """Resultado de uma inserção no armazenamento."""

    CREATED = "CREATED"
    """Documento novo gravado."""

    CONFLICT = "CONFLICT"
    """Id já existia (commit repetido); tratado como sucesso."""


class ScheduleOutcome(StrEnum):
    """Resultado de `ReminderScheduler.schedule`."""

    ARMED = "ARMED"
    """Timer registrado para o instante de disparo."""

    PAST_DUE = "PAST_DUE"
    """Instante de disparo já passou; nenhum timer."""

    ALREADY_SENT = "ALREADY_SENT"
    """Aviso já enviado (sentAt preenchido); nenhum timer."""


class Reminder(BaseModel):
    """Lembrete de validade.

    Persistido com os nomes camelCase (chatId, diasAntes, createdAt, sentAt).
    Campos de conteúdo são opcionais no modelo para que o commit possa
    rejeitar lembretes incompletos com um erro próprio.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    chat_id: str = Field(alias="chatId")
    produto: str | None = None
    validade: str | None = None
    dias_antes: int | None = Field(default=None, alias="diasAntes", ge=0, le=MAX_LEAD_DAYS)
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=UTC), alias="createdAt")
    sent_at: datetime | None = Field(default=None, alias="sentAt")

    @field_validator("validade")
    @classmethod
    def _canonical_validade(cls, value: str | None) -> str | None:
        if value is not None and not is_canonical_date(value):
            raise ValueError("validade deve estar em YYYY-MM-DD")
        return value

    @classmethod
    def from_draft(cls, reminder_id: str, chat_id: str, draft: Draft) -> Reminder:
        return cls(
            id=reminder_id,
            chat_id=chat_id,
            produto=draft.produto,
            validade=draft.validade,
            dias_antes=draft.dias_antes,
        )

    def missing_fields(self) -> list[str]:
        return [name for name in DRAFT_FIELDS if getattr(self, name) is None]

    def to_document(self) -> dict[str, Any]:
        """Representação para storage (chaves camelCase, sentAt omitido se nulo)."""
        return self.model_dump(by_alias=True, exclude_none=True)


def compute_fire_at(
    validade: str | date,
    dias_antes: int,
    tz: str | ZoneInfo,
    fire_time: time = DEFAULT_FIRE_TIME,
) -> datetime:
    """Instante do aviso: (validade - dias_antes) no horário local configurado.

    Returns:
        datetime com fuso (tz de referência)

    Raises:
        ValueError: validade fora do formato canônico
    """
    expiry = validade if isinstance(validade, date) else parse_canonical(validade)
    zone = tz if isinstance(tz, ZoneInfo) else ZoneInfo(tz)
    fire_day = expiry - timedelta(days=dias_antes)
    return datetime.combine(fire_day, fire_time, tzinfo=zone)


def render_notification(reminder: Reminder) -> str:
    """Texto enviado no disparo do lembrete."""
    validade = format_date_br(reminder.validade) or reminder.validade or "?"
    return f"⏰ Lembrete: *{reminder.produto}* vence em {validade}"


@dataclass(slots=True)
class ResumeSummary:
    """Contagem do reagendamento no startup."""

    total: int = 0
    armed: int = 0
    past_due: int = 0
    already_sent: int = 0
    failed: int = 0
    failed_ids: list[str] = field(default_factory=list)

    def record(self, outcome: ScheduleOutcome) -> None:
        if outcome is ScheduleOutcome.ARMED:
            self.armed += 1
        elif outcome is ScheduleOutcome.PAST_DUE:
            self.past_due += 1
        else:
            self.already_sent += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "armed": self.armed,
            "past_due": self.past_due,
            "already_sent": self.already_sent,
            "failed": self.failed,
        }
