"""Testes para domain/reminder.py."""

from __future__ import annotations

from datetime import UTC, datetime, time
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from lembre_ai.domain.draft import Draft
from lembre_ai.domain.reminder import (
    Reminder,
    ResumeSummary,
    ScheduleOutcome,
    compute_fire_at,
    render_notification,
)

SAO_PAULO = ZoneInfo("America/Sao_Paulo")


def _reminder(**overrides) -> Reminder:
    data = {
        "id": "rem-1",
        "chat_id": "5511999998888",
        "produto": "Leite",
        "validade": "2027-01-10",
        "dias_antes": 3,
    }
    data.update(overrides)
    return Reminder(**data)


class TestComputeFireAt:
    """Disparo = (validade - dias_antes) às 09:00 no fuso de referência."""

    def test_subtracts_lead_days(self) -> None:
        fire_at = compute_fire_at("2027-01-10", 7, "America/Sao_Paulo")
        assert fire_at == datetime(2027, 1, 3, 9, 0, tzinfo=SAO_PAULO)

    def test_zero_lead_days_fires_on_expiry_day(self) -> None:
        fire_at = compute_fire_at("2027-01-10", 0, SAO_PAULO)
        assert fire_at.date().isoformat() == "2027-01-10"

    def test_crosses_month_and_year(self) -> None:
        fire_at = compute_fire_at("2027-03-01", 1, SAO_PAULO)
        assert fire_at.date().isoformat() == "2027-02-28"

    def test_custom_fire_time(self) -> None:
        fire_at = compute_fire_at("2027-01-10", 0, SAO_PAULO, time(18, 30))
        assert (fire_at.hour, fire_at.minute) == (18, 30)

    def test_is_timezone_aware(self) -> None:
        fire_at = compute_fire_at("2027-01-10", 0, SAO_PAULO)
        assert fire_at.astimezone(UTC).hour == 12

    def test_invalid_date_raises(self) -> None:
        with pytest.raises(ValueError):
            compute_fire_at("10/01/2027", 0, SAO_PAULO)


class TestReminderModel:
    def test_document_uses_camel_case(self) -> None:
        doc = _reminder().to_document()
        assert doc["chatId"] == "5511999998888"
        assert doc["diasAntes"] == 3
        assert "createdAt" in doc
        assert "sentAt" not in doc

    def test_loads_from_document(self) -> None:
        reminder = Reminder.model_validate(
            {
                "id": "rem-9",
                "chatId": "5511",
                "produto": "Queijo",
                "validade": "2027-05-01",
                "diasAntes": 2,
                "sentAt": "2027-04-29T12:00:00+00:00",
            }
        )
        assert reminder.chat_id == "5511"
        assert reminder.sent_at is not None

    def test_rejects_bad_date(self) -> None:
        with pytest.raises(ValidationError):
            _reminder(validade="2027-13-01")

    def test_from_draft_and_missing_fields(self) -> None:
        reminder = Reminder.from_draft("rem-2", "5511", Draft(validade="2027-01-10"))
        assert reminder.missing_fields() == ["produto", "dias_antes"]
        assert _reminder().missing_fields() == []

    def test_render_notification(self) -> None:
        assert render_notification(_reminder()) == "⏰ Lembrete: *Leite* vence em 10/01/2027"


class TestResumeSummary:
    def test_counts_outcomes(self) -> None:
        summary = ResumeSummary()
        for outcome in (
            ScheduleOutcome.ARMED,
            ScheduleOutcome.ARMED,
            ScheduleOutcome.PAST_DUE,
            ScheduleOutcome.ALREADY_SENT,
        ):
            summary.total += 1
            summary.record(outcome)

        assert summary.to_dict() == {
            "total": 4,
            "armed": 2,
            "past_due": 1,
            "already_sent": 1,
            "failed": 0,
        }
