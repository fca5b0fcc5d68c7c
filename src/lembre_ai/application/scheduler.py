"""ReminderScheduler: ciclo de vida dos lembretes confirmados.

- commit: valida, grava (id repetido = já feito) e agenda
- schedule: no máximo um timer por id; passado -> PAST_DUE sem timer
- fire: envia o aviso no máximo uma vez por id neste processo e marca
  sentAt mesmo se o envio falhar (entrega at-least-once, sem retry)
- startup_resume: reagenda tudo do storage; falha em um não afeta os outros

Os timers vivem só em memória (APScheduler com jobstore em memória); o
storage é a fonte da verdade e o resume reconstrói o conjunto a cada boot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime, time
from zoneinfo import ZoneInfo

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from lembre_ai.adapters.whatsapp.outbound import MessageSender
from lembre_ai.domain.dates import DEFAULT_TIMEZONE
from lembre_ai.domain.errors import IncompleteReminderError
from lembre_ai.domain.reminder import (
    DEFAULT_FIRE_TIME,
    InsertOutcome,
    Reminder,
    ResumeSummary,
    ScheduleOutcome,
    compute_fire_at,
    render_notification,
)
from lembre_ai.infra.reminder_store import ReminderStore
from lembre_ai.observability.logging import get_logger, mask_conversation_id
from lembre_ai.observability.middleware import bind_correlation_id

logger: logging.Logger = get_logger(__name__)


class ReminderScheduler:
    """Agenda e dispara lembretes de validade."""

    def __init__(
        self,
        store: ReminderStore,
        sender: MessageSender,
        *,
        timezone: str = DEFAULT_TIMEZONE,
        fire_time: time = DEFAULT_FIRE_TIME,
        scheduler: AsyncIOScheduler | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._sender = sender
        self._zone = ZoneInfo(timezone)
        self._fire_time = fire_time
        self._scheduler = scheduler or AsyncIOScheduler(timezone=self._zone)
        self._clock = clock or (lambda: datetime.now(tz=UTC))
        self._fired: set[str] = set()

    # ------------------------------------------------------------------
    # Ciclo de vida do scheduler
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        """Inicia o loop de timers (exige event loop rodando)."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("reminder_scheduler_started", extra={"timezone": str(self._zone)})

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("reminder_scheduler_stopped")

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def fire_at(self, reminder: Reminder) -> datetime:
        """Instante de disparo do lembrete (fuso de referência)."""
        if reminder.validade is None or reminder.dias_antes is None:
            raise IncompleteReminderError(reminder.missing_fields())
        return compute_fire_at(reminder.validade, reminder.dias_antes, self._zone, self._fire_time)

    def has_timer(self, reminder_id: str) -> bool:
        return self._scheduler.get_job(reminder_id) is not None

    def timer_count(self) -> int:
        return len(self._scheduler.get_jobs())

    def cancel(self, reminder_id: str) -> bool:
        """Remove o timer do lembrete. True se havia um."""
        try:
            self._scheduler.remove_job(reminder_id)
        except JobLookupError:
            return False
        logger.debug("reminder_timer_cancelled", extra={"reminder_id": reminder_id})
        return True

    def schedule(self, reminder: Reminder) -> ScheduleOutcome:
        """Arma (ou rearma) o timer do lembrete.

        Idempotente: qualquer timer anterior com o mesmo id é cancelado antes.

        Raises:
            IncompleteReminderError: sem validade ou dias_antes
        """
        self.cancel(reminder.id)

        if reminder.sent_at is not None:
            logger.debug("reminder_already_sent", extra={"reminder_id": reminder.id})
            return ScheduleOutcome.ALREADY_SENT

        fire_at = self.fire_at(reminder)
        if fire_at <= self._clock():
            logger.warning(
                "reminder_past_due",
                extra={"reminder_id": reminder.id, "fire_at": fire_at.isoformat()},
            )
            return ScheduleOutcome.PAST_DUE

        self._scheduler.add_job(
            self._run_job,
            trigger=DateTrigger(run_date=fire_at),
            args=[reminder],
            id=reminder.id,
            name=f"reminder:{reminder.id}",
            replace_existing=True,
            misfire_grace_time=None,
            coalesce=True,
        )
        logger.info(
            "reminder_armed",
            extra={"reminder_id": reminder.id, "fire_at": fire_at.isoformat()},
        )
        return ScheduleOutcome.ARMED

    async def _run_job(self, reminder: Reminder) -> None:
        with bind_correlation_id(f"reminder-{reminder.id}"):
            try:
                await self.fire(reminder)
            except Exception:  # noqa: BLE001 - job nunca propaga para o APScheduler
                logger.exception("reminder_fire_failed", extra={"reminder_id": reminder.id})

    # ------------------------------------------------------------------
    # Operações
    # ------------------------------------------------------------------

    async def commit(self, reminder: Reminder) -> ScheduleOutcome:
        """Grava e agenda um lembrete confirmado.

        Raises:
            IncompleteReminderError: campo obrigatório ausente (nada é gravado)
            ReminderStoreError: falha de I/O no storage
        """
        missing = reminder.missing_fields()
        if missing:
            raise IncompleteReminderError(missing)

        outcome = await self._store.insert(reminder)
        stored = reminder
        if outcome is InsertOutcome.CONFLICT:
            # Confirmação repetida: agenda o que está gravado
            stored = await self._store.get(reminder.id) or reminder
            logger.info("reminder_commit_conflict", extra={"reminder_id": reminder.id})
        else:
            logger.info(
                "reminder_committed",
                extra={
                    "reminder_id": reminder.id,
                    "conversation": mask_conversation_id(reminder.chat_id),
                },
            )
        return self.schedule(stored)

    async def _current(self, reminder: Reminder) -> Reminder:
        """Versão gravada do lembrete (a do timer pode estar desatualizada)."""
        try:
            stored = await self._store.get(reminder.id)
        except Exception as e:  # noqa: BLE001 - storage fora: usa a cópia do timer
            logger.warning(
                "reminder_reload_failed",
                extra={"reminder_id": reminder.id, "error_type": type(e).__name__},
            )
            return reminder
        return stored or reminder

    async def fire(self, reminder: Reminder) -> bool:
        """Envia o aviso e marca sentAt.

        O sentAt gravado no storage é o que impede um segundo envio; `_fired`
        só guarda ids em voo ou cuja marcação falhou.

        Returns:
            True se o aviso foi entregue ao transporte
        """
        if reminder.id in self._fired:
            logger.warning("reminder_fire_duplicate", extra={"reminder_id": reminder.id})
            return False
        self._fired.add(reminder.id)

        reminder = await self._current(reminder)
        if reminder.sent_at is not None:
            logger.info("reminder_already_sent", extra={"reminder_id": reminder.id})
            self._fired.discard(reminder.id)
            return False

        try:
            delivered = await self._sender.send(reminder.chat_id, render_notification(reminder))
        except Exception as e:  # noqa: BLE001 - exceção do transporte = envio falhou
            logger.error(
                "reminder_send_raised",
                extra={"reminder_id": reminder.id, "error_type": type(e).__name__},
            )
            delivered = False

        if delivered:
            logger.info("reminder_sent", extra={"reminder_id": reminder.id})
        else:
            logger.error("reminder_notification_failed", extra={"reminder_id": reminder.id})

        try:
            await self._store.update_sent_at(reminder.id, datetime.now(tz=UTC))
        except Exception as e:  # noqa: BLE001 - best-effort
            # Id fica em _fired: sem sentAt gravado, só ele impede novo envio
            logger.error(
                "reminder_mark_sent_failed",
                extra={"reminder_id": reminder.id, "error_type": type(e).__name__},
            )
        else:
            self._fired.discard(reminder.id)
        return delivered

    async def startup_resume(self) -> ResumeSummary:
        """Reagenda todos os lembretes do storage.

        Raises:
            ReminderStoreError: falha ao carregar a lista
        """
        reminders = await self._store.find_all()
        summary = ResumeSummary()
        for reminder in reminders:
            summary.total += 1
            try:
                summary.record(self.schedule(reminder))
            except Exception as e:  # noqa: BLE001 - um lembrete ruim não bloqueia os demais
                summary.failed += 1
                summary.failed_ids.append(reminder.id)
                logger.error(
                    "reminder_resume_failed",
                    extra={"reminder_id": reminder.id, "error_type": type(e).__name__},
                )

        logger.info("reminders_resumed", extra=summary.to_dict())
        return summary

    async def delete_reminder(self, reminder_id: str) -> bool:
        """Remoção administrativa: cancela o timer e apaga do storage."""
        self.cancel(reminder_id)
        deleted = await self._store.delete(reminder_id)
        logger.info("reminder_deleted", extra={"reminder_id": reminder_id, "existed": deleted})
        return deleted

    async def list_reminders(self) -> list[Reminder]:
        return await self._store.find_all()
