"""Armazenamento de lembretes.

Contrato:
- insert é idempotente por id: id repetido -> InsertOutcome.CONFLICT
- update_sent_at só grava se sentAt ainda for nulo (null -> timestamp uma vez)
- Falhas de I/O viram ReminderStoreError
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING

from lembre_ai.domain.reminder import InsertOutcome, Reminder
from lembre_ai.observability.logging import get_logger

if TYPE_CHECKING:
    from lembre_ai.config.settings import Settings

logger: logging.Logger = get_logger(__name__)


class ReminderStore(ABC):
    """Contrato abstrato para persistência de lembretes."""

    @abstractmethod
    async def find_all(self) -> list[Reminder]:
        """Todos os lembretes (enviados ou não)."""
        ...

    @abstractmethod
    async def get(self, reminder_id: str) -> Reminder | None:
        ...

    @abstractmethod
    async def insert(self, reminder: Reminder) -> InsertOutcome:
        """Grava um lembrete novo.

        Returns:
            CREATED, ou CONFLICT se o id já existia (nada é alterado)

        Raises:
            ReminderStoreError: falha de I/O
        """
        ...

    @abstractmethod
    async def update_sent_at(self, reminder_id: str, sent_at: datetime) -> bool:
        """Marca sentAt se ainda estiver nulo.

        Returns:
            True se gravou; False se não existe ou já estava marcado
        """
        ...

    @abstractmethod
    async def delete(self, reminder_id: str) -> bool:
        """Remove o lembrete. True se existia."""
        ...


class InMemoryReminderStore(ReminderStore):
    """Lembretes em memória (dev/testes; não sobrevive a restart)."""

    def __init__(self) -> None:
        self._reminders: dict[str, Reminder] = {}

    async def find_all(self) -> list[Reminder]:
        return [reminder.model_copy() for reminder in self._reminders.values()]

    async def get(self, reminder_id: str) -> Reminder | None:
        reminder = self._reminders.get(reminder_id)
        return reminder.model_copy() if reminder else None

    async def insert(self, reminder: Reminder) -> InsertOutcome:
        if reminder.id in self._reminders:
            return InsertOutcome.CONFLICT
        self._reminders[reminder.id] = reminder.model_copy()
        return InsertOutcome.CREATED

    async def update_sent_at(self, reminder_id: str, sent_at: datetime) -> bool:
        reminder = self._reminders.get(reminder_id)
        if reminder is None or reminder.sent_at is not None:
            return False
        self._reminders[reminder_id] = reminder.model_copy(update={"sent_at": sent_at})
        return True

    async def delete(self, reminder_id: str) -> bool:
        return self._reminders.pop(reminder_id, None) is not None

    def __len__(self) -> int:
        return len(self._reminders)


def create_reminder_store(settings: Settings) -> ReminderStore:
    """Factory conforme REMINDER_STORE_BACKEND."""
    backend = settings.reminder_store_backend.lower()

    if backend == "firestore":
        from google.cloud import firestore

        from lembre_ai.infra.reminder_store_firestore import FirestoreReminderStore

        client = firestore.Client(
            project=settings.firestore_project_id,
            database=settings.firestore_database_id,
        )
        logger.info(
            "reminder_store_created",
            extra={"backend": "firestore", "collection": settings.reminders_collection},
        )
        return FirestoreReminderStore(client, collection=settings.reminders_collection)

    logger.info("reminder_store_created", extra={"backend": "memory"})
    return InMemoryReminderStore()
