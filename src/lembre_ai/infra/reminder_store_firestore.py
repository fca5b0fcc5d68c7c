"""ReminderStore em Firestore.

Um documento por lembrete (id do documento = id do lembrete), com campos
camelCase: id, chatId, produto, validade, diasAntes, createdAt, sentAt.

O cliente Firestore é síncrono; as chamadas rodam em thread para não
bloquear o event loop.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any

from google.api_core.exceptions import AlreadyExists, GoogleAPICallError, RetryError
from google.cloud import firestore
from pydantic import ValidationError

from lembre_ai.domain.errors import ReminderStoreError
from lembre_ai.domain.reminder import InsertOutcome, Reminder
from lembre_ai.infra.reminder_store import ReminderStore
from lembre_ai.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)

_STORAGE_ERRORS = (GoogleAPICallError, RetryError)


class FirestoreReminderStore(ReminderStore):
    """Persistência de lembretes em uma coleção Firestore."""

    def __init__(self, client: firestore.Client, collection: str = "lembretes") -> None:
        self._client = client
        self._collection = collection

    def _ref(self, reminder_id: str) -> firestore.DocumentReference:
        return self._client.collection(self._collection).document(reminder_id)

    @staticmethod
    def _to_reminder(doc_id: str, data: dict[str, Any] | None) -> Reminder | None:
        if not data:
            return None
        data.setdefault("id", doc_id)
        try:
            return Reminder.model_validate(data)
        except ValidationError as e:
            logger.warning(
                "reminder_document_invalid",
                extra={"reminder_id": doc_id, "errors": e.error_count()},
            )
            return None

    async def find_all(self) -> list[Reminder]:
        def _stream() -> list[Reminder]:
            reminders: list[Reminder] = []
            for doc in self._client.collection(self._collection).stream():
                reminder = self._to_reminder(doc.id, doc.to_dict())
                if reminder is not None:
                    reminders.append(reminder)
            return reminders

        try:
            return await asyncio.to_thread(_stream)
        except _STORAGE_ERRORS as e:
            logger.error("reminder_find_all_failed", extra={"error_type": type(e).__name__})
            raise ReminderStoreError(f"Firestore find_all failed: {type(e).__name__}") from e

    async def get(self, reminder_id: str) -> Reminder | None:
        try:
            snapshot = await asyncio.to_thread(self._ref(reminder_id).get)
        except _STORAGE_ERRORS as e:
            raise ReminderStoreError(f"Firestore get failed: {type(e).__name__}") from e
        if not snapshot.exists:
            return None
        return self._to_reminder(snapshot.id, snapshot.to_dict())

    async def insert(self, reminder: Reminder) -> InsertOutcome:
        try:
            await asyncio.to_thread(self._ref(reminder.id).create, reminder.to_document())
        except AlreadyExists:
            logger.info("reminder_insert_conflict", extra={"reminder_id": reminder.id})
            return InsertOutcome.CONFLICT
        except _STORAGE_ERRORS as e:
            logger.error(
                "reminder_insert_failed",
                extra={"reminder_id": reminder.id, "error_type": type(e).__name__},
            )
            raise ReminderStoreError(f"Firestore insert failed: {type(e).__name__}") from e
        return InsertOutcome.CREATED

    async def update_sent_at(self, reminder_id: str, sent_at: datetime) -> bool:
        ref = self._ref(reminder_id)

        @firestore.transactional
        def _txn(transaction: firestore.Transaction) -> bool:
            snapshot = ref.get(transaction=transaction)
            if not snapshot.exists:
                return False
            if (snapshot.to_dict() or {}).get("sentAt") is not None:
                return False
            transaction.update(ref, {"sentAt": sent_at})
            return True

        try:
            return await asyncio.to_thread(_txn, self._client.transaction())
        except _STORAGE_ERRORS as e:
            logger.error(
                "reminder_mark_sent_failed",
                extra={"reminder_id": reminder_id, "error_type": type(e).__name__},
            )
            raise ReminderStoreError(f"Firestore update failed: {type(e).__name__}") from e

    async def delete(self, reminder_id: str) -> bool:
        ref = self._ref(reminder_id)
        try:
            snapshot = await asyncio.to_thread(ref.get)
            if not snapshot.exists:
                return False
            await asyncio.to_thread(ref.delete)
        except _STORAGE_ERRORS as e:
            raise ReminderStoreError(f"Firestore delete failed: {type(e).__name__}") from e
        return True
