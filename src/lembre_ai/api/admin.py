"""Rotas administrativas de lembretes (protegidas por token)."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from lembre_ai.api.dependencies import get_scheduler, require_admin_token
from lembre_ai.application.scheduler import ReminderScheduler
from lembre_ai.domain.errors import LembreAiError, ReminderStoreError
from lembre_ai.domain.reminder import Reminder
from lembre_ai.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", dependencies=[Depends(require_admin_token)])


def _serialize(reminder: Reminder, scheduler: ReminderScheduler) -> dict[str, Any]:
    data = reminder.model_dump(mode="json", by_alias=True)
    try:
        data["fireAt"] = scheduler.fire_at(reminder).isoformat()
    except (LembreAiError, ValueError):
        data["fireAt"] = None
    data["timerArmed"] = scheduler.has_timer(reminder.id)
    return data


@router.get("/reminders")
async def list_reminders(
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> dict[str, Any]:
    try:
        reminders = await scheduler.list_reminders()
    except ReminderStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="store_unavailable"
        ) from exc
    return {
        "count": len(reminders),
        "reminders": [_serialize(reminder, scheduler) for reminder in reminders],
    }


@router.delete("/reminders/{reminder_id}")
async def delete_reminder(
    reminder_id: str,
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> dict[str, Any]:
    try:
        deleted = await scheduler.delete_reminder(reminder_id)
    except ReminderStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="store_unavailable"
        ) from exc
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="reminder_not_found")
    return {"ok": True, "deleted": reminder_id}


@router.post("/reminders/resume")
async def resume_reminders(
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> dict[str, Any]:
    """Reexecuta o reagendamento a partir do storage."""
    try:
        summary = await scheduler.startup_resume()
    except ReminderStoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="store_unavailable"
        ) from exc
    return {"ok": True, **summary.to_dict(), "failed_ids": summary.failed_ids}
