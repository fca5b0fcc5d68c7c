"""Rotas HTTP principais (webhook WhatsApp)."""

from __future__ import annotations

import json
from typing import Any

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Query,
    Request,
    Response,
    status,
)

from lembre_ai.adapters.whatsapp.media import WhatsAppMediaDownloader
from lembre_ai.adapters.whatsapp.models import (
    NormalizedWhatsAppMessage,
    WebhookProcessingSummary,
)
from lembre_ai.adapters.whatsapp.normalizer import extract_inbound_messages
from lembre_ai.adapters.whatsapp.signature import verify_meta_signature
from lembre_ai.api.dependencies import (
    get_conversation_service,
    get_media_downloader,
    get_message_dedupe,
    get_scheduler,
    get_settings,
)
from lembre_ai.application.conversation import ConversationService
from lembre_ai.application.events import InboundEvent, MediaReader
from lembre_ai.application.scheduler import ReminderScheduler
from lembre_ai.config.settings import Settings
from lembre_ai.infra.dedupe import InMemoryMessageDedupe
from lembre_ai.observability.logging import get_logger
from lembre_ai.observability.middleware import get_correlation_id

logger = get_logger(__name__)

router = APIRouter()


@router.get("/health")
def health(
    settings: Settings = Depends(get_settings),
    scheduler: ReminderScheduler = Depends(get_scheduler),
) -> dict[str, Any]:
    """Healthcheck simples."""
    return {
        "status": "ok",
        "service": settings.service_name,
        "version": settings.version,
        "scheduler_running": scheduler.running,
        "timers": scheduler.timer_count(),
    }


@router.get("/webhooks/whatsapp")
def whatsapp_verify(
    hub_mode: str | None = Query(None, alias="hub.mode"),
    hub_verify_token: str | None = Query(None, alias="hub.verify_token"),
    hub_challenge: str | None = Query(None, alias="hub.challenge"),
    settings: Settings = Depends(get_settings),
) -> Response:
    """Verificação de webhook exigida pela Meta."""
    if not settings.whatsapp_verify_token:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="missing_verify_token",
        )

    if hub_mode != "subscribe" or hub_verify_token != settings.whatsapp_verify_token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="verification_failed",
        )

    return Response(content=hub_challenge or "", media_type="text/plain")


def _media_reader(
    message: NormalizedWhatsAppMessage,
    downloader: WhatsAppMediaDownloader | None,
) -> MediaReader | None:
    if downloader is None or not message.media_id:
        return None
    media_id = message.media_id

    async def _read() -> bytes | None:
        return await downloader.download(media_id)

    return _read


def to_inbound_event(
    message: NormalizedWhatsAppMessage,
    downloader: WhatsAppMediaDownloader | None,
) -> InboundEvent:
    return InboundEvent(
        conversation_id=message.from_number,
        body=message.text,
        has_media=message.has_image,
        media_reader=_media_reader(message, downloader) if message.has_image else None,
        message_id=message.message_id,
    )


@router.post("/webhooks/whatsapp")
async def whatsapp_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    settings: Settings = Depends(get_settings),
    conversation: ConversationService = Depends(get_conversation_service),
    downloader: WhatsAppMediaDownloader | None = Depends(get_media_downloader),
    dedupe: InMemoryMessageDedupe = Depends(get_message_dedupe),
) -> dict[str, Any]:
    """Recebe eventos do WhatsApp; cada mensagem é processada em background.

    A resposta 200 sai antes do processamento (a Meta reentrega webhooks
    que demoram).
    """
    raw_body = await request.body()
    signature_result = verify_meta_signature(
        raw_body, request.headers, settings.whatsapp_webhook_secret
    )
    if not signature_result.valid:
        logger.warning("webhook_invalid_signature", extra={"reason": signature_result.error})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_signature")

    try:
        payload = json.loads(raw_body or b"{}")
    except json.JSONDecodeError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_json") from exc
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="invalid_payload")

    messages = extract_inbound_messages(payload)
    accepted = 0
    for message in messages:
        if not dedupe.mark_if_new(message.message_id):
            continue
        background_tasks.add_task(
            conversation.handle_event, to_inbound_event(message, downloader)
        )
        accepted += 1

    summary = WebhookProcessingSummary(
        total_received=len(messages),
        accepted=accepted,
        ignored=len(messages) - accepted,
    )
    logger.info("webhook_received", extra=summary.model_dump())
    return {
        "ok": True,
        "correlation_id": get_correlation_id(),
        "signature_validated": signature_result.valid and not signature_result.skipped,
        **summary.model_dump(),
    }
