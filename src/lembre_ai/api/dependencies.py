"""Dependências injetadas nas rotas."""

from __future__ import annotations

import hmac

from fastapi import Depends, HTTPException, Request, status

from lembre_ai.adapters.whatsapp.media import WhatsAppMediaDownloader
from lembre_ai.application.conversation import ConversationService
from lembre_ai.application.scheduler import ReminderScheduler
from lembre_ai.config.settings import Settings
from lembre_ai.infra.dedupe import InMemoryMessageDedupe


def get_settings(request: Request) -> Settings:
    """Retorna settings da aplicação."""

    return request.app.state.settings


def get_conversation_service(request: Request) -> ConversationService:
    return request.app.state.conversation


def get_scheduler(request: Request) -> ReminderScheduler:
    return request.app.state.scheduler


def get_media_downloader(request: Request) -> WhatsAppMediaDownloader | None:
    """Downloader de mídia (None sem credenciais WhatsApp)."""

    return request.app.state.media_downloader


def get_message_dedupe(request: Request) -> InMemoryMessageDedupe:
    return request.app.state.message_dedupe


def require_admin_token(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    """Protege as rotas /admin com token compartilhado."""

    if not settings.admin_token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin_disabled")

    provided = request.headers.get(settings.admin_token_header, "")
    if not hmac.compare_digest(provided.encode("utf-8"), settings.admin_token.encode("utf-8")):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_admin_token")
