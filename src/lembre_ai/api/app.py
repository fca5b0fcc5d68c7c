"""Fábrica da aplicação FastAPI."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lembre_ai.adapters.whatsapp.http_client import create_whatsapp_http_client
from lembre_ai.adapters.whatsapp.media import WhatsAppMediaDownloader
from lembre_ai.adapters.whatsapp.outbound import LoggingSender, MessageSender, WhatsAppTextSender
from lembre_ai.ai.extraction import ExtractionAdapter, create_extraction_adapter
from lembre_ai.api import admin
from lembre_ai.api.routes import router
from lembre_ai.application.conversation import ConversationService
from lembre_ai.application.scheduler import ReminderScheduler
from lembre_ai.config.settings import Settings, get_settings
from lembre_ai.domain.errors import ReminderStoreError
from lembre_ai.infra.dedupe import InMemoryMessageDedupe
from lembre_ai.infra.reminder_store import ReminderStore, create_reminder_store
from lembre_ai.infra.session_store import ConversationSessionStore, create_session_store
from lembre_ai.observability.logging import configure_logging, get_logger
from lembre_ai.observability.middleware import CorrelationIdMiddleware

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Liga o scheduler e reagenda lembretes do storage; desliga no fim."""
    scheduler: ReminderScheduler = app.state.scheduler
    scheduler.start()
    try:
        await scheduler.startup_resume()
    except ReminderStoreError as e:
        # Sobe mesmo assim; POST /admin/reminders/resume refaz depois
        logger.error("startup_resume_failed", extra={"error_type": type(e).__name__})

    yield

    scheduler.shutdown()
    await app.state.extraction.aclose()
    if app.state.whatsapp_client is not None:
        await app.state.whatsapp_client.close()
    logger.info("app_shutdown")


def create_app(
    settings: Settings | None = None,
    *,
    session_store: ConversationSessionStore | None = None,
    reminder_store: ReminderStore | None = None,
    sender: MessageSender | None = None,
    extraction: ExtractionAdapter | None = None,
    scheduler: ReminderScheduler | None = None,
) -> FastAPI:
    """Cria a aplicação FastAPI.

    Componentes podem ser injetados (testes); o resto sai das settings.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.service_name, settings.log_format)

    validation_errors = settings.validate_all()
    if validation_errors:
        error_msg = "; ".join(validation_errors)
        raise ValueError(f"Configuração inválida: {error_msg}")

    app = FastAPI(title=settings.service_name, version=settings.version, lifespan=lifespan)
    app.add_middleware(CorrelationIdMiddleware)
    app.include_router(router)
    app.include_router(admin.router)

    whatsapp_client = None
    media_downloader = None
    if settings.whatsapp_configured:
        whatsapp_client = create_whatsapp_http_client(settings)
        media_downloader = WhatsAppMediaDownloader(whatsapp_client)
    if sender is None:
        sender = WhatsAppTextSender(whatsapp_client) if whatsapp_client else LoggingSender()
        if whatsapp_client is None:
            logger.warning("whatsapp_not_configured", extra={"sender": "logging"})

    if session_store is None:
        session_store = create_session_store(settings)
    if reminder_store is None:
        reminder_store = create_reminder_store(settings)
    if extraction is None:
        extraction = create_extraction_adapter(settings)
    if scheduler is None:
        scheduler = ReminderScheduler(
            reminder_store,
            sender,
            timezone=settings.timezone,
            fire_time=settings.fire_time_of_day,
        )

    app.state.settings = settings
    app.state.session_store = session_store
    app.state.reminder_store = reminder_store
    app.state.extraction = extraction
    app.state.scheduler = scheduler
    app.state.whatsapp_client = whatsapp_client
    app.state.media_downloader = media_downloader
    app.state.message_dedupe = InMemoryMessageDedupe()
    app.state.conversation = ConversationService(
        session_store,
        extraction,
        scheduler,
        sender,
        timezone=settings.timezone,
    )

    return app


app = create_app()
