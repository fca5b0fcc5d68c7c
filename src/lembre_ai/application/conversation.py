"""Orquestração da conversa: mensagem -> extração -> rascunho -> resposta.

Ordem de tratamento de cada mensagem (sob o lock da conversa):

1. "cancelar" em qualquer estado: descarta a sessão
2. CONFIRM + sim/não: commit ou descarte
3. WAIT_DAYS + número literal: aceito sem chamar o extrator
4. Imagem (se ainda falta a validade): data lida da foto
5. Texto: extração + fallbacks locais (data digitada, nome do produto)
6. Próximo estado calculado do rascunho + pergunta correspondente

Nenhuma exceção escapa de `handle_event`; lembretes já gravados nunca são
afetados por cancelamentos de conversa.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable

from lembre_ai.adapters.whatsapp.outbound import MessageSender
from lembre_ai.ai.extraction import ExtractionAdapter
from lembre_ai.ai.parser import capitalize_first, is_plausible_product_name
from lembre_ai.application.events import InboundEvent
from lembre_ai.application.scheduler import ReminderScheduler
from lembre_ai.domain.conversation import (
    ConversationState,
    is_affirmative,
    is_cancel_command,
    is_negative,
    is_trivial_reply,
    next_state,
    parse_lead_time,
)
from lembre_ai.domain.conversation import prompts
from lembre_ai.domain.dates import DEFAULT_TIMEZONE, normalize_date
from lembre_ai.domain.draft import ExtractionResult, merge_extraction
from lembre_ai.domain.errors import IncompleteReminderError, ReminderStoreError
from lembre_ai.domain.reminder import Reminder, ScheduleOutcome
from lembre_ai.domain.session import ConversationSession
from lembre_ai.infra.session_store import ConversationSessionStore
from lembre_ai.observability.logging import get_logger, mask_conversation_id
from lembre_ai.observability.middleware import bind_correlation_id, get_correlation_id

logger: logging.Logger = get_logger(__name__)

MAX_PRODUCT_NAME_LENGTH = 60


def new_reminder_id() -> str:
    return f"rem-{uuid.uuid4().hex}"


class ConversationService:
    """Máquina de estados da conversa com efeitos (storage, extração, envio)."""

    def __init__(
        self,
        sessions: ConversationSessionStore,
        extraction: ExtractionAdapter,
        scheduler: ReminderScheduler,
        sender: MessageSender,
        *,
        timezone: str = DEFAULT_TIMEZONE,
        id_factory: Callable[[], str] = new_reminder_id,
    ) -> None:
        self._sessions = sessions
        self._extraction = extraction
        self._scheduler = scheduler
        self._sender = sender
        self._tz = timezone
        self._id_factory = id_factory

    async def handle_event(self, event: InboundEvent) -> list[str]:
        """Processa uma mensagem; retorna os textos enviados.

        Mensagens da mesma conversa são processadas uma por vez, na ordem
        de chegada.
        """
        replies: list[str] = []
        with bind_correlation_id(get_correlation_id() or event.message_id):
            try:
                async with self._sessions.lock(event.conversation_id):
                    await self._dispatch(event, replies)
            except Exception:  # noqa: BLE001 - o handler nunca derruba o processo
                logger.exception(
                    "conversation_handler_error",
                    extra={"conversation": mask_conversation_id(event.conversation_id)},
                )
                try:
                    await self._reply(event.conversation_id, prompts.UNEXPECTED_ERROR, replies)
                except Exception as e:  # noqa: BLE001 - transporte fora: só resta o log
                    logger.error("error_reply_failed", extra={"error_type": type(e).__name__})
        return replies

    async def _reply(self, conversation_id: str, text: str, replies: list[str]) -> None:
        replies.append(text)
        await self._sender.send(conversation_id, text)

    async def _dispatch(self, event: InboundEvent, replies: list[str]) -> None:
        cid = event.conversation_id
        text = (event.body or "").strip()

        session = await self._sessions.get(cid)
        is_new = session is None
        if session is None:
            session = ConversationSession(conversation_id=cid)
            logger.info("session_created", extra={"conversation": mask_conversation_id(cid)})

        if is_cancel_command(text):
            await self._sessions.delete(cid)
            logger.info("session_cancelled", extra={"conversation": mask_conversation_id(cid)})
            await self._reply(cid, prompts.CANCELLED, replies)
            return

        if session.state is ConversationState.CONFIRM:
            if is_negative(text):
                await self._sessions.delete(cid)
                logger.info("session_denied", extra={"conversation": mask_conversation_id(cid)})
                await self._reply(cid, prompts.DENIED, replies)
                return
            if is_affirmative(text):
                await self._confirm(session, replies)
                return

        if session.state is ConversationState.WAIT_DAYS and text:
            answer = parse_lead_time(text)
            if answer is not None:
                if not answer.valid:
                    await self._reply(cid, prompts.INVALID_LEAD_DAYS, replies)
                    return
                filled = merge_extraction(session.draft, ExtractionResult(dias_antes=answer.days))
                await self._advance(
                    session,
                    replies,
                    filled=filled,
                    notices=[prompts.lead_days_accepted(answer.days)],
                    show_feedback=False,
                )
                return

        notices: list[str] = []
        filled: list[str] = []
        previous_state = session.state

        if event.has_media:
            filled += await self._handle_image(event, session, notices, replies)

        if text:
            filled += await self._handle_text(text, session, previous_state)

        await self._advance(session, replies, filled=filled, notices=notices, greeting=is_new)

    async def _handle_image(
        self,
        event: InboundEvent,
        session: ConversationSession,
        notices: list[str],
        replies: list[str],
    ) -> list[str]:
        if session.draft.validade is not None:
            notices.append(prompts.EXPIRY_ALREADY_SET)
            return []

        await self._reply(session.conversation_id, prompts.PROCESSING_IMAGE, replies)
        try:
            data = await event.read_media()
        except Exception as e:  # noqa: BLE001 - download ruim = imagem ilegível
            logger.warning("media_read_failed", extra={"error_type": type(e).__name__})
            data = None

        if not data:
            notices.append(prompts.IMAGE_UNREADABLE)
            return []

        validade = await self._extraction.image(data)
        if validade is None:
            notices.append(prompts.IMAGE_NO_DATE)
            return []
        return merge_extraction(session.draft, ExtractionResult(validade=validade))

    async def _handle_text(
        self,
        text: str,
        session: ConversationSession,
        previous_state: ConversationState,
    ) -> list[str]:
        draft = session.draft
        filled = merge_extraction(draft, await self._extraction.text(text))

        if draft.validade is None:
            validade = normalize_date(text, tz=self._tz)
            if validade is not None:
                filled += merge_extraction(draft, ExtractionResult(validade=validade))

        if (
            previous_state is ConversationState.WAIT_PRODUCT
            and draft.produto is None
            and len(text) <= MAX_PRODUCT_NAME_LENGTH
            and not is_trivial_reply(text)
            and normalize_date(text, tz=self._tz) is None
            and is_plausible_product_name(text)
        ):
            filled += merge_extraction(draft, ExtractionResult(produto=capitalize_first(text)))

        return filled

    async def _advance(
        self,
        session: ConversationSession,
        replies: list[str],
        *,
        filled: list[str],
        notices: list[str],
        greeting: bool = False,
        show_feedback: bool = True,
    ) -> None:
        session.state = next_state(session.draft)
        await self._sessions.save(session)

        feedback = prompts.feedback_line(filled, session.draft) if show_feedback else None
        prompt = prompts.prompt_for(
            session.state,
            session.draft,
            greeting=greeting and session.state is ConversationState.WAIT_IMAGE and not notices,
        )
        logger.debug(
            "session_advanced",
            extra={"state": str(session.state), "filled": filled},
        )
        await self._reply(
            session.conversation_id,
            prompts.compose(*notices, feedback, prompt),
            replies,
        )

    async def _confirm(self, session: ConversationSession, replies: list[str]) -> None:
        cid = session.conversation_id
        draft = session.draft

        if not draft.is_complete():
            session.state = next_state(draft)
            await self._sessions.save(session)
            await self._reply(
                cid,
                prompts.compose(prompts.INCOMPLETE, prompts.prompt_for(session.state, draft)),
                replies,
            )
            return

        if session.reminder_id is None:
            session.reminder_id = self._id_factory()
            await self._sessions.save(session)

        reminder = Reminder.from_draft(session.reminder_id, cid, draft)
        try:
            outcome = await self._scheduler.commit(reminder)
        except IncompleteReminderError as e:
            logger.warning("reminder_incomplete", extra={"missing": e.missing_fields})
            session.state = next_state(draft)
            await self._sessions.save(session)
            await self._reply(
                cid,
                prompts.compose(prompts.INCOMPLETE, prompts.prompt_for(session.state, draft)),
                replies,
            )
            return
        except ReminderStoreError as e:
            # Sessão fica em CONFIRM com o mesmo reminder_id: "sim" de novo é idempotente
            logger.error(
                "reminder_commit_failed",
                extra={"reminder_id": reminder.id, "error_type": type(e).__name__},
            )
            await self._reply(cid, prompts.SAVE_FAILED, replies)
            return

        await self._sessions.delete(cid)
        logger.info(
            "reminder_confirmed",
            extra={"reminder_id": reminder.id, "schedule_outcome": str(outcome)},
        )
        saved = prompts.SAVED_PAST_DUE if outcome is ScheduleOutcome.PAST_DUE else prompts.SAVED
        await self._reply(cid, saved, replies)
