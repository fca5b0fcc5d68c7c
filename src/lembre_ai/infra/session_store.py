"""Armazenamento de sessões de conversa.

Contrato:
- Uma sessão por conversation_id
- `lock(conversation_id)` serializa o processamento das mensagens de uma
  mesma conversa (asyncio.Lock é FIFO: ordem de chegada preservada)
- TTL opcional de inatividade (0 = sem expiração)

Implementações: memória (dev/instância única) e Redis.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from lembre_ai.domain.session import ConversationSession
from lembre_ai.observability.logging import get_logger, mask_conversation_id

if TYPE_CHECKING:
    from lembre_ai.config.settings import Settings

logger: logging.Logger = get_logger(__name__)


class SessionStoreError(Exception):
    """Erro ao persistir ou recuperar sessão."""


class ConversationSessionStore(ABC):
    """Contrato abstrato para sessões de conversa."""

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_holders: dict[str, int] = {}

    @asynccontextmanager
    async def lock(self, conversation_id: str) -> AsyncIterator[None]:
        """Exclusão mútua por conversa; o lock some quando ninguém mais espera."""
        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._lock_holders[conversation_id] = self._lock_holders.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_holders[conversation_id] - 1
            if remaining:
                self._lock_holders[conversation_id] = remaining
            else:
                del self._lock_holders[conversation_id]
                del self._locks[conversation_id]

    def active_locks(self) -> int:
        return len(self._locks)

    @abstractmethod
    async def get(self, conversation_id: str) -> ConversationSession | None:
        """Sessão ativa (não expirada) ou None."""
        ...

    @abstractmethod
    async def save(self, session: ConversationSession) -> None:
        """Persiste a sessão (renova o TTL)."""
        ...

    @abstractmethod
    async def delete(self, conversation_id: str) -> bool:
        """Remove a sessão. True se existia."""
        ...


class InMemorySessionStore(ConversationSessionStore):
    """Sessões em memória de processo.

    Não sobrevive a restart; sessões são efêmeras por natureza (os
    lembretes confirmados vão para o ReminderStore).
    """

    def __init__(self, ttl_seconds: int = 0) -> None:
        super().__init__()
        self._ttl_seconds = ttl_seconds
        self._sessions: dict[str, tuple[ConversationSession, float | None]] = {}
        self._next_sweep_at = 0.0

    def _now(self) -> float:
        return datetime.now(tz=UTC).timestamp()

    async def get(self, conversation_id: str) -> ConversationSession | None:
        entry = self._sessions.get(conversation_id)
        if entry is None:
            return None

        session, expire_at = entry
        if expire_at is not None and self._now() > expire_at:
            del self._sessions[conversation_id]
            logger.debug(
                "session_expired",
                extra={"conversation": mask_conversation_id(conversation_id)},
            )
            return None
        return session

    async def save(self, session: ConversationSession) -> None:
        session.touch()
        now = self._now()
        expire_at = now + self._ttl_seconds if self._ttl_seconds > 0 else None
        self._sessions[session.conversation_id] = (session, expire_at)
        self._maybe_sweep(now)

    def _maybe_sweep(self, now: float) -> None:
        # No máximo uma varredura por TTL
        if self._ttl_seconds <= 0 or now < self._next_sweep_at:
            return
        self._next_sweep_at = now + self._ttl_seconds
        evicted = self.evict_expired()
        if evicted:
            logger.debug("sessions_evicted", extra={"count": evicted})

    async def delete(self, conversation_id: str) -> bool:
        return self._sessions.pop(conversation_id, None) is not None

    def evict_expired(self) -> int:
        """Remove sessões expiradas; retorna quantas saíram."""
        now = self._now()
        expired = [
            key
            for key, (_, expire_at) in self._sessions.items()
            if expire_at is not None and now > expire_at
        ]
        for key in expired:
            del self._sessions[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore(ConversationSessionStore):
    """Sessões em Redis (redis.asyncio), serializadas como JSON."""

    KEY_PREFIX = "lembre_ai:session:"

    def __init__(self, redis_client: Any, ttl_seconds: int = 0) -> None:
        super().__init__()
        self._redis = redis_client
        self._ttl_seconds = ttl_seconds

    def _key(self, conversation_id: str) -> str:
        return f"{self.KEY_PREFIX}{conversation_id}"

    async def get(self, conversation_id: str) -> ConversationSession | None:
        try:
            payload = await self._redis.get(self._key(conversation_id))
        except Exception as e:
            logger.error(
                "session_load_failed",
                extra={
                    "conversation": mask_conversation_id(conversation_id),
                    "error_type": type(e).__name__,
                },
            )
            raise SessionStoreError(f"Redis get failed: {type(e).__name__}") from e

        if not payload:
            return None
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        return ConversationSession.model_validate_json(payload)

    async def save(self, session: ConversationSession) -> None:
        session.touch()
        key = self._key(session.conversation_id)
        payload = session.model_dump_json()
        try:
            if self._ttl_seconds > 0:
                await self._redis.setex(key, self._ttl_seconds, payload)
            else:
                await self._redis.set(key, payload)
        except Exception as e:
            logger.error(
                "session_save_failed",
                extra={
                    "conversation": mask_conversation_id(session.conversation_id),
                    "error_type": type(e).__name__,
                },
            )
            raise SessionStoreError(f"Redis save failed: {type(e).__name__}") from e

    async def delete(self, conversation_id: str) -> bool:
        try:
            deleted = await self._redis.delete(self._key(conversation_id))
        except Exception as e:
            logger.error(
                "session_delete_failed",
                extra={
                    "conversation": mask_conversation_id(conversation_id),
                    "error_type": type(e).__name__,
                },
            )
            raise SessionStoreError(f"Redis delete failed: {type(e).__name__}") from e
        return bool(deleted)


def create_session_store(settings: Settings) -> ConversationSessionStore:
    """Factory conforme SESSION_STORE_BACKEND."""
    ttl_seconds = settings.session_timeout_minutes * 60
    backend = settings.session_store_backend.lower()

    if backend == "redis":
        from redis import asyncio as redis_asyncio

        client = redis_asyncio.from_url(settings.redis_url, decode_responses=True)
        logger.info("session_store_created", extra={"backend": "redis"})
        return RedisSessionStore(client, ttl_seconds=ttl_seconds)

    logger.info("session_store_created", extra={"backend": "memory"})
    return InMemorySessionStore(ttl_seconds=ttl_seconds)
