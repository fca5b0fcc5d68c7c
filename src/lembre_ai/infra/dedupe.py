"""Deduplicação de mensagens de entrada.

A Meta reentrega webhooks (timeout, retry); o mesmo message_id não deve
gerar duas respostas. Dedupe em memória de processo, com TTL e limite de
tamanho.
"""

from __future__ import annotations

import logging
import time
from collections import OrderedDict
from collections.abc import Callable

from lembre_ai.observability.logging import get_logger

logger: logging.Logger = get_logger(__name__)


class InMemoryMessageDedupe:
    """Conjunto de message_ids vistos recentemente."""

    def __init__(
        self,
        ttl_seconds: float = 86400,
        max_entries: int = 10000,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._ttl_seconds = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock or time.monotonic
        self._seen: OrderedDict[str, float] = OrderedDict()

    def mark_if_new(self, key: str) -> bool:
        """True se a chave é nova (e agora está marcada); False se duplicada."""
        self._cleanup()
        if key in self._seen:
            logger.debug("inbound_duplicate", extra={"key": key[:16] + "..."})
            return False
        self._seen[key] = self._clock()
        while len(self._seen) > self._max_entries:
            self._seen.popitem(last=False)
        return True

    def clear(self, key: str) -> bool:
        return self._seen.pop(key, None) is not None

    def _cleanup(self) -> None:
        cutoff = self._clock() - self._ttl_seconds
        while self._seen:
            oldest_key, seen_at = next(iter(self._seen.items()))
            if seen_at >= cutoff:
                break
            del self._seen[oldest_key]

    def __len__(self) -> int:
        return len(self._seen)
