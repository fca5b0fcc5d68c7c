"""Cliente HTTP assíncrono com retry e timeout (httpx).

Usado pelas chamadas à Graph API (envio de mensagens e download de mídia).

- Retry com backoff exponencial em 429, 5xx, timeout e erro de conexão
  (Retry-After do servidor prevalece quando maior, limitado ao teto)
- Demais status de erro falham na hora (HttpError não retentável)
- URLs logadas sem access_token
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from lembre_ai.observability.logging import get_logger

if TYPE_CHECKING:
    from lembre_ai.config.settings import Settings

logger: logging.Logger = get_logger(__name__)

_ACCESS_TOKEN_PATTERN = re.compile(r"access_token=[^&]+")


def _sanitize_url(url: str) -> str:
    """Remove tokens da URL para logging seguro."""
    return _ACCESS_TOKEN_PATTERN.sub("access_token=***", url)


@dataclass
class HttpClientConfig:
    """Configuração do cliente HTTP."""

    timeout_seconds: float = 30.0
    max_retries: int = 3
    backoff_base_seconds: float = 2.0
    backoff_max_seconds: float = 30.0
    default_headers: dict[str, str] = field(default_factory=dict)


class HttpError(Exception):
    """Erro de requisição HTTP sem expor informações sensíveis."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        is_retryable: bool = False,
        response: httpx.Response | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.is_retryable = is_retryable
        self.response = response


def is_retryable_status(status_code: int) -> bool:
    """429 ou 5xx."""
    return status_code == 429 or 500 <= status_code < 600


def backoff_seconds(attempt: int, base_seconds: float, max_seconds: float) -> float:
    return min((2**attempt) * base_seconds, max_seconds)


def retry_after_seconds(response: httpx.Response | None) -> float | None:
    """Valor numérico do header Retry-After (a Graph API envia em 429)."""
    if response is None:
        return None
    raw = response.headers.get("retry-after", "").strip()
    if not raw.isdigit():
        return None
    return float(raw)


class HttpClient:
    """Cliente HTTP assíncrono com retry e logging.

    Uso típico:
        async with HttpClient(config) as client:
            response = await client.post(url, json=payload)
    """

    def __init__(self, config: HttpClientConfig | None = None) -> None:
        self._config = config or HttpClientConfig()
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Retorna cliente httpx (lazy loading)."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._config.timeout_seconds),
                headers=self._config.default_headers,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Executa requisição com retry automático.

        Raises:
            HttpError: status não retentável ou tentativas esgotadas
        """
        client = await self._get_client()
        cfg = self._config
        safe_url = _sanitize_url(url)
        last_error: HttpError | None = None

        for attempt in range(cfg.max_retries + 1):
            logger.debug(
                "http_request",
                extra={"method": method, "url": safe_url, "attempt": attempt + 1},
            )
            try:
                response = await client.request(method, url, **kwargs)
            except (httpx.TimeoutException, httpx.TransportError) as exc:
                logger.warning(
                    "http_transient_error",
                    extra={
                        "method": method,
                        "url": safe_url,
                        "attempt": attempt + 1,
                        "error_type": type(exc).__name__,
                    },
                )
                last_error = HttpError(type(exc).__name__, is_retryable=True)
            else:
                if response.is_success:
                    return response
                if not is_retryable_status(response.status_code):
                    logger.warning(
                        "http_request_failed",
                        extra={
                            "method": method,
                            "url": safe_url,
                            "status_code": response.status_code,
                        },
                    )
                    raise HttpError(
                        f"HTTP {response.status_code}",
                        status_code=response.status_code,
                        response=response,
                    )
                last_error = HttpError(
                    f"HTTP {response.status_code}",
                    status_code=response.status_code,
                    is_retryable=True,
                    response=response,
                )

            if attempt < cfg.max_retries:
                wait = backoff_seconds(attempt, cfg.backoff_base_seconds, cfg.backoff_max_seconds)
                hinted = retry_after_seconds(last_error.response if last_error else None)
                if hinted is not None:
                    wait = min(max(wait, hinted), cfg.backoff_max_seconds)
                logger.info(
                    "http_backoff",
                    extra={"backoff_seconds": wait, "next_attempt": attempt + 2},
                )
                await asyncio.sleep(wait)

        logger.error(
            "http_retries_exhausted",
            extra={"method": method, "url": safe_url, "total_attempts": cfg.max_retries + 1},
        )
        raise last_error or HttpError("Falha após todos os retries")

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(
        self,
        url: str,
        json: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        return await self.request("POST", url, json=json, **kwargs)


def create_http_config(settings: Settings) -> HttpClientConfig:
    """Configuração padrão para a Graph API a partir de Settings."""
    return HttpClientConfig(
        timeout_seconds=float(settings.whatsapp_request_timeout_seconds),
        max_retries=settings.whatsapp_max_retries,
        backoff_base_seconds=float(settings.whatsapp_retry_backoff_seconds),
        default_headers={"User-Agent": f"{settings.service_name}/{settings.version}"},
    )
