"""Cliente HTTP da Graph API (WhatsApp Cloud API).

Estende HttpClient com:
- Autenticação Bearer
- Classificação de erros Meta (error.type, error.code) em permanente/transitório
- Endpoints usados pelo bot: envio de texto, URL de mídia e download
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from lembre_ai.infra.http import HttpClient, HttpClientConfig, HttpError, create_http_config
from lembre_ai.observability.logging import get_logger

if TYPE_CHECKING:
    import httpx

    from lembre_ai.config.settings import Settings

logger: logging.Logger = get_logger(__name__)

_PERMANENT_CODES = frozenset({400, 401, 403, 404, 413})
_PERMANENT_TYPES = frozenset({"OAuthException", "InvalidRequest"})
MAX_TEXT_LENGTH = 4096


@dataclass(frozen=True)
class WhatsAppApiError:
    """Erro retornado pela API Meta/WhatsApp."""

    error_type: str
    error_code: int
    error_message: str
    is_permanent: bool


def parse_meta_error(response_data: Any) -> WhatsAppApiError | None:
    """Extrai o bloco `error` do JSON da Meta (None se não houver)."""
    if not isinstance(response_data, dict):
        return None
    error_obj = response_data.get("error")
    if not isinstance(error_obj, dict):
        return None

    error_type = str(error_obj.get("type", "unknown"))
    error_code = int(error_obj.get("code", 0) or 0)
    return WhatsAppApiError(
        error_type=error_type,
        error_code=error_code,
        error_message=str(error_obj.get("message", "Erro desconhecido")),
        is_permanent=error_code in _PERMANENT_CODES or error_type in _PERMANENT_TYPES,
    )


class WhatsAppHttpClient(HttpClient):
    """Cliente HTTP especializado para a Graph API."""

    def __init__(
        self,
        access_token: str,
        api_endpoint: str,
        phone_number_id: str | None = None,
        config: HttpClientConfig | None = None,
    ) -> None:
        super().__init__(config)
        self._access_token = access_token
        self._api_endpoint = api_endpoint.rstrip("/")
        self.phone_number_id = phone_number_id

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._access_token}"}

    def _json_or_raise(self, response: httpx.Response, operation: str) -> dict[str, Any]:
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            logger.error("whatsapp_invalid_json", extra={"operation": operation})
            raise HttpError("Response JSON inválido") from e

        meta_error = parse_meta_error(data)
        if meta_error:
            logger.warning(
                "whatsapp_api_error",
                extra={
                    "operation": operation,
                    "error_type": meta_error.error_type,
                    "error_code": meta_error.error_code,
                    "is_permanent": meta_error.is_permanent,
                },
            )
            raise HttpError(
                meta_error.error_message,
                status_code=meta_error.error_code,
                is_retryable=not meta_error.is_permanent,
            )
        return data

    async def send_text(self, to: str, body: str) -> dict[str, Any]:
        """POST /{phone_number_id}/messages com mensagem de texto."""
        if not self.phone_number_id:
            raise HttpError("phone_number_id não configurado")
        payload = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": to,
            "type": "text",
            "text": {"preview_url": False, "body": body[:MAX_TEXT_LENGTH]},
        }
        response = await self.post(
            f"{self._api_endpoint}/{self.phone_number_id}/messages",
            json=payload,
            headers=self._auth_headers(),
        )
        return self._json_or_raise(response, "send_text")

    async def get_media_url(self, media_id: str) -> str:
        """GET /{media_id}: URL temporária para download."""
        response = await self.get(f"{self._api_endpoint}/{media_id}", headers=self._auth_headers())
        data = self._json_or_raise(response, "get_media_url")
        url = data.get("url")
        if not isinstance(url, str) or not url:
            raise HttpError("Mídia sem URL")
        return url

    async def download(self, url: str) -> bytes:
        response = await self.get(url, headers=self._auth_headers())
        return response.content


def create_whatsapp_http_client(settings: Settings) -> WhatsAppHttpClient:
    """Factory para criar cliente WhatsApp configurado."""
    config = create_http_config(settings)
    logger.info(
        "whatsapp_http_client_created",
        extra={"timeout": config.timeout_seconds, "max_retries": config.max_retries},
    )
    return WhatsAppHttpClient(
        access_token=settings.whatsapp_access_token or "",
        api_endpoint=settings.whatsapp_api_endpoint,
        phone_number_id=settings.whatsapp_phone_number_id,
        config=config,
    )
