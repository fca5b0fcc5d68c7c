"""Configurações da aplicação via variáveis de ambiente.

Todas as configurações são carregadas de env vars (ou arquivo .env em dev).
Nunca hardcode secrets ou valores sensíveis.
"""

from __future__ import annotations

import re
from datetime import time
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# -----------------------------------------------------------------------------
# Constantes da Graph API Meta/WhatsApp
# -----------------------------------------------------------------------------
GRAPH_API_VERSION: str = "v24.0"
GRAPH_API_BASE_URL: str = "https://graph.facebook.com"

_FIRE_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


class Settings(BaseSettings):
    """Configurações lidas do ambiente."""

    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=".env",
        extra="ignore",
    )

    # Aplicação
    service_name: str = "lembre_ai"
    version: str = "0.1.0"
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "json"  # json | text

    # Lembretes
    timezone: str = "America/Sao_Paulo"  # Fuso de referência (inferência de ano e disparo)
    reminder_fire_time: str = "09:00"  # Horário local do aviso (HH:MM)
    reminder_store_backend: str = "memory"  # memory | firestore
    reminders_collection: str = "lembretes"
    firestore_project_id: str | None = None
    firestore_database_id: str = "(default)"

    # Sessão de conversa
    session_store_backend: str = "memory"  # memory | redis
    redis_url: str | None = None
    session_timeout_minutes: int = 0  # 0 = sessões sem expiração

    # WhatsApp / Meta API
    whatsapp_verify_token: str | None = None  # Verificação de webhook
    whatsapp_webhook_secret: str | None = None  # HMAC SHA-256 secret
    whatsapp_access_token: str | None = None  # Bearer token
    whatsapp_phone_number_id: str | None = None
    whatsapp_api_version: str = GRAPH_API_VERSION
    whatsapp_api_base_url: str = GRAPH_API_BASE_URL
    whatsapp_request_timeout_seconds: int = 30
    whatsapp_max_retries: int = 3
    whatsapp_retry_backoff_seconds: int = 2

    # OpenAI / IA
    openai_enabled: bool = False  # Feature flag (fail-safe: false)
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"  # Extração de texto
    openai_vision_model: str | None = None  # Default: openai_model
    openai_timeout_seconds: float = 15.0
    image_extractor_backend: str = "vision"  # vision | ocr | disabled

    # Administração
    admin_token: str | None = None
    admin_token_header: str = "X-Admin-Token"

    @field_validator("reminder_fire_time")
    @classmethod
    def _validate_fire_time(cls, value: str) -> str:
        if not _FIRE_TIME_PATTERN.match(value.strip()):
            raise ValueError("REMINDER_FIRE_TIME deve estar no formato HH:MM")
        return value.strip()

    @property
    def fire_time_of_day(self) -> time:
        """Horário local de disparo como `datetime.time`."""
        hour, minute = self.reminder_fire_time.split(":")
        return time(int(hour), int(minute))

    @property
    def whatsapp_api_endpoint(self) -> str:
        """Retorna a URL base completa da API WhatsApp (versão + base)."""
        return f"{self.whatsapp_api_base_url}/{self.whatsapp_api_version}"

    @property
    def vision_model(self) -> str:
        return self.openai_vision_model or self.openai_model

    @property
    def is_production(self) -> bool:
        """Retorna True se ambiente é produção."""
        return self.environment.lower() in ("production", "prod")

    @property
    def is_development(self) -> bool:
        """Retorna True se ambiente é desenvolvimento."""
        return self.environment.lower() in ("development", "dev", "local")

    @property
    def whatsapp_configured(self) -> bool:
        return bool(self.whatsapp_access_token and self.whatsapp_phone_number_id)

    def validate_openai_config(self) -> list[str]:
        """Valida configuração de OpenAI.

        Se openai_enabled=True, verifica se OPENAI_API_KEY está configurado.
        Retorna lista de erros (vazia = OK).
        """
        errors: list[str] = []
        if self.openai_enabled and not self.openai_api_key:
            errors.append("OPENAI_ENABLED=true requer OPENAI_API_KEY configurado")
        backend = self.image_extractor_backend.lower()
        if backend not in {"vision", "ocr", "disabled"}:
            errors.append("IMAGE_EXTRACTOR_BACKEND inválido: use vision | ocr | disabled")
        return errors

    def validate_session_store_config(self) -> list[str]:
        """Valida backend de sessões de conversa."""
        errors: list[str] = []
        backend = self.session_store_backend.lower()
        if backend not in {"memory", "redis"}:
            errors.append(
                f"SESSION_STORE_BACKEND '{backend}' inválido. Valores válidos: memory | redis"
            )
        if backend == "redis" and not self.redis_url:
            errors.append("SESSION_STORE_BACKEND=redis requer REDIS_URL configurado")
        if self.session_timeout_minutes < 0:
            errors.append("SESSION_TIMEOUT_MINUTES deve ser >= 0")
        return errors

    def validate_reminder_store_config(self) -> list[str]:
        """Valida backend de persistência de lembretes.

        Em produção, memory é proibido: o resume após restart depende do storage.
        """
        errors: list[str] = []
        backend = self.reminder_store_backend.lower()
        if backend not in {"memory", "firestore"}:
            errors.append(
                f"REMINDER_STORE_BACKEND '{backend}' inválido. Valores válidos: memory | firestore"
            )
        if self.is_production and backend == "memory":
            errors.append("REMINDER_STORE_BACKEND=memory é proibido em produção")
        return errors

    def validate_whatsapp_config(self) -> list[str]:
        """Valida se configurações mínimas de WhatsApp estão presentes em produção."""
        errors: list[str] = []
        if not self.is_production:
            return errors
        if not self.whatsapp_phone_number_id:
            errors.append("WHATSAPP_PHONE_NUMBER_ID não configurado")
        if not self.whatsapp_access_token:
            errors.append("WHATSAPP_ACCESS_TOKEN não configurado")
        if not self.whatsapp_webhook_secret:
            errors.append("WHATSAPP_WEBHOOK_SECRET obrigatório em produção")
        return errors

    def validate_all(self) -> list[str]:
        errors: list[str] = []
        errors.extend(self.validate_openai_config())
        errors.extend(self.validate_session_store_config())
        errors.extend(self.validate_reminder_store_config())
        errors.extend(self.validate_whatsapp_config())
        return errors


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Retorna uma instância cacheada de Settings.

    A cache garante que mesmo múltiplas injeções não criam novos objetos.
    """
    return Settings()
