"""Configuração de logging estruturado (JSON)."""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from lembre_ai.observability.middleware import get_correlation_id

_TEXT_FORMAT = "%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s"


class CorrelationIdFilter(logging.Filter):
    """Insere correlation_id e service no record de log.

    Importante: nunca adicionar telefones ou textos de usuário nos logs.
    """

    def __init__(self, service_name: str) -> None:
        super().__init__()
        self._service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        existing = getattr(record, "correlation_id", None)
        record.correlation_id = existing if existing else get_correlation_id()
        record.service = self._service_name
        return True


def configure_logging(level: str, service_name: str, fmt: str = "json") -> None:
    """Configura logging do serviço.

    `fmt="json"` (padrão) emite uma linha JSON por evento; `fmt="text"` é
    pensado para desenvolvimento local.
    """

    formatter: logging.Formatter
    if fmt.lower() == "text":
        formatter = logging.Formatter(_TEXT_FORMAT)
    else:
        formatter = JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s %(correlation_id)s %(service)s",
            rename_fields={"levelname": "level", "name": "logger"},
        )

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter(service_name))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # APScheduler loga cada execução de job em INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Retorna logger simples; o filtro injeta service/correlation_id."""

    return logging.getLogger(name)


def mask_conversation_id(conversation_id: str | None) -> str:
    """Mascara o id da conversa (telefone) para uso em logs.

    Exemplo: "5511999998888" -> "5511...88"
    """
    if not conversation_id:
        return "unknown"
    if len(conversation_id) <= 6:
        return "***"
    return f"{conversation_id[:4]}...{conversation_id[-2:]}"


def log_fallback(
    logger: logging.Logger,
    component: str,
    reason: str | None = None,
    elapsed_ms: float | None = None,
) -> None:
    """Registra que um extrator falhou e a conversa seguiu sem o resultado.

    `reason` é o nome da exceção ou um código curto, nunca o texto do
    usuário nem a resposta do modelo.
    """
    extra: dict[str, object] = {"fallback_used": True, "component": component}
    if reason:
        extra["reason"] = reason
    if elapsed_ms is not None:
        extra["elapsed_ms"] = elapsed_ms
    logger.warning("extraction_fallback", extra=extra)
