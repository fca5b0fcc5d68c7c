"""Configurações centralizadas do lembre_ai.

Uso típico:
    from lembre_ai.config import get_settings
"""

from lembre_ai.config.settings import (
    GRAPH_API_BASE_URL,
    GRAPH_API_VERSION,
    Settings,
    get_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "GRAPH_API_VERSION",
    "GRAPH_API_BASE_URL",
]
