"""Lembre Aí: bot de WhatsApp para lembretes de validade de produtos."""

__version__ = "0.1.0"
