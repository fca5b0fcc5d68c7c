"""Testes do envio de mensagens e do download de mídia."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from lembre_ai.adapters.whatsapp.media import WhatsAppMediaDownloader
from lembre_ai.adapters.whatsapp.outbound import LoggingSender, WhatsAppTextSender
from lembre_ai.infra.http import HttpError


class TestWhatsAppTextSender:
    """O envio nunca levanta: falha vira False."""

    @pytest.mark.asyncio
    async def test_success(self) -> None:
        client = AsyncMock()
        sender = WhatsAppTextSender(client)

        assert await sender.send("5511", "oi") is True
        client.send_text.assert_awaited_once_with("5511", "oi")

    @pytest.mark.asyncio
    async def test_http_error(self) -> None:
        client = AsyncMock()
        client.send_text.side_effect = HttpError("HTTP 400", status_code=400)
        assert await WhatsAppTextSender(client).send("5511", "oi") is False

    @pytest.mark.asyncio
    async def test_unexpected_error(self) -> None:
        client = AsyncMock()
        client.send_text.side_effect = RuntimeError("boom")
        assert await WhatsAppTextSender(client).send("5511", "oi") is False

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        client = AsyncMock()
        await WhatsAppTextSender(client).close()
        client.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_logging_sender() -> None:
    assert await LoggingSender().send("5511", "oi") is True


class TestWhatsAppMediaDownloader:
    @pytest.mark.asyncio
    async def test_download(self) -> None:
        client = AsyncMock()
        client.get_media_url.return_value = "https://cdn.test/file"
        client.download.return_value = b"jpeg-bytes"

        assert await WhatsAppMediaDownloader(client).download("media-1") == b"jpeg-bytes"
        client.download.assert_awaited_once_with("https://cdn.test/file")

    @pytest.mark.asyncio
    async def test_http_error_returns_none(self) -> None:
        client = AsyncMock()
        client.get_media_url.side_effect = HttpError("HTTP 404", status_code=404)
        assert await WhatsAppMediaDownloader(client).download("media-1") is None

    @pytest.mark.asyncio
    async def test_too_large_returns_none(self) -> None:
        client = AsyncMock()
        client.get_media_url.return_value = "https://cdn.test/file"
        client.download.return_value = b"x" * 11
        assert await WhatsAppMediaDownloader(client, max_bytes=10).download("media-1") is None
