"""Testes de logging estruturado e correlation_id."""

from __future__ import annotations

import json
import logging

import pytest

from lembre_ai.observability.logging import (
    CorrelationIdFilter,
    configure_logging,
    log_fallback,
    mask_conversation_id,
)
from lembre_ai.observability.middleware import bind_correlation_id, get_correlation_id


class TestMaskConversationId:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("5511999998888", "5511...88"),
            ("123456", "***"),
            ("", "unknown"),
            (None, "unknown"),
        ],
    )
    def test_mask(self, value: str | None, expected: str) -> None:
        assert mask_conversation_id(value) == expected


class TestCorrelationId:
    def test_bind_sets_and_restores(self) -> None:
        assert get_correlation_id() == ""
        with bind_correlation_id("abc") as value:
            assert value == "abc"
            assert get_correlation_id() == "abc"
        assert get_correlation_id() == ""

    def test_bind_generates_id(self) -> None:
        with bind_correlation_id() as value:
            assert len(value) == 36

    def test_filter_injects_fields(self) -> None:
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "evento", None, None)
        with bind_correlation_id("req-1"):
            assert CorrelationIdFilter("lembre_ai").filter(record)
        assert record.correlation_id == "req-1"
        assert record.service == "lembre_ai"


class TestConfigureLogging:
    def test_json_output(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging("INFO", "lembre_ai")
        with bind_correlation_id("cid-42"):
            logging.getLogger("lembre_ai.test").info("reminder_armed", extra={"reminder_id": "r1"})

        line = capsys.readouterr().err.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["message"] == "reminder_armed"
        assert payload["level"] == "INFO"
        assert payload["correlation_id"] == "cid-42"
        assert payload["service"] == "lembre_ai"
        assert payload["reminder_id"] == "r1"

    def test_apscheduler_is_quiet(self) -> None:
        configure_logging("DEBUG", "lembre_ai", "text")
        assert logging.getLogger("apscheduler").level == logging.WARNING
        configure_logging("INFO", "lembre_ai")


def test_log_fallback(caplog: pytest.LogCaptureFixture) -> None:
    logger = logging.getLogger("lembre_ai.test.fallback")
    with caplog.at_level(logging.INFO, logger="lembre_ai.test.fallback"):
        log_fallback(logger, "image_date_extraction", reason="timeout", elapsed_ms=12.5)

    record = caplog.records[-1]
    assert record.getMessage() == "extraction_fallback"
    assert record.levelno == logging.WARNING
    assert record.fallback_used is True
    assert record.component == "image_date_extraction"
    assert record.reason == "timeout"
    assert record.elapsed_ms == 12.5
