"""Testes unitários para config/settings.py."""

from __future__ import annotations

from datetime import time

import pytest
from pydantic import ValidationError

from lembre_ai.config.settings import GRAPH_API_VERSION, Settings, get_settings


class TestSettingsDefaults:
    """Valores padrão seguros para desenvolvimento."""

    def test_defaults(self) -> None:
        s = Settings(_env_file=None)
        assert s.service_name == "lembre_ai"
        assert s.timezone == "America/Sao_Paulo"
        assert s.reminder_store_backend == "memory"
        assert s.session_store_backend == "memory"
        assert s.openai_enabled is False
        assert s.is_development is True
        assert s.validate_all() == []

    def test_fire_time_of_day(self) -> None:
        assert Settings(_env_file=None).fire_time_of_day == time(9, 0)
        assert Settings(_env_file=None, reminder_fire_time="7:05").fire_time_of_day == time(7, 5)

    @pytest.mark.parametrize("value", ["24:00", "9h", "09:60", ""])
    def test_invalid_fire_time(self, value: str) -> None:
        with pytest.raises(ValidationError):
            Settings(_env_file=None, reminder_fire_time=value)

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TIMEZONE", "America/Manaus")
        monkeypatch.setenv("OPENAI_ENABLED", "true")
        s = Settings(_env_file=None)
        assert s.timezone == "America/Manaus"
        assert s.openai_enabled is True


class TestWhatsAppEndpoints:
    def test_api_endpoint(self) -> None:
        s = Settings(_env_file=None)
        assert s.whatsapp_api_endpoint == f"https://graph.facebook.com/{GRAPH_API_VERSION}"

    def test_whatsapp_configured(self) -> None:
        assert not Settings(_env_file=None).whatsapp_configured
        assert Settings(
            _env_file=None, whatsapp_access_token="t", whatsapp_phone_number_id="1"
        ).whatsapp_configured


class TestValidation:
    def test_openai_enabled_requires_key(self) -> None:
        errors = Settings(_env_file=None, openai_enabled=True).validate_openai_config()
        assert any("OPENAI_API_KEY" in e for e in errors)

    def test_invalid_image_backend(self) -> None:
        errors = Settings(_env_file=None, image_extractor_backend="tesseract").validate_all()
        assert any("IMAGE_EXTRACTOR_BACKEND" in e for e in errors)

    def test_redis_requires_url(self) -> None:
        errors = Settings(_env_file=None, session_store_backend="redis").validate_all()
        assert any("REDIS_URL" in e for e in errors)

    def test_memory_reminders_forbidden_in_production(self) -> None:
        s = Settings(_env_file=None, environment="production")
        errors = s.validate_reminder_store_config()
        assert any("proibido em produção" in e for e in errors)

    def test_production_requires_whatsapp_credentials(self) -> None:
        errors = Settings(_env_file=None, environment="prod").validate_whatsapp_config()
        assert len(errors) == 3

    def test_valid_production(self) -> None:
        s = Settings(
            _env_file=None,
            environment="production",
            reminder_store_backend="firestore",
            whatsapp_phone_number_id="1",
            whatsapp_access_token="t",
            whatsapp_webhook_secret="s",
        )
        assert s.validate_all() == []


def test_get_settings_is_cached() -> None:
    get_settings.cache_clear()
    assert get_settings() is get_settings()
    get_settings.cache_clear()
