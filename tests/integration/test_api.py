"""Testes HTTP da aplicação (webhook, verificação, health e admin)."""

from __future__ import annotations

import json

from fastapi.testclient import TestClient

from lembre_ai.adapters.whatsapp.signature import compute_signature
from lembre_ai.api.app import create_app
from lembre_ai.config.settings import Settings
from lembre_ai.domain.conversation import prompts

ADMIN_HEADERS = {"X-Admin-Token": "admin-secret"}
CHAT = "5511999998888"


def _payload(*texts: tuple[str, str]) -> dict:
    messages = [
        {"id": message_id, "from": CHAT, "type": "text", "text": {"body": body}}
        for message_id, body in texts
    ]
    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "1", "changes": [{"field": "messages", "value": {"messages": messages}}]}],
    }


def _create_reminder(client: TestClient) -> str:
    for index, body in enumerate(("10/01/2099", "3", "Leite", "sim")):
        response = client.post("/webhooks/whatsapp", json=_payload((f"wamid.seed{index}", body)))
        assert response.status_code == 200
    listing = client.get("/admin/reminders", headers=ADMIN_HEADERS).json()
    return listing["reminders"][0]["id"]


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["scheduler_running"] is True
        assert "x-correlation-id" in response.headers


class TestWebhookVerification:
    def test_returns_challenge(self, client: TestClient) -> None:
        response = client.get(
            "/webhooks/whatsapp",
            params={
                "hub.mode": "subscribe",
                "hub.verify_token": "test-token",
                "hub.challenge": "12345",
            },
        )

        assert response.status_code == 200
        assert response.text == "12345"

    def test_wrong_token(self, client: TestClient) -> None:
        response = client.get(
            "/webhooks/whatsapp",
            params={"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "1"},
        )
        assert response.status_code == 403

    def test_missing_configuration(self) -> None:
        app = create_app(Settings(_env_file=None, whatsapp_verify_token=None))
        with TestClient(app) as client:
            response = client.get(
                "/webhooks/whatsapp",
                params={"hub.mode": "subscribe", "hub.verify_token": "x", "hub.challenge": "1"},
            )
        assert response.status_code == 500


class TestWebhookMessages:
    """Recebimento: 200 imediato, processamento em background, dedupe por id."""

    def test_message_is_processed(self, client: TestClient, sender) -> None:
        response = client.post("/webhooks/whatsapp", json=_payload(("wamid.1", "oi")))

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert (body["total_received"], body["accepted"], body["ignored"]) == (1, 1, 0)
        assert body["signature_validated"] is False
        assert sender.sent == [(CHAT, prompts.GREETING)]

    def test_redelivery_is_ignored(self, client: TestClient, sender) -> None:
        client.post("/webhooks/whatsapp", json=_payload(("wamid.1", "oi")))

        response = client.post("/webhooks/whatsapp", json=_payload(("wamid.1", "oi")))

        assert (response.json()["accepted"], response.json()["ignored"]) == (0, 1)
        assert len(sender.sent) == 1

    def test_messages_in_one_payload_keep_order(self, client: TestClient, sender) -> None:
        client.post(
            "/webhooks/whatsapp",
            json=_payload(("wamid.a", "10/01/2099"), ("wamid.b", "5")),
        )

        assert sender.texts()[-1] == prompts.compose(
            prompts.lead_days_accepted(5), prompts.ASK_PRODUCT
        )

    def test_status_only_payload(self, client: TestClient, sender) -> None:
        payload = {
            "entry": [{"changes": [{"value": {"statuses": [{"id": "wamid.x", "status": "read"}]}}]}]
        }

        response = client.post("/webhooks/whatsapp", json=payload)

        assert response.json()["total_received"] == 0
        assert sender.sent == []

    def test_invalid_json(self, client: TestClient) -> None:
        response = client.post(
            "/webhooks/whatsapp",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 400


class TestWebhookSignature:
    def _client(self, sender) -> TestClient:
        settings = Settings(_env_file=None, whatsapp_webhook_secret="shh")
        return TestClient(create_app(settings, sender=sender))

    def test_bad_signature_is_rejected(self, sender) -> None:
        body = json.dumps(_payload(("wamid.1", "oi"))).encode()
        with self._client(sender) as client:
            response = client.post(
                "/webhooks/whatsapp",
                content=body,
                headers={"X-Hub-Signature-256": "sha256=deadbeef"},
            )
        assert response.status_code == 401
        assert sender.sent == []

    def test_valid_signature(self, sender) -> None:
        body = json.dumps(_payload(("wamid.1", "oi"))).encode()
        with self._client(sender) as client:
            response = client.post(
                "/webhooks/whatsapp",
                content=body,
                headers={
                    "X-Hub-Signature-256": compute_signature(body, "shh"),
                    "Content-Type": "application/json",
                },
            )
        assert response.status_code == 200
        assert response.json()["signature_validated"] is True


class TestAdmin:
    def test_requires_token(self, client: TestClient) -> None:
        assert client.get("/admin/reminders").status_code == 401
        assert client.get("/admin/reminders", headers={"X-Admin-Token": "x"}).status_code == 401

    def test_disabled_without_configured_token(self) -> None:
        app = create_app(Settings(_env_file=None, admin_token=None))
        with TestClient(app) as client:
            response = client.get("/admin/reminders", headers=ADMIN_HEADERS)
        assert response.status_code == 403

    def test_lists_confirmed_reminder(self, client: TestClient) -> None:
        reminder_id = _create_reminder(client)

        body = client.get("/admin/reminders", headers=ADMIN_HEADERS).json()

        assert body["count"] == 1
        (reminder,) = body["reminders"]
        assert reminder["id"] == reminder_id
        assert (reminder["chatId"], reminder["produto"], reminder["validade"]) == (
            CHAT,
            "Leite",
            "2099-01-10",
        )
        assert reminder["diasAntes"] == 3
        assert reminder["timerArmed"] is True
        assert reminder["fireAt"].startswith("2099-01-07T09:00")

    def test_delete(self, client: TestClient, reminder_store) -> None:
        reminder_id = _create_reminder(client)

        assert client.delete("/admin/reminders/unknown", headers=ADMIN_HEADERS).status_code == 404
        response = client.delete(f"/admin/reminders/{reminder_id}", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.json() == {"ok": True, "deleted": reminder_id}
        assert len(reminder_store) == 0

    def test_resume(self, client: TestClient) -> None:
        _create_reminder(client)

        response = client.post("/admin/reminders/resume", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert (body["total"], body["armed"], body["failed"]) == (1, 1, 0)
        assert body["failed_ids"] == []
