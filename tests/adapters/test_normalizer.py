"""Testes do normalizador de payloads de webhook da Meta."""

from __future__ import annotations

from lembre_ai.adapters.whatsapp.normalizer import extract_inbound_messages


def _payload(*messages: dict) -> dict:
    return {
        "object": "whatsapp_business_account",
        "entry": [{"id": "1", "changes": [{"field": "messages", "value": {"messages": list(messages)}}]}],
    }


class TestExtractInboundMessages:
    def test_text_message(self) -> None:
        messages = extract_inbound_messages(
            _payload(
                {
                    "id": "wamid.1",
                    "from": "5511999998888",
                    "timestamp": "1760000000",
                    "type": "text",
                    "text": {"body": "Leite"},
                }
            )
        )

        assert len(messages) == 1
        msg = messages[0]
        assert (msg.message_id, msg.from_number, msg.text) == ("wamid.1", "5511999998888", "Leite")
        assert not msg.has_image

    def test_image_with_caption(self) -> None:
        (msg,) = extract_inbound_messages(
            _payload(
                {
                    "id": "wamid.2",
                    "from": "5511",
                    "type": "image",
                    "image": {"id": "media-1", "mime_type": "image/jpeg", "caption": "iogurte"},
                }
            )
        )
        assert msg.has_image
        assert msg.media_id == "media-1"
        assert msg.text == "iogurte"

    def test_photo_sent_as_document(self) -> None:
        (msg,) = extract_inbound_messages(
            _payload(
                {
                    "id": "wamid.3",
                    "from": "5511",
                    "type": "document",
                    "document": {"id": "media-2", "mime_type": "image/png"},
                }
            )
        )
        assert msg.has_image

    def test_pdf_document_is_not_image(self) -> None:
        (msg,) = extract_inbound_messages(
            _payload(
                {
                    "id": "wamid.4",
                    "from": "5511",
                    "type": "document",
                    "document": {"id": "media-3", "mime_type": "application/pdf"},
                }
            )
        )
        assert not msg.has_image

    def test_button_and_interactive_replies(self) -> None:
        messages = extract_inbound_messages(
            _payload(
                {"id": "w5", "from": "5511", "type": "button", "button": {"text": "sim"}},
                {
                    "id": "w6",
                    "from": "5511",
                    "type": "interactive",
                    "interactive": {"type": "button_reply", "button_reply": {"title": "cancelar"}},
                },
            )
        )
        assert [m.text for m in messages] == ["sim", "cancelar"]

    def test_status_notifications_are_ignored(self) -> None:
        payload = {
            "entry": [{"changes": [{"value": {"statuses": [{"id": "wamid.1", "status": "read"}]}}]}]
        }
        assert extract_inbound_messages(payload) == []

    def test_malformed_entries_are_skipped(self) -> None:
        payload = {
            "entry": [
                "garbage",
                {"changes": ["x", {"value": None}]},
                {"changes": [{"value": {"messages": [{"id": "w7", "type": "text"}, 42]}}]},
            ]
        }
        assert extract_inbound_messages(payload) == []

    def test_preserves_order(self) -> None:
        messages = extract_inbound_messages(
            _payload(
                *[
                    {"id": f"w{i}", "from": "5511", "type": "text", "text": {"body": str(i)}}
                    for i in range(3)
                ]
            )
        )
        assert [m.text for m in messages] == ["0", "1", "2"]
