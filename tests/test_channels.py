import pytest

from catalyst.channels import normalize_payload


def test_whatsapp_payload():
    inbound = normalize_payload("whatsapp", {"from": "+15551234", "text": "Where is my order?"})

    assert inbound.channel == "whatsapp"
    assert inbound.session_id == "+15551234"
    assert inbound.reply_to == "+15551234"
    assert inbound.text == "Where is my order?"


def test_twilio_style_whatsapp_payload():
    inbound = normalize_payload("WhatsApp", {"From": "whatsapp:+1555", "Body": "hi"})

    assert inbound.channel == "whatsapp"
    assert inbound.session_id == "whatsapp:+1555"
    assert inbound.text == "hi"


def test_email_payload_keeps_subject():
    inbound = normalize_payload(
        "email", {"envelope": {"from": "jane@example.com"}, "plain": "Refund please", "subject": "Order 1001"}
    )

    assert inbound.session_id == "jane@example.com"
    assert inbound.text == "Refund please"
    assert inbound.metadata == {"subject": "Order 1001"}


def test_telegram_payload_uses_chat_id():
    inbound = normalize_payload("telegram", {"message": {"text": "hello", "chat": {"id": 4242}}})

    assert inbound.session_id == "4242"
    assert inbound.text == "hello"


def test_generic_payload_falls_back_to_unknown_sender():
    inbound = normalize_payload("slack", {"content": "ping"})

    assert inbound.session_id == "unknown"
    assert inbound.text == "ping"


def test_generic_payload_prefers_session_id():
    inbound = normalize_payload("custom", {"message": "hi", "sessionId": "abc", "from": "x"})

    assert inbound.session_id == "abc"
    assert inbound.reply_to == "x"


@pytest.mark.parametrize(
    ("channel", "body"),
    [
        ("whatsapp", {"from": "+1"}),
        ("email", {"from": "a@b.c", "text": "   "}),
        ("telegram", {"message": {"chat": {"id": 1}}}),
        ("generic", {}),
    ],
)
def test_payload_without_text_is_rejected(channel, body):
    assert normalize_payload(channel, body) is None
