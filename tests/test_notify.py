import asyncio
import sys
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

import telegram_bot.notify as notify

PAYOUT = {
    "id": 7,
    "status": "completed",
    "amount": Decimal("150000"),
    "currency": "ARS",
    "platform": "mercadopago",
    "sessions_count": 12,
}


def test_format_payout_message():
    text = notify.format_payout_message(PAYOUT, "Sol", "ops@example.com", "pending")

    assert "Pago #7: Sol" in text
    assert "$150.000 ARS (mercadopago)" in text
    assert "⏳ Pendiente → ✅ Pagado" in text
    assert text.endswith("Operador: ops@example.com")


def test_notify_is_noop_without_configuration(monkeypatch):
    calls = []

    async def fake_send(chat_id, text):
        calls.append((chat_id, text))

    monkeypatch.setattr(notify, "TOKEN", None)
    monkeypatch.setattr(notify, "send_telegram_message", fake_send)

    asyncio.run(notify.notify_payout(PAYOUT, "Sol", "ops@example.com"))

    assert calls == []


def test_notify_sends_to_operator_chat(monkeypatch):
    calls = []

    async def fake_send(chat_id, text):
        calls.append((chat_id, text))

    monkeypatch.setattr(notify, "TOKEN", "bot-token")
    monkeypatch.setattr(notify, "OPERATOR_CHAT_ID", "-100123")
    monkeypatch.setattr(notify, "send_telegram_message", fake_send)

    asyncio.run(notify.notify_payout(PAYOUT, "Sol", "ops@example.com"))

    assert calls[0][0] == "-100123"
    assert "Estado: ✅ Pagado" in calls[0][1]


def test_delivery_failure_is_swallowed(monkeypatch):
    class BrokenBot:
        def __init__(self, token):
            pass

        async def send_message(self, chat_id, text):
            raise RuntimeError("network down")

    monkeypatch.setattr(notify, "Bot", BrokenBot)

    asyncio.run(notify.send_telegram_message("-100123", "hola"))
