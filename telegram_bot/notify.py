import os
import logging
from dotenv import load_dotenv
from telegram import Bot

from payout_server.domain.currency import format_currency

load_dotenv()
TOKEN = os.getenv("TELEGRAM_BOT_TOKEN")
OPERATOR_CHAT_ID = os.getenv("TELEGRAM_OPERATOR_CHAT_ID")

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "pending": "⏳ Pendiente",
    "completed": "✅ Pagado",
    "failed": "❌ Fallido",
    "cancelled": "🚫 Cancelado",
}


def notifications_enabled() -> bool:
    return bool(TOKEN and OPERATOR_CHAT_ID)


async def send_telegram_message(chat_id, text: str):
    """Send a Telegram message; failures are logged, never raised."""
    try:
        bot = Bot(token=TOKEN)
        logger.info("Sending Telegram message: chat_id=%s", chat_id)
        await bot.send_message(chat_id=chat_id, text=text)
    except Exception:
        logger.exception("Telegram message to chat_id=%s failed", chat_id)


def format_payout_message(payout: dict, reader_name: str, operator: str, previous_status=None) -> str:
    status = STATUS_LABELS.get(payout["status"], payout["status"])
    lines = [
        f"💸 Pago #{payout['id']}: {reader_name}",
        f"Monto: {format_currency(payout['amount'], payout['currency'])} ({payout['platform']})",
        f"Consultas: {payout['sessions_count']}",
    ]
    if previous_status:
        lines.append(f"Estado: {STATUS_LABELS.get(previous_status, previous_status)} → {status}")
    else:
        lines.append(f"Estado: {status}")
    lines.append(f"Operador: {operator}")
    return "\n".join(lines)


async def notify_payout(payout: dict, reader_name: str, operator: str, previous_status=None):
    """Let the operators' chat know a payout was created or changed state."""
    if not notifications_enabled():
        logger.debug("Telegram notifications disabled; payout %s not announced", payout["id"])
        return
    await send_telegram_message(
        chat_id=OPERATOR_CHAT_ID,
        text=format_payout_message(payout, reader_name, operator, previous_status),
    )
