"""Environment-driven settings for the payout backend."""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent

DATABASE_URL = os.getenv(
    "DATABASE_URL", f"sqlite+aiosqlite:///{BASE_DIR / 'db' / 'database.db'}"
)
# Reporting reads may go to a replica; mutations always use DATABASE_URL.
READ_DATABASE_URL = os.getenv("READ_DATABASE_URL") or DATABASE_URL

RECEIPTS_DIR = Path(os.getenv("RECEIPTS_DIR", str(BASE_DIR / "receipts")))
RECEIPT_MAX_BYTES = int(os.getenv("RECEIPT_MAX_BYTES", str(10 * 1024 * 1024)))

REPORT_CACHE_SECONDS = int(os.getenv("REPORT_CACHE_SECONDS", "60"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

DEFAULT_PAGE_LIMIT = 10
MAX_PAGE_LIMIT = 100


def load_api_tokens(raw=None):
    """Parse ``ADMIN_API_TOKENS`` ("token:operator,token2:operator2")."""
    if raw is None:
        raw = os.getenv("ADMIN_API_TOKENS", "")
    tokens = {}
    for pair in raw.split(","):
        pair = pair.strip()
        if not pair or ":" not in pair:
            continue
        token, operator = pair.split(":", 1)
        if token.strip() and operator.strip():
            tokens[token.strip()] = operator.strip()
    return tokens
