"""Request models: closed enums are checked here, before any service runs."""

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from payout_server.domain.currency import Currency

PayoutStatus = Literal["pending", "completed", "failed", "cancelled"]
ReportStatus = Literal["pending", "reviewing", "resolved", "dismissed"]
ReaderStatus = Literal["active", "inactive"]
PlatformFilter = Literal["all", "mercadopago", "paypal_usd", "paypal_eur"]
ExportStatus = Literal["all", "pending", "completed", "failed", "cancelled", "paid", "processing"]


class PayoutStatusUpdate(BaseModel):
    status: Optional[PayoutStatus] = None
    notes: Optional[str] = None
    payment_date: Optional[datetime] = None
    payment_method: Optional[str] = None
    transaction_reference: Optional[str] = None

    @field_validator("payment_date")
    @classmethod
    def naive_utc(cls, value):
        # Stored as naive UTC like every other timestamp
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class ReportStatusUpdate(BaseModel):
    status: ReportStatus
    resolution_notes: Optional[str] = None


class ReaderCurrencyUpdate(BaseModel):
    preferred_currency: Currency


class ReaderStatusUpdate(BaseModel):
    status: ReaderStatus
