"""Reconciliation of the revenue book against reader earnings, and exports.

Reads only: nothing here touches session claims.
"""

import csv
import io
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from payout_server.domain.currency import (
    CURRENCY_ORDER,
    Currency,
    platform_for,
    to_currency,
)
from payout_server.domain.period import Period
from payout_server.domain.service_kinds import service_name
from payout_server.domain.state_machine import PAYOUT_COMPLETED, PAYOUT_PENDING, PAYOUT_STATES
from payout_server.models.registry import Payout, PlatformPayment, Reader
from payout_server.services import ledger_service
from payout_server.services.payout_service import effective_end

ZERO = Decimal("0")
APPROVED = "approved"

EXPORT_COLUMNS = (
    "id",
    "reader_id",
    "reader_name",
    "platform",
    "currency",
    "amount",
    "sessions_count",
    "period_start",
    "period_end",
    "status",
    "processed_at",
    "processed_by",
)

# Labels the dashboard's export menu sends
EXPORT_STATUS_ALIASES = {
    "paid": PAYOUT_COMPLETED,
    "processing": PAYOUT_PENDING,
}


def margin(profit: Decimal, revenue: Decimal) -> Decimal:
    if not revenue:
        return ZERO
    return (profit / revenue).quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)


async def _revenue(
    db: AsyncSession, period: Period, currency: Currency, provider: Optional[str] = None
):
    query = select(PlatformPayment.amount_money).where(
        PlatformPayment.status == APPROVED,
        PlatformPayment.currency == currency.value,
        PlatformPayment.created_at >= period.starts_at,
        PlatformPayment.created_at < period.ends_before,
    )
    if provider is not None:
        query = query.where(PlatformPayment.provider == provider)
    amounts = [Decimal(v) for v in (await db.execute(query)).scalars()]
    return sum(amounts, ZERO), len(amounts)


async def _currency_block(db: AsyncSession, period: Period, currency: Currency) -> dict:
    revenue, count = await _revenue(db, period, currency, platform_for(currency).value)
    expenses = await ledger_service.accrued_expenses(db, currency, period)
    profit = revenue - expenses
    return {
        "currency": currency.value,
        "revenue": revenue,
        "expenses": expenses,
        "profit": profit,
        "margin": margin(profit, revenue),
        "payments_count": count,
    }


async def platform_summary(db: AsyncSession, month: int, year: int) -> dict:
    """Revenue per processor against reader earnings accrued in the month."""
    period = Period.for_month(month, year)
    return {
        "mercadopago": await _currency_block(db, period, Currency.ARS),
        "paypal": {
            "usd": await _currency_block(db, period, Currency.USD),
            "eur": await _currency_block(db, period, Currency.EUR),
        },
    }


async def _profit_by_service(db: AsyncSession, period: Period, currency: Currency):
    revenue: Dict[str, Decimal] = {}
    query = select(PlatformPayment.service_kind, PlatformPayment.amount_money).where(
        PlatformPayment.status == APPROVED,
        PlatformPayment.currency == currency.value,
        PlatformPayment.service_kind.is_not(None),
        PlatformPayment.created_at >= period.starts_at,
        PlatformPayment.created_at < period.ends_before,
    )
    for service_kind, amount in (await db.execute(query)).all():
        revenue[service_kind] = revenue.get(service_kind, ZERO) + Decimal(amount)

    expenses = {
        entry["service_kind"]: entry["amount"]
        for entry in await ledger_service.earnings_by_service_kind(db, currency, period)
    }

    rows = []
    for service_kind in sorted(set(revenue) | set(expenses)):
        kind_revenue = revenue.get(service_kind, ZERO)
        kind_expenses = expenses.get(service_kind, ZERO)
        profit = kind_revenue - kind_expenses
        rows.append(
            {
                "service_kind": service_kind,
                "name": service_name(service_kind),
                "revenue": kind_revenue,
                "expenses": kind_expenses,
                "profit": profit,
                "margin": margin(profit, kind_revenue),
            }
        )
    return rows


async def finances(db: AsyncSession, month: int, year: int, currency=None) -> dict:
    period = Period.for_month(month, year)
    summary = await platform_summary(db, month, year)
    blocks = {
        Currency.ARS: summary["mercadopago"],
        Currency.USD: summary["paypal"]["usd"],
        Currency.EUR: summary["paypal"]["eur"],
    }

    by_currency = {
        cur.value: {
            "total": blocks[cur]["revenue"],
            "expenses": blocks[cur]["expenses"],
            "provider": platform_for(cur).value,
            "payments_count": blocks[cur]["payments_count"],
        }
        for cur in CURRENCY_ORDER
    }

    data = {
        "month": period.start.month,
        "year": period.start.year,
        "currency": "ALL",
        "platform_summary": summary,
        "by_currency": by_currency,
        "profit_by_service": [],
        # Totals only make sense inside one currency
        "total_revenue": None,
        "total_expenses": None,
    }
    if currency is not None:
        currency = to_currency(currency)
        data["currency"] = currency.value
        data["profit_by_service"] = await _profit_by_service(db, period, currency)
        data["total_revenue"] = blocks[currency]["revenue"]
        data["total_expenses"] = blocks[currency]["expenses"]
    return data


async def overview(db: AsyncSession, month: int, year: int, currency=Currency.USD) -> dict:
    period = Period.for_month(month, year)
    currency = to_currency(currency)

    gross_revenue, _ = await _revenue(db, period, currency)
    expenses = await ledger_service.accrued_expenses(db, currency, period)
    net_profit = gross_revenue - expenses
    return {
        "month": period.start.month,
        "year": period.start.year,
        "currency": currency.value,
        "gross_revenue": gross_revenue,
        "tarotista_expenses": expenses,
        "net_profit": net_profit,
        "profit_margin": margin(net_profit, gross_revenue),
        "consultations_count": await ledger_service.count_sessions(db, currency, period),
        "top_tarotistas": await ledger_service.top_readers(db, currency, period, limit=5),
    }


def normalize_export_status(status: Optional[str]) -> Optional[str]:
    if status in (None, "", "all"):
        return None
    status = EXPORT_STATUS_ALIASES.get(status, status)
    return PAYOUT_STATES.validate_state(status)


async def export_payouts(db: AsyncSession, month: int, year: int, status: Optional[str] = "all") -> bytes:
    """CSV of payouts overlapping the month, ordered by processed_at then id.

    Same database state, same bytes.
    """
    period = Period.for_month(month, year)
    status = normalize_export_status(status)

    query = (
        select(Payout, Reader)
        .join(Reader, Reader.id == Payout.reader_id)
        .where(or_(Payout.period_start.is_(None), Payout.period_start <= period.end))
        .order_by(Payout.processed_at, Payout.id)
    )
    if status is not None:
        query = query.where(Payout.status == status)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for payout, reader in (await db.execute(query)).all():
        if not period.overlaps(payout.period_start, effective_end(payout)):
            continue
        writer.writerow(
            [
                payout.id,
                payout.reader_id,
                reader.display_name,
                payout.platform,
                payout.currency,
                f"{Decimal(payout.amount):.2f}",
                payout.sessions_count,
                payout.period_start.isoformat() if payout.period_start else "",
                payout.period_end.isoformat() if payout.period_end else "",
                payout.status,
                payout.processed_at.isoformat(timespec="seconds"),
                payout.processed_by,
            ]
        )
    return buffer.getvalue().encode("utf-8")
