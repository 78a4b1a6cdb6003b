"""Reader listing, per-reader ledger detail and the two settings operators may change."""

import logging
from decimal import Decimal
from typing import Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payout_server.domain.currency import platform_for, to_currency
from payout_server.domain.service_kinds import service_name
from payout_server.errors import ValidationError
from payout_server.models.registry import Reader
from payout_server.services import ledger_service
from payout_server.services.pagination import normalize_page, pagination_meta
from payout_server.services.payout_service import get_reader

logger = logging.getLogger(__name__)

READER_STATUSES = ("active", "inactive")
RECENT_CONSULTATIONS = 10
MONTHLY_STATS_MONTHS = 6
ZERO = Decimal("0")


async def list_readers(
    db: AsyncSession,
    search: Optional[str] = None,
    status: Optional[str] = None,
    page: Optional[int] = 1,
    limit: Optional[int] = None,
) -> dict:
    page, limit = normalize_page(page, limit)
    filters = []
    if search:
        filters.append(Reader.display_name.ilike(f"%{search}%"))
    if status not in (None, "", "all"):
        if status not in READER_STATUSES:
            raise ValidationError(f"Estado de tarotista desconocido: {status!r}")
        filters.append(Reader.status == status)

    total = (await db.execute(select(func.count(Reader.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Reader)
        .where(*filters)
        .order_by(Reader.display_name, Reader.id)
        .offset((page - 1) * limit)
        .limit(limit)
    )

    data = []
    for reader in result.scalars().all():
        pending = await ledger_service.unpaid_earnings(db, reader.id, reader.preferred_currency)
        data.append(
            {
                "id": reader.id,
                "display_name": reader.display_name,
                "avatar_url": reader.avatar_url,
                "country": reader.country,
                "is_active": reader.status == "active",
                "status": reader.status,
                "preferred_currency": reader.preferred_currency,
                "platform": platform_for(reader.preferred_currency).value,
                "pending_payout": pending.amount,
                "created_at": reader.created_at,
            }
        )
    return {"data": data, "pagination": pagination_meta(page, limit, total)}


async def reader_detail(db: AsyncSession, reader_id: int, currency=None) -> dict:
    """Ledger breakdown of one reader in one currency (the preferred one by default)."""
    reader = await get_reader(db, reader_id)
    currency = to_currency(currency or reader.preferred_currency)
    sessions = await ledger_service.reader_sessions(db, reader_id, currency)

    total_earned = ZERO
    pending_payout = ZERO
    months: Dict[str, dict] = {}
    for session in sessions:
        net = Decimal(session.net_price)
        total_earned += net
        if session.payout_id is None:
            pending_payout += net
        key = session.completed_at.strftime("%Y-%m")
        stats = months.setdefault(key, {"month": key, "consultations": 0, "earnings": ZERO})
        stats["consultations"] += 1
        stats["earnings"] += net

    return {
        "id": reader.id,
        "display_name": reader.display_name,
        "avatar_url": reader.avatar_url,
        "country": reader.country,
        "status": reader.status,
        "preferred_currency": reader.preferred_currency,
        "platform": platform_for(reader.preferred_currency).value,
        "created_at": reader.created_at,
        "currency": currency.value,
        "total_earned": total_earned,
        "pending_payout": pending_payout,
        "consultations_count": len(sessions),
        "last_consultation_at": sessions[0].completed_at if sessions else None,
        "recent_consultations": [
            {
                "id": session.id,
                "service_kind": session.service_kind,
                "name": service_name(session.service_kind),
                "completed_at": session.completed_at,
                "net_price": session.net_price,
                "currency": session.currency,
                "paid": session.payout_id is not None,
            }
            for session in sessions[:RECENT_CONSULTATIONS]
        ],
        "monthly_stats": [months[key] for key in sorted(months)[-MONTHLY_STATS_MONTHS:]],
        "earnings_by_service": await ledger_service.earnings_by_service_kind(
            db, currency, None, reader_id=reader_id
        ),
    }


async def update_reader_currency(db: AsyncSession, reader_id: int, currency) -> Reader:
    """Switch the reader's payout currency; existing payouts keep their platform."""
    reader = await get_reader(db, reader_id)
    currency = to_currency(currency)
    previous = reader.preferred_currency
    reader.preferred_currency = currency.value
    await db.commit()
    logger.info("Reader %s currency %s -> %s", reader_id, previous, currency.value)
    return reader


async def update_reader_status(db: AsyncSession, reader_id: int, status: str) -> Reader:
    if status not in READER_STATUSES:
        raise ValidationError(f"Estado de tarotista desconocido: {status!r}")
    reader = await get_reader(db, reader_id)
    reader.status = status
    await db.commit()
    return reader
