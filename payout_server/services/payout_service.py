"""Payout engine: claims unpaid sessions into payouts and drives their status."""

import asyncio
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from payout_server.domain.context import OperatorContext
from payout_server.domain.currency import (
    CURRENCY_BY_PLATFORM_KEY,
    PLATFORM_KEYS,
    platform_for,
    platform_key,
    to_currency,
)
from payout_server.domain.period import Period
from payout_server.domain.state_machine import (
    PAYOUT_CANCELLED,
    PAYOUT_COMPLETED,
    PAYOUT_PENDING,
    PAYOUT_STATES,
    RELEASING_PAYOUT_STATUSES,
    CLAIMING_PAYOUT_STATUSES,
)
from payout_server.errors import (
    ConflictError,
    NoPendingEarnings,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from payout_server.models.registry import ConsultationSession, Payout, PayoutItem, Reader
from payout_server.services import ledger_service
from payout_server.services.pagination import normalize_page, pagination_meta
from payout_server.services.receipt_storage import ReceiptStorage

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
PLATFORM_FILTERS = ("all",) + tuple(PLATFORM_KEYS.values())


def currency_for_platform_filter(platform: Optional[str]):
    if platform in (None, "", "all"):
        return None
    if platform not in CURRENCY_BY_PLATFORM_KEY:
        raise ValidationError(f"Plataforma desconocida: {platform!r}")
    return CURRENCY_BY_PLATFORM_KEY[platform]


def effective_end(payout: Payout) -> date:
    """Open-ended payouts cover sessions up to the day they were processed."""
    return payout.period_end or payout.processed_at.date()


def serialize_payout(payout: Payout, reader: Optional[Reader] = None) -> dict:
    return {
        "id": payout.id,
        "reader_id": payout.reader_id,
        "display_name": reader.display_name if reader else None,
        "amount": payout.amount,
        "currency": payout.currency,
        "platform": payout.platform,
        "sessions_count": payout.sessions_count,
        "period_start": payout.period_start,
        "period_end": payout.period_end,
        "status": payout.status,
        "processed_by": payout.processed_by,
        "processed_at": payout.processed_at,
        "paid_at": payout.paid_at,
        "payment_method": payout.payment_method,
        "transaction_reference": payout.transaction_reference,
        "receipt_url": payout.receipt_url,
        "notes": payout.notes,
    }


async def get_reader(db: AsyncSession, reader_id: int) -> Reader:
    reader = await db.get(Reader, reader_id)
    if reader is None:
        raise NotFoundError(f"Tarotista {reader_id} no encontrado")
    return reader


async def get_payout(db: AsyncSession, payout_id: int, for_update: bool = False) -> Payout:
    query = select(Payout).where(Payout.id == payout_id)
    if for_update:
        query = query.with_for_update()
    payout = (await db.execute(query)).scalars().first()
    if payout is None:
        raise NotFoundError(f"Pago {payout_id} no encontrado")
    return payout


async def process_payout(
    db: AsyncSession,
    operator: OperatorContext,
    reader_id: int,
    currency=None,
    period: Optional[Period] = None,
) -> Payout:
    """Create a pending payout covering every unclaimed session of the reader.

    The claim is a single conditional UPDATE; if another request claimed any of
    the sessions first, nothing is written and ConflictError is raised.
    """
    reader = await get_reader(db, reader_id)
    currency = to_currency(currency or reader.preferred_currency)

    earnings = await ledger_service.unpaid_earnings(db, reader_id, currency, period)
    if earnings.amount <= ZERO:
        raise NoPendingEarnings(reader_id, currency.value)

    payout = Payout(
        reader_id=reader_id,
        currency=currency.value,
        platform=platform_for(currency).value,
        amount=earnings.amount,
        sessions_count=earnings.sessions_count,
        period_start=period.start if period else earnings.first_completed_at.date(),
        period_end=period.end if period else None,
        status=PAYOUT_PENDING,
        processed_by=operator.identity,
        processed_at=datetime.utcnow(),
    )

    try:
        db.add(payout)
        await db.flush()

        claimed = await db.execute(
            update(ConsultationSession)
            .where(
                ConsultationSession.id.in_(earnings.sessions),
                ConsultationSession.payout_id.is_(None),
            )
            .values(payout_id=payout.id)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != earnings.sessions_count:
            await db.rollback()
            logger.warning(
                "Claim conflict for reader %s %s: expected %s sessions, claimed %s",
                reader_id,
                currency.value,
                earnings.sessions_count,
                claimed.rowcount,
            )
            raise ConflictError(
                "Otro operador procesó estas consultas al mismo tiempo; "
                "actualizá los datos antes de reintentar"
            )

        db.add_all(
            [
                PayoutItem(
                    payout_id=payout.id,
                    session_id=session_id,
                    amount=amount,
                    currency=currency.value,
                )
                for session_id, amount in earnings.lines
            ]
        )
        await db.commit()
    except DBAPIError as exc:
        await db.rollback()
        logger.exception("Database error while processing payout for reader %s", reader_id)
        raise UpstreamError("La base de datos no está disponible; reintentar") from exc

    logger.info(
        "Payout %s created by %s: reader=%s %s %s over %s sessions",
        payout.id,
        operator.identity,
        reader_id,
        payout.amount,
        payout.currency,
        payout.sessions_count,
    )
    return payout


async def update_payout_status(
    db: AsyncSession,
    operator: OperatorContext,
    payout_id: int,
    new_status: Optional[str] = None,
    notes: Optional[str] = None,
    payment_date: Optional[datetime] = None,
    payment_method: Optional[str] = None,
    transaction_reference: Optional[str] = None,
) -> Tuple[Payout, str]:
    """Move a payout along its state machine; returns (payout, previous status).

    Failed and cancelled payouts release their sessions back to the unpaid pool.
    Calling without a status change only records payment details.

    The write is conditional on the status read here, so of two operators
    racing on the same payout only the first one lands; the other gets
    ConflictError and nothing of theirs is written.
    """
    payout = await get_payout(db, payout_id, for_update=True)
    previous = payout.status
    changing = new_status is not None and new_status != previous

    if changing:
        PAYOUT_STATES.assert_transition(previous, new_status)
    elif previous not in CLAIMING_PAYOUT_STATUSES:
        raise ValidationError(f"El pago {payout_id} está {previous} y no admite cambios")

    values = {"updated_at": datetime.utcnow()}
    if changing:
        values["status"] = new_status
        if new_status == PAYOUT_COMPLETED:
            values["paid_at"] = payment_date or datetime.utcnow()
    elif payment_date is not None and previous == PAYOUT_COMPLETED:
        values["paid_at"] = payment_date
    if notes is not None:
        values["notes"] = notes
    if payment_method is not None:
        values["payment_method"] = payment_method
    if transaction_reference is not None:
        values["transaction_reference"] = transaction_reference

    try:
        guarded = await db.execute(
            update(Payout)
            .where(Payout.id == payout_id, Payout.status == previous)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if guarded.rowcount != 1:
            await db.rollback()
            logger.warning(
                "Status conflict on payout %s: %s expected %s",
                payout_id,
                operator.identity,
                previous,
            )
            raise ConflictError(
                f"El pago {payout_id} cambió de estado mientras se editaba; "
                "actualizá los datos antes de reintentar"
            )

        if changing and new_status in RELEASING_PAYOUT_STATUSES:
            released = await db.execute(
                update(ConsultationSession)
                .where(ConsultationSession.payout_id == payout_id)
                .values(payout_id=None)
                .execution_options(synchronize_session=False)
            )
            logger.info(
                "Payout %s %s by %s; released %s sessions",
                payout_id,
                new_status,
                operator.identity,
                released.rowcount,
            )
        elif changing:
            logger.info("Payout %s %s by %s", payout_id, new_status, operator.identity)

        await db.commit()
    except DBAPIError as exc:
        await db.rollback()
        logger.exception("Database error while updating payout %s", payout_id)
        raise UpstreamError("La base de datos no está disponible; reintentar") from exc

    await db.refresh(payout)
    return payout, previous


async def attach_receipt(
    db: AsyncSession,
    payout_id: int,
    filename: str,
    content: bytes,
    storage: Optional[ReceiptStorage] = None,
) -> str:
    """Store a transfer receipt; a newer upload replaces the previous URL.

    The file is removed again when the database write does not go through.
    """
    payout = await get_payout(db, payout_id, for_update=True)
    if payout.status == PAYOUT_CANCELLED:
        raise ValidationError("No se puede adjuntar comprobante a un pago cancelado")

    storage = storage or ReceiptStorage()
    receipt_url = await asyncio.to_thread(storage.save, payout.id, filename, content)
    previous_url = payout.receipt_url

    try:
        attached = await db.execute(
            update(Payout)
            .where(Payout.id == payout_id, Payout.status != PAYOUT_CANCELLED)
            .values(receipt_url=receipt_url, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        if attached.rowcount != 1:
            await db.rollback()
            await asyncio.to_thread(storage.delete, receipt_url)
            raise ConflictError(f"El pago {payout_id} fue cancelado mientras se subía el comprobante")
        await db.commit()
    except DBAPIError as exc:
        await db.rollback()
        await asyncio.to_thread(storage.delete, receipt_url)
        logger.exception("Database error while attaching receipt to payout %s", payout_id)
        raise UpstreamError("La base de datos no está disponible; reintentar") from exc

    if previous_url:
        logger.info("Replaced receipt of payout %s (%s)", payout_id, previous_url)
    return receipt_url


async def _live_payouts_overlapping(
    db: AsyncSession, period: Period, currency=None
) -> Dict[Tuple[int, str], Payout]:
    """Latest non-cancelled payout per (reader, currency) overlapping ``period``."""
    query = select(Payout).where(
        Payout.status != PAYOUT_CANCELLED,
        or_(Payout.period_start.is_(None), Payout.period_start <= period.end),
    )
    if currency is not None:
        query = query.where(Payout.currency == to_currency(currency).value)

    latest: Dict[Tuple[int, str], Payout] = {}
    for payout in (await db.execute(query)).scalars():
        if not period.overlaps(payout.period_start, effective_end(payout)):
            continue
        key = (payout.reader_id, payout.currency)
        current = latest.get(key)
        if current is None or (payout.processed_at, payout.id) > (current.processed_at, current.id):
            latest[key] = payout
    return latest


def _platform_block(currency) -> dict:
    return {
        "currency": to_currency(currency).value,
        "payouts": [],
        "total_amount": ZERO,
        "pending_count": 0,
        "processed_count": 0,
    }


async def monthly_payout_view(
    db: AsyncSession, month: int, year: int, platform: Optional[str] = "all"
) -> dict:
    """Readers with activity in the month joined with their relevant payout.

    Read-only. ``pending_count`` counts rows still waiting to be processed,
    ``processed_count`` rows that already have a payout.
    """
    period = Period.for_month(month, year)
    currency = currency_for_platform_filter(platform)

    activity = await ledger_service.reader_activity(db, period, currency)
    payouts = await _live_payouts_overlapping(db, period, currency)

    by_platform = {key: _platform_block(cur) for cur, key in PLATFORM_KEYS.items()}
    rows: List[dict] = []
    for entry in activity:
        payout = payouts.get((entry.reader_id, entry.currency))
        row = {
            "reader_id": entry.reader_id,
            "display_name": entry.display_name,
            "avatar_url": entry.avatar_url,
            "sessions_count": entry.sessions_count,
            "amount": entry.amount,
            "unpaid_amount": entry.unpaid_amount,
            "unpaid_sessions_count": entry.unpaid_sessions_count,
            "currency": entry.currency,
            "platform": platform_for(entry.currency).value,
            "period_start": period.start,
            "period_end": period.end,
            "payout_id": payout.id if payout else None,
            "payout_status": payout.status if payout else None,
            "payout_amount": payout.amount if payout else None,
            "processed_at": payout.processed_at if payout else None,
            "receipt_url": payout.receipt_url if payout else None,
        }
        rows.append(row)

        block = by_platform[platform_key(entry.currency)]
        block["payouts"].append(row)
        block["total_amount"] += entry.amount
        if payout is None:
            block["pending_count"] += 1
        else:
            block["processed_count"] += 1

    return {
        "month": period.start.month,
        "year": period.start.year,
        "data": rows,
        "by_platform": by_platform,
        "summary": {
            "total_tarotistas": len({row["reader_id"] for row in rows}),
            "pending_count": sum(1 for row in rows if row["payout_id"] is None),
            "processed_count": sum(1 for row in rows if row["payout_id"] is not None),
        },
    }


async def pending_payouts(db: AsyncSession, currency=None) -> dict:
    """Everything still unpaid to date, one row per (reader, currency)."""
    unpaid = await ledger_service.unpaid_by_reader(db, currency)

    rows = []
    totals: Dict[str, Decimal] = {}
    for (reader_id, row_currency), (reader, earnings) in unpaid.items():
        rows.append(
            {
                "reader_id": reader_id,
                "display_name": reader.display_name,
                "avatar_url": reader.avatar_url,
                "currency": row_currency,
                "platform": platform_for(row_currency).value,
                "amount": earnings.amount,
                "sessions_count": earnings.sessions_count,
                "period_start": earnings.first_completed_at.date(),
                "period_end": earnings.last_completed_at.date(),
            }
        )
        totals[row_currency] = totals.get(row_currency, ZERO) + earnings.amount
    rows.sort(key=lambda r: (r["currency"], -r["amount"], r["reader_id"]))

    if currency is not None:
        total_pending = totals.get(to_currency(currency).value, ZERO)
    else:
        # Different currencies don't add up; callers read by_currency instead.
        total_pending = None
    return {
        "data": rows,
        "total_pending": total_pending,
        "by_currency": totals,
        "count": len(rows),
    }


async def payout_history(
    db: AsyncSession,
    page: Optional[int] = 1,
    limit: Optional[int] = None,
    platform: Optional[str] = "all",
    reader_id: Optional[int] = None,
    currency=None,
) -> dict:
    """Newest payouts first. ``by_platform`` sums non-cancelled, non-failed payouts."""
    page, limit = normalize_page(page, limit)
    platform_currency = currency_for_platform_filter(platform)
    if currency is not None and platform_currency is not None:
        if to_currency(currency) != platform_currency:
            raise ValidationError("La moneda no corresponde a la plataforma elegida")
    currency = platform_currency or (to_currency(currency) if currency else None)

    filters = []
    if reader_id is not None:
        filters.append(Payout.reader_id == reader_id)
    if currency is not None:
        filters.append(Payout.currency == currency.value)

    total = (
        await db.execute(select(func.count(Payout.id)).where(*filters))
    ).scalar() or 0

    result = await db.execute(
        select(Payout, Reader)
        .join(Reader, Reader.id == Payout.reader_id)
        .where(*filters)
        .order_by(Payout.processed_at.desc(), Payout.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    data = [serialize_payout(payout, reader) for payout, reader in result.all()]

    by_platform = {key: {"total": ZERO, "count": 0} for key in PLATFORM_KEYS.values()}
    totals = await db.execute(
        select(Payout.currency, Payout.amount).where(
            *filters, Payout.status.in_(CLAIMING_PAYOUT_STATUSES)
        )
    )
    for row_currency, amount in totals.all():
        bucket = by_platform[platform_key(row_currency)]
        bucket["total"] += Decimal(amount)
        bucket["count"] += 1

    return {
        "data": data,
        "by_platform": by_platform,
        "pagination": pagination_meta(page, limit, total),
    }
