"""Read-side aggregation of completed consultations into reader earnings.

Amounts are summed as ``Decimal`` in Python, never with SQL ``SUM``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payout_server.domain.currency import to_currency
from payout_server.domain.period import Period
from payout_server.domain.service_kinds import service_name
from payout_server.models.registry import ConsultationSession, Reader

ZERO = Decimal("0")


@dataclass
class Earnings:
    amount: Decimal = ZERO
    lines: List[Tuple[int, Decimal]] = field(default_factory=list)
    first_completed_at: Optional[datetime] = None
    last_completed_at: Optional[datetime] = None

    @property
    def sessions(self) -> List[int]:
        return [session_id for session_id, _ in self.lines]

    @property
    def sessions_count(self) -> int:
        return len(self.lines)

    def add(self, session_id: int, net_price, completed_at: datetime) -> None:
        net = Decimal(net_price)
        self.amount += net
        self.lines.append((session_id, net))
        if self.first_completed_at is None:
            self.first_completed_at = completed_at
        self.last_completed_at = completed_at


@dataclass
class ReaderActivity:
    reader_id: int
    display_name: str
    avatar_url: Optional[str]
    currency: str
    amount: Decimal = ZERO
    sessions_count: int = 0
    unpaid_amount: Decimal = ZERO
    unpaid_sessions_count: int = 0


def _in_period(query, period: Optional[Period]):
    if period is None:
        return query
    return query.where(
        ConsultationSession.completed_at >= period.starts_at,
        ConsultationSession.completed_at < period.ends_before,
    )


async def unpaid_earnings(
    db: AsyncSession, reader_id: int, currency, period: Optional[Period] = None
) -> Earnings:
    """Sessions of ``reader_id`` in ``currency`` not claimed by any live payout.

    ``period=None`` means every unpaid session to date.
    """
    currency = to_currency(currency)
    query = (
        select(
            ConsultationSession.id,
            ConsultationSession.net_price,
            ConsultationSession.completed_at,
        )
        .where(
            ConsultationSession.reader_id == reader_id,
            ConsultationSession.currency == currency.value,
            ConsultationSession.payout_id.is_(None),
        )
        .order_by(ConsultationSession.completed_at, ConsultationSession.id)
    )
    rows = (await db.execute(_in_period(query, period))).all()

    earnings = Earnings()
    for session_id, net_price, completed_at in rows:
        earnings.add(session_id, net_price, completed_at)
    return earnings


async def unpaid_by_reader(
    db: AsyncSession, currency=None
) -> Dict[Tuple[int, str], Tuple[Reader, Earnings]]:
    """All unpaid earnings to date, keyed by (reader_id, currency)."""
    query = (
        select(ConsultationSession, Reader)
        .join(Reader, Reader.id == ConsultationSession.reader_id)
        .where(ConsultationSession.payout_id.is_(None))
        .order_by(ConsultationSession.completed_at, ConsultationSession.id)
    )
    if currency is not None:
        query = query.where(ConsultationSession.currency == to_currency(currency).value)

    result: Dict[Tuple[int, str], Tuple[Reader, Earnings]] = {}
    for session, reader in (await db.execute(query)).all():
        key = (reader.id, session.currency)
        if key not in result:
            result[key] = (reader, Earnings())
        result[key][1].add(session.id, session.net_price, session.completed_at)
    return result


async def reader_activity(
    db: AsyncSession, period: Optional[Period], currency=None
) -> List[ReaderActivity]:
    """Per (reader, currency) totals for sessions completed within ``period``.

    Includes claimed sessions, so a reader who was already paid still shows up.
    """
    query = _in_period(
        select(ConsultationSession, Reader).join(
            Reader, Reader.id == ConsultationSession.reader_id
        ),
        period,
    )
    if currency is not None:
        query = query.where(ConsultationSession.currency == to_currency(currency).value)

    rows: Dict[Tuple[int, str], ReaderActivity] = {}
    for session, reader in (await db.execute(query)).all():
        key = (reader.id, session.currency)
        activity = rows.get(key)
        if activity is None:
            activity = rows[key] = ReaderActivity(
                reader_id=reader.id,
                display_name=reader.display_name,
                avatar_url=reader.avatar_url,
                currency=session.currency,
            )
        net = Decimal(session.net_price)
        activity.amount += net
        activity.sessions_count += 1
        if session.payout_id is None:
            activity.unpaid_amount += net
            activity.unpaid_sessions_count += 1
    return [rows[key] for key in sorted(rows)]


async def earnings_by_service_kind(
    db: AsyncSession, currency, period: Optional[Period], reader_id: Optional[int] = None
) -> List[dict]:
    currency = to_currency(currency)
    query = _in_period(
        select(ConsultationSession.service_kind, ConsultationSession.net_price).where(
            ConsultationSession.currency == currency.value
        ),
        period,
    )
    if reader_id is not None:
        query = query.where(ConsultationSession.reader_id == reader_id)

    totals: Dict[str, dict] = {}
    for service_kind, net_price in (await db.execute(query)).all():
        entry = totals.setdefault(
            service_kind,
            {
                "service_kind": service_kind,
                "name": service_name(service_kind),
                "amount": ZERO,
                "sessions_count": 0,
            },
        )
        entry["amount"] += Decimal(net_price)
        entry["sessions_count"] += 1
    return [totals[kind] for kind in sorted(totals)]


async def accrued_expenses(db: AsyncSession, currency, period: Optional[Period]) -> Decimal:
    """Reader earnings generated in ``period``, paid or not."""
    currency = to_currency(currency)
    query = _in_period(
        select(ConsultationSession.net_price).where(
            ConsultationSession.currency == currency.value
        ),
        period,
    )
    return sum((Decimal(v) for v in (await db.execute(query)).scalars()), ZERO)


async def count_sessions(db: AsyncSession, currency, period: Optional[Period]) -> int:
    currency = to_currency(currency)
    query = _in_period(
        select(ConsultationSession.id).where(
            ConsultationSession.currency == currency.value
        ),
        period,
    )
    return len((await db.execute(query)).scalars().all())


async def top_readers(
    db: AsyncSession, currency, period: Optional[Period], limit: int = 5
) -> List[dict]:
    """Highest earners; ties go to more sessions, then to the lower reader id."""
    activity = await reader_activity(db, period, currency)
    ranked = sorted(activity, key=lambda a: (-a.amount, -a.sessions_count, a.reader_id))
    return [
        {
            "reader_id": a.reader_id,
            "display_name": a.display_name,
            "amount": a.amount,
            "sessions_count": a.sessions_count,
        }
        for a in ranked[:limit]
    ]


async def reader_sessions(db: AsyncSession, reader_id: int, currency) -> List[ConsultationSession]:
    """Every session of the reader in ``currency``, newest first."""
    currency = to_currency(currency)
    result = await db.execute(
        select(ConsultationSession)
        .where(
            ConsultationSession.reader_id == reader_id,
            ConsultationSession.currency == currency.value,
        )
        .order_by(ConsultationSession.completed_at.desc(), ConsultationSession.id.desc())
    )
    return result.scalars().all()
