import asyncio
import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

sys.path.append(str(Path(__file__).resolve().parents[1]))

from payout_server.domain.context import OperatorContext
from payout_server.models.registry import Base, ConsultationSession, Payout, PlatformPayment

OPERATOR = OperatorContext(identity="ops@example.com")


def setup_test_db(url="sqlite+aiosqlite:///:memory:"):
    engine = create_async_engine(url, connect_args={"check_same_thread": False})
    TestingSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)

    async def init_models():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(init_models())
    return TestingSessionLocal


@pytest.fixture
def SessionLocal():
    return setup_test_db()


def add_all(SessionLocal, *objects):
    async def insert():
        async with SessionLocal() as db:
            db.add_all(objects)
            await db.commit()

    asyncio.run(insert())
    return objects


def run(SessionLocal, func, *args, **kwargs):
    """Run ``func(db, *args, **kwargs)`` in a fresh session."""

    async def call():
        async with SessionLocal() as db:
            return await func(db, *args, **kwargs)

    return asyncio.run(call())


def make_session(reader, net_price, completed_at, currency=None, service_kind="privada_3cartas", user_id=1):
    return ConsultationSession(
        reader_id=reader.id,
        user_id=user_id,
        service_kind=service_kind,
        currency=currency or reader.preferred_currency,
        net_price=Decimal(net_price),
        completed_at=completed_at,
    )


def make_payment(amount, currency, created_at, provider=None, status="approved", service_kind=None, ref=None):
    if provider is None:
        provider = "mercadopago" if currency == "ARS" else "paypal"
    return PlatformPayment(
        user_id=1,
        provider=provider,
        provider_ref=ref,
        status=status,
        currency=currency,
        amount_money=Decimal(amount),
        service_kind=service_kind,
        created_at=created_at,
    )


def march_sessions(reader, currency=None):
    """10 + 15 + 20 inside March 2024, plus one on April 1st."""
    return (
        make_session(reader, "10.00", datetime(2024, 3, 2, 10, 0), currency),
        make_session(reader, "15.00", datetime(2024, 3, 10, 18, 30), currency),
        make_session(reader, "20.00", datetime(2024, 3, 31, 23, 59), currency),
        make_session(reader, "99.00", datetime(2024, 4, 1, 0, 0), currency),
    )


async def all_payouts(db):
    result = await db.execute(select(Payout).order_by(Payout.id))
    return result.scalars().all()


async def claimed_session_ids(db, payout_id):
    result = await db.execute(
        select(ConsultationSession.id)
        .where(ConsultationSession.payout_id == payout_id)
        .order_by(ConsultationSession.id)
    )
    return result.scalars().all()
