"""Populate the database with demo readers, consultations and payments."""

import asyncio
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import delete

from payout_server.db.session import DATABASE_URL, SessionLocal, engine
from payout_server.models.registry import (
    Base,
    ConsultationSession,
    Payout,
    PayoutItem,
    PlatformPayment,
    Reader,
    Report,
)

NET_PRICES = {
    "flash_1carta": {"ARS": Decimal("1500"), "USD": Decimal("2.50"), "EUR": Decimal("2.30")},
    "privada_3cartas": {"ARS": Decimal("6000"), "USD": Decimal("10.00"), "EUR": Decimal("9.00")},
    "extensa_5cartas": {"ARS": Decimal("9000"), "USD": Decimal("15.00"), "EUR": Decimal("14.00")},
    "carta_astral": {"ARS": Decimal("12000"), "USD": Decimal("20.00"), "EUR": Decimal("18.50")},
}


async def main() -> None:
    print(f"Using database: {DATABASE_URL}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as session:
        print("Clearing tables...")
        for model in (PayoutItem, ConsultationSession, Payout, PlatformPayment, Report, Reader):
            await session.execute(delete(model))

        readers = [
            Reader(display_name="Luna Arcana", preferred_currency="ARS", country="AR"),
            Reader(display_name="Sol Tarot", preferred_currency="USD", country="MX"),
            Reader(display_name="Estrella Mística", preferred_currency="EUR", country="ES"),
        ]
        session.add_all(readers)
        await session.flush()

        now = datetime.utcnow()
        kinds = list(NET_PRICES)
        for index, reader in enumerate(readers):
            for day in range(12):
                kind = kinds[(day + index) % len(kinds)]
                completed_at = now - timedelta(days=day * 3, hours=index)
                session.add(
                    ConsultationSession(
                        reader_id=reader.id,
                        user_id=1000 + day,
                        service_kind=kind,
                        currency=reader.preferred_currency,
                        net_price=NET_PRICES[kind][reader.preferred_currency],
                        completed_at=completed_at,
                    )
                )
                session.add(
                    PlatformPayment(
                        user_id=1000 + day,
                        provider="mercadopago" if reader.preferred_currency == "ARS" else "paypal",
                        provider_ref=f"demo-{reader.id}-{day}",
                        status="approved",
                        currency=reader.preferred_currency,
                        amount_money=NET_PRICES[kind][reader.preferred_currency] * 2,
                        service_kind=kind,
                        created_at=completed_at - timedelta(minutes=30),
                    )
                )

        session.add(
            Report(reporter_id=1001, reported_id=1002, reason="Lenguaje ofensivo")
        )
        await session.commit()
        print("Database seeded.")


if __name__ == "__main__":
    asyncio.run(main())
