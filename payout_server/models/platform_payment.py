# Gross revenue book: what clients paid the platform through each processor.
from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Numeric, Index
from payout_server.db.base_class import Base


class PlatformPayment(Base):
    __tablename__ = "platform_payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)

    # mercadopago | paypal
    provider = Column(String(32), nullable=False)
    provider_ref = Column(String(128), nullable=True, unique=True)

    # created | pending | approved | rejected | cancelled | refunded
    status = Column(String(16), nullable=False)

    currency = Column(String(3), nullable=False)
    amount_money = Column(Numeric(12, 2), nullable=False)
    # Service the purchased pack is for; NULL for mixed/legacy packs
    service_kind = Column(String(64), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_platform_payments_provider_currency_created", "provider", "currency", "created_at"),
    )
