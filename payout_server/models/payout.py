from datetime import datetime
from sqlalchemy import Column, Integer, String, Date, DateTime, Numeric, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
from payout_server.db.base_class import Base


class Payout(Base):
    """One payment to one reader for one (currency, period).

    Rows are never deleted; the status only moves along PAYOUT_STATES edges.
    """

    __tablename__ = "payouts"

    id = Column(Integer, primary_key=True, index=True)
    reader_id = Column(Integer, ForeignKey("readers.id"), nullable=False, index=True)
    currency = Column(String(3), nullable=False)
    # Platform at processing time; later currency changes on the reader don't touch it
    platform = Column(String(32), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    sessions_count = Column(Integer, nullable=False, default=0)

    period_start = Column(Date, nullable=True)
    # NULL means "all unpaid sessions up to processed_at"
    period_end = Column(Date, nullable=True)

    status = Column(String(16), nullable=False, default="pending", index=True)
    processed_by = Column(String(255), nullable=False)
    processed_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    paid_at = Column(DateTime, nullable=True)
    payment_method = Column(String(64), nullable=True)
    transaction_reference = Column(String(255), nullable=True)
    receipt_url = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reader = relationship("Reader", back_populates="payouts")
    items = relationship("PayoutItem", back_populates="payout", order_by="PayoutItem.session_id")
    claimed_sessions = relationship("ConsultationSession", back_populates="payout")

    __table_args__ = (
        Index("ix_payouts_reader_currency_status", "reader_id", "currency", "status"),
    )


class PayoutItem(Base):
    """Audit line: which session a payout covered and for how much.

    Kept after the payout is cancelled or failed, when the claim itself is released.
    """

    __tablename__ = "payout_items"

    id = Column(Integer, primary_key=True, index=True)
    payout_id = Column(Integer, ForeignKey("payouts.id"), nullable=False, index=True)
    session_id = Column(Integer, ForeignKey("consultation_sessions.id"), nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    currency = Column(String(3), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    payout = relationship("Payout", back_populates="items")
