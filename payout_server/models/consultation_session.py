from sqlalchemy import Column, Integer, String, DateTime, Numeric, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from payout_server.db.base_class import Base


class ConsultationSession(Base):
    __tablename__ = "consultation_sessions"

    id = Column(Integer, primary_key=True, index=True)
    reader_id = Column(Integer, ForeignKey("readers.id"), nullable=False)
    user_id = Column(Integer, nullable=False)
    service_kind = Column(String(64), nullable=False)
    currency = Column(String(3), nullable=False)
    # Already net of the platform fee
    net_price = Column(Numeric(12, 2), nullable=False)
    completed_at = Column(DateTime, nullable=False)

    # Claim: set while a pending/completed payout covers this session
    payout_id = Column(Integer, ForeignKey("payouts.id"), nullable=True, index=True)

    reader = relationship("Reader", back_populates="sessions")
    payout = relationship("Payout", back_populates="claimed_sessions")

    __table_args__ = (
        CheckConstraint("net_price >= 0", name="ck_consultation_sessions_net_price"),
        Index(
            "ix_consultation_sessions_reader_currency_completed",
            "reader_id",
            "currency",
            "completed_at",
        ),
    )
