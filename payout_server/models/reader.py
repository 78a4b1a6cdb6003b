from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from payout_server.db.base_class import Base


class Reader(Base):
    """A tarot reader who earns payouts. Owned by the profiles service; mirrored here."""

    __tablename__ = "readers"

    id = Column(Integer, primary_key=True, index=True)
    display_name = Column(String(120), nullable=False)
    avatar_url = Column(String, nullable=True)
    country = Column(String(64), nullable=True)
    # ARS -> mercadopago, USD/EUR -> paypal; affects only future payouts
    preferred_currency = Column(String(3), nullable=False, default="USD")
    status = Column(String(16), nullable=False, default="active", index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    sessions = relationship("ConsultationSession", back_populates="reader")
    payouts = relationship("Payout", back_populates="reader")
