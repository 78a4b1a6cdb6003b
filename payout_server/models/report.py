from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Text
from payout_server.db.base_class import Base


class Report(Base):
    """Moderation report filed by one account against another."""

    __tablename__ = "reports"

    id = Column(Integer, primary_key=True, index=True)
    reporter_id = Column(Integer, nullable=False, index=True)
    reported_id = Column(Integer, nullable=False, index=True)
    thread_id = Column(String(64), nullable=True)
    reason = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(16), nullable=False, default="pending", index=True)
    reviewed_by = Column(String(255), nullable=True)
    reviewed_at = Column(DateTime, nullable=True)
    resolution_notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
