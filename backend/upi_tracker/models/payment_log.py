"""
Payment Log Model — Append-only audit trail of payment status changes.
Every transition, including creation, writes exactly one row.
"""
from sqlalchemy import Column, String, Integer, DateTime, Text, ForeignKey

from upi_tracker.config import get_settings
from upi_tracker.database import Base
from upi_tracker.utils.clock import utcnow

settings = get_settings()


class PaymentLog(Base):
    __tablename__ = settings.PAYMENT_LOGS_TABLE

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    payment_id = Column(
        String(36),
        ForeignKey(f"{settings.PAYMENTS_TABLE}.id"),
        nullable=False,
        index=True,
    )

    status = Column(String(16), nullable=False)   # Status the payment moved to
    message = Column(Text, nullable=True)

    logged_at = Column(DateTime, default=utcnow, nullable=False, index=True)
