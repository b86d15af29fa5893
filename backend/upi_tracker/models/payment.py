"""
Payment Record Model — One UPI payment request and its lifecycle status.
"""
import enum

from sqlalchemy import Column, String, Text, DateTime, JSON, Numeric

from upi_tracker.config import get_settings
from upi_tracker.database import Base
from upi_tracker.utils.clock import utcnow

settings = get_settings()


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    EXPIRED = "EXPIRED"

    @property
    def is_terminal(self) -> bool:
        return self is not PaymentStatus.PENDING


class Payment(Base):
    __tablename__ = settings.PAYMENTS_TABLE

    id = Column(String(36), primary_key=True, index=True)
    transaction_ref = Column(String(36), unique=True, nullable=False)

    upi_id = Column(String(128), nullable=False)          # e.g. merchant@okbank
    amount = Column(Numeric(12, 2), nullable=False)       # Currency units, not paisa
    payee_name = Column(String(128), nullable=True)       # Payer name as entered by the requester
    note = Column(String(256), nullable=True)

    # Status tracking: PENDING → SUCCESS | FAILED | EXPIRED
    status = Column(String(16), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    failure_reason = Column(Text, nullable=True)

    qr_data = Column(Text, nullable=False)                 # data:image/png;base64,...
    # "metadata" is reserved on declarative classes
    payment_metadata = Column("metadata", JSON, default=dict)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow)
    completed_at = Column(DateTime, nullable=True)
