"""
Payment Store — SQLAlchemy persistence for payments and their status logs.

Each call commits on its own; there are no cross-record transactions.
Pairing a payment update with its log row is the caller's job.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from upi_tracker.exceptions import ConflictError, PersistenceError
from upi_tracker.models.payment import Payment, PaymentStatus
from upi_tracker.models.payment_log import PaymentLog

logger = logging.getLogger(__name__)


class PaymentStore:
    """Repository over the payments and payment_logs tables."""

    def __init__(self, db: Session):
        self.db = db

    def _fail(self, message: str, exc: Exception) -> PersistenceError:
        self.db.rollback()
        logger.error("%s (%s: %s)", message, type(exc).__name__, exc)
        return PersistenceError(message)

    # ── payments ──

    def insert_payment(self, payment: Payment) -> Payment:
        try:
            self.db.add(payment)
            self.db.commit()
            self.db.refresh(payment)
        except IntegrityError as exc:
            self.db.rollback()
            logger.error("Payment id collision for %s: %s", payment.id, exc)
            raise ConflictError("Payment already exists.") from exc
        except SQLAlchemyError as exc:
            raise self._fail("Failed to create payment request.", exc) from exc
        return payment

    def get_payment(self, payment_id: str) -> Optional[Payment]:
        try:
            return self.db.query(Payment).filter(Payment.id == payment_id).first()
        except SQLAlchemyError as exc:
            raise self._fail("Failed to fetch payment.", exc) from exc

    def get_status(self, payment_id: str) -> Optional[PaymentStatus]:
        try:
            row = self.db.query(Payment.status).filter(Payment.id == payment_id).first()
        except SQLAlchemyError as exc:
            raise self._fail("Failed to fetch payment status.", exc) from exc
        return PaymentStatus(row.status) if row else None

    def update_payment(
        self,
        payment_id: str,
        fields: Dict[str, Any],
        expected_status: Optional[PaymentStatus] = None,
    ) -> Optional[Payment]:
        """Partial update by id.

        When expected_status is given the write only applies if the row still
        has that status. Returns None when no row matched.
        """
        query = self.db.query(Payment).filter(Payment.id == payment_id)
        if expected_status is not None:
            query = query.filter(Payment.status == expected_status.value)

        values = {
            key: (value.value if isinstance(value, PaymentStatus) else value)
            for key, value in fields.items()
        }
        try:
            matched = query.update(values, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._fail("Failed to update payment status.", exc) from exc

        if not matched:
            return None

        payment = self.get_payment(payment_id)
        if payment is not None:
            self.db.refresh(payment)
        return payment

    def list_payments(self, offset: int, limit: int) -> Tuple[List[Payment], int]:
        try:
            total = self.db.query(Payment).count()
            rows = (
                self.db.query(Payment)
                .order_by(Payment.created_at.desc(), Payment.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as exc:
            raise self._fail("Failed to fetch payments.", exc) from exc
        return rows, total

    def find_pending_created_before(self, threshold: datetime) -> List[Payment]:
        try:
            return (
                self.db.query(Payment)
                .filter(
                    Payment.status == PaymentStatus.PENDING.value,
                    Payment.created_at <= threshold,
                )
                .order_by(Payment.created_at.asc())
                .all()
            )
        except SQLAlchemyError as exc:
            raise self._fail("Failed to query pending payments.", exc) from exc

    # ── logs ──

    def append_log(
        self,
        payment_id: str,
        status: PaymentStatus,
        message: Optional[str],
        logged_at: datetime,
    ) -> PaymentLog:
        entry = PaymentLog(
            payment_id=payment_id,
            status=status.value,
            message=message,
            logged_at=logged_at,
        )
        try:
            self.db.add(entry)
            self.db.commit()
            self.db.refresh(entry)
        except SQLAlchemyError as exc:
            raise self._fail("Failed to insert payment status log.", exc) from exc
        return entry

    def list_logs(self, payment_id: str) -> List[PaymentLog]:
        try:
            return (
                self.db.query(PaymentLog)
                .filter(PaymentLog.payment_id == payment_id)
                .order_by(PaymentLog.logged_at.desc(), PaymentLog.id.desc())
                .all()
            )
        except SQLAlchemyError as exc:
            raise self._fail("Failed to fetch payment logs.", exc) from exc
