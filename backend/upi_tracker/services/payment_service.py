"""
Payment Lifecycle Service — owns every payment status transition.

    create            →  PENDING
    webhook update    →  SUCCESS | FAILED      (unguarded, any source status)
    simulate          →  SUCCESS | FAILED      (only from PENDING)
    expiry sweep      →  EXPIRED               (only from PENDING, past the window)

Simulate and sweep write conditionally on the row still being PENDING, so when
both race on one payment the first write wins and the other becomes a no-op.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from upi_tracker.config import Settings
from upi_tracker.exceptions import (
    AlreadyFinalizedError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from upi_tracker.models.payment import Payment, PaymentStatus
from upi_tracker.models.payment_log import PaymentLog
from upi_tracker.schemas.schemas import PaymentCreate, PaymentLogView, PaymentView
from upi_tracker.services.payment_store import PaymentStore
from upi_tracker.utils.clock import as_utc, utcnow
from upi_tracker.utils.upi import DEFAULT_CURRENCY, build_upi_intent_url, render_qr_data_url
from upi_tracker.utils.validators import clean_text, parse_amount, validate_amount, validate_upi_id

logger = logging.getLogger(__name__)

SIMULATABLE_STATUSES = (PaymentStatus.SUCCESS, PaymentStatus.FAILED)


@dataclass(frozen=True)
class LifecycleConfig:
    """Values the lifecycle needs from configuration, passed in explicitly."""

    expiry_minutes: int = 15
    currency: str = DEFAULT_CURRENCY

    @classmethod
    def from_settings(cls, settings: Settings) -> "LifecycleConfig":
        return cls(
            expiry_minutes=settings.PAYMENT_EXPIRY_MINUTES,
            currency=settings.UPI_CURRENCY,
        )


def compute_expires_at(created_at: datetime, window_minutes: int) -> datetime:
    """Deadline of a payment: created_at + window. Used by readers and the sweep alike."""
    return created_at + timedelta(minutes=window_minutes)


def to_payment_view(payment: Payment, expiry_minutes: int) -> PaymentView:
    metadata = payment.payment_metadata or {}
    return PaymentView(
        id=payment.id,
        upi_id=payment.upi_id,
        amount=float(payment.amount),
        payer_name=payment.payee_name,
        note=payment.note,
        status=PaymentStatus(payment.status),
        qr_code_data_url=payment.qr_data,
        upi_intent_url=metadata.get("upi_intent_url", ""),
        transaction_ref=payment.transaction_ref,
        metadata=metadata,
        failure_reason=payment.failure_reason,
        expires_at=as_utc(compute_expires_at(payment.created_at, expiry_minutes)),
        created_at=as_utc(payment.created_at),
        updated_at=as_utc(payment.updated_at),
        completed_at=as_utc(payment.completed_at),
    )


def to_log_view(entry: PaymentLog) -> PaymentLogView:
    return PaymentLogView(
        id=str(entry.id),
        payment_id=entry.payment_id,
        status=PaymentStatus(entry.status),
        message=entry.message,
        created_at=as_utc(entry.logged_at),
    )


class PaymentService:
    """Stateless lifecycle engine over a PaymentStore."""

    def __init__(
        self,
        store: PaymentStore,
        config: Optional[LifecycleConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.config = config or LifecycleConfig()
        self.clock = clock

    # ── reads ──

    def present(self, payment: Payment) -> PaymentView:
        return to_payment_view(payment, self.config.expiry_minutes)

    def get_payment(self, payment_id: str) -> Optional[PaymentView]:
        payment = self.store.get_payment(payment_id)
        return self.present(payment) if payment else None

    def get_status(self, payment_id: str) -> Optional[PaymentStatus]:
        return self.store.get_status(payment_id)

    # ── transitions ──

    def create_payment(self, payload: PaymentCreate) -> PaymentView:
        """Validate, encode and persist a new PENDING payment request.

        Raises:
            ValidationError: upi_id shorter than 3 characters or amount not > 0.
            PersistenceError: the record could not be stored (nothing is logged).
        """
        ok, reason = validate_upi_id(payload.upi_id)
        if not ok:
            raise ValidationError(reason)
        ok, reason = validate_amount(payload.amount)
        if not ok:
            raise ValidationError(reason)

        upi_id = payload.upi_id.strip()
        amount = parse_amount(payload.amount)
        payer_name = clean_text(payload.payer_name)
        note = clean_text(payload.note)

        payment_id = str(uuid.uuid4())
        transaction_ref = str(uuid.uuid4())

        intent_url = build_upi_intent_url(
            upi_id=upi_id,
            amount=amount,
            transaction_ref=transaction_ref,
            payer_name=payer_name,
            note=note,
            currency=self.config.currency,
        )
        qr_data = render_qr_data_url(intent_url)

        now = self.clock()
        payment = Payment(
            id=payment_id,
            transaction_ref=transaction_ref,
            upi_id=upi_id,
            amount=amount,
            payee_name=payer_name,
            note=note,
            status=PaymentStatus.PENDING.value,
            qr_data=qr_data,
            payment_metadata={**(payload.metadata or {}), "upi_intent_url": intent_url},
            created_at=now,
            updated_at=now,
        )
        payment = self.store.insert_payment(payment)
        logger.info("Payment %s created for %s (%s)", payment_id, upi_id, intent_url)

        self._append_log(payment_id, PaymentStatus.PENDING, "Payment created", now)
        return self.present(payment)

    def update_status(
        self,
        payment_id: str,
        status: Union[PaymentStatus, str],
        message: Optional[str] = None,
    ) -> Optional[PaymentView]:
        """Force a payment into `status` regardless of its current status.

        Returns None when the payment does not exist.
        """
        status = self._coerce_status(status)
        payment = self._apply_status(payment_id, status, message)
        return self.present(payment) if payment else None

    def simulate_transition(
        self,
        payment_id: str,
        status: Union[PaymentStatus, str],
        message: Optional[str] = None,
    ) -> PaymentView:
        """Finalize a PENDING payment as SUCCESS or FAILED (test/QA path)."""
        status = self._coerce_status(status)
        if status not in SIMULATABLE_STATUSES:
            raise ValidationError("Status must be SUCCESS or FAILED for simulation.")

        payment = self.store.get_payment(payment_id)
        if payment is None:
            raise NotFoundError()
        if PaymentStatus(payment.status).is_terminal:
            raise AlreadyFinalizedError()

        updated = self._apply_status(
            payment_id,
            status,
            message or f"Simulated {status.value} webhook",
            expected_status=PaymentStatus.PENDING,
        )
        if updated is None:
            # Lost the race to another writer between the read and the update
            if self.store.get_status(payment_id) is None:
                raise NotFoundError()
            raise AlreadyFinalizedError()
        return self.present(updated)

    def sweep_expired(self, window_minutes: Optional[int] = None) -> int:
        """Move every PENDING payment past its deadline to EXPIRED.

        Safe to re-run: only rows still PENDING at write time are touched.
        Store failures are logged and never raised; returns the number expired.
        """
        window = self.config.expiry_minutes if window_minutes is None else window_minutes
        now = self.clock()
        threshold = now - timedelta(minutes=window)

        try:
            candidates = [
                (p.id, p.created_at)
                for p in self.store.find_pending_created_before(threshold)
            ]
        except PersistenceError:
            logger.exception("Expiry sweep could not load pending payments")
            return 0

        expired = 0
        for payment_id, created_at in candidates:
            if compute_expires_at(created_at, window) > now:
                continue
            try:
                updated = self.store.update_payment(
                    payment_id,
                    {"status": PaymentStatus.EXPIRED, "updated_at": now},
                    expected_status=PaymentStatus.PENDING,
                )
            except PersistenceError:
                logger.exception("Expiry sweep failed to expire payment %s", payment_id)
                continue
            if updated is None:
                continue
            self._append_log(payment_id, PaymentStatus.EXPIRED, "Payment expired", now)
            expired += 1

        if expired:
            logger.info("Expired %d old payment(s)", expired)
        return expired

    # ── internals ──

    @staticmethod
    def _coerce_status(status: Union[PaymentStatus, str]) -> PaymentStatus:
        if isinstance(status, PaymentStatus):
            return status
        try:
            return PaymentStatus(str(status).upper())
        except ValueError:
            raise ValidationError("Invalid status") from None

    def _apply_status(
        self,
        payment_id: str,
        status: PaymentStatus,
        message: Optional[str],
        expected_status: Optional[PaymentStatus] = None,
    ) -> Optional[Payment]:
        now = self.clock()
        fields = {"status": status, "updated_at": now}
        if status in (PaymentStatus.SUCCESS, PaymentStatus.FAILED):
            fields["completed_at"] = now
        if status is PaymentStatus.FAILED and message:
            fields["failure_reason"] = message

        payment = self.store.update_payment(payment_id, fields, expected_status=expected_status)
        if payment is None:
            return None

        self._append_log(payment_id, status, message or f"Status updated to {status.value}", now)
        logger.info("Payment %s moved to %s", payment_id, status.value)
        return payment

    def _append_log(
        self,
        payment_id: str,
        status: PaymentStatus,
        message: Optional[str],
        logged_at: datetime,
    ) -> None:
        # Audit rows are best-effort: the status change already committed
        try:
            self.store.append_log(payment_id, status, message, logged_at)
        except PersistenceError:
            logger.exception("Failed to insert payment status log for %s", payment_id)
