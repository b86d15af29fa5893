from upi_tracker.models.payment import Payment, PaymentStatus
from upi_tracker.models.payment_log import PaymentLog

__all__ = ["Payment", "PaymentStatus", "PaymentLog"]
