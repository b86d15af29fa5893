from upi_tracker.services.payment_store import PaymentStore
from upi_tracker.services.payment_service import LifecycleConfig, PaymentService, compute_expires_at
from upi_tracker.services.query_service import PaymentQueryService
from upi_tracker.services.expiry_scheduler import ExpiryScheduler

__all__ = [
    "PaymentStore", "LifecycleConfig", "PaymentService", "compute_expires_at",
    "PaymentQueryService", "ExpiryScheduler",
]
