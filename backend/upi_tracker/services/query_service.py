"""
Payment Query Service — read-only views: paginated listing, single record, status log.
"""
from typing import List, Optional

from upi_tracker.exceptions import ValidationError
from upi_tracker.schemas.schemas import PaymentListData, PaymentLogView, PaymentView
from upi_tracker.services.payment_service import LifecycleConfig, to_log_view, to_payment_view
from upi_tracker.services.payment_store import PaymentStore

MAX_PAGE_SIZE = 100


class PaymentQueryService:
    def __init__(self, store: PaymentStore, config: Optional[LifecycleConfig] = None):
        self.store = store
        self.config = config or LifecycleConfig()

    def list_payments(self, page: int = 1, page_size: int = 5) -> PaymentListData:
        """Newest-first page of payments plus the total count."""
        if page < 1:
            raise ValidationError("Page must be greater than 0")
        if page_size < 1 or page_size > MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

        rows, total = self.store.list_payments(offset=(page - 1) * page_size, limit=page_size)
        return PaymentListData(
            payments=[to_payment_view(p, self.config.expiry_minutes) for p in rows],
            total=total,
            page=page,
            limit=page_size,
        )

    def get_payment(self, payment_id: str) -> Optional[PaymentView]:
        payment = self.store.get_payment(payment_id)
        if payment is None:
            return None
        return to_payment_view(payment, self.config.expiry_minutes)

    def list_logs(self, payment_id: str) -> List[PaymentLogView]:
        """Full status history, newest first. Unknown ids give an empty list."""
        return [to_log_view(entry) for entry in self.store.list_logs(payment_id)]
