"""
Webhook Routes — trusted internal status-update hook (cron jobs, QA tools).
Not a verified bank callback: there is no signature check.
"""
from fastapi import APIRouter, Depends

from upi_tracker.dependencies import get_payment_service
from upi_tracker.exceptions import NotFoundError, ValidationError
from upi_tracker.models.payment import PaymentStatus
from upi_tracker.schemas.schemas import ApiResponse, PaymentView, WebhookStatusUpdateRequest
from upi_tracker.services.payment_service import SIMULATABLE_STATUSES, PaymentService

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])


@router.post("/status-update", response_model=ApiResponse[PaymentView])
def webhook_status_update(
    payload: WebhookStatusUpdateRequest,
    service: PaymentService = Depends(get_payment_service),
):
    """Mark a payment SUCCESS or FAILED."""
    if not payload.payment_id:
        raise ValidationError("paymentId is required")

    normalized = (payload.status or "").upper()
    if normalized not in {s.value for s in PaymentStatus}:
        raise ValidationError("Invalid status")

    status = PaymentStatus(normalized)
    if status not in SIMULATABLE_STATUSES:
        raise ValidationError("Webhook can only mark payments as SUCCESS or FAILED")

    payment = service.update_status(payload.payment_id, status, payload.message)
    if payment is None:
        raise NotFoundError()
    return ApiResponse(data=payment)
