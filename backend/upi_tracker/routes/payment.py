"""
Payment Routes — create, list and inspect UPI payment requests.
Also exposes the manual simulate-status hook used for QA.
"""
from typing import List

from fastapi import APIRouter, Depends

from upi_tracker.config import get_settings
from upi_tracker.dependencies import get_payment_service, get_query_service
from upi_tracker.exceptions import NotFoundError, ValidationError
from upi_tracker.schemas.schemas import (
    ApiResponse, PaymentCreate, PaymentListData, PaymentLogView,
    PaymentStatusData, PaymentView, SimulateStatusRequest,
)
from upi_tracker.services.payment_service import SIMULATABLE_STATUSES, PaymentService
from upi_tracker.services.query_service import PaymentQueryService
from upi_tracker.utils.rate_limiter import rate_limit

settings = get_settings()

router = APIRouter(prefix="/api/payments", tags=["Payments"])

create_limiter = rate_limit(
    requests=settings.RATE_LIMIT_CREATE_MAX,
    window=settings.RATE_LIMIT_WINDOW_SECONDS,
    scope="payment-create",
    message="Too many payment requests, please try again later.",
)


@router.post("", response_model=ApiResponse[PaymentView], status_code=201)
def create_payment(
    payload: PaymentCreate,
    service: PaymentService = Depends(get_payment_service),
    _throttle: bool = Depends(create_limiter),
):
    """Create a payment request and its QR code."""
    return ApiResponse(data=service.create_payment(payload))


@router.get("", response_model=ApiResponse[PaymentListData])
def list_payments(
    page: int = 1,
    limit: int = 5,
    queries: PaymentQueryService = Depends(get_query_service),
):
    """Paginated payments, newest first."""
    return ApiResponse(data=queries.list_payments(page, limit))


@router.get("/{payment_id}", response_model=ApiResponse[PaymentView])
def get_payment(payment_id: str, queries: PaymentQueryService = Depends(get_query_service)):
    payment = queries.get_payment(payment_id)
    if payment is None:
        raise NotFoundError()
    return ApiResponse(data=payment)


@router.get("/{payment_id}/status", response_model=ApiResponse[PaymentStatusData])
def get_payment_status(payment_id: str, service: PaymentService = Depends(get_payment_service)):
    status = service.get_status(payment_id)
    if status is None:
        raise NotFoundError()
    return ApiResponse(data=PaymentStatusData(payment_id=payment_id, status=status))


@router.get("/{payment_id}/logs", response_model=ApiResponse[List[PaymentLogView]])
def get_payment_logs(payment_id: str, queries: PaymentQueryService = Depends(get_query_service)):
    """Status history, newest first. Unknown ids return an empty list."""
    return ApiResponse(data=queries.list_logs(payment_id))


@router.post("/{payment_id}/simulate-status", response_model=ApiResponse[PaymentView])
def simulate_status(
    payment_id: str,
    payload: SimulateStatusRequest,
    service: PaymentService = Depends(get_payment_service),
):
    """Finalize a PENDING payment as SUCCESS or FAILED without a real bank callback."""
    normalized = (payload.status or "").upper()
    if normalized not in {s.value for s in SIMULATABLE_STATUSES}:
        raise ValidationError("Status must be SUCCESS or FAILED for simulation.")

    return ApiResponse(data=service.simulate_transition(payment_id, normalized, payload.message))
