"""
Pydantic Schemas — Request & Response models for API validation.
Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from upi_tracker.models.payment import PaymentStatus

T = TypeVar("T")


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ──────────────── Envelope ────────────────

class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: Optional[T] = None
    error: Optional[str] = None


# ──────────────── Payment ────────────────

class PaymentCreate(CamelModel):
    """Create-payment body. Business rules are enforced by PaymentService, not here."""
    upi_id: Optional[str] = None
    amount: Any = None
    payer_name: Optional[str] = None
    note: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class PaymentView(CamelModel):
    id: str
    upi_id: str
    amount: float
    payer_name: Optional[str] = None
    note: Optional[str] = None
    status: PaymentStatus
    qr_code_data_url: str
    upi_intent_url: str
    transaction_ref: str
    metadata: Optional[Dict[str, Any]] = None
    failure_reason: Optional[str] = None
    expires_at: datetime
    created_at: datetime
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class PaymentListData(CamelModel):
    payments: List[PaymentView]
    total: int
    page: int
    limit: int


class PaymentStatusData(CamelModel):
    payment_id: str
    status: PaymentStatus


class PaymentLogView(CamelModel):
    id: str
    payment_id: str
    status: PaymentStatus
    message: Optional[str] = None
    created_at: datetime


# ──────────────── Status changes ────────────────

class SimulateStatusRequest(CamelModel):
    status: Optional[str] = None
    message: Optional[str] = None


class WebhookStatusUpdateRequest(CamelModel):
    payment_id: Optional[str] = None
    status: Optional[str] = None
    message: Optional[str] = None


# ──────────────── Generic ────────────────

class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    uptime: float
    database: str
