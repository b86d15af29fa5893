"""
FastAPI dependency providers — one store and service set per request session.
"""
from fastapi import Depends
from sqlalchemy.orm import Session

from upi_tracker.config import get_settings
from upi_tracker.database import get_db
from upi_tracker.services.payment_service import LifecycleConfig, PaymentService
from upi_tracker.services.payment_store import PaymentStore
from upi_tracker.services.query_service import PaymentQueryService


def get_lifecycle_config() -> LifecycleConfig:
    return LifecycleConfig.from_settings(get_settings())


def get_payment_service(
    db: Session = Depends(get_db),
    config: LifecycleConfig = Depends(get_lifecycle_config),
) -> PaymentService:
    return PaymentService(PaymentStore(db), config)


def get_query_service(
    db: Session = Depends(get_db),
    config: LifecycleConfig = Depends(get_lifecycle_config),
) -> PaymentQueryService:
    return PaymentQueryService(PaymentStore(db), config)
