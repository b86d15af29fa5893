"""
Expiry Scheduler — background job that periodically expires stale PENDING payments.
"""
import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session

from upi_tracker.services.payment_service import LifecycleConfig, PaymentService
from upi_tracker.services.payment_store import PaymentStore

logger = logging.getLogger(__name__)

EXPIRY_JOB_ID = "expire-pending-payments"


class ExpiryScheduler:
    """Runs PaymentService.sweep_expired on a fixed interval, one run at a time.

    Every cycle opens its own session from `session_factory`. A failing cycle is
    logged and the next one runs as scheduled.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        config: LifecycleConfig,
        interval_seconds: int = 300,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.session_factory = session_factory
        self.config = config
        self.interval_seconds = interval_seconds
        self.scheduler = scheduler or BackgroundScheduler(daemon=True)

    def run_once(self) -> int:
        db = self.session_factory()
        try:
            service = PaymentService(PaymentStore(db), self.config)
            return service.sweep_expired(self.config.expiry_minutes)
        except Exception:
            logger.exception("Error in periodic expiry check")
            return 0
        finally:
            db.close()

    def start(self) -> None:
        self.scheduler.add_job(
            self.run_once,
            "interval",
            seconds=self.interval_seconds,
            id=EXPIRY_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(
            "Expiry scheduler started (every %ss, window %s min)",
            self.interval_seconds, self.config.expiry_minutes,
        )

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Expiry scheduler stopped")
