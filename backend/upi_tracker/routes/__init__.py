from upi_tracker.routes.payment import router as payment_router
from upi_tracker.routes.webhook import router as webhook_router

__all__ = ["payment_router", "webhook_router"]
