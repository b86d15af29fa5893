"""
UPI Payment Tracker — FastAPI Application Entry Point

Aggregates routers, configures middleware and error envelopes,
initializes the database and starts the expiry scheduler on startup.
"""
import logging
import time
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from upi_tracker.config import get_settings
from upi_tracker.database import SessionLocal, init_db
from upi_tracker.exceptions import PaymentError, PersistenceError
from upi_tracker.logging_config import setup_logging
from upi_tracker.routes import payment_router, webhook_router
from upi_tracker.schemas.schemas import HealthResponse
from upi_tracker.services.expiry_scheduler import ExpiryScheduler
from upi_tracker.services.payment_service import LifecycleConfig
from upi_tracker.utils.rate_limiter import rate_limit

settings = get_settings()
setup_logging(settings)
logger = logging.getLogger(__name__)

general_limiter = rate_limit(
    requests=settings.RATE_LIMIT_GENERAL_MAX,
    window=settings.RATE_LIMIT_WINDOW_SECONDS,
    scope="general",
)

# ─── Application Instance ───────────────────────────────────────────
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "Creates UPI payment requests with scannable QR codes and tracks their "
        "lifecycle (PENDING → SUCCESS / FAILED / EXPIRED) through a simulated "
        "webhook and a periodic expiry sweep."
    ),
    docs_url="/docs",
    redoc_url="/redoc",
    dependencies=[Depends(general_limiter)],
)

# ─── Startup / Shutdown ──────────────────────────────────────────────
BOOT_TIME = time.time()

expiry_scheduler = ExpiryScheduler(
    session_factory=SessionLocal,
    config=LifecycleConfig.from_settings(settings),
    interval_seconds=settings.EXPIRY_CHECK_INTERVAL_SECONDS,
)


@app.on_event("startup")
def on_startup():
    """Initialize database tables, log boot info, start the expiry sweep."""
    init_db()

    logger.info(
        "\n%s\n  %s v%s\n  TIME: %s\n  DATABASE: %s\n  EXPIRY WINDOW: %s min\n  DEBUG: %s\n%s",
        "=" * 60,
        settings.APP_NAME, settings.APP_VERSION,
        datetime.now().isoformat(),
        settings.DATABASE_URL,
        settings.PAYMENT_EXPIRY_MINUTES,
        settings.DEBUG,
        "=" * 60,
    )

    if settings.ENABLE_EXPIRY_SCHEDULER:
        expiry_scheduler.start()


@app.on_event("shutdown")
def on_shutdown():
    expiry_scheduler.shutdown()


# ─── Error Envelopes ─────────────────────────────────────────────────
def _error(status_code: int, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
        headers=headers,
    )


@app.exception_handler(PaymentError)
async def payment_error_handler(request: Request, exc: PaymentError):
    if isinstance(exc, PersistenceError):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    return _error(400, message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return _error(exc.status_code, message, getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


# ─── Middleware ──────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with timing and set baseline security headers."""
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 1)

    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("Referrer-Policy", "no-referrer")

    if request.url.path.startswith("/api"):
        logger.info("%s %s -> %s (%sms)", request.method, request.url.path, response.status_code, duration)

    return response


# ─── API Routers ─────────────────────────────────────────────────────
app.include_router(payment_router)
app.include_router(webhook_router)


@app.get("/health", tags=["Health"], response_model=HealthResponse)
def health():
    """Liveness plus a database round trip."""
    db_ok = False
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except Exception:
        logger.warning("Health check could not reach the database", exc_info=True)
    finally:
        db.close()

    return HealthResponse(
        status="ok" if db_ok else "degraded",
        timestamp=datetime.now(timezone.utc),
        uptime=round(time.time() - BOOT_TIME, 1),
        database="connected" if db_ok else "disconnected",
    )
