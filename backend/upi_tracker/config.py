"""
Application Configuration — Environment & Settings
Centralizes all config from .env with Pydantic Settings for validation.
"""
from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings

# Resolve paths relative to backend/ directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # --- Core ---
    APP_NAME: str = "UPI Payment Tracker API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # --- Database ---
    DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'data' / 'upi_payments.db'}"
    PAYMENTS_TABLE: str = "payments"
    PAYMENT_LOGS_TABLE: str = "payment_logs"

    # --- Security ---
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # --- Payments ---
    PAYMENT_EXPIRY_MINUTES: int = 15
    EXPIRY_CHECK_INTERVAL_SECONDS: int = 300
    ENABLE_EXPIRY_SCHEDULER: bool = True
    UPI_CURRENCY: str = "INR"

    # --- Rate limits (per client, per window) ---
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_GENERAL_MAX: int = 100
    RATE_LIMIT_CREATE_MAX: int = 20

    # --- Logging ---
    LOG_DIR: str = str(BASE_DIR / "logs")
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def allowed_origins(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_ORIGINS.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
