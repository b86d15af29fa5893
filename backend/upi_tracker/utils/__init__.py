from upi_tracker.utils.clock import utcnow, as_utc
from upi_tracker.utils.upi import build_upi_intent_url, render_qr_data_url
from upi_tracker.utils.validators import validate_upi_id, validate_amount, parse_amount, clean_text

__all__ = [
    "utcnow", "as_utc",
    "build_upi_intent_url", "render_qr_data_url",
    "validate_upi_id", "validate_amount", "parse_amount", "clean_text",
]
