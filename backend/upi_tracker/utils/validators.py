"""
Validators — Rule-based checks for payment request input.
"""
import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

MIN_UPI_ID_LENGTH = 3
AMOUNT_STEP = Decimal("0.01")


def validate_upi_id(upi_id: Optional[str]) -> tuple[bool, str]:
    """UPI ID must be present and at least 3 characters once trimmed."""
    if not upi_id or len(upi_id.strip()) < MIN_UPI_ID_LENGTH:
        return False, "UPI ID is required and must be at least 3 characters."
    return True, "Valid"


def parse_amount(amount: Any) -> Optional[Decimal]:
    """Coerce numbers and numeric strings to Decimal rounded half-up to paise.

    This is the single rounding point: the stored amount and the `am` field of
    the intent URI both use the value returned here. Returns None if not numeric.
    """
    if amount is None or isinstance(amount, bool):
        return None
    if isinstance(amount, float) and not math.isfinite(amount):
        return None
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    try:
        return value.quantize(AMOUNT_STEP, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return None


def validate_amount(amount: Any) -> tuple[bool, str]:
    """Amount must be a finite number that is still greater than zero after rounding."""
    value = parse_amount(amount)
    if value is None or value <= 0:
        return False, "Amount must be a positive number."
    return True, "Valid"


def clean_text(value: Optional[str]) -> Optional[str]:
    """Strip free text; blank input becomes None."""
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None
