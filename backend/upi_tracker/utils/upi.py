"""
UPI Intent Encoding — builds the upi://pay deep link and renders it as a QR image.
Both functions are pure: identical inputs always give identical output.
"""
import base64
import io
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union
from urllib.parse import urlencode

import qrcode
from qrcode.constants import ERROR_CORRECT_M

UPI_SCHEME = "upi://pay"
DEFAULT_CURRENCY = "INR"
DEFAULT_NOTE = "UPI Payment"

QR_BORDER = 1
QR_BOX_SIZE = 6


def format_amount(amount: Union[Decimal, float, int, str]) -> str:
    """Two-decimal rendering used in the `am` field (10 -> "10.00")."""
    rounded = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{rounded:.2f}"


def build_upi_intent_url(
    upi_id: str,
    amount: Union[Decimal, float, int, str],
    transaction_ref: str,
    payer_name: Optional[str] = None,
    note: Optional[str] = None,
    currency: str = DEFAULT_CURRENCY,
) -> str:
    """Build the canonical UPI intent URI.

    Field order is fixed: pa, am, cu, tn, tr, then pn when a payer name is given.
    Values are form-encoded, so spaces become '+' and '@' becomes '%40'.

    Args:
        upi_id: Payee handle (VPA), e.g. merchant@okbank.
        amount: Amount in currency units.
        transaction_ref: Unique reference echoed back by the payer's app.
        payer_name: Optional name appended as `pn`.
        note: Transaction note; defaults to "UPI Payment".
        currency: ISO currency code.

    Returns:
        A string like "upi://pay?pa=a%40b&am=10.00&cu=INR&tn=x&tr=T1".
    """
    params = [
        ("pa", upi_id),
        ("am", format_amount(amount)),
        ("cu", currency),
        ("tn", note if note is not None else DEFAULT_NOTE),
        ("tr", transaction_ref),
    ]
    if payer_name:
        params.append(("pn", payer_name))

    return f"{UPI_SCHEME}?{urlencode(params)}"


def render_qr_data_url(content: str) -> str:
    """Render content as a PNG QR code (error correction M) and return a data URL."""
    qr = qrcode.QRCode(
        error_correction=ERROR_CORRECT_M,
        box_size=QR_BOX_SIZE,
        border=QR_BORDER,
    )
    qr.add_data(content)
    qr.make(fit=True)
    img = qr.make_image()

    buf = io.BytesIO()
    img.save(buf)
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
