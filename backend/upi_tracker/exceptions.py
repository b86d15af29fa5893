"""
Domain Exceptions — typed failures raised by the payment lifecycle.
The HTTP layer maps each one to a status code (see main.py).
"""


class PaymentError(Exception):
    """Base class for every payment-domain failure."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PaymentError):
    """Bad input the caller can fix."""

    status_code = 400


class NotFoundError(PaymentError):
    status_code = 404

    def __init__(self, message: str = "Payment not found"):
        super().__init__(message)


class AlreadyFinalizedError(PaymentError):
    """Simulated transition requested on a payment that already left PENDING."""

    status_code = 400

    def __init__(self, message: str = "Payment is already finalized."):
        super().__init__(message)


class PersistenceError(PaymentError):
    """Store unreachable or write rejected. The message is safe to show to callers."""

    status_code = 500


class ConflictError(PersistenceError):
    status_code = 409
