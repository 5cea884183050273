"""Checkout error taxonomy.

Every failure a client can see carries a stable ``reason`` code alongside a
human readable ``message``. Routes and services raise these; the handlers in
``app.main`` render them as ``{"reason": ..., "message": ..., **extra}``.
"""

from typing import Any, Dict, Optional


class CheckoutError(Exception):
    status_code: int = 500
    reason: str = "internal"

    def __init__(self, message: str, reason: Optional[str] = None, **extra: Any):
        super().__init__(message)
        self.message = message
        if reason:
            self.reason = reason
        self.extra = extra

    def to_dict(self) -> Dict[str, Any]:
        return {"reason": self.reason, "message": self.message, **self.extra}


class InvalidInput(CheckoutError):
    status_code = 400
    reason = "invalid_input"


class NotFound(CheckoutError):
    status_code = 404
    reason = "not_found"


class InvalidState(CheckoutError):
    status_code = 400
    reason = "invalid_state"


class Conflict(CheckoutError):
    status_code = 409
    reason = "conflict"


class PaymentDeclined(CheckoutError):
    status_code = 402
    reason = "payment_declined"


class Internal(CheckoutError):
    status_code = 500
    reason = "internal"
