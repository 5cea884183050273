"""Payment gateway seam.

The orchestrator only ever calls ``PaymentGateway.authorize`` and reads the
returned ``PaymentResult``. A real provider replaces ``_submit`` and keeps the
same contract: network failures and timeouts come back as a failed result,
they are not raised into the checkout flow.
"""

import random
import string
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import structlog

from app.core.config import settings
from app.models.payment import PaymentMethod, PaymentStatus

logger = structlog.get_logger(__name__)


class PaymentGatewayError(Exception):
    """Transport level failure talking to the provider."""


class PaymentTimeout(PaymentGatewayError):
    pass


@dataclass(frozen=True)
class PaymentResult:
    status: PaymentStatus
    transaction_id: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def approved(self) -> bool:
        return self.status == PaymentStatus.COMPLETED


class PaymentGateway:
    timeout: float = settings.PAYMENT_TIMEOUT_SECONDS

    def authorize(self, method: PaymentMethod, amount: Decimal) -> PaymentResult:
        started = time.monotonic()
        try:
            result = self._submit(method, amount)
        except PaymentGatewayError as exc:
            logger.warning("payment_gateway_error", method=method.value, amount=str(amount), error=str(exc))
            return PaymentResult(status=PaymentStatus.FAILED, error_message=str(exc) or exc.__class__.__name__)

        elapsed = time.monotonic() - started
        if elapsed > self.timeout:
            # The provider answered too late to be trusted
            logger.warning("payment_gateway_timeout", method=method.value, elapsed=elapsed)
            return PaymentResult(status=PaymentStatus.FAILED, error_message="Payment provider timed out")

        logger.info(
            "payment_authorized" if result.approved else "payment_declined",
            method=method.value,
            amount=str(amount),
            transaction_id=result.transaction_id,
        )
        return result

    def _submit(self, method: PaymentMethod, amount: Decimal) -> PaymentResult:
        raise NotImplementedError


def generate_transaction_id() -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=8))
    return f"txn_{int(time.time() * 1000)}_{suffix}"


class PaymentSimulator(PaymentGateway):
    """Stand-in provider. Approves every call unless configured with a decline rate."""

    def __init__(
        self,
        decline_rate: Optional[float] = None,
        timeout: Optional[float] = None,
        rng: Optional[random.Random] = None,
    ):
        self.decline_rate = settings.PAYMENT_DECLINE_RATE if decline_rate is None else decline_rate
        if timeout is not None:
            self.timeout = timeout
        self.rng = rng or random.Random()

    def _submit(self, method: PaymentMethod, amount: Decimal) -> PaymentResult:
        if self.decline_rate and self.rng.random() < self.decline_rate:
            return PaymentResult(status=PaymentStatus.FAILED, error_message="Payment declined by provider")
        return PaymentResult(status=PaymentStatus.COMPLETED, transaction_id=generate_transaction_id())


def get_payment_gateway() -> PaymentGateway:
    return PaymentSimulator()
