"""Tests for the payment simulator and the gateway contract."""

import random
import re
import time
from decimal import Decimal

import pytest

from app.models.payment import PaymentMethod, PaymentStatus
from app.services.payment import PaymentGateway, PaymentResult, PaymentSimulator, PaymentTimeout

TXN_PATTERN = re.compile(r"^txn_\d+_[a-z0-9]{8}$")


class TestPaymentSimulator:
    @pytest.mark.parametrize("method", list(PaymentMethod))
    def test_approves_every_supported_method(self, method):
        result = PaymentSimulator(decline_rate=0.0).authorize(method, Decimal("25.00"))
        assert result.status == PaymentStatus.COMPLETED
        assert result.approved
        assert TXN_PATTERN.match(result.transaction_id)

    def test_transaction_ids_are_fresh(self):
        simulator = PaymentSimulator(decline_rate=0.0)
        ids = {simulator.authorize(PaymentMethod.PAYPAL, Decimal("1.00")).transaction_id for _ in range(20)}
        assert len(ids) == 20

    def test_decline_rate_one_always_declines(self):
        result = PaymentSimulator(decline_rate=1.0).authorize(PaymentMethod.CREDIT_CARD, Decimal("5.00"))
        assert result.status == PaymentStatus.FAILED
        assert result.transaction_id is None
        assert result.error_message

    def test_decline_uses_injected_rng(self):
        simulator = PaymentSimulator(decline_rate=0.5, rng=random.Random(7))
        outcomes = [simulator.authorize(PaymentMethod.EWALLET, Decimal("1.00")).approved for _ in range(50)]
        assert any(outcomes) and not all(outcomes)


class _BrokenGateway(PaymentGateway):
    def _submit(self, method, amount):
        raise PaymentTimeout("connection timed out")


class _SlowGateway(PaymentGateway):
    timeout = 0.001

    def _submit(self, method, amount):
        time.sleep(0.01)
        return PaymentResult(status=PaymentStatus.COMPLETED, transaction_id="txn_late")


class TestGatewayFailures:
    def test_transport_error_becomes_failed_result(self):
        result = _BrokenGateway().authorize(PaymentMethod.PAYPAL, Decimal("5.00"))
        assert result.status == PaymentStatus.FAILED
        assert result.error_message == "connection timed out"

    def test_late_answer_counts_as_failure(self):
        result = _SlowGateway().authorize(PaymentMethod.PAYPAL, Decimal("5.00"))
        assert result.status == PaymentStatus.FAILED
        assert result.transaction_id is None


class TestPaymentMethodParse:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("CreditCard", PaymentMethod.CREDIT_CARD),
            ("Credit Card", PaymentMethod.CREDIT_CARD),
            ("paypal", PaymentMethod.PAYPAL),
            ("E-Wallet", PaymentMethod.EWALLET),
            ("EWallet", PaymentMethod.EWALLET),
        ],
    )
    def test_accepts_known_spellings(self, raw, expected):
        assert PaymentMethod.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["Bitcoin", "", None, 42])
    def test_rejects_unknown_values(self, raw):
        assert PaymentMethod.parse(raw) is None
