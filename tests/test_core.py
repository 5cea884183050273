"""Tests for the error taxonomy and logging setup."""

import logging

import pytest
import structlog

from app.core.config import settings
from app.core.errors import CheckoutError, Conflict, InvalidInput, PaymentDeclined
from app.core.logging import configure_logging


class TestCheckoutError:
    def test_status_and_reason_come_from_the_subclass(self):
        error = PaymentDeclined("Payment failed. Please try again.", orderId=7)
        assert error.status_code == 402
        assert error.to_dict() == {
            "reason": "payment_declined",
            "message": "Payment failed. Please try again.",
            "orderId": 7,
        }

    def test_reason_can_be_overridden_per_instance(self):
        error = Conflict("Book already owned", reason="already_owned", book_id=3)
        assert error.status_code == 409
        assert error.to_dict()["reason"] == "already_owned"
        assert Conflict("x").reason == "conflict"

    @pytest.mark.parametrize("error_class", [CheckoutError, InvalidInput])
    def test_message_is_the_exception_text(self, error_class):
        error = error_class("Quantity must be a positive integer")
        assert str(error) == "Quantity must be a positive integer"


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def reset_structlog(self):
        yield
        structlog.reset_defaults()

    def test_defaults_come_from_settings(self):
        configure_logging()
        renderer = structlog.get_config()["processors"][-1]
        expected = structlog.processors.JSONRenderer if settings.LOG_JSON else structlog.dev.ConsoleRenderer
        assert isinstance(renderer, expected)

    def test_json_renderer_on_request(self):
        configure_logging(level="debug", json_logs=True)
        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)

    def test_sql_engine_logger_is_quiet(self, monkeypatch):
        monkeypatch.setattr(settings, "SQL_ECHO", False)
        configure_logging()
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
