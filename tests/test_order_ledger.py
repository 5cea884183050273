"""Tests for the order ledger: creation, item insertion and status transitions."""

from decimal import Decimal

import pytest
from sqlmodel import Session

from app.core.errors import InvalidInput, InvalidState, NotFound
from app.models.order import Order, OrderStatus
from app.models.payment import PaymentMethod, PaymentStatus
from app.services.order import OrderLedger


@pytest.fixture()
def ledger(session):
    return OrderLedger(session)


@pytest.fixture()
def paid_order(ledger, user):
    order = ledger.create_order(user.id, Decimal("25.00"))
    return ledger.update_status(order.id, OrderStatus.PAYMENT_SUCCESS, expected_status=OrderStatus.PENDING)


def _items(books):
    book_a, book_b = books
    return [
        {"book_id": book_a.id, "quantity": 2, "price_at_purchase": Decimal("10.00")},
        {"book_id": book_b.id, "quantity": 1, "price_at_purchase": Decimal("5.00")},
    ]


class TestCreateOrder:
    def test_new_order_is_pending(self, ledger, user):
        order = ledger.create_order(user.id, Decimal("25.00"))
        assert order.status == OrderStatus.PENDING
        assert order.total_amount == Decimal("25.00")
        assert order.payment_id is None
        assert ledger.get_by_id(order.id).id == order.id

    def test_negative_total_rejected(self, ledger, user):
        with pytest.raises(InvalidInput):
            ledger.create_order(user.id, Decimal("-1.00"))

    def test_foreign_order_is_not_found(self, ledger, user, other_user):
        order = ledger.create_order(other_user.id, Decimal("1.00"))
        with pytest.raises(NotFound):
            ledger.get_owned_order(user.id, order.id)


class TestAddOrderItems:
    def test_inserts_all_items(self, ledger, paid_order, books):
        inserted = ledger.add_order_items(paid_order.id, _items(books))
        assert len(inserted) == 2
        assert [i.price_at_purchase for i in ledger.get_items(paid_order.id)] == [Decimal("10.00"), Decimal("5.00")]

    def test_all_or_nothing(self, ledger, paid_order, books):
        items = _items(books)
        items[1]["quantity"] = 0
        with pytest.raises(InvalidInput):
            ledger.add_order_items(paid_order.id, items)
        assert ledger.get_items(paid_order.id) == []

    def test_refuses_pending_order(self, ledger, user, books):
        order = ledger.create_order(user.id, Decimal("25.00"))
        with pytest.raises(InvalidState):
            ledger.add_order_items(order.id, _items(books))
        assert ledger.get_items(order.id) == []


class TestUpdateStatus:
    def test_records_payment_reference(self, ledger, user):
        order = ledger.create_order(user.id, Decimal("5.00"))
        payment = ledger.create_payment(user.id, order.id, PaymentMethod.PAYPAL, Decimal("5.00"))
        updated = ledger.update_status(order.id, OrderStatus.PAYMENT_FAILED, payment_id=payment.id)
        assert updated.status == OrderStatus.PAYMENT_FAILED
        assert updated.payment_id == payment.id

    def test_terminal_status_cannot_change(self, ledger, paid_order):
        ledger.update_status(paid_order.id, OrderStatus.COMPLETED)
        with pytest.raises(InvalidState):
            ledger.update_status(paid_order.id, OrderStatus.ABANDONED)

    def test_paid_order_cannot_be_abandoned(self, ledger, paid_order):
        with pytest.raises(InvalidState):
            ledger.update_status(paid_order.id, OrderStatus.ABANDONED)
        assert ledger.get_by_id(paid_order.id).status == OrderStatus.PAYMENT_SUCCESS

    def test_payment_failed_cannot_complete(self, ledger, user):
        order = ledger.create_order(user.id, Decimal("5.00"))
        ledger.update_status(order.id, OrderStatus.PAYMENT_FAILED)
        with pytest.raises(InvalidState):
            ledger.update_status(order.id, OrderStatus.COMPLETED)

    def test_compare_and_set_rejects_stale_expectation(self, engine, ledger, paid_order):
        with Session(engine) as other_session:
            OrderLedger(other_session).update_status(
                paid_order.id, OrderStatus.COMPLETED, expected_status=OrderStatus.PAYMENT_SUCCESS
            )

        with pytest.raises(InvalidState) as excinfo:
            ledger.update_status(
                paid_order.id, OrderStatus.COMPLETED, expected_status=OrderStatus.PAYMENT_SUCCESS
            )
        assert excinfo.value.extra["status"] == "Completed"

    def test_unknown_order(self, ledger):
        with pytest.raises(NotFound):
            ledger.update_status(404, OrderStatus.COMPLETED)


class TestUpdatePayment:
    def test_updates_enumerated_fields(self, ledger, user):
        order = ledger.create_order(user.id, Decimal("5.00"))
        payment = ledger.create_payment(user.id, order.id, PaymentMethod.EWALLET, Decimal("5.00"))
        updated = ledger.update_payment(payment.id, payment_status="Completed", transaction_id="txn_1_abcdefgh")
        assert updated.payment_status == PaymentStatus.COMPLETED
        assert updated.transaction_id == "txn_1_abcdefgh"

    def test_rejects_fields_outside_allow_list(self, session, ledger, user):
        order = ledger.create_order(user.id, Decimal("5.00"))
        payment = ledger.create_payment(user.id, order.id, PaymentMethod.EWALLET, Decimal("5.00"))
        with pytest.raises(InvalidInput):
            ledger.update_payment(payment.id, amount=Decimal("0.01"))
        session.refresh(payment)
        assert payment.amount == Decimal("5.00")

    def test_rejects_unknown_status(self, ledger, user):
        order = ledger.create_order(user.id, Decimal("5.00"))
        payment = ledger.create_payment(user.id, order.id, PaymentMethod.EWALLET, Decimal("5.00"))
        with pytest.raises(InvalidInput):
            ledger.update_payment(payment.id, payment_status="Refunded")
