from typing import Callable, Dict, Iterable, List, Optional
from decimal import Decimal
from datetime import datetime
import structlog
from sqlmodel import Session, select, update
from app.core.errors import InvalidInput, InvalidState, NotFound
from app.models.order import Order, OrderItem, OrderStatus
from app.models.payment import Payment, PaymentMethod, PaymentStatus

logger = structlog.get_logger(__name__)

# Pending -> Payment_Success -> Completed, Pending -> Payment_Failed.
# Only unpaid orders can be abandoned; a paid order must be confirmed
ALLOWED_TRANSITIONS: Dict[OrderStatus, set] = {
    OrderStatus.PENDING: {OrderStatus.PAYMENT_SUCCESS, OrderStatus.PAYMENT_FAILED, OrderStatus.ABANDONED},
    OrderStatus.PAYMENT_SUCCESS: {OrderStatus.COMPLETED},
    OrderStatus.PAYMENT_FAILED: {OrderStatus.ABANDONED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.ABANDONED: set(),
}

# Only a paid order that is being confirmed may receive items
ITEM_WRITABLE_STATUSES = {OrderStatus.PAYMENT_SUCCESS}


def _set_payment_status(payment: Payment, value):
    try:
        payment.payment_status = PaymentStatus(value)
    except ValueError:
        raise InvalidInput(f"Unknown payment status: {value}")

def _set_transaction_id(payment: Payment, value):
    payment.transaction_id = value

def _set_error_message(payment: Payment, value):
    payment.error_message = value

PAYMENT_FIELD_SETTERS: Dict[str, Callable[[Payment, object], None]] = {
    "payment_status": _set_payment_status,
    "transaction_id": _set_transaction_id,
    "error_message": _set_error_message,
}


class OrderLedger:
    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, order_id: int) -> Optional[Order]:
        return self.session.get(Order, order_id)

    def get_owned_order(self, user_id: int, order_id: int) -> Order:
        """Missing and foreign orders look the same to the caller."""
        order = self.get_by_id(order_id)
        if not order or order.user_id != user_id:
            raise NotFound("Order not found or does not belong to this user", order_id=order_id)
        return order

    def list_orders(self, user_id: int) -> List[Order]:
        return self.session.exec(
            select(Order).where(Order.user_id == user_id).order_by(Order.created_at.desc(), Order.id.desc())
        ).all()

    def get_items(self, order_id: int) -> List[OrderItem]:
        return self.session.exec(select(OrderItem).where(OrderItem.order_id == order_id).order_by(OrderItem.id)).all()

    def get_payments(self, order_id: int) -> List[Payment]:
        return self.session.exec(select(Payment).where(Payment.order_id == order_id).order_by(Payment.id)).all()

    def create_order(self, user_id: int, total: Decimal, shipping_address_id: Optional[int] = None, commit: bool = True) -> Order:
        if total < 0:
            raise InvalidInput("Order total cannot be negative")

        order = Order(
            user_id=user_id,
            total_amount=total,
            shipping_address_id=shipping_address_id,
            status=OrderStatus.PENDING,
        )
        self.session.add(order)
        if commit:
            self.session.commit()
            self.session.refresh(order)
        else:
            self.session.flush()
        logger.info("order_created", order_id=order.id, user_id=user_id, total=str(total))
        return order

    def add_order_items(self, order_id: int, items: Iterable[dict], commit: bool = True) -> List[OrderItem]:
        """Insert every item or none of them.

        Each item is a dict with ``book_id``, ``quantity`` and ``price_at_purchase``.
        On any failure the session is rolled back before the error propagates.
        """
        order = self.get_by_id(order_id)
        if not order:
            raise NotFound("Order not found", order_id=order_id)
        if order.status not in ITEM_WRITABLE_STATUSES:
            raise InvalidState(
                f"Items cannot be added to an order in status {order.status.value}",
                order_id=order_id,
                status=order.status.value,
            )

        inserted = []
        try:
            for item in items:
                if item["quantity"] < 1:
                    raise InvalidInput(f"Invalid quantity for book {item['book_id']}")
                order_item = OrderItem(
                    order_id=order_id,
                    book_id=item["book_id"],
                    quantity=item["quantity"],
                    price_at_purchase=item["price_at_purchase"],
                )
                self.session.add(order_item)
                inserted.append(order_item)
            self.session.flush()
            if commit:
                self.session.commit()
        except Exception:
            self.session.rollback()
            logger.warning("order_items_rolled_back", order_id=order_id)
            raise

        return inserted

    def update_status(
        self,
        order_id: int,
        status: OrderStatus,
        payment_id: Optional[int] = None,
        expected_status: Optional[OrderStatus] = None,
        commit: bool = True,
    ) -> Order:
        """Compare-and-set status transition.

        The UPDATE only matches while the row still holds ``expected_status``
        (the currently stored status when omitted). Zero affected rows means
        another request moved the order first.
        """
        order = self.get_by_id(order_id)
        if not order:
            raise NotFound("Order not found", order_id=order_id)

        expected = expected_status or order.status
        if status not in ALLOWED_TRANSITIONS[expected]:
            raise InvalidState(
                f"Cannot move order from {expected.value} to {status.value}",
                order_id=order_id,
                status=order.status.value,
            )

        values = {"status": status, "updated_at": datetime.utcnow()}
        if payment_id is not None:
            values["payment_id"] = payment_id

        result = self.session.exec(
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            self.session.rollback()
            self.session.refresh(order)
            raise InvalidState(
                f"Order is no longer in status {expected.value} (status: {order.status.value})",
                order_id=order_id,
                status=order.status.value,
            )

        if commit:
            self.session.commit()
        self.session.refresh(order)
        logger.info("order_status_changed", order_id=order_id, previous=expected.value, status=status.value)
        return order

    def create_payment(self, user_id: int, order_id: int, method: PaymentMethod, amount: Decimal, commit: bool = True) -> Payment:
        payment = Payment(
            user_id=user_id,
            order_id=order_id,
            payment_method=method,
            amount=amount,
            payment_status=PaymentStatus.PENDING,
        )
        self.session.add(payment)
        if commit:
            self.session.commit()
            self.session.refresh(payment)
        else:
            self.session.flush()
        return payment

    def update_payment(self, payment_id: int, commit: bool = True, **changes) -> Payment:
        """Patch a payment through the enumerated setters only."""
        payment = self.session.get(Payment, payment_id)
        if not payment:
            raise NotFound("Payment not found", payment_id=payment_id)

        unknown = set(changes) - set(PAYMENT_FIELD_SETTERS)
        if unknown:
            raise InvalidInput(f"Fields not updatable: {', '.join(sorted(unknown))}")

        for field, value in changes.items():
            PAYMENT_FIELD_SETTERS[field](payment, value)
        payment.updated_at = datetime.utcnow()

        self.session.add(payment)
        if commit:
            self.session.commit()
            self.session.refresh(payment)
        else:
            self.session.flush()
        return payment
