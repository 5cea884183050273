"""Checkout orchestration.

Sequences shipping -> payment -> confirmation on top of the cart, address,
order and ownership stores. Order status moves

    Pending -> Payment_Success | Payment_Failed
    Payment_Success -> Completed

and an unpaid live order (Pending or Payment_Failed) is moved to Abandoned
when the user starts a new payment, so a user never has more than one open
order. A paid order blocks new payments until it is confirmed. Confirmation
is a single unit of work: order items, the Completed transition, the cart
drain and the ownership grants are committed together or not at all.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import structlog
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from app.core.errors import Conflict, InvalidInput, InvalidState, NotFound, PaymentDeclined
from app.models.address import ShippingAddress
from app.models.cart import CartItem
from app.models.checkout import CheckoutSession
from app.models.order import Order, OrderStatus
from app.models.payment import Payment, PaymentMethod
from app.services.address import AddressData, AddressService
from app.services.cart import CartLine, CartService, cart_total
from app.services.catalog import BookCatalog
from app.services.order import OrderLedger
from app.services.ownership import OwnershipLedger
from app.services.payment import PaymentGateway, get_payment_gateway

logger = structlog.get_logger(__name__)


@dataclass
class PaymentOutcome:
    order: Order
    payment: Payment


@dataclass
class SessionStatus:
    user_id: int
    cart_id: Optional[int]
    items: List[CartLine] = field(default_factory=list)
    total_amount: Decimal = Decimal("0.00")
    shipping_addresses: List[ShippingAddress] = field(default_factory=list)
    shipping_address_id: Optional[int] = None
    current_order_id: Optional[int] = None

    @property
    def total_items_count(self) -> int:
        return sum(line.quantity for line in self.items)


class CheckoutService:
    def __init__(self, session: Session, gateway: Optional[PaymentGateway] = None):
        self.session = session
        self.gateway = gateway or get_payment_gateway()
        self.carts = CartService(session)
        self.addresses = AddressService(session)
        self.orders = OrderLedger(session)
        self.catalog = BookCatalog(session)
        self.ownership = OwnershipLedger(session)

    # -- helpers ---------------------------------------------------------

    def _find_checkout(self, user_id: int) -> Optional[CheckoutSession]:
        return self.session.exec(select(CheckoutSession).where(CheckoutSession.user_id == user_id)).first()

    def _get_or_create_checkout(self, user_id: int) -> CheckoutSession:
        checkout = self._find_checkout(user_id)
        if checkout:
            return checkout
        checkout = CheckoutSession(user_id=user_id)
        self.session.add(checkout)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            return self._find_checkout(user_id)
        self.session.refresh(checkout)
        return checkout

    def _require_cart_lines(self, user_id: int, action: str):
        cart = self.carts.get_or_create_cart(user_id)
        lines = self.carts.list_items(cart.id)
        if not lines:
            raise InvalidState(f"Your cart is empty. Cannot {action}.", cart_id=cart.id)
        return cart, lines

    def _priced_cart_items(self, cart_id: int) -> Tuple[List[CartItem], Dict[int, Decimal]]:
        """Raw cart rows with the current price of each book.

        Every row must still resolve to a catalog book; one that does not
        raises NotFound instead of being left out of the total.
        """
        cart_items = self.carts.get_items(cart_id)
        prices = self.catalog.get_prices(item.book_id for item in cart_items)
        for item in cart_items:
            if item.book_id not in prices:
                raise NotFound(f"Book {item.book_id} not found", book_id=item.book_id)
        return cart_items, prices

    @staticmethod
    def _already_paid(order: Order) -> InvalidState:
        return InvalidState(
            "An order is already paid. Confirm it before starting a new payment.",
            orderId=order.id,
            status=order.status.value,
        )

    def _abandon_live_order(self, checkout: CheckoutSession):
        """Abandon the session's unpaid order. A paid one raises InvalidState."""
        if not checkout.order_id:
            return
        previous = self.orders.get_by_id(checkout.order_id)
        if not previous or previous.status.is_terminal:
            return
        if previous.status == OrderStatus.PAYMENT_SUCCESS:
            raise self._already_paid(previous)
        try:
            self.orders.update_status(
                previous.id, OrderStatus.ABANDONED, expected_status=previous.status, commit=False
            )
        except InvalidState:
            # Moved by a concurrent request; update_status refreshed it
            if previous.status == OrderStatus.PAYMENT_SUCCESS:
                raise self._already_paid(previous)
            logger.info("previous_order_already_moved", order_id=previous.id, status=previous.status.value)

    # -- steps -----------------------------------------------------------

    def set_shipping_information(
        self,
        user_id: int,
        address_id: Optional[int] = None,
        address: Optional[AddressData] = None,
    ) -> ShippingAddress:
        """Select an owned address or save a new one for this checkout."""
        if address_id is None and address is None:
            raise InvalidInput("Provide an existing addressId or the full details of a new address.")

        self._require_cart_lines(user_id, "start checkout")
        checkout = self._get_or_create_checkout(user_id)

        try:
            if address_id is not None:
                selected = self.addresses.get_owned_address(user_id, address_id)
            else:
                selected = self.addresses.save_address(user_id, address, commit=False)

            checkout.shipping_address_id = selected.id
            checkout.updated_at = datetime.utcnow()
            self.session.add(checkout)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(selected)
        logger.info("checkout_shipping_selected", user_id=user_id, address_id=selected.id)
        return selected

    def set_payment_method(
        self,
        user_id: int,
        payment_method,
        shipping_address_id: Optional[int] = None,
    ) -> PaymentOutcome:
        """Create a Pending order for the current cart and run the payment.

        Raises PaymentDeclined (after recording the failed payment) when the
        gateway does not approve. The order and payment ids travel in the
        error so the client can retry.
        """
        method = PaymentMethod.parse(payment_method)
        if method is None:
            raise InvalidInput(
                f"Unsupported payment method: {payment_method}",
                allowed=[m.value for m in PaymentMethod],
            )

        cart, _ = self._require_cart_lines(user_id, "proceed to payment")
        checkout = self._get_or_create_checkout(user_id)

        if shipping_address_id is not None:
            self.addresses.get_owned_address(user_id, shipping_address_id)
        else:
            shipping_address_id = checkout.shipping_address_id

        # Fresh catalog prices; they are frozen only at confirmation
        cart_items, prices = self._priced_cart_items(cart.id)
        total = sum((prices[item.book_id] * item.quantity for item in cart_items), Decimal("0.00"))

        try:
            self._abandon_live_order(checkout)
            order = self.orders.create_order(user_id, total, shipping_address_id, commit=False)
            payment = self.orders.create_payment(user_id, order.id, method, total, commit=False)
            checkout.order_id = order.id
            checkout.shipping_address_id = shipping_address_id
            checkout.updated_at = datetime.utcnow()
            self.session.add(checkout)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        result = self.gateway.authorize(method, total)

        try:
            payment = self.orders.update_payment(
                payment.id,
                commit=False,
                payment_status=result.status,
                transaction_id=result.transaction_id,
                error_message=result.error_message,
            )
            new_status = OrderStatus.PAYMENT_SUCCESS if result.approved else OrderStatus.PAYMENT_FAILED
            order = self.orders.update_status(
                order.id, new_status, payment_id=payment.id, expected_status=OrderStatus.PENDING, commit=False
            )
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(order)
        self.session.refresh(payment)
        logger.info(
            "checkout_payment_processed",
            user_id=user_id,
            cart_id=cart.id,
            order_id=order.id,
            payment_id=payment.id,
            status=order.status.value,
        )

        if not result.approved:
            raise PaymentDeclined(
                "Payment failed. Please try again.",
                orderId=order.id,
                paymentId=payment.id,
                status=order.status.value,
            )
        return PaymentOutcome(order=order, payment=payment)

    def confirm_order(self, user_id: int, order_id: int) -> Order:
        """Freeze prices into order items, complete the order, drain the cart and grant ownership."""
        order = self.orders.get_owned_order(user_id, order_id)
        if order.status != OrderStatus.PAYMENT_SUCCESS:
            raise InvalidState(
                f"The order is not ready to be confirmed (status: {order.status.value}).",
                order_id=order.id,
                status=order.status.value,
            )

        cart = self.carts.get_or_create_cart(user_id)
        # Fails closed: a book missing from the catalog aborts the whole confirmation
        cart_items, prices = self._priced_cart_items(cart.id)
        if not cart_items:
            raise InvalidState("Your cart is empty. Cannot confirm an order without items.", order_id=order.id)

        items = [
            {
                "book_id": item.book_id,
                "quantity": item.quantity,
                "price_at_purchase": prices[item.book_id],
            }
            for item in cart_items
        ]

        try:
            self.orders.add_order_items(order.id, items, commit=False)
            order = self.orders.update_status(
                order.id, OrderStatus.COMPLETED, expected_status=OrderStatus.PAYMENT_SUCCESS, commit=False
            )
            self.carts.clear_cart(cart.id, commit=False)
            for item in items:
                self.ownership.grant_ownership(user_id, item["book_id"], order_id=order.id)

            checkout = self._find_checkout(user_id)
            if checkout and checkout.order_id == order.id:
                checkout.order_id = None
                checkout.updated_at = datetime.utcnow()
                self.session.add(checkout)

            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            logger.warning("checkout_confirm_conflict", user_id=user_id, order_id=order_id, error=str(exc.orig))
            raise Conflict("The order conflicts with existing records (already purchased?)", order_id=order_id)
        except Exception:
            self.session.rollback()
            raise

        self.session.refresh(order)
        logger.info("checkout_order_confirmed", user_id=user_id, order_id=order.id, items=len(items))
        return order

    def get_session_status(self, user_id: int) -> SessionStatus:
        """Read-only snapshot: cart contents, total, addresses and the live order."""
        cart = self.carts.find_cart(user_id)
        lines = self.carts.list_items(cart.id) if cart else []
        checkout = self._find_checkout(user_id)

        return SessionStatus(
            user_id=user_id,
            cart_id=cart.id if cart else None,
            items=lines,
            total_amount=cart_total(lines),
            shipping_addresses=self.addresses.list_addresses(user_id),
            shipping_address_id=checkout.shipping_address_id if checkout else None,
            current_order_id=checkout.order_id if checkout else None,
        )
