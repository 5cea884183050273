# Import all models to register them with SQLModel
from app.models.user import User
from app.models.book import Book
from app.models.cart import Cart, CartItem
from app.models.address import ShippingAddress
from app.models.order import Order, OrderItem, OrderStatus
from app.models.payment import Payment, PaymentMethod, PaymentStatus
from app.models.ownership import UserBook
from app.models.checkout import CheckoutSession

__all__ = [
    "User",
    "Book",
    "Cart",
    "CartItem",
    "ShippingAddress",
    "Order",
    "OrderItem",
    "OrderStatus",
    "Payment",
    "PaymentMethod",
    "PaymentStatus",
    "UserBook",
    "CheckoutSession",
]
