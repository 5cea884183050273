from typing import List, Optional
from decimal import Decimal
from datetime import datetime
import structlog
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select, delete
from app.core.errors import InvalidInput, NotFound
from app.models.book import Book
from app.models.cart import Cart, CartItem

logger = structlog.get_logger(__name__)

class CartLine(BaseModel):
    """A cart item joined with the current catalog data of its book."""
    cart_item_id: int
    book_id: int
    quantity: int
    added_at: datetime
    title: str
    author_name: str
    price: Decimal
    cover_image_url: Optional[str] = None

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

def cart_total(lines: List[CartLine]) -> Decimal:
    return sum((line.line_total for line in lines), Decimal("0.00"))

def _check_quantity(quantity, allow_zero: bool = False) -> int:
    # bool is an int subclass, reject it explicitly
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidInput("Quantity must be an integer")
    if quantity < 0 or (quantity == 0 and not allow_zero):
        raise InvalidInput(
            "Quantity must be zero or a positive integer" if allow_zero else "Quantity must be a positive integer"
        )
    return quantity

class CartService:
    def __init__(self, session: Session):
        self.session = session

    def get_or_create_cart(self, user_id: int) -> Cart:
        cart = self.find_cart(user_id)
        if cart:
            return cart

        cart = Cart(user_id=user_id)
        self.session.add(cart)
        try:
            self.session.commit()
        except IntegrityError:
            # Another request created it first
            self.session.rollback()
            return self.session.exec(select(Cart).where(Cart.user_id == user_id)).one()
        self.session.refresh(cart)
        logger.info("cart_created", user_id=user_id, cart_id=cart.id)
        return cart

    def find_cart(self, user_id: int) -> Optional[Cart]:
        return self.session.exec(select(Cart).where(Cart.user_id == user_id)).first()

    def get_items(self, cart_id: int) -> List[CartItem]:
        """Raw cart rows, not joined with the catalog."""
        return self.session.exec(
            select(CartItem).where(CartItem.cart_id == cart_id).order_by(CartItem.added_at.desc(), CartItem.id.desc())
        ).all()

    def get_item(self, cart_id: int, book_id: int) -> Optional[CartItem]:
        return self.session.exec(
            select(CartItem).where(CartItem.cart_id == cart_id, CartItem.book_id == book_id)
        ).first()

    def add_or_update_item(self, cart_id: int, book_id: int, quantity: int) -> CartItem:
        """Add a book to the cart. Repeated adds sum the quantities."""
        _check_quantity(quantity)

        item = self.get_item(cart_id, book_id)
        if item:
            item.quantity = item.quantity + quantity
        else:
            item = CartItem(cart_id=cart_id, book_id=book_id, quantity=quantity)
        self.session.add(item)
        try:
            self.session.commit()
        except IntegrityError:
            # Another request inserted the same book first; add onto its row
            self.session.rollback()
            item = self.get_item(cart_id, book_id)
            if item is None:
                raise
            item.quantity = item.quantity + quantity
            self.session.add(item)
            self.session.commit()
            logger.info("cart_item_insert_raced", cart_id=cart_id, book_id=book_id)
        self.session.refresh(item)
        return item

    def list_items(self, cart_id: int) -> List[CartLine]:
        """Items with current title/author/price/cover, most recently added first."""
        rows = self.session.exec(
            select(CartItem, Book)
            .join(Book, Book.id == CartItem.book_id)
            .where(CartItem.cart_id == cart_id)
            .order_by(CartItem.added_at.desc(), CartItem.id.desc())
        ).all()

        return [
            CartLine(
                cart_item_id=item.id,
                book_id=item.book_id,
                quantity=item.quantity,
                added_at=item.added_at,
                title=book.title,
                author_name=book.author_name,
                price=book.price,
                cover_image_url=book.cover_image_url,
            )
            for item, book in rows
        ]

    def set_item_quantity(self, cart_id: int, book_id: int, quantity: int) -> Optional[CartItem]:
        """Overwrite the quantity of an item. Zero removes it and returns None."""
        _check_quantity(quantity, allow_zero=True)

        if quantity == 0:
            if not self.remove_item(cart_id, book_id):
                raise NotFound(f"Book {book_id} is not in the cart", book_id=book_id)
            return None

        item = self.get_item(cart_id, book_id)
        if not item:
            raise NotFound(f"Book {book_id} is not in the cart", book_id=book_id)

        item.quantity = quantity
        self.session.add(item)
        self.session.commit()
        self.session.refresh(item)
        return item

    def remove_item(self, cart_id: int, book_id: int) -> bool:
        result = self.session.exec(
            delete(CartItem).where(CartItem.cart_id == cart_id, CartItem.book_id == book_id)
        )
        removed = result.rowcount > 0
        self.session.commit()
        return removed

    def clear_cart(self, cart_id: int, commit: bool = True) -> int:
        """Delete every item of the cart. The cart row itself is kept."""
        result = self.session.exec(delete(CartItem).where(CartItem.cart_id == cart_id))
        removed = result.rowcount
        if commit:
            self.session.commit()
        return removed
