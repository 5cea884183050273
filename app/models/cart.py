from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel, UniqueConstraint

class Cart(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # One cart per user, reused across checkouts
    user_id: int = Field(foreign_key="user.id", unique=True, index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)

class CartItem(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("cart_id", "book_id", name="uq_cartitem_cart_book"),)

    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    cart_id: int = Field(foreign_key="cart.id", index=True)
    book_id: int = Field(foreign_key="book.id")

    # Cart Details
    quantity: int = Field(default=1, ge=1)

    # Timestamps
    added_at: datetime = Field(default_factory=datetime.utcnow)
