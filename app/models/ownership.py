from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel, UniqueConstraint

class UserBook(SQLModel, table=True):
    """Permanent record that a user bought a book."""
    __table_args__ = (UniqueConstraint("user_id", "book_id", name="uq_userbook_user_book"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    book_id: int = Field(foreign_key="book.id")
    order_id: Optional[int] = Field(default=None, foreign_key="order.id")

    purchased_at: datetime = Field(default_factory=datetime.utcnow)
