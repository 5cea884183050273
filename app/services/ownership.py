from typing import List, Optional
from sqlmodel import Session, select
from app.core.errors import Conflict
from app.models.ownership import UserBook

class OwnershipLedger:
    def __init__(self, session: Session):
        self.session = session

    def owns(self, user_id: int, book_id: int) -> bool:
        return self.session.exec(
            select(UserBook).where(UserBook.user_id == user_id, UserBook.book_id == book_id)
        ).first() is not None

    def grant_ownership(self, user_id: int, book_id: int, order_id: Optional[int] = None) -> UserBook:
        """Stage an ownership row. The caller owns the transaction and commits."""
        if self.owns(user_id, book_id):
            raise Conflict(f"Book {book_id} is already owned by this user", book_id=book_id)

        entry = UserBook(user_id=user_id, book_id=book_id, order_id=order_id)
        self.session.add(entry)
        return entry

    def list_books(self, user_id: int) -> List[UserBook]:
        return self.session.exec(
            select(UserBook).where(UserBook.user_id == user_id).order_by(UserBook.purchased_at.desc())
        ).all()
