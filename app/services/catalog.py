from typing import Dict, Iterable
from decimal import Decimal
from sqlmodel import Session, select
from app.core.errors import NotFound
from app.models.book import Book

class BookCatalog:
    """Read-only view of the book catalog used by the cart and checkout."""

    def __init__(self, session: Session):
        self.session = session

    def find_book_by_id(self, book_id: int) -> Book:
        book = self.session.get(Book, book_id)
        if not book:
            raise NotFound(f"Book {book_id} not found", book_id=book_id)
        return book

    def get_prices(self, book_ids: Iterable[int]) -> Dict[int, Decimal]:
        ids = set(book_ids)
        if not ids:
            return {}
        books = self.session.exec(select(Book).where(Book.id.in_(ids))).all()
        return {book.id: book.price for book in books}
