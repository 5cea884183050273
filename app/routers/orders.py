from typing import List, Optional
from decimal import Decimal
from datetime import datetime
from fastapi import APIRouter, Depends
from sqlmodel import Session
from pydantic import BaseModel
from app.db.session import get_session
from app.models.book import Book
from app.models.order import Order
from app.models.user import User
from app.routers.auth import get_current_user
from app.services.order import OrderLedger
from app.services.ownership import OwnershipLedger

router = APIRouter()

class OrderSummary(BaseModel):
    orderId: int
    status: str
    total_amount: Decimal
    shipping_address_id: Optional[int]
    payment_id: Optional[int]
    created_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderSummary":
        return cls(
            orderId=order.id,
            status=order.status.value,
            total_amount=order.total_amount,
            shipping_address_id=order.shipping_address_id,
            payment_id=order.payment_id,
            created_at=order.created_at,
        )

class OrderItemDetail(BaseModel):
    book_id: int
    title: Optional[str]
    quantity: int
    price_at_purchase: Decimal
    total: Decimal

class PaymentDetail(BaseModel):
    id: int
    method: str
    amount: Decimal
    status: str
    transaction_id: Optional[str]
    error_message: Optional[str]
    created_at: datetime

class OrderDetail(OrderSummary):
    items: List[OrderItemDetail]
    payments: List[PaymentDetail]

class OwnedBook(BaseModel):
    book_id: int
    title: Optional[str]
    author_name: Optional[str]
    order_id: Optional[int]
    purchased_at: datetime

def get_order_ledger(session: Session = Depends(get_session)) -> OrderLedger:
    return OrderLedger(session)

@router.get("/", response_model=List[OrderSummary])
def list_orders(
    current_user: User = Depends(get_current_user),
    ledger: OrderLedger = Depends(get_order_ledger)
):
    return [OrderSummary.from_order(order) for order in ledger.list_orders(current_user.id)]

@router.get("/library", response_model=List[OwnedBook])
def list_owned_books(
    current_user: User = Depends(get_current_user),
    session: Session = Depends(get_session)
):
    """Books the user owns through completed orders, newest purchase first"""
    owned = []
    for entry in OwnershipLedger(session).list_books(current_user.id):
        book = session.get(Book, entry.book_id)
        owned.append(OwnedBook(
            book_id=entry.book_id,
            title=book.title if book else None,
            author_name=book.author_name if book else None,
            order_id=entry.order_id,
            purchased_at=entry.purchased_at,
        ))
    return owned

@router.get("/{id}", response_model=OrderDetail)
def get_order(
    id: int,
    current_user: User = Depends(get_current_user),
    ledger: OrderLedger = Depends(get_order_ledger)
):
    # Foreign orders answer 404 like missing ones
    order = ledger.get_owned_order(current_user.id, id)

    items_with_details = []
    for item in sorted(order.items, key=lambda item: item.id):
        book = ledger.session.get(Book, item.book_id)
        items_with_details.append(OrderItemDetail(
            book_id=item.book_id,
            title=book.title if book else None,
            quantity=item.quantity,
            price_at_purchase=item.price_at_purchase,
            total=item.price_at_purchase * item.quantity,
        ))

    payment_details = [
        PaymentDetail(
            id=payment.id,
            method=payment.payment_method.value,
            amount=payment.amount,
            status=payment.payment_status.value,
            transaction_id=payment.transaction_id,
            error_message=payment.error_message,
            created_at=payment.created_at,
        )
        for payment in ledger.get_payments(order.id)
    ]

    summary = OrderSummary.from_order(order)
    return OrderDetail(**summary.model_dump(), items=items_with_details, payments=payment_details)
