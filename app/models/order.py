from typing import List, Optional
from decimal import Decimal
from datetime import datetime
from sqlmodel import Field, Relationship, SQLModel, Column
from sqlalchemy import Enum as SAEnum
from enum import Enum

class OrderStatus(str, Enum):
    PENDING = "Pending"
    PAYMENT_SUCCESS = "Payment_Success"
    PAYMENT_FAILED = "Payment_Failed"
    COMPLETED = "Completed"
    ABANDONED = "Abandoned"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.ABANDONED)

class OrderItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    order_id: int = Field(foreign_key="order.id", index=True)
    book_id: int = Field(foreign_key="book.id")
    quantity: int = Field(ge=1)
    # Copied from the catalog at confirmation, never re-read
    price_at_purchase: Decimal = Field(max_digits=10, decimal_places=2)

class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    # Order Details
    total_amount: Decimal = Field(default=0, max_digits=10, decimal_places=2, ge=0)
    shipping_address_id: Optional[int] = Field(default=None, foreign_key="shippingaddress.id")

    # Order Status
    status: OrderStatus = Field(
        default=OrderStatus.PENDING,
        sa_column=Column(
            SAEnum(OrderStatus, values_callable=lambda x: [e.value for e in x]),
            nullable=False,
        )
    )

    # Payment Info (no FK: payment rows point back at the order)
    payment_id: Optional[int] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Relationships
    items: List["OrderItem"] = Relationship(sa_relationship_kwargs={"cascade": "all, delete-orphan"})
