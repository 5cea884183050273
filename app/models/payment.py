from typing import Optional
from decimal import Decimal
from datetime import datetime
from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Enum as SAEnum
from enum import Enum

class PaymentMethod(str, Enum):
    CREDIT_CARD = "CreditCard"
    PAYPAL = "PayPal"
    EWALLET = "EWallet"

    @classmethod
    def parse(cls, value) -> Optional["PaymentMethod"]:
        """Accepts canonical values and display spellings such as "Credit Card" or "E-Wallet"."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        key = value.replace(" ", "").replace("-", "").replace("_", "").lower()
        for method in cls:
            if method.value.lower() == key:
                return method
        return None

class PaymentStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    FAILED = "Failed"

class Payment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    # References
    user_id: int = Field(foreign_key="user.id", index=True)
    order_id: int = Field(foreign_key="order.id", index=True)

    # Payment Details
    amount: Decimal = Field(max_digits=10, decimal_places=2, ge=0)
    payment_method: PaymentMethod = Field(
        sa_column=Column(
            SAEnum(PaymentMethod, values_callable=lambda x: [e.value for e in x]),
            nullable=False,
        )
    )
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.PENDING,
        sa_column=Column(
            SAEnum(PaymentStatus, values_callable=lambda x: [e.value for e in x]),
            nullable=False,
        )
    )

    # Gateway Info
    transaction_id: Optional[str] = Field(default=None, index=True)
    error_message: Optional[str] = None  # For failed payments

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
