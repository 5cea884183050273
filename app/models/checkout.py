from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class CheckoutSession(SQLModel, table=True):
    """Server side record of where a user's checkout currently stands."""
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", unique=True, index=True)

    shipping_address_id: Optional[int] = Field(default=None, foreign_key="shippingaddress.id")
    order_id: Optional[int] = Field(default=None, foreign_key="order.id")

    updated_at: datetime = Field(default_factory=datetime.utcnow)
