from typing import Optional
from datetime import datetime
from sqlmodel import Field, SQLModel

class ShippingAddress(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    address_line1: str
    address_line2: Optional[str] = None
    city: str
    province: str
    postal_code: str
    country: str

    # At most one default per user, see AddressService
    is_default: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
