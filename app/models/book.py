from typing import Optional
from decimal import Decimal
from datetime import datetime
from sqlmodel import Field, SQLModel

class Book(SQLModel, table=True):
    """Catalog entry. Owned by the catalog, read-only for checkout."""
    id: Optional[int] = Field(default=None, primary_key=True)

    # Basic Info
    title: str = Field(index=True)
    author_name: str

    # Pricing
    price: Decimal = Field(default=0, max_digits=10, decimal_places=2, ge=0)

    # Images
    cover_image_url: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
