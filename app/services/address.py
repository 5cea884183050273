from typing import List, Optional
import structlog
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select, update
from app.core.errors import NotFound
from app.models.address import ShippingAddress

logger = structlog.get_logger(__name__)

class AddressData(BaseModel):
    address_line1: str
    address_line2: Optional[str] = None
    city: str
    province: str
    postal_code: str
    country: str
    is_default: bool = False

    @field_validator("address_line1", "city", "province", "postal_code", "country")
    @classmethod
    def not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

class AddressService:
    def __init__(self, session: Session):
        self.session = session

    def list_addresses(self, user_id: int) -> List[ShippingAddress]:
        """Default address first, then newest."""
        return self.session.exec(
            select(ShippingAddress)
            .where(ShippingAddress.user_id == user_id)
            .order_by(ShippingAddress.is_default.desc(), ShippingAddress.created_at.desc(), ShippingAddress.id.desc())
        ).all()

    def get_owned_address(self, user_id: int, address_id: int) -> ShippingAddress:
        address = self.session.get(ShippingAddress, address_id)
        if not address or address.user_id != user_id:
            raise NotFound("Shipping address not found for this user", address_id=address_id)
        return address

    def _clear_default(self, user_id: int, keep_id: Optional[int] = None):
        statement = update(ShippingAddress).where(
            ShippingAddress.user_id == user_id,
            ShippingAddress.is_default == True,  # noqa: E712
        )
        if keep_id is not None:
            statement = statement.where(ShippingAddress.id != keep_id)
        self.session.exec(statement.values(is_default=False))

    def save_address(self, user_id: int, data: AddressData, commit: bool = True) -> ShippingAddress:
        """Persist a new address. Requesting default unsets the previous one in the same transaction."""
        is_default = data.is_default
        if not is_default:
            # The first address a user saves becomes the default
            has_any = self.session.exec(
                select(ShippingAddress.id).where(ShippingAddress.user_id == user_id)
            ).first()
            is_default = has_any is None

        try:
            if is_default:
                self._clear_default(user_id)

            address = ShippingAddress(
                user_id=user_id,
                address_line1=data.address_line1,
                address_line2=data.address_line2,
                city=data.city,
                province=data.province,
                postal_code=data.postal_code,
                country=data.country,
                is_default=is_default,
            )
            self.session.add(address)
            if commit:
                self.session.commit()
                self.session.refresh(address)
            else:
                self.session.flush()
        except Exception:
            self.session.rollback()
            raise

        logger.info("shipping_address_saved", user_id=user_id, address_id=address.id, is_default=is_default)
        return address

    def set_default(self, user_id: int, address_id: int) -> ShippingAddress:
        address = self.get_owned_address(user_id, address_id)
        try:
            self._clear_default(user_id, keep_id=address.id)
            address.is_default = True
            self.session.add(address)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(address)
        return address
