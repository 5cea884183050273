from typing import List, Optional
from decimal import Decimal
from fastapi import APIRouter, Depends
from sqlmodel import Session
from pydantic import BaseModel, ConfigDict, Field
from app.db.session import get_session
from app.core.errors import InvalidInput
from app.models.address import ShippingAddress
from app.models.user import User
from app.routers.auth import get_current_user
from app.services.address import AddressData, AddressService
from app.services.cart import CartLine
from app.services.checkout import CheckoutService
from app.services.payment import PaymentGateway, get_payment_gateway

router = APIRouter()

class ShippingRequest(BaseModel):
    """Either an existing ``addressId`` or the fields of a new address."""
    model_config = ConfigDict(populate_by_name=True)

    address_id: Optional[int] = Field(default=None, alias="addressId")
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    is_default: bool = False

    def new_address(self) -> Optional[AddressData]:
        required = [self.address_line1, self.city, self.province, self.postal_code, self.country]
        if not all(value and value.strip() for value in required):
            return None
        return AddressData(
            address_line1=self.address_line1,
            address_line2=self.address_line2,
            city=self.city,
            province=self.province,
            postal_code=self.postal_code,
            country=self.country,
            is_default=self.is_default,
        )

class PaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    payment_method: Optional[str] = Field(default=None, alias="paymentMethod")
    shipping_address_id: Optional[int] = Field(default=None, alias="shippingAddressId")

class ConfirmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: Optional[int] = Field(default=None, alias="orderId")

class ShippingResponse(BaseModel):
    message: str
    shippingAddressId: int

class PaymentResponse(BaseModel):
    message: str
    orderId: int
    paymentId: int
    status: str

class ConfirmResponse(BaseModel):
    message: str
    orderId: int
    status: str

class SessionCart(BaseModel):
    cart_id: Optional[int]
    items: List[CartLine]
    total_items_count: int
    total_amount: Decimal

class SessionResponse(BaseModel):
    message: str
    userId: int
    cart: SessionCart
    shippingAddresses: List[ShippingAddress]
    shippingAddressId: Optional[int] = None
    currentOrderId: Optional[int] = None

def get_checkout_service(
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> CheckoutService:
    return CheckoutService(session, gateway=gateway)

def get_address_service(session: Session = Depends(get_session)) -> AddressService:
    return AddressService(session)

@router.post("/shipping", response_model=ShippingResponse)
def set_shipping_information(
    body: ShippingRequest,
    current_user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Select an existing shipping address or save a new one"""
    new_address = None
    if body.address_id is None:
        new_address = body.new_address()
        if new_address is None:
            raise InvalidInput("Provide an existing addressId or the full details of a new address.")

    address = service.set_shipping_information(current_user.id, address_id=body.address_id, address=new_address)
    message = (
        "Shipping address selected."
        if body.address_id is not None
        else "New shipping address saved and selected."
    )
    return ShippingResponse(message=message, shippingAddressId=address.id)

@router.post("/payment", response_model=PaymentResponse)
def set_payment_method(
    body: PaymentRequest,
    current_user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Create the order for the current cart and run the (simulated) payment"""
    if not body.payment_method:
        raise InvalidInput("A payment method is required.")

    outcome = service.set_payment_method(
        current_user.id,
        body.payment_method,
        shipping_address_id=body.shipping_address_id,
    )
    return PaymentResponse(
        message="Payment method recorded and payment succeeded.",
        orderId=outcome.order.id,
        paymentId=outcome.payment.id,
        status=outcome.order.status.value,
    )

@router.post("/confirm", response_model=ConfirmResponse)
def confirm_order(
    body: ConfirmRequest,
    current_user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Finalize a paid order"""
    if body.order_id is None:
        raise InvalidInput("An orderId is required for confirmation.")

    order = service.confirm_order(current_user.id, body.order_id)
    return ConfirmResponse(message="Order completed successfully!", orderId=order.id, status=order.status.value)

@router.get("/session", response_model=SessionResponse)
def get_checkout_session_status(
    current_user: User = Depends(get_current_user),
    service: CheckoutService = Depends(get_checkout_service),
):
    """Current cart, total and shipping addresses"""
    status = service.get_session_status(current_user.id)
    return SessionResponse(
        message="Current checkout session state.",
        userId=status.user_id,
        cart=SessionCart(
            cart_id=status.cart_id,
            items=status.items,
            total_items_count=status.total_items_count,
            total_amount=status.total_amount,
        ),
        shippingAddresses=status.shipping_addresses,
        shippingAddressId=status.shipping_address_id,
        currentOrderId=status.current_order_id,
    )

@router.get("/addresses", response_model=List[ShippingAddress])
def list_shipping_addresses(
    current_user: User = Depends(get_current_user),
    service: AddressService = Depends(get_address_service),
):
    return service.list_addresses(current_user.id)

@router.put("/addresses/{address_id}/default", response_model=ShippingAddress)
def set_default_address(
    address_id: int,
    current_user: User = Depends(get_current_user),
    service: AddressService = Depends(get_address_service),
):
    return service.set_default(current_user.id, address_id)
