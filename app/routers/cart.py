from typing import List, Optional
from decimal import Decimal
from datetime import datetime
from fastapi import APIRouter, Depends
from sqlmodel import Session
from pydantic import BaseModel, ConfigDict, Field
from app.db.session import get_session
from app.core.errors import NotFound
from app.models.cart import CartItem
from app.models.user import User
from app.routers.auth import get_current_user
from app.services.cart import CartLine, CartService, cart_total
from app.services.catalog import BookCatalog

router = APIRouter()

class CartItemCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    book_id: int = Field(alias="bookId")
    quantity: int = 1

class CartItemUpdate(BaseModel):
    quantity: int

class CartItemResponse(BaseModel):
    cart_item_id: int
    cart_id: int
    book_id: int
    quantity: int
    added_at: datetime

    @classmethod
    def from_item(cls, item: CartItem) -> "CartItemResponse":
        return cls(
            cart_item_id=item.id,
            cart_id=item.cart_id,
            book_id=item.book_id,
            quantity=item.quantity,
            added_at=item.added_at,
        )

class CartContent(BaseModel):
    cart_id: int
    items: List[CartLine]
    total_items_count: int
    total_amount: Decimal

class CartResponse(BaseModel):
    message: str
    cart: CartContent

class CartItemMutationResponse(BaseModel):
    message: str
    cartItem: Optional[CartItemResponse] = None
    removed: bool = False

def get_cart_service(session: Session = Depends(get_session)) -> CartService:
    return CartService(session)

def get_book_catalog(session: Session = Depends(get_session)) -> BookCatalog:
    return BookCatalog(session)

@router.get("/", response_model=CartResponse)
def get_cart(current_user: User = Depends(get_current_user), service: CartService = Depends(get_cart_service)):
    """Get the user's cart with current book details"""
    cart = service.get_or_create_cart(current_user.id)
    lines = service.list_items(cart.id)
    return CartResponse(
        message="Cart retrieved successfully.",
        cart=CartContent(
            cart_id=cart.id,
            items=lines,
            total_items_count=sum(line.quantity for line in lines),
            total_amount=cart_total(lines),
        ),
    )

@router.post("/items", response_model=CartItemMutationResponse)
def add_item_to_cart(
    body: CartItemCreate,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
    catalog: BookCatalog = Depends(get_book_catalog),
):
    """Add a book to the cart, summing quantities on repeat adds"""
    catalog.find_book_by_id(body.book_id)
    cart = service.get_or_create_cart(current_user.id)
    item = service.add_or_update_item(cart.id, body.book_id, body.quantity)
    return CartItemMutationResponse(
        message="Book added to cart.",
        cartItem=CartItemResponse.from_item(item),
    )

@router.put("/items/{book_id}", response_model=CartItemMutationResponse)
def update_cart_item(
    book_id: int,
    body: CartItemUpdate,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    """Overwrite the quantity of a book in the cart; zero removes it"""
    cart = service.get_or_create_cart(current_user.id)
    item = service.set_item_quantity(cart.id, book_id, body.quantity)
    if item is None:
        return CartItemMutationResponse(message="Book removed from cart.", removed=True)
    return CartItemMutationResponse(
        message="Cart quantity updated.",
        cartItem=CartItemResponse.from_item(item),
    )

@router.delete("/items/{book_id}", response_model=CartItemMutationResponse)
def delete_cart_item(
    book_id: int,
    current_user: User = Depends(get_current_user),
    service: CartService = Depends(get_cart_service),
):
    """Remove a book from the cart"""
    cart = service.get_or_create_cart(current_user.id)
    if not service.remove_item(cart.id, book_id):
        raise NotFound("Book not found in cart.", book_id=book_id)
    return CartItemMutationResponse(message="Book removed from cart.", removed=True)

@router.delete("/")
def clear_cart(current_user: User = Depends(get_current_user), service: CartService = Depends(get_cart_service)):
    """Clear the entire cart"""
    cart = service.get_or_create_cart(current_user.id)
    removed = service.clear_cart(cart.id)
    return {"message": "Cart cleared.", "removed": removed}
