# app/routers/cart.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.identity import SessionIdentity, resolve_identity
from app.database import get_session
from app.repositories.cart_repo import CartRepository
from app.repositories.guest_repo import GuestRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import CartItemAdd, CartItemUpdate, CartSummary
from app.services.cart_service import CartService

router = APIRouter(prefix="/cart", tags=["Cart"])

cart_repo = CartRepository()
product_repo = ProductRepository()
guest_repo = GuestRepository()
service = CartService(cart_repo, product_repo, guest_repo)


@router.get("", response_model=CartSummary)
def get_cart(
    session: Session = Depends(get_session),
    identity: SessionIdentity = Depends(resolve_identity),
):
    """
    Get the caller's cart.

    Works for signed-in users and guests; a guest cookie is issued on
    first contact.
    """
    return service.get_cart(session, identity)


@router.post(
    "/items",
    response_model=CartSummary,
    status_code=status.HTTP_201_CREATED,
)
def add_cart_item(
    payload: CartItemAdd,
    session: Session = Depends(get_session),
    identity: SessionIdentity = Depends(resolve_identity),
):
    """
    Add a product (simple) or a variant (configurable) to the cart.

    Returns the updated cart.
    """
    return service.add_item(session, identity, payload)


@router.patch("/items/{item_id}", response_model=CartSummary)
def update_cart_item(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    session: Session = Depends(get_session),
    identity: SessionIdentity = Depends(resolve_identity),
):
    """
    Set the quantity of a cart row, clamped to available stock.
    """
    return service.update_quantity(session, identity, item_id, payload)


@router.delete("/items/{item_id}", response_model=CartSummary)
def remove_cart_item(
    item_id: uuid.UUID,
    session: Session = Depends(get_session),
    identity: SessionIdentity = Depends(resolve_identity),
):
    return service.remove_item(session, identity, item_id)


@router.delete("", response_model=CartSummary)
def clear_cart(
    session: Session = Depends(get_session),
    identity: SessionIdentity = Depends(resolve_identity),
):
    """
    Clear the entire cart.

    Returns an empty cart summary.
    """
    return service.clear_cart(session, identity)
