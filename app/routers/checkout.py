# app/routers/checkout.py
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from app.core.auth import get_current_user
from app.core.config import get_settings
from app.database import get_session
from app.models.user import User
from app.repositories.address_repo import AddressRepository
from app.repositories.cart_repo import CartRepository
from app.repositories.guest_repo import GuestRepository
from app.repositories.order_repo import OrderRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.order import CheckoutData, CheckoutResult
from app.services.address_service import AddressService
from app.services.cart_service import CartService
from app.services.checkout_service import (
    AUTH_REQUIRED,
    CheckoutService,
    CheckoutSessionStore,
)
from app.services.order_service import OrderService

router = APIRouter(prefix="/checkout", tags=["Checkout"])

settings = get_settings()

store = CheckoutSessionStore(ttl_minutes=settings.CHECKOUT_SESSION_TTL_MINUTES)
service = CheckoutService(
    CartService(CartRepository(), ProductRepository(), GuestRepository()),
    AddressService(AddressRepository()),
    OrderService(OrderRepository()),
    store,
)


def _respond(
    response: Response,
    result: CheckoutResult,
    success_status: int = status.HTTP_200_OK,
) -> CheckoutResult:
    """
    Map a CheckoutResult to its HTTP status: 401 when the caller is not
    signed in, 400 for any other failure.
    """
    if result.success:
        response.status_code = success_status
    elif result.error == AUTH_REQUIRED:
        response.status_code = status.HTTP_401_UNAUTHORIZED
    else:
        response.status_code = status.HTTP_400_BAD_REQUEST
    return result


@router.post("/sessions", response_model=CheckoutResult)
def create_checkout_session(
    response: Response,
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
):
    """
    Start checkout: snapshot the cart, totals and saved addresses.

    The returned session id is valid for CHECKOUT_SESSION_TTL_MINUTES.
    """
    result = service.create_checkout_session(session, current_user)
    return _respond(response, result, status.HTTP_201_CREATED)


@router.get("/sessions/{session_id}", response_model=CheckoutResult)
def get_checkout_session(
    session_id: str,
    response: Response,
    current_user: User | None = Depends(get_current_user),
):
    return _respond(response, service.get_checkout_session(current_user, session_id))


@router.delete("/sessions/{session_id}", response_model=CheckoutResult)
def delete_checkout_session(
    session_id: str,
    response: Response,
    current_user: User | None = Depends(get_current_user),
):
    return _respond(response, service.delete_checkout_session(current_user, session_id))


@router.post("/sessions/{session_id}/orders", response_model=CheckoutResult)
def place_order(
    session_id: str,
    payload: CheckoutData,
    response: Response,
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
):
    """
    Place the order for a checkout session.

    On success the order is returned and the cart is emptied. On failure
    nothing is written and `error` / `field_errors` explain why.
    """
    result = service.process_order(session, current_user, session_id, payload)
    return _respond(response, result, status.HTTP_201_CREATED)
