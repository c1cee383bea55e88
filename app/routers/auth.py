# app/routers/auth.py
import hmac

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials
from sqlmodel import Session

from app.core.auth import bearer_scheme, require_auth
from app.core.config import get_settings
from app.database import get_session
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.guest_repo import GuestRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    MessageResponse,
    SendEmailHookPayload,
    SignInRequest,
    SignUpRequest,
)
from app.schemas.cart import MergeResult
from app.services.auth_service import AuthService
from app.services.cart_service import CartService
from app.services.email_service import handle_send_email_hook

router = APIRouter(prefix="/auth", tags=["Auth"])

settings = get_settings()

cart_service = CartService(CartRepository(), ProductRepository(), GuestRepository())
service = AuthService(cart_service)


@router.post("/sign-up", response_model=AuthResponse)
def sign_up(
    payload: SignUpRequest,
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
):
    """
    Create an account with Supabase Auth.

    If a session is issued immediately, the guest cart is merged and the
    session cookie is set. Otherwise `email_verification_required=True`.
    """
    return service.sign_up(session, request, response, payload)


@router.post("/sign-in", response_model=AuthResponse)
def sign_in(
    payload: SignInRequest,
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
):
    """
    Sign in with email and password.

    The guest cart (if any) is merged before the response is returned.
    """
    return service.sign_in(session, request, response, payload)


@router.post("/sign-out", response_model=MessageResponse)
def sign_out(response: Response):
    service.sign_out(response)
    return MessageResponse(message="Signed out")


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(payload: ForgotPasswordRequest):
    return MessageResponse(message=service.forgot_password(payload))


@router.post("/merge-guest-cart", response_model=MergeResult)
def merge_guest_cart(
    request: Request,
    response: Response,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Fold the caller's guest cart into their user cart.

    For clients that authenticated directly against Supabase.
    """
    merged = service.merge_guest_cart(session, request, response, current_user)
    return MergeResult(merged=merged)


@router.post("/hooks/send-email", response_model=MessageResponse)
def send_email_hook(
    payload: SendEmailHookPayload,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
):
    """
    Supabase Auth "send email" hook.

    Supabase calls this with the shared secret as a bearer token; the
    matching verification / reset email is sent over SMTP.
    """
    secret = settings.SEND_EMAIL_HOOK_SECRET
    if not secret or credentials is None or not hmac.compare_digest(
        credentials.credentials, secret
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid hook secret",
        )

    handle_send_email_hook(payload)
    return MessageResponse(message="Email sent")
