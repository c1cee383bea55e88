# app/services/auth_service.py
import logging
import uuid

from fastapi import HTTPException, Request, Response, status
from sqlmodel import Session
from supabase import AuthError

from app.core.auth import provision_user
from app.core.config import get_settings
from app.core.identity import clear_guest_cookie, read_guest_token
from app.core.supabase_client import supabase_public
from app.models.user import User
from app.schemas.auth import (
    AuthResponse,
    ForgotPasswordRequest,
    SignInRequest,
    SignUpRequest,
)
from app.schemas.user import UserRead
from app.services.cart_service import CartService

logger = logging.getLogger(__name__)

settings = get_settings()

FORGOT_PASSWORD_MESSAGE = (
    "If an account exists for this email, a password reset link has been sent."
)


def set_session_cookie(response: Response, access_token: str, max_age: int) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=access_token,
        max_age=max_age,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME, path="/")


class AuthService:
    """
    Thin layer over Supabase Auth.

    Supabase owns passwords, verification and tokens. This service:
      - forwards sign-up / sign-in / reset requests
      - stores the access token in the HTTP-only session cookie
      - provisions the local profile row
      - folds the caller's guest cart into the user's cart
    """

    def __init__(self, cart_service: CartService):
        self.cart_service = cart_service

    @staticmethod
    def _auth():
        return supabase_public().auth

    def merge_guest_cart(
        self,
        session: Session,
        request: Request,
        response: Response,
        user: User,
    ) -> bool:
        """
        Merge the guest cart named by the request's guest cookie into the
        user's cart and drop the cookie. Never raises.
        """
        token = read_guest_token(request)
        if not token:
            return False

        merged = self.cart_service.merge_guest_cart(session, token, user.id)
        clear_guest_cookie(response)
        return merged

    def _complete_sign_in(
        self,
        session: Session,
        request: Request,
        response: Response,
        auth_user,
        auth_session,
        name: str | None = None,
    ) -> AuthResponse:
        user = provision_user(session, uuid.UUID(str(auth_user.id)), auth_user.email)
        if name and user.name != name:
            user.name = name
            session.add(user)
            session.commit()
            session.refresh(user)

        set_session_cookie(response, auth_session.access_token, auth_session.expires_in)
        merged = self.merge_guest_cart(session, request, response, user)

        return AuthResponse(user=UserRead.model_validate(user), cart_merged=merged)

    def sign_up(
        self,
        session: Session,
        request: Request,
        response: Response,
        payload: SignUpRequest,
    ) -> AuthResponse:
        """
        Register with Supabase.

        When the project requires email confirmation Supabase returns no
        session; the caller is told to verify their email and no cookie is set.
        """
        credentials = {"email": payload.email, "password": payload.password}
        if payload.name:
            credentials["options"] = {"data": {"name": payload.name}}

        try:
            result = self._auth().sign_up(credentials)
        except AuthError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=exc.message,
            )

        if result.user is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Sign up failed",
            )
        if result.session is None:
            logger.info("Sign up for %s awaits email verification", payload.email)
            return AuthResponse(email_verification_required=True)

        return self._complete_sign_in(
            session, request, response, result.user, result.session, payload.name
        )

    def sign_in(
        self,
        session: Session,
        request: Request,
        response: Response,
        payload: SignInRequest,
    ) -> AuthResponse:
        try:
            result = self._auth().sign_in_with_password(
                {"email": payload.email, "password": payload.password}
            )
        except AuthError as exc:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=exc.message or "Invalid email or password",
            )

        if result.user is None or result.session is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password",
            )

        return self._complete_sign_in(
            session, request, response, result.user, result.session
        )

    def sign_out(self, response: Response) -> None:
        clear_session_cookie(response)

    def forgot_password(self, payload: ForgotPasswordRequest) -> str:
        """
        Ask Supabase to send a reset email. The answer is the same whether
        or not the account exists.
        """
        redirect_to = f"{settings.APP_URL.rstrip('/')}/reset-password"
        try:
            self._auth().reset_password_for_email(
                payload.email, {"redirect_to": redirect_to}
            )
        except AuthError:
            logger.exception("Password reset request failed for %s", payload.email)
        return FORGOT_PASSWORD_MESSAGE
