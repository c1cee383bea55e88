# app/core/identity.py
"""
Cart ownership identity.

Every cart request is owned by exactly one of:
  - UserIdentity:  an authenticated Supabase user (session cookie / bearer)
  - GuestIdentity: an anonymous shopper (guest_session cookie)

`resolve_identity` works this out once per request and the result is
passed explicitly to the cart service.
"""
import uuid
from dataclasses import dataclass
from typing import Union

from fastapi import Depends, Request, Response
from sqlmodel import Session

from app.core.auth import get_current_user
from app.core.config import get_settings
from app.database import get_session
from app.models.user import User
from app.repositories.guest_repo import GuestRepository

settings = get_settings()

guest_repo = GuestRepository()


@dataclass(frozen=True)
class UserIdentity:
    user_id: uuid.UUID


@dataclass(frozen=True)
class GuestIdentity:
    guest_id: uuid.UUID
    session_token: str


SessionIdentity = Union[UserIdentity, GuestIdentity]


def set_guest_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.GUEST_COOKIE_NAME,
        value=token,
        max_age=settings.GUEST_SESSION_MAX_AGE,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="strict",
        path="/",
    )


def clear_guest_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.GUEST_COOKIE_NAME, path="/")


def read_guest_token(request: Request) -> str | None:
    return request.cookies.get(settings.GUEST_COOKIE_NAME) or None


def resolve_identity(
    request: Request,
    response: Response,
    user: User | None = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> SessionIdentity:
    """
    FastAPI dependency returning the cart owner for this request.

    If the caller is neither signed in nor carrying a live guest cookie,
    a new guest session is created and its cookie is set on the response.
    """
    if user is not None:
        return UserIdentity(user_id=user.id)

    token = read_guest_token(request)
    guest = guest_repo.get_active_by_token(session, token) if token else None

    if guest is None:
        guest = guest_repo.create(
            session,
            token=guest_repo.new_token(),
            max_age_seconds=settings.GUEST_SESSION_MAX_AGE,
        )
        set_guest_cookie(response, guest.session_token)

    return GuestIdentity(guest_id=guest.id, session_token=guest.session_token)
