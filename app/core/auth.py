# app/core/auth.py
import uuid
from typing import Any

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session, select

from app.core.config import get_settings
from app.database import get_session
from app.models.user import User

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can fall back to the session cookie, then to "guest" mode.
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def _default_name_from_email(email: str) -> str:
    """
    Derive a default display name from email if the user has not
    completed their profile yet.
    """
    if "@" in email:
        return email.split("@", 1)[0]
    return email


def _extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    """
    Bearer header wins; otherwise use the HTTP-only session cookie.
    """
    if credentials is not None:
        return credentials.credentials
    return request.cookies.get(settings.SESSION_COOKIE_NAME)


def provision_user(session: Session, user_id: uuid.UUID, email: str) -> User:
    """
    Return the profile row for a Supabase user, creating it on first sight.

    Default role = "user" (admin must be manually promoted).
    """
    user = session.exec(select(User).where(User.id == user_id)).first()
    if user is None:
        user = User(
            id=user_id,
            email=email,
            name=_default_name_from_email(email),
            role="user",
        )
        session.add(user)
        session.commit()
        session.refresh(user)
    return user


def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User | None:
    """
    Resolve the current user from a Supabase JWT.

    Flow:
      1. No bearer header and no session cookie => guest => return None.
      2. Decode JWT => extract 'sub' (auth user id) and 'email'.
      3. Convert 'sub' to UUID to match User.id type.
      4. Find (or auto-provision) the user profile.

    Raises:
        HTTPException(401): if token is malformed or missing required claims.
    """
    token = _extract_token(request, credentials)
    if not token:
        return None  # guest mode

    payload = decode_access_token(token)
    sub = payload.get("sub")
    email = payload.get("email")

    if not sub or not email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub/email",
        )

    try:
        sub_uuid = uuid.UUID(sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    return provision_user(session, sub_uuid, email)


def require_auth(user: User | None = Depends(get_current_user)) -> User:
    """
    Enforce authentication.

    Raises:
        HTTPException(401): if user is None.
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Please sign in to continue.",
        )
    return user


def require_admin(user: User = Depends(require_auth)) -> User:
    """
    Enforce admin role.

    Raises:
        HTTPException(403): if role is not admin.
    """
    if user.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user
