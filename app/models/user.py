# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent user profile for the store.

    Identity:
      - id: MUST match Supabase auth.users.id (UUID from JWT "sub")

    Role:
      - "user" | "admin"
      - anonymous shoppers are tracked by the `guests` table instead.

    Passwords, email verification and sessions live in Supabase Auth.
    We only mirror identity, name, and application role.
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        primary_key=True,
        index=True,
        description="Matches Supabase auth.users.id",
    )

    email: str = Field(
        unique=True,
        index=True,
        description="Email from Supabase auth.users",
    )

    name: str = Field(
        max_length=100,
        description="Customer display name; first part of email by default",
    )

    # Application role (not Supabase RLS role)
    role: str = Field(
        default="user",
        index=True,
        description="Application role: user | admin",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )


class Guest(SQLModel, table=True):
    """
    Anonymous shopper identified by the guest_session cookie.

    The cookie holds `session_token`; the row expires after
    GUEST_SESSION_MAX_AGE and is deleted the next time it is presented.
    """

    __tablename__ = "guests"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    session_token: str = Field(
        unique=True,
        index=True,
        description="Opaque token stored in the guest cookie",
    )

    expires_at: datetime = Field(
        description="When the guest session stops being valid (UTC)",
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
