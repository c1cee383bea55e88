# app/schemas/auth.py
from pydantic import EmailStr, ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.user import UserRead, _normalize_name


class SignUpRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    name: str | None = Field(default=None, max_length=100)

    @field_validator("name")
    @classmethod
    def normalize_name(cls, v: str | None) -> str | None:
        return _normalize_name(v)


class SignInRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1)


class ForgotPasswordRequest(SQLModel):
    model_config = ConfigDict(extra="forbid")

    email: EmailStr


class AuthResponse(SQLModel):
    """
    Result of sign-in / sign-up.

    - user is None when sign-up still needs email verification.
    - cart_merged reports whether a guest cart was folded into the
      user's cart during this request.
    """

    user: UserRead | None = None
    email_verification_required: bool = False
    cart_merged: bool = False


class MessageResponse(SQLModel):
    message: str


class HookUser(SQLModel):
    email: EmailStr


class HookEmailData(SQLModel):
    """
    `email_data` block of the Supabase "send email" hook payload.
    """

    token: str | None = None
    token_hash: str | None = None
    redirect_to: str | None = None
    email_action_type: str
    site_url: str | None = None


class SendEmailHookPayload(SQLModel):
    user: HookUser
    email_data: HookEmailData
