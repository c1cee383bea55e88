# app/schemas/address.py
import re
import uuid
from typing import Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

AddressType = Literal["shipping", "billing"]

POSTAL_CODE_RE = re.compile(r"^\d{5}$")
# +92 300 1234567 / 03001234567 / 3001234567
PHONE_RE = re.compile(r"^(\+92|0)?3\d{9}$")


def _validate_postal_code(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Postal code is required")
    if not v.isdigit():
        raise ValueError("Postal code must contain only digits")
    if not POSTAL_CODE_RE.match(v):
        raise ValueError("Postal code must be exactly 5 digits")
    return v


def _validate_phone(v: str | None) -> str | None:
    if v is None or not v.strip():
        return None
    cleaned = re.sub(r"[\s-]", "", v)
    if not PHONE_RE.match(cleaned):
        raise ValueError(
            "Invalid phone format (e.g., +92 300 1234567 or 03001234567)"
        )
    return cleaned


class AddressBase(SQLModel):
    """
    Shared validation rules for address payloads.

    - full_name: 2..100 characters
    - line1: 5..200 characters (a complete street address)
    - postal_code: exactly 5 digits
    - phone: optional Pakistani mobile number
    """

    model_config = ConfigDict(extra="forbid")

    type: AddressType
    full_name: str = Field(min_length=2, max_length=100)
    line1: str = Field(min_length=5, max_length=200)
    line2: str | None = Field(default=None, max_length=200)
    city: str = Field(min_length=1)
    city_id: int | None = Field(default=None, gt=0)
    state: str = Field(min_length=1)
    state_id: int | None = Field(default=None, gt=0)
    country: str = "Pakistan"
    country_code: str = Field(default="PK", min_length=2, max_length=2)
    country_id: int = Field(default=167, gt=0)
    postal_code: str
    phone: str | None = None
    is_default: bool = False

    @field_validator("full_name", "line1", "city", "state", mode="before")
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("line2")
    @classmethod
    def normalize_line2(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None

    @field_validator("postal_code")
    @classmethod
    def validate_postal_code(cls, v: str) -> str:
        return _validate_postal_code(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return _validate_phone(v)


class AddressCreate(AddressBase):
    pass


class AddressUpdate(SQLModel):
    """
    Partial update payload. Same rules as AddressCreate for any field sent.
    """

    model_config = ConfigDict(extra="forbid")

    type: AddressType | None = None
    full_name: str | None = Field(default=None, min_length=2, max_length=100)
    line1: str | None = Field(default=None, min_length=5, max_length=200)
    line2: str | None = Field(default=None, max_length=200)
    city: str | None = None
    city_id: int | None = Field(default=None, gt=0)
    state: str | None = None
    state_id: int | None = Field(default=None, gt=0)
    country: str | None = None
    country_code: str | None = Field(default=None, min_length=2, max_length=2)
    country_id: int | None = Field(default=None, gt=0)
    postal_code: str | None = None
    phone: str | None = None
    is_default: bool | None = None

    @field_validator("postal_code")
    @classmethod
    def validate_postal_code(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _validate_postal_code(v)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str | None) -> str | None:
        return _validate_phone(v)


class AddressRead(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    type: AddressType
    full_name: str
    line1: str
    line2: str | None
    city: str
    city_id: int | None
    state: str
    state_id: int | None
    country: str
    country_code: str
    country_id: int
    postal_code: str
    phone: str | None
    is_default: bool
