# app/models/address.py
import uuid

from sqlmodel import SQLModel, Field


class Address(SQLModel, table=True):
    """
    Saved shipping / billing address of a user.

    At most one address per (user, type) has is_default=True.
    """

    __tablename__ = "addresses"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID = Field(
        foreign_key="users.id",
        index=True,
    )

    # shipping | billing
    type: str = Field(index=True)

    full_name: str
    line1: str
    line2: str | None = None
    city: str
    city_id: int | None = None
    state: str
    state_id: int | None = None
    country: str = Field(default="Pakistan")
    country_code: str = Field(default="PK", max_length=2)
    country_id: int = Field(default=167)
    postal_code: str
    phone: str | None = None
    is_default: bool = Field(default=False)
