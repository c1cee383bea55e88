# app/models/cart.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Cart(SQLModel, table=True):
    """
    Shopping cart owned by exactly one of a user or a guest session.

    Merging a guest cart into a user cart moves the rows and then deletes
    the guest cart, so a row never belongs to both.
    """

    __tablename__ = "carts"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    user_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )

    guest_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="guests.id",
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class CartItem(SQLModel, table=True):
    """
    Shopping cart entry.

    Either a simple product (product_id set, is_simple_product=True) or a
    product variant (product_variant_id set, is_simple_product=False; the
    parent product_id is kept for reference). One cart never holds two rows
    for the same product / variant.
    """

    __tablename__ = "cart_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    cart_id: uuid.UUID = Field(
        foreign_key="carts.id",
        index=True,
    )

    product_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="products.id",
        index=True,
    )

    product_variant_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="product_variants.id",
        index=True,
    )

    is_simple_product: bool = Field(default=False)

    quantity: int = Field(
        default=1,
        gt=0,
        description="Must be >= 1",
    )
