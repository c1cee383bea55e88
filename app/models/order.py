# app/models/order.py
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import SQLModel, Field


class Order(SQLModel, table=True):
    """
    Customer order, an immutable snapshot created at checkout.

    Totals and addresses are copied at creation time. After that only
    `status` (and `updated_at`) change, through customer cancellation or
    admin status updates.
    """

    __tablename__ = "orders"

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

    # pending | processing | paid | shipped | out_for_delivery | delivered | cancelled
    status: str = Field(
        default="pending",
        index=True,
        description="Order status lifecycle",
    )

    subtotal: float = Field(description="Sum of line totals")
    shipping_cost: float = Field(default=0.0)
    tax_amount: float = Field(default=0.0)
    total_amount: float = Field(
        description="subtotal + shipping_cost + tax_amount",
    )

    shipping_address_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="addresses.id",
    )
    billing_address_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="addresses.id",
    )

    # Copies of the address rows at order time
    shipping_address: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON),
    )
    billing_address: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON),
    )

    # cod | jazzcash | easypaisa
    payment_method: str = Field(default="cod")
    notes: str | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class OrderItem(SQLModel, table=True):
    """
    Line item inside an order, with prices frozen at purchase time.
    """

    __tablename__ = "order_items"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    order_id: uuid.UUID = Field(
        foreign_key="orders.id",
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

    product_name: str | None = None

    quantity: int = Field(
        gt=0,
        description="Quantity ordered (>=1)",
    )

    price_at_purchase: float = Field(
        description="Base unit price at time of order",
    )
    sale_price_at_purchase: float | None = Field(
        default=None,
        description="Sale unit price at time of order, if any",
    )
