# app/schemas/order.py
import uuid
from datetime import date, datetime
from typing import Any, Literal

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.schemas.address import AddressRead
from app.schemas.cart import CartItemRead

OrderStatus = Literal[
    "pending",
    "processing",
    "paid",
    "shipped",
    "out_for_delivery",
    "delivered",
    "cancelled",
]
PaymentMethod = Literal["cod", "jazzcash", "easypaisa"]


class OrderCalculation(SQLModel):
    """
    Totals for a set of cart lines.

    total_amount = subtotal + shipping_cost + tax_amount
    """

    subtotal: float
    shipping_cost: float
    tax_amount: float
    total_amount: float


class CheckoutData(SQLModel):
    """
    Final checkout form submitted by the customer.

    - billing_address_id is ignored when use_same_address is true.
    - payment_method is validated by the checkout service so an unknown
      method becomes a field error in the CheckoutResult, not a 422.
    """

    model_config = ConfigDict(extra="forbid")

    shipping_address_id: uuid.UUID | None = None
    billing_address_id: uuid.UUID | None = None
    payment_method: str = "cod"
    notes: str | None = Field(default=None, max_length=1000)
    use_same_address: bool = True

    @field_validator("notes")
    @classmethod
    def normalize_notes(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        return v or None


class DefaultAddresses(SQLModel):
    shipping: AddressRead | None = None
    billing: AddressRead | None = None


class CheckoutSessionRead(SQLModel):
    """
    Snapshot handed to the checkout page: cart lines, totals,
    the customer's addresses and when the session expires.
    """

    id: str
    items: list[CartItemRead]
    calculation: OrderCalculation
    user_addresses: list[AddressRead]
    default_addresses: DefaultAddresses
    expires_at: datetime


class OrderRead(SQLModel):
    """
    Lightweight representation of an order (without items).
    """

    id: uuid.UUID
    order_number: str
    user_id: uuid.UUID | None
    status: OrderStatus
    status_label: str
    subtotal: float
    shipping_cost: float
    tax_amount: float
    total_amount: float
    payment_method: PaymentMethod
    notes: str | None
    created_at: datetime
    updated_at: datetime


class OrderItemRead(SQLModel):
    """
    Representation of a single order line item with its frozen prices.
    """

    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID | None
    product_variant_id: uuid.UUID | None
    is_simple_product: bool
    product_name: str | None
    quantity: int
    price_at_purchase: float
    sale_price_at_purchase: float | None
    unit_price: float
    line_total: float


class OrderWithItemsRead(OrderRead):
    """
    Full order view including items, address snapshots and
    customer-facing delivery hints.
    """

    items: list[OrderItemRead]
    shipping_address_id: uuid.UUID | None
    billing_address_id: uuid.UUID | None
    shipping_address: dict[str, Any] | None
    billing_address: dict[str, Any] | None
    estimated_delivery: date
    next_action: str


class CheckoutResult(SQLModel):
    """
    Typed outcome of a checkout step.

    On failure `error` holds a readable reason and `field_errors` maps
    form fields to messages. Nothing is persisted for a failed result.
    """

    success: bool
    error: str | None = None
    field_errors: dict[str, list[str]] = {}
    session: CheckoutSessionRead | None = None
    order: OrderWithItemsRead | None = None


class OrderStatusUpdate(SQLModel):
    """
    Admin payload to change order status.
    """

    model_config = ConfigDict(extra="forbid")

    status: OrderStatus


class BulkOrderStatusUpdate(SQLModel):
    """
    Admin payload to move several orders to one status.
    """

    model_config = ConfigDict(extra="forbid")

    order_ids: list[uuid.UUID] = Field(min_length=1)
    status: OrderStatus


class BulkOrderStatusResult(SQLModel):
    updated: list[uuid.UUID]
    failed: dict[str, str]
