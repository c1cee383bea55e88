# app/schemas/cart.py
import uuid

from pydantic import ConfigDict, model_validator
from sqlmodel import SQLModel, Field


class CartItemAdd(SQLModel):
    """
    Payload for adding to cart.

    - simple product: send `product_id` only.
    - configurable product: send `product_variant_id` (the parent
      product is looked up from the variant; a `product_id`, if sent,
      must match it).
    """

    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID | None = None
    product_variant_id: uuid.UUID | None = None
    quantity: int = Field(default=1, gt=0)

    @model_validator(mode="after")
    def require_reference(self):
        if self.product_id is None and self.product_variant_id is None:
            raise ValueError("product_id or product_variant_id is required")
        return self


class CartItemUpdate(SQLModel):
    """
    Payload for updating quantity of a cart item.
    The value is clamped to [1, available stock] by the service.
    """

    model_config = ConfigDict(extra="forbid")

    quantity: int


class CartImageRead(SQLModel):
    id: uuid.UUID
    url: str
    is_primary: bool


class CartColorRead(SQLModel):
    id: uuid.UUID
    name: str
    hex_code: str


class CartSizeRead(SQLModel):
    id: uuid.UUID
    name: str


class CartProductRead(SQLModel):
    """
    Simple product details attached to a cart line.
    """

    id: uuid.UUID
    name: str
    description: str
    price: float
    sale_price: float | None
    sku: str
    in_stock: int
    images: list[CartImageRead] = []


class CartVariantProductRead(SQLModel):
    id: uuid.UUID
    name: str
    description: str


class CartVariantRead(SQLModel):
    """
    Variant details attached to a configurable cart line.
    """

    id: uuid.UUID
    sku: str
    price: float
    sale_price: float | None
    in_stock: int
    product: CartVariantProductRead
    color: CartColorRead | None = None
    size: CartSizeRead | None = None
    images: list[CartImageRead] = []


class CartItemRead(SQLModel):
    """
    Read model for a single cart item, including unit_price and line_total.
    Exactly one of `product` / `variant` is set, following is_simple_product.
    """

    id: uuid.UUID
    cart_id: uuid.UUID
    product_id: uuid.UUID | None
    product_variant_id: uuid.UUID | None
    is_simple_product: bool
    quantity: int
    product: CartProductRead | None = None
    variant: CartVariantRead | None = None
    unit_price: float
    line_total: float


class CartSummary(SQLModel):
    """
    Full cart response model with totals.
    """

    items: list[CartItemRead]
    total: float
    total_quantity: int


class MergeResult(SQLModel):
    merged: bool
