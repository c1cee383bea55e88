# app/schemas/product.py
import uuid
from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, field_validator, model_validator
from sqlmodel import SQLModel, Field

ProductType = Literal["simple", "configurable"]


def _check_sale_price(price: float | None, sale_price: float | None) -> None:
    if price is not None and sale_price is not None and sale_price > price:
        raise ValueError("sale_price cannot be greater than price")


class VariantCreate(SQLModel):
    """
    Payload for creating a color/size variant of a configurable product.
    """

    model_config = ConfigDict(extra="forbid")

    sku: str = Field(min_length=1, max_length=100)
    price: float = Field(ge=0)
    sale_price: float | None = Field(default=None, ge=0)
    color_id: uuid.UUID | None = None
    size_id: uuid.UUID | None = None
    in_stock: int = Field(default=0, ge=0)
    weight: float | None = None

    @field_validator("sku")
    @classmethod
    def normalize_sku(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("sku cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_prices(self):
        _check_sale_price(self.price, self.sale_price)
        return self


class VariantUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    sku: str | None = None
    price: float | None = Field(default=None, ge=0)
    sale_price: float | None = Field(default=None, ge=0)
    color_id: uuid.UUID | None = None
    size_id: uuid.UUID | None = None
    in_stock: int | None = Field(default=None, ge=0)
    weight: float | None = None


class ProductCreate(SQLModel):
    """
    Payload for creating a product.

    - simple products must carry `price` (and optionally sale_price, sku,
      in_stock).
    - configurable products carry their purchasable units in `variants`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1, max_length=200)
    description: str = ""
    category_id: uuid.UUID | None = None
    brand_id: uuid.UUID | None = None
    is_published: bool = False
    product_type: ProductType = "simple"

    price: float | None = Field(default=None, ge=0)
    sale_price: float | None = Field(default=None, ge=0)
    sku: str | None = None
    in_stock: int = Field(default=0, ge=0)
    weight: float | None = None

    variants: list[VariantCreate] = []
    collection_ids: list[uuid.UUID] = []

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v

    @model_validator(mode="after")
    def validate_type_fields(self):
        if self.product_type == "simple":
            if self.price is None:
                raise ValueError("price is required for simple products")
            if self.variants:
                raise ValueError("simple products cannot have variants")
            _check_sale_price(self.price, self.sale_price)
        return self


class ProductUpdate(SQLModel):
    """
    Partial update payload for products. All fields are optional.
    The product type cannot be changed after creation.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=200)
    description: str | None = None
    category_id: uuid.UUID | None = None
    brand_id: uuid.UUID | None = None
    is_published: bool | None = None
    price: float | None = Field(default=None, ge=0)
    sale_price: float | None = Field(default=None, ge=0)
    sku: str | None = None
    in_stock: int | None = Field(default=None, ge=0)
    weight: float | None = None
    default_variant_id: uuid.UUID | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("name cannot be empty")
        return v


class ProductImageRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    variant_id: uuid.UUID | None
    url: str
    sort_order: int
    is_primary: bool


class VariantRead(SQLModel):
    id: uuid.UUID
    product_id: uuid.UUID
    sku: str
    price: float
    sale_price: float | None
    color_id: uuid.UUID | None
    size_id: uuid.UUID | None
    in_stock: int
    weight: float | None
    created_at: datetime


class ProductRead(SQLModel):
    """
    Product representation for list views.
    """

    id: uuid.UUID
    name: str
    description: str
    category_id: uuid.UUID | None
    brand_id: uuid.UUID | None
    is_published: bool
    product_type: ProductType
    price: float | None
    sale_price: float | None
    sku: str | None
    in_stock: int
    weight: float | None
    default_variant_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class ProductDetailRead(ProductRead):
    """
    Product detail view including variants, gallery, and collections.
    """

    variants: list[VariantRead] = []
    images: list[ProductImageRead] = []
    collection_ids: list[uuid.UUID] = []
