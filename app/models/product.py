# app/models/product.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Product(SQLModel, table=True):
    """
    Product catalog entry.

    Two kinds of product:
      - "simple": price / sale_price / sku / in_stock live on this row.
      - "configurable": purchasable units are ProductVariant rows
        (color/size combinations); the pricing columns here stay empty.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    name: str = Field(
        max_length=200,
        index=True,
        description="Display name of the product",
    )

    description: str = Field(
        default="",
        description="Long description / HTML from the rich text editor",
    )

    category_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )

    brand_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="brands.id",
        index=True,
    )

    is_published: bool = Field(
        default=False,
        index=True,
        description="Whether this product is visible on the storefront",
    )

    # simple | configurable
    product_type: str = Field(default="simple", index=True)

    # Simple product fields
    price: float | None = Field(default=None, ge=0)
    sale_price: float | None = Field(default=None, ge=0)
    sku: str | None = Field(default=None, index=True)
    in_stock: int = Field(default=0, ge=0)
    weight: float | None = None

    default_variant_id: uuid.UUID | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )

    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @property
    def is_simple(self) -> bool:
        return self.product_type == "simple"


class ProductVariant(SQLModel, table=True):
    """
    Purchasable color/size combination of a configurable product.
    """

    __tablename__ = "product_variants"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    sku: str = Field(unique=True, index=True)

    price: float = Field(ge=0)
    sale_price: float | None = Field(default=None, ge=0)

    color_id: uuid.UUID | None = Field(default=None, foreign_key="colors.id")
    size_id: uuid.UUID | None = Field(default=None, foreign_key="sizes.id")

    in_stock: int = Field(default=0, ge=0)
    weight: float | None = None

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class ProductImage(SQLModel, table=True):
    """
    Gallery image for a product, optionally scoped to one variant.
    """

    __tablename__ = "product_images"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    product_id: uuid.UUID = Field(
        foreign_key="products.id",
        index=True,
    )

    variant_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="product_variants.id",
        index=True,
        description="Set for variant-specific images, NULL for product-level",
    )

    url: str = Field(
        description="Public URL stored in Supabase Storage",
    )

    sort_order: int = Field(
        default=0,
        ge=0,
        description="Ordering index within the gallery",
    )

    is_primary: bool = Field(default=False)
