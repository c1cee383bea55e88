# app/models/catalog.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Brand(SQLModel, table=True):
    __tablename__ = "brands"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    name: str = Field(max_length=100, index=True)
    slug: str = Field(max_length=255, unique=True, index=True)
    description: str | None = None
    logo_url: str | None = Field(
        default=None,
        description="Public URL of the brand logo in Storage",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class Category(SQLModel, table=True):
    """
    Product category. Categories can nest one level via parent_id
    (e.g. Makeup -> Lipstick).
    """

    __tablename__ = "categories"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    name: str = Field(max_length=100, index=True)
    slug: str = Field(max_length=255, unique=True, index=True)
    description: str | None = None
    image_url: str | None = None
    parent_id: uuid.UUID | None = Field(
        default=None,
        foreign_key="categories.id",
        index=True,
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class Collection(SQLModel, table=True):
    __tablename__ = "collections"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    name: str = Field(max_length=100, index=True)
    slug: str = Field(max_length=255, unique=True, index=True)
    description: str | None = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class ProductCollection(SQLModel, table=True):
    """
    Many-to-many link between products and collections.
    """

    __tablename__ = "product_collections"

    product_id: uuid.UUID = Field(foreign_key="products.id", primary_key=True)
    collection_id: uuid.UUID = Field(foreign_key="collections.id", primary_key=True)


class Color(SQLModel, table=True):
    __tablename__ = "colors"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    name: str = Field(max_length=50)
    slug: str = Field(max_length=255, unique=True, index=True)
    hex_code: str = Field(max_length=7, description="#RRGGBB")


class Size(SQLModel, table=True):
    __tablename__ = "sizes"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    name: str = Field(max_length=50)
    slug: str = Field(max_length=255, unique=True, index=True)
    sort_order: int = Field(default=0, ge=0)
