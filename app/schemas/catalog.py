# app/schemas/catalog.py
import re
import uuid
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

HEX_COLOR_RE = re.compile(r"^#[0-9a-fA-F]{6}$")


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


def _strip_optional(v: str | None) -> str | None:
    if v is None:
        return v
    return _strip_required(v)


class TaxonomyCreate(SQLModel):
    """
    Shared create payload for brands, categories and collections.

    - slug is optional: if omitted, generated from `name`.
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=100)
    slug: str | None = None
    description: str | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class TaxonomyUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=100)
    slug: str | None = None
    description: str | None = None

    @field_validator("name", "slug")
    @classmethod
    def validate_text(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class BrandCreate(TaxonomyCreate):
    pass


class BrandUpdate(TaxonomyUpdate):
    pass


class BrandRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str | None
    logo_url: str | None
    created_at: datetime


class CategoryCreate(TaxonomyCreate):
    parent_id: uuid.UUID | None = None


class CategoryUpdate(TaxonomyUpdate):
    parent_id: uuid.UUID | None = None


class CategoryRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str | None
    image_url: str | None
    parent_id: uuid.UUID | None
    created_at: datetime


class CollectionCreate(TaxonomyCreate):
    pass


class CollectionUpdate(TaxonomyUpdate):
    pass


class CollectionRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    description: str | None
    created_at: datetime


class CollectionProductsUpdate(SQLModel):
    """
    Admin payload to attach products to / detach products from a collection.
    """

    model_config = ConfigDict(extra="forbid")

    product_ids: list[uuid.UUID] = Field(min_length=1)


class ColorCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=50)
    slug: str | None = None
    hex_code: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("hex_code")
    @classmethod
    def validate_hex(cls, v: str) -> str:
        v = v.strip()
        if not HEX_COLOR_RE.match(v):
            raise ValueError("hex_code must look like #RRGGBB")
        return v.upper()


class ColorUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=50)
    slug: str | None = None
    hex_code: str | None = None

    @field_validator("hex_code")
    @classmethod
    def validate_hex(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if not HEX_COLOR_RE.match(v):
            raise ValueError("hex_code must look like #RRGGBB")
        return v.upper()


class ColorRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    hex_code: str


class SizeCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=50)
    slug: str | None = None
    sort_order: int = Field(default=0, ge=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v)


class SizeUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=50)
    slug: str | None = None
    sort_order: int | None = Field(default=None, ge=0)


class SizeRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    sort_order: int
