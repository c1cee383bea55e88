# app/services/catalog_service.py
import logging
import re
import uuid
from typing import Any

from fastapi import HTTPException, status
from sqlmodel import Session, SQLModel

from app.core.storage_utils import generate_filename, upload_to_storage
from app.models.catalog import Category
from app.models.product import Product
from app.repositories.catalog_repo import CatalogRepository, CollectionRepository
from app.services.product_service import safe_delete_url, validate_image

logger = logging.getLogger(__name__)


def slugify(raw: str, fallback: str = "item") -> str:
    """
    Basic slugification:
      - lowercase
      - non-alphanumeric -> '-'
      - collapse multiple '-'
      - strip leading/trailing '-'
    """
    value = raw.strip().lower()
    value = re.sub(r"[^a-z0-9]+", "-", value)
    value = re.sub(r"-+", "-", value)
    value = value.strip("-")
    return value or fallback


class CatalogService:
    """
    CRUD for one slug-keyed catalog table (brands, categories,
    collections, colors, sizes).

    - slugs are generated from the name when omitted and made unique
      by appending -2, -3, ...
    - `guards` lists (model, column, message) references that block a
      delete while rows still point at the entry.
    - `image_field` / `image_folder` enable a single Storage image
      (brand logo, category image).
    """

    def __init__(
        self,
        repo: CatalogRepository,
        label: str,
        guards: list[tuple[type[SQLModel], Any, str]] | None = None,
        image_field: str | None = None,
        image_folder: str | None = None,
    ):
        self.repo = repo
        self.label = label
        self.guards = guards or []
        self.image_field = image_field
        self.image_folder = image_folder

    # ----- Helpers -----

    def _ensure_unique_slug(
        self,
        session: Session,
        base_slug: str,
        exclude_id: uuid.UUID | None = None,
    ) -> str:
        slug = base_slug
        i = 2
        while True:
            existing = self.repo.get_by_slug(session, slug)
            if existing is None or existing.id == exclude_id:
                return slug
            slug = f"{base_slug}-{i}"
            i += 1

    def _validate(self, session: Session, data: dict, obj=None) -> None:
        """Hook for table-specific checks before a create / update."""

    # ----- CRUD -----

    def list(self, session: Session, skip: int = 0, limit: int = 100):
        return self.repo.list(session, skip=skip, limit=limit)

    def get(self, session: Session, obj_id: uuid.UUID):
        obj = self.repo.get_by_id(session, obj_id)
        if not obj:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{self.label} not found",
            )
        return obj

    def create(self, session: Session, payload: SQLModel):
        data = payload.model_dump()
        self._validate(session, data)

        base_slug = slugify(data.pop("slug", None) or data["name"], self.label.lower())
        obj = self.repo.model(
            **data,
            slug=self._ensure_unique_slug(session, base_slug),
        )
        obj = self.repo.save(session, obj)
        logger.info("Created %s %s (%s)", self.label.lower(), obj.id, obj.slug)
        return obj

    def update(self, session: Session, obj_id: uuid.UUID, payload: SQLModel):
        obj = self.get(session, obj_id)
        data = payload.model_dump(exclude_unset=True)
        self._validate(session, data, obj)

        slug = data.pop("slug", None)
        if slug:
            new_base_slug = slugify(slug, self.label.lower())
            if new_base_slug != obj.slug:
                obj.slug = self._ensure_unique_slug(session, new_base_slug, exclude_id=obj.id)

        for field, value in data.items():
            if value is None and field in ("name", "hex_code", "sort_order"):
                continue
            setattr(obj, field, value)

        return self.repo.save(session, obj)

    def delete(self, session: Session, obj_id: uuid.UUID) -> None:
        obj = self.get(session, obj_id)
        for model, column, message in self.guards:
            if self.repo.count_where(session, model, column, obj.id) > 0:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=message,
                )

        image_url = getattr(obj, self.image_field) if self.image_field else None
        self.repo.delete(session, obj)
        safe_delete_url(image_url)

    # ----- Image -----

    def upload_image(
        self,
        session: Session,
        obj_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
    ):
        """
        Replace the entry's image.

        Path pattern:
            <image_folder>/<id>/<uuid>.<ext>
        """
        if not self.image_field:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{self.label} has no image",
            )
        obj = self.get(session, obj_id)
        ext = validate_image(content_type, file_bytes)

        path = f"{self.image_folder}/{obj.id}/{generate_filename(ext)}"
        url = upload_to_storage(path, file_bytes, content_type)

        old_url = getattr(obj, self.image_field)
        setattr(obj, self.image_field, url)
        obj = self.repo.save(session, obj)

        safe_delete_url(old_url)
        return obj


class CategoryService(CatalogService):
    """
    Categories nest one level deep: a parent must exist and must itself
    be a top-level category.
    """

    def _validate(self, session: Session, data: dict, obj=None) -> None:
        parent_id = data.get("parent_id")
        if parent_id is None:
            return
        if obj is not None and parent_id == obj.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Category cannot be its own parent",
            )
        parent = self.repo.get_by_id(session, parent_id)
        if parent is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Parent category not found",
            )
        if parent.parent_id is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Categories can only be nested one level deep",
            )
        if obj is not None and self.repo.count_where(
            session, Category, Category.parent_id, obj.id
        ) > 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A category with subcategories cannot have a parent",
            )


class CollectionService(CatalogService):
    """
    Collections plus their product membership.
    """

    repo: CollectionRepository

    def _check_products(self, session: Session, product_ids: list[uuid.UUID]) -> None:
        missing = [pid for pid in product_ids if session.get(Product, pid) is None]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Products not found: {', '.join(str(m) for m in missing)}",
            )

    def add_products(
        self,
        session: Session,
        collection_id: uuid.UUID,
        product_ids: list[uuid.UUID],
    ) -> None:
        collection = self.get(session, collection_id)
        self._check_products(session, product_ids)
        self.repo.add_products(session, collection.id, product_ids)

    def remove_products(
        self,
        session: Session,
        collection_id: uuid.UUID,
        product_ids: list[uuid.UUID],
    ) -> None:
        collection = self.get(session, collection_id)
        self.repo.remove_products(session, collection.id, product_ids)
