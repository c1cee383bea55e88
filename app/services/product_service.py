# app/services/product_service.py
import logging
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.storage_utils import (
    ALLOWED_IMAGE_CONTENT_TYPES,
    MAX_IMAGE_BYTES,
    delete_public_url,
    generate_filename,
    upload_to_storage,
)
from app.models.catalog import Brand, Category, Collection, ProductCollection
from app.models.product import Product, ProductImage, ProductVariant
from app.repositories.product_repo import ProductRepository
from app.schemas.product import (
    ProductCreate,
    ProductDetailRead,
    ProductImageRead,
    ProductRead,
    ProductUpdate,
    VariantCreate,
    VariantRead,
    VariantUpdate,
)

logger = logging.getLogger(__name__)

SIMPLE_ONLY_FIELDS = ("price", "sale_price", "sku", "in_stock", "weight")


def validate_image(content_type: str, file_bytes: bytes) -> str:
    """
    Check an upload against the allowed types / size and return the
    file extension to store it under.
    """
    if content_type not in ALLOWED_IMAGE_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Unsupported image type. Allowed: JPEG, PNG, WEBP.",
        )

    if len(file_bytes) > MAX_IMAGE_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="Image too large (max 5MB).",
        )

    return ALLOWED_IMAGE_CONTENT_TYPES[content_type]


def safe_delete_url(url: str | None) -> None:
    """Remove a Storage object; failures are logged, never raised."""
    if not url:
        return
    try:
        delete_public_url(url)
    except Exception:
        logger.exception("Failed to delete %s from storage", url)


class ProductService:
    """
    Business logic for products, variants and gallery images.

    Responsibilities:
      - simple vs configurable rules (pricing on product vs on variants)
      - SKU uniqueness across products and variants
      - image upload/delete orchestration with Supabase Storage
      - admin-only operations (enforced at router via require_admin)
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    # ----- Helpers -----

    def _sku_taken(
        self,
        session: Session,
        sku: str,
        exclude_id: uuid.UUID | None = None,
    ) -> bool:
        product = self.repo.get_by_sku(session, sku)
        if product is not None and product.id != exclude_id:
            return True
        variant = self.repo.get_variant_by_sku(session, sku)
        return variant is not None and variant.id != exclude_id

    def _ensure_sku_free(
        self,
        session: Session,
        sku: str | None,
        exclude_id: uuid.UUID | None = None,
    ) -> None:
        if sku and self._sku_taken(session, sku, exclude_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"SKU '{sku}' is already in use",
            )

    @staticmethod
    def _ensure_exists(session: Session, model, obj_id: uuid.UUID | None, label: str) -> None:
        if obj_id is not None and session.get(model, obj_id) is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{label} not found",
            )

    def _check_variant_refs(
        self,
        session: Session,
        color_id: uuid.UUID | None,
        size_id: uuid.UUID | None,
    ) -> None:
        if color_id is not None and self.repo.get_color(session, color_id) is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Color not found",
            )
        if size_id is not None and self.repo.get_size(session, size_id) is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Size not found",
            )

    def _build_detail(self, session: Session, product: Product) -> ProductDetailRead:
        return ProductDetailRead(
            **ProductRead.model_validate(product).model_dump(),
            variants=[
                VariantRead.model_validate(v)
                for v in self.repo.list_variants(session, product.id)
            ],
            images=[
                ProductImageRead.model_validate(img)
                for img in self.repo.list_images_for_product(session, product.id)
            ],
            collection_ids=self.repo.list_collection_ids(session, product.id),
        )

    def _touch(self, product: Product) -> None:
        product.updated_at = datetime.now(timezone.utc)

    # ----- Products -----

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_published: bool = True,
        category_id: uuid.UUID | None = None,
        brand_id: uuid.UUID | None = None,
        collection_id: uuid.UUID | None = None,
        search: str | None = None,
        brand_slugs: list[str] | None = None,
        category_slugs: list[str] | None = None,
        color_slugs: list[str] | None = None,
        size_slugs: list[str] | None = None,
        price_min: float | None = None,
        price_max: float | None = None,
        sort: str = "newest",
    ) -> list[Product]:
        if price_min is not None and price_max is not None and price_min > price_max:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="price_min cannot be greater than price_max",
            )
        return self.repo.list_products(
            session,
            skip=skip,
            limit=limit,
            only_published=only_published,
            category_id=category_id,
            brand_id=brand_id,
            collection_id=collection_id,
            search=search.strip() if search else None,
            brand_slugs=brand_slugs,
            category_slugs=category_slugs,
            color_slugs=color_slugs,
            size_slugs=size_slugs,
            price_min=price_min,
            price_max=price_max,
            sort=sort,
        )

    def list_recommended(
        self,
        session: Session,
        product_id: uuid.UUID,
        limit: int = 6,
    ) -> list[Product]:
        product = self.get_product(session, product_id)
        return self.repo.list_recommended(session, product, limit=limit)

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return product

    def get_product_detail(
        self,
        session: Session,
        product_id: uuid.UUID,
        include_unpublished: bool = False,
    ) -> ProductDetailRead:
        """
        Product with variants, gallery and collections. Unpublished
        products are hidden from the storefront.
        """
        product = self.get_product(session, product_id)
        if not product.is_published and not include_unpublished:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        return self._build_detail(session, product)

    def create_product(
        self,
        session: Session,
        payload: ProductCreate,
    ) -> ProductDetailRead:
        """
        Create a simple product, or a configurable product with its variants.

        - SKUs must be unique across products and variants.
        - The first variant becomes the default variant.
        """
        self._ensure_exists(session, Category, payload.category_id, "Category")
        self._ensure_exists(session, Brand, payload.brand_id, "Brand")
        for collection_id in payload.collection_ids:
            self._ensure_exists(session, Collection, collection_id, "Collection")

        skus = [payload.sku] if payload.sku else []
        skus += [v.sku for v in payload.variants]
        if len(skus) != len(set(skus)):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Duplicate SKU in request",
            )
        for sku in skus:
            self._ensure_sku_free(session, sku)
        for v in payload.variants:
            self._check_variant_refs(session, v.color_id, v.size_id)

        data = payload.model_dump(exclude={"variants", "collection_ids"})
        if payload.product_type == "configurable":
            for field in SIMPLE_ONLY_FIELDS:
                data.pop(field, None)

        product = Product(**data)
        session.add(product)
        session.flush()

        variants = [
            ProductVariant(product_id=product.id, **v.model_dump())
            for v in payload.variants
        ]
        session.add_all(variants)
        session.flush()
        if variants:
            product.default_variant_id = variants[0].id

        for collection_id in dict.fromkeys(payload.collection_ids):
            session.add(ProductCollection(product_id=product.id, collection_id=collection_id))

        product = self.repo.create(session, product)
        logger.info("Created %s product %s", product.product_type, product.id)
        return self._build_detail(session, product)

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> ProductDetailRead:
        """
        Partial update of a product.

        - Pricing / stock fields only apply to simple products.
        - default_variant_id must reference one of this product's variants.
        """
        product = self.get_product(session, product_id)
        data = payload.model_dump(exclude_unset=True)

        if not product.is_simple:
            touched = [f for f in SIMPLE_ONLY_FIELDS if data.get(f) is not None]
            if touched:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Configurable products are priced and stocked per variant",
                )

        if "category_id" in data:
            self._ensure_exists(session, Category, data["category_id"], "Category")
        if "brand_id" in data:
            self._ensure_exists(session, Brand, data["brand_id"], "Brand")
        if data.get("sku"):
            self._ensure_sku_free(session, data["sku"], exclude_id=product.id)

        default_variant_id = data.get("default_variant_id")
        if default_variant_id is not None:
            variant = self.repo.get_variant(session, default_variant_id)
            if not variant or variant.product_id != product.id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Default variant must belong to this product",
                )

        for field, value in data.items():
            if field in ("name", "in_stock", "is_published", "description") and value is None:
                continue
            setattr(product, field, value)

        if (
            product.sale_price is not None
            and product.price is not None
            and product.sale_price > product.price
        ):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="sale_price cannot be greater than price",
            )

        self._touch(product)
        product = self.repo.update(session, product)
        return self._build_detail(session, product)

    def delete_product(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> None:
        """
        Delete a product, its variants and images, and clean up Storage.
        """
        product = self.get_product(session, product_id)
        urls = [img.url for img in self.repo.list_images_for_product(session, product_id)]

        self.repo.delete(session, product)

        for url in urls:
            safe_delete_url(url)
        logger.info("Deleted product %s (%d images)", product_id, len(urls))

    # ----- Variants -----

    def _get_own_variant(
        self,
        session: Session,
        product_id: uuid.UUID,
        variant_id: uuid.UUID,
    ) -> ProductVariant:
        variant = self.repo.get_variant(session, variant_id)
        if not variant or variant.product_id != product_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Variant not found for this product",
            )
        return variant

    def add_variant(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: VariantCreate,
    ) -> ProductVariant:
        product = self.get_product(session, product_id)
        if product.is_simple:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Simple products cannot have variants",
            )
        self._ensure_sku_free(session, payload.sku)
        self._check_variant_refs(session, payload.color_id, payload.size_id)

        variant = self.repo.save_variant(
            session, ProductVariant(product_id=product.id, **payload.model_dump())
        )
        if product.default_variant_id is None:
            product.default_variant_id = variant.id
            self._touch(product)
            self.repo.update(session, product)
        return variant

    def update_variant(
        self,
        session: Session,
        product_id: uuid.UUID,
        variant_id: uuid.UUID,
        payload: VariantUpdate,
    ) -> ProductVariant:
        variant = self._get_own_variant(session, product_id, variant_id)
        data = payload.model_dump(exclude_unset=True)

        if data.get("sku"):
            self._ensure_sku_free(session, data["sku"], exclude_id=variant.id)
        self._check_variant_refs(session, data.get("color_id"), data.get("size_id"))

        for field, value in data.items():
            if field in ("sku", "price", "in_stock") and value is None:
                continue
            setattr(variant, field, value)

        if variant.sale_price is not None and variant.sale_price > variant.price:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="sale_price cannot be greater than price",
            )
        return self.repo.save_variant(session, variant)

    def delete_variant(
        self,
        session: Session,
        product_id: uuid.UUID,
        variant_id: uuid.UUID,
    ) -> None:
        variant = self._get_own_variant(session, product_id, variant_id)
        product = self.get_product(session, product_id)
        urls = [img.url for img in self.repo.list_variant_images(session, variant.id)]

        self.repo.delete_variant(session, variant)

        if product.default_variant_id == variant_id:
            remaining = self.repo.list_variants(session, product_id)
            product.default_variant_id = remaining[0].id if remaining else None
            self._touch(product)
            self.repo.update(session, product)

        for url in urls:
            safe_delete_url(url)

    # ----- Gallery images -----

    def list_images(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[ProductImage]:
        """
        List gallery images for a product (primary first, then sort_order).
        """
        self.get_product(session, product_id)
        return self.repo.list_images_for_product(session, product_id)

    def upload_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
        variant_id: uuid.UUID | None = None,
        is_primary: bool = False,
    ) -> ProductImage:
        """
        Upload one gallery image, product-level or scoped to a variant.

        Path pattern:
            products/<product_id>/gallery/<uuid>.<ext>
            products/<product_id>/variants/<variant_id>/<uuid>.<ext>

        The first image of a scope becomes its primary image; a new
        primary image demotes the previous one.
        """
        product = self.get_product(session, product_id)
        if variant_id is not None:
            self._get_own_variant(session, product_id, variant_id)
        ext = validate_image(content_type, file_bytes)

        filename = generate_filename(ext)
        if variant_id is None:
            path = f"products/{product.id}/gallery/{filename}"
        else:
            path = f"products/{product.id}/variants/{variant_id}/{filename}"
        url = upload_to_storage(path, file_bytes, content_type)

        scope = [
            img
            for img in self.repo.list_images_for_product(session, product.id)
            if img.variant_id == variant_id
        ]
        if not scope:
            is_primary = True
        if is_primary:
            for img in scope:
                if img.is_primary:
                    img.is_primary = False
                    session.add(img)

        image = ProductImage(
            product_id=product.id,
            variant_id=variant_id,
            url=url,
            sort_order=len(scope),
            is_primary=is_primary,
        )
        return self.repo.create_image(session, image)

    def remove_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        image_id: uuid.UUID,
    ) -> None:
        """
        Delete a single gallery image and its Storage file.

        - Ensures the image belongs to the given product_id.
        """
        image = self.repo.get_image_by_id(session, image_id)
        if not image or image.product_id != product_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Image not found for this product",
            )

        url = image.url
        self.repo.delete_image(session, image)
        safe_delete_url(url)
