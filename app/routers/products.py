# app/routers/products.py
import uuid
from typing import Literal

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    UploadFile,
    status,
)
from sqlmodel import Session

from app.core.auth import get_current_user, require_admin
from app.database import get_session
from app.models.user import User
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
from app.services.product_service import ProductService

router = APIRouter(prefix="/products", tags=["Products"])

repo = ProductRepository()
service = ProductService(repo)


def _is_admin(user: User | None) -> bool:
    return user is not None and user.role == "admin"


# -------- Public endpoints --------


@router.get("", response_model=list[ProductRead])
def list_products(
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
    skip: int = 0,
    limit: int = Query(50, ge=1, le=100),
    include_unpublished: bool = False,
    category_id: uuid.UUID | None = None,
    brand_id: uuid.UUID | None = None,
    collection_id: uuid.UUID | None = None,
    search: str | None = None,
    brand: list[str] | None = Query(None),
    category: list[str] | None = Query(None),
    color: list[str] | None = Query(None),
    size: list[str] | None = Query(None),
    price_min: float | None = Query(None, ge=0),
    price_max: float | None = Query(None, ge=0),
    sort: Literal["newest", "price_asc", "price_desc"] = "newest",
):
    """
    List products, newest first.

    - Public endpoint.
    - Unpublished products are hidden; admins may pass
      `include_unpublished=true`.
    - `search` matches name or description.
    - `brand`, `category`, `color` and `size` take slugs and may repeat.
    - Price bounds and price sorting use the sale price when there is one.
    """
    return service.list_products(
        session,
        skip=skip,
        limit=limit,
        only_published=not (include_unpublished and _is_admin(current_user)),
        category_id=category_id,
        brand_id=brand_id,
        collection_id=collection_id,
        search=search,
        brand_slugs=brand,
        category_slugs=category,
        color_slugs=color,
        size_slugs=size,
        price_min=price_min,
        price_max=price_max,
        sort=sort,
    )


@router.get("/{product_id}/recommended", response_model=list[ProductRead])
def list_recommended_products(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    limit: int = Query(6, ge=1, le=24),
):
    """
    Published products to show next to a product page, ranked by
    shared category and brand.
    """
    return service.list_recommended(session, product_id, limit=limit)


@router.get("/{product_id}", response_model=ProductDetailRead)
def get_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
):
    """
    Get a product with its variants, gallery and collections.

    - Public endpoint; unpublished products are visible to admins only.
    """
    return service.get_product_detail(
        session, product_id, include_unpublished=_is_admin(current_user)
    )


@router.get(
    "/{product_id}/images",
    response_model=list[ProductImageRead],
)
def list_product_images(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    List gallery images for a product (public).
    """
    return service.list_images(session, product_id)


# -------- Admin endpoints --------


@router.post(
    "",
    response_model=ProductDetailRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_product(
    payload: ProductCreate,
    session: Session = Depends(get_session),
):
    """
    Create a simple product, or a configurable one with its variants
    (admin only).
    """
    return service.create_product(session, payload)


@router.patch(
    "/{product_id}",
    response_model=ProductDetailRead,
    dependencies=[Depends(require_admin)],
)
def update_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    """
    Update an existing product (admin only).
    """
    return service.update_product(session, product_id, payload)


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_product(
    product_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete a product, its variants and images (admin only).
    """
    service.delete_product(session, product_id)
    return None


# -------- Variants (admin) --------


@router.post(
    "/{product_id}/variants",
    response_model=VariantRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_variant(
    product_id: uuid.UUID,
    payload: VariantCreate,
    session: Session = Depends(get_session),
):
    return service.add_variant(session, product_id, payload)


@router.patch(
    "/{product_id}/variants/{variant_id}",
    response_model=VariantRead,
    dependencies=[Depends(require_admin)],
)
def update_variant(
    product_id: uuid.UUID,
    variant_id: uuid.UUID,
    payload: VariantUpdate,
    session: Session = Depends(get_session),
):
    return service.update_variant(session, product_id, variant_id, payload)


@router.delete(
    "/{product_id}/variants/{variant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_variant(
    product_id: uuid.UUID,
    variant_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete a variant and its images (admin only).

    If it was the default variant, the oldest remaining one takes over.
    """
    service.delete_variant(session, product_id, variant_id)
    return None


# -------- Gallery (admin) --------


@router.post(
    "/{product_id}/images",
    response_model=ProductImageRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
    summary="Upload a gallery image for a product or one of its variants",
)
def upload_product_image(
    product_id: uuid.UUID,
    file: UploadFile = File(...),
    variant_id: uuid.UUID | None = Form(default=None),
    is_primary: bool = Form(default=False),
    session: Session = Depends(get_session),
):
    """
    Upload one gallery image.

    - Accepts JPEG, PNG, WEBP up to 5MB.
    - `variant_id` scopes the image to a variant.
    - The first image of a product / variant becomes its primary image.
    """
    if not file.content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing content-type for uploaded file",
        )

    file_bytes = file.file.read()
    return service.upload_image(
        session=session,
        product_id=product_id,
        content_type=file.content_type,
        file_bytes=file_bytes,
        variant_id=variant_id,
        is_primary=is_primary,
    )


@router.delete(
    "/{product_id}/images/{image_id}",
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(require_admin)],
    summary="Delete a gallery image by id",
)
def delete_product_image(
    product_id: uuid.UUID,
    image_id: uuid.UUID,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    """
    Delete a gallery image for a product (admin only).

    - Also deletes the underlying file from Storage (best-effort).
    """
    service.remove_image(session, product_id, image_id)
    return {"message": "Image deleted successfully"}
