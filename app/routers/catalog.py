# app/routers/catalog.py
"""
Brands, categories, collections, colors and sizes.

All five share the same shape (public list / get, admin create / update /
delete), so their routers are built by `_taxonomy_router`.
"""
import uuid

from fastapi import (
    APIRouter,
    Depends,
    File,
    HTTPException,
    UploadFile,
    status,
)
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.models.catalog import Brand, Category, Collection, Color, Size
from app.models.product import Product, ProductVariant
from app.repositories.catalog_repo import CatalogRepository, CollectionRepository
from app.schemas.catalog import (
    BrandCreate,
    BrandRead,
    BrandUpdate,
    CategoryCreate,
    CategoryRead,
    CategoryUpdate,
    CollectionCreate,
    CollectionProductsUpdate,
    CollectionRead,
    CollectionUpdate,
    ColorCreate,
    ColorRead,
    ColorUpdate,
    SizeCreate,
    SizeRead,
    SizeUpdate,
)
from app.services.catalog_service import (
    CatalogService,
    CategoryService,
    CollectionService,
)

brand_service = CatalogService(
    CatalogRepository(Brand),
    "Brand",
    guards=[(Product, Product.brand_id, "Cannot delete brand with existing products")],
    image_field="logo_url",
    image_folder="brands",
)
category_service = CategoryService(
    CatalogRepository(Category),
    "Category",
    guards=[
        (Category, Category.parent_id, "Cannot delete category with subcategories"),
        (Product, Product.category_id, "Cannot delete category with existing products"),
    ],
    image_field="image_url",
    image_folder="categories",
)
collection_service = CollectionService(CollectionRepository(Collection), "Collection")
color_service = CatalogService(
    CatalogRepository(Color),
    "Color",
    guards=[
        (ProductVariant, ProductVariant.color_id, "Cannot delete color used by product variants")
    ],
)
size_service = CatalogService(
    CatalogRepository(Size, order_by=Size.sort_order),
    "Size",
    guards=[
        (ProductVariant, ProductVariant.size_id, "Cannot delete size used by product variants")
    ],
)


def _taxonomy_router(
    prefix: str,
    tag: str,
    service: CatalogService,
    create_schema,
    update_schema,
    read_schema,
) -> APIRouter:
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("", response_model=list[read_schema])
    def list_entries(
        session: Session = Depends(get_session),
        skip: int = 0,
        limit: int = 100,
    ):
        return service.list(session, skip=skip, limit=limit)

    @router.get("/{obj_id}", response_model=read_schema)
    def get_entry(
        obj_id: uuid.UUID,
        session: Session = Depends(get_session),
    ):
        return service.get(session, obj_id)

    @router.post(
        "",
        response_model=read_schema,
        status_code=status.HTTP_201_CREATED,
        dependencies=[Depends(require_admin)],
    )
    def create_entry(
        payload: create_schema,
        session: Session = Depends(get_session),
    ):
        """
        Create an entry (admin only). The slug is generated from the
        name when omitted.
        """
        return service.create(session, payload)

    @router.patch(
        "/{obj_id}",
        response_model=read_schema,
        dependencies=[Depends(require_admin)],
    )
    def update_entry(
        obj_id: uuid.UUID,
        payload: update_schema,
        session: Session = Depends(get_session),
    ):
        return service.update(session, obj_id, payload)

    @router.delete(
        "/{obj_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        dependencies=[Depends(require_admin)],
    )
    def delete_entry(
        obj_id: uuid.UUID,
        session: Session = Depends(get_session),
    ):
        """
        Delete an entry (admin only). Refused while other rows still
        reference it.
        """
        service.delete(session, obj_id)
        return None

    if service.image_field:

        @router.post(
            "/{obj_id}/image",
            response_model=read_schema,
            dependencies=[Depends(require_admin)],
            summary=f"Upload or replace the {tag.lower()} image",
        )
        def upload_entry_image(
            obj_id: uuid.UUID,
            file: UploadFile = File(...),
            session: Session = Depends(get_session),
        ):
            """
            Upload a new image; the previous one is removed from Storage.

            - Accepts JPEG, PNG, WEBP.
            """
            if not file.content_type:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Missing content-type for uploaded file",
                )
            return service.upload_image(
                session, obj_id, file.content_type, file.file.read()
            )

    return router


brands_router = _taxonomy_router(
    "/brands", "Brands", brand_service, BrandCreate, BrandUpdate, BrandRead
)
categories_router = _taxonomy_router(
    "/categories", "Categories", category_service, CategoryCreate, CategoryUpdate, CategoryRead
)
collections_router = _taxonomy_router(
    "/collections",
    "Collections",
    collection_service,
    CollectionCreate,
    CollectionUpdate,
    CollectionRead,
)
colors_router = _taxonomy_router(
    "/colors", "Colors", color_service, ColorCreate, ColorUpdate, ColorRead
)
sizes_router = _taxonomy_router(
    "/sizes", "Sizes", size_service, SizeCreate, SizeUpdate, SizeRead
)


@collections_router.post(
    "/{obj_id}/products",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def add_collection_products(
    obj_id: uuid.UUID,
    payload: CollectionProductsUpdate,
    session: Session = Depends(get_session),
):
    """
    Attach products to a collection (admin only). Already linked
    products are ignored.
    """
    collection_service.add_products(session, obj_id, payload.product_ids)
    return None


@collections_router.delete(
    "/{obj_id}/products",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def remove_collection_products(
    obj_id: uuid.UUID,
    payload: CollectionProductsUpdate,
    session: Session = Depends(get_session),
):
    collection_service.remove_products(session, obj_id, payload.product_ids)
    return None


routers = [
    brands_router,
    categories_router,
    collections_router,
    colors_router,
    sizes_router,
]
