# app/repositories/product_repo.py
import uuid

from sqlalchemy import and_, case, func, literal, or_
from sqlmodel import Session, select

from app.models.cart import CartItem
from app.models.catalog import Brand, Category, Color, ProductCollection, Size
from app.models.order import OrderItem
from app.models.product import Product, ProductImage, ProductVariant


def effective_price():
    """
    Sale-first price of a product: its own price for simple products,
    the cheapest variant for configurable ones.
    """
    cheapest_variant = (
        select(func.min(func.coalesce(ProductVariant.sale_price, ProductVariant.price)))
        .where(ProductVariant.product_id == Product.id)
        .correlate(Product)
        .scalar_subquery()
    )
    return func.coalesce(Product.sale_price, Product.price, cheapest_variant)


def _price_bounds(price, price_min: float | None, price_max: float | None) -> list:
    bounds = []
    if price_min is not None:
        bounds.append(price >= price_min)
    if price_max is not None:
        bounds.append(price <= price_max)
    return bounds


class ProductRepository:
    """
    Data access layer for Product, ProductVariant & ProductImage.

    - Pure DB operations (CRUD + queries).
    - No FastAPI, no business logic.
    """

    # ----- Products -----

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_sku(self, session: Session, sku: str) -> Product | None:
        stmt = select(Product).where(Product.sku == sku)
        return session.exec(stmt).first()

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
        stmt = select(Product)
        if only_published:
            stmt = stmt.where(Product.is_published == True)  # noqa: E712
        if category_id is not None:
            stmt = stmt.where(Product.category_id == category_id)
        if brand_id is not None:
            stmt = stmt.where(Product.brand_id == brand_id)
        if collection_id is not None:
            stmt = stmt.join(
                ProductCollection, ProductCollection.product_id == Product.id
            ).where(ProductCollection.collection_id == collection_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(Product.name.ilike(pattern), Product.description.ilike(pattern))
            )
        if brand_slugs:
            stmt = stmt.where(
                Product.brand_id.in_(select(Brand.id).where(Brand.slug.in_(brand_slugs)))
            )
        if category_slugs:
            stmt = stmt.where(
                Product.category_id.in_(
                    select(Category.id).where(Category.slug.in_(category_slugs))
                )
            )

        # Colour, size and price are matched on a single variant; simple
        # products carry their own price and have no colour or size.
        variant_conds = []
        if color_slugs:
            variant_conds.append(
                ProductVariant.color_id.in_(select(Color.id).where(Color.slug.in_(color_slugs)))
            )
        if size_slugs:
            variant_conds.append(
                ProductVariant.size_id.in_(select(Size.id).where(Size.slug.in_(size_slugs)))
            )
        has_price = price_min is not None or price_max is not None
        if variant_conds or has_price:
            variant_price = func.coalesce(ProductVariant.sale_price, ProductVariant.price)
            variant_conds += _price_bounds(variant_price, price_min, price_max)
            matching_variant = (
                select(ProductVariant.id)
                .where(ProductVariant.product_id == Product.id, *variant_conds)
                .exists()
            )
            if color_slugs or size_slugs:
                stmt = stmt.where(matching_variant)
            else:
                own_price = func.coalesce(Product.sale_price, Product.price)
                stmt = stmt.where(
                    or_(
                        and_(
                            Product.product_type == "simple",
                            *_price_bounds(own_price, price_min, price_max),
                        ),
                        matching_variant,
                    )
                )

        if sort in ("price_asc", "price_desc"):
            price = effective_price()
            stmt = stmt.order_by(price.asc() if sort == "price_asc" else price.desc())
        stmt = stmt.order_by(Product.created_at.desc(), Product.id).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def list_recommended(
        self,
        session: Session,
        product: Product,
        limit: int = 6,
    ) -> list[Product]:
        """
        Published products ranked by shared category (weight 3) and
        brand (weight 2), newest first within a rank.
        """
        priority = literal(0)
        for column, value, weight in (
            (Product.category_id, product.category_id, 3),
            (Product.brand_id, product.brand_id, 2),
        ):
            if value is not None:
                priority = priority + case((column == value, weight), else_=0)

        stmt = (
            select(Product)
            .where(Product.is_published == True, Product.id != product.id)  # noqa: E712
            .order_by(priority.desc(), Product.created_at.desc(), Product.id)
            .limit(limit)
        )
        return list(session.exec(stmt).all())

    def create(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def update(self, session: Session, product: Product) -> Product:
        session.add(product)
        session.commit()
        session.refresh(product)
        return product

    def delete(self, session: Session, product: Product) -> None:
        """
        Delete a product together with its variants, images, collection
        links and cart rows. Order items keep their snapshot and lose
        only the reference.
        """
        for link in session.exec(
            select(ProductCollection).where(ProductCollection.product_id == product.id)
        ).all():
            session.delete(link)
        for image in self.list_images_for_product(session, product.id):
            session.delete(image)
        for row in session.exec(
            select(CartItem).where(CartItem.product_id == product.id)
        ).all():
            session.delete(row)
        for item in session.exec(
            select(OrderItem).where(OrderItem.product_id == product.id)
        ).all():
            item.product_id = None
            item.product_variant_id = None
            session.add(item)
        session.flush()
        for variant in self.list_variants(session, product.id):
            session.delete(variant)
        session.flush()
        session.delete(product)
        session.commit()

    # ----- Variants -----

    def get_variant(
        self,
        session: Session,
        variant_id: uuid.UUID,
    ) -> ProductVariant | None:
        return session.get(ProductVariant, variant_id)

    def get_variant_by_sku(self, session: Session, sku: str) -> ProductVariant | None:
        stmt = select(ProductVariant).where(ProductVariant.sku == sku)
        return session.exec(stmt).first()

    def list_variants(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[ProductVariant]:
        stmt = (
            select(ProductVariant)
            .where(ProductVariant.product_id == product_id)
            .order_by(ProductVariant.created_at)
        )
        return list(session.exec(stmt).all())

    def save_variant(
        self,
        session: Session,
        variant: ProductVariant,
    ) -> ProductVariant:
        session.add(variant)
        session.commit()
        session.refresh(variant)
        return variant

    def delete_variant(self, session: Session, variant: ProductVariant) -> None:
        for image in session.exec(
            select(ProductImage).where(ProductImage.variant_id == variant.id)
        ).all():
            session.delete(image)
        for row in session.exec(
            select(CartItem).where(CartItem.product_variant_id == variant.id)
        ).all():
            session.delete(row)
        for item in session.exec(
            select(OrderItem).where(OrderItem.product_variant_id == variant.id)
        ).all():
            item.product_variant_id = None
            session.add(item)
        session.flush()
        session.delete(variant)
        session.commit()

    def list_variant_images(
        self,
        session: Session,
        variant_id: uuid.UUID,
    ) -> list[ProductImage]:
        stmt = select(ProductImage).where(ProductImage.variant_id == variant_id)
        return list(session.exec(stmt).all())

    def get_color(self, session: Session, color_id: uuid.UUID) -> Color | None:
        return session.get(Color, color_id)

    def get_size(self, session: Session, size_id: uuid.UUID) -> Size | None:
        return session.get(Size, size_id)

    # ----- Product images -----

    def list_images_for_product(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[ProductImage]:
        stmt = (
            select(ProductImage)
            .where(ProductImage.product_id == product_id)
            .order_by(ProductImage.is_primary.desc(), ProductImage.sort_order)
        )
        return list(session.exec(stmt).all())

    def get_image_by_id(
        self,
        session: Session,
        image_id: uuid.UUID,
    ) -> ProductImage | None:
        return session.get(ProductImage, image_id)

    def create_image(
        self,
        session: Session,
        image: ProductImage,
    ) -> ProductImage:
        session.add(image)
        session.commit()
        session.refresh(image)
        return image

    def delete_image(
        self,
        session: Session,
        image: ProductImage,
    ) -> None:
        session.delete(image)
        session.commit()

    # ----- Collections -----

    def list_collection_ids(
        self,
        session: Session,
        product_id: uuid.UUID,
    ) -> list[uuid.UUID]:
        stmt = select(ProductCollection.collection_id).where(
            ProductCollection.product_id == product_id
        )
        return list(session.exec(stmt).all())
