# app/services/cart_service.py
import logging
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.identity import GuestIdentity, SessionIdentity, UserIdentity
from app.models.cart import Cart, CartItem
from app.models.product import Product, ProductImage, ProductVariant
from app.repositories.cart_repo import CartRepository
from app.repositories.guest_repo import GuestRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import (
    CartColorRead,
    CartImageRead,
    CartItemAdd,
    CartItemRead,
    CartItemUpdate,
    CartProductRead,
    CartSizeRead,
    CartSummary,
    CartVariantProductRead,
    CartVariantRead,
)
from app.services.pricing import can_add_to_cart, unit_price

logger = logging.getLogger(__name__)


class CartService:
    """
    Business logic for cart operations.

    Responsibilities:
      - resolve the cart owned by a SessionIdentity (user or guest)
      - validate product / variant existence and published flag
      - re-read stock before every mutation and keep quantities in
        [1, in_stock]
      - enrich rows with product / variant details and line totals
      - fold a guest cart into a user cart on sign-in
    """

    def __init__(
        self,
        cart_repo: CartRepository,
        product_repo: ProductRepository,
        guest_repo: GuestRepository,
    ):
        self.cart_repo = cart_repo
        self.product_repo = product_repo
        self.guest_repo = guest_repo

    # ---- internal helpers ----

    def _find_cart(self, session: Session, identity: SessionIdentity) -> Cart | None:
        if isinstance(identity, UserIdentity):
            return self.cart_repo.get_for_user(session, identity.user_id)
        return self.cart_repo.get_for_guest(session, identity.guest_id)

    def _get_or_create_cart(self, session: Session, identity: SessionIdentity) -> Cart:
        cart = self._find_cart(session, identity)
        if cart is not None:
            return cart
        if isinstance(identity, GuestIdentity):
            return self.cart_repo.create_cart(session, guest_id=identity.guest_id)
        return self.cart_repo.create_cart(session, user_id=identity.user_id)

    def _get_sellable_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.product_repo.get_by_id(session, product_id)
        if not product:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product not found",
            )
        if not product.is_published:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Product is not available",
            )
        return product

    def _current_stock(self, session: Session, item: CartItem) -> int | None:
        """
        Stock of the product / variant behind a cart row, read fresh.
        None when that product / variant no longer exists.
        """
        if item.is_simple_product:
            product = (
                self.product_repo.get_by_id(session, item.product_id)
                if item.product_id
                else None
            )
            return product.in_stock if product else None

        variant = (
            self.product_repo.get_variant(session, item.product_variant_id)
            if item.product_variant_id
            else None
        )
        return variant.in_stock if variant else None

    @staticmethod
    def _image_reads(images: list[ProductImage]) -> list[CartImageRead]:
        return [
            CartImageRead(id=img.id, url=img.url, is_primary=img.is_primary)
            for img in images
        ]

    def _simple_read(self, session: Session, product: Product) -> CartProductRead:
        images = [
            img
            for img in self.product_repo.list_images_for_product(session, product.id)
            if img.variant_id is None
        ]
        return CartProductRead(
            id=product.id,
            name=product.name,
            description=product.description,
            price=product.price or 0.0,
            sale_price=product.sale_price,
            sku=product.sku or "",
            in_stock=product.in_stock or 0,
            images=self._image_reads(images),
        )

    def _variant_read(
        self,
        session: Session,
        variant: ProductVariant,
        product: Product,
    ) -> CartVariantRead:
        # Variant-specific images first, then product-level ones; the repo
        # already orders each group primary first.
        images = [
            img
            for img in self.product_repo.list_images_for_product(session, product.id)
            if img.variant_id in (variant.id, None)
        ]
        images.sort(key=lambda img: img.variant_id is None)

        color = (
            self.product_repo.get_color(session, variant.color_id)
            if variant.color_id
            else None
        )
        size = (
            self.product_repo.get_size(session, variant.size_id)
            if variant.size_id
            else None
        )

        return CartVariantRead(
            id=variant.id,
            sku=variant.sku,
            price=variant.price,
            sale_price=variant.sale_price,
            in_stock=variant.in_stock,
            product=CartVariantProductRead(
                id=product.id,
                name=product.name,
                description=product.description,
            ),
            color=(
                CartColorRead(id=color.id, name=color.name, hex_code=color.hex_code)
                if color
                else None
            ),
            size=CartSizeRead(id=size.id, name=size.name) if size else None,
            images=self._image_reads(images),
        )

    def _item_read(self, session: Session, item: CartItem) -> CartItemRead | None:
        """
        Build the enriched read model for a row, or None if the product /
        variant behind it has been deleted.
        """
        product_read = None
        variant_read = None
        product_id = item.product_id

        if item.is_simple_product:
            product = (
                self.product_repo.get_by_id(session, item.product_id)
                if item.product_id
                else None
            )
            if product is None:
                return None
            product_read = self._simple_read(session, product)
        else:
            variant = (
                self.product_repo.get_variant(session, item.product_variant_id)
                if item.product_variant_id
                else None
            )
            if variant is None:
                return None
            product = self.product_repo.get_by_id(session, variant.product_id)
            if product is None:
                return None
            variant_read = self._variant_read(session, variant, product)
            product_id = product.id

        read = CartItemRead(
            id=item.id,
            cart_id=item.cart_id,
            product_id=product_id,
            product_variant_id=item.product_variant_id,
            is_simple_product=item.is_simple_product,
            quantity=item.quantity,
            product=product_read,
            variant=variant_read,
            unit_price=0.0,
            line_total=0.0,
        )
        read.unit_price = unit_price(read)
        read.line_total = read.unit_price * read.quantity
        return read

    # ---- public operations ----

    def get_cart(self, session: Session, identity: SessionIdentity) -> CartSummary:
        """
        Return full cart summary:
          - list of CartItemRead (with unit_price / line_total)
          - total (sum of line totals)
          - total_quantity
        """
        cart = self._find_cart(session, identity)
        if cart is None:
            return CartSummary(items=[], total=0.0, total_quantity=0)

        item_reads: list[CartItemRead] = []
        for row in self.cart_repo.list_items(session, cart.id):
            read = self._item_read(session, row)
            if read is not None:
                item_reads.append(read)

        return CartSummary(
            items=item_reads,
            total=sum(it.line_total for it in item_reads),
            total_quantity=sum(it.quantity for it in item_reads),
        )

    def add_item(
        self,
        session: Session,
        identity: SessionIdentity,
        payload: CartItemAdd,
    ) -> CartSummary:
        """
        Add a product or variant to the cart.

        Rules:
          - product must exist and be published
          - configurable products are added by variant
          - an existing row for the same product / variant is increased;
            the result is capped at current stock, and the call fails
            only when nothing more can be added
        """
        if payload.product_variant_id is not None:
            variant = self.product_repo.get_variant(session, payload.product_variant_id)
            if not variant:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="Product variant not found",
                )
            if payload.product_id is not None and payload.product_id != variant.product_id:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Variant does not belong to this product",
                )
            product = self._get_sellable_product(session, variant.product_id)
            is_simple = False
            stock = variant.in_stock
        else:
            product = self._get_sellable_product(session, payload.product_id)
            if not product.is_simple:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Please select a variant for this product",
                )
            variant = None
            is_simple = True
            stock = product.in_stock

        cart = self._get_or_create_cart(session, identity)
        if is_simple:
            existing = self.cart_repo.find_simple_item(session, cart.id, product.id)
        else:
            existing = self.cart_repo.find_variant_item(session, cart.id, variant.id)

        current_qty = existing.quantity if existing else 0
        check = can_add_to_cart(payload.quantity, stock, current_qty)
        if not check.can_add and check.max_quantity <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=check.error,
            )
        to_add = payload.quantity if check.can_add else check.max_quantity

        if existing:
            existing.quantity = current_qty + to_add
            item = existing
        else:
            item = CartItem(
                cart_id=cart.id,
                product_id=product.id,
                product_variant_id=None if is_simple else variant.id,
                is_simple_product=is_simple,
                quantity=to_add,
            )

        self.cart_repo.touch(session, cart)
        self.cart_repo.save_item(session, item)
        return self.get_cart(session, identity)

    def update_quantity(
        self,
        session: Session,
        identity: SessionIdentity,
        item_id: uuid.UUID,
        payload: CartItemUpdate,
    ) -> CartSummary:
        """
        Set the quantity of a cart row, clamped to [1, current stock].

        An item that is now out of stock => 400.
        """
        item = self._get_own_item(session, identity, item_id)

        stock = self._current_stock(session, item)
        if stock is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Product is no longer available",
            )
        if stock <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="This item is out of stock",
            )

        item.quantity = max(1, min(payload.quantity, stock))
        self.cart_repo.save_item(session, item)
        return self.get_cart(session, identity)

    def remove_item(
        self,
        session: Session,
        identity: SessionIdentity,
        item_id: uuid.UUID,
    ) -> CartSummary:
        """
        Remove a row from the cart and return the updated summary.
        """
        item = self._get_own_item(session, identity, item_id)
        self.cart_repo.delete_item(session, item)
        return self.get_cart(session, identity)

    def clear_cart(
        self,
        session: Session,
        identity: SessionIdentity,
    ) -> CartSummary:
        """
        Clear all items from the cart and return an empty summary.
        """
        cart = self._find_cart(session, identity)
        if cart is not None:
            self.cart_repo.clear(session, cart.id)
        return CartSummary(items=[], total=0.0, total_quantity=0)

    def _get_own_item(
        self,
        session: Session,
        identity: SessionIdentity,
        item_id: uuid.UUID,
    ) -> CartItem:
        cart = self._find_cart(session, identity)
        item = (
            self.cart_repo.get_item_in_cart(session, cart.id, item_id)
            if cart is not None
            else None
        )
        if not item:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cart item not found",
            )
        return item

    # ---- guest -> user merge ----

    def merge_guest_cart(
        self,
        session: Session,
        guest_token: str,
        user_id: uuid.UUID,
    ) -> bool:
        """
        Move the guest cart identified by `guest_token` into the user's cart.

        For each guest row:
          - if the user already has a row for the same product (simple) or
            variant (configurable), quantities are added and capped at stock
          - otherwise the row is re-owned by the user's cart
          - rows whose item is out of stock are dropped

        The guest cart is then deleted, so no row is left owned by both.

        Returns True when guest rows were moved. Returns False when there was
        nothing to merge, every guest item was sold out, or the merge failed.
        Failures are rolled back and logged, and never block sign-in.
        """
        try:
            guest = self.guest_repo.get_by_token(session, guest_token)
            if guest is None:
                return False

            guest_cart = self.cart_repo.get_for_guest(session, guest.id)
            if guest_cart is None:
                return False

            guest_items = self.cart_repo.list_items(session, guest_cart.id)
            if not guest_items:
                session.delete(guest_cart)
                session.commit()
                return False

            user_cart = self.cart_repo.get_for_user(session, user_id)
            if user_cart is None:
                user_cart = self.cart_repo.create_cart(session, user_id=user_id)

            dropped = 0
            for row in guest_items:
                stock = self._current_stock(session, row)
                if stock is not None and stock <= 0:
                    session.delete(row)
                    dropped += 1
                    session.flush()
                    continue

                match = self.cart_repo.find_matching_item(session, user_cart.id, row)

                if match is not None:
                    combined = match.quantity + row.quantity
                    if stock is not None:
                        combined = min(combined, stock)
                    match.quantity = combined
                    session.add(match)
                    session.delete(row)
                else:
                    if stock is not None:
                        row.quantity = min(row.quantity, stock)
                    row.cart_id = user_cart.id
                    session.add(row)
                session.flush()

            session.delete(guest_cart)
            self.cart_repo.touch(session, user_cart)
            session.commit()

            logger.info(
                "Merged %d guest cart rows into cart of user %s (%d out of stock dropped)",
                len(guest_items) - dropped,
                user_id,
                dropped,
            )
            return dropped < len(guest_items)
        except Exception:
            session.rollback()
            logger.exception("Failed to merge guest cart into user %s", user_id)
            return False
