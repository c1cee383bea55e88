# app/repositories/cart_repo.py
import uuid
from datetime import datetime, timezone

from sqlmodel import Session, select

from app.models.cart import Cart, CartItem


class CartRepository:
    """
    Data access layer for carts and cart_items.

    Carts are looked up by owner: exactly one of user_id / guest_id.
    """

    # ---- Carts ----

    def get_for_user(self, session: Session, user_id: uuid.UUID) -> Cart | None:
        stmt = select(Cart).where(Cart.user_id == user_id)
        return session.exec(stmt).first()

    def get_for_guest(self, session: Session, guest_id: uuid.UUID) -> Cart | None:
        stmt = select(Cart).where(Cart.guest_id == guest_id)
        return session.exec(stmt).first()

    def create_cart(
        self,
        session: Session,
        *,
        user_id: uuid.UUID | None = None,
        guest_id: uuid.UUID | None = None,
    ) -> Cart:
        cart = Cart(user_id=user_id, guest_id=guest_id)
        session.add(cart)
        session.commit()
        session.refresh(cart)
        return cart

    def touch(self, session: Session, cart: Cart) -> None:
        cart.updated_at = datetime.now(timezone.utc)
        session.add(cart)

    # ---- Items ----

    def list_items(self, session: Session, cart_id: uuid.UUID) -> list[CartItem]:
        stmt = select(CartItem).where(CartItem.cart_id == cart_id)
        return list(session.exec(stmt).all())

    def get_item_in_cart(
        self,
        session: Session,
        cart_id: uuid.UUID,
        item_id: uuid.UUID,
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.id == item_id,
            CartItem.cart_id == cart_id,
        )
        return session.exec(stmt).first()

    def find_simple_item(
        self,
        session: Session,
        cart_id: uuid.UUID,
        product_id: uuid.UUID,
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.cart_id == cart_id,
            CartItem.product_id == product_id,
            CartItem.is_simple_product == True,  # noqa: E712
        )
        return session.exec(stmt).first()

    def find_variant_item(
        self,
        session: Session,
        cart_id: uuid.UUID,
        variant_id: uuid.UUID,
    ) -> CartItem | None:
        stmt = select(CartItem).where(
            CartItem.cart_id == cart_id,
            CartItem.product_variant_id == variant_id,
            CartItem.is_simple_product == False,  # noqa: E712
        )
        return session.exec(stmt).first()

    def find_matching_item(
        self,
        session: Session,
        cart_id: uuid.UUID,
        item: CartItem,
    ) -> CartItem | None:
        """
        Row in `cart_id` that refers to the same product (simple) or the
        same variant (configurable) as `item`.
        """
        if item.is_simple_product:
            if item.product_id is None:
                return None
            return self.find_simple_item(session, cart_id, item.product_id)
        if item.product_variant_id is None:
            return None
        return self.find_variant_item(session, cart_id, item.product_variant_id)

    def save_item(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def delete_item(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.commit()

    def clear(self, session: Session, cart_id: uuid.UUID) -> None:
        for row in self.list_items(session, cart_id):
            session.delete(row)
        session.commit()
