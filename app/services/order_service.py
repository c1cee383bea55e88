# app/services/order_service.py
import logging
import uuid
from datetime import datetime, timezone

from fastapi import HTTPException, status
from sqlmodel import Session, select

from app.models.address import Address
from app.models.order import Order, OrderItem
from app.models.product import Product, ProductVariant
from app.repositories.order_repo import OrderRepository
from app.schemas.cart import CartItemRead
from app.schemas.order import (
    BulkOrderStatusResult,
    BulkOrderStatusUpdate,
    CheckoutData,
    OrderCalculation,
    OrderItemRead,
    OrderRead,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from app.services.pricing import (
    describe_line,
    effective_price,
    estimate_delivery_date,
    generate_order_number,
    get_next_action,
    status_label,
)

logger = logging.getLogger(__name__)

FINAL_STATUSES = {"cancelled", "delivered"}

# processing and paid share a level: payment may land before or after packing
STATUS_LEVELS: dict[str, int] = {
    "pending": 1,
    "processing": 2,
    "paid": 2,
    "shipped": 3,
    "out_for_delivery": 4,
    "delivered": 5,
}

# Failed delivery / courier return
ALLOWED_BACKWARD: dict[str, set[str]] = {
    "out_for_delivery": {"shipped"},
    "shipped": {"processing", "paid"},
}

MAX_FORWARD_STEP = 2


class InsufficientStockError(Exception):
    """Raised while placing an order when a line exceeds current stock."""


def validate_status_transition(current: str, new: str) -> str | None:
    """
    Return None if an order may move from `current` to `new`,
    otherwise the reason it may not.
    """
    if current == "cancelled":
        return "Cannot modify a cancelled order. Cancelled orders are final."
    if current == "delivered":
        return "Cannot modify a delivered order. Order has been completed."
    if current == new:
        return None
    if new == "cancelled":
        return None

    current_level = STATUS_LEVELS[current]
    new_level = STATUS_LEVELS[new]

    if new_level < current_level:
        if new in ALLOWED_BACKWARD.get(current, set()):
            return None
        return (
            f"Cannot revert from {current} to {new}. "
            "Orders generally move forward in the fulfillment process."
        )

    if new_level - current_level > MAX_FORWARD_STEP:
        return (
            f"Cannot skip directly from {current} to {new}. "
            "Please update status progressively."
        )

    return None


def address_snapshot(address: Address | None) -> dict | None:
    if address is None:
        return None
    return address.model_dump(mode="json", exclude={"user_id", "is_default"})


class OrderService:
    """
    Business logic for orders.

    Responsibilities:
      - Persist an order from validated cart lines (stock deduction,
        frozen prices, address snapshots) in one transaction
      - Customer views and cancellation of their own orders
      - Admin listing, status transitions, bulk updates and deletion
      - Restore inventory whenever an order is cancelled
    """

    def __init__(self, order_repo: OrderRepository):
        self.order_repo = order_repo

    # -------- Order creation --------

    def _deduct_stock(self, session: Session, item: CartItemRead) -> None:
        """
        Re-read the stock row (locked where the database supports it)
        and deduct the line quantity.
        """
        name = describe_line(item)

        if item.is_simple_product and item.product is not None:
            row = session.exec(
                select(Product).where(Product.id == item.product.id).with_for_update()
            ).first()
            if row is None:
                raise InsufficientStockError(f'Product "{name}" not found.')
            row.updated_at = datetime.now(timezone.utc)
        elif not item.is_simple_product and item.variant is not None:
            row = session.exec(
                select(ProductVariant)
                .where(ProductVariant.id == item.variant.id)
                .with_for_update()
            ).first()
            if row is None:
                raise InsufficientStockError("Product variant not found.")
        else:
            return

        current = row.in_stock or 0
        if current < item.quantity:
            raise InsufficientStockError(
                f'Insufficient stock for "{name}". '
                f"Available: {current}, Requested: {item.quantity}"
            )
        row.in_stock = current - item.quantity
        session.add(row)

    @staticmethod
    def _order_item_for(order_id: uuid.UUID, item: CartItemRead) -> OrderItem | None:
        if item.is_simple_product and item.product is not None:
            return OrderItem(
                order_id=order_id,
                product_id=item.product.id,
                product_variant_id=None,
                is_simple_product=True,
                product_name=item.product.name,
                quantity=item.quantity,
                price_at_purchase=item.product.price,
                sale_price_at_purchase=item.product.sale_price or None,
            )
        if not item.is_simple_product and item.variant is not None:
            return OrderItem(
                order_id=order_id,
                product_id=item.variant.product.id,
                product_variant_id=item.variant.id,
                is_simple_product=False,
                product_name=describe_line(item),
                quantity=item.quantity,
                price_at_purchase=item.variant.price,
                sale_price_at_purchase=item.variant.sale_price or None,
            )
        return None

    def create_order(
        self,
        session: Session,
        *,
        user_id: uuid.UUID,
        items: list[CartItemRead],
        calculation: OrderCalculation,
        checkout: CheckoutData,
        shipping_address: Address,
        billing_address: Address,
    ) -> OrderWithItemsRead:
        """
        Write the order in a single transaction.

        Steps:
          1. Re-read and deduct stock for every line.
          2. Insert the Order (status='pending', frozen totals, address
             snapshots).
          3. Insert OrderItem rows with price / sale price at purchase.
          4. Commit.

        Cart rows are not touched here.

        Raises:
            InsufficientStockError: a line exceeds current stock.
            Any database error. In both cases the transaction is rolled back
            and nothing is persisted.
        """
        try:
            for item in items:
                self._deduct_stock(session, item)

            order = Order(
                user_id=user_id,
                status="pending",
                subtotal=calculation.subtotal,
                shipping_cost=calculation.shipping_cost,
                tax_amount=calculation.tax_amount,
                total_amount=calculation.total_amount,
                shipping_address_id=shipping_address.id,
                billing_address_id=billing_address.id,
                shipping_address=address_snapshot(shipping_address),
                billing_address=address_snapshot(billing_address),
                payment_method=checkout.payment_method,
                notes=checkout.notes,
            )
            order = self.order_repo.create_order(session, order)

            order_items = [
                oi
                for oi in (self._order_item_for(order.id, item) for item in items)
                if oi is not None
            ]
            order_items = self.order_repo.create_items(session, order_items)

            session.commit()
        except Exception:
            session.rollback()
            raise

        session.refresh(order)
        logger.info(
            "Created order %s for user %s (%d items, total %.2f)",
            order.id,
            user_id,
            len(order_items),
            order.total_amount,
        )
        return self._build_order_with_items_dto(order, order_items)

    # -------- User-facing operations --------

    def list_user_orders(
        self,
        session: Session,
        user_id: uuid.UUID,
        skip: int = 0,
        limit: int = 50,
    ) -> list[OrderRead]:
        """
        List orders for the given user (without items), newest first.
        """
        orders = self.order_repo.list_for_user(session, user_id, skip, limit)
        return [self._build_order_dto(o) for o in orders]

    def get_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Get a single order for the user, including items.

        - 404 if order not found or does not belong to this user.
        """
        order = self._get_user_order_row(session, user_id, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def cancel_user_order(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Customer cancellation: only pending orders; stock is restored.
        """
        order = self._get_user_order_row(session, user_id, order_id)
        if order.status != "pending":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only pending orders can be cancelled.",
            )

        self._apply_status(session, order, "cancelled")
        session.commit()
        session.refresh(order)

        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    # -------- Admin operations --------

    def list_all_orders(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        status_filter: str | None = None,
    ) -> list[OrderRead]:
        """
        List all orders (admin only), optionally filtered by status.
        """
        orders = self.order_repo.list_all(session, skip, limit, status=status_filter)
        return [self._build_order_dto(o) for o in orders]

    def get_order_admin(
        self,
        session: Session,
        order_id: uuid.UUID,
    ) -> OrderWithItemsRead:
        """
        Get any order with items (admin only).
        """
        order = self._get_order_row(session, order_id)
        items = self.order_repo.list_items_for_order(session, order.id)
        return self._build_order_with_items_dto(order, items)

    def update_status(
        self,
        session: Session,
        order_id: uuid.UUID,
        payload: OrderStatusUpdate,
    ) -> OrderRead:
        """
        Admin-only status update, checked by validate_status_transition.

        Any invalid transition raises 400. Cancelling restores stock.
        """
        order = self._get_order_row(session, order_id)

        error = validate_status_transition(order.status, payload.status)
        if error:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=error,
            )

        if order.status != payload.status:
            self._apply_status(session, order, payload.status)
            session.commit()
            session.refresh(order)
        return self._build_order_dto(order)

    def bulk_update_status(
        self,
        session: Session,
        payload: BulkOrderStatusUpdate,
    ) -> BulkOrderStatusResult:
        """
        Move several orders to one status. Each order is checked and
        committed on its own; rejected ones are reported in `failed`.
        """
        updated: list[uuid.UUID] = []
        failed: dict[str, str] = {}

        for order_id in dict.fromkeys(payload.order_ids):
            order = self.order_repo.get_by_id(session, order_id)
            if order is None:
                failed[str(order_id)] = "Order not found"
                continue

            error = validate_status_transition(order.status, payload.status)
            if error:
                failed[str(order_id)] = error
                continue

            if order.status != payload.status:
                self._apply_status(session, order, payload.status)
                session.commit()
            updated.append(order_id)

        logger.info(
            "Bulk status update to %s: %d updated, %d failed",
            payload.status,
            len(updated),
            len(failed),
        )
        return BulkOrderStatusResult(updated=updated, failed=failed)

    def delete_order(self, session: Session, order_id: uuid.UUID) -> None:
        """
        Delete an order (admin only). Only cancelled orders can be deleted;
        their stock was already restored on cancellation.
        """
        order = self._get_order_row(session, order_id)
        if order.status != "cancelled":
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only cancelled orders can be deleted. Cancel the order first.",
            )
        self.order_repo.delete_order(session, order)
        session.commit()

    # -------- Helpers --------

    def _get_order_row(self, session: Session, order_id: uuid.UUID) -> Order:
        order = self.order_repo.get_by_id(session, order_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def _get_user_order_row(
        self,
        session: Session,
        user_id: uuid.UUID,
        order_id: uuid.UUID,
    ) -> Order:
        order = self.order_repo.get_for_user(session, order_id, user_id)
        if not order:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Order not found",
            )
        return order

    def _apply_status(self, session: Session, order: Order, new_status: str) -> None:
        """Set the status (no commit), restoring stock when cancelling."""
        if new_status == "cancelled" and order.status != "cancelled":
            self._restore_inventory(session, order)
        order.status = new_status
        order.updated_at = datetime.now(timezone.utc)
        self.order_repo.update_order(session, order)

    def _restore_inventory(self, session: Session, order: Order) -> None:
        for item in self.order_repo.list_items_for_order(session, order.id):
            if item.is_simple_product and item.product_id:
                product = session.get(Product, item.product_id)
                if product is not None:
                    product.in_stock += item.quantity
                    product.updated_at = datetime.now(timezone.utc)
                    session.add(product)
            elif not item.is_simple_product and item.product_variant_id:
                variant = session.get(ProductVariant, item.product_variant_id)
                if variant is not None:
                    variant.in_stock += item.quantity
                    session.add(variant)

    def _build_order_dto(self, order: Order) -> OrderRead:
        return OrderRead(
            id=order.id,
            order_number=generate_order_number(order.id),
            user_id=order.user_id,
            status=order.status,
            status_label=status_label(order.status),
            subtotal=order.subtotal,
            shipping_cost=order.shipping_cost,
            tax_amount=order.tax_amount,
            total_amount=order.total_amount,
            payment_method=order.payment_method,
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )

    def _build_order_with_items_dto(
        self,
        order: Order,
        items: list[OrderItem],
    ) -> OrderWithItemsRead:
        """
        Compose OrderWithItemsRead from ORM models. Line totals use the
        prices frozen on each item, never the current catalog.
        """
        item_dtos: list[OrderItemRead] = []
        for it in items:
            price = effective_price(it.price_at_purchase, it.sale_price_at_purchase)
            item_dtos.append(
                OrderItemRead(
                    id=it.id,
                    order_id=it.order_id,
                    product_id=it.product_id,
                    product_variant_id=it.product_variant_id,
                    is_simple_product=it.is_simple_product,
                    product_name=it.product_name,
                    quantity=it.quantity,
                    price_at_purchase=it.price_at_purchase,
                    sale_price_at_purchase=it.sale_price_at_purchase,
                    unit_price=price,
                    line_total=price * it.quantity,
                )
            )

        base = self._build_order_dto(order)
        return OrderWithItemsRead(
            **base.model_dump(),
            items=item_dtos,
            shipping_address_id=order.shipping_address_id,
            billing_address_id=order.billing_address_id,
            shipping_address=order.shipping_address,
            billing_address=order.billing_address,
            estimated_delivery=estimate_delivery_date(order.created_at, order.status).date(),
            next_action=get_next_action(order.status),
        )
