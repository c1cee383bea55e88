# app/services/pricing.py
"""
Pure pricing and order helper functions.

Nothing in here touches the database; inputs are cart lines as returned
by CartService.get_cart (CartItemRead) and plain values.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable

from app.schemas.cart import CartItemRead
from app.schemas.order import OrderCalculation

DEFAULT_SHIPPING_COST = 250.0
DEFAULT_TAX_RATE = 0.1
FREE_SHIPPING_THRESHOLD = 2500.0
LOW_STOCK_LIMIT = 5

PAYMENT_METHODS: dict[str, dict] = {
    "cod": {
        "name": "Cash on Delivery",
        "description": "Pay when your order arrives",
        "available": True,
    },
    "jazzcash": {
        "name": "JazzCash",
        "description": "Mobile wallet payment",
        "available": False,
    },
    "easypaisa": {
        "name": "EasyPaisa",
        "description": "Mobile wallet payment",
        "available": False,
    },
}

ORDER_STATUS_LABELS: dict[str, str] = {
    "pending": "Order Received",
    "processing": "Processing",
    "paid": "Payment Confirmed",
    "shipped": "Shipped",
    "out_for_delivery": "Out for Delivery",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
}

ORDER_STATUS_DESCRIPTIONS: dict[str, str] = {
    "pending": "We have received your order and will begin processing it soon.",
    "processing": "Your order is being prepared for shipment.",
    "paid": "Payment has been confirmed. Your order will be processed soon.",
    "shipped": "Your order is on its way to you.",
    "out_for_delivery": "Your order is out for delivery and will arrive today.",
    "delivered": "Your order has been successfully delivered.",
    "cancelled": "This order has been cancelled.",
}

_NEXT_ACTIONS: dict[str, str] = {
    "pending": "We will confirm your order within 24 hours.",
    "processing": "Your order is being packed and will ship soon.",
    "paid": "Your order will be processed and shipped soon.",
    "shipped": "Track your package. It will arrive in 2-3 business days.",
    "out_for_delivery": "Your order will be delivered today. Please keep your payment ready.",
}


@dataclass(frozen=True)
class InventoryStatus:
    status: str  # in_stock | low_stock | out_of_stock
    display_text: str
    can_order: bool


@dataclass(frozen=True)
class AddToCartCheck:
    can_add: bool
    max_quantity: int
    error: str | None = None


def effective_price(price: float | None, sale_price: float | None) -> float:
    # A sale price of 0 / None means "no sale".
    if sale_price:
        return float(sale_price)
    return float(price or 0.0)


def unit_price(item: CartItemRead) -> float:
    """
    Effective unit price of a cart line: sale price if present, else the
    base price, read from the product (simple) or the variant
    (configurable). A line without that data is priced at 0.
    """
    if item.is_simple_product and item.product is not None:
        return effective_price(item.product.price, item.product.sale_price)
    if not item.is_simple_product and item.variant is not None:
        return effective_price(item.variant.price, item.variant.sale_price)
    return 0.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_order_totals(
    items: Iterable[CartItemRead],
    shipping_cost: float = DEFAULT_SHIPPING_COST,
    tax_rate: float = DEFAULT_TAX_RATE,
    free_shipping_threshold: float = FREE_SHIPPING_THRESHOLD,
) -> OrderCalculation:
    """
    Compute subtotal, shipping, tax and grand total for cart lines.

    - shipping is free once the subtotal reaches the threshold
    - tax is rounded half-up to a whole currency unit
    """
    subtotal = sum(unit_price(item) * item.quantity for item in items)
    final_shipping = 0.0 if subtotal >= free_shipping_threshold else float(shipping_cost)
    tax_amount = float(round_half_up(subtotal * tax_rate))

    return OrderCalculation(
        subtotal=subtotal,
        shipping_cost=final_shipping,
        tax_amount=tax_amount,
        total_amount=subtotal + final_shipping + tax_amount,
    )


def describe_line(item: CartItemRead) -> str:
    """Human readable name of a cart line, with color/size for variants."""
    if item.is_simple_product and item.product is not None:
        return item.product.name
    if item.variant is not None:
        parts = [
            item.variant.color.name if item.variant.color else "",
            item.variant.size.name if item.variant.size else "",
        ]
        return f"{item.variant.product.name} ({' '.join(parts).strip()})"
    return "Unknown item"


def line_stock(item: CartItemRead) -> int | None:
    if item.is_simple_product and item.product is not None:
        return item.product.in_stock
    if not item.is_simple_product and item.variant is not None:
        return item.variant.in_stock
    return None


def validate_cart_for_checkout(items: list[CartItemRead]) -> list[str]:
    """
    Return the reasons the cart cannot be checked out (empty list if it can).
    """
    if not items:
        return ["Your cart is empty"]

    errors: list[str] = []
    for item in items:
        stock = line_stock(item)
        if stock is not None and stock < item.quantity:
            errors.append(f"{describe_line(item)} is out of stock")
    return errors


def get_inventory_status(in_stock: int) -> InventoryStatus:
    """
    Stock badge for storefront display; exact numbers are only shown
    when stock is low.
    """
    if in_stock <= 0:
        return InventoryStatus("out_of_stock", "Out of Stock", False)
    if in_stock <= LOW_STOCK_LIMIT:
        return InventoryStatus("low_stock", f"Only {in_stock} left in stock!", True)
    return InventoryStatus("in_stock", "In Stock", True)


def can_add_to_cart(
    requested: int,
    in_stock: int,
    current_cart_quantity: int = 0,
) -> AddToCartCheck:
    if in_stock <= 0:
        return AddToCartCheck(False, 0, "This item is out of stock")

    if requested + current_cart_quantity > in_stock:
        return AddToCartCheck(
            False,
            in_stock - current_cart_quantity,
            f"Only {in_stock} available. You already have {current_cart_quantity} in cart.",
        )

    return AddToCartCheck(True, in_stock)


def generate_order_number(order_id) -> str:
    """First 8 characters of the order id, upper case."""
    return str(order_id)[:8].upper()


def estimate_delivery_date(
    order_date: datetime | None = None,
    status: str | None = None,
) -> datetime:
    base = order_date or datetime.now(timezone.utc)
    if status == "delivered":
        return base
    if status in ("shipped", "out_for_delivery"):
        return base + timedelta(days=2)
    return base + timedelta(days=5)


def status_label(status: str) -> str:
    return ORDER_STATUS_LABELS.get(status, status)


def get_next_action(status: str) -> str:
    """Customer-facing hint about what happens next for an order."""
    if status == "cancelled":
        return "This order was cancelled."
    if status == "delivered":
        return "Your order has been delivered. Enjoy your purchase!"
    return _NEXT_ACTIONS.get(status, "Your order is being processed.")
