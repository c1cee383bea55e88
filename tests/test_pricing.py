import uuid
from datetime import datetime, timezone

from app.schemas.cart import (
    CartColorRead,
    CartItemRead,
    CartProductRead,
    CartSizeRead,
    CartVariantProductRead,
    CartVariantRead,
)
from app.services.pricing import (
    calculate_order_totals,
    can_add_to_cart,
    estimate_delivery_date,
    generate_order_number,
    get_inventory_status,
    get_next_action,
    validate_cart_for_checkout,
)


def simple_line(price: float, quantity: int, sale_price: float | None = None, in_stock: int = 10):
    return CartItemRead(
        id=uuid.uuid4(),
        cart_id=uuid.uuid4(),
        product_id=uuid.uuid4(),
        product_variant_id=None,
        is_simple_product=True,
        quantity=quantity,
        product=CartProductRead(
            id=uuid.uuid4(),
            name="Rose Toner",
            description="",
            price=price,
            sale_price=sale_price,
            sku="TONER-1",
            in_stock=in_stock,
        ),
        unit_price=sale_price or price,
        line_total=(sale_price or price) * quantity,
    )


def variant_line(price: float, quantity: int, sale_price: float | None = None, in_stock: int = 10):
    return CartItemRead(
        id=uuid.uuid4(),
        cart_id=uuid.uuid4(),
        product_id=uuid.uuid4(),
        product_variant_id=uuid.uuid4(),
        is_simple_product=False,
        quantity=quantity,
        variant=CartVariantRead(
            id=uuid.uuid4(),
            sku="FOUND-IV-30",
            price=price,
            sale_price=sale_price,
            in_stock=in_stock,
            product=CartVariantProductRead(id=uuid.uuid4(), name="Silk Foundation", description=""),
            color=CartColorRead(id=uuid.uuid4(), name="Ivory", hex_code="#FFFFF0"),
            size=CartSizeRead(id=uuid.uuid4(), name="30ml"),
        ),
        unit_price=sale_price or price,
        line_total=(sale_price or price) * quantity,
    )


def test_totals_below_free_shipping_threshold():
    calc = calculate_order_totals([variant_line(500, 2)])

    assert calc.subtotal == 1000
    assert calc.shipping_cost == 250
    assert calc.tax_amount == 100
    assert calc.total_amount == 1350


def test_totals_free_shipping_at_threshold():
    calc = calculate_order_totals([simple_line(1000, 3)])

    assert calc.subtotal == 3000
    assert calc.shipping_cost == 0
    assert calc.tax_amount == 300
    assert calc.total_amount == 3300

    exact = calculate_order_totals([simple_line(2500, 1)])
    assert exact.shipping_cost == 0


def test_sale_price_wins_over_base_price():
    calc = calculate_order_totals([simple_line(1000, 1, sale_price=800)])

    assert calc.subtotal == 800


def test_zero_sale_price_means_no_sale():
    calc = calculate_order_totals([simple_line(1000, 1, sale_price=0)])

    assert calc.subtotal == 1000


def test_tax_rounds_half_up():
    # 5 * 0.1 = 0.5 -> 1
    calc = calculate_order_totals([simple_line(5, 1)])
    assert calc.tax_amount == 1

    # 14 * 0.1 = 1.4 -> 1
    calc = calculate_order_totals([simple_line(14, 1)])
    assert calc.tax_amount == 1


def test_line_without_product_data_counts_as_zero():
    line = simple_line(1000, 2)
    line.product = None

    calc = calculate_order_totals([line])

    assert calc.subtotal == 0
    assert calc.shipping_cost == 250


def test_custom_rates():
    calc = calculate_order_totals(
        [simple_line(100, 1)], shipping_cost=50, tax_rate=0.2, free_shipping_threshold=5000
    )

    assert calc.total_amount == 100 + 50 + 20


def test_validate_cart_reports_out_of_stock_lines():
    assert validate_cart_for_checkout([]) == ["Your cart is empty"]

    errors = validate_cart_for_checkout([variant_line(500, 3, in_stock=2), simple_line(100, 1)])

    assert errors == ["Silk Foundation (Ivory 30ml) is out of stock"]


def test_inventory_status():
    assert get_inventory_status(0).status == "out_of_stock"
    assert not get_inventory_status(0).can_order

    low = get_inventory_status(3)
    assert low.status == "low_stock"
    assert low.display_text == "Only 3 left in stock!"

    assert get_inventory_status(6).status == "in_stock"


def test_can_add_to_cart():
    assert can_add_to_cart(2, 5).can_add

    blocked = can_add_to_cart(3, 5, current_cart_quantity=4)
    assert not blocked.can_add
    assert blocked.max_quantity == 1
    assert blocked.error == "Only 5 available. You already have 4 in cart."

    assert can_add_to_cart(1, 0).error == "This item is out of stock"


def test_order_number_and_delivery_estimate():
    order_id = uuid.UUID("3f2b8c1a-0000-4000-8000-000000000000")
    assert generate_order_number(order_id) == "3F2B8C1A"

    placed = datetime(2026, 3, 1, tzinfo=timezone.utc)
    assert estimate_delivery_date(placed, "pending").day == 6
    assert estimate_delivery_date(placed, "shipped").day == 3
    assert estimate_delivery_date(placed, "delivered").day == 1


def test_next_action_for_final_statuses():
    assert get_next_action("cancelled") == "This order was cancelled."
    assert "delivered" in get_next_action("delivered")
