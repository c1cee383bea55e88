# app/schemas/stats.py
import uuid
from datetime import datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel

from app.schemas.order import OrderStatus, PaymentMethod


class TopProduct(SQLModel):
    """
    Aggregated stats for top-selling products.
    """
    model_config = ConfigDict(extra="forbid")

    product_id: uuid.UUID
    name: str
    total_quantity: int
    total_revenue: float


class LatestOrderSummary(SQLModel):
    """
    Lightweight info for last N orders.
    """
    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    order_number: str
    created_at: datetime
    user_id: uuid.UUID | None
    customer_name: str | None
    total_amount: float
    payment_method: PaymentMethod
    status: OrderStatus


class OrderStats(SQLModel):
    """
    Full payload for the admin orders dashboard.

    - status_counts: number of orders per status (every status present)
    - total_revenue: sum of delivered orders
    - today_orders: orders created since 00:00 UTC
    """
    model_config = ConfigDict(extra="forbid")

    total_customers: int
    total_orders: int
    status_counts: dict[str, int]
    total_revenue: float
    today_orders: int
    top_products: list[TopProduct]
    latest_orders: list[LatestOrderSummary]
