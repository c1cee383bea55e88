# app/services/stats_service.py
from datetime import datetime, timezone

from sqlmodel import Session

from app.repositories.stats_repo import StatsRepository
from app.schemas.stats import LatestOrderSummary, OrderStats, TopProduct
from app.services.pricing import ORDER_STATUS_LABELS, generate_order_number


class StatsService:
    """
    Orchestrates aggregated statistics for the admin orders dashboard.
    """

    def __init__(self, repo: StatsRepository):
        self.repo = repo

    def get_order_stats(
        self,
        session: Session,
        top_n_products: int = 5,
        latest_n_orders: int = 5,
    ) -> OrderStats:
        # Every status is reported, zero when no order has it
        status_counts = {s: 0 for s in ORDER_STATUS_LABELS}
        for order_status, count in self.repo.count_by_status(session):
            status_counts[order_status] = int(count or 0)

        now = datetime.now(timezone.utc)
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)

        top_products: list[TopProduct] = []
        for product_id, name, total_quantity, revenue in self.repo.top_products(
            session, limit=top_n_products
        ):
            top_products.append(
                TopProduct(
                    product_id=product_id,
                    name=name or "Unknown product",
                    total_quantity=int(total_quantity or 0),
                    total_revenue=float(revenue or 0.0),
                )
            )

        latest_orders: list[LatestOrderSummary] = []
        for order, customer_name in self.repo.latest_orders(session, limit=latest_n_orders):
            latest_orders.append(
                LatestOrderSummary(
                    id=order.id,
                    order_number=generate_order_number(order.id),
                    created_at=order.created_at,
                    user_id=order.user_id,
                    customer_name=customer_name,
                    total_amount=order.total_amount,
                    payment_method=order.payment_method,
                    status=order.status,
                )
            )

        return OrderStats(
            total_customers=self.repo.count_customers(session),
            total_orders=self.repo.count_orders(session),
            status_counts=status_counts,
            total_revenue=self.repo.delivered_revenue(session),
            today_orders=self.repo.count_orders_since(session, start_of_day),
            top_products=top_products,
            latest_orders=latest_orders,
        )
