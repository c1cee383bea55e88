# app/repositories/stats_repo.py
from datetime import datetime

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.user import User
from app.models.order import Order, OrderItem


class StatsRepository:
    """
    Read-only aggregated queries for the admin orders dashboard.
    """

    def count_customers(self, session: Session) -> int:
        stmt = select(func.count()).select_from(User).where(User.role == "user")
        # SQLModel's Session.exec() -> ScalarResult -> use .one()
        value = session.exec(stmt).one()
        return int(value or 0)

    def count_orders(self, session: Session) -> int:
        stmt = select(func.count()).select_from(Order)
        value = session.exec(stmt).one()
        return int(value or 0)

    def count_by_status(self, session: Session) -> list[tuple]:
        stmt = select(Order.status, func.count(Order.id)).group_by(Order.status)
        return list(session.exec(stmt).all())

    def delivered_revenue(self, session: Session) -> float:
        """
        Sum of total_amount for delivered orders only.
        """
        stmt = (
            select(func.coalesce(func.sum(Order.total_amount), 0.0))
            .where(Order.status == "delivered")
        )
        value = session.exec(stmt).one()
        return float(value or 0.0)

    def count_orders_since(self, session: Session, since: datetime) -> int:
        stmt = select(func.count()).select_from(Order).where(Order.created_at >= since)
        value = session.exec(stmt).one()
        return int(value or 0)

    def top_products(
        self,
        session: Session,
        limit: int = 5,
    ) -> list[tuple]:
        """
        Top products by quantity sold across all non-cancelled orders.

        Revenue uses the sale price at purchase when there was one.
        """
        qty_sum = func.coalesce(func.sum(OrderItem.quantity), 0)
        unit_price = func.coalesce(
            OrderItem.sale_price_at_purchase,
            OrderItem.price_at_purchase,
        )
        revenue_sum = func.coalesce(
            func.sum(OrderItem.quantity * unit_price),
            0.0,
        )

        stmt = (
            select(
                OrderItem.product_id,
                func.max(OrderItem.product_name),
                qty_sum.label("total_quantity"),
                revenue_sum.label("total_revenue"),
            )
            .join(Order, Order.id == OrderItem.order_id)
            .where(Order.status != "cancelled", OrderItem.product_id.is_not(None))
            .group_by(OrderItem.product_id)
            .order_by(qty_sum.desc())
            .limit(limit)
        )

        return list(session.exec(stmt).all())

    def latest_orders(
        self,
        session: Session,
        limit: int = 5,
    ) -> list[tuple]:
        """
        Latest N orders by created_at (any status) with the customer name.
        """
        stmt = (
            select(Order, User.name)
            .join(User, User.id == Order.user_id, isouter=True)
            .order_by(Order.created_at.desc())
            .limit(limit)
        )
        return list(session.exec(stmt).all())
