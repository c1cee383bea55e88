# app/routers/admin_stats.py
from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from app.core.auth import require_admin
from app.database import get_session
from app.repositories.stats_repo import StatsRepository
from app.schemas.stats import OrderStats
from app.services.stats_service import StatsService

router = APIRouter(prefix="/admin/stats", tags=["Admin Stats"])

repo = StatsRepository()
service = StatsService(repo)


@router.get(
    "/orders",
    response_model=OrderStats,
    dependencies=[Depends(require_admin)],
)
def get_order_stats(
    top: int = Query(default=5, ge=1, le=50),
    latest: int = Query(default=5, ge=1, le=50),
    session: Session = Depends(get_session),
):
    """
    Aggregated order statistics for the admin dashboard.

    Query params (optional):
      - top: number of best-selling products, default 5
      - latest: number of most recent orders, default 5

    Only accessible to users with role='admin'.
    """
    return service.get_order_stats(
        session=session,
        top_n_products=top,
        latest_n_orders=latest,
    )
