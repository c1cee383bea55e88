# app/routers/orders.py
import uuid

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from app.core.auth import require_auth, require_admin
from app.database import get_session
from app.models.user import User
from app.repositories.order_repo import OrderRepository
from app.schemas.order import (
    BulkOrderStatusResult,
    BulkOrderStatusUpdate,
    OrderRead,
    OrderStatus,
    OrderStatusUpdate,
    OrderWithItemsRead,
)
from app.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["Orders"])

order_repo = OrderRepository()
service = OrderService(order_repo)


# -------- Customer endpoints --------


@router.get(
    "/me",
    response_model=list[OrderRead],
)
def list_my_orders(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
    skip: int = 0,
    limit: int = 50,
):
    """
    List the authenticated user's orders (without items), newest first.
    """
    return service.list_user_orders(session, current_user.id, skip, limit)


@router.get(
    "/me/{order_id}",
    response_model=OrderWithItemsRead,
)
def get_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Get a single order (with items) belonging to the current user.
    """
    return service.get_user_order(session, current_user.id, order_id)


@router.post(
    "/me/{order_id}/cancel",
    response_model=OrderWithItemsRead,
)
def cancel_my_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Cancel one of the caller's pending orders; stock is put back.
    """
    return service.cancel_user_order(session, current_user.id, order_id)


# -------- Admin endpoints --------


@router.get(
    "",
    response_model=list[OrderRead],
    dependencies=[Depends(require_admin)],
)
def list_all_orders(
    session: Session = Depends(get_session),
    skip: int = 0,
    limit: int = 50,
    status_filter: OrderStatus | None = None,
):
    """
    List all orders (admin only), optionally only those in one status.
    """
    return service.list_all_orders(session, skip, limit, status_filter)


@router.post(
    "/bulk-status",
    response_model=BulkOrderStatusResult,
    dependencies=[Depends(require_admin)],
)
def bulk_update_order_status(
    payload: BulkOrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Move several orders to one status. Each order is checked against the
    transition rules on its own; rejected ones are listed in `failed`.
    """
    return service.bulk_update_status(session, payload)


@router.get(
    "/{order_id}",
    response_model=OrderWithItemsRead,
    dependencies=[Depends(require_admin)],
)
def get_order_admin(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Get any order with items (admin only).
    """
    return service.get_order_admin(session, order_id)


@router.patch(
    "/{order_id}/status",
    response_model=OrderRead,
    dependencies=[Depends(require_admin)],
)
def update_order_status(
    order_id: uuid.UUID,
    payload: OrderStatusUpdate,
    session: Session = Depends(get_session),
):
    """
    Update order status (admin only).

      - cancelled and delivered are final
      - cancelling is allowed from any other status and restores stock
      - forward moves may skip at most one step
      - backward moves only for returns:
          out_for_delivery -> shipped
          shipped          -> processing / paid
    """
    return service.update_status(session, order_id, payload)


@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
def delete_order(
    order_id: uuid.UUID,
    session: Session = Depends(get_session),
):
    """
    Delete a cancelled order (admin only).
    """
    service.delete_order(session, order_id)
    return None
