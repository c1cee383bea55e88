# app/client/cart_store.py
"""
Client-side mirror of the server cart with optimistic updates.

Every mutation follows the same contract:
  1. snapshot the current state
  2. apply the change locally (the UI sees it at once)
  3. call the cart API
  4. success: silently re-sync from the server
     failure: restore the snapshot and set `error`

State changes happen under one lock. Network calls run outside it, so
when two calls race, whichever response is applied last wins.
"""
import logging
import threading
import uuid
from dataclasses import dataclass, replace
from typing import Any, Literal

from app.client.api import CartApiClient, CartApiError

logger = logging.getLogger(__name__)

PendingOp = Literal["add", "remove"]

SYNC_ERROR = "Failed to sync cart. Please refresh the page."


@dataclass
class CartLine:
    id: str
    quantity: int
    unit_price: float
    product_id: str | None = None
    product_variant_id: str | None = None
    name: str = ""
    sku: str = ""
    in_stock: int = 0
    image: str | None = None
    # Local only: set while an optimistic change awaits the server
    pending: PendingOp | None = None

    @property
    def line_total(self) -> float:
        return self.unit_price * self.quantity

    @classmethod
    def from_server(cls, data: dict[str, Any]) -> "CartLine":
        details = data.get("product") or data.get("variant") or {}
        name = details.get("name") or (details.get("product") or {}).get("name", "")
        images = details.get("images") or []
        primary = next((img for img in images if img.get("is_primary")), None)
        image = primary or (images[0] if images else None)
        return cls(
            id=str(data["id"]),
            quantity=int(data["quantity"]),
            unit_price=float(data.get("unit_price") or 0.0),
            product_id=data.get("product_id"),
            product_variant_id=data.get("product_variant_id"),
            name=name,
            sku=details.get("sku", ""),
            in_stock=int(details.get("in_stock") or 0),
            image=image["url"] if image else None,
        )


def calculate_total(items: list[CartLine]) -> float:
    """Sum of line totals, leaving out lines that are being removed."""
    return sum(line.line_total for line in items if line.pending != "remove")


class CartStore:
    def __init__(self, api: CartApiClient):
        self.api = api
        self.items: list[CartLine] = []
        self.total: float = 0.0
        self.is_loading: bool = False
        self.error: str | None = None
        self._lock = threading.RLock()

    # ----- state helpers -----

    @property
    def item_count(self) -> int:
        with self._lock:
            return sum(line.quantity for line in self.items if line.pending != "remove")

    def _snapshot(self) -> tuple[list[CartLine], float]:
        return [replace(line) for line in self.items], self.total

    def _apply(self, items: list[CartLine]) -> None:
        self.items = items
        self.total = calculate_total(items)
        self.error = None

    def _rollback(self, snapshot: tuple[list[CartLine], float], error: str) -> None:
        with self._lock:
            self.items, self.total = snapshot
            self.error = error

    def _find(self, item_id: str) -> int | None:
        for i, line in enumerate(self.items):
            if line.id == item_id:
                return i
        return None

    def clear_error(self) -> None:
        with self._lock:
            self.error = None

    # ----- server sync -----

    def sync_with_server(self, silent: bool = False) -> bool:
        """
        Replace local state with the server cart.

        Any optimistic change still in flight is overwritten.
        """
        if not silent:
            with self._lock:
                self.is_loading = True

        try:
            summary = self.api.get_cart()
        except CartApiError as exc:
            logger.warning("Cart sync failed: %s", exc.message)
            with self._lock:
                self.is_loading = False
                self.error = SYNC_ERROR
            return False

        with self._lock:
            self.items = [CartLine.from_server(item) for item in summary.get("items", [])]
            self.total = float(summary.get("total") or 0.0)
            self.is_loading = False
            self.error = None
        return True

    # ----- mutations -----

    def add_item(
        self,
        product_id: str | None = None,
        product_variant_id: str | None = None,
        quantity: int = 1,
        name: str = "",
        unit_price: float = 0.0,
    ) -> bool:
        """
        Add a product (simple) or variant (configurable). A matching line
        has its quantity bumped; otherwise a temporary line is appended.
        """
        with self._lock:
            snapshot = self._snapshot()
            items = [replace(line) for line in self.items]
            existing = next(
                (
                    line
                    for line in items
                    if line.pending != "remove"
                    and (
                        (product_variant_id and line.product_variant_id == product_variant_id)
                        or (
                            not product_variant_id
                            and not line.product_variant_id
                            and line.product_id == product_id
                        )
                    )
                ),
                None,
            )
            if existing is not None:
                existing.quantity += quantity
                existing.pending = "add"
            else:
                items.append(
                    CartLine(
                        id=f"temp-{uuid.uuid4().hex}",
                        quantity=quantity,
                        unit_price=unit_price,
                        product_id=product_id,
                        product_variant_id=product_variant_id,
                        name=name or "Loading...",
                        pending="add",
                    )
                )
            self._apply(items)

        try:
            self.api.add_item(
                product_id=product_id,
                product_variant_id=product_variant_id,
                quantity=quantity,
            )
        except CartApiError as exc:
            self._rollback(snapshot, exc.message or "Failed to add item to cart. Please try again.")
            return False

        self.sync_with_server(silent=True)
        return True

    def update_quantity(self, item_id: str, quantity: int) -> bool:
        if quantity <= 0:
            return self.remove_item(item_id)

        with self._lock:
            index = self._find(item_id)
            if index is None:
                return False
            snapshot = self._snapshot()
            items = [replace(line) for line in self.items]
            items[index].quantity = quantity
            self._apply(items)

        try:
            self.api.update_item(item_id, quantity)
        except CartApiError as exc:
            self._rollback(snapshot, exc.message or "Failed to update quantity. Please try again.")
            return False

        self.sync_with_server(silent=True)
        return True

    def remove_item(self, item_id: str) -> bool:
        """
        Tag the line as being removed (it stops counting toward the total)
        and delete it on the server.
        """
        with self._lock:
            index = self._find(item_id)
            if index is None:
                return False
            snapshot = self._snapshot()
            items = [replace(line) for line in self.items]
            items[index].pending = "remove"
            self._apply(items)

        try:
            self.api.remove_item(item_id)
        except CartApiError as exc:
            self._rollback(snapshot, exc.message or "Failed to remove item. Please try again.")
            return False

        self.sync_with_server(silent=True)
        return True

    def clear_cart(self) -> bool:
        with self._lock:
            snapshot = self._snapshot()
            self._apply([])

        try:
            self.api.clear()
        except CartApiError as exc:
            self._rollback(snapshot, exc.message or "Failed to clear cart. Please try again.")
            return False
        return True
