# app/client/api.py
import logging
import uuid
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class CartApiError(Exception):
    """A cart API call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def error_message(resp: httpx.Response) -> str:
    """
    Human-readable message from an error response: `detail` (a string,
    or the first entry of a validation error list), then `error`, then
    the HTTP reason phrase.
    """
    try:
        body = resp.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        return resp.reason_phrase

    detail = body.get("detail")
    if isinstance(detail, list) and detail:
        first = detail[0]
        detail = first.get("msg") if isinstance(first, dict) else first
    message = detail or body.get("error")
    return str(message) if message else resp.reason_phrase


class CartApiClient:
    """
    Minimal HTTP client for the cart endpoints.

    `http` is any configured httpx.Client (base_url, cookies, auth header).
    FastAPI's TestClient works too.
    """

    def __init__(self, http: httpx.Client, prefix: str = "/api/v1"):
        self.http = http
        self.prefix = prefix.rstrip("/")

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        try:
            resp = self.http.request(method, f"{self.prefix}{path}", **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Cart API %s %s failed: %s", method, path, exc)
            raise CartApiError("Could not reach the server") from exc

        if resp.status_code >= 400:
            raise CartApiError(error_message(resp), resp.status_code)

        return resp.json()

    def get_cart(self) -> dict[str, Any]:
        return self._request("GET", "/cart")

    def add_item(
        self,
        product_id: uuid.UUID | str | None = None,
        product_variant_id: uuid.UUID | str | None = None,
        quantity: int = 1,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {"quantity": quantity}
        if product_id is not None:
            payload["product_id"] = str(product_id)
        if product_variant_id is not None:
            payload["product_variant_id"] = str(product_variant_id)
        return self._request("POST", "/cart/items", json=payload)

    def update_item(self, item_id: uuid.UUID | str, quantity: int) -> dict[str, Any]:
        return self._request("PATCH", f"/cart/items/{item_id}", json={"quantity": quantity})

    def remove_item(self, item_id: uuid.UUID | str) -> dict[str, Any]:
        return self._request("DELETE", f"/cart/items/{item_id}")

    def clear(self) -> dict[str, Any]:
        return self._request("DELETE", "/cart")
