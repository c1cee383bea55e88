import httpx
import pytest

from app.client.api import CartApiClient, CartApiError
from app.client.cart_store import SYNC_ERROR, CartLine, CartStore, calculate_total


@pytest.fixture
def store(client):
    return CartStore(CartApiClient(client))


class RecordingApi(CartApiClient):
    """Captures the store's local state at the moment each call goes out."""

    def __init__(self, http, store_ref: list):
        super().__init__(http)
        self.store_ref = store_ref
        self.seen: list[tuple[list[CartLine], float]] = []

    def _request(self, method, path, **kwargs):
        if method != "GET":
            store = self.store_ref[0]
            self.seen.append(([line for line in store.items], store.total))
        return super()._request(method, path, **kwargs)


def test_calculate_total_skips_lines_being_removed():
    lines = [
        CartLine(id="a", quantity=2, unit_price=100),
        CartLine(id="b", quantity=1, unit_price=50, pending="remove"),
        CartLine(id="c", quantity=1, unit_price=25, pending="add"),
    ]

    assert calculate_total(lines) == 225


def test_add_is_visible_before_the_server_answers(client, make_product):
    product = make_product(name="Lip Oil", price=800)
    ref: list = []
    store = CartStore(RecordingApi(client, ref))
    ref.append(store)

    assert store.add_item(product_id=str(product.id), quantity=2, unit_price=800) is True

    optimistic, total = store.api.seen[0]
    assert optimistic[0].id.startswith("temp-")
    assert optimistic[0].pending == "add"
    assert total == 1600

    # After the silent sync the line carries the server id and details
    assert len(store.items) == 1
    line = store.items[0]
    assert not line.id.startswith("temp-")
    assert line.pending is None
    assert line.name == "Lip Oil"
    assert line.quantity == 2
    assert store.total == 1600
    assert store.error is None


def test_adding_again_bumps_the_existing_line(store, make_product):
    product = make_product(in_stock=10)

    store.add_item(product_id=str(product.id))
    store.add_item(product_id=str(product.id), quantity=2)

    assert len(store.items) == 1
    assert store.items[0].quantity == 3
    assert store.item_count == 3


def test_failed_add_rolls_back(store, make_product):
    product = make_product(name="Kohl", in_stock=0)

    assert store.add_item(product_id=str(product.id), unit_price=300) is False

    assert store.items == []
    assert store.total == 0
    assert store.error == "This item is out of stock"

    store.clear_error()
    assert store.error is None


def test_update_and_remove(store, make_product):
    blush = make_product(name="Blush", price=500, in_stock=5)
    mascara = make_product(name="Mascara", price=700)
    store.add_item(product_id=str(blush.id))
    store.add_item(product_id=str(mascara.id))
    blush_line = next(line for line in store.items if line.name == "Blush")

    assert store.update_quantity(blush_line.id, 3) is True
    assert store.total == 500 * 3 + 700

    assert store.update_quantity(blush_line.id, 0) is True
    assert [line.name for line in store.items] == ["Mascara"]
    assert store.total == 700


def test_remove_is_excluded_from_total_while_in_flight(client, make_product):
    a = make_product(name="Toner", price=400)
    b = make_product(name="Serum", price=600)
    ref: list = []
    store = CartStore(RecordingApi(client, ref))
    ref.append(store)
    store.add_item(product_id=str(a.id))
    store.add_item(product_id=str(b.id))
    toner = next(line for line in store.items if line.name == "Toner")
    store.api.seen.clear()

    store.remove_item(toner.id)

    in_flight, total = store.api.seen[0]
    assert total == 600
    assert next(line for line in in_flight if line.id == toner.id).pending == "remove"
    assert [line.name for line in store.items] == ["Serum"]


def test_unknown_line_is_ignored(store):
    assert store.update_quantity("missing", 2) is False
    assert store.remove_item("missing") is False


def test_clear_cart(store, make_product):
    store.add_item(product_id=str(make_product().id))

    assert store.clear_cart() is True

    assert store.items == []
    assert store.total == 0
    assert store.sync_with_server() is True
    assert store.items == []


def test_sync_overwrites_local_state(store, make_product):
    product = make_product(price=250)
    store.add_item(product_id=str(product.id))
    store.items.append(CartLine(id="temp-stale", quantity=9, unit_price=1, pending="add"))

    assert store.sync_with_server() is True

    assert [line.quantity for line in store.items] == [1]
    assert store.total == 250
    assert store.is_loading is False


def test_unreachable_server():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    http = httpx.Client(base_url="http://cart.test", transport=httpx.MockTransport(refuse))
    store = CartStore(CartApiClient(http))

    assert store.sync_with_server() is False
    assert store.error == SYNC_ERROR
    assert store.is_loading is False

    assert store.add_item(product_id="p-1", unit_price=10) is False
    assert store.items == []
    assert store.error == "Could not reach the server"


def test_api_error_carries_status(client):
    api = CartApiClient(client)

    with pytest.raises(CartApiError) as exc_info:
        api.remove_item("00000000-0000-0000-0000-000000000000")

    assert exc_info.value.status_code == 404
    assert exc_info.value.message == "Cart item not found"


@pytest.mark.parametrize(
    ("status_code", "body", "message"),
    [
        (422, {"detail": [{"loc": ["body", "quantity"], "msg": "Field required"}]}, "Field required"),
        (400, {"detail": "Not enough stock"}, "Not enough stock"),
        (500, ["unexpected", "list"], "Internal Server Error"),
        (502, None, "Bad Gateway"),
    ],
)
def test_error_messages_from_any_body_shape(status_code, body, message):
    def respond(request):
        if body is None:
            return httpx.Response(status_code, text="<html>upstream down</html>")
        return httpx.Response(status_code, json=body)

    http = httpx.Client(base_url="http://cart.test", transport=httpx.MockTransport(respond))

    with pytest.raises(CartApiError) as exc_info:
        CartApiClient(http).get_cart()

    assert exc_info.value.status_code == status_code
    assert exc_info.value.message == message


def test_validation_error_uses_summary_message(client):
    api = CartApiClient(client)

    with pytest.raises(CartApiError) as exc_info:
        api._request("POST", "/cart/items", json={"quantity": 0})

    assert exc_info.value.status_code == 422
    assert exc_info.value.message == "Please correct the errors below."
