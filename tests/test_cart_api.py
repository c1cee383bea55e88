import uuid

from app.repositories.product_repo import ProductRepository

CART = "/api/v1/cart"


def test_guest_gets_cookie_and_empty_cart(client):
    resp = client.get(CART)

    assert resp.status_code == 200
    assert resp.json() == {"items": [], "total": 0.0, "total_quantity": 0}
    assert "guest_session" in resp.cookies


def test_guest_adds_simple_product(client, make_product):
    product = make_product(price=1000, in_stock=10)

    resp = client.post(f"{CART}/items", json={"product_id": str(product.id), "quantity": 2})

    assert resp.status_code == 201
    body = resp.json()
    assert body["total"] == 2000
    assert body["total_quantity"] == 2
    line = body["items"][0]
    assert line["is_simple_product"] is True
    assert line["product"]["name"] == "Matte Lipstick"
    assert line["variant"] is None

    # Same guest cookie => same cart
    again = client.get(CART).json()
    assert again["total_quantity"] == 2


def test_adding_variant_fills_parent_product(client, make_variant_product):
    product, variant = make_variant_product(price=500, sale_price=450)

    resp = client.post(f"{CART}/items", json={"product_variant_id": str(variant.id)})

    assert resp.status_code == 201
    line = resp.json()["items"][0]
    assert line["product_id"] == str(product.id)
    assert line["product_variant_id"] == str(variant.id)
    assert line["unit_price"] == 450
    assert line["variant"]["color"]["name"] == "Ivory"
    assert line["variant"]["size"]["name"] == "30ml"


def test_adding_same_product_merges_rows_and_caps_at_stock(client, make_product):
    product = make_product(in_stock=3)

    client.post(f"{CART}/items", json={"product_id": str(product.id), "quantity": 2})
    resp = client.post(f"{CART}/items", json={"product_id": str(product.id), "quantity": 5})

    assert resp.status_code == 201
    items = resp.json()["items"]
    assert len(items) == 1
    assert items[0]["quantity"] == 3

    full = client.post(f"{CART}/items", json={"product_id": str(product.id), "quantity": 1})
    assert full.status_code == 400
    assert full.json()["detail"] == "Only 3 available. You already have 3 in cart."


def test_configurable_product_needs_variant(client, make_variant_product):
    product, _ = make_variant_product()

    resp = client.post(f"{CART}/items", json={"product_id": str(product.id)})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Please select a variant for this product"


def test_unpublished_and_missing_products_are_rejected(client, make_product):
    hidden = make_product(is_published=False)

    resp = client.post(f"{CART}/items", json={"product_id": str(hidden.id)})
    assert resp.status_code == 400

    resp = client.post(f"{CART}/items", json={"product_id": str(uuid.uuid4())})
    assert resp.status_code == 404


def test_out_of_stock_product_cannot_be_added(client, make_product):
    product = make_product(in_stock=0)

    resp = client.post(f"{CART}/items", json={"product_id": str(product.id)})

    assert resp.status_code == 400
    assert resp.json()["detail"] == "This item is out of stock"


def test_add_requires_a_reference(client):
    resp = client.post(f"{CART}/items", json={"quantity": 1})

    assert resp.status_code == 422
    assert resp.json()["success"] is False


def test_update_quantity_is_clamped_to_stock(client, make_product):
    product = make_product(in_stock=4)
    item_id = client.post(
        f"{CART}/items", json={"product_id": str(product.id)}
    ).json()["items"][0]["id"]

    resp = client.patch(f"{CART}/items/{item_id}", json={"quantity": 50})
    assert resp.json()["items"][0]["quantity"] == 4

    resp = client.patch(f"{CART}/items/{item_id}", json={"quantity": 0})
    assert resp.json()["items"][0]["quantity"] == 1


def test_update_fails_once_item_is_out_of_stock(client, session, make_product):
    product = make_product(in_stock=2)
    item_id = client.post(
        f"{CART}/items", json={"product_id": str(product.id)}
    ).json()["items"][0]["id"]

    product.in_stock = 0
    session.add(product)
    session.commit()

    resp = client.patch(f"{CART}/items/{item_id}", json={"quantity": 1})
    assert resp.status_code == 400


def test_remove_and_clear(client, make_product):
    a = make_product(name="Blush")
    b = make_product(name="Mascara")
    client.post(f"{CART}/items", json={"product_id": str(a.id)})
    body = client.post(f"{CART}/items", json={"product_id": str(b.id)}).json()
    first_id = body["items"][0]["id"]

    resp = client.delete(f"{CART}/items/{first_id}")
    assert resp.status_code == 200
    assert len(resp.json()["items"]) == 1

    resp = client.delete(CART)
    assert resp.json()["items"] == []
    assert client.get(CART).json()["total_quantity"] == 0


def test_items_of_another_cart_are_not_found(client, make_product, make_user, auth_headers):
    product = make_product()
    item_id = client.post(
        f"{CART}/items", json={"product_id": str(product.id)}
    ).json()["items"][0]["id"]

    other = make_user()
    resp = client.delete(f"{CART}/items/{item_id}", headers=auth_headers(other))

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Cart item not found"


def test_signed_in_user_has_own_cart(client, make_product, make_user, auth_headers):
    user = make_user()
    product = make_product(price=300)
    headers = auth_headers(user)

    client.post(f"{CART}/items", json={"product_id": str(product.id)}, headers=headers)

    assert client.get(CART, headers=headers).json()["total"] == 300
    # A guest on the same client (no bearer) sees a separate cart
    assert client.get(CART).json()["total"] == 0


def test_deleting_a_product_drops_it_from_carts(client, session, make_product):
    product = make_product()
    client.post(f"{CART}/items", json={"product_id": str(product.id)})

    ProductRepository().delete(session, product)

    assert client.get(CART).json()["items"] == []
