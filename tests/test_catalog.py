import uuid

import pytest

from app.models.catalog import Brand, Category, Color, Size
from app.models.product import ProductVariant

API = "/api/v1"


@pytest.fixture
def admin_headers(make_user, auth_headers):
    return auth_headers(make_user(role="admin"))


@pytest.fixture
def fake_storage(monkeypatch):
    """Record uploads and deletes instead of talking to Supabase Storage."""
    calls = {"uploaded": [], "deleted": []}

    def upload(path, file_bytes, content_type):
        calls["uploaded"].append(path)
        return f"https://cdn.test/storage/v1/object/public/media/{path}"

    monkeypatch.setattr("app.services.product_service.upload_to_storage", upload)
    monkeypatch.setattr("app.services.catalog_service.upload_to_storage", upload)
    monkeypatch.setattr(
        "app.services.product_service.delete_public_url", calls["deleted"].append
    )
    return calls


# -------- Taxonomy --------


def test_brand_slugs_are_generated_and_unique(client, admin_headers):
    first = client.post(f"{API}/brands", json={"name": "  Rose & Co. "}, headers=admin_headers)
    second = client.post(f"{API}/brands", json={"name": "Rose & Co"}, headers=admin_headers)
    third = client.post(
        f"{API}/brands", json={"name": "Other", "slug": "Rose Co"}, headers=admin_headers
    )

    assert first.status_code == 201
    assert first.json()["name"] == "Rose & Co."
    assert first.json()["slug"] == "rose-co"
    assert second.json()["slug"] == "rose-co-2"
    assert third.json()["slug"] == "rose-co-3"

    listed = client.get(f"{API}/brands").json()
    assert len(listed) == 3


def test_catalog_writes_require_admin(client, make_user, auth_headers):
    resp = client.post(f"{API}/brands", json={"name": "Glow"})
    assert resp.status_code == 401

    resp = client.post(f"{API}/brands", json={"name": "Glow"}, headers=auth_headers(make_user()))
    assert resp.status_code == 403


def test_brand_with_products_cannot_be_deleted(client, admin_headers):
    brand = client.post(f"{API}/brands", json={"name": "Glow"}, headers=admin_headers).json()
    client.post(
        f"{API}/products",
        json={"name": "Glow Serum", "price": 900, "brand_id": brand["id"]},
        headers=admin_headers,
    )

    resp = client.delete(f"{API}/brands/{brand['id']}", headers=admin_headers)

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Cannot delete brand with existing products"


def test_missing_entries_are_404(client):
    resp = client.get(f"{API}/brands/{uuid.uuid4()}")

    assert resp.status_code == 404
    assert resp.json()["detail"] == "Brand not found"


def test_categories_nest_one_level(client, admin_headers):
    face = client.post(f"{API}/categories", json={"name": "Face"}, headers=admin_headers).json()
    primer = client.post(
        f"{API}/categories",
        json={"name": "Primer", "parent_id": face["id"]},
        headers=admin_headers,
    )
    assert primer.status_code == 201
    assert primer.json()["parent_id"] == face["id"]

    deeper = client.post(
        f"{API}/categories",
        json={"name": "Matte Primer", "parent_id": primer.json()["id"]},
        headers=admin_headers,
    )
    assert deeper.status_code == 400
    assert deeper.json()["detail"] == "Categories can only be nested one level deep"

    own = client.patch(
        f"{API}/categories/{face['id']}", json={"parent_id": face["id"]}, headers=admin_headers
    )
    assert own.json()["detail"] == "Category cannot be its own parent"

    eyes = client.post(f"{API}/categories", json={"name": "Eyes"}, headers=admin_headers).json()
    resp = client.patch(
        f"{API}/categories/{face['id']}", json={"parent_id": eyes["id"]}, headers=admin_headers
    )
    assert resp.json()["detail"] == "A category with subcategories cannot have a parent"

    resp = client.delete(f"{API}/categories/{face['id']}", headers=admin_headers)
    assert resp.json()["detail"] == "Cannot delete category with subcategories"


def test_color_hex_is_validated_and_upper_cased(client, admin_headers):
    resp = client.post(
        f"{API}/colors", json={"name": "Coral", "hex_code": "#ff7f50"}, headers=admin_headers
    )
    assert resp.status_code == 201
    assert resp.json()["hex_code"] == "#FF7F50"
    assert resp.json()["slug"] == "coral"

    bad = client.post(
        f"{API}/colors", json={"name": "Teal", "hex_code": "teal"}, headers=admin_headers
    )
    assert bad.status_code == 422
    assert "hex_code" in bad.json()["field_errors"]


def test_sizes_are_listed_by_sort_order(client, admin_headers):
    for name, order in (("100ml", 3), ("30ml", 1), ("50ml", 2)):
        client.post(
            f"{API}/sizes", json={"name": name, "sort_order": order}, headers=admin_headers
        )

    names = [s["name"] for s in client.get(f"{API}/sizes").json()]
    assert names == ["30ml", "50ml", "100ml"]


def test_collection_membership_filters_products(client, admin_headers, make_product):
    summer = client.post(
        f"{API}/collections", json={"name": "Summer Edit"}, headers=admin_headers
    ).json()
    sunscreen = make_product(name="Sunscreen")
    make_product(name="Night Balm")
    url = f"{API}/collections/{summer['id']}/products"

    resp = client.post(url, json={"product_ids": [str(sunscreen.id)]}, headers=admin_headers)
    assert resp.status_code == 204
    # Linking twice is a no-op
    client.post(url, json={"product_ids": [str(sunscreen.id)]}, headers=admin_headers)

    listed = client.get(f"{API}/products", params={"collection_id": summer["id"]}).json()
    assert [p["name"] for p in listed] == ["Sunscreen"]

    missing = client.post(url, json={"product_ids": [str(uuid.uuid4())]}, headers=admin_headers)
    assert missing.status_code == 400
    assert missing.json()["detail"].startswith("Products not found")

    client.request("DELETE", url, json={"product_ids": [str(sunscreen.id)]}, headers=admin_headers)
    assert client.get(f"{API}/products", params={"collection_id": summer["id"]}).json() == []


def test_brand_logo_upload_replaces_previous(client, admin_headers, fake_storage):
    brand = client.post(f"{API}/brands", json={"name": "Glow"}, headers=admin_headers).json()
    url = f"{API}/brands/{brand['id']}/image"

    first = client.post(
        url, files={"file": ("logo.png", b"png-bytes", "image/png")}, headers=admin_headers
    ).json()
    second = client.post(
        url, files={"file": ("logo.jpg", b"jpg-bytes", "image/jpeg")}, headers=admin_headers
    ).json()

    assert first["logo_url"].endswith(".png")
    assert second["logo_url"].endswith(".jpg")
    assert fake_storage["uploaded"][0].startswith(f"brands/{brand['id']}/")
    assert fake_storage["deleted"] == [first["logo_url"]]


# -------- Products --------


def test_create_simple_product(client, admin_headers):
    resp = client.post(
        f"{API}/products",
        json={
            "name": "Velvet Lip Tint",
            "price": 1200,
            "sale_price": 999,
            "sku": "LIP-TINT-01",
            "in_stock": 25,
            "is_published": True,
        },
        headers=admin_headers,
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["product_type"] == "simple"
    assert body["variants"] == []
    assert body["default_variant_id"] is None

    conflict = client.post(
        f"{API}/products",
        json={"name": "Another", "price": 10, "sku": "LIP-TINT-01"},
        headers=admin_headers,
    )
    assert conflict.status_code == 409
    assert conflict.json()["detail"] == "SKU 'LIP-TINT-01' is already in use"


def test_simple_product_needs_a_price(client, admin_headers):
    resp = client.post(f"{API}/products", json={"name": "No Price"}, headers=admin_headers)

    assert resp.status_code == 422


def test_create_configurable_product(client, admin_headers):
    color = client.post(
        f"{API}/colors", json={"name": "Nude", "hex_code": "#E3BC9A"}, headers=admin_headers
    ).json()
    small = client.post(f"{API}/sizes", json={"name": "15ml"}, headers=admin_headers).json()
    large = client.post(f"{API}/sizes", json={"name": "30ml"}, headers=admin_headers).json()

    resp = client.post(
        f"{API}/products",
        json={
            "name": "Skin Tint",
            "product_type": "configurable",
            "price": 5000,
            "in_stock": 99,
            "is_published": True,
            "variants": [
                {"sku": "TINT-15", "price": 1500, "color_id": color["id"],
                 "size_id": small["id"], "in_stock": 5},
                {"sku": "TINT-30", "price": 2500, "color_id": color["id"],
                 "size_id": large["id"], "in_stock": 3},
            ],
        },
        headers=admin_headers,
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["price"] is None
    assert len(body["variants"]) == 2
    first_variant = next(v for v in body["variants"] if v["sku"] == "TINT-15")
    assert body["default_variant_id"] == first_variant["id"]

    # Priced per variant
    resp = client.patch(
        f"{API}/products/{body['id']}", json={"price": 100}, headers=admin_headers
    )
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Configurable products are priced and stocked per variant"


def test_duplicate_sku_inside_one_request(client, admin_headers):
    resp = client.post(
        f"{API}/products",
        json={
            "name": "Palette",
            "product_type": "configurable",
            "variants": [
                {"sku": "PAL-1", "price": 10},
                {"sku": "PAL-1", "price": 12},
            ],
        },
        headers=admin_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Duplicate SKU in request"


def test_unpublished_products_are_hidden_from_shoppers(client, admin_headers, make_product):
    draft = make_product(name="Draft Gloss", is_published=False)
    make_product(name="Live Gloss")

    public = client.get(f"{API}/products").json()
    assert [p["name"] for p in public] == ["Live Gloss"]
    assert client.get(f"{API}/products/{draft.id}").status_code == 404

    everything = client.get(
        f"{API}/products", params={"include_unpublished": True}, headers=admin_headers
    ).json()
    assert len(everything) == 2
    assert client.get(f"{API}/products/{draft.id}", headers=admin_headers).status_code == 200

    # The flag is ignored for shoppers
    shopper = client.get(f"{API}/products", params={"include_unpublished": True}).json()
    assert len(shopper) == 1


# -------- Storefront browsing --------


@pytest.fixture
def storefront(session, make_product, make_variant_product):
    lips = Category(name="Lips", slug="lips")
    face = Category(name="Face", slug="face")
    glow = Brand(name="Glow Lab", slug="glow-lab")
    beige = Color(name="Beige", slug="beige", hex_code="#F5F5DC")
    large = Size(name="50ml", slug="50ml")
    session.add_all([lips, face, glow, beige, large])
    session.commit()

    balm = make_product(name="Tinted Balm", price=800, sale_price=600)
    balm.description = "Hydrating shea butter balm"
    balm.category_id = lips.id
    balm.brand_id = glow.id
    gloss = make_product(name="Shine Gloss", price=1200)
    gloss.category_id = lips.id
    foundation, ivory = make_variant_product(name="Silk Foundation", price=2500, sale_price=2000)
    foundation.category_id = face.id
    foundation.brand_id = glow.id
    session.add(
        ProductVariant(
            product_id=foundation.id,
            sku="FND-BEIGE-50",
            price=4000,
            color_id=beige.id,
            size_id=large.id,
            in_stock=4,
        )
    )
    session.add_all([balm, gloss, foundation])
    session.commit()

    return {
        "balm": balm,
        "gloss": gloss,
        "foundation": foundation,
        "ivory": session.get(Color, ivory.color_id).slug,
        "small": session.get(Size, ivory.size_id).slug,
    }


def product_names(client, **params) -> set[str]:
    resp = client.get(f"{API}/products", params=params)
    assert resp.status_code == 200, resp.json()
    return {p["name"] for p in resp.json()}


def test_search_matches_name_or_description(client, storefront):
    assert product_names(client, search="shea") == {"Tinted Balm"}
    assert product_names(client, search="GLOSS") == {"Shine Gloss"}
    assert product_names(client, search="serum") == set()


def test_filter_by_brand_and_category_slugs(client, storefront):
    assert product_names(client, brand="glow-lab") == {"Tinted Balm", "Silk Foundation"}
    assert product_names(client, category="lips") == {"Tinted Balm", "Shine Gloss"}
    assert product_names(client, brand="glow-lab", category="lips") == {"Tinted Balm"}
    assert len(product_names(client, category=["lips", "face"])) == 3
    assert product_names(client, brand="unknown") == set()


def test_colour_and_size_must_match_one_variant(client, storefront):
    assert product_names(client, color="beige") == {"Silk Foundation"}
    assert product_names(client, color=storefront["ivory"], size=storefront["small"]) == {
        "Silk Foundation"
    }
    # Ivory only comes in the small size
    assert product_names(client, color=storefront["ivory"], size="50ml") == set()
    assert product_names(client, color="no-such-colour") == set()


def test_price_bounds_use_sale_price(client, storefront):
    assert product_names(client, price_max=700) == {"Tinted Balm"}
    assert product_names(client, price_min=1000, price_max=2100) == {
        "Shine Gloss",
        "Silk Foundation",
    }
    # Any variant in range is enough
    assert product_names(client, price_min=3000) == {"Silk Foundation"}

    resp = client.get(f"{API}/products", params={"price_min": 500, "price_max": 100})
    assert resp.status_code == 400


def test_sort_by_effective_price(client, storefront):
    cheapest_first = client.get(f"{API}/products", params={"sort": "price_asc"}).json()
    assert [p["name"] for p in cheapest_first] == ["Tinted Balm", "Shine Gloss", "Silk Foundation"]

    dearest_first = client.get(f"{API}/products", params={"sort": "price_desc"}).json()
    assert [p["name"] for p in dearest_first] == ["Silk Foundation", "Shine Gloss", "Tinted Balm"]

    resp = client.get(f"{API}/products", params={"sort": "popular"})
    assert resp.status_code == 422
    assert "query.sort" in resp.json()["field_errors"]


def test_recommendations_rank_category_over_brand(client, session, storefront, make_product):
    make_product(name="Nail Polish")
    hidden = make_product(name="Hidden Liner", is_published=False)
    hidden.category_id = storefront["balm"].category_id
    session.add(hidden)
    session.commit()

    url = f"{API}/products/{storefront['balm'].id}/recommended"
    names = [p["name"] for p in client.get(url).json()]
    assert names == ["Shine Gloss", "Silk Foundation", "Nail Polish"]

    assert [p["name"] for p in client.get(url, params={"limit": 1}).json()] == ["Shine Gloss"]
    assert client.get(f"{API}/products/{uuid.uuid4()}/recommended").status_code == 404


def test_simple_products_cannot_have_variants(client, admin_headers, make_product):
    product = make_product()

    resp = client.post(
        f"{API}/products/{product.id}/variants",
        json={"sku": "X-1", "price": 10},
        headers=admin_headers,
    )

    assert resp.status_code == 400
    assert resp.json()["detail"] == "Simple products cannot have variants"


def test_deleting_default_variant_picks_another(client, admin_headers, make_variant_product):
    product, variant = make_variant_product()
    url = f"{API}/products/{product.id}/variants"

    second = client.post(url, json={"sku": "FOUND-50", "price": 800}, headers=admin_headers)
    assert second.status_code == 201

    resp = client.delete(f"{url}/{variant.id}", headers=admin_headers)
    assert resp.status_code == 204

    detail = client.get(f"{API}/products/{product.id}").json()
    assert detail["default_variant_id"] == second.json()["id"]

    resp = client.delete(f"{url}/{variant.id}", headers=admin_headers)
    assert resp.status_code == 404


def test_gallery_upload_and_primary_image(client, admin_headers, make_product, fake_storage):
    product = make_product()
    url = f"{API}/products/{product.id}/images"

    first = client.post(
        url, files={"file": ("a.png", b"a", "image/png")}, headers=admin_headers
    )
    second = client.post(
        url, files={"file": ("b.webp", b"b", "image/webp")}, headers=admin_headers
    )
    assert first.status_code == 201
    assert first.json()["is_primary"] is True
    assert second.json()["is_primary"] is False
    assert second.json()["sort_order"] == 1
    assert fake_storage["uploaded"][0].startswith(f"products/{product.id}/gallery/")

    third = client.post(
        url,
        files={"file": ("c.jpg", b"c", "image/jpeg")},
        data={"is_primary": "true"},
        headers=admin_headers,
    )
    images = {img["id"]: img for img in client.get(url).json()}
    assert images[third.json()["id"]]["is_primary"] is True
    assert images[first.json()["id"]]["is_primary"] is False

    bad = client.post(
        url, files={"file": ("x.gif", b"x", "image/gif")}, headers=admin_headers
    )
    assert bad.status_code == 400

    resp = client.delete(f"{url}/{second.json()['id']}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Image deleted successfully"}
    assert fake_storage["deleted"] == [second.json()["url"]]


def test_storage_failure_does_not_block_delete(
    client, admin_headers, make_product, fake_storage, monkeypatch
):
    product = make_product()
    image = client.post(
        f"{API}/products/{product.id}/images",
        files={"file": ("a.png", b"a", "image/png")},
        headers=admin_headers,
    ).json()

    def broken(url):
        raise RuntimeError("storage unavailable")

    monkeypatch.setattr("app.services.product_service.delete_public_url", broken)

    resp = client.delete(f"{API}/products/{product.id}", headers=admin_headers)

    assert resp.status_code == 204
    assert client.get(f"{API}/products/{product.id}").status_code == 404
    assert image["url"].startswith("https://cdn.test/")
