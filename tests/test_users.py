import uuid

from app.models.user import User

USERS = "/api/v1/users"


def test_token_for_unknown_user_provisions_profile(client, auth_headers):
    # Signed up with Supabase but never seen by this backend
    ghost = User(id=uuid.uuid4(), email="mehwish@example.com", name="", role="user")

    resp = client.get(f"{USERS}/me", headers=auth_headers(ghost))

    assert resp.status_code == 200
    body = resp.json()
    assert body["email"] == "mehwish@example.com"
    assert body["name"] == "mehwish"
    assert body["role"] == "user"


def test_update_my_name(client, make_user, auth_headers):
    user = make_user()

    resp = client.patch(f"{USERS}/me", json={"name": "  Noor  "}, headers=auth_headers(user))
    assert resp.status_code == 200
    assert resp.json()["name"] == "Noor"

    resp = client.patch(f"{USERS}/me", json={"email": "x@example.com"}, headers=auth_headers(user))
    assert resp.status_code == 422


def test_admin_lists_and_filters_users(client, make_user, auth_headers):
    admin = make_user(role="admin")
    make_user()
    make_user()
    headers = auth_headers(admin)

    assert len(client.get(USERS, headers=headers).json()) == 3
    admins = client.get(USERS, params={"role": "admin"}, headers=headers).json()
    assert [u["id"] for u in admins] == [str(admin.id)]

    assert client.get(f"{USERS}/{uuid.uuid4()}", headers=headers).status_code == 404


def test_role_changes(client, make_user, auth_headers):
    admin = make_user(role="admin")
    customer = make_user()
    headers = auth_headers(admin)

    resp = client.patch(f"{USERS}/{customer.id}/role", json={"role": "admin"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["role"] == "admin"

    resp = client.patch(f"{USERS}/{admin.id}/role", json={"role": "user"}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "You cannot remove your own admin role"

    resp = client.patch(
        f"{USERS}/{customer.id}/role", json={"role": "superuser"}, headers=headers
    )
    assert resp.status_code == 422


def test_customers_cannot_manage_users(client, make_user, auth_headers):
    customer = make_user()

    resp = client.get(USERS, headers=auth_headers(customer))

    assert resp.status_code == 403
    assert resp.json()["detail"] == "Admin access required"
