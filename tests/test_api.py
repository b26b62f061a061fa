"""
HTTP-level tests: authentication, the error envelope and the order flow end to end.
"""
import pytest
from fastapi.testclient import TestClient

from conftest import PASSWORD, make_restaurant, make_user
from main import app
from models.users import Role
from utils.tokenJWT import create_access_token


@pytest.fixture
def client(db):
    with TestClient(app) as test_client:
        yield test_client


def auth(user):
    return {"Authorization": f"Bearer {create_access_token({'sub': user.email})}"}


@pytest.fixture
def shop(db):
    rest, menus = make_restaurant(db, name="Restoran R", menus=(("Menu A", 10000), ("Menu B", 5000)))
    return rest.id, [m.id for m in menus]


def _checkout(client, headers, shop):
    restaurant_id, menu_ids = shop
    for menu_id, quantity in zip(menu_ids, (2, 1)):
        response = client.post(
            "/cart/items",
            json={"restaurant_id": restaurant_id, "menu_id": menu_id, "quantity": quantity, "notes": "x"},
            headers=headers,
        )
        assert response.status_code == 200, response.text
    response = client.post("/orders/checkout", json={"notes": "cepat"}, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


# ============================================================================
# Auth
# ============================================================================


def test_register_login_me(client):
    response = client.post(
        "/register",
        json={"name": "Siti", "email": "siti@example.com", "password": "rahasia123", "divisi": "CRSD 2"},
    )
    assert response.status_code == 201
    assert response.json()["role"] == "user"

    response = client.post("/login", json={"email": "siti@example.com", "password": "rahasia123"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    me = client.get("/me", headers={"Authorization": f"Bearer {token}"}).json()
    assert me["email"] == "siti@example.com"
    assert me["divisi"] == "CRSD 2"
    assert me["data_access"] == []
    assert me["has_multiple_access"] is False


def test_me_reports_multiple_access(client, db):
    admin = make_user(db, "a@example.com", role=Role.ADMIN, data_access=["crsd2", "crsd1"])
    me = client.get("/me", headers=auth(admin)).json()
    assert me["data_access"] == ["crsd1", "crsd2"]
    assert me["has_multiple_access"] is True


def test_duplicate_registration_conflicts(client, customer):
    response = client.post(
        "/register", json={"name": "Budi", "email": "budi@example.com", "password": "rahasia123"}
    )
    assert response.status_code == 409
    assert response.json()["success"] is False


def test_bad_login_uses_error_envelope(client, customer):
    response = client.post("/login", json={"email": "budi@example.com", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Invalid credentials"}


def test_login_with_seeded_password(client, customer):
    response = client.post("/login", json={"email": "budi@example.com", "password": PASSWORD})
    assert response.status_code == 200


def test_missing_token(client):
    response = client.get("/orders")
    assert response.status_code in (401, 403)
    assert response.json()["success"] is False


def test_deactivated_user_token_is_rejected(client, db):
    user = make_user(db, "off@example.com", is_active=False)
    assert client.get("/me", headers=auth(user)).status_code == 401


# ============================================================================
# Errors
# ============================================================================


def test_request_validation_has_field_errors(client, customer, shop):
    restaurant_id, menu_ids = shop
    response = client.post(
        "/cart/items",
        json={"restaurant_id": restaurant_id, "menu_id": menu_ids[0], "quantity": 0},
        headers=auth(customer),
    )
    body = response.json()
    assert response.status_code == 422
    assert body["success"] is False
    assert "quantity" in body["errors"]


def test_service_validation_has_field_errors(client, db, customer):
    rest, menus = make_restaurant(db, is_open=False)
    response = client.post(
        "/cart/items",
        json={"restaurant_id": rest.id, "menu_id": menus[0].id, "quantity": 1},
        headers=auth(customer),
    )
    assert response.status_code == 422
    assert "restaurant_id" in response.json()["errors"]


def test_empty_cart_checkout(client, customer):
    response = client.post("/orders/checkout", headers=auth(customer))
    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Cart is empty"}


# ============================================================================
# Order flow
# ============================================================================


def test_catalog_listing(client, customer, shop):
    restaurant_id, _ = shop
    restaurants = client.get("/restaurants", headers=auth(customer)).json()
    assert [r["id"] for r in restaurants] == [restaurant_id]

    card = client.get(f"/restaurants/{restaurant_id}/menus", headers=auth(customer)).json()
    assert sorted(m["price"] for m in card["menus"]) == [5000, 10000]

    assert client.get("/restaurants/999/menus", headers=auth(customer)).status_code == 404


def test_cart_listing_and_removal(client, customer, shop):
    restaurant_id, menu_ids = shop
    headers = auth(customer)
    item = client.post(
        "/cart/items", json={"restaurant_id": restaurant_id, "menu_id": menu_ids[0], "quantity": 2}, headers=headers
    ).json()

    cart = client.get("/cart", headers=headers).json()
    assert cart["total"] == 20000
    assert cart["carts"][0]["items"][0]["subtotal"] == 20000

    response = client.delete(f"/cart/items/{item['id']}", headers=headers)
    assert response.json()["cart_deleted"] is True
    assert client.get("/cart", headers=headers).json() == {"carts": [], "total": 0}


def test_checkout_pay_and_guards(client, customer, shop, payment_settings):
    headers = auth(customer)
    order = _checkout(client, headers, shop)

    assert order["total_price"] == 25000
    assert len(order["items"]) == 2
    assert order["status"] == "pending"
    assert client.get("/cart", headers=headers).json()["carts"] == []

    response = client.get(f"/orders/{order['id']}/payment", headers=headers)
    assert response.json()["payment"] is None

    response = client.post(f"/orders/{order['id']}/payment", json={"payment_method": "qris"}, headers=headers)
    assert response.status_code == 201, response.text
    assert response.json()["payment_status"] == "completed"
    assert response.json()["order"]["status"] == "paid"

    response = client.post(f"/orders/{order['id']}/payment", json={"payment_method": "qris"}, headers=headers)
    assert response.status_code == 409

    assert client.delete(f"/orders/{order['id']}", headers=headers).status_code == 400
    response = client.patch(f"/orders/{order['id']}/notes", json={"notes": "late"}, headers=headers)
    assert response.status_code == 400

    history = client.get("/payments", headers=headers).json()
    assert [p["order_id"] for p in history] == [order["id"]]


def test_unknown_payment_method_is_rejected(client, customer, shop):
    headers = auth(customer)
    order = _checkout(client, headers, shop)
    response = client.post(f"/orders/{order['id']}/payment", json={"payment_method": "cash"}, headers=headers)
    assert response.status_code == 422


def test_cancel_pending_order(client, customer, shop):
    headers = auth(customer)
    order = _checkout(client, headers, shop)

    response = client.delete(f"/orders/{order['id']}", headers=headers)
    assert response.status_code == 200
    assert order["order_code"] in response.json()["message"]
    assert client.get(f"/orders/{order['id']}", headers=headers).status_code == 404


def test_other_users_order_is_not_found(client, db, customer, shop):
    order = _checkout(client, auth(customer), shop)
    stranger = make_user(db, "eve@example.com")
    assert client.get(f"/orders/{order['id']}", headers=auth(stranger)).status_code == 404


# ============================================================================
# Staff and superadmin
# ============================================================================


def test_staff_views_follow_division_scope(client, db, customer, shop, payment_settings):
    order = _checkout(client, auth(customer), shop)
    client.post(f"/orders/{order['id']}/payment", json={"payment_method": "bank_transfer"}, headers=auth(customer))

    crsd1 = make_user(db, "a1@example.com", role=Role.ADMIN, data_access=["crsd1"])
    crsd2 = make_user(db, "a2@example.com", role=Role.ADMIN, data_access=["crsd2"])

    page = client.get("/admin/orders", headers=auth(crsd1)).json()
    assert page["total"] == 1
    assert page["items"][0]["user"]["email"] == "budi@example.com"
    assert client.get("/admin/orders", headers=auth(crsd2)).json()["total"] == 0

    assert client.get(f"/admin/orders/{order['id']}/payment", headers=auth(crsd1)).status_code == 200
    assert client.get(f"/admin/orders/{order['id']}/payment", headers=auth(crsd2)).status_code == 403
    assert client.get("/admin/orders?division=crsd2", headers=auth(crsd1)).status_code == 403

    response = client.patch(
        f"/admin/orders/{order['id']}/status", json={"order_status": "processing"}, headers=auth(crsd1)
    )
    assert response.json()["order_status"] == "processing"


def test_customer_cannot_reach_staff_routes(client, customer):
    response = client.get("/admin/orders", headers=auth(customer))
    assert response.status_code == 403
    assert response.json()["success"] is False


def test_superadmin_manages_settings_and_sees_audit(client, db, superadmin, customer, shop):
    headers = auth(superadmin)
    assert client.get("/payment-methods", headers=auth(customer)).json() == {"methods": []}

    response = client.put(
        "/superadmin/payment-settings",
        json={"qris_image": "uploads/qris.png", "bank_active": False},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["bank_active"] is False

    methods = client.get("/payment-methods", headers=auth(customer)).json()["methods"]
    assert [m["id"] for m in methods] == ["qris"]

    _checkout(client, auth(customer), shop)
    logs = client.get("/logs?action=CHECKOUT", headers=headers).json()
    assert logs["total"] == 1
    assert logs["items"][0]["user_id"] == customer.id

    assert client.get("/logs", headers=auth(customer)).status_code == 403


def test_superadmin_role_change(client, superadmin, customer):
    headers = auth(superadmin)
    response = client.put(f"/superadmin/users/{customer.id}/role", json={"role": "admin"}, headers=headers)
    assert response.status_code == 422
    assert "data_access" in response.json()["errors"]

    response = client.put(
        f"/superadmin/users/{customer.id}/role", json={"role": "admin", "data_access": ["crsd1"]}, headers=headers
    )
    assert response.status_code == 200
    assert response.json()["data_access"] == ["crsd1"]

    response = client.put(f"/superadmin/users/{superadmin.id}/role", json={"role": "user"}, headers=headers)
    assert response.status_code == 400


def test_audit_log_filters(client, superadmin, customer):
    client.post("/login", json={"email": customer.email, "password": PASSWORD})
    client.post("/login", json={"email": customer.email, "password": "wrong-password"})
    headers = auth(superadmin)

    logs = client.get(f"/logs?user_id={customer.id}", headers=headers).json()
    assert logs["total"] == 1
    assert logs["items"][0]["action"] == "LOGIN"
    assert logs["items"][0]["status"] == "SUCCESS"

    failed = client.get("/logs?status=FAIL", headers=headers).json()["items"]
    assert [entry["user_id"] for entry in failed] == [None]

    response = client.get("/logs?date_from=yesterday", headers=headers)
    assert response.status_code == 422
    assert "date_from" in response.json()["errors"]
