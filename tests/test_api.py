"""End-to-end tests through the HTTP surface."""
import pytest

from shop_api.config import SESSION_COOKIE_NAME


def register(client, email="bob@example.com", password="hunter2", username="bob"):
    return client.post("/register", json={"username": username, "email": email, "password": password})


def login(client, email="bob@example.com", password="hunter2"):
    return client.post("/login", json={"email": email, "password": password})


@pytest.fixture
def logged_in(client):
    assert register(client).status_code == 201
    assert login(client).status_code == 200
    return client


def test_root_returns_liveness_text(client):
    response = client.get("/")

    assert response.status_code == 200
    assert response.text == "Welcome to e-commerce API!"


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


# Products

def test_list_products(client, products):
    response = client.get("/products")

    assert response.status_code == 200
    body = response.json()
    assert [p["name"] for p in body] == ["Widget", "Gadget", "Last One"]
    assert body[0] == {"id": products["widget"], "name": "Widget", "price": 9.99, "stock": 10}


def test_get_product(client, products):
    response = client.get(f"/products/{products['gadget']}")

    assert response.status_code == 200
    assert response.json()["name"] == "Gadget"


def test_get_unknown_product_is_404(client, products):
    response = client.get("/products/9999")

    assert response.status_code == 404
    assert response.json() == {"error": "Product not found"}


@pytest.mark.parametrize("product_id", ["99999999999999999999", "-99999999999999999999"])
def test_product_id_outside_integer_range_is_400(client, products, product_id):
    response = client.get(f"/products/{product_id}")

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid payload"}


# Accounts and sessions

def test_me_is_null_without_session(client):
    assert client.get("/me").json() == {"user": None}


def test_register_then_login_establishes_session(client):
    assert register(client).json() == {"message": "User registered successfully"}

    response = login(client)

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["email"] == "bob@example.com"
    assert user["username"] == "bob"
    cookie_header = response.headers["set-cookie"]
    assert SESSION_COOKIE_NAME in cookie_header
    assert "HttpOnly" in cookie_header
    assert client.get("/me").json() == {"user": user}


def test_register_same_email_twice_conflicts(client):
    assert register(client).status_code == 201

    response = register(client, username="other")

    assert response.status_code == 400
    assert response.json() == {"error": "User already exists"}


@pytest.mark.parametrize("payload", [
    {"username": "bob", "email": "bob@example.com"},
    {"username": "", "email": "bob@example.com", "password": "x"},
    {},
])
def test_register_requires_all_fields(client, payload):
    response = client.post("/register", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "All fields are required"}


def test_login_with_wrong_password_is_unauthorized(client):
    register(client)

    response = login(client, password="wrong")

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid email or password"}
    assert client.get("/me").json() == {"user": None}


def test_login_with_unknown_email_is_unauthorized(client):
    response = login(client, email="nobody@example.com")

    assert response.status_code == 401


def test_login_requires_email_and_password(client):
    response = client.post("/login", json={"email": "bob@example.com"})

    assert response.status_code == 400
    assert response.json() == {"error": "Email and password are required"}


def test_logout_destroys_session(logged_in):
    response = logged_in.post("/logout")

    assert response.json() == {"message": "Logged out"}
    assert logged_in.get("/me").json() == {"user": None}
    assert logged_in.get("/cart").json() == []


def test_password_is_stored_hashed(client, db):
    from shop_api.models import User

    register(client)

    stored = db.query(User).filter(User.email == "bob@example.com").one()
    assert stored.password != "hunter2"
    assert stored.password.startswith("$2")


def test_login_rotates_session_id_and_keeps_cart(client, products):
    register(client)
    client.post("/cart/add", json={"productId": products["widget"], "qty": 2})
    anonymous_id = client.cookies.get(SESSION_COOKIE_NAME)

    login(client)

    assert client.cookies.get(SESSION_COOKIE_NAME) != anonymous_id
    assert client.get("/cart").json() == [{"productId": products["widget"], "qty": 2}]


# Cart

def test_cart_starts_empty_and_sets_no_cookie(client):
    response = client.get("/cart")

    assert response.json() == []
    assert "set-cookie" not in response.headers


def test_cart_add_is_additive(client, products):
    client.post("/cart/add", json={"productId": products["widget"], "qty": 2})
    response = client.post("/cart/add", json={"productId": products["widget"], "qty": 3})

    assert response.status_code == 200
    assert response.json() == {
        "message": "Added to cart",
        "cart": [{"productId": products["widget"], "qty": 5}],
    }
    assert client.get("/cart").json() == [{"productId": products["widget"], "qty": 5}]


def test_cart_add_defaults_to_one_unit(client, products):
    response = client.post("/cart/add", json={"productId": products["gadget"]})

    assert response.json()["cart"] == [{"productId": products["gadget"], "qty": 1}]


@pytest.mark.parametrize("payload", [
    {"qty": 1},
    {"productId": 1, "qty": -2},
    {"productId": "abc", "qty": 1},
    {"productId": 1, "qty": "lots"},
    {"productId": 99999999999999999999, "qty": 1},
    {"productId": 1, "qty": 99999999999999999999},
])
def test_cart_add_rejects_invalid_payload(client, payload):
    response = client.post("/cart/add", json=payload)

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid payload"}


def test_cart_update_sets_and_removes(client, products):
    client.post("/cart/add", json={"productId": products["widget"], "qty": 2})
    client.post("/cart/add", json={"productId": products["gadget"], "qty": 1})

    response = client.post("/cart/update", json={"productId": products["widget"], "qty": 4})
    assert response.json() == {
        "message": "Cart updated",
        "cart": [{"productId": products["widget"], "qty": 4}, {"productId": products["gadget"], "qty": 1}],
    }

    response = client.post("/cart/update", json={"productId": products["widget"], "qty": 0})
    assert response.json()["cart"] == [{"productId": products["gadget"], "qty": 1}]


def test_cart_update_absent_item_is_404(client, products):
    client.post("/cart/add", json={"productId": products["widget"]})

    response = client.post("/cart/update", json={"productId": products["gadget"], "qty": 1})

    assert response.status_code == 404
    assert response.json() == {"error": "Item not in cart"}


def test_cart_update_requires_quantity(client, products):
    response = client.post("/cart/update", json={"productId": products["widget"]})

    assert response.status_code == 400


def test_cart_clear(client, products):
    client.post("/cart/add", json={"productId": products["widget"]})

    assert client.delete("/cart/clear").json() == {"message": "Cart cleared"}
    assert client.get("/cart").json() == []


def test_cart_detail_empty(client):
    assert client.get("/cart/detail").json() == {"items": [], "total": 0}


def test_cart_detail_prices_cart(client, products):
    client.post("/cart/add", json={"productId": products["widget"], "qty": 2})
    client.post("/cart/add", json={"productId": 9999, "qty": 1})

    body = client.get("/cart/detail").json()

    assert body["total"] == 19.98
    assert body["items"][0] == {
        "productId": products["widget"], "name": "Widget", "price": 9.99, "qty": 2, "lineTotal": 19.98,
    }
    assert body["items"][1]["name"] is None
    assert body["items"][1]["lineTotal"] == 0


def test_carts_are_isolated_per_session(client, products):
    from fastapi.testclient import TestClient
    from shop_api.main import app

    client.post("/cart/add", json={"productId": products["widget"]})
    other = TestClient(app)

    assert other.get("/cart").json() == []


# Orders

@pytest.mark.parametrize("method, path", [
    ("post", "/orders"),
    ("get", "/orders"),
    ("get", "/orders/1"),
])
def test_order_routes_require_login(client, method, path):
    response = getattr(client, method)(path)

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_checkout_empty_cart_is_400(logged_in):
    response = logged_in.post("/orders")

    assert response.status_code == 400
    assert response.json() == {"error": "Cart is empty"}


def test_checkout_places_order(logged_in, products, stock_of):
    logged_in.post("/cart/add", json={"productId": products["widget"], "qty": 3})
    logged_in.post("/cart/add", json={"productId": products["last_one"], "qty": 1})

    response = logged_in.post("/orders")

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Order placed"
    assert body["total"] == 34.97
    assert logged_in.get("/cart").json() == []
    assert stock_of(products["widget"]) == 7
    assert stock_of(products["last_one"]) == 0

    orders = logged_in.get("/orders").json()
    assert [o["id"] for o in orders] == [body["orderId"]]
    assert orders[0]["total"] == 34.97

    detail = logged_in.get(f"/orders/{body['orderId']}").json()
    assert detail["order"]["id"] == body["orderId"]
    assert [(i["product_id"], i["qty"], i["price"]) for i in detail["items"]] == [
        (products["widget"], 3, 9.99),
        (products["last_one"], 1, 5.0),
    ]
    assert round(sum(i["lineTotal"] for i in detail["items"]), 2) == body["total"]


def test_checkout_with_insufficient_stock_is_400(logged_in, products, stock_of):
    logged_in.post("/cart/add", json={"productId": products["gadget"], "qty": 6})

    response = logged_in.post("/orders")

    assert response.status_code == 400
    assert response.json() == {"error": f"Insufficient stock for product {products['gadget']}"}
    assert stock_of(products["gadget"]) == 5
    assert logged_in.get("/orders").json() == []
    assert logged_in.get("/cart").json() == [{"productId": products["gadget"], "qty": 6}]


def test_checkout_with_deleted_product_is_400(logged_in, products):
    logged_in.post("/cart/add", json={"productId": 9999, "qty": 1})

    response = logged_in.post("/orders")

    assert response.status_code == 400
    assert response.json() == {"error": "One or more products not found"}


def test_orders_of_other_users_are_hidden(logged_in, products, session_factory):
    from fastapi.testclient import TestClient
    from shop_api.main import app

    logged_in.post("/cart/add", json={"productId": products["widget"]})
    order_id = logged_in.post("/orders").json()["orderId"]

    other = TestClient(app)
    register(other, email="eve@example.com", username="eve")
    login(other, email="eve@example.com")

    assert other.get("/orders").json() == []
    response = other.get(f"/orders/{order_id}")
    assert response.status_code == 404
    assert response.json() == {"error": "Order not found"}


def test_order_id_outside_integer_range_is_400(logged_in):
    response = logged_in.get("/orders/99999999999999999999")

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid payload"}


def test_cart_update_with_out_of_range_product_id_is_400(client, products):
    client.post("/cart/add", json={"productId": products["widget"]})

    response = client.post("/cart/update", json={"productId": 2**63, "qty": 1})

    assert response.status_code == 400
    assert client.get("/cart").json() == [{"productId": products["widget"], "qty": 1}]
