from decimal import Decimal

import pytest

from storefront import checkout
from storefront.crud import products as products_crud


def order_payload(*pairs, **overrides):
    payload = {
        "items": [{"productId": pid, "quantity": qty} for pid, qty in pairs],
        "customerFirstName": "Ada",
        "customerLastName": "Lovelace",
        "customerEmail": "ada@example.com",
        "customerAddress": "1 Main St",
        "paymentMethod": "card",
    }
    payload.update(overrides)
    return payload


class RecordingPublisher:
    def __init__(self, fail=False):
        self.fail = fail
        self.published = []

    def publish(self, routing_key, payload):
        if self.fail:
            raise ConnectionError("broker unreachable")
        self.published.append((routing_key, payload))


def test_place_order(client, auth_headers, make_product):
    product = make_product(price="50.00", stock=10)

    response = client.post("/orders", json=order_payload((product.id, 2)), headers=auth_headers)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    data = body["data"]
    assert Decimal(data["total_amount"]) == Decimal("100")
    assert data["status"] == "complete"
    assert data["payment_method"] == "card"
    assert data["items"][0]["product_id"] == product.id
    assert data["items"][0]["quantity"] == 2
    assert Decimal(data["items"][0]["unit_price"]) == Decimal("50.00")


def test_place_order_requires_token(client, make_product):
    product = make_product()
    assert client.post("/orders", json=order_payload((product.id, 1))).status_code == 401


def test_place_order_zero_quantity(client, auth_headers, make_product):
    product = make_product()

    response = client.post("/orders", json=order_payload((product.id, 0)), headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert response.json()["message"] == checkout.INVALID_ITEMS_MESSAGE


def test_place_order_empty_items(client, auth_headers):
    response = client.post("/orders", json=order_payload(), headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["message"] == checkout.INVALID_ITEMS_MESSAGE


def test_place_order_missing_payment_method(client, auth_headers, make_product):
    product = make_product()
    payload = order_payload((product.id, 2))
    del payload["paymentMethod"]

    response = client.post("/orders", json=payload, headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["message"] == checkout.MISSING_FIELDS_MESSAGE


def test_place_order_unknown_product_is_server_error(client, auth_headers):
    response = client.post("/orders", json=order_payload((987654, 1)), headers=auth_headers)

    assert response.status_code == 500
    body = response.json()
    assert body["message"] == "Failed to create order"
    assert body["error"] == "Product with ID 987654 not found"


def test_stock_runs_out_between_orders(client, db, auth_headers, make_product):
    product = make_product(stock=5)

    first = client.post("/orders", json=order_payload((product.id, 3)), headers=auth_headers)
    second = client.post("/orders", json=order_payload((product.id, 3)), headers=auth_headers)

    assert first.status_code == 201
    assert second.status_code == 500
    assert second.json()["error"] == f"Insufficient stock for product ID {product.id}"
    db.expire_all()
    assert products_crud.get_product(db, product.id).stock == 2
    assert len(client.get("/orders", headers=auth_headers).json()["data"]) == 1


def test_list_my_orders(client, auth_headers, headers_for, other_user, make_product):
    product = make_product(stock=20)
    mine_first = client.post("/orders", json=order_payload((product.id, 1)), headers=auth_headers).json()["data"]
    client.post("/orders", json=order_payload((product.id, 1)), headers=headers_for(other_user))
    mine_second = client.post("/orders", json=order_payload((product.id, 2)), headers=auth_headers).json()["data"]

    response = client.get("/orders", headers=auth_headers)

    assert response.status_code == 200
    assert [o["id"] for o in response.json()["data"]] == [mine_second["id"], mine_first["id"]]


def test_completed_orders(client, auth_headers, make_product):
    product = make_product(stock=20)
    kept = client.post("/orders", json=order_payload((product.id, 1)), headers=auth_headers).json()["data"]
    reopened = client.post("/orders", json=order_payload((product.id, 1)), headers=auth_headers).json()["data"]
    patched = client.patch(f"/orders/{reopened['id']}/status", json={"status": "active"}, headers=auth_headers)
    assert patched.status_code == 200
    assert patched.json()["data"]["status"] == "active"

    response = client.get("/orders/completed", headers=auth_headers)

    assert response.status_code == 200
    assert [o["id"] for o in response.json()["data"]] == [kept["id"]]


def test_get_order(client, auth_headers, make_product):
    product = make_product(name="Teapot", stock=3)
    created = client.post("/orders", json=order_payload((product.id, 1)), headers=auth_headers).json()["data"]

    response = client.get(f"/orders/{created['id']}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["data"]["items"][0]["name"] == "Teapot"


@pytest.mark.parametrize("path, expected", [("/orders/abc", 400), ("/orders/5555", 404)])
def test_get_order_errors(client, auth_headers, path, expected):
    assert client.get(path, headers=auth_headers).status_code == expected


def test_other_users_order_is_not_found(client, auth_headers, headers_for, other_user, make_product):
    product = make_product()
    created = client.post("/orders", json=order_payload((product.id, 1)), headers=auth_headers).json()["data"]

    response = client.get(f"/orders/{created['id']}", headers=headers_for(other_user))

    assert response.status_code == 404


def test_update_status_rejects_unknown_value(client, auth_headers, make_product):
    product = make_product()
    created = client.post("/orders", json=order_payload((product.id, 1)), headers=auth_headers).json()["data"]

    response = client.patch(f"/orders/{created['id']}/status", json={"status": "shipped"}, headers=auth_headers)

    assert response.status_code == 400


def test_delete_order(client, auth_headers, make_product):
    product = make_product()
    created = client.post("/orders", json=order_payload((product.id, 1)), headers=auth_headers).json()["data"]

    assert client.delete(f"/orders/{created['id']}", headers=auth_headers).status_code == 204
    assert client.get(f"/orders/{created['id']}", headers=auth_headers).status_code == 404


def test_order_placed_event_published(app, client, auth_headers, make_product):
    publisher = RecordingPublisher()
    app.state.event_publisher = publisher
    product = make_product(stock=4)

    created = client.post("/orders", json=order_payload((product.id, 2)), headers=auth_headers).json()["data"]

    assert len(publisher.published) == 1
    routing_key, payload = publisher.published[0]
    assert routing_key == "order.placed"
    assert payload["order_id"] == created["id"]
    assert payload["items"] == [{"product_id": product.id, "quantity": 2}]


def test_broker_failure_does_not_fail_the_order(app, client, auth_headers, make_product):
    app.state.event_publisher = RecordingPublisher(fail=True)
    product = make_product(stock=4)

    response = client.post("/orders", json=order_payload((product.id, 1)), headers=auth_headers)

    assert response.status_code == 201
