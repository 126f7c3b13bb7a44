from decimal import Decimal

NEW_PRODUCT = {
    "name": "Desk Lamp",
    "description": "Warm white, adjustable arm",
    "price": 34.99,
    "stock": 12,
    "category": "home",
}


def test_list_products_newest_first(client, make_product):
    older = make_product(name="Older")
    newer = make_product(name="Newer")

    response = client.get("/products")

    assert response.status_code == 200
    assert [p["id"] for p in response.json()["data"]] == [newer.id, older.id]


def test_get_product(client, make_product):
    product = make_product(name="Chair", price="120.00", stock=4)

    response = client.get(f"/products/{product.id}")

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Chair"
    assert Decimal(data["price"]) == Decimal("120.00")
    assert data["stock"] == 4


def test_get_product_bad_id(client):
    response = client.get("/products/chair")
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid product_id parameter"


def test_get_product_not_found(client):
    response = client.get("/products/31337")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Product not found", "error": None}


def test_products_by_category(client, make_product):
    make_product(name="Sofa", category="home")
    make_product(name="Kite", category="toys")

    home = client.get("/products/category/home").json()["data"]
    missing = client.get("/products/category/garden")

    assert [p["name"] for p in home] == ["Sofa"]
    assert missing.status_code == 200
    assert missing.json()["data"] == []


def test_popular_top_five(client, user, headers_for, make_product):
    products = [make_product(name=f"P{i}", stock=50) for i in range(7)]
    favourite = products[3]
    for _ in range(2):
        client.post(
            "/orders",
            headers=headers_for(user),
            json={
                "items": [{"productId": favourite.id, "quantity": 1}],
                "customerFirstName": "Ada",
                "customerLastName": "Lovelace",
                "customerEmail": "ada@example.com",
                "customerAddress": "1 Main St",
                "paymentMethod": "card",
            },
        )

    response = client.get("/products/popular/top-5")

    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data) == 5
    assert (data[0]["id"], data[0]["total_orders"]) == (favourite.id, 2)
    assert [p["total_orders"] for p in data[1:]] == [0, 0, 0, 0]
    assert [p["id"] for p in data[1:]] == [products[0].id, products[1].id, products[2].id, products[4].id]


def test_create_product(client, auth_headers):
    response = client.post("/products", json=NEW_PRODUCT, headers=auth_headers)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["id"] > 0
    assert Decimal(data["price"]) == Decimal("34.99")
    assert client.get(f"/products/{data['id']}").status_code == 200


def test_create_product_requires_token(client):
    assert client.post("/products", json=NEW_PRODUCT).status_code == 401


def test_create_product_missing_field(client, auth_headers):
    payload = {k: v for k, v in NEW_PRODUCT.items() if k != "category"}

    response = client.post("/products", json=payload, headers=auth_headers)

    assert response.status_code == 400
    assert "category" in response.json()["message"]


def test_create_product_negative_stock(client, auth_headers):
    response = client.post("/products", json={**NEW_PRODUCT, "stock": -1}, headers=auth_headers)
    assert response.status_code == 400
