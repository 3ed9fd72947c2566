import pytest

ORDERS_URL = "/api/orders/"


@pytest.fixture
def filled_cart(client, customer_headers, menu_item_id):
    client.post("/api/cart/items", json={"menu_item_id": menu_item_id, "quantity": 2}, headers=customer_headers)


@pytest.fixture
def order_id(client, customer_headers, filled_cart, address_id):
    response = client.post(ORDERS_URL, json={"address_id": address_id}, headers=customer_headers)
    return response.json()["_id"]


def test_place_order(client, customer_headers, filled_cart, address_id, lifecycle, restaurant_id):
    response = client.post(
        ORDERS_URL, json={"address_id": address_id, "payment_method": "cash"}, headers=customer_headers
    )

    assert response.status_code == 201
    order = response.json()
    assert order["status"] == "pending"
    assert order["restaurant_id"] == restaurant_id
    assert order["total_amount"] == pytest.approx(24.99)
    assert order["payment_status"] == "pending"
    assert lifecycle.scheduled == [order["_id"]]

    cart = client.get("/api/cart/", headers=customer_headers).json()
    assert cart["cart"] is None


def test_order_with_empty_cart_is_rejected(client, customer_headers, address_id, lifecycle):
    response = client.post(ORDERS_URL, json={"address_id": address_id}, headers=customer_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Your cart is empty"
    assert lifecycle.scheduled == []


def test_order_without_address_keeps_cart(client, customer_headers, filled_cart, db):
    response = client.post(ORDERS_URL, json={}, headers=customer_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Please select a delivery address"
    assert db.orders.count_documents({}) == 0
    assert client.get("/api/cart/", headers=customer_headers).json()["cart"] is not None


def test_user_orders_list(client, customer_headers, order_id, make_profile):
    orders = client.get(ORDERS_URL, headers=customer_headers).json()
    assert [o["_id"] for o in orders] == [order_id]

    stranger = make_profile("customer-2")
    assert client.get(ORDERS_URL, headers=stranger).json() == []


def test_order_detail_joins_restaurant_and_address(client, customer_headers, order_id):
    response = client.get(f"{ORDERS_URL}{order_id}", headers=customer_headers)

    assert response.status_code == 200
    detail = response.json()
    assert detail["restaurant"]["name"] == "Trattoria Roma"
    assert detail["address"]["full_address"] == "12 Baker Street"


def test_order_detail_hidden_from_other_users(client, order_id, make_profile):
    stranger = make_profile("customer-2")

    assert client.get(f"{ORDERS_URL}{order_id}", headers=stranger).status_code == 404


def test_restaurant_owner_sees_order(client, order_id, owner_headers, restaurant_id):
    assert client.get(f"{ORDERS_URL}{order_id}", headers=owner_headers).status_code == 200

    orders = client.get(f"{ORDERS_URL}restaurant/{restaurant_id}", headers=owner_headers).json()
    assert [o["_id"] for o in orders] == [order_id]


def test_restaurant_orders_need_ownership(client, customer_headers, restaurant_id):
    response = client.get(f"{ORDERS_URL}restaurant/{restaurant_id}", headers=customer_headers)

    assert response.status_code == 403


def test_tracking(client, customer_headers, order_id):
    tracking = client.get(f"{ORDERS_URL}{order_id}/tracking", headers=customer_headers).json()

    assert tracking["status"] == "pending"
    assert [(s["status"], s["reached"]) for s in tracking["steps"]] == [
        ("pending", True),
        ("preparing", False),
        ("out_for_delivery", False),
        ("delivered", False),
    ]
    assert tracking["is_complete"] is False


def test_cancel_order(client, customer_headers, order_id, lifecycle):
    # Prime the cache so the cancellation has to invalidate it
    client.get(f"{ORDERS_URL}{order_id}", headers=customer_headers)

    response = client.put(f"{ORDERS_URL}{order_id}/cancel", headers=customer_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert lifecycle.cancelled == [order_id]
    assert client.get(f"{ORDERS_URL}{order_id}", headers=customer_headers).json()["status"] == "cancelled"

    again = client.put(f"{ORDERS_URL}{order_id}/cancel", headers=customer_headers)
    assert again.status_code == 400


def test_cancel_other_users_order(client, order_id, make_profile):
    stranger = make_profile("customer-2")

    assert client.put(f"{ORDERS_URL}{order_id}/cancel", headers=stranger).status_code == 404


def test_owner_moves_order_status(client, customer_headers, owner_headers, order_id, lifecycle):
    response = client.put(f"{ORDERS_URL}{order_id}/status", json={"status": "preparing"}, headers=owner_headers)
    assert response.status_code == 200
    assert response.json()["status"] == "preparing"
    assert lifecycle.cancelled == []

    response = client.put(f"{ORDERS_URL}{order_id}/status", json={"status": "delivered"}, headers=owner_headers)
    order = response.json()
    assert order["is_complete"] is True
    assert order["delivered_at"] is not None
    assert lifecycle.cancelled == [order_id]

    response = client.put(f"{ORDERS_URL}{order_id}/status", json={"status": "cancelled"}, headers=owner_headers)
    assert response.status_code == 400


def test_customer_cannot_set_status(client, customer_headers, order_id):
    response = client.put(f"{ORDERS_URL}{order_id}/status", json={"status": "delivered"}, headers=customer_headers)

    assert response.status_code == 403


def test_order_detail_follows_address_and_restaurant_edits(
        client, customer_headers, owner_headers, order_id, address_id, restaurant_id
):
    url = f"{ORDERS_URL}{order_id}"
    assert client.get(url, headers=customer_headers).json()["address"]["full_address"] == "12 Baker Street"

    client.put(f"/api/addresses/{address_id}", json={"full_address": "221B Baker Street"}, headers=customer_headers)
    assert client.get(url, headers=customer_headers).json()["address"]["full_address"] == "221B Baker Street"

    client.put(f"/api/restaurants/{restaurant_id}", json={"name": "Trattoria Nuova"}, headers=owner_headers)
    assert client.get(url, headers=customer_headers).json()["restaurant"]["name"] == "Trattoria Nuova"

    client.delete(f"/api/addresses/{address_id}", headers=customer_headers)
    assert client.get(url, headers=customer_headers).json()["address"] == {"full_address": "Address not found"}
