from datetime import datetime

import pytest

from services.cloudinary_service import cloudinary_service

REVIEWS_URL = "/api/reviews/"


@pytest.fixture
def uploads(monkeypatch):
    uploaded = []
    deleted = []

    async def fake_upload(file_data, folder, public_id=None):
        uploaded.append((folder, public_id))
        return {"public_id": f"{folder}/{public_id}", "url": f"https://res.cloudinary.com/demo/image/upload/v1/{folder}/{public_id}.png"}

    async def fake_delete(url):
        deleted.append(url)
        return True

    monkeypatch.setattr(cloudinary_service, "upload_image", fake_upload)
    monkeypatch.setattr(cloudinary_service, "delete_image", fake_delete)
    return uploaded, deleted


def insert_order(db, restaurant_id, status="delivered", user_id="customer-1"):
    return str(db.orders.insert_one({
        "user_id": user_id,
        "restaurant_id": restaurant_id,
        "address_id": "a1",
        "items": [],
        "status": status,
        "placed_at": datetime(2024, 5, 1),
    }).inserted_id)


def post_review(client, headers, restaurant_id, order_id, rating=5, files=None):
    return client.post(
        REVIEWS_URL,
        data={"restaurant_id": restaurant_id, "order_id": order_id, "rating": str(rating), "comment": "Great"},
        files=files,
        headers=headers,
    )


def test_review_delivered_order_updates_rating(client, db, customer_headers, restaurant_id, uploads):
    order_id = insert_order(db, restaurant_id)

    response = post_review(client, customer_headers, restaurant_id, order_id, rating=3)

    assert response.status_code == 201
    assert response.json()["rating"] == 3
    assert client.get(f"/api/restaurants/{restaurant_id}").json()["rating"] == 3


def test_rating_is_the_average(client, db, customer_headers, restaurant_id, make_profile, uploads):
    post_review(client, customer_headers, restaurant_id, insert_order(db, restaurant_id), rating=5)
    other = make_profile("customer-2", name="Ada")
    post_review(client, other, restaurant_id, insert_order(db, restaurant_id, user_id="customer-2"), rating=2)

    assert client.get(f"/api/restaurants/{restaurant_id}").json()["rating"] == pytest.approx(3.5)

    reviews = client.get(f"{REVIEWS_URL}restaurant/{restaurant_id}").json()
    assert {r["user"]["name"] for r in reviews} == {"Test User", "Ada"}


def test_undelivered_order_cannot_be_reviewed(client, db, customer_headers, restaurant_id, uploads):
    order_id = insert_order(db, restaurant_id, status="preparing")

    response = post_review(client, customer_headers, restaurant_id, order_id)

    assert response.status_code == 400


def test_one_review_per_order(client, db, customer_headers, restaurant_id, uploads):
    order_id = insert_order(db, restaurant_id)
    post_review(client, customer_headers, restaurant_id, order_id)

    response = post_review(client, customer_headers, restaurant_id, order_id)

    assert response.status_code == 400
    assert db.reviews.count_documents({}) == 1


def test_review_needs_own_order(client, db, customer_headers, restaurant_id, uploads):
    order_id = insert_order(db, restaurant_id, user_id="customer-2")

    assert post_review(client, customer_headers, restaurant_id, order_id).status_code == 404


def test_rating_out_of_range(client, db, customer_headers, restaurant_id, uploads):
    order_id = insert_order(db, restaurant_id)

    assert post_review(client, customer_headers, restaurant_id, order_id, rating=6).status_code == 400


def test_review_images_are_uploaded_and_deleted(client, db, customer_headers, restaurant_id, uploads):
    uploaded, deleted = uploads
    order_id = insert_order(db, restaurant_id)

    response = post_review(
        client, customer_headers, restaurant_id, order_id,
        files=[("images", ("dish.png", b"png-bytes", "image/png"))],
    )
    review = response.json()

    assert uploaded == [("reviews", f"review_{order_id}_0")]
    assert len(review["images"]) == 1

    response = client.delete(f"{REVIEWS_URL}{review['_id']}", headers=customer_headers)

    assert response.status_code == 200
    assert deleted == review["images"]
    assert client.get(f"/api/restaurants/{restaurant_id}").json()["rating"] == 0


def test_my_reviews_include_restaurant(client, db, customer_headers, restaurant_id, uploads):
    post_review(client, customer_headers, restaurant_id, insert_order(db, restaurant_id))

    reviews = client.get(f"{REVIEWS_URL}me", headers=customer_headers).json()

    assert [r["restaurant"]["name"] for r in reviews] == ["Trattoria Roma"]


def test_only_author_deletes_review(client, db, customer_headers, restaurant_id, make_profile, uploads):
    review = post_review(client, customer_headers, restaurant_id, insert_order(db, restaurant_id)).json()
    stranger = make_profile("customer-2")

    assert client.delete(f"{REVIEWS_URL}{review['_id']}", headers=stranger).status_code == 404

    admin = make_profile("admin-1", role="admin")
    assert client.delete(f"{REVIEWS_URL}{review['_id']}", headers=admin).status_code == 200
