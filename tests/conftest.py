from datetime import datetime

import mongomock
import pytest
from fastapi.testclient import TestClient
from jose import jwt

import main
from core.config import settings
from core.database import mongodb


class RecordingLifecycle:
    """Stands in for the simulator in route tests, where no event loop outlives a request."""

    def __init__(self):
        self.scheduled = []
        self.cancelled = []

    def schedule(self, order):
        self.scheduled.append(str(order["_id"]))

    def cancel(self, order_id):
        self.cancelled.append(order_id)
        return True


def auth_headers(user_id):
    token = jwt.encode({"sub": user_id}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return {"Authorization": f"Bearer {token}"}


def restaurant_doc(**overrides):
    doc = {
        "name": "Trattoria Roma",
        "owner_id": "owner-1",
        "description": "Wood-fired pizza and fresh pasta",
        "cuisine_type": ["Italian"],
        "address": "1 Via Roma",
        "rating": 4.0,
        "price_range": 2,
        "delivery_time": 30,
        "images": [],
        "is_featured": False,
        "is_active": True,
        "created_at": datetime(2024, 1, 1),
    }
    doc.update(overrides)
    return doc


def menu_item_doc(restaurant_id, **overrides):
    doc = {
        "restaurant_id": restaurant_id,
        "name": "Margherita",
        "description": "Tomato, mozzarella, basil",
        "price": 10.0,
        "category": "Pizza",
        "is_vegetarian": True,
        "is_vegan": False,
        "ingredients": [],
        "is_available": True,
        "featured": False,
    }
    doc.update(overrides)
    return doc


@pytest.fixture
def db(monkeypatch):
    database = mongomock.MongoClient()["foodhub_test"]
    monkeypatch.setattr(mongodb, "db", database)
    return database


@pytest.fixture
def lifecycle():
    return RecordingLifecycle()


@pytest.fixture
def client(db, lifecycle):
    main.init_services(main.app)
    main.app.state.order_lifecycle = lifecycle
    return TestClient(main.app)


@pytest.fixture
def make_profile(db):
    def _make(user_id, role="customer", name="Test User"):
        db.profiles.insert_one({
            "_id": user_id,
            "email": f"{user_id}@mail.com",
            "name": name,
            "role": role,
            "created_at": datetime(2024, 1, 1),
        })
        return auth_headers(user_id)
    return _make


@pytest.fixture
def customer_headers(make_profile):
    return make_profile("customer-1")


@pytest.fixture
def owner_headers(make_profile):
    return make_profile("owner-1", role="restaurant_owner")


@pytest.fixture
def restaurant_id(db):
    return str(db.restaurants.insert_one(restaurant_doc()).inserted_id)


@pytest.fixture
def other_restaurant_id(db):
    return str(db.restaurants.insert_one(restaurant_doc(
        name="Sushi Ko", owner_id="owner-2", cuisine_type=["Japanese"]
    )).inserted_id)


@pytest.fixture
def menu_item_id(db, restaurant_id):
    return str(db.menu_items.insert_one(menu_item_doc(restaurant_id)).inserted_id)


@pytest.fixture
def address_id(db):
    return str(db.addresses.insert_one({
        "user_id": "customer-1",
        "label": "Home",
        "full_address": "12 Baker Street",
        "is_default": True,
        "created_at": datetime(2024, 1, 1),
        "updated_at": datetime(2024, 1, 1),
    }).inserted_id)
