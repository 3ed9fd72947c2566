import mongomock
import pytest

from core.exceptions import InvalidRequestError, StaleCartError
from schemas.menu import MenuItem
from services.cart_store import CartStore, CartStoreRegistry


def make_item(item_id, restaurant_id="r1", price=10.0, name=None):
    return MenuItem(
        _id=item_id,
        restaurant_id=restaurant_id,
        name=name or f"Item {item_id}",
        price=price,
        category="Mains",
    )


def test_first_add_creates_cart():
    store = CartStore()
    cart = store.add_to_cart("r1", "Roma", make_item("a"), 2)

    assert cart.restaurant_id == "r1"
    assert cart.restaurant_name == "Roma"
    assert [(ci.item.id, ci.quantity) for ci in cart.items] == [("a", 2)]
    assert store.version == 1


def test_adding_same_item_merges_quantities():
    store = CartStore()
    for quantity in (2, 1, 4):
        store.add_to_cart("r1", "Roma", make_item("a"), quantity)

    assert len(store.cart.items) == 1
    assert store.cart.items[0].quantity == 7


def test_adding_new_item_appends():
    store = CartStore()
    store.add_to_cart("r1", "Roma", make_item("a"), 1)
    store.add_to_cart("r1", "Roma", make_item("b"), 3)

    assert [(ci.item.id, ci.quantity) for ci in store.cart.items] == [("a", 1), ("b", 3)]


def test_other_restaurant_replaces_cart():
    store = CartStore()
    store.add_to_cart("r1", "Roma", make_item("a"), 2)
    store.add_to_cart("r1", "Roma", make_item("a"), 1)
    assert store.cart.items[0].quantity == 3

    assert store.would_replace("r2")
    cart = store.add_to_cart("r2", "Sushi Ko", make_item("b", restaurant_id="r2"), 1)

    assert cart.restaurant_id == "r2"
    assert [(ci.item.id, ci.quantity) for ci in cart.items] == [("b", 1)]


def test_would_replace_is_false_without_cart_or_for_same_restaurant():
    store = CartStore()
    assert not store.would_replace("r1")
    store.add_to_cart("r1", "Roma", make_item("a"))
    assert not store.would_replace("r1")


def test_add_rejects_non_positive_quantity():
    store = CartStore()
    with pytest.raises(InvalidRequestError):
        store.add_to_cart("r1", "Roma", make_item("a"), 0)
    assert store.cart is None
    assert store.version == 0


def test_update_quantity_sets_exact_value():
    store = CartStore()
    store.add_to_cart("r1", "Roma", make_item("a"), 2)
    store.update_quantity("a", 5)

    assert store.cart.items[0].quantity == 5


def test_update_to_zero_equals_remove():
    updated = CartStore()
    removed = CartStore()
    for store in (updated, removed):
        store.add_to_cart("r1", "Roma", make_item("a"), 2)
        store.add_to_cart("r1", "Roma", make_item("b"), 1)

    updated.update_quantity("a", 0)
    removed.remove_from_cart("a")

    assert updated.cart == removed.cart
    assert [ci.item.id for ci in updated.cart.items] == ["b"]


def test_negative_quantity_removes_item():
    store = CartStore()
    store.add_to_cart("r1", "Roma", make_item("a"), 2)
    store.update_quantity("a", -3)

    assert store.cart is None


def test_removing_last_item_drops_cart():
    store = CartStore()
    store.add_to_cart("r1", "Roma", make_item("a"), 2)
    store.remove_from_cart("a")

    assert store.cart is None


def test_clear_cart():
    store = CartStore()
    store.add_to_cart("r1", "Roma", make_item("a"), 2)
    store.clear_cart()

    assert store.cart is None


def test_mutations_on_missing_items_are_noops():
    store = CartStore()
    assert store.remove_from_cart("a") is None
    assert store.update_quantity("a", 3) is None

    store.add_to_cart("r1", "Roma", make_item("a"), 2)
    version = store.version
    store.update_quantity("zzz", 4)
    store.remove_from_cart("zzz")

    assert store.version == version
    assert store.cart.items[0].quantity == 2


def test_stale_version_is_rejected():
    store = CartStore()
    store.add_to_cart("r1", "Roma", make_item("a"), 1)

    with pytest.raises(StaleCartError):
        store.update_quantity("a", 9, expected_version=0)
    assert store.cart.items[0].quantity == 1

    store.update_quantity("a", 9, expected_version=1)
    assert store.cart.items[0].quantity == 9


def test_failed_persist_leaves_cart_unchanged():
    def fail(cart, version):
        raise RuntimeError("store unavailable")

    store = CartStore(on_change=fail)
    with pytest.raises(RuntimeError):
        store.add_to_cart("r1", "Roma", make_item("a"), 1)

    assert store.cart is None
    assert store.version == 0


def test_registry_persists_and_reloads_cart():
    collection = mongomock.MongoClient()["foodhub_test"]["carts"]
    registry = CartStoreRegistry(collection_getter=lambda: collection)

    store = registry.get("u1")
    assert registry.get("u1") is store
    store.add_to_cart("r1", "Roma", make_item("a", price=4.5), 2)

    reloaded = CartStoreRegistry(collection_getter=lambda: collection).get("u1")
    assert reloaded.version == 1
    assert reloaded.cart.restaurant_id == "r1"
    assert reloaded.cart.items[0].item.id == "a"
    assert reloaded.cart.items[0].item.price == 4.5
    assert reloaded.cart.items[0].quantity == 2

    store.clear_cart()
    document = collection.find_one({"user_id": "u1"})
    assert document["cart"] is None
    assert document["version"] == 2


def test_stale_process_cannot_overwrite_newer_cart():
    collection = mongomock.MongoClient()["foodhub_test"]["carts"]
    first = CartStoreRegistry(collection_getter=lambda: collection).get("u1")
    first.add_to_cart("r1", "Roma", make_item("a"), 1)

    second = CartStoreRegistry(collection_getter=lambda: collection).get("u1")
    second.add_to_cart("r1", "Roma", make_item("b"), 1)

    with pytest.raises(StaleCartError):
        first.add_to_cart("r1", "Roma", make_item("c"), 1, expected_version=1)

    document = collection.find_one({"user_id": "u1"})
    assert [ci["item"]["id"] for ci in document["cart"]["items"]] == ["a", "b"]
    assert document["version"] == 2

    # The losing store picked up the saved cart and can carry on from it
    assert first.version == 2
    assert [ci.item.id for ci in first.cart.items] == ["a", "b"]
    first.add_to_cart("r1", "Roma", make_item("c"), 1, expected_version=2)
    assert collection.find_one({"user_id": "u1"})["version"] == 3


def test_two_first_writes_do_not_both_win():
    collection = mongomock.MongoClient()["foodhub_test"]["carts"]
    first = CartStoreRegistry(collection_getter=lambda: collection).get("u1")
    second = CartStoreRegistry(collection_getter=lambda: collection).get("u1")

    first.add_to_cart("r1", "Roma", make_item("a"), 1)
    with pytest.raises(StaleCartError):
        second.add_to_cart("r2", "Sushi Ko", make_item("b", restaurant_id="r2"), 1)

    assert collection.count_documents({"user_id": "u1"}) == 1
    assert second.cart.restaurant_id == "r1"


def test_registry_keeps_recent_users_only():
    collection = mongomock.MongoClient()["foodhub_test"]["carts"]
    registry = CartStoreRegistry(collection_getter=lambda: collection, max_users=2)

    store = registry.get("u1")
    store.add_to_cart("r1", "Roma", make_item("a"), 2)
    registry.get("u2")
    registry.get("u1")
    registry.get("u3")

    assert len(registry) == 2
    assert registry.get("u1") is store

    registry.get("u2")
    registry.get("u4")
    reloaded = registry.get("u1")
    assert reloaded is not store
    assert reloaded.cart.items[0].quantity == 2
    assert reloaded.version == 1
