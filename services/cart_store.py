from collections import OrderedDict
from datetime import datetime
from threading import Lock
from typing import Callable, Optional, Tuple
import logging

from core.database import get_carts_collection
from core.exceptions import InvalidRequestError, StaleCartError
from schemas.cart import Cart, CartItem
from schemas.menu import MenuItem

logger = logging.getLogger(__name__)

DEFAULT_MAX_USERS = 10000


class CartStore:
    """
    Holds the single active cart of one user.

    A cart only ever contains items from one restaurant. An empty cart and no
    cart are the same state: the cart is ``None`` whenever it has no items.
    Every change bumps ``version`` so callers can detect concurrent edits by
    passing ``expected_version`` to the mutators. When ``on_change`` reports
    a stale write, the store takes over the state returned by ``reload``.
    """

    def __init__(
            self,
            cart: Optional[Cart] = None,
            version: int = 0,
            on_change: Optional[Callable[[Optional[Cart], int], None]] = None,
            reload: Optional[Callable[[], Tuple[Optional[Cart], int]]] = None
    ):
        self._cart = cart if cart and cart.items else None
        self._version = version
        self._on_change = on_change
        self._reload = reload
        self._lock = Lock()

    @property
    def cart(self) -> Optional[Cart]:
        return self._cart

    @property
    def version(self) -> int:
        return self._version

    def get_item(self, item_id: str) -> Optional[CartItem]:
        if not self._cart:
            return None
        for cart_item in self._cart.items:
            if cart_item.item.id == item_id:
                return cart_item
        return None

    def would_replace(self, restaurant_id: str) -> bool:
        """True when adding from this restaurant would throw away the current cart."""
        return self._cart is not None and self._cart.restaurant_id != restaurant_id

    def add_to_cart(
            self,
            restaurant_id: str,
            restaurant_name: str,
            item: MenuItem,
            quantity: int = 1,
            expected_version: Optional[int] = None
    ) -> Optional[Cart]:
        if quantity < 1:
            raise InvalidRequestError("Quantity must be at least 1")

        with self._lock:
            self._check_version(expected_version)
            current = self._cart

            # No cart yet, or a cart from a different restaurant: start over
            if current is None or current.restaurant_id != restaurant_id:
                if current is not None:
                    logger.info(
                        f"Replacing cart from restaurant {current.restaurant_id} "
                        f"with restaurant {restaurant_id}"
                    )
                return self._commit(Cart(
                    restaurant_id=restaurant_id,
                    restaurant_name=restaurant_name,
                    items=[CartItem(item=item, quantity=quantity)]
                ))

            items = []
            merged = False
            for cart_item in current.items:
                if cart_item.item.id == item.id:
                    items.append(CartItem(item=cart_item.item, quantity=cart_item.quantity + quantity))
                    merged = True
                else:
                    items.append(cart_item)

            if not merged:
                items.append(CartItem(item=item, quantity=quantity))

            return self._commit(Cart(
                restaurant_id=current.restaurant_id,
                restaurant_name=current.restaurant_name,
                items=items
            ))

    def remove_from_cart(self, item_id: str, expected_version: Optional[int] = None) -> Optional[Cart]:
        with self._lock:
            self._check_version(expected_version)
            return self._remove(item_id)

    def update_quantity(
            self,
            item_id: str,
            quantity: int,
            expected_version: Optional[int] = None
    ) -> Optional[Cart]:
        with self._lock:
            self._check_version(expected_version)

            if quantity <= 0:
                return self._remove(item_id)

            current = self._cart
            if current is None or self.get_item(item_id) is None:
                return current

            items = [
                CartItem(item=cart_item.item, quantity=quantity)
                if cart_item.item.id == item_id else cart_item
                for cart_item in current.items
            ]
            return self._commit(Cart(
                restaurant_id=current.restaurant_id,
                restaurant_name=current.restaurant_name,
                items=items
            ))

    def clear_cart(self, expected_version: Optional[int] = None) -> None:
        with self._lock:
            self._check_version(expected_version)
            self._commit(None)

    def _remove(self, item_id: str) -> Optional[Cart]:
        current = self._cart
        if current is None or self.get_item(item_id) is None:
            return current

        items = [cart_item for cart_item in current.items if cart_item.item.id != item_id]

        # Removing the last item removes the cart itself
        if not items:
            return self._commit(None)

        return self._commit(Cart(
            restaurant_id=current.restaurant_id,
            restaurant_name=current.restaurant_name,
            items=items
        ))

    def _check_version(self, expected_version: Optional[int]):
        if expected_version is not None and expected_version != self._version:
            raise StaleCartError(expected_version, self._version)

    def _commit(self, cart: Optional[Cart]) -> Optional[Cart]:
        version = self._version + 1
        # Persist first so a failed write leaves the in-memory cart untouched
        if self._on_change:
            try:
                self._on_change(cart, version)
            except StaleCartError:
                # Another process saved a newer cart; take it over
                if self._reload:
                    self._cart, self._version = self._reload()
                raise
        self._cart = cart
        self._version = version
        return cart


class CartStoreRegistry:
    """
    Hands out one CartStore per user, backed by the carts collection.

    Only the ``max_users`` most recently used stores are kept in memory; an
    evicted store is loaded again from the collection on its next use.
    """

    def __init__(self, collection_getter=get_carts_collection, max_users: int = DEFAULT_MAX_USERS):
        self._collection_getter = collection_getter
        self.max_users = max_users
        self._stores: "OrderedDict[str, CartStore]" = OrderedDict()
        self._lock = Lock()

    def get(self, user_id: str) -> CartStore:
        with self._lock:
            store = self._stores.get(user_id)
            if store is None:
                store = self._load(user_id)
                self._stores[user_id] = store
                while len(self._stores) > self.max_users:
                    self._stores.popitem(last=False)
            else:
                self._stores.move_to_end(user_id)
            return store

    def __len__(self) -> int:
        return len(self._stores)

    def _read(self, user_id: str) -> Tuple[Optional[Cart], int]:
        document = self._collection_getter().find_one({"user_id": user_id})
        if not document:
            return None, 0

        cart = Cart(**document["cart"]) if document.get("cart") else None
        return cart, document.get("version", 0)

    def _load(self, user_id: str) -> CartStore:
        cart, version = self._read(user_id)
        return CartStore(
            cart=cart,
            version=version,
            on_change=lambda new_cart, new_version: self._persist(user_id, new_cart, new_version),
            reload=lambda: self._read(user_id)
        )

    def _persist(self, user_id: str, cart: Optional[Cart], version: int):
        """Write the cart only if the stored version is still the one it was based on"""
        collection = self._collection_getter()
        previous = version - 1
        document = {
            "cart": cart.dict() if cart else None,
            "version": version,
            "updated_at": datetime.utcnow()
        }

        if previous == 0:
            result = collection.update_one(
                {"user_id": user_id},
                {"$setOnInsert": document},
                upsert=True
            )
            saved = result.upserted_id is not None
        else:
            result = collection.update_one(
                {"user_id": user_id, "version": previous},
                {"$set": document}
            )
            saved = result.matched_count == 1

        if not saved:
            current = collection.find_one({"user_id": user_id}) or {}
            logger.warning(
                f"Cart of user {user_id} changed elsewhere "
                f"(based on version {previous}, stored {current.get('version', 0)})"
            )
            raise StaleCartError(previous, current.get("version", 0))
