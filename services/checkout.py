from datetime import datetime
from typing import Any, Callable, Dict, Optional
import logging

from core.config import settings
from core.database import get_addresses_collection, get_orders_collection, serialize, to_object_id
from core.exceptions import InvalidRequestError
from models.order import OrderModel
from schemas.order import PaymentMethod
from services.cart_store import CartStore
from services.cart_totals import compute_totals
from services.order_lifecycle import OrderLifecycleSimulator
from services.view_cache import ViewCache

logger = logging.getLogger(__name__)


class CheckoutService:
    """Turns the user's cart into an order."""

    def __init__(
            self,
            view_cache: ViewCache,
            lifecycle: Optional[OrderLifecycleSimulator] = None,
            orders_collection_getter=get_orders_collection,
            addresses_collection_getter=get_addresses_collection,
            clock: Callable[[], datetime] = datetime.utcnow
    ):
        self.view_cache = view_cache
        self.lifecycle = lifecycle
        self._orders = orders_collection_getter
        self._addresses = addresses_collection_getter
        self._clock = clock

    def place_order(
            self,
            user_id: str,
            cart_store: CartStore,
            address_id: Optional[str],
            payment_method: PaymentMethod = PaymentMethod.CARD
    ) -> Dict[str, Any]:
        cart = cart_store.cart
        if not cart or not cart.items:
            raise InvalidRequestError("Your cart is empty")

        if not address_id:
            raise InvalidRequestError("Please select a delivery address")

        address_oid = to_object_id(address_id)
        address = None
        if address_oid is not None:
            address = self._addresses().find_one({"_id": address_oid, "user_id": user_id})
        if not address:
            raise InvalidRequestError("Please select a delivery address")

        totals = compute_totals(cart)
        order_data = OrderModel.create_order(
            user_id=user_id,
            address_id=address_id,
            cart=cart,
            totals=totals,
            payment_method=payment_method,
            placed_at=self._clock(),
            estimated_delivery_minutes=settings.ESTIMATED_DELIVERY_MINUTES
        )

        orders_collection = self._orders()
        result = orders_collection.insert_one(order_data)
        created_order = orders_collection.find_one({"_id": result.inserted_id})
        logger.info(f"Order {result.inserted_id} placed by user {user_id} for {totals.total:.2f}")

        if self.lifecycle is not None:
            self.lifecycle.schedule(created_order)

        self.view_cache.invalidate(
            ("orders", "user", user_id),
            ("orders", "restaurant", cart.restaurant_id)
        )

        # Only clear the cart once the order exists. The order stands even if
        # clearing fails.
        try:
            cart_store.clear_cart()
        except Exception as e:
            logger.error(f"Order {result.inserted_id} placed but the cart of user {user_id} was not cleared: {e}")

        return serialize(created_order)
