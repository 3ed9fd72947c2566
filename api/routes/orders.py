from fastapi import APIRouter, Depends, HTTPException, status
from typing import Any, List
from datetime import datetime
from core.database import (
    get_orders_collection,
    get_restaurants_collection,
    get_addresses_collection,
    serialize,
    to_object_id
)
from core.exceptions import FoodHubError, raise_http
from models.order import OrderModel
from schemas.order import (
    Order, OrderCreate, OrderDetail, OrderStatus, OrderStatusUpdate, OrderTracking,
    STATUS_SEQUENCE, TERMINAL_STATUSES
)
from schemas.user import Profile
from api.deps import (
    get_current_user, get_cart_store, get_checkout_service, get_order_lifecycle, get_view_cache
)
from api.routes.restaurants import get_restaurant_or_404, ensure_can_manage
from services.cart_store import CartStore
from services.checkout import CheckoutService
from services.order_lifecycle import OrderLifecycleSimulator
from services.view_cache import ViewCache, invalidate_order_views

router = APIRouter()


def load_order_detail(order_id: str) -> Any:
    orders_collection = get_orders_collection()
    restaurants_collection = get_restaurants_collection()
    addresses_collection = get_addresses_collection()

    order_oid = to_object_id(order_id)
    order = orders_collection.find_one({"_id": order_oid}) if order_oid else None
    if not order:
        return None

    serialize(order)

    restaurant = restaurants_collection.find_one(
        {"_id": to_object_id(order["restaurant_id"])},
        {"name": 1, "address": 1, "featured_image": 1, "owner_id": 1}
    )
    order["restaurant"] = serialize(restaurant) or {"name": "Restaurant not found"}

    address = addresses_collection.find_one({"_id": to_object_id(order["address_id"])})
    order["address"] = serialize(address) or {"full_address": "Address not found"}

    return order


def get_visible_order(order_id: str, current_user: Profile, view_cache: ViewCache) -> dict:
    """Fetch the order detail, allowing the customer, the restaurant owner and admins"""
    order = view_cache.get_or_load(("order", order_id), lambda: load_order_detail(order_id))

    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )

    is_customer = order["user_id"] == current_user.id
    is_owner = order["restaurant"].get("owner_id") == current_user.id
    if not (is_customer or is_owner or current_user.is_admin):
        # Don't reveal other users' orders
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )

    return order


@router.post("/", response_model=Order, status_code=status.HTTP_201_CREATED)
async def create_order(
        order_in: OrderCreate,
        current_user: Profile = Depends(get_current_user),
        cart_store: CartStore = Depends(get_cart_store),
        checkout: CheckoutService = Depends(get_checkout_service)
) -> Any:
    """
    Place an order from the cart; the cart is cleared once the order exists
    """
    try:
        return checkout.place_order(
            user_id=current_user.id,
            cart_store=cart_store,
            address_id=order_in.address_id,
            payment_method=order_in.payment_method
        )
    except FoodHubError as e:
        raise_http(e)


@router.get("/", response_model=List[Order])
async def get_user_orders(
        current_user: Profile = Depends(get_current_user),
        view_cache: ViewCache = Depends(get_view_cache)
) -> Any:
    """
    Get user's orders, newest first
    """
    def load():
        orders_collection = get_orders_collection()
        orders = orders_collection.find({"user_id": current_user.id}).sort("placed_at", -1)
        return [serialize(order) for order in orders]

    return view_cache.get_or_load(("orders", "user", current_user.id), load)


@router.get("/restaurant/{restaurant_id}", response_model=List[Order])
async def get_restaurant_orders(
        restaurant_id: str,
        current_user: Profile = Depends(get_current_user),
        view_cache: ViewCache = Depends(get_view_cache)
) -> Any:
    """
    Get a restaurant's orders, newest first (owner or admin)
    """
    ensure_can_manage(get_restaurant_or_404(restaurant_id), current_user)

    def load():
        orders_collection = get_orders_collection()
        orders = orders_collection.find({"restaurant_id": restaurant_id}).sort("placed_at", -1)
        return [serialize(order) for order in orders]

    return view_cache.get_or_load(("orders", "restaurant", restaurant_id), load)


@router.get("/{order_id}", response_model=OrderDetail)
async def get_order_detail(
        order_id: str,
        current_user: Profile = Depends(get_current_user),
        view_cache: ViewCache = Depends(get_view_cache)
) -> Any:
    """
    Get order details with restaurant and delivery address
    """
    return get_visible_order(order_id, current_user, view_cache)


@router.get("/{order_id}/tracking", response_model=OrderTracking)
async def track_order(
        order_id: str,
        current_user: Profile = Depends(get_current_user),
        view_cache: ViewCache = Depends(get_view_cache)
) -> Any:
    """
    Get the progress of an order through its statuses
    """
    order = get_visible_order(order_id, current_user, view_cache)
    history = order.get("status_history") or {}

    steps = [
        {
            "status": step,
            "reached": step.value in history,
            "reached_at": history.get(step.value)
        }
        for step in STATUS_SEQUENCE
    ]

    return {
        "order_id": order["_id"],
        "status": order["status"],
        "steps": steps,
        "estimated_delivery_time": order.get("estimated_delivery_time"),
        "delivered_at": order.get("delivered_at"),
        "is_complete": order.get("is_complete", False)
    }


@router.put("/{order_id}/cancel", response_model=Order)
async def cancel_order(
        order_id: str,
        current_user: Profile = Depends(get_current_user),
        view_cache: ViewCache = Depends(get_view_cache),
        lifecycle: OrderLifecycleSimulator = Depends(get_order_lifecycle)
) -> Any:
    """
    Cancel an order that hasn't been delivered yet
    """
    orders_collection = get_orders_collection()

    order_oid = to_object_id(order_id)
    order = orders_collection.find_one({"_id": order_oid, "user_id": current_user.id}) if order_oid else None

    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )

    if OrderStatus(order["status"]) in TERMINAL_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Order cannot be cancelled at this stage"
        )

    # Stop the scheduled status changes before writing the cancellation
    lifecycle.cancel(order_id)

    orders_collection.update_one(
        {"_id": order_oid},
        {"$set": OrderModel.status_update(OrderStatus.CANCELLED, datetime.utcnow())}
    )
    invalidate_order_views(view_cache, order)

    return serialize(orders_collection.find_one({"_id": order_oid}))


@router.put("/{order_id}/status", response_model=Order)
async def update_order_status(
        order_id: str,
        status_in: OrderStatusUpdate,
        current_user: Profile = Depends(get_current_user),
        view_cache: ViewCache = Depends(get_view_cache),
        lifecycle: OrderLifecycleSimulator = Depends(get_order_lifecycle)
) -> Any:
    """
    Update order status (restaurant owner or admin)
    """
    orders_collection = get_orders_collection()

    order_oid = to_object_id(order_id)
    order = orders_collection.find_one({"_id": order_oid}) if order_oid else None

    if not order:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found"
        )

    ensure_can_manage(get_restaurant_or_404(order["restaurant_id"]), current_user)

    if OrderStatus(order["status"]) in TERMINAL_STATUSES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Order is already {order['status']}"
        )

    if status_in.status in TERMINAL_STATUSES:
        lifecycle.cancel(order_id)

    orders_collection.update_one(
        {"_id": order_oid},
        {"$set": OrderModel.status_update(status_in.status, datetime.utcnow())}
    )
    invalidate_order_views(view_cache, order)

    return serialize(orders_collection.find_one({"_id": order_oid}))
