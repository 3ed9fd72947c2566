from fastapi import APIRouter, Depends, HTTPException, status
from typing import Any, Optional
from core.exceptions import CartConflictError, FoodHubError, raise_http
from schemas.cart import CartItemCreate, CartItemUpdate, CartResponse, CartTotals
from schemas.menu import MenuItem
from api.deps import get_cart_store
from api.routes.menu import get_menu_item_or_404
from api.routes.restaurants import get_restaurant_or_404
from services.cart_store import CartStore
from services.cart_totals import compute_totals

router = APIRouter()


def cart_response(cart_store: CartStore) -> dict:
    return {
        "cart": cart_store.cart,
        "version": cart_store.version,
        "totals": compute_totals(cart_store.cart)
    }


def ensure_item_in_cart(cart_store: CartStore, item_id: str):
    if cart_store.get_item(item_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Item not found in cart"
        )


@router.get("/", response_model=CartResponse)
async def get_user_cart(cart_store: CartStore = Depends(get_cart_store)) -> Any:
    """
    Get user's cart with its totals
    """
    return cart_response(cart_store)


@router.get("/totals", response_model=CartTotals)
async def get_cart_totals(cart_store: CartStore = Depends(get_cart_store)) -> Any:
    """
    Get subtotal, tax, delivery fee and total of the cart
    """
    return compute_totals(cart_store.cart)


@router.post("/items", response_model=CartResponse)
async def add_item_to_cart(
        item_in: CartItemCreate,
        cart_store: CartStore = Depends(get_cart_store)
) -> Any:
    """
    Add item to cart.

    Adding an item from another restaurant replaces the whole cart, so it has
    to be confirmed with ``confirm_replace``.
    """
    menu_item = get_menu_item_or_404(item_in.menu_item_id)

    if not menu_item.get("is_available", True):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Menu item is not available"
        )

    restaurant = get_restaurant_or_404(menu_item["restaurant_id"])
    if not restaurant.get("is_active", True):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Restaurant is not accepting orders"
        )

    try:
        if cart_store.would_replace(restaurant["_id"]) and not item_in.confirm_replace:
            raise CartConflictError(cart_store.cart.restaurant_name)

        cart_store.add_to_cart(
            restaurant_id=restaurant["_id"],
            restaurant_name=restaurant["name"],
            item=MenuItem(**menu_item),
            quantity=item_in.quantity,
            expected_version=item_in.expected_version
        )
    except FoodHubError as e:
        raise_http(e)

    return cart_response(cart_store)


@router.put("/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
        item_id: str,
        item_in: CartItemUpdate,
        cart_store: CartStore = Depends(get_cart_store)
) -> Any:
    """
    Set the quantity of a cart item; zero or less removes it
    """
    ensure_item_in_cart(cart_store, item_id)

    try:
        cart_store.update_quantity(item_id, item_in.quantity, expected_version=item_in.expected_version)
    except FoodHubError as e:
        raise_http(e)

    return cart_response(cart_store)


@router.delete("/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(
        item_id: str,
        expected_version: Optional[int] = None,
        cart_store: CartStore = Depends(get_cart_store)
) -> Any:
    """
    Remove item from cart
    """
    ensure_item_in_cart(cart_store, item_id)

    try:
        cart_store.remove_from_cart(item_id, expected_version=expected_version)
    except FoodHubError as e:
        raise_http(e)

    return cart_response(cart_store)


@router.delete("/", response_model=CartResponse)
async def clear_cart(
        expected_version: Optional[int] = None,
        cart_store: CartStore = Depends(get_cart_store)
) -> Any:
    """
    Clear cart
    """
    try:
        cart_store.clear_cart(expected_version=expected_version)
    except FoodHubError as e:
        raise_http(e)

    return cart_response(cart_store)
