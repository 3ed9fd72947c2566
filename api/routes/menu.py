from fastapi import APIRouter, Depends, HTTPException, status
from typing import Any, List
from core.database import get_menu_items_collection, serialize, to_object_id
from schemas.menu import MenuItem, MenuItemCreate, MenuItemUpdate
from schemas.user import Profile
from api.deps import get_current_restaurant_owner
from api.routes.restaurants import get_restaurant_or_404, ensure_can_manage

router = APIRouter()


def get_menu_item_or_404(item_id: str) -> dict:
    items_collection = get_menu_items_collection()

    item_oid = to_object_id(item_id)
    item = items_collection.find_one({"_id": item_oid}) if item_oid else None

    if not item:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Menu item not found"
        )

    return serialize(item)


@router.get("/restaurant/{restaurant_id}", response_model=List[MenuItem])
async def get_restaurant_menu(restaurant_id: str) -> Any:
    """
    Get the menu of a restaurant, grouped by category then name
    """
    items_collection = get_menu_items_collection()
    items = list(items_collection.find({"restaurant_id": restaurant_id}).sort([("category", 1), ("name", 1)]))
    return [serialize(item) for item in items]


@router.get("/items/{item_id}", response_model=MenuItem)
async def get_menu_item(item_id: str) -> Any:
    """
    Get a specific menu item
    """
    return get_menu_item_or_404(item_id)


@router.post("/items", response_model=MenuItem, status_code=status.HTTP_201_CREATED)
async def create_menu_item(
        item_in: MenuItemCreate,
        current_user: Profile = Depends(get_current_restaurant_owner)
) -> Any:
    """
    Add an item to a restaurant's menu (owner or admin)
    """
    items_collection = get_menu_items_collection()

    restaurant = get_restaurant_or_404(item_in.restaurant_id)
    ensure_can_manage(restaurant, current_user)

    result = items_collection.insert_one(item_in.dict())
    created_item = items_collection.find_one({"_id": result.inserted_id})

    return serialize(created_item)


@router.put("/items/{item_id}", response_model=MenuItem)
async def update_menu_item(
        item_id: str,
        item_in: MenuItemUpdate,
        current_user: Profile = Depends(get_current_restaurant_owner)
) -> Any:
    """
    Update a menu item (owner or admin)
    """
    items_collection = get_menu_items_collection()

    item = get_menu_item_or_404(item_id)
    ensure_can_manage(get_restaurant_or_404(item["restaurant_id"]), current_user)

    update_data = item_in.dict(exclude_unset=True)
    if update_data:
        items_collection.update_one(
            {"_id": to_object_id(item_id)},
            {"$set": update_data}
        )

    return get_menu_item_or_404(item_id)


@router.patch("/items/{item_id}/availability", response_model=MenuItem)
async def toggle_menu_item_availability(
        item_id: str,
        is_available: bool,
        current_user: Profile = Depends(get_current_restaurant_owner)
) -> Any:
    """
    Mark a menu item as available or sold out (owner or admin)
    """
    items_collection = get_menu_items_collection()

    item = get_menu_item_or_404(item_id)
    ensure_can_manage(get_restaurant_or_404(item["restaurant_id"]), current_user)

    items_collection.update_one(
        {"_id": to_object_id(item_id)},
        {"$set": {"is_available": is_available}}
    )

    return get_menu_item_or_404(item_id)


@router.delete("/items/{item_id}", status_code=status.HTTP_200_OK)
async def delete_menu_item(
        item_id: str,
        current_user: Profile = Depends(get_current_restaurant_owner)
) -> Any:
    """
    Delete a menu item (owner or admin)
    """
    items_collection = get_menu_items_collection()

    item = get_menu_item_or_404(item_id)
    ensure_can_manage(get_restaurant_or_404(item["restaurant_id"]), current_user)

    items_collection.delete_one({"_id": to_object_id(item_id)})

    return None
