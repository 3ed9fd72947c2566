from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Any, List, Optional
from pydantic import ValidationError
from core.database import get_restaurants_collection, serialize, to_object_id
from schemas.restaurant import Restaurant, RestaurantCreate, RestaurantUpdate, FilterOptions, SortBy
from schemas.user import Profile
from api.deps import get_current_restaurant_owner, get_filter_store, get_view_cache
from services.filter_store import FilterStore
from services.view_cache import ViewCache
from services.restaurant_query import compose_query
from datetime import datetime

router = APIRouter()


def find_restaurants(
        filters: Optional[FilterOptions] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
) -> List[dict]:
    restaurants_collection = get_restaurants_collection()
    query, sort = compose_query(filters, search)
    restaurants = list(restaurants_collection.find(query).sort(sort).skip(skip).limit(limit))
    return [serialize(restaurant) for restaurant in restaurants]


def get_restaurant_or_404(restaurant_id: str) -> dict:
    restaurants_collection = get_restaurants_collection()

    restaurant_oid = to_object_id(restaurant_id)
    restaurant = restaurants_collection.find_one({"_id": restaurant_oid}) if restaurant_oid else None

    if not restaurant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Restaurant not found"
        )

    return serialize(restaurant)


def ensure_can_manage(restaurant: dict, current_user: Profile):
    if not current_user.is_admin and restaurant["owner_id"] != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not enough permissions"
        )


@router.get("/", response_model=List[Restaurant])
async def get_restaurants(
        cuisine_type: Optional[List[str]] = Query(None),
        price_min: Optional[int] = Query(None, ge=1, le=4),
        price_max: Optional[int] = Query(None, ge=1, le=4),
        rating: Optional[float] = None,
        is_vegetarian: Optional[bool] = None,
        delivery_time: Optional[int] = None,
        sort_by: Optional[SortBy] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100
) -> Any:
    """
    Get active restaurants with optional filtering, search and sorting
    """
    price_range = None
    if price_min is not None or price_max is not None:
        price_range = [price_min or 1, price_max or 4]

    try:
        filters = FilterOptions(
            cuisine_type=cuisine_type,
            price_range=price_range,
            rating=rating,
            is_vegetarian=is_vegetarian,
            delivery_time=delivery_time,
            sort_by=sort_by
        )
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=e.errors()[0]["msg"]
        )

    return find_restaurants(filters, search, skip, limit)


@router.get("/filtered", response_model=List[Restaurant])
async def get_restaurants_with_saved_filters(
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
        filter_store: FilterStore = Depends(get_filter_store)
) -> Any:
    """
    Get restaurants matching the current user's saved filters
    """
    return find_restaurants(filter_store.filters, search, skip, limit)


@router.get("/search", response_model=List[Restaurant])
async def search_restaurants(q: str = "") -> Any:
    """
    Search restaurants by name, description or cuisine
    """
    if len(q.strip()) < 2:
        return []
    return find_restaurants(search=q)


@router.get("/owner/{owner_id}", response_model=List[Restaurant])
async def get_restaurants_by_owner(owner_id: str) -> Any:
    """
    Get all restaurants of an owner, including inactive ones
    """
    restaurants_collection = get_restaurants_collection()
    restaurants = list(restaurants_collection.find({"owner_id": owner_id}).sort("created_at", -1))
    return [serialize(restaurant) for restaurant in restaurants]


@router.get("/{restaurant_id}", response_model=Restaurant)
async def get_restaurant(restaurant_id: str) -> Any:
    """
    Get a specific restaurant
    """
    return get_restaurant_or_404(restaurant_id)


@router.post("/", response_model=Restaurant, status_code=status.HTTP_201_CREATED)
async def create_restaurant(
        restaurant_in: RestaurantCreate,
        current_user: Profile = Depends(get_current_restaurant_owner)
) -> Any:
    """
    Create a new restaurant (restaurant owners only)
    """
    restaurants_collection = get_restaurants_collection()

    restaurant_data = {
        **restaurant_in.dict(),
        "owner_id": current_user.id,
        "rating": 0,
        "is_active": True,
        "is_featured": False,
        "created_at": datetime.utcnow()
    }

    result = restaurants_collection.insert_one(restaurant_data)
    created_restaurant = restaurants_collection.find_one({"_id": result.inserted_id})

    return serialize(created_restaurant)


@router.put("/{restaurant_id}", response_model=Restaurant)
async def update_restaurant(
        restaurant_id: str,
        restaurant_in: RestaurantUpdate,
        current_user: Profile = Depends(get_current_restaurant_owner),
        view_cache: ViewCache = Depends(get_view_cache)
) -> Any:
    """
    Update a restaurant (owner or admin)
    """
    restaurants_collection = get_restaurants_collection()
    restaurant = get_restaurant_or_404(restaurant_id)
    ensure_can_manage(restaurant, current_user)

    update_data = restaurant_in.dict(exclude_unset=True)

    # Only admins promote restaurants
    if "is_featured" in update_data and not current_user.is_admin:
        del update_data["is_featured"]

    if update_data:
        restaurants_collection.update_one(
            {"_id": to_object_id(restaurant_id)},
            {"$set": update_data}
        )
        # Order details embed the restaurant
        view_cache.invalidate(("order",))

    return get_restaurant_or_404(restaurant_id)


@router.delete("/{restaurant_id}", response_model=Restaurant)
async def delete_restaurant(
        restaurant_id: str,
        current_user: Profile = Depends(get_current_restaurant_owner)
) -> Any:
    """
    Deactivate a restaurant (owner or admin); it stays in the database
    """
    restaurants_collection = get_restaurants_collection()
    restaurant = get_restaurant_or_404(restaurant_id)
    ensure_can_manage(restaurant, current_user)

    restaurants_collection.update_one(
        {"_id": to_object_id(restaurant_id)},
        {"$set": {"is_active": False}}
    )

    return get_restaurant_or_404(restaurant_id)
