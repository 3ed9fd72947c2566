"""
Restaurant filter/sort composition.

The same criteria are rendered two ways: as a MongoDB filter and sort spec
for the restaurants collection, and as a plain in-memory filter over
restaurant documents. Filters combine with AND; the cuisine set and the text
search each match if any of their candidates match.
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Tuple
from pymongo import ASCENDING, DESCENDING
from schemas.restaurant import FilterOptions, SortBy

VEGETARIAN_CUISINES = ["Vegetarian", "Vegan"]

SORT_SPECS = {
    SortBy.RATING: [("rating", DESCENDING)],
    SortBy.DELIVERY_TIME: [("delivery_time", ASCENDING)],
    SortBy.PRICE_LOW_TO_HIGH: [("price_range", ASCENDING)],
    SortBy.PRICE_HIGH_TO_LOW: [("price_range", DESCENDING)],
}

# Featured first, then best rated
DEFAULT_SORT = [("is_featured", DESCENDING), ("rating", DESCENDING)]


def _clean_search(search: Optional[str]) -> Optional[str]:
    if search is None:
        return None
    search = search.strip()
    return search or None


def compose_query(
        filters: Optional[FilterOptions] = None,
        search: Optional[str] = None
) -> Tuple[Dict[str, Any], List[Tuple[str, int]]]:
    """
    Build the MongoDB filter and sort spec for the given criteria.

    Ties are broken on ``_id`` so equal rows keep their insertion order.
    """
    conditions: List[Dict[str, Any]] = [{"is_active": True}]

    if filters:
        if filters.cuisine_type:
            conditions.append({"cuisine_type": {"$in": list(filters.cuisine_type)}})

        if filters.price_range:
            low, high = filters.price_range
            conditions.append({"price_range": {"$gte": low, "$lte": high}})

        if filters.rating is not None:
            conditions.append({"rating": {"$gte": filters.rating}})

        if filters.delivery_time is not None:
            conditions.append({"delivery_time": {"$lte": filters.delivery_time}})

        if filters.is_vegetarian:
            conditions.append({"cuisine_type": {"$in": VEGETARIAN_CUISINES}})

    search = _clean_search(search)
    if search:
        search_query = {"$regex": re.escape(search), "$options": "i"}
        conditions.append({"$or": [
            {"name": search_query},
            {"description": search_query},
            {"cuisine_type": search_query}
        ]})

    query = conditions[0] if len(conditions) == 1 else {"$and": conditions}
    return query, sort_spec(filters.sort_by if filters else None)


def sort_spec(sort_by: Optional[SortBy]) -> List[Tuple[str, int]]:
    return SORT_SPECS.get(sort_by, DEFAULT_SORT) + [("_id", ASCENDING)]


def matches(
        restaurant: Dict[str, Any],
        filters: Optional[FilterOptions] = None,
        search: Optional[str] = None
) -> bool:
    if not restaurant.get("is_active", True):
        return False

    cuisines = restaurant.get("cuisine_type") or []

    if filters:
        if filters.cuisine_type and not any(c in filters.cuisine_type for c in cuisines):
            return False

        if filters.price_range:
            low, high = filters.price_range
            if not low <= restaurant.get("price_range", 0) <= high:
                return False

        if filters.rating is not None and restaurant.get("rating", 0) < filters.rating:
            return False

        if filters.delivery_time is not None and restaurant.get("delivery_time", 0) > filters.delivery_time:
            return False

        if filters.is_vegetarian and not any(c in VEGETARIAN_CUISINES for c in cuisines):
            return False

    search = _clean_search(search)
    if search:
        term = search.lower()
        haystacks = [restaurant.get("name") or "", restaurant.get("description") or ""] + cuisines
        if not any(term in text.lower() for text in haystacks):
            return False

    return True


def sort_restaurants(restaurants: Iterable[Dict[str, Any]], sort_by: Optional[SortBy] = None) -> List[Dict[str, Any]]:
    """Stable sort, so restaurants that compare equal keep their relative order."""
    if sort_by == SortBy.RATING:
        key = lambda r: -r.get("rating", 0)
    elif sort_by == SortBy.DELIVERY_TIME:
        key = lambda r: r.get("delivery_time", 0)
    elif sort_by == SortBy.PRICE_LOW_TO_HIGH:
        key = lambda r: r.get("price_range", 0)
    elif sort_by == SortBy.PRICE_HIGH_TO_LOW:
        key = lambda r: -r.get("price_range", 0)
    else:
        key = lambda r: (not r.get("is_featured", False), -r.get("rating", 0))
    return sorted(restaurants, key=key)


def filter_restaurants(
        restaurants: Iterable[Dict[str, Any]],
        filters: Optional[FilterOptions] = None,
        search: Optional[str] = None
) -> List[Dict[str, Any]]:
    selected = [r for r in restaurants if matches(r, filters, search)]
    return sort_restaurants(selected, filters.sort_by if filters else None)
