from fastapi import APIRouter, Depends
from typing import Any
from schemas.restaurant import FilterOptions
from api.deps import get_filter_store
from services.filter_store import FilterStore

router = APIRouter()


@router.get("/", response_model=FilterOptions)
async def get_filters(filter_store: FilterStore = Depends(get_filter_store)) -> Any:
    """
    Get the current user's restaurant filters
    """
    return filter_store.filters


@router.put("/", response_model=FilterOptions)
async def set_filters(
        filters_in: FilterOptions,
        filter_store: FilterStore = Depends(get_filter_store)
) -> Any:
    """
    Replace the current user's restaurant filters
    """
    return filter_store.set_filters(filters_in)


@router.delete("/", response_model=FilterOptions)
async def reset_filters(filter_store: FilterStore = Depends(get_filter_store)) -> Any:
    """
    Reset filters to no constraints
    """
    return filter_store.reset_filters()
