from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime
from enum import Enum


class SortBy(str, Enum):
    RATING = "rating"
    DELIVERY_TIME = "delivery_time"
    PRICE_LOW_TO_HIGH = "price_low_to_high"
    PRICE_HIGH_TO_LOW = "price_high_to_low"


class RestaurantBase(BaseModel):
    name: str
    description: str = ""
    cuisine_type: List[str] = []
    address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    opening_hours: Optional[str] = None
    closing_hours: Optional[str] = None
    price_range: int = Field(2, ge=1, le=4)
    delivery_time: int = Field(30, gt=0)
    featured_image: Optional[str] = None
    images: List[str] = []


class RestaurantCreate(RestaurantBase):
    pass


class RestaurantUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    cuisine_type: Optional[List[str]] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    opening_hours: Optional[str] = None
    closing_hours: Optional[str] = None
    price_range: Optional[int] = Field(None, ge=1, le=4)
    delivery_time: Optional[int] = Field(None, gt=0)
    featured_image: Optional[str] = None
    images: Optional[List[str]] = None
    is_featured: Optional[bool] = None


class Restaurant(RestaurantBase):
    id: str = Field(..., alias="_id")
    owner_id: str
    rating: float = 0
    is_featured: bool = False
    is_active: bool = True
    created_at: datetime

    class Config:
        populate_by_name = True


class FilterOptions(BaseModel):
    """
    Restaurant search criteria. Every field is optional and an absent field
    places no constraint on the result.
    """
    cuisine_type: Optional[List[str]] = None
    price_range: Optional[List[int]] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    is_vegetarian: Optional[bool] = None
    delivery_time: Optional[int] = Field(None, gt=0)
    sort_by: Optional[SortBy] = None

    @validator('price_range')
    def price_range_must_be_valid(cls, v):
        if v is None:
            return v
        if len(v) != 2:
            raise ValueError('Price range must be [min, max]')
        low, high = v
        if not 1 <= low <= high <= 4:
            raise ValueError('Price range must satisfy 1 <= min <= max <= 4')
        return v
