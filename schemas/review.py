from pydantic import BaseModel, Field, validator
from typing import Optional, List, Dict, Any
from datetime import datetime


class ReviewBase(BaseModel):
    restaurant_id: str
    order_id: str
    rating: int
    comment: Optional[str] = None

    @validator('rating')
    def rating_must_be_valid(cls, v):
        if v < 1 or v > 5:
            raise ValueError('Rating must be between 1 and 5')
        return v


class ReviewCreate(ReviewBase):
    pass


class Review(ReviewBase):
    id: str = Field(..., alias="_id")
    user_id: str
    images: List[str] = []
    created_at: datetime

    class Config:
        populate_by_name = True


class ReviewWithUser(Review):
    user: Dict[str, Any] = {}


class ReviewWithRestaurant(Review):
    restaurant: Dict[str, Any] = {}
