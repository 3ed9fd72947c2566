from pydantic import BaseModel, Field, validator
from typing import Optional, List


class MenuItemBase(BaseModel):
    name: str
    description: Optional[str] = None
    price: float
    category: str
    image: Optional[str] = None
    is_vegetarian: bool = False
    is_vegan: bool = False
    calories: Optional[int] = None
    ingredients: List[str] = []
    is_available: bool = True
    featured: bool = False

    @validator('price')
    def price_must_not_be_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError('Price must not be negative')
        return v


class MenuItemCreate(MenuItemBase):
    restaurant_id: str


class MenuItemUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    image: Optional[str] = None
    is_vegetarian: Optional[bool] = None
    is_vegan: Optional[bool] = None
    calories: Optional[int] = None
    ingredients: Optional[List[str]] = None
    is_available: Optional[bool] = None
    featured: Optional[bool] = None


class MenuItem(MenuItemBase):
    id: str = Field(..., alias="_id")
    restaurant_id: str

    class Config:
        populate_by_name = True
