from pydantic import BaseModel, Field
from typing import List, Optional
from schemas.menu import MenuItem


class CartItem(BaseModel):
    item: MenuItem
    quantity: int = Field(..., ge=1)


class Cart(BaseModel):
    restaurant_id: str
    restaurant_name: str
    items: List[CartItem]


class CartItemCreate(BaseModel):
    menu_item_id: str
    quantity: int = Field(1, ge=1)
    confirm_replace: bool = False
    expected_version: Optional[int] = None


class CartItemUpdate(BaseModel):
    quantity: int
    expected_version: Optional[int] = None


class CartTotals(BaseModel):
    subtotal: float = 0
    tax: float = 0
    delivery_fee: float = 0
    total: float = 0
    item_count: int = 0


class CartResponse(BaseModel):
    cart: Optional[Cart] = None
    version: int
    totals: CartTotals
