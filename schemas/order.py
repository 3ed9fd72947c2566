from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any
from datetime import datetime
from enum import Enum
from schemas.cart import CartItem


class OrderStatus(str, Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Progression order of the non-cancelled statuses
STATUS_SEQUENCE = [
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
]

TERMINAL_STATUSES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}


class PaymentMethod(str, Enum):
    CARD = "card"
    CASH = "cash"
    UPI = "upi"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class OrderCreate(BaseModel):
    address_id: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.CARD


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class Order(BaseModel):
    id: str = Field(..., alias="_id")
    user_id: str
    restaurant_id: str
    address_id: str
    items: List[CartItem]
    subtotal: float
    tax: float
    delivery_fee: float
    total_amount: float
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    placed_at: datetime
    estimated_delivery_time: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    is_complete: bool = False
    status_history: Dict[str, datetime] = {}

    class Config:
        populate_by_name = True


class OrderDetail(Order):
    restaurant: Dict[str, Any]
    address: Dict[str, Any]


class TrackingStep(BaseModel):
    status: OrderStatus
    reached: bool
    reached_at: Optional[datetime] = None


class OrderTracking(BaseModel):
    order_id: str
    status: OrderStatus
    steps: List[TrackingStep]
    estimated_delivery_time: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    is_complete: bool = False
