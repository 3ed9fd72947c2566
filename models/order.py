from datetime import datetime, timedelta
from typing import Any, Dict
from schemas.cart import Cart, CartTotals
from schemas.order import OrderStatus, PaymentMethod, PaymentStatus


class OrderModel:
    @staticmethod
    def create_order(
            user_id: str,
            address_id: str,
            cart: Cart,
            totals: CartTotals,
            payment_method: PaymentMethod,
            placed_at: datetime,
            estimated_delivery_minutes: int
    ) -> Dict[str, Any]:
        """Create a new order document; items and totals are frozen copies of the cart"""
        return {
            "user_id": user_id,
            "restaurant_id": cart.restaurant_id,
            "address_id": address_id,
            "items": [cart_item.dict() for cart_item in cart.items],
            "subtotal": totals.subtotal,
            "tax": totals.tax,
            "delivery_fee": totals.delivery_fee,
            "total_amount": totals.total,
            "status": OrderStatus.PENDING.value,
            "payment_method": payment_method.value,
            # Cash is collected on delivery, everything else is paid up front
            "payment_status": (
                PaymentStatus.PENDING.value if payment_method == PaymentMethod.CASH
                else PaymentStatus.PAID.value
            ),
            "placed_at": placed_at,
            "estimated_delivery_time": placed_at + timedelta(minutes=estimated_delivery_minutes),
            "delivered_at": None,
            "is_complete": False,
            "status_history": {OrderStatus.PENDING.value: placed_at},
        }

    @staticmethod
    def status_update(status: OrderStatus, now: datetime) -> Dict[str, Any]:
        """Build the $set payload for a status change"""
        update = {
            "status": status.value,
            f"status_history.{status.value}": now,
        }
        if status == OrderStatus.DELIVERED:
            update["delivered_at"] = now
            update["is_complete"] = True
        return update
