from typing import Optional
from core.config import settings
from schemas.cart import Cart, CartTotals


def compute_totals(
        cart: Optional[Cart],
        tax_rate: Optional[float] = None,
        delivery_fee: Optional[float] = None
) -> CartTotals:
    """
    Derive subtotal, tax, delivery fee and grand total from the cart.

    The delivery fee is only charged when there is something to deliver.
    """
    if tax_rate is None:
        tax_rate = settings.TAX_RATE
    if delivery_fee is None:
        delivery_fee = settings.DELIVERY_FEE

    if not cart or not cart.items:
        return CartTotals()

    subtotal = sum(cart_item.item.price * cart_item.quantity for cart_item in cart.items)
    tax = subtotal * tax_rate
    fee = delivery_fee if subtotal > 0 else 0

    return CartTotals(
        subtotal=subtotal,
        tax=tax,
        delivery_fee=fee,
        total=subtotal + tax + fee,
        item_count=sum(cart_item.quantity for cart_item in cart.items)
    )
