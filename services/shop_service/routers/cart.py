"""Cart totals preview."""

from fastapi import APIRouter
from services.shop_service.schemas import CartTotalsRequest, CartTotalsResponse
from services.shop_service.services.cart import Cart, CartItem

router = APIRouter(prefix="/cart", tags=["cart"])


@router.post("/totals", response_model=CartTotalsResponse)
async def get_cart_totals(payload: CartTotalsRequest):
    """Subtotal, fees and total for the submitted cart items (BDT)."""
    cart = Cart()
    for item in payload.items:
        cart.add(
            CartItem(
                product_id=item.id,
                title=item.title,
                price=item.price,
                quantity=item.quantity,
                original_price_value=item.original_price_value,
            )
        )
    totals = cart.totals()
    return CartTotalsResponse(
        subtotal=totals.subtotal,
        shipping_cost=totals.shipping_cost,
        service_charge=totals.service_charge,
        tax=totals.tax,
        total=totals.total,
        item_count=cart.item_count,
    )
