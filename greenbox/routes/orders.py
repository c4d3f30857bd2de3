"""Order API routes for mock storefront services"""

import logging

from fastapi import APIRouter, HTTPException

from ..database.orders import StoredOrder, order_db
from ..models.checkout import OrderRequest, OrderResult

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])


@router.post("", response_model=OrderResult)
async def place_order(request: OrderRequest):
    """
    Capture payment and record the order.

    Declines are reported in the response body, not as an HTTP error:
    - a zero total
    - a card number ending in 0000
    """
    if not request.items:
        raise HTTPException(status_code=400, detail="Order has no items")

    reason = order_db.decline_reason(request)
    if reason:
        logger.info(f"Order for {request.checkout_id} declined: {reason}")
        return OrderResult(success=False, error=reason)

    order = order_db.create_order(request)
    logger.info(f"Order {order.order_id} created: ${order.total}")

    return OrderResult(
        success=True,
        order_id=order.order_id,
        redirect_url=f"/orders/{order.order_id}/confirmation",
    )


@router.get("/{order_id}", response_model=StoredOrder)
async def get_order(order_id: str):
    """Get order details"""
    order = order_db.get_order(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("", response_model=list[StoredOrder])
async def list_orders(limit: int = 50):
    """List recent orders"""
    return order_db.list_orders(limit=limit)
