"""Order storage for the mock storefront services"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from ..models.checkout import OrderRequest

DECLINED_CARD_SUFFIX = "0000"


class StoredOrder(BaseModel):
    """Order as recorded by the order service"""
    order_id: str
    checkout_id: str
    request: OrderRequest
    total: Decimal
    payment_last_four: Optional[str] = None
    created_at: datetime


class OrderDatabase:
    """In-memory order storage"""

    def __init__(self):
        self.orders: dict[str, StoredOrder] = {}

    def decline_reason(self, order: OrderRequest) -> Optional[str]:
        """Why payment capture would be declined, or None"""
        if order.pricing.total <= 0:
            return "Order total must be greater than zero"
        card_number = getattr(order.payment, "card_number", None) or ""
        if card_number.replace(" ", "").endswith(DECLINED_CARD_SUFFIX):
            return "Payment declined"
        return None

    def create_order(self, order: OrderRequest) -> StoredOrder:
        """Record a captured order"""
        stored = StoredOrder(
            order_id=f"ORD-{uuid.uuid4().hex[:8].upper()}",
            checkout_id=order.checkout_id,
            request=order,
            total=order.pricing.total,
            payment_last_four=getattr(order.payment, "last_four", None),
            created_at=datetime.utcnow(),
        )
        self.orders[stored.order_id] = stored
        return stored

    def get_order(self, order_id: str) -> Optional[StoredOrder]:
        """Get an order by ID"""
        return self.orders.get(order_id)

    def list_orders(self, limit: int = 50) -> list[StoredOrder]:
        """List recent orders"""
        orders = list(self.orders.values())
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders[:limit]


# Singleton instance
order_db = OrderDatabase()
