# Storefront Services Routes

from .shipping import router as shipping_router
from .discounts import router as discounts_router
from .orders import router as orders_router

__all__ = ["shipping_router", "discounts_router", "orders_router"]
