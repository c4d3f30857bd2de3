# Database modules

from .catalog import catalog, VarietyCatalog, VARIETIES, PLAN_TIERS
from .discounts import discount_db, DiscountDatabase, DISCOUNT_CODES
from .shipping import shipping_rates, ShippingRateTable, SHIPPING_RATES
from .orders import order_db, OrderDatabase, StoredOrder

__all__ = [
    "catalog",
    "VarietyCatalog",
    "VARIETIES",
    "PLAN_TIERS",
    "discount_db",
    "DiscountDatabase",
    "DISCOUNT_CODES",
    "shipping_rates",
    "ShippingRateTable",
    "SHIPPING_RATES",
    "order_db",
    "OrderDatabase",
    "StoredOrder",
]
