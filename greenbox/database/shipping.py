"""Shipping rate table for the mock storefront services"""

import re
from decimal import Decimal
from typing import Optional

from ..models.pricing import ShippingOption

POSTAL_CODE_PATTERN = re.compile(r"^\d{5}(-\d{4})?$")

SHIPPING_RATES: list[ShippingOption] = [
    ShippingOption(
        id="standard",
        name="Standard Shipping",
        price=Decimal("5.99"),
        carrier_name="USPS",
        description="Delivered in 5-7 business days",
        estimated_days=7,
        is_default=True,
    ),
    ShippingOption(
        id="express",
        name="Express Shipping",
        price=Decimal("12.99"),
        carrier_name="FedEx",
        description="Delivered in 2-3 business days",
        estimated_days=3,
    ),
    ShippingOption(
        id="overnight",
        name="Overnight Shipping",
        price=Decimal("24.99"),
        carrier_name="FedEx",
        description="Delivered next business day",
        estimated_days=1,
    ),
]


class ShippingRateTable:
    """In-memory shipping rates"""

    def __init__(self, rates: Optional[list[ShippingOption]] = None):
        self.rates = list(rates if rates is not None else SHIPPING_RATES)

    def options_for(self, postal_code: str) -> list[ShippingOption]:
        """Options offered for a postal code; none for malformed codes"""
        if not POSTAL_CODE_PATTERN.match((postal_code or "").strip()):
            return []
        return list(self.rates)


# Singleton instance
shipping_rates = ShippingRateTable()
