"""Discount code book for the mock storefront services"""

import logging
from decimal import Decimal
from typing import Optional

from ..models.cart import CartSnapshot
from ..models.pricing import Discount, FixedDiscount, FreeShippingDiscount, PercentDiscount
from ..services.pricing import discount_amount_for

logger = logging.getLogger(__name__)

DISCOUNT_CODES: dict[str, Discount] = {
    "SAVE10": PercentDiscount(
        code="SAVE10",
        description="10% off your order",
        rate=Decimal("0.10"),
    ),
    "FREESHIP": FreeShippingDiscount(
        code="FREESHIP",
        description="Free shipping",
    ),
    "WELCOME5": FixedDiscount(
        code="WELCOME5",
        description="$5 off orders of $25 or more",
        amount=Decimal("5.00"),
        minimum_subtotal=Decimal("25.00"),
    ),
}


class DiscountDatabase:
    """In-memory discount code storage"""

    def __init__(self, codes: Optional[dict[str, Discount]] = None):
        self.codes = dict(codes if codes is not None else DISCOUNT_CODES)

    def get_code(self, code: str) -> Optional[Discount]:
        """Get a discount by code, ignoring case and surrounding spaces"""
        return self.codes.get(code.strip().upper())

    def validate(self, code: str, cart: CartSnapshot) -> tuple[Optional[Discount], Optional[str]]:
        """
        Check a code against a cart.

        Returns the discount with the amount quoted for this cart, or None
        and the reason it does not apply.
        """
        discount = self.get_code(code)
        if discount is None:
            return None, "Invalid discount code"

        if not cart.items:
            return None, "Add items to your cart before applying a discount"

        if discount.minimum_subtotal is not None and cart.subtotal < discount.minimum_subtotal:
            return None, f"Requires a subtotal of at least ${discount.minimum_subtotal:.2f}"

        quoted = discount_amount_for(discount, cart.subtotal)
        logger.info(f"Discount {discount.code} valid for subtotal ${cart.subtotal}")
        return discount.model_copy(update={"applied_amount": quoted}), None


# Singleton instance
discount_db = DiscountDatabase()
