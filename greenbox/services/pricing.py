"""
Pricing engine

Turns cart lines, a shipping selection, an applied discount and a tax rule
into an OrderPricing. Every step rounds to cents before the next one reads
it, so the breakdown always adds up to the total shown.
"""

import logging
from decimal import Decimal
from typing import Iterable, Optional

from ..core.config import Settings, settings as default_settings
from ..core.errors import InvariantViolation
from ..models.cart import CartLineItem, to_money
from ..models.pricing import (
    Discount,
    FixedDiscount,
    FreeShippingDiscount,
    OrderPricing,
    PercentDiscount,
    ShippingOption,
    TaxCalculation,
    TaxRule,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def discount_amount_for(discount: Optional[Discount], subtotal: Decimal) -> Decimal:
    """Amount a discount takes off the subtotal, never more than the subtotal"""
    if discount is None:
        return ZERO
    if isinstance(discount, PercentDiscount):
        return min(to_money(subtotal * discount.rate), subtotal)
    if isinstance(discount, FixedDiscount):
        return min(to_money(discount.amount), subtotal)
    if isinstance(discount, FreeShippingDiscount):
        return ZERO
    raise InvariantViolation(f"Unknown discount kind: {getattr(discount, 'kind', discount)!r}")


class PricingEngine:
    """Pure order pricing; holds only configuration"""

    def __init__(
        self,
        free_shipping_threshold: Optional[Decimal] = None,
        default_tax_rule: Optional[TaxRule] = None,
    ):
        self.free_shipping_threshold = free_shipping_threshold
        self.default_tax_rule = default_tax_rule or TaxRule(rate=Decimal("0"))

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "PricingEngine":
        config = config or default_settings
        return cls(
            free_shipping_threshold=config.free_shipping_threshold,
            default_tax_rule=TaxRule(rate=config.tax_rate, jurisdiction=config.tax_jurisdiction),
        )

    def compute_pricing(
        self,
        items: Iterable[CartLineItem],
        shipping_option: Optional[ShippingOption] = None,
        discount: Optional[Discount] = None,
        tax_rule: Optional[TaxRule] = None,
    ) -> OrderPricing:
        """
        Price an order.

        Order of operations:
            1. subtotal of line totals
            2. discount against the subtotal
            3. shipping, waived by a free-shipping discount or the threshold
            4. tax on the discounted subtotal (shipping is not taxed)
            5. total, floored at zero
            6. savings from discounts, item promotions and waived shipping
        """
        items = list(items)
        tax_rule = tax_rule or self.default_tax_rule

        subtotal = to_money(sum((item.total_price for item in items), ZERO))

        discount_amount = discount_amount_for(discount, subtotal)
        discounted_subtotal = to_money(subtotal - discount_amount)

        listed_shipping = to_money(shipping_option.price) if shipping_option else ZERO
        shipping_waived = listed_shipping > 0 and (
            isinstance(discount, FreeShippingDiscount)
            or self._meets_threshold(discounted_subtotal)
        )
        shipping_cost = ZERO if shipping_waived else listed_shipping

        tax = TaxCalculation(
            rate=tax_rule.rate,
            amount=to_money(discounted_subtotal * tax_rule.rate),
            taxable_amount=discounted_subtotal,
            jurisdiction=tax_rule.jurisdiction,
        )

        total = max(to_money(discounted_subtotal + shipping_cost + tax.amount), ZERO)

        item_promotions = sum((item.promotional_discount for item in items), ZERO)
        savings = to_money(
            discount_amount + item_promotions + (listed_shipping if shipping_waived else ZERO)
        )

        return OrderPricing(
            subtotal=subtotal,
            discount_amount=discount_amount,
            discounted_subtotal=discounted_subtotal,
            shipping_cost=shipping_cost,
            shipping_waived=shipping_waived,
            tax=tax,
            total=total,
            savings=savings,
        )

    def _meets_threshold(self, discounted_subtotal: Decimal) -> bool:
        if self.free_shipping_threshold is None:
            return False
        return discounted_subtotal >= self.free_shipping_threshold


def compute_pricing(
    items: Iterable[CartLineItem],
    shipping_option: Optional[ShippingOption] = None,
    discount: Optional[Discount] = None,
    tax_rule: Optional[TaxRule] = None,
    free_shipping_threshold: Optional[Decimal] = None,
) -> OrderPricing:
    """Price an order without building an engine first"""
    engine = PricingEngine(free_shipping_threshold=free_shipping_threshold)
    return engine.compute_pricing(items, shipping_option, discount, tax_rule)
