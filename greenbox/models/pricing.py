"""Discount, shipping and pricing models"""

from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field


class DiscountKind(str, Enum):
    PERCENT = "percent"
    FIXED = "fixed"
    FREE_SHIPPING = "free_shipping"


class _DiscountBase(BaseModel):
    code: str
    description: str = ""
    # Amount the validation service quoted for the cart it saw
    applied_amount: Decimal = Field(default=Decimal("0.00"), ge=0)
    minimum_subtotal: Optional[Decimal] = Field(default=None, ge=0)

    model_config = {"frozen": True}


class PercentDiscount(_DiscountBase):
    kind: Literal["percent"] = "percent"
    # Fraction of the subtotal, 0.10 for 10%
    rate: Decimal = Field(gt=0, le=1)


class FixedDiscount(_DiscountBase):
    kind: Literal["fixed"] = "fixed"
    amount: Decimal = Field(gt=0)


class FreeShippingDiscount(_DiscountBase):
    kind: Literal["free_shipping"] = "free_shipping"


Discount = Annotated[
    Union[PercentDiscount, FixedDiscount, FreeShippingDiscount],
    Field(discriminator="kind"),
]


class ShippingOption(BaseModel):
    """Shipping method offered for a postal code"""
    id: str
    name: str
    price: Decimal = Field(ge=0)
    carrier_name: Optional[str] = None
    description: Optional[str] = None
    estimated_days: Optional[int] = None
    is_default: bool = False


class TaxRule(BaseModel):
    rate: Decimal = Field(ge=0)
    jurisdiction: str = "Default"


class TaxCalculation(BaseModel):
    rate: Decimal = Field(ge=0)
    amount: Decimal = Field(ge=0)
    taxable_amount: Decimal = Decimal("0.00")
    jurisdiction: str = "Default"


class OrderPricing(BaseModel):
    """Price breakdown of a draft order, always derived, never edited"""
    subtotal: Decimal = Decimal("0.00")
    discount_amount: Decimal = Decimal("0.00")
    discounted_subtotal: Decimal = Decimal("0.00")
    shipping_cost: Decimal = Decimal("0.00")
    shipping_waived: bool = False
    tax: TaxCalculation = TaxCalculation(rate=Decimal("0"), amount=Decimal("0.00"))
    total: Decimal = Decimal("0.00")
    savings: Decimal = Decimal("0.00")

    model_config = {"frozen": True}
