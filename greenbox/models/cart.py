"""Cart models"""

from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from .catalog import PlanConfiguration

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Quantize a value to two decimal places"""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


class LineItemKind(str, Enum):
    INDIVIDUAL = "individual"
    SUBSCRIPTION = "subscription"


class SubscriptionFrequency(str, Enum):
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    BI_MONTHLY = "bi-monthly"


class CartProduct(BaseModel):
    """The slice of a catalog product the cart needs"""
    id: str
    name: str
    unit_price: Decimal = Field(gt=0)
    # Price before any promotion; drives item level savings
    list_price: Optional[Decimal] = None


class CartLineItem(BaseModel):
    """Line in a shopping cart"""
    id: str
    kind: LineItemKind = LineItemKind.INDIVIDUAL
    product_id: str
    product_name: str
    quantity: int = Field(gt=0)
    unit_price: Decimal
    list_price: Optional[Decimal] = None
    plan_configuration: Optional[PlanConfiguration] = None
    subscription_frequency: Optional[SubscriptionFrequency] = None

    @computed_field
    @property
    def total_price(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)

    @computed_field
    @property
    def promotional_discount(self) -> Decimal:
        if self.list_price is None or self.list_price <= self.unit_price:
            return Decimal("0.00")
        return to_money((self.list_price - self.unit_price) * self.quantity)

    @property
    def is_subscription(self) -> bool:
        return self.kind == LineItemKind.SUBSCRIPTION


class CartSnapshotItem(BaseModel):
    """Line item as reported to the discount service"""
    product_id: str
    kind: LineItemKind
    quantity: int
    total_price: Decimal


class CartSnapshot(BaseModel):
    """Read-only view of the cart sent with a discount validation request"""
    items: list[CartSnapshotItem] = []
    subtotal: Decimal = Decimal("0.00")
    currency: str = "USD"
