"""Checkout models"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from .cart import CartLineItem, CartSnapshot
from .pricing import Discount, OrderPricing, ShippingOption


class CheckoutStep(str, Enum):
    CUSTOMER = "customer"
    SHIPPING = "shipping"
    PAYMENT = "payment"
    REVIEW = "review"
    PLACING = "placing"
    PLACED = "placed"


# Steps the customer moves through by hand, in order
WIZARD_STEPS: tuple[CheckoutStep, ...] = (
    CheckoutStep.CUSTOMER,
    CheckoutStep.SHIPPING,
    CheckoutStep.PAYMENT,
    CheckoutStep.REVIEW,
)


class PaymentMethodType(str, Enum):
    CREDIT_CARD = "credit_card"
    PAYPAL = "paypal"


class CustomerInfo(BaseModel):
    """Contact details collected on the customer step"""
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    marketing_opt_in: bool = False


class Address(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    address1: Optional[str] = None
    address2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = "US"


class ShippingInfo(Address):
    """Delivery address collected on the shipping step"""
    delivery_instructions: Optional[str] = None


class BillingInfo(Address):
    """Billing address; mirrors the shipping address while same_as_shipping is on"""
    same_as_shipping: bool = True


class CardPayment(BaseModel):
    method: Literal["credit_card"] = "credit_card"
    cardholder_name: Optional[str] = None
    card_number: Optional[str] = None
    expiry_month: Optional[str] = None
    expiry_year: Optional[str] = None
    cvv: Optional[str] = None

    @property
    def last_four(self) -> Optional[str]:
        if self.card_number and len(self.card_number) >= 4:
            return self.card_number[-4:]
        return None


class PayPalPayment(BaseModel):
    method: Literal["paypal"] = "paypal"
    paypal_email: Optional[str] = None


PaymentInfo = Annotated[
    Union[CardPayment, PayPalPayment],
    Field(discriminator="method"),
]


class StepErrors(BaseModel):
    """Error messages bucketed by the part of the checkout they belong to"""
    customer: list[str] = []
    shipping: list[str] = []
    payment: list[str] = []
    items: list[str] = []
    discount: list[str] = []
    general: list[str] = []

    def has_errors(self) -> bool:
        return any(getattr(self, name) for name in type(self).model_fields)


class DiscountValidationRequest(BaseModel):
    code: str
    cart: CartSnapshot


class DiscountValidationResponse(BaseModel):
    """Answer from the discount service for one code"""
    valid: bool
    discount: Optional[Discount] = None
    reason: Optional[str] = None


class ShippingOptionsResponse(BaseModel):
    options: list[ShippingOption] = []


class OrderRequest(BaseModel):
    """Everything the order service needs to capture payment"""
    checkout_id: str
    items: list[CartLineItem]
    customer: CustomerInfo
    shipping_address: ShippingInfo
    billing_address: BillingInfo
    payment: PaymentInfo
    shipping_option: Optional[ShippingOption] = None
    discount: Optional[Discount] = None
    pricing: OrderPricing
    currency: str = "USD"


class OrderResult(BaseModel):
    """Response from order placement"""
    success: bool
    order_id: Optional[str] = None
    redirect_url: Optional[str] = None
    error: Optional[str] = None


class OrderConfirmation(BaseModel):
    """Read-only record of a placed order kept for display"""
    order_id: Optional[str] = None
    redirect_url: Optional[str] = None
    items: list[CartLineItem]
    pricing: OrderPricing
    customer: CustomerInfo
    shipping_address: ShippingInfo
    shipping_option: Optional[ShippingOption] = None
    discount: Optional[Discount] = None
    placed_at: datetime

    model_config = {"frozen": True}

    @property
    def total(self) -> Decimal:
        return self.pricing.total
