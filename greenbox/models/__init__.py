# Storefront checkout models

from .catalog import (
    Variety,
    VarietyTheme,
    PlanTier,
    PlanTierId,
    VarietySelection,
    PlanConfiguration,
    PlanValidationResult,
)
from .cart import (
    CartProduct,
    CartLineItem,
    CartSnapshot,
    CartSnapshotItem,
    LineItemKind,
    SubscriptionFrequency,
    to_money,
)
from .pricing import (
    Discount,
    DiscountKind,
    PercentDiscount,
    FixedDiscount,
    FreeShippingDiscount,
    ShippingOption,
    TaxRule,
    TaxCalculation,
    OrderPricing,
)
from .checkout import (
    CheckoutStep,
    WIZARD_STEPS,
    PaymentMethodType,
    CustomerInfo,
    Address,
    ShippingInfo,
    BillingInfo,
    CardPayment,
    PayPalPayment,
    PaymentInfo,
    StepErrors,
    DiscountValidationRequest,
    DiscountValidationResponse,
    ShippingOptionsResponse,
    OrderRequest,
    OrderResult,
    OrderConfirmation,
)

__all__ = [
    "Variety",
    "VarietyTheme",
    "PlanTier",
    "PlanTierId",
    "VarietySelection",
    "PlanConfiguration",
    "PlanValidationResult",
    "CartProduct",
    "CartLineItem",
    "CartSnapshot",
    "CartSnapshotItem",
    "LineItemKind",
    "SubscriptionFrequency",
    "to_money",
    "Discount",
    "DiscountKind",
    "PercentDiscount",
    "FixedDiscount",
    "FreeShippingDiscount",
    "ShippingOption",
    "TaxRule",
    "TaxCalculation",
    "OrderPricing",
    "CheckoutStep",
    "WIZARD_STEPS",
    "PaymentMethodType",
    "CustomerInfo",
    "Address",
    "ShippingInfo",
    "BillingInfo",
    "CardPayment",
    "PayPalPayment",
    "PaymentInfo",
    "StepErrors",
    "DiscountValidationRequest",
    "DiscountValidationResponse",
    "ShippingOptionsResponse",
    "OrderRequest",
    "OrderResult",
    "OrderConfirmation",
]
