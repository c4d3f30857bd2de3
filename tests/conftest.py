"""Shared fixtures for checkout tests"""

import asyncio
from decimal import Decimal
from typing import Optional

import pytest

from greenbox.core.config import Settings
from greenbox.database.catalog import PLAN_TIERS, VarietyCatalog
from greenbox.models import (
    CartProduct,
    CartSnapshot,
    DiscountValidationResponse,
    FixedDiscount,
    FreeShippingDiscount,
    OrderRequest,
    OrderResult,
    PercentDiscount,
    PlanTierId,
    ShippingOption,
)
from greenbox.services.cart import CartModel
from greenbox.services.checkout import CheckoutStateMachine
from greenbox.services.plan_validator import PlanConfigurationValidator

STANDARD = ShippingOption(id="standard", name="Standard", price=Decimal("5.00"), is_default=True)
EXPRESS = ShippingOption(id="express", name="Express", price=Decimal("12.99"))

CODES = {
    "SAVE10": PercentDiscount(code="SAVE10", rate=Decimal("0.10")),
    "FREESHIP": FreeShippingDiscount(code="FREESHIP"),
    "WELCOME5": FixedDiscount(code="WELCOME5", amount=Decimal("5.00"), minimum_subtotal=Decimal("25.00")),
}


class FakeServices:
    """
    In-process stand-in for the storefront services.

    Set ``hold_discounts`` to park discount validations until
    ``release_discounts()`` is called.
    """

    def __init__(self, shipping_options: Optional[list[ShippingOption]] = None):
        self.shipping_options = shipping_options if shipping_options is not None else [STANDARD, EXPRESS]
        self.order_result = OrderResult(success=True, order_id="ORD-TEST0001", redirect_url="/orders/ORD-TEST0001")
        self.order_error: Optional[Exception] = None
        self.discount_error: Optional[Exception] = None
        self.hold_discounts = False
        self._gates: list[asyncio.Event] = []
        self.shipping_calls: list[str] = []
        self.discount_calls: list[str] = []
        self.submitted: list[OrderRequest] = []

    async def get_shipping_options(self, postal_code: str) -> list[ShippingOption]:
        self.shipping_calls.append(postal_code)
        return list(self.shipping_options)

    async def validate_discount_code(self, code: str, cart: CartSnapshot) -> DiscountValidationResponse:
        self.discount_calls.append(code)
        if self.hold_discounts:
            gate = asyncio.Event()
            self._gates.append(gate)
            await gate.wait()
        if self.discount_error:
            raise self.discount_error
        discount = CODES.get(code)
        if discount is None:
            return DiscountValidationResponse(valid=False, reason="Invalid discount code")
        return DiscountValidationResponse(valid=True, discount=discount)

    def release_discounts(self) -> None:
        for gate in self._gates:
            gate.set()
        self._gates = []

    async def submit_order(self, order: OrderRequest) -> OrderResult:
        self.submitted.append(order)
        if self.order_error:
            raise self.order_error
        return self.order_result


@pytest.fixture
def config() -> Settings:
    return Settings(
        tax_rate=Decimal("0.08"),
        free_shipping_threshold=None,
        min_item_quantity=1,
        max_item_quantity=10,
        cart_merge_policy="append",
        _env_file=None,
    )


@pytest.fixture
def catalog() -> VarietyCatalog:
    return VarietyCatalog()


@pytest.fixture
def validator(catalog) -> PlanConfigurationValidator:
    return PlanConfigurationValidator(catalog)


@pytest.fixture
def pro_tier():
    return PLAN_TIERS[PlanTierId.PRO]


@pytest.fixture
def starter_tier():
    return PLAN_TIERS[PlanTierId.STARTER]


@pytest.fixture
def product() -> CartProduct:
    return CartProduct(id="mega-mix", name="Mega Mix", unit_price=Decimal("15.00"))


@pytest.fixture
def cart(config) -> CartModel:
    return CartModel(config)


@pytest.fixture
def services() -> FakeServices:
    return FakeServices()


@pytest.fixture
def checkout(services, config) -> CheckoutStateMachine:
    return CheckoutStateMachine(services, config=config)


def fill_customer(machine: CheckoutStateMachine) -> None:
    machine.update_customer_info(
        email="jane@example.com",
        first_name="Jane",
        last_name="Doe",
        phone="555-123-4567",
    )


def fill_shipping(machine: CheckoutStateMachine, postal_code: str = "94107") -> None:
    machine.update_shipping_info(
        first_name="Jane",
        last_name="Doe",
        address1="123 Market Street",
        city="San Francisco",
        state="CA",
        postal_code=postal_code,
    )


def fill_card(machine: CheckoutStateMachine, card_number: str = "4111111111111111") -> None:
    machine.update_payment_info(
        method="credit_card",
        cardholder_name="Jane Doe",
        card_number=card_number,
        expiry_month="12",
        expiry_year="2099",
        cvv="123",
    )
