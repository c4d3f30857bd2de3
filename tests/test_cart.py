"""Tests for the cart model"""

from decimal import Decimal

import pydantic
import pytest

from greenbox.core.config import Settings
from greenbox.core.errors import (
    InvalidConfigurationError,
    InvariantViolation,
    QuantityOutOfRangeError,
)
from greenbox.models import (
    CartProduct,
    LineItemKind,
    PlanConfiguration,
    SubscriptionFrequency,
    VarietySelection,
)
from greenbox.services.cart import CartModel


def test_add_item_appends_a_line_per_call(cart, product):
    first = cart.add_item(product, 2)
    second = cart.add_item(product, 1)

    assert first.id != second.id
    assert len(cart.items) == 2
    assert cart.items_for_product("mega-mix") == [first, second]
    assert cart.item_count == 3
    assert cart.subtotal == Decimal("45.00")


def test_merge_policy_combines_lines_up_to_max(product):
    cart = CartModel(Settings(cart_merge_policy="merge", max_item_quantity=5, _env_file=None))

    cart.add_item(product, 3)
    merged = cart.add_item(product, 4)

    assert len(cart.items) == 1
    assert merged.quantity == 5


@pytest.mark.parametrize("quantity", [0, -1, 11])
def test_add_item_rejects_out_of_range_quantity(cart, product, quantity):
    with pytest.raises(QuantityOutOfRangeError):
        cart.add_item(product, quantity)
    assert not cart.has_items()


def test_add_item_refuses_subscription_kind(cart, product):
    with pytest.raises(InvariantViolation):
        cart.add_item(product, 1, kind=LineItemKind.SUBSCRIPTION)


def test_subscription_plan_becomes_one_line(cart, validator, pro_tier):
    configuration = validator.build_configuration(
        pro_tier,
        [VarietySelection(variety_id="mega-mix", quantity=2), VarietySelection(variety_id="sunnies-snacks", quantity=1)],
    )

    item = cart.add_subscription_plan(pro_tier, configuration, SubscriptionFrequency.MONTHLY)

    assert item.is_subscription
    assert item.quantity == 3
    assert item.total_price == Decimal("45.00")
    assert item.subscription_frequency == SubscriptionFrequency.MONTHLY
    assert item.product_id == "subscription_pro"


def test_invalid_configuration_blocks_addition(cart, validator, pro_tier):
    configuration = validator.build_configuration(
        pro_tier, [VarietySelection(variety_id="mega-mix", quantity=2)]
    )

    with pytest.raises(InvalidConfigurationError):
        cart.add_subscription_plan(pro_tier, configuration)
    assert not cart.has_items()


def test_configuration_for_another_tier_is_rejected(cart, validator, pro_tier, starter_tier):
    configuration = validator.build_configuration(
        starter_tier, [VarietySelection(variety_id="mega-mix", quantity=3)]
    )

    with pytest.raises(InvalidConfigurationError):
        cart.add_subscription_plan(pro_tier, configuration)


def test_update_quantity_on_subscription_is_a_no_op(cart, validator, pro_tier):
    configuration = validator.build_configuration(
        pro_tier, [VarietySelection(variety_id="brassica-blend", quantity=3)]
    )
    item = cart.add_subscription_plan(pro_tier, configuration)

    assert cart.update_quantity(item.id, 5) is False
    assert cart.get_item(item.id).quantity == 3


def test_update_quantity_bounds(cart, product):
    item = cart.add_item(product, 2)

    assert cart.update_quantity(item.id, 4)
    assert not cart.update_quantity(item.id, 0)
    assert not cart.update_quantity(item.id, 11)
    assert not cart.update_quantity("missing", 3)
    assert cart.get_item(item.id).quantity == 4


def test_remove_item_is_idempotent(cart, product):
    item = cart.add_item(product, 1)

    assert cart.remove_item(item.id)
    assert not cart.remove_item(item.id)
    assert cart.items == []


def test_items_keep_insertion_order_and_are_copies(cart, product):
    other = CartProduct(id="sunnies-snacks", name="Sunnies Snacks", unit_price=Decimal("15.00"))
    cart.add_item(product)
    cart.add_item(other)

    items = cart.items
    items.clear()

    assert [i.product_id for i in cart.items] == ["mega-mix", "sunnies-snacks"]


def test_snapshot_reports_lines_and_subtotal(cart, product):
    cart.add_item(product, 2)

    snapshot = cart.snapshot()

    assert snapshot.subtotal == Decimal("30.00")
    assert snapshot.items[0].total_price == Decimal("30.00")
    assert snapshot.currency == "USD"


def test_configuration_claiming_validity_is_rechecked(cart, pro_tier):
    configuration = PlanConfiguration(
        tier=pro_tier,
        selections=[VarietySelection(variety_id="mega-mix", quantity=1)],
        is_valid=True,
    )

    with pytest.raises(InvalidConfigurationError, match="Need 2 more packs"):
        cart.add_subscription_plan(pro_tier, configuration)
    assert not cart.has_items()


def test_subscription_line_is_isolated_from_caller_configuration(cart, validator, pro_tier):
    configuration = validator.build_configuration(
        pro_tier,
        [VarietySelection(variety_id="mega-mix", quantity=2), VarietySelection(variety_id="brassica-blend", quantity=1)],
    )
    item = cart.add_subscription_plan(pro_tier, configuration)

    with pytest.raises(pydantic.ValidationError):
        configuration.selections[0].quantity = 9
    configuration.selections.append(VarietySelection(variety_id="sunnies-snacks", quantity=4))

    stored = cart.get_item(item.id)
    assert stored.quantity == 3
    assert stored.plan_configuration.total_packs == stored.quantity
