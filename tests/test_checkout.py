"""Tests for the checkout state machine"""

import asyncio
from decimal import Decimal

import pytest

from greenbox.core.errors import CheckoutLockedError, InvariantViolation, ServiceError
from greenbox.core.requests import RequestStatus
from greenbox.models import CheckoutStep, OrderResult, VarietySelection
from greenbox.services.checkout import CheckoutStateMachine

from .conftest import EXPRESS, STANDARD, FakeServices, fill_card, fill_customer, fill_shipping


def ready_for_review(machine: CheckoutStateMachine) -> None:
    """Walk a machine with a cart to the review step"""
    fill_customer(machine)
    fill_shipping(machine)
    asyncio.run(machine.load_shipping_options("94107"))
    fill_card(machine)
    assert machine.go_to_step(CheckoutStep.REVIEW)


class TestPricingUpdates:
    def test_new_checkout_is_empty(self, checkout):
        assert checkout.current_step == CheckoutStep.CUSTOMER
        assert checkout.pricing.total == Decimal("0.00")
        assert not checkout.errors.has_errors()

    def test_cart_changes_reprice_immediately(self, checkout, product):
        item = checkout.add_item(product, 2)
        assert checkout.pricing.subtotal == Decimal("30.00")

        checkout.update_quantity(item.id, 3)
        assert checkout.pricing.subtotal == Decimal("45.00")

        checkout.remove_item(item.id)
        assert checkout.pricing.subtotal == Decimal("0.00")

    def test_shipping_selection_reprices(self, checkout, product):
        checkout.add_item(product, 2)
        asyncio.run(checkout.load_shipping_options("94107"))

        assert checkout.draft.selected_shipping_option == STANDARD
        assert checkout.pricing.total == Decimal("37.40")

        assert checkout.select_shipping_option("express")
        assert checkout.pricing.shipping_cost == EXPRESS.price
        assert not checkout.select_shipping_option("teleport")

    def test_subscription_quantity_update_is_rejected(self, checkout, validator, pro_tier):
        configuration = validator.build_configuration(
            pro_tier, [VarietySelection(variety_id="mega-mix", quantity=3)]
        )
        item = checkout.add_subscription_plan(pro_tier, configuration)
        before = checkout.pricing

        assert checkout.update_quantity(item.id, 6) is False
        assert checkout.cart.get_item(item.id).quantity == 3
        assert checkout.pricing == before


class TestShippingLookup:
    def test_postal_code_change_starts_lookup(self, checkout, services, product):
        checkout.add_item(product)

        async def scenario():
            task = checkout.update_shipping_info(postal_code="94107")
            assert task is not None
            await checkout.wait_for_shipping()

        asyncio.run(scenario())

        assert services.shipping_calls == ["94107"]
        assert checkout.shipping_request.status == RequestStatus.SUCCEEDED
        assert checkout.draft.selected_shipping_option.id == "standard"

    def test_incomplete_postal_code_does_not_look_up(self, checkout, services):
        async def scenario():
            return checkout.update_shipping_info(postal_code="941")

        assert asyncio.run(scenario()) is None
        assert services.shipping_calls == []

    def test_selection_survives_a_new_lookup(self, checkout):
        asyncio.run(checkout.load_shipping_options("94107"))
        checkout.select_shipping_option("express")

        asyncio.run(checkout.load_shipping_options("10001"))

        assert checkout.draft.selected_shipping_option.id == "express"

    def test_no_options_clears_selection(self, checkout, services):
        asyncio.run(checkout.load_shipping_options("94107"))
        services.shipping_options = []

        asyncio.run(checkout.load_shipping_options("00000"))

        assert checkout.draft.selected_shipping_option is None
        assert checkout.shipping_request.status == RequestStatus.FAILED


class TestBilling:
    def test_billing_mirrors_shipping_while_same(self, checkout):
        fill_shipping(checkout)

        assert checkout.draft.billing_info.address1 == "123 Market Street"

        checkout.update_shipping_info(city="Oakland")
        assert checkout.draft.billing_info.city == "Oakland"

    def test_separate_billing_stops_mirroring(self, checkout):
        fill_shipping(checkout)
        checkout.update_billing_info(same_as_shipping=False, city="Berkeley")

        checkout.update_shipping_info(city="Oakland")

        assert checkout.draft.billing_info.city == "Berkeley"

    def test_turning_same_back_on_copies_shipping(self, checkout):
        fill_shipping(checkout)
        checkout.update_billing_info(same_as_shipping=False, city="Berkeley")

        checkout.update_billing_info(same_as_shipping=True)

        assert checkout.draft.billing_info.city == "San Francisco"

    def test_unknown_field_is_rejected(self, checkout):
        with pytest.raises(InvariantViolation):
            checkout.update_shipping_info(zip="94107")


class TestSteps:
    def test_cannot_advance_with_invalid_customer(self, checkout):
        assert not checkout.next_step()
        assert checkout.current_step == CheckoutStep.CUSTOMER
        assert "Email is required" in checkout.errors.customer

    def test_errors_clear_as_fields_are_fixed(self, checkout):
        checkout.next_step()
        fill_customer(checkout)

        assert checkout.errors.customer == []

    def test_walk_forward_and_back(self, checkout):
        fill_customer(checkout)
        assert checkout.next_step()
        fill_shipping(checkout)
        assert checkout.next_step()
        assert checkout.current_step == CheckoutStep.PAYMENT
        assert checkout.is_step_completed(CheckoutStep.SHIPPING)
        assert not checkout.is_step_completed(CheckoutStep.PAYMENT)

        assert checkout.go_back()
        assert checkout.current_step == CheckoutStep.SHIPPING
        assert checkout.go_back(CheckoutStep.CUSTOMER)
        assert not checkout.go_back()

    def test_cannot_jump_ahead_past_invalid_step(self, checkout):
        fill_customer(checkout)

        assert not checkout.can_proceed_to(CheckoutStep.PAYMENT)
        assert not checkout.go_to_step(CheckoutStep.PAYMENT)
        assert checkout.current_step == CheckoutStep.SHIPPING

    def test_switching_payment_method_starts_fresh(self, checkout):
        fill_card(checkout)
        checkout.update_payment_info(method="paypal", paypal_email="jane@example.com")

        assert checkout.draft.payment_info.method == "paypal"
        assert checkout.validate_step(CheckoutStep.PAYMENT) == []

    def test_progress(self, checkout):
        assert checkout.progress == 17
        fill_customer(checkout)
        checkout.next_step()
        assert checkout.progress == 33


class TestDiscounts:
    def test_apply_and_remove(self, checkout, product):
        checkout.add_item(product, 2)

        assert asyncio.run(checkout.apply_discount_code("save10"))
        assert checkout.pricing.discount_amount == Decimal("3.00")

        checkout.remove_discount()
        assert checkout.applied_discount is None
        assert checkout.pricing.discount_amount == Decimal("0.00")

    def test_failed_code_keeps_prior_discount(self, checkout, product):
        checkout.add_item(product, 2)
        asyncio.run(checkout.apply_discount_code("SAVE10"))

        assert not asyncio.run(checkout.apply_discount_code("BOGUS"))

        assert checkout.applied_discount.code == "SAVE10"
        assert checkout.errors.discount == ["Invalid discount code"]

    def test_service_failure_keeps_prior_discount(self, checkout, services, product):
        checkout.add_item(product, 2)
        asyncio.run(checkout.apply_discount_code("SAVE10"))
        services.discount_error = ServiceError("timeout")

        assert not asyncio.run(checkout.apply_discount_code("FREESHIP"))

        assert checkout.applied_discount.code == "SAVE10"
        assert checkout.errors.discount == ["Failed to validate discount code"]

    def test_remove_during_validation_wins(self, checkout, services, product):
        checkout.add_item(product, 2)

        async def scenario():
            services.hold_discounts = True
            task = asyncio.create_task(checkout.apply_discount_code("SAVE10"))
            await asyncio.sleep(0)
            checkout.remove_discount()
            services.release_discounts()
            return await task

        assert asyncio.run(scenario()) is False
        assert checkout.applied_discount is None

    def test_discount_dropped_when_cart_falls_below_minimum(self, checkout, product):
        item = checkout.add_item(product, 2)
        asyncio.run(checkout.apply_discount_code("WELCOME5"))
        assert checkout.pricing.discount_amount == Decimal("5.00")

        checkout.update_quantity(item.id, 1)

        assert checkout.applied_discount is None
        assert checkout.errors.discount

    def test_emptying_cart_drops_discount(self, checkout, product):
        checkout.add_item(product, 2)
        asyncio.run(checkout.apply_discount_code("SAVE10"))

        checkout.clear_cart()

        assert checkout.applied_discount is None
        assert checkout.pricing.total == Decimal("0.00")


class TestPlacement:
    def test_successful_placement(self, checkout, services, product):
        checkout.add_item(product, 2)
        ready_for_review(checkout)
        asyncio.run(checkout.apply_discount_code("SAVE10"))
        expected_total = checkout.pricing.total

        assert asyncio.run(checkout.place_order())

        assert checkout.current_step == CheckoutStep.PLACED
        assert len(services.submitted) == 1
        assert services.submitted[0].billing_address.city == "San Francisco"
        assert checkout.draft.confirmation.order_id == "ORD-TEST0001"
        assert checkout.draft.confirmation.total == expected_total
        assert not checkout.cart.has_items()
        assert checkout.applied_discount is None

    def test_placed_checkout_is_locked(self, checkout, product):
        checkout.add_item(product, 2)
        ready_for_review(checkout)
        asyncio.run(checkout.place_order())

        with pytest.raises(CheckoutLockedError):
            checkout.add_item(product)
        with pytest.raises(CheckoutLockedError):
            asyncio.run(checkout.place_order())

    def test_declined_order_returns_to_review(self, checkout, services, product):
        checkout.add_item(product, 2)
        ready_for_review(checkout)
        services.order_result = OrderResult(success=False, error="Payment declined")

        assert not asyncio.run(checkout.place_order())

        assert checkout.current_step == CheckoutStep.REVIEW
        assert checkout.errors.general == ["Payment declined"]
        assert checkout.placement.status == RequestStatus.FAILED
        assert checkout.cart.has_items()

    def test_service_error_is_reported_not_retried(self, checkout, services, product):
        checkout.add_item(product, 2)
        ready_for_review(checkout)
        services.order_error = ServiceError("Could not reach storefront services")

        assert not asyncio.run(checkout.place_order())

        assert len(services.submitted) == 1
        assert checkout.errors.general == ["Could not reach storefront services"]

    def test_empty_cart_cannot_be_placed(self, checkout, services):
        ready_for_review(checkout)

        assert not asyncio.run(checkout.place_order())

        assert checkout.errors.items == ["Cart cannot be empty"]
        assert services.submitted == []

    def test_only_review_can_place(self, checkout):
        with pytest.raises(InvariantViolation):
            asyncio.run(checkout.place_order())

    def test_second_placement_while_placing_raises(self, product):
        services = FakeServices()
        gate = {}

        async def slow_submit(order):
            gate["event"] = asyncio.Event()
            await gate["event"].wait()
            return OrderResult(success=True, order_id="ORD-SLOW")

        services.submit_order = slow_submit
        checkout = CheckoutStateMachine(services)
        checkout.add_item(product, 2)
        ready_for_review(checkout)

        async def scenario():
            first = asyncio.create_task(checkout.place_order())
            await asyncio.sleep(0)
            assert checkout.current_step == CheckoutStep.PLACING
            with pytest.raises(CheckoutLockedError):
                await checkout.place_order()
            with pytest.raises(CheckoutLockedError):
                checkout.remove_discount()
            gate["event"].set()
            return await first

        assert asyncio.run(scenario())
        assert checkout.draft.confirmation.order_id == "ORD-SLOW"

    def test_reset_after_placement(self, checkout, product):
        checkout.add_item(product, 2)
        ready_for_review(checkout)
        asyncio.run(checkout.place_order())

        checkout.reset()

        assert checkout.current_step == CheckoutStep.CUSTOMER
        assert checkout.draft.confirmation is None


class TestFailureRecovery:
    def test_clearing_postal_code_drops_quoted_shipping(self, checkout, product):
        checkout.add_item(product, 2)

        async def scenario():
            checkout.update_shipping_info(postal_code="94107")
            await checkout.wait_for_shipping()
            assert checkout.pricing.shipping_cost == Decimal("5.00")
            checkout.update_shipping_info(postal_code="9")

        asyncio.run(scenario())

        assert checkout.draft.available_shipping_options == []
        assert checkout.draft.selected_shipping_option is None
        assert checkout.pricing.shipping_cost == Decimal("0.00")
        assert checkout.shipping_request.status == RequestStatus.IDLE

    def test_unexpected_submit_error_returns_to_review(self, checkout, services, product):
        checkout.add_item(product, 2)
        ready_for_review(checkout)
        services.order_error = RuntimeError("gateway exploded")

        with pytest.raises(RuntimeError):
            asyncio.run(checkout.place_order())

        assert checkout.current_step == CheckoutStep.REVIEW
        assert checkout.placement.status == RequestStatus.FAILED
        assert checkout.errors.general == ["Order processing failed"]
        checkout.reset()

    def test_unexpected_discount_error_clears_pending_state(self, checkout, services, product):
        checkout.add_item(product, 2)
        services.discount_error = RuntimeError("bad payload")

        with pytest.raises(RuntimeError):
            asyncio.run(checkout.apply_discount_code("SAVE10"))

        assert not checkout.is_validating_discount
        assert checkout.discounts.state.status == RequestStatus.FAILED

    def test_unexpected_shipping_error_clears_loading_state(self, checkout):
        async def broken(postal_code):
            raise RuntimeError("bad payload")

        checkout.services.get_shipping_options = broken

        with pytest.raises(RuntimeError):
            asyncio.run(checkout.load_shipping_options("94107"))

        assert not checkout.is_loading_shipping
        assert checkout.shipping_request.status == RequestStatus.FAILED
