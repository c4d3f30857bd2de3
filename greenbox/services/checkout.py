"""
Checkout state machine

Owns one draft order: the customer's cart, the wizard step they are on,
what they have typed into each step, the shipping option and discount they
picked, and the price that all of that adds up to. Every write ends with a
synchronous recompute so the price never lags behind the inputs.
"""

import asyncio
import logging
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Protocol

from ..core.config import Settings, settings as default_settings
from ..core.errors import CheckoutLockedError, InvariantViolation, ServiceError
from ..core.requests import RequestState
from ..models.cart import CartLineItem, CartProduct, CartSnapshot, SubscriptionFrequency
from ..models.catalog import PlanConfiguration, PlanTier
from ..models.checkout import (
    Address,
    BillingInfo,
    CardPayment,
    CheckoutStep,
    CustomerInfo,
    DiscountValidationResponse,
    OrderConfirmation,
    OrderRequest,
    OrderResult,
    PayPalPayment,
    PaymentInfo,
    ShippingInfo,
    StepErrors,
    WIZARD_STEPS,
)
from ..models.pricing import Discount, OrderPricing, ShippingOption, TaxRule
from .cart import CartModel
from .discounts import DiscountClient
from .pricing import PricingEngine
from .validation import validate_customer, validate_payment, validate_shipping

logger = logging.getLogger(__name__)

POSTAL_LOOKUP_PATTERN = re.compile(r"^(\d{5})")
ALL_STEPS = list(CheckoutStep)
PAYMENT_MODELS = {"credit_card": CardPayment, "paypal": PayPalPayment}


class CheckoutServices(Protocol):
    """External collaborators the checkout calls"""

    async def get_shipping_options(self, postal_code: str) -> list[ShippingOption]: ...

    async def validate_discount_code(
        self, code: str, cart: CartSnapshot
    ) -> DiscountValidationResponse: ...

    async def submit_order(self, order: OrderRequest) -> OrderResult: ...


@dataclass
class CheckoutDraft:
    """In-progress checkout spanning all wizard steps"""
    checkout_id: str
    customer_info: CustomerInfo = field(default_factory=CustomerInfo)
    shipping_info: ShippingInfo = field(default_factory=ShippingInfo)
    billing_info: BillingInfo = field(default_factory=BillingInfo)
    payment_info: Optional[PaymentInfo] = None
    available_shipping_options: list[ShippingOption] = field(default_factory=list)
    selected_shipping_option: Optional[ShippingOption] = None
    applied_discount: Optional[Discount] = None
    pricing: OrderPricing = field(default_factory=OrderPricing)
    current_step: CheckoutStep = CheckoutStep.CUSTOMER
    completed_steps: list[CheckoutStep] = field(default_factory=list)
    errors: StepErrors = field(default_factory=StepErrors)
    confirmation: Optional[OrderConfirmation] = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()

    def mark_completed(self, step: CheckoutStep) -> None:
        if step not in self.completed_steps:
            self.completed_steps.append(step)


def _merge(model, changes: dict):
    """Copy a model with changes applied, rejecting unknown field names"""
    unknown = set(changes) - set(type(model).model_fields)
    if unknown:
        raise InvariantViolation(
            f"Unknown {type(model).__name__} fields: {', '.join(sorted(unknown))}"
        )
    return type(model).model_validate({**model.model_dump(), **changes})


def _postal_lookup_key(postal_code: Optional[str]) -> Optional[str]:
    if not postal_code:
        return None
    match = POSTAL_LOOKUP_PATTERN.match(postal_code.strip())
    return match.group(1) if match else None


class CheckoutStateMachine:
    """
    Drives a draft order from customer details to a placed order.

    Steps run customer -> shipping -> payment -> review -> placing ->
    placed. Moving forward requires the current step to validate; moving
    back is allowed to any completed step until placement starts.
    """

    def __init__(
        self,
        services: CheckoutServices,
        cart: Optional[CartModel] = None,
        pricing_engine: Optional[PricingEngine] = None,
        tax_rule: Optional[TaxRule] = None,
        config: Optional[Settings] = None,
        today: Optional[date] = None,
    ):
        config = config or default_settings
        self.services = services
        self.cart = cart or CartModel(config)
        self.pricing_engine = pricing_engine or PricingEngine.from_settings(config)
        self.tax_rule = tax_rule or TaxRule(rate=config.tax_rate, jurisdiction=config.tax_jurisdiction)
        self.currency = config.currency
        self.today = today
        self.discounts = DiscountClient(services.validate_discount_code)
        self.shipping_request = RequestState()
        self.placement = RequestState()
        self._shipping_task: Optional[asyncio.Task] = None
        self.draft = self._new_draft()
        self.recompute()

    def _new_draft(self) -> CheckoutDraft:
        return CheckoutDraft(checkout_id=f"chk_{uuid.uuid4().hex[:12]}")

    # ==================== State ====================

    @property
    def current_step(self) -> CheckoutStep:
        return self.draft.current_step

    @property
    def pricing(self) -> OrderPricing:
        return self.draft.pricing

    @property
    def errors(self) -> StepErrors:
        return self.draft.errors

    @property
    def applied_discount(self) -> Optional[Discount]:
        return self.draft.applied_discount

    @property
    def is_validating_discount(self) -> bool:
        return self.discounts.is_validating

    @property
    def is_loading_shipping(self) -> bool:
        return self.shipping_request.is_pending

    @property
    def is_locked(self) -> bool:
        return self.draft.current_step in (CheckoutStep.PLACING, CheckoutStep.PLACED)

    @property
    def progress(self) -> int:
        """Percent of the way through the checkout"""
        index = ALL_STEPS.index(self.draft.current_step)
        return round((index + 1) / len(ALL_STEPS) * 100)

    def _ensure_editable(self) -> None:
        if self.draft.current_step == CheckoutStep.PLACING:
            raise CheckoutLockedError("Order placement is in progress")
        if self.draft.current_step == CheckoutStep.PLACED:
            raise CheckoutLockedError("Order has already been placed")

    # ==================== Pricing ====================

    def recompute(self) -> OrderPricing:
        """
        Re-derive pricing from the cart, shipping selection and discount.

        A discount the cart no longer qualifies for is dropped first. The new
        breakdown replaces the old one only once it is fully computed.
        """
        self._drop_ineligible_discount()
        pricing = self.pricing_engine.compute_pricing(
            self.cart.items,
            self.draft.selected_shipping_option,
            self.draft.applied_discount,
            self.tax_rule,
        )
        self.draft.pricing = pricing
        self.draft.touch()
        return pricing

    def _drop_ineligible_discount(self) -> None:
        discount = self.draft.applied_discount
        if discount is None:
            return
        if not self.cart.has_items():
            logger.info(f"Cart emptied, removing discount {discount.code}")
            self.draft.applied_discount = None
            return
        minimum = discount.minimum_subtotal
        if minimum is not None and self.cart.subtotal < minimum:
            logger.info(f"Cart no longer qualifies for discount {discount.code}")
            self.draft.applied_discount = None
            self.draft.errors.discount = [
                f"Discount {discount.code} removed: requires a subtotal of at least ${minimum:.2f}"
            ]

    # ==================== Cart ====================

    def add_item(self, product: CartProduct, quantity: int = 1) -> CartLineItem:
        self._ensure_editable()
        item = self.cart.add_item(product, quantity)
        self.draft.errors.items = []
        self.recompute()
        return item

    def add_subscription_plan(
        self,
        tier: PlanTier,
        configuration: PlanConfiguration,
        frequency: SubscriptionFrequency = SubscriptionFrequency.WEEKLY,
    ) -> CartLineItem:
        self._ensure_editable()
        item = self.cart.add_subscription_plan(tier, configuration, frequency)
        self.draft.errors.items = []
        self.recompute()
        return item

    def update_quantity(self, item_id: str, quantity: int) -> bool:
        self._ensure_editable()
        changed = self.cart.update_quantity(item_id, quantity)
        if changed:
            self.recompute()
        return changed

    def remove_item(self, item_id: str) -> bool:
        self._ensure_editable()
        removed = self.cart.remove_item(item_id)
        if removed:
            self.recompute()
        return removed

    def clear_cart(self) -> None:
        self._ensure_editable()
        self.cart.clear()
        self.recompute()

    # ==================== Form updates ====================

    def update_customer_info(self, **changes) -> None:
        self._ensure_editable()
        self.draft.customer_info = _merge(self.draft.customer_info, changes)
        self._refresh_errors(CheckoutStep.CUSTOMER)
        self.draft.touch()

    def update_shipping_info(self, **changes) -> Optional[asyncio.Task]:
        """
        Edit the shipping address.

        Mirrors the address into billing while same_as_shipping is on. When
        the postal code gains a new 5-digit prefix a shipping rate lookup is
        started in the background and its task returned.
        """
        self._ensure_editable()
        previous_key = _postal_lookup_key(self.draft.shipping_info.postal_code)
        self.draft.shipping_info = _merge(self.draft.shipping_info, changes)
        if self.draft.billing_info.same_as_shipping:
            self._sync_billing()
        self._refresh_errors(CheckoutStep.SHIPPING)
        self.draft.touch()

        key = _postal_lookup_key(self.draft.shipping_info.postal_code)
        if key is None and previous_key is not None:
            self._clear_shipping_options()
        elif key and key != previous_key:
            return self._schedule_shipping_lookup(key)
        return None

    def update_billing_info(self, **changes) -> None:
        self._ensure_editable()
        self.draft.billing_info = _merge(self.draft.billing_info, changes)
        if self.draft.billing_info.same_as_shipping:
            self._sync_billing()
        self._refresh_errors(CheckoutStep.PAYMENT)
        self.draft.touch()

    def update_payment_info(self, **changes) -> None:
        """
        Edit the payment method.

        Passing a different ``method`` starts that method's details from
        scratch.
        """
        self._ensure_editable()
        current = self.draft.payment_info
        method = changes.get("method") or (current.method if current else None)
        model = PAYMENT_MODELS.get(method)
        if model is None:
            raise InvariantViolation(f"Unknown payment method: {method!r}")

        base = current if isinstance(current, model) else model()
        self.draft.payment_info = _merge(base, changes)
        self._refresh_errors(CheckoutStep.PAYMENT)
        self.draft.touch()

    def _sync_billing(self) -> None:
        address = self.draft.shipping_info.model_dump(include=set(Address.model_fields))
        self.draft.billing_info = BillingInfo(**address, same_as_shipping=True)

    # ==================== Shipping ====================

    def _schedule_shipping_lookup(self, postal_code: str) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, shipping lookup for {postal_code} not started")
            return None
        self._shipping_task = loop.create_task(self.load_shipping_options(postal_code))
        self._shipping_task.add_done_callback(self._log_shipping_failure)
        return self._shipping_task

    def _log_shipping_failure(self, task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background shipping lookup failed: {task.exception()!r}")

    def _clear_shipping_options(self) -> None:
        """Forget options quoted for a postal code that is no longer entered"""
        self.shipping_request.supersede()
        self.shipping_request.reset()
        self.draft.available_shipping_options = []
        self.draft.selected_shipping_option = None
        self.recompute()

    async def load_shipping_options(self, postal_code: str) -> Optional[list[ShippingOption]]:
        """
        Fetch shipping options for a postal code and pick a default.

        Returns None if a newer lookup superseded this one or the checkout
        was locked meanwhile.
        """
        sequence = self.shipping_request.start()
        try:
            options = await self.services.get_shipping_options(postal_code)
        except ServiceError as e:
            logger.warning(f"Shipping lookup failed for {postal_code}: {e.message}")
            options = []
        except BaseException:
            if self.shipping_request.is_current(sequence):
                self.shipping_request.fail("Failed to load shipping options")
            raise

        if not self.shipping_request.is_current(sequence):
            logger.debug(f"Ignoring stale shipping options for {postal_code}")
            return None
        if self.is_locked:
            self.shipping_request.reset()
            return None

        self.draft.available_shipping_options = list(options)
        if options:
            self.shipping_request.succeed()
        else:
            self.shipping_request.fail("No shipping options available")
        self._select_default_shipping()
        self.recompute()
        return list(options)

    async def wait_for_shipping(self) -> None:
        """Wait for a background shipping lookup, if one is running"""
        if self._shipping_task is not None:
            await self._shipping_task

    def _select_default_shipping(self) -> None:
        options = self.draft.available_shipping_options
        selected = self.draft.selected_shipping_option
        if selected is not None:
            still_offered = next((o for o in options if o.id == selected.id), None)
            if still_offered is not None:
                self.draft.selected_shipping_option = still_offered
                return
        self.draft.selected_shipping_option = next(
            (o for o in options if o.is_default),
            options[0] if options else None,
        )

    def select_shipping_option(self, option_id: str) -> bool:
        """Choose one of the offered shipping options"""
        self._ensure_editable()
        option = next(
            (o for o in self.draft.available_shipping_options if o.id == option_id),
            None,
        )
        if option is None:
            logger.warning(f"Shipping option {option_id} is not offered")
            return False
        self.draft.selected_shipping_option = option
        self.recompute()
        return True

    # ==================== Discounts ====================

    async def apply_discount_code(self, code: str) -> bool:
        """
        Validate and apply a discount code.

        A failed attempt keeps whatever discount was already applied. A
        response superseded by a newer attempt or a removal changes nothing.
        """
        self._ensure_editable()
        result = await self.discounts.apply_code(code, self.cart.snapshot())

        if result.stale or self.is_locked:
            return False

        if not result.success:
            self.draft.errors.discount = [result.error_reason]
            self.draft.touch()
            return False

        self.draft.applied_discount = result.discount
        self.draft.errors.discount = []
        logger.info(f"Applied discount {result.discount.code} to {self.draft.checkout_id}")
        self.recompute()
        return self.draft.applied_discount is not None

    def remove_discount(self) -> None:
        """Drop the applied discount locally; always succeeds"""
        self._ensure_editable()
        self.discounts.cancel_pending()
        self.draft.applied_discount = None
        self.draft.errors.discount = []
        self.recompute()

    # ==================== Steps ====================

    def validate_step(self, step: CheckoutStep) -> list[str]:
        """Errors for one step's slice of the draft, without recording them"""
        if step == CheckoutStep.CUSTOMER:
            return validate_customer(self.draft.customer_info)
        if step == CheckoutStep.SHIPPING:
            return validate_shipping(self.draft.shipping_info)
        if step == CheckoutStep.PAYMENT:
            return validate_payment(self.draft.payment_info, self.draft.billing_info, self.today)
        return []

    def _set_step_errors(self, step: CheckoutStep, errors: list[str]) -> None:
        if step in (CheckoutStep.CUSTOMER, CheckoutStep.SHIPPING, CheckoutStep.PAYMENT):
            setattr(self.draft.errors, step.value, errors)

    def _refresh_errors(self, step: CheckoutStep) -> None:
        # Only re-check a step that is already showing errors
        if getattr(self.draft.errors, step.value):
            self._set_step_errors(step, self.validate_step(step))

    def next_step(self) -> bool:
        """
        Advance one step if the current step validates.

        On failure the step's error bucket is filled and the machine stays
        put. Review advances only through place_order.
        """
        self._ensure_editable()
        current = self.draft.current_step
        if current == CheckoutStep.REVIEW:
            return False

        errors = self.validate_step(current)
        self._set_step_errors(current, errors)
        if errors:
            logger.debug(f"Step {current.value} has {len(errors)} error(s)")
            return False

        self.draft.mark_completed(current)
        self.draft.current_step = WIZARD_STEPS[WIZARD_STEPS.index(current) + 1]
        self.draft.touch()
        return True

    def go_back(self, step: Optional[CheckoutStep] = None) -> bool:
        """Return to the previous step, or to any earlier completed step"""
        self._ensure_editable()
        current_index = WIZARD_STEPS.index(self.draft.current_step)
        if step is None:
            if current_index == 0:
                return False
            step = WIZARD_STEPS[current_index - 1]

        if step not in WIZARD_STEPS or WIZARD_STEPS.index(step) >= current_index:
            return False
        if step not in self.draft.completed_steps:
            return False

        self.draft.current_step = step
        self.draft.touch()
        return True

    def go_to_step(self, step: CheckoutStep) -> bool:
        """Jump back directly, or forward one validated step at a time"""
        self._ensure_editable()
        if step not in WIZARD_STEPS:
            return False
        target = WIZARD_STEPS.index(step)
        current = WIZARD_STEPS.index(self.draft.current_step)
        if target == current:
            return True
        if target < current:
            return self.go_back(step)
        while self.draft.current_step != step:
            if not self.next_step():
                return False
        return True

    def can_proceed_to(self, step: CheckoutStep) -> bool:
        """Whether every step before ``step`` currently validates"""
        if step not in WIZARD_STEPS:
            return False
        target = WIZARD_STEPS.index(step)
        if target <= WIZARD_STEPS.index(self.draft.current_step):
            return True
        return all(not self.validate_step(s) for s in WIZARD_STEPS[:target])

    def is_step_completed(self, step: CheckoutStep) -> bool:
        return step in self.draft.completed_steps

    # ==================== Placement ====================

    def _validate_for_placement(self) -> bool:
        errors = self.draft.errors
        errors.customer = self.validate_step(CheckoutStep.CUSTOMER)
        errors.shipping = self.validate_step(CheckoutStep.SHIPPING)
        errors.payment = self.validate_step(CheckoutStep.PAYMENT)

        if self.draft.selected_shipping_option is None:
            errors.shipping = errors.shipping + ["Please select a shipping method"]

        item_errors: list[str] = []
        if not self.cart.has_items():
            item_errors.append("Cart cannot be empty")
        for item in self.cart.items:
            if item.is_subscription and (
                item.plan_configuration is None
                or not self.cart.validator.validate(
                    item.plan_configuration.tier, item.plan_configuration.selections
                ).is_valid
            ):
                item_errors.append(f"Invalid subscription configuration for {item.product_name}")
        errors.items = item_errors

        if errors.customer or errors.shipping or errors.payment or errors.items:
            errors.general = ["Please complete all required fields"]
            return False
        return True

    def _build_order_request(self) -> OrderRequest:
        billing = self.draft.billing_info
        if billing.same_as_shipping:
            address = self.draft.shipping_info.model_dump(include=set(Address.model_fields))
            billing = BillingInfo(**address, same_as_shipping=True)
        return OrderRequest(
            checkout_id=self.draft.checkout_id,
            items=self.cart.items,
            customer=self.draft.customer_info,
            shipping_address=self.draft.shipping_info,
            billing_address=billing,
            payment=self.draft.payment_info,
            shipping_option=self.draft.selected_shipping_option,
            discount=self.draft.applied_discount,
            pricing=self.draft.pricing,
            currency=self.currency,
        )

    async def place_order(self) -> bool:
        """
        Submit the order for payment capture.

        Allowed only from review. Success clears the cart and discount and
        keeps a read-only confirmation; failure returns to review with the
        draft intact. Never retried automatically.

        Raises:
            CheckoutLockedError: placement already running or finished
            InvariantViolation: called from a step other than review
        """
        self._ensure_editable()
        if self.draft.current_step != CheckoutStep.REVIEW:
            raise InvariantViolation("Orders can only be placed from the review step")

        if not self._validate_for_placement():
            logger.info(f"Checkout {self.draft.checkout_id} not ready for placement")
            return False

        self.draft.errors.general = []
        self.discounts.cancel_pending()
        self.shipping_request.supersede()
        self.recompute()
        order = self._build_order_request()

        self.draft.current_step = CheckoutStep.PLACING
        self.placement.start()
        logger.info(f"Placing order for {self.draft.checkout_id}: ${order.pricing.total}")

        try:
            result = await self.services.submit_order(order)
        except ServiceError as e:
            result = OrderResult(success=False, error=e.message)
        except BaseException:
            # Never leave the checkout stuck in placing
            self._fail_placement("Order processing failed")
            raise

        if not result.success:
            self._fail_placement(result.error or "Order processing failed")
            return False

        self.placement.succeed()
        self.draft.confirmation = OrderConfirmation(
            order_id=result.order_id,
            redirect_url=result.redirect_url,
            items=order.items,
            pricing=order.pricing,
            customer=order.customer,
            shipping_address=order.shipping_address,
            shipping_option=order.shipping_option,
            discount=order.discount,
            placed_at=datetime.utcnow(),
        )
        self.draft.mark_completed(CheckoutStep.REVIEW)
        self.draft.current_step = CheckoutStep.PLACED
        self.draft.applied_discount = None
        self.cart.clear()
        self.draft.touch()
        logger.info(f"Order {result.order_id} placed for {self.draft.checkout_id}")
        return True

    def _fail_placement(self, error: str) -> None:
        self.placement.fail(error)
        self.draft.errors.general = [error]
        self.draft.current_step = CheckoutStep.REVIEW
        self.draft.touch()
        logger.warning(f"Order placement failed for {self.draft.checkout_id}: {error}")

    def reset(self) -> None:
        """Start a fresh draft; the cart is kept"""
        if self.draft.current_step == CheckoutStep.PLACING:
            raise CheckoutLockedError("Order placement is in progress")
        self.discounts.cancel_pending()
        self.shipping_request.supersede()
        self.placement.reset()
        self._shipping_task = None
        self.draft = self._new_draft()
        self.recompute()
