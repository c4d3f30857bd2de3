"""Shopping cart model"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..core.config import Settings, settings as default_settings
from ..core.errors import (
    InvalidConfigurationError,
    InvariantViolation,
    QuantityOutOfRangeError,
)
from ..models.cart import (
    CartLineItem,
    CartProduct,
    CartSnapshot,
    CartSnapshotItem,
    LineItemKind,
    SubscriptionFrequency,
    to_money,
)
from ..models.catalog import PlanConfiguration, PlanTier
from .plan_validator import PlanConfigurationValidator

logger = logging.getLogger(__name__)


class CartModel:
    """
    Ordered collection of cart line items.

    Lines keep insertion order for display and are unique by id. Totals are
    never stored: every read derives them from quantities and unit prices.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        currency: Optional[str] = None,
        validator: Optional[PlanConfigurationValidator] = None,
    ):
        config = config or default_settings
        self.validator = validator or PlanConfigurationValidator()
        self.min_quantity = config.min_item_quantity
        self.max_quantity = config.max_item_quantity
        self.merge_policy = config.cart_merge_policy
        self.currency = currency or config.currency
        self._items: list[CartLineItem] = []
        self.created_at = datetime.utcnow()
        self.updated_at = self.created_at

    @property
    def items(self) -> list[CartLineItem]:
        return list(self._items)

    def _new_id(self, product_id: str) -> str:
        return f"{product_id}_{uuid.uuid4().hex[:8]}"

    def _touch(self) -> None:
        self.updated_at = datetime.utcnow()

    def _check_price(self, price: Decimal) -> None:
        if price <= 0:
            raise InvariantViolation(f"Unit price must be positive, got {price}")

    def _in_range(self, quantity: int) -> bool:
        return self.min_quantity <= quantity <= self.max_quantity

    def add_item(
        self,
        product: CartProduct,
        quantity: int = 1,
        kind: LineItemKind = LineItemKind.INDIVIDUAL,
    ) -> CartLineItem:
        """
        Add an individual product to the cart.

        Under the "append" policy every call creates its own line. Under
        "merge" an existing individual line for the same product absorbs the
        quantity, capped at max_quantity.

        Raises:
            QuantityOutOfRangeError: quantity outside min..max
            InvariantViolation: subscription kind, or a non-positive price
        """
        if kind != LineItemKind.INDIVIDUAL:
            raise InvariantViolation(
                "Subscription lines are added with add_subscription_plan"
            )
        self._check_price(product.unit_price)
        if not self._in_range(quantity):
            raise QuantityOutOfRangeError(
                f"Quantity must be between {self.min_quantity} and {self.max_quantity}"
            )

        if self.merge_policy == "merge":
            existing = next(
                (
                    item for item in self._items
                    if item.product_id == product.id and item.kind == LineItemKind.INDIVIDUAL
                ),
                None,
            )
            if existing:
                merged = min(existing.quantity + quantity, self.max_quantity)
                updated = existing.model_copy(update={"quantity": merged})
                self._replace(updated)
                logger.debug(f"Merged {quantity}x {product.id} into line {existing.id}")
                return updated

        item = CartLineItem(
            id=self._new_id(product.id),
            kind=LineItemKind.INDIVIDUAL,
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price=to_money(product.unit_price),
            list_price=to_money(product.list_price) if product.list_price is not None else None,
        )
        self._items.append(item)
        self._touch()
        return item

    def add_subscription_plan(
        self,
        tier: PlanTier,
        configuration: PlanConfiguration,
        frequency: SubscriptionFrequency = SubscriptionFrequency.WEEKLY,
    ) -> CartLineItem:
        """
        Add a configured subscription plan as a single line.

        The selections are re-validated against the tier rather than trusting
        the configuration's own is_valid flag. The line's quantity is the
        pack total and its unit price the tier's price per pack.

        Raises:
            InvalidConfigurationError: configuration not valid for the tier
        """
        if configuration.tier.id != tier.id:
            raise InvalidConfigurationError(
                f"Configuration is for the {configuration.tier.id.value} plan, not {tier.id.value}"
            )
        result = self.validator.validate(tier, configuration.selections)
        if not result.is_valid:
            detail = "; ".join(result.errors) or "configuration is incomplete"
            raise InvalidConfigurationError(f"Invalid {tier.name} configuration: {detail}")
        self._check_price(tier.price_per_pack)

        # Own copy so later edits to the caller's selections cannot drift from quantity
        configuration = configuration.model_copy(
            update={"is_valid": True, "errors": []}, deep=True
        )

        product_id = f"subscription_{tier.id.value}"
        item = CartLineItem(
            id=self._new_id(product_id),
            kind=LineItemKind.SUBSCRIPTION,
            product_id=product_id,
            product_name=tier.name,
            quantity=configuration.total_packs,
            unit_price=to_money(tier.price_per_pack),
            plan_configuration=configuration,
            subscription_frequency=frequency,
        )
        self._items.append(item)
        self._touch()
        logger.info(f"Added {tier.name} ({configuration.total_packs} packs, {frequency.value})")
        return item

    def update_quantity(self, item_id: str, quantity: int) -> bool:
        """
        Change an individual line's quantity.

        Subscription lines, out-of-range quantities and unknown ids leave
        the cart untouched.

        Returns:
            True if the cart changed
        """
        item = self.get_item(item_id)
        if not item:
            return False

        if item.kind == LineItemKind.SUBSCRIPTION:
            logger.warning(f"Ignoring quantity update for subscription line {item_id}")
            return False

        if not self._in_range(quantity):
            logger.debug(f"Ignoring out-of-range quantity {quantity} for line {item_id}")
            return False

        if quantity == item.quantity:
            return False

        self._replace(item.model_copy(update={"quantity": quantity}))
        return True

    def remove_item(self, item_id: str) -> bool:
        """Remove a line; removing a missing id is a no-op"""
        remaining = [item for item in self._items if item.id != item_id]
        if len(remaining) == len(self._items):
            return False
        self._items = remaining
        self._touch()
        return True

    def clear(self) -> None:
        """Remove every line"""
        self._items = []
        self._touch()

    def _replace(self, updated: CartLineItem) -> None:
        self._items = [updated if item.id == updated.id else item for item in self._items]
        self._touch()

    def get_item(self, item_id: str) -> Optional[CartLineItem]:
        return next((item for item in self._items if item.id == item_id), None)

    def items_for_product(self, product_id: str) -> list[CartLineItem]:
        return [item for item in self._items if item.product_id == product_id]

    def has_items(self) -> bool:
        return bool(self._items)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def subtotal(self) -> Decimal:
        return to_money(sum((item.total_price for item in self._items), Decimal("0")))

    def snapshot(self) -> CartSnapshot:
        """Read-only copy of the cart for the discount service"""
        return CartSnapshot(
            items=[
                CartSnapshotItem(
                    product_id=item.product_id,
                    kind=item.kind,
                    quantity=item.quantity,
                    total_price=item.total_price,
                )
                for item in self._items
            ],
            subtotal=self.subtotal,
            currency=self.currency,
        )
