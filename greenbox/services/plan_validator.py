"""
Plan configuration validation

Checks a variety breakdown against the pack count its subscription tier
requires, and helps a caller assemble a breakdown one variety at a time.
"""

import logging
from typing import Iterable, Optional

from ..database.catalog import VarietyCatalog, catalog as default_catalog
from ..models.catalog import (
    PlanConfiguration,
    PlanTier,
    PlanValidationResult,
    VarietySelection,
)

logger = logging.getLogger(__name__)


def _packs(count: int) -> str:
    return "pack" if count == 1 else "packs"


class PlanConfigurationValidator:
    """Validates variety selections against a plan tier"""

    def __init__(self, catalog: Optional[VarietyCatalog] = None):
        self.catalog = catalog or default_catalog

    def validate(
        self,
        tier: PlanTier,
        selections: Iterable[VarietySelection],
    ) -> PlanValidationResult:
        """
        Validate selections for a tier.

        Fixed tiers need exactly ``required_packs`` packs; the open-ended
        starter tier needs at least one.

        Returns:
            PlanValidationResult with the pack total and any error messages
        """
        selections = list(selections)
        errors: list[str] = []

        seen: set[str] = set()
        for selection in selections:
            if selection.variety_id in seen:
                errors.append(f"Duplicate selection for {selection.variety_id}")
            seen.add(selection.variety_id)
            if not self.catalog.has_variety(selection.variety_id):
                errors.append(f"Unknown variety: {selection.variety_id}")

        total_packs = sum(max(selection.quantity, 0) for selection in selections)

        if tier.required_packs is not None:
            if total_packs < tier.required_packs:
                missing = tier.required_packs - total_packs
                errors.append(f"Need {missing} more {_packs(missing)}")
            elif total_packs > tier.required_packs:
                extra = total_packs - tier.required_packs
                errors.append(f"Remove {extra} {_packs(extra)}")
        elif total_packs <= 0:
            errors.append("Select at least 1 pack")

        return PlanValidationResult(
            is_valid=not errors,
            errors=errors,
            total_packs=total_packs,
        )

    def build_configuration(
        self,
        tier: PlanTier,
        selections: Iterable[VarietySelection],
    ) -> PlanConfiguration:
        """Validate selections and wrap them in a PlanConfiguration"""
        selections = list(selections)
        result = self.validate(tier, selections)
        return PlanConfiguration(
            tier=tier,
            selections=selections,
            is_valid=result.is_valid,
            errors=result.errors,
        )

    def default_selections(self, tier: PlanTier) -> list[VarietySelection]:
        """
        Spread a fixed tier's packs evenly across the catalog varieties.

        The remainder goes to the first varieties. Open-ended tiers start
        with nothing selected.
        """
        varieties = self.catalog.list_varieties()
        if tier.required_packs is None or not varieties:
            return [VarietySelection(variety_id=v.id, quantity=0) for v in varieties]

        base, remainder = divmod(tier.required_packs, len(varieties))
        return [
            VarietySelection(
                variety_id=variety.id,
                quantity=base + (1 if index < remainder else 0),
            )
            for index, variety in enumerate(varieties)
        ]


class PlanConfigurator:
    """
    In-progress variety breakdown for one tier.

    Holds one entry per catalog variety; quantities never go below zero and
    increments stop once a fixed tier is full.
    """

    def __init__(
        self,
        tier: PlanTier,
        validator: Optional[PlanConfigurationValidator] = None,
    ):
        self.tier = tier
        self.validator = validator or PlanConfigurationValidator()
        self._quantities: dict[str, int] = {
            variety.id: 0 for variety in self.validator.catalog.list_varieties()
        }

    @property
    def total_packs(self) -> int:
        return sum(self._quantities.values())

    @property
    def remaining_packs(self) -> Optional[int]:
        """Packs still needed for a fixed tier, None for open-ended tiers"""
        if self.tier.required_packs is None:
            return None
        return max(self.tier.required_packs - self.total_packs, 0)

    def quantity_of(self, variety_id: str) -> int:
        return self._quantities.get(variety_id, 0)

    def set_quantity(self, variety_id: str, quantity: int) -> None:
        """Set a variety's quantity, clamping negatives to zero"""
        if variety_id not in self._quantities:
            logger.warning(f"Ignoring quantity for unknown variety {variety_id}")
            return
        self._quantities[variety_id] = max(quantity, 0)

    def increment(self, variety_id: str) -> bool:
        """Add one pack unless a fixed tier is already full"""
        if self.remaining_packs == 0:
            return False
        if variety_id not in self._quantities:
            return False
        self._quantities[variety_id] += 1
        return True

    def decrement(self, variety_id: str) -> bool:
        """Remove one pack; a variety at zero stays at zero"""
        if self._quantities.get(variety_id, 0) <= 0:
            return False
        self._quantities[variety_id] -= 1
        return True

    def selections(self) -> list[VarietySelection]:
        return [
            VarietySelection(variety_id=variety_id, quantity=quantity)
            for variety_id, quantity in self._quantities.items()
        ]

    def validate(self) -> PlanValidationResult:
        return self.validator.validate(self.tier, self.selections())

    def build(self) -> PlanConfiguration:
        return self.validator.build_configuration(self.tier, self.selections())
