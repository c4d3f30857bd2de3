"""Microgreens variety and plan tier catalog"""

from decimal import Decimal
from typing import Optional

from ..models.catalog import PlanTier, PlanTierId, Variety, VarietyTheme

VARIETIES: dict[str, Variety] = {
    "mega-mix": Variety(
        id="mega-mix",
        name="Mega Mix",
        unit_price=Decimal("15.00"),
        theme=VarietyTheme.ORANGE,
        description="Our signature blend of broccoli, kale, arugula, red cabbage, mustard and radish.",
    ),
    "brassica-blend": Variety(
        id="brassica-blend",
        name="Brassica Blend",
        unit_price=Decimal("15.00"),
        theme=VarietyTheme.PURPLE,
        description="Nutrient-dense brassica microgreens.",
    ),
    "sunnies-snacks": Variety(
        id="sunnies-snacks",
        name="Sunnies Snacks",
        unit_price=Decimal("15.00"),
        theme=VarietyTheme.YELLOW,
        description="Crunchy sunflower shoots.",
    ),
}

PLAN_TIERS: dict[PlanTierId, PlanTier] = {
    PlanTierId.STARTER: PlanTier(
        id=PlanTierId.STARTER,
        name="Starter Plan",
        required_packs=None,
        price_per_pack=Decimal("15.00"),
        description="Select any number of packs.",
    ),
    PlanTierId.PRO: PlanTier(
        id=PlanTierId.PRO,
        name="Pro Plan",
        required_packs=3,
        price_per_pack=Decimal("15.00"),
        description="Select exactly 3 packs.",
    ),
    PlanTierId.ELITE: PlanTier(
        id=PlanTierId.ELITE,
        name="Elite Plan",
        required_packs=5,
        price_per_pack=Decimal("15.00"),
        description="Select exactly 5 packs.",
    ),
}


class VarietyCatalog:
    """In-memory lookup of varieties and plan tiers"""

    def __init__(
        self,
        varieties: Optional[dict[str, Variety]] = None,
        plan_tiers: Optional[dict[PlanTierId, PlanTier]] = None,
    ):
        self.varieties = dict(varieties if varieties is not None else VARIETIES)
        self.plan_tiers = dict(plan_tiers if plan_tiers is not None else PLAN_TIERS)

    def get_variety(self, variety_id: str) -> Optional[Variety]:
        """Get a variety by ID"""
        return self.varieties.get(variety_id)

    def get_plan_tier(self, tier_id: str) -> Optional[PlanTier]:
        """Get a plan tier by ID ("starter", "pro", "elite")"""
        try:
            return self.plan_tiers.get(PlanTierId(tier_id))
        except ValueError:
            return None

    def list_varieties(self) -> list[Variety]:
        """Get all varieties in display order"""
        return list(self.varieties.values())

    def has_variety(self, variety_id: str) -> bool:
        return variety_id in self.varieties


# Singleton instance
catalog = VarietyCatalog()
