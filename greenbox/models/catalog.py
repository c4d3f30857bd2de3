"""Catalog and plan configuration models"""

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class VarietyTheme(str, Enum):
    ORANGE = "orange"
    PURPLE = "purple"
    YELLOW = "yellow"


class PlanTierId(str, Enum):
    STARTER = "starter"
    PRO = "pro"
    ELITE = "elite"


class Variety(BaseModel):
    """Purchasable microgreens variety"""
    id: str
    name: str
    unit_price: Decimal = Field(gt=0)
    theme: VarietyTheme
    description: str = ""

    model_config = {"frozen": True}


class PlanTier(BaseModel):
    """Subscription plan level"""
    id: PlanTierId
    name: str
    # None means open-ended (at least one pack)
    required_packs: Optional[int] = Field(default=None, gt=0)
    price_per_pack: Decimal = Field(gt=0)
    description: str = ""

    model_config = {"frozen": True}

    @property
    def is_open_ended(self) -> bool:
        return self.required_packs is None


class VarietySelection(BaseModel):
    """Quantity chosen for one variety in a plan configuration"""
    variety_id: str
    quantity: int = 0

    model_config = {"frozen": True}

    @field_validator("quantity", mode="before")
    @classmethod
    def clamp_negative(cls, value):
        if isinstance(value, int) and value < 0:
            return 0
        return value


class PlanValidationResult(BaseModel):
    """Outcome of checking selections against a tier"""
    is_valid: bool
    errors: list[str] = []
    total_packs: int = 0


class PlanConfiguration(BaseModel):
    """A tier plus the variety breakdown the customer picked for it"""
    tier: PlanTier
    selections: list[VarietySelection] = []
    is_valid: bool = False
    errors: list[str] = []

    model_config = {"frozen": True}

    @property
    def total_packs(self) -> int:
        return sum(selection.quantity for selection in self.selections)

    def selected(self) -> list[VarietySelection]:
        """Selections with a non-zero quantity"""
        return [s for s in self.selections if s.quantity > 0]
