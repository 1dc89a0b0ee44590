"""Result types — the contract between the engine, the snapshot store and callers.

Every amount is an exact ``Decimal``.  JSON dumps (``model_dump(mode="json")``)
render decimals as strings, so a breakdown written to storage and read back
compares equal to what was written.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel


class StepType(str, Enum):
    BASE = "BASE"
    MULTIPLIER = "MULTIPLIER"
    ADDITIVE = "ADDITIVE"
    TIME_SLOT = "TIME_SLOT"
    VOLUME = "VOLUME"


class PricingBreakdownStep(BaseModel):
    """One audit-trail entry: the price before and after a single rule."""

    factor: str
    """Display label (factor name, ``Time Slot: …``, ``Base Price``, volume scaling)."""

    priority: int
    """Rule priority; 0 for the synthetic base and volume steps."""

    type: StepType

    pre_value: Decimal
    change: Decimal
    """Always ``post_value - pre_value``.  For ADDITIVE steps this is the factor value."""

    post_value: Decimal


class PricingResult(BaseModel):
    """Engine output for one (version, campaign) pair."""

    base_price: Decimal
    final_price: Decimal
    """Rounded to 4 decimal places, ROUND_HALF_UP."""

    breakdown: list[PricingBreakdownStep]
    """Ordered: base, factors, time slots, volume scaling."""

    pricing_version_id: str
