"""Versioned rule sets — what an admin authors and what the engine consumes."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from vsibl_pricing.config.factor import Factor
from vsibl_pricing.config.time_slot import TimeSlot


class RuleSet(BaseModel):
    """Base price, exchange rate, factors and time slots of one version."""

    base_price: Decimal = Field(default=Decimal("10"), description="Token price before any factor")
    token_usd_price: Decimal = Field(
        default=Decimal("0.04"),
        description="USD per token.  Carried with the version; not used by the engine.",
    )
    factors: list[Factor] = Field(default_factory=list)
    time_slots: list[TimeSlot] = Field(default_factory=list)


class VersionDraft(RuleSet):
    """Authoring payload for a new (or replacement) version.

    ``config_name``/``config_description`` only matter when the very first
    version creates the pricing config.
    """

    config_name: str | None = None
    config_description: str | None = None


class ResolvedPricingVersion(RuleSet):
    """A version's rules in the engine's input shape."""

    id: str
    version_number: int = Field(ge=1)

    def time_slot(self, slot_id: str) -> TimeSlot | None:
        for slot in self.time_slots:
            if slot.id == slot_id:
                return slot
        return None
