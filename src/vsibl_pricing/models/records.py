"""Persisted records — pricing config, versions, campaigns and their price snapshots."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from vsibl_pricing.config.campaign import SlotPriority
from vsibl_pricing.config.version import ResolvedPricingVersion, RuleSet
from vsibl_pricing.models.results import PricingBreakdownStep, PricingResult


def _new_id() -> str:
    return str(uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class VersionStatus(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class PricingConfigRecord(BaseModel):
    """The named container.  Only ``active_version_id`` changes after creation."""

    id: str = Field(default_factory=_new_id)
    name: str
    description: str | None = None
    active_version_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class PricingVersion(RuleSet):
    """A stored version.  Rules are frozen once ``status`` is PUBLISHED."""

    id: str = Field(default_factory=_new_id)
    config_id: str
    version_number: int = Field(ge=1)
    status: VersionStatus = VersionStatus.DRAFT
    published_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_published(self) -> bool:
        return self.status == VersionStatus.PUBLISHED

    def resolve(self) -> ResolvedPricingVersion:
        """Project onto the engine's input shape."""
        return ResolvedPricingVersion(
            id=self.id,
            version_number=self.version_number,
            base_price=self.base_price,
            token_usd_price=self.token_usd_price,
            factors=[f.model_copy(deep=True) for f in self.factors],
            time_slots=[ts.model_copy(deep=True) for ts in self.time_slots],
        )


# Playback weight a booked campaign gets from its slot priority
PLAYBACK_PRIORITY: dict[SlotPriority, int] = {
    SlotPriority.NORMAL: 1,
    SlotPriority.HIGH: 2,
    SlotPriority.PREMIUM: 3,
}


class CampaignDetails(BaseModel):
    """Non-pricing fields supplied when a campaign is booked."""

    name: str
    user_id: str
    start_date: datetime
    end_date: datetime | None = None


class CampaignRecord(BaseModel):
    """Minimal campaign row; its budget is locked to the snapshot's final price."""

    id: str = Field(default_factory=_new_id)
    name: str
    user_id: str
    status: str = "PENDING_PAYMENT"
    budget: Decimal
    pricing_version_id: str
    playback_priority: int = Field(ge=1, le=3)
    start_date: datetime
    end_date: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)


class CampaignPricingSnapshot(BaseModel):
    """Immutable copy of the price a campaign was booked at."""

    campaign_id: str
    pricing_version_id: str
    base_price: Decimal
    final_price: Decimal
    breakdown: list[PricingBreakdownStep]
    created_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def from_result(cls, campaign_id: str, result: PricingResult) -> CampaignPricingSnapshot:
        return cls(
            campaign_id=campaign_id,
            pricing_version_id=result.pricing_version_id,
            base_price=result.base_price,
            final_price=result.final_price,
            breakdown=[step.model_copy() for step in result.breakdown],
        )

    def to_result(self) -> PricingResult:
        return PricingResult(
            base_price=self.base_price,
            final_price=self.final_price,
            breakdown=[step.model_copy() for step in self.breakdown],
            pricing_version_id=self.pricing_version_id,
        )
