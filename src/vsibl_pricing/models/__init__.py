"""Result and record models."""

from vsibl_pricing.models.results import PricingBreakdownStep, PricingResult, StepType
from vsibl_pricing.models.records import (
    CampaignDetails,
    CampaignPricingSnapshot,
    CampaignRecord,
    PricingConfigRecord,
    PricingVersion,
    VersionStatus,
)

__all__ = [
    "PricingBreakdownStep",
    "PricingResult",
    "StepType",
    "CampaignDetails",
    "CampaignPricingSnapshot",
    "CampaignRecord",
    "PricingConfigRecord",
    "PricingVersion",
    "VersionStatus",
]
