"""Configuration models — campaign input, factor and time-slot catalogs, rule sets."""

from vsibl_pricing.config.campaign import AdFormat, CampaignInput, SlotPriority
from vsibl_pricing.config.factor import Factor, FactorType, KeyedLookup, SlabBand, SlabLookup
from vsibl_pricing.config.time_slot import TimeSlot
from vsibl_pricing.config.version import ResolvedPricingVersion, RuleSet, VersionDraft

__all__ = [
    "AdFormat",
    "CampaignInput",
    "SlotPriority",
    "Factor",
    "FactorType",
    "KeyedLookup",
    "SlabBand",
    "SlabLookup",
    "TimeSlot",
    "RuleSet",
    "VersionDraft",
    "ResolvedPricingVersion",
]
