"""Storage — transactional repositories for configs, versions, campaigns and snapshots."""

from vsibl_pricing.store.base import PricingRepository, PricingStore
from vsibl_pricing.store.memory import InMemoryPricingRepository, InMemoryPricingStore
from vsibl_pricing.store.sql import SqlPricingRepository, SqlPricingStore, build_engine

__all__ = [
    "PricingRepository",
    "PricingStore",
    "InMemoryPricingRepository",
    "InMemoryPricingStore",
    "SqlPricingRepository",
    "SqlPricingStore",
    "build_engine",
]
