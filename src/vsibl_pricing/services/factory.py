"""
Pricing Service Factory

Factory functions for creating service instances with real dependencies.
This is the ONLY place that picks a storage backend.

Usage:
    from vsibl_pricing.services.factory import create_pricing_services
    services = create_pricing_services()
    services.pricing.quote({...})
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from vsibl_pricing.services.pricing import PricingService
from vsibl_pricing.services.resolver import PricingSnapshotManager
from vsibl_pricing.services.versioning import VersioningService
from vsibl_pricing.settings import MEMORY_URL, PricingSettings, get_settings
from vsibl_pricing.store.base import PricingStore
from vsibl_pricing.store.memory import InMemoryPricingStore
from vsibl_pricing.store.sql import SqlPricingStore

logger = logging.getLogger(__name__)


def create_store(settings: Optional[PricingSettings] = None) -> PricingStore:
    """Build the store named by ``settings.database_url``."""
    settings = settings or get_settings()
    if settings.database_url == MEMORY_URL:
        logger.info("Using in-memory pricing store")
        return InMemoryPricingStore()

    return SqlPricingStore.from_url(settings.database_url, echo=settings.echo_sql)


@dataclass
class PricingServices:
    """Everything a web layer needs, sharing one store and one resolver cache."""

    store: PricingStore
    resolver: PricingSnapshotManager
    versioning: VersioningService
    pricing: PricingService


def create_pricing_services(
    settings: Optional[PricingSettings] = None,
    store: Optional[PricingStore] = None,
) -> PricingServices:
    """Wire store → resolver → versioning/pricing services."""
    settings = settings or get_settings()
    store = store or create_store(settings)
    resolver = PricingSnapshotManager(store, cache_ttl_seconds=settings.cache_ttl_seconds)
    return PricingServices(
        store=store,
        resolver=resolver,
        versioning=VersioningService(store, resolver, settings),
        pricing=PricingService(store, resolver, settings),
    )
