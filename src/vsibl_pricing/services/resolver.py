"""
Config resolver & snapshot manager.

Resolves the active pricing version into the engine's input shape and
persists the immutable price snapshot bound to a booked campaign.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from vsibl_pricing.config.version import ResolvedPricingVersion
from vsibl_pricing.errors import ConfigNotFoundError
from vsibl_pricing.models.records import CampaignPricingSnapshot
from vsibl_pricing.models.results import PricingResult
from vsibl_pricing.store.base import PricingRepository, PricingStore

logger = logging.getLogger(__name__)


def resolve_active_version(repo: PricingRepository) -> Optional[ResolvedPricingVersion]:
    """Follow the config's active pointer inside an open transaction."""
    config = repo.get_config()
    if config is None or config.active_version_id is None:
        return None
    version = repo.get_version(config.active_version_id)
    if version is None:
        logger.warning(
            f"Pricing config {config.id} points at missing version {config.active_version_id}"
        )
        return None
    return version.resolve()


class PricingSnapshotManager:
    """Reads the live rule set and writes campaign price snapshots.

    The resolved active version is cached for ``cache_ttl_seconds``.  Anything
    that moves the active pointer must call ``invalidate()``.

    The cache is per process: ``invalidate()`` only reaches this instance, so a
    publish made by another process shows up here once the TTL runs out.
    Shared databases should run with a TTL of 0 (the settings default for
    any non-memory URL).
    """

    def __init__(self, store: PricingStore, cache_ttl_seconds: float = 0.0):
        self.store = store
        self.cache_ttl_seconds = cache_ttl_seconds
        self._cached: Optional[ResolvedPricingVersion] = None
        self._cached_at = 0.0
        # Bumped by invalidate(); a read that straddles a bump is not cached
        self._generation = 0
        self._lock = threading.Lock()

    # ==================== Active config ====================

    def get_current_config(self) -> Optional[ResolvedPricingVersion]:
        """The active version's rules, or None when pricing is not configured yet."""
        with self._lock:
            if self._cached is not None and self._cache_fresh():
                return self._cached.model_copy(deep=True)
            generation = self._generation

        with self.store.transaction() as repo:
            resolved = resolve_active_version(repo)

        if resolved is None:
            logger.warning("No active pricing configuration found")
            return None

        if self.cache_ttl_seconds > 0:
            with self._lock:
                if generation == self._generation:
                    self._cached = resolved.model_copy(deep=True)
                    self._cached_at = time.monotonic()
                else:
                    logger.debug("Pricing config changed during read; result not cached")
        return resolved

    def require_current_config(self) -> ResolvedPricingVersion:
        config = self.get_current_config()
        if config is None:
            raise ConfigNotFoundError()
        return config

    def invalidate(self) -> None:
        with self._lock:
            self._generation += 1
            self._cached = None
            self._cached_at = 0.0

    def _cache_fresh(self) -> bool:
        return time.monotonic() - self._cached_at < self.cache_ttl_seconds

    # ==================== Snapshots ====================

    def save_snapshot(
        self,
        campaign_id: str,
        result: PricingResult,
        repo: Optional[PricingRepository] = None,
    ) -> CampaignPricingSnapshot:
        """Persist ``result`` for ``campaign_id``.

        Pass the campaign's own ``repo`` so the snapshot commits (or rolls
        back) together with the campaign row.  Without one, a transaction of
        its own is opened.
        """
        snapshot = CampaignPricingSnapshot.from_result(campaign_id, result)
        if repo is not None:
            repo.add_snapshot(snapshot)
        else:
            with self.store.transaction() as own_repo:
                own_repo.add_snapshot(snapshot)
        logger.info(
            f"Pricing snapshot saved for campaign {campaign_id}: "
            f"{snapshot.final_price} tokens (version {snapshot.pricing_version_id})"
        )
        return snapshot

    def get_snapshot(self, campaign_id: str) -> Optional[CampaignPricingSnapshot]:
        with self.store.transaction() as repo:
            return repo.get_snapshot(campaign_id)
