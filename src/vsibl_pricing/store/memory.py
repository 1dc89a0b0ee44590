"""In-process pricing store.

Used by tests and by embedders that do not need a database.  Each
transaction works on a deep copy of the committed state and swaps it in only
when the block exits cleanly, so a failed transaction leaves nothing behind.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from copy import deepcopy
from dataclasses import dataclass, field

from vsibl_pricing.errors import (
    CampaignNotFoundError,
    SnapshotExistsError,
    VersionNotFoundError,
    VersionNumberConflictError,
)
from vsibl_pricing.models.records import (
    CampaignPricingSnapshot,
    CampaignRecord,
    PricingConfigRecord,
    PricingVersion,
)

logger = logging.getLogger(__name__)


@dataclass
class _State:
    config: PricingConfigRecord | None = None
    versions: dict[str, PricingVersion] = field(default_factory=dict)
    campaigns: dict[str, CampaignRecord] = field(default_factory=dict)
    snapshots: dict[str, CampaignPricingSnapshot] = field(default_factory=dict)


class InMemoryPricingRepository:
    """Repository over one transaction's working copy.  Returns copies, never live objects."""

    def __init__(self, state: _State):
        self._state = state

    # ==================== Pricing Config ====================

    def get_config(self) -> PricingConfigRecord | None:
        config = self._state.config
        return config.model_copy(deep=True) if config else None

    def add_config(self, config: PricingConfigRecord) -> None:
        self._state.config = config.model_copy(deep=True)

    def set_active_version(self, config_id: str, version_id: str) -> None:
        config = self._state.config
        if config is None or config.id != config_id:
            raise LookupError(f"Pricing config {config_id} not found")
        config.active_version_id = version_id

    # ==================== Versions ====================

    def get_version(self, version_id: str) -> PricingVersion | None:
        version = self._state.versions.get(version_id)
        return version.model_copy(deep=True) if version else None

    def get_version_by_number(self, config_id: str, version_number: int) -> PricingVersion | None:
        for version in self._state.versions.values():
            if version.config_id == config_id and version.version_number == version_number:
                return version.model_copy(deep=True)
        return None

    def list_versions(self, config_id: str) -> list[PricingVersion]:
        versions = [v for v in self._state.versions.values() if v.config_id == config_id]
        return [v.model_copy(deep=True) for v in sorted(versions, key=lambda v: v.version_number)]

    def max_version_number(self, config_id: str) -> int:
        numbers = [v.version_number for v in self._state.versions.values() if v.config_id == config_id]
        return max(numbers, default=0)

    def add_version(self, version: PricingVersion) -> None:
        if version.id in self._state.versions:
            raise ValueError(f"Pricing version {version.id} already exists")
        if any(
            v.config_id == version.config_id and v.version_number == version.version_number
            for v in self._state.versions.values()
        ):
            raise VersionNumberConflictError(
                f"Pricing version number {version.version_number} is already taken"
            )
        self._state.versions[version.id] = version.model_copy(deep=True)

    def save_version(self, version: PricingVersion) -> None:
        if version.id not in self._state.versions:
            raise VersionNotFoundError(f"Pricing version {version.id} not found")
        self._state.versions[version.id] = version.model_copy(deep=True)

    # ==================== Campaigns & Snapshots ====================

    def add_campaign(self, campaign: CampaignRecord) -> None:
        if campaign.id in self._state.campaigns:
            raise ValueError(f"Campaign {campaign.id} already exists")
        self._state.campaigns[campaign.id] = campaign.model_copy(deep=True)

    def get_campaign(self, campaign_id: str) -> CampaignRecord | None:
        campaign = self._state.campaigns.get(campaign_id)
        return campaign.model_copy(deep=True) if campaign else None

    def add_snapshot(self, snapshot: CampaignPricingSnapshot) -> None:
        if snapshot.campaign_id not in self._state.campaigns:
            raise CampaignNotFoundError(f"Campaign {snapshot.campaign_id} not found")
        if snapshot.campaign_id in self._state.snapshots:
            raise SnapshotExistsError(f"Campaign {snapshot.campaign_id} already has a pricing snapshot")
        self._state.snapshots[snapshot.campaign_id] = snapshot.model_copy(deep=True)

    def get_snapshot(self, campaign_id: str) -> CampaignPricingSnapshot | None:
        snapshot = self._state.snapshots.get(campaign_id)
        return snapshot.model_copy(deep=True) if snapshot else None


class InMemoryPricingStore:
    """Copy-on-write store.  Transactions are serialized by a lock."""

    def __init__(self) -> None:
        self._state = _State()
        self._lock = threading.Lock()

    @contextmanager
    def transaction(self) -> Iterator[InMemoryPricingRepository]:
        with self._lock:
            working = deepcopy(self._state)
            try:
                yield InMemoryPricingRepository(working)
            except BaseException:
                logger.debug("In-memory transaction rolled back")
                raise
            self._state = working
