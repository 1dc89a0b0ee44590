"""
Storage Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.

A ``PricingStore`` hands out one ``PricingRepository`` per transaction:

    with store.transaction() as repo:
        version = repo.get_version(version_id)
        ...

Leaving the block normally commits every write made through ``repo``;
leaving it with an exception discards all of them.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from typing import Protocol, runtime_checkable

from vsibl_pricing.models.records import (
    CampaignPricingSnapshot,
    CampaignRecord,
    PricingConfigRecord,
    PricingVersion,
)


@runtime_checkable
class PricingRepository(Protocol):
    """Reads and writes inside one transaction."""

    # ==================== Pricing Config ====================

    def get_config(self) -> PricingConfigRecord | None:
        """The single pricing config, if one was created"""
        ...

    def add_config(self, config: PricingConfigRecord) -> None:
        ...

    def set_active_version(self, config_id: str, version_id: str) -> None:
        """Repoint the config's active version"""
        ...

    # ==================== Versions ====================

    def get_version(self, version_id: str) -> PricingVersion | None:
        """Version with its factors and time slots in declaration order"""
        ...

    def get_version_by_number(self, config_id: str, version_number: int) -> PricingVersion | None:
        ...

    def list_versions(self, config_id: str) -> list[PricingVersion]:
        """All versions of a config, ascending by version number"""
        ...

    def max_version_number(self, config_id: str) -> int:
        """Highest version number used so far, 0 if none"""
        ...

    def add_version(self, version: PricingVersion) -> None:
        """Insert a version together with its factors and time slots.

        Raises ``VersionNumberConflictError`` when the config already has a
        version with this number.
        """
        ...

    def save_version(self, version: PricingVersion) -> None:
        """Overwrite status, timestamps and rules of an existing version"""
        ...

    # ==================== Campaigns & Snapshots ====================

    def add_campaign(self, campaign: CampaignRecord) -> None:
        ...

    def get_campaign(self, campaign_id: str) -> CampaignRecord | None:
        ...

    def add_snapshot(self, snapshot: CampaignPricingSnapshot) -> None:
        """Insert; raises CampaignNotFoundError without a campaign row, SnapshotExistsError on a second write"""
        ...

    def get_snapshot(self, campaign_id: str) -> CampaignPricingSnapshot | None:
        ...


@runtime_checkable
class PricingStore(Protocol):
    """Transaction factory injected into the resolver and services."""

    def transaction(self) -> AbstractContextManager[PricingRepository]:
        ...
