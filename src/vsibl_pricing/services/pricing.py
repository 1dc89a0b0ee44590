"""
Quote → simulate → lock.

    quote(campaign)            validate → resolve active version → calculate
    simulate(campaign, …)      admin preview against any version, drafts included
    book_campaign(details, …)  one transaction: resolve → calculate → campaign row → snapshot

The price a campaign is booked at is computed inside the booking transaction
from the version that is active at that moment, and frozen into its
snapshot.  Later publishes never touch it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel

from vsibl_pricing.config.campaign import CampaignInput
from vsibl_pricing.config.version import ResolvedPricingVersion
from vsibl_pricing.engine.calculator import calculate
from vsibl_pricing.engine.validator import validate_campaign_input, validate_time_slot_selection
from vsibl_pricing.errors import (
    ConfigNotFoundError,
    UnknownTimeSlotError,
    ValidationFailedError,
    VersionNotFoundError,
)
from vsibl_pricing.models.records import (
    PLAYBACK_PRIORITY,
    CampaignDetails,
    CampaignPricingSnapshot,
    CampaignRecord,
    PricingVersion,
    VersionStatus,
)
from vsibl_pricing.models.results import PricingResult
from vsibl_pricing.services.resolver import PricingSnapshotManager, resolve_active_version
from vsibl_pricing.settings import PricingSettings
from vsibl_pricing.store.base import PricingStore

logger = logging.getLogger(__name__)


class SimulationResult(BaseModel):
    """A simulated price plus the version it was computed against."""

    version_id: str
    version_number: int
    status: VersionStatus
    result: PricingResult


class Booking(BaseModel):
    """A booked campaign and the snapshot that fixes its price."""

    campaign: CampaignRecord
    snapshot: CampaignPricingSnapshot


class PricingService:
    """Booking-path entry points.  Raises ``PricingError`` subclasses on failure."""

    def __init__(
        self,
        store: PricingStore,
        resolver: PricingSnapshotManager,
        settings: Optional[PricingSettings] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.settings = settings or PricingSettings()

    # ==================== Quote ====================

    def quote(self, campaign: CampaignInput | Mapping[str, Any]) -> PricingResult:
        """Price ``campaign`` against the active version."""
        campaign = self._validated(campaign)
        version = self.resolver.require_current_config()
        self._check_time_slots(campaign, version)
        return calculate(version, campaign)

    # ==================== Simulate ====================

    def simulate(
        self,
        campaign: CampaignInput | Mapping[str, Any],
        version_id: Optional[str] = None,
        version_number: Optional[int] = None,
    ) -> SimulationResult:
        """Price ``campaign`` against a chosen version without activating it.

        Selection: ``version_id``, else ``version_number``, else the latest
        PUBLISHED version (by number, which may differ from the active one).
        """
        campaign = self._validated(campaign)
        with self.store.transaction() as repo:
            version: Optional[PricingVersion] = None
            if version_id is not None:
                version = repo.get_version(version_id)
            else:
                config = repo.get_config()
                if config is not None:
                    if version_number is not None:
                        version = repo.get_version_by_number(config.id, version_number)
                    else:
                        published = [v for v in repo.list_versions(config.id) if v.is_published]
                        version = published[-1] if published else None

        if version is None:
            raise VersionNotFoundError("No pricing version found")

        result = calculate(version.resolve(), campaign)
        return SimulationResult(
            version_id=version.id,
            version_number=version.version_number,
            status=version.status,
            result=result,
        )

    # ==================== Lock (book) ====================

    def book_campaign(
        self,
        details: CampaignDetails,
        campaign: CampaignInput | Mapping[str, Any],
        campaign_id: Optional[str] = None,
    ) -> Booking:
        """Create the campaign and its price snapshot atomically."""
        campaign = self._validated(campaign)

        with self.store.transaction() as repo:
            version = resolve_active_version(repo)
            if version is None:
                raise ConfigNotFoundError()
            self._check_time_slots(campaign, version)

            result = calculate(version, campaign)

            record = CampaignRecord(
                name=details.name,
                user_id=details.user_id,
                budget=result.final_price,
                pricing_version_id=result.pricing_version_id,
                playback_priority=PLAYBACK_PRIORITY[campaign.slot_priority],
                start_date=details.start_date,
                end_date=details.end_date,
            )
            if campaign_id is not None:
                record.id = campaign_id
            repo.add_campaign(record)
            snapshot = self.resolver.save_snapshot(record.id, result, repo=repo)

        logger.info(
            f"Booked campaign {record.id} for user {record.user_id} at {record.budget} tokens"
        )
        return Booking(campaign=record, snapshot=snapshot)

    # ==================== Internals ====================

    @staticmethod
    def _validated(campaign: CampaignInput | Mapping[str, Any]) -> CampaignInput:
        errors = validate_campaign_input(campaign)
        if errors:
            raise ValidationFailedError(errors)
        if isinstance(campaign, CampaignInput):
            return campaign
        return CampaignInput.model_validate(dict(campaign))

    def _check_time_slots(self, campaign: CampaignInput, version: ResolvedPricingVersion) -> None:
        if not self.settings.strict_time_slots:
            return
        errors = validate_time_slot_selection(campaign, version)
        if errors:
            known = {ts.id for ts in version.time_slots}
            unknown = [slot_id for slot_id in campaign.time_slots if slot_id not in known]
            raise UnknownTimeSlotError(unknown, errors)
