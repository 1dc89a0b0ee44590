"""
Versioning & publish workflow.

    DRAFT ──publish──▶ PUBLISHED

A DRAFT may be edited in place.  A PUBLISHED version is frozen; corrections
go into a new version.  Which version is live is decided only by the
config's ``active_version_id`` pointer, so several versions can be PUBLISHED
while one is active, and publishing an older version re-activates it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional, TypeVar
from uuid import uuid4

from vsibl_pricing.config.factor import Factor
from vsibl_pricing.config.time_slot import TimeSlot
from vsibl_pricing.config.version import VersionDraft
from vsibl_pricing.engine.validator import validate_config
from vsibl_pricing.errors import ConfigIntegrityError, VersionNotFoundError, VersionNumberConflictError
from vsibl_pricing.models.records import (
    PricingConfigRecord,
    PricingVersion,
    VersionStatus,
    utc_now,
)
from vsibl_pricing.services.resolver import PricingSnapshotManager
from vsibl_pricing.settings import PricingSettings
from vsibl_pricing.store.base import PricingRepository, PricingStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Concurrent writers may read the same max version number; the loser retries
NUMBERING_ATTEMPTS = 10


def _fresh_rules(draft: VersionDraft) -> tuple[list[Factor], list[TimeSlot]]:
    """Copies of the draft's factors and slots with ids owned by the new version."""
    factors = [f.model_copy(deep=True, update={"id": str(uuid4())}) for f in draft.factors]
    time_slots = [ts.model_copy(deep=True, update={"id": str(uuid4())}) for ts in draft.time_slots]
    return factors, time_slots


class VersioningService:
    """Admin-side authoring of pricing versions."""

    def __init__(
        self,
        store: PricingStore,
        resolver: PricingSnapshotManager,
        settings: Optional[PricingSettings] = None,
    ):
        self.store = store
        self.resolver = resolver
        self.settings = settings or PricingSettings()

    # ==================== Authoring ====================

    def create_version(self, draft: VersionDraft) -> PricingVersion:
        """Store ``draft`` as the next DRAFT version of the pricing config."""
        self._check(draft)
        version = self._numbered(lambda repo: self._insert_version(repo, draft))
        logger.info(f"Created pricing version {version.version_number} ({version.id}) as DRAFT")
        return version

    def update_draft(self, version_id: str, draft: VersionDraft) -> PricingVersion:
        """Replace the rules of a DRAFT version.  Published versions are immutable."""
        self._check(draft)
        with self.store.transaction() as repo:
            version = self._get_or_raise(repo, version_id)
            if version.is_published:
                raise ConfigIntegrityError(
                    [f"Pricing version {version.version_number} is published and cannot be modified; "
                     "create a new version instead."]
                )
            version.base_price = draft.base_price
            version.token_usd_price = draft.token_usd_price
            version.factors, version.time_slots = _fresh_rules(draft)
            repo.save_version(version)
        logger.info(f"Updated draft pricing version {version.version_number} ({version.id})")
        return version

    # ==================== Publishing ====================

    def publish(self, version_id: str) -> PricingVersion:
        """Mark ``version_id`` PUBLISHED and make it the active version, atomically."""
        with self.store.transaction() as repo:
            version = self._get_or_raise(repo, version_id)
            self._activate(repo, version)
        self.resolver.invalidate()
        logger.info(f"Published pricing version {version.version_number} ({version.id})")
        return version

    def publish_now(self, draft: VersionDraft) -> PricingVersion:
        """Create a version and publish it live in a single transaction."""
        self._check(draft)

        def _insert_and_activate(repo: PricingRepository) -> PricingVersion:
            version = self._insert_version(repo, draft)
            self._activate(repo, version)
            return version

        version = self._numbered(_insert_and_activate)
        self.resolver.invalidate()
        logger.info(f"Pricing version {version.version_number} ({version.id}) created and published live")
        return version

    # ==================== Queries ====================

    def get_version(self, version_id: str) -> Optional[PricingVersion]:
        with self.store.transaction() as repo:
            return repo.get_version(version_id)

    def get_version_by_number(self, version_number: int) -> Optional[PricingVersion]:
        with self.store.transaction() as repo:
            config = repo.get_config()
            if config is None:
                return None
            return repo.get_version_by_number(config.id, version_number)

    def list_versions(self) -> list[PricingVersion]:
        with self.store.transaction() as repo:
            config = repo.get_config()
            if config is None:
                return []
            return repo.list_versions(config.id)

    def active_version_id(self) -> Optional[str]:
        with self.store.transaction() as repo:
            config = repo.get_config()
            return config.active_version_id if config else None

    # ==================== Internals ====================

    @staticmethod
    def _check(draft: VersionDraft) -> None:
        errors = validate_config(draft)
        if errors:
            raise ConfigIntegrityError(errors)

    def _get_or_create_config(self, repo: PricingRepository, draft: VersionDraft) -> PricingConfigRecord:
        config = repo.get_config()
        if config is None:
            config = PricingConfigRecord(
                name=draft.config_name or self.settings.default_config_name,
                description=draft.config_description or self.settings.default_config_description,
            )
            repo.add_config(config)
            logger.info(f"Created pricing config '{config.name}' ({config.id})")
        return config

    def _numbered(self, work: Callable[[PricingRepository], T]) -> T:
        """Run ``work`` in a transaction, starting over if its version number was taken."""
        attempt = 1
        while True:
            try:
                with self.store.transaction() as repo:
                    return work(repo)
            except VersionNumberConflictError:
                if attempt >= NUMBERING_ATTEMPTS:
                    raise
                logger.warning(f"Version number taken by a concurrent writer; retry {attempt}/{NUMBERING_ATTEMPTS - 1}")
                attempt += 1

    def _insert_version(self, repo: PricingRepository, draft: VersionDraft) -> PricingVersion:
        config = self._get_or_create_config(repo, draft)
        version = PricingVersion(
            config_id=config.id,
            version_number=repo.max_version_number(config.id) + 1,
            base_price=draft.base_price,
            token_usd_price=draft.token_usd_price,
        )
        version.factors, version.time_slots = _fresh_rules(draft)
        repo.add_version(version)
        return version

    @staticmethod
    def _activate(repo: PricingRepository, version: PricingVersion) -> None:
        if not version.is_published:
            version.status = VersionStatus.PUBLISHED
        if version.published_at is None:
            version.published_at = utc_now()
        repo.save_version(version)
        repo.set_active_version(version.config_id, version.id)

    @staticmethod
    def _get_or_raise(repo: PricingRepository, version_id: str) -> PricingVersion:
        version = repo.get_version(version_id)
        if version is None:
            raise VersionNotFoundError(f"Pricing version {version_id} not found")
        return version
