"""Shared test fixtures — small rule sets whose prices can be worked out by hand."""

from __future__ import annotations

from decimal import Decimal

import pytest

from vsibl_pricing.config import (
    CampaignInput,
    Factor,
    FactorType,
    KeyedLookup,
    ResolvedPricingVersion,
    TimeSlot,
    VersionDraft,
)
from vsibl_pricing.services import create_pricing_services
from vsibl_pricing.settings import PricingSettings
from vsibl_pricing.store import InMemoryPricingStore, SqlPricingStore


@pytest.fixture
def unit_campaign() -> CampaignInput:
    """1 screen × 1 day × 100 impressions: volume scale is exactly 1."""
    return CampaignInput(screen_count=1, impressions_per_day=100, total_days=1)


@pytest.fixture
def make_version():
    """Build a ResolvedPricingVersion from factors and slots."""

    def _make(
        base_price: str = "10",
        factors: list[Factor] | None = None,
        time_slots: list[TimeSlot] | None = None,
        version_id: str = "v-test",
    ) -> ResolvedPricingVersion:
        return ResolvedPricingVersion(
            id=version_id,
            version_number=1,
            base_price=Decimal(base_price),
            factors=factors or [],
            time_slots=time_slots or [],
        )

    return _make


@pytest.fixture
def evening_slot() -> TimeSlot:
    return TimeSlot(
        id="slot-evening",
        name="Evening Peak",
        start_time="17:00",
        end_time="21:00",
        multiplier=Decimal("1.5"),
        priority=2,
    )


@pytest.fixture
def simple_draft() -> VersionDraft:
    """Base 10, HIGH priority ×3, one evening slot ×1.5."""
    return VersionDraft(
        config_name="Test Pricing",
        base_price=Decimal("10"),
        factors=[
            Factor(
                name="Slot Priority",
                key="slotPriority",
                type=FactorType.MULTIPLIER,
                priority=5,
                value=Decimal("1"),
                lookup=KeyedLookup(values={"HIGH": Decimal("3")}),
            ),
        ],
        time_slots=[
            TimeSlot(name="Evening Peak", start_time="17:00", end_time="21:00",
                     multiplier=Decimal("1.5"), priority=2),
        ],
    )


@pytest.fixture
def flat_draft() -> VersionDraft:
    """Base 20 with a single neutral factor."""
    return VersionDraft(
        base_price=Decimal("20"),
        factors=[
            Factor(name="Neutral", key="adFormat", type=FactorType.MULTIPLIER, priority=1, value=Decimal("1")),
        ],
    )


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    """Every service test runs against both the in-process and the SQLAlchemy store."""
    if request.param == "memory":
        return InMemoryPricingStore()
    return SqlPricingStore.from_url("sqlite://")


@pytest.fixture
def settings() -> PricingSettings:
    return PricingSettings(database_url="memory://", config_cache_ttl_seconds=0)


@pytest.fixture
def services(store, settings):
    return create_pricing_services(settings, store=store)
