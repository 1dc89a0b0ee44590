"""Repository contract tests — both stores behave the same."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from vsibl_pricing.config import Factor, FactorType, SlabBand, SlabLookup
from vsibl_pricing.errors import CampaignNotFoundError, VersionNotFoundError, VersionNumberConflictError
from vsibl_pricing.models import CampaignPricingSnapshot, CampaignRecord, PricingConfigRecord, PricingVersion
from vsibl_pricing.store import PricingRepository, PricingStore


@pytest.fixture
def config() -> PricingConfigRecord:
    return PricingConfigRecord(id="cfg-1", name="Test")


def _version(config_id: str, number: int, **kwargs) -> PricingVersion:
    return PricingVersion(config_id=config_id, version_number=number, **kwargs)


def test_store_satisfies_protocols(store):
    assert isinstance(store, PricingStore)
    with store.transaction() as repo:
        assert isinstance(repo, PricingRepository)


def test_committed_writes_visible(store, config):
    with store.transaction() as repo:
        repo.add_config(config)
        repo.add_version(_version(config.id, 1))
    with store.transaction() as repo:
        assert repo.get_config().id == "cfg-1"
        assert repo.max_version_number(config.id) == 1


def test_failed_transaction_discards_writes(store, config):
    with pytest.raises(RuntimeError):
        with store.transaction() as repo:
            repo.add_config(config)
            repo.add_version(_version(config.id, 1))
            raise RuntimeError("abort")
    with store.transaction() as repo:
        assert repo.get_config() is None
        assert repo.max_version_number(config.id) == 0


def test_empty_store(store):
    with store.transaction() as repo:
        assert repo.get_config() is None
        assert repo.list_versions("cfg-1") == []
        assert repo.max_version_number("cfg-1") == 0
        assert repo.get_version("missing") is None
        assert repo.get_campaign("missing") is None


def test_version_number_taken(store, config):
    with store.transaction() as repo:
        repo.add_config(config)
        repo.add_version(_version(config.id, 1))
    with pytest.raises(VersionNumberConflictError):
        with store.transaction() as repo:
            repo.add_version(_version(config.id, 1))
    with store.transaction() as repo:
        assert [v.version_number for v in repo.list_versions(config.id)] == [1]


def test_save_missing_version(store, config):
    with pytest.raises(VersionNotFoundError):
        with store.transaction() as repo:
            repo.add_config(config)
            repo.save_version(_version(config.id, 1))


def test_decimals_exact(store, config):
    version = _version(
        config.id, 1,
        base_price=Decimal("12.3456789012345678901234567890"),
        factors=[
            Factor(
                name="Screens",
                key="screenCount",
                type=FactorType.MULTIPLIER,
                value=Decimal("0.333333333333333333333"),
                lookup=SlabLookup(bands=[SlabBand(min=Decimal("5"), max=Decimal("10.5"), value=Decimal("0.95"))]),
            ),
        ],
    )
    with store.transaction() as repo:
        repo.add_config(config)
        repo.add_version(version)
    with store.transaction() as repo:
        stored = repo.get_version(version.id)
    assert stored.base_price == Decimal("12.3456789012345678901234567890")
    assert stored.factors[0].value == Decimal("0.333333333333333333333")
    assert stored.factors[0].lookup.bands[0] == SlabBand(min=Decimal("5"), max=Decimal("10.5"), value=Decimal("0.95"))


def test_set_active_version(store, config):
    version = _version(config.id, 1)
    with store.transaction() as repo:
        repo.add_config(config)
        repo.add_version(version)
        repo.set_active_version(config.id, version.id)
    with store.transaction() as repo:
        assert repo.get_config().active_version_id == version.id


def test_set_active_version_unknown_config(store):
    with pytest.raises(LookupError):
        with store.transaction() as repo:
            repo.set_active_version("nope", "v")


def test_campaign_round_trip(store, config):
    version = _version(config.id, 1)
    campaign = CampaignRecord(
        id="camp-1",
        name="Spring",
        user_id="u-1",
        budget=Decimal("1335.9375"),
        pricing_version_id=version.id,
        playback_priority=2,
        start_date=datetime(2026, 3, 1, tzinfo=timezone.utc),
    )
    with store.transaction() as repo:
        repo.add_config(config)
        repo.add_version(version)
        repo.add_campaign(campaign)
    with store.transaction() as repo:
        stored = repo.get_campaign("camp-1")
    assert stored.budget == Decimal("1335.9375")
    assert stored.playback_priority == 2
    assert stored.end_date is None


def test_snapshot_requires_campaign_row(store, config):
    snapshot = CampaignPricingSnapshot(
        campaign_id="ghost",
        pricing_version_id="v-1",
        base_price=Decimal("10"),
        final_price=Decimal("10"),
        breakdown=[],
    )
    with pytest.raises(CampaignNotFoundError):
        with store.transaction() as repo:
            repo.add_snapshot(snapshot)
