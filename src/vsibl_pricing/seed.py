"""Initial pricing rules for a fresh installation.

Seed the store named by the settings from the command line:
    python -m vsibl_pricing.seed
"""

from __future__ import annotations

import logging
from decimal import Decimal

from vsibl_pricing.config.factor import Factor, FactorType, KeyedLookup, SlabBand, SlabLookup
from vsibl_pricing.config.time_slot import TimeSlot
from vsibl_pricing.config.version import VersionDraft
from vsibl_pricing.logging_config import setup_logging
from vsibl_pricing.models.records import PricingVersion
from vsibl_pricing.services.factory import create_pricing_services
from vsibl_pricing.services.versioning import VersioningService
from vsibl_pricing.settings import get_settings

logger = logging.getLogger(__name__)


def default_draft() -> VersionDraft:
    """100 tokens base with screen-count, format and slot-priority factors and three peak windows."""
    return VersionDraft(
        config_name="Global VSIBL Pricing",
        config_description="Standard pricing rules for all regional screens",
        base_price=Decimal("100"),
        token_usd_price=Decimal("0.04"),
        factors=[
            Factor(
                name="Screen Count",
                key="screenCount",
                type=FactorType.MULTIPLIER,
                priority=1,
                lookup=SlabLookup(bands=[
                    SlabBand(min=Decimal("1"), max=Decimal("4"), value=Decimal("1")),
                    SlabBand(min=Decimal("5"), max=Decimal("10"), value=Decimal("0.95")),
                    SlabBand(min=Decimal("11"), value=Decimal("0.9")),
                ]),
            ),
            Factor(
                name="Ad Format",
                key="adFormat",
                type=FactorType.MULTIPLIER,
                priority=2,
                lookup=KeyedLookup(values={"MP4": Decimal("1.5"), "WEBM": Decimal("1.5"), "GIF": Decimal("1.2")}),
            ),
            Factor(
                name="Slot Priority",
                key="slotPriority",
                type=FactorType.MULTIPLIER,
                priority=3,
                lookup=KeyedLookup(values={"HIGH": Decimal("1.25"), "PREMIUM": Decimal("2")}),
            ),
        ],
        time_slots=[
            TimeSlot(name="Morning Peak", start_time="08:00", end_time="11:00", multiplier=Decimal("1.2"), priority=1),
            TimeSlot(name="Evening Peak", start_time="17:00", end_time="21:00", multiplier=Decimal("1.5"), priority=2),
            TimeSlot(name="Late Night", start_time="00:00", end_time="04:00", multiplier=Decimal("0.8"), priority=3),
        ],
    )


def seed_default_pricing(versioning: VersioningService) -> PricingVersion | None:
    """Publish ``default_draft()`` unless some version already exists.  Returns the new version."""
    if versioning.list_versions():
        logger.info("Pricing already configured; seed skipped")
        return None
    version = versioning.publish_now(default_draft())
    logger.info("Initial pricing configuration seeded successfully.")
    return version


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    services = create_pricing_services(settings)
    version = seed_default_pricing(services.versioning)
    if version is not None:
        logger.info(f"Active pricing version {version.version_number} ({version.id})")


if __name__ == "__main__":
    main()
