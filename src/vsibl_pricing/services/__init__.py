"""Services — config resolution, versioning, and the quote/simulate/lock flow."""

from vsibl_pricing.services.factory import PricingServices, create_pricing_services, create_store
from vsibl_pricing.services.pricing import Booking, PricingService, SimulationResult
from vsibl_pricing.services.resolver import PricingSnapshotManager, resolve_active_version
from vsibl_pricing.services.versioning import VersioningService

__all__ = [
    "PricingServices",
    "create_pricing_services",
    "create_store",
    "Booking",
    "PricingService",
    "SimulationResult",
    "PricingSnapshotManager",
    "resolve_active_version",
    "VersioningService",
]
