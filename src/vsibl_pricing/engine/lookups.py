"""Factor resolution — a factor's effective value for one campaign.

Pure lookup, no arithmetic on the running price.
"""

from __future__ import annotations

from decimal import Decimal

from vsibl_pricing.config.campaign import CampaignInput
from vsibl_pricing.config.factor import Factor, KeyedLookup, SlabLookup


def resolve_factor_value(factor: Factor, campaign: CampaignInput) -> Decimal:
    """Return the lookup override for ``campaign``'s ``factor.key`` field, else ``factor.value``."""
    lookup = factor.lookup
    if lookup is None:
        return factor.value

    field_value = campaign.field_value(factor.key)
    if field_value is None:
        return factor.value

    if isinstance(lookup, KeyedLookup):
        override = lookup.values.get(str(field_value))
        return override if override is not None else factor.value

    if isinstance(lookup, SlabLookup):
        if isinstance(field_value, str):
            return factor.value
        x = Decimal(field_value)
        for band in lookup.bands:
            if band.contains(x):
                return band.value
        return factor.value

    return factor.value
