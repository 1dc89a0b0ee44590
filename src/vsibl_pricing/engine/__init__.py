"""Engine — pure pricing computation and business-rule validation."""

from vsibl_pricing.engine.calculator import calculate, round_price, volume_scale
from vsibl_pricing.engine.lookups import resolve_factor_value
from vsibl_pricing.engine.validator import (
    validate_campaign_input,
    validate_config,
    validate_time_slot_selection,
)

__all__ = [
    "calculate",
    "round_price",
    "volume_scale",
    "resolve_factor_value",
    "validate_campaign_input",
    "validate_config",
    "validate_time_slot_selection",
]
