"""Business-rule validation for campaign input and authored pricing configs.

Every function returns a list of human-readable messages, one per violated
rule, and an empty list when the input is valid.  Nothing here raises; the
caller decides what a non-empty list means.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from pydantic import ValidationError

from vsibl_pricing.config.campaign import (
    ENUM_CAMPAIGN_FIELDS,
    NUMERIC_CAMPAIGN_FIELDS,
    CampaignInput,
    campaign_field_for_key,
)
from vsibl_pricing.config.factor import FactorType, KeyedLookup, SlabLookup
from vsibl_pricing.config.version import ResolvedPricingVersion, RuleSet

MIN_FACTOR_PRIORITY = 1
MAX_FACTOR_PRIORITY = 10

_HH_MM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


# ═══════════════════════════════════════════════════════════════════════════
# Campaign input (booking path)
# ═══════════════════════════════════════════════════════════════════════════

def validate_campaign_input(data: CampaignInput | Mapping[str, Any]) -> list[str]:
    """Check the booking minimums.

    Accepts a ``CampaignInput`` or a raw mapping (camelCase or snake_case
    keys).  For a mapping, fields that cannot be coerced at all are reported
    individually and the range rules are skipped.
    """
    if isinstance(data, CampaignInput):
        campaign = data
    else:
        try:
            campaign = CampaignInput.model_validate(dict(data))
        except ValidationError as exc:
            return [_describe_type_error(err) for err in exc.errors()]

    errors: list[str] = []
    if campaign.screen_count < 1:
        errors.append("Screen count must be at least 1")
    if campaign.total_days < 1:
        errors.append("Duration must be at least 1 day")
    if campaign.impressions_per_day < 1:
        errors.append("Impressions per day must be at least 1")
    return errors


def _describe_type_error(err: Mapping[str, Any]) -> str:
    field = ".".join(str(part) for part in err.get("loc", ())) or "input"
    return f"Invalid value for '{field}': {err.get('msg', 'invalid')}"


def validate_time_slot_selection(
    campaign: CampaignInput,
    version: ResolvedPricingVersion,
) -> list[str]:
    """One message per selected slot id that ``version`` does not define."""
    known = {ts.id for ts in version.time_slots}
    return [
        f"Unknown time slot '{slot_id}'"
        for slot_id in campaign.time_slots
        if slot_id not in known
    ]


# ═══════════════════════════════════════════════════════════════════════════
# Pricing config (admin authoring path)
# ═══════════════════════════════════════════════════════════════════════════

def validate_config(rules: RuleSet) -> list[str]:
    """Check an authored rule set before it is stored."""
    errors: list[str] = []

    if rules.base_price <= 0:
        errors.append("Base price must be greater than 0")
    if rules.token_usd_price <= 0:
        errors.append("Token USD price must be greater than 0")

    if not rules.factors:
        errors.append("At least one pricing factor must be defined")

    for factor in rules.factors:
        if not MIN_FACTOR_PRIORITY <= factor.priority <= MAX_FACTOR_PRIORITY:
            errors.append(
                f'Factor "{factor.name}" has invalid priority {factor.priority}. '
                f"Must be {MIN_FACTOR_PRIORITY}-{MAX_FACTOR_PRIORITY}."
            )
        if factor.type == FactorType.MULTIPLIER and factor.value < 0:
            errors.append(f'Factor "{factor.name}" cannot have a negative multiplier.')
        errors.extend(_lookup_errors(factor))

    for slot in rules.time_slots:
        for label, value in (("start", slot.start_time), ("end", slot.end_time)):
            if not _HH_MM.match(value):
                errors.append(f'Time slot "{slot.name}" has invalid {label} time "{value}". Expected HH:mm.')
        if slot.multiplier < 0:
            errors.append(f'Time slot "{slot.name}" cannot have a negative multiplier.')

    return errors


def _lookup_errors(factor) -> list[str]:
    lookup = factor.lookup
    if lookup is None:
        return []

    attr = campaign_field_for_key(factor.key)
    if attr is None:
        return [f'Factor "{factor.name}" key "{factor.key}" does not name a campaign field, so its lookup can never match.']

    errors: list[str] = []
    negative_ok = factor.type == FactorType.ADDITIVE

    if isinstance(lookup, KeyedLookup):
        enum_cls = ENUM_CAMPAIGN_FIELDS.get(attr)
        if enum_cls is not None:
            allowed = {member.value for member in enum_cls}
            for lookup_key in lookup.values:
                if lookup_key not in allowed:
                    errors.append(
                        f'Factor "{factor.name}" lookup key "{lookup_key}" is not a valid '
                        f"{factor.key} value ({', '.join(sorted(allowed))})."
                    )
        errors.extend(_negative_override_errors(factor.name, lookup.values.values(), negative_ok))

    elif isinstance(lookup, SlabLookup):
        if attr not in NUMERIC_CAMPAIGN_FIELDS:
            errors.append(f'Factor "{factor.name}" uses a slab lookup on non-numeric field "{factor.key}".')
        for band in lookup.bands:
            if band.max is not None and band.max < band.min:
                errors.append(f'Factor "{factor.name}" has a slab with max {band.max} below min {band.min}.')
        errors.extend(_negative_override_errors(factor.name, (b.value for b in lookup.bands), negative_ok))

    return errors


def _negative_override_errors(name: str, values, negative_ok: bool) -> list[str]:
    if negative_ok:
        return []
    if any(Decimal(v) < 0 for v in values):
        return [f'Factor "{name}" cannot have a negative multiplier override.']
    return []
