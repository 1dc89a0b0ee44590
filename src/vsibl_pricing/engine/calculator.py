"""Pricing engine — (resolved version, campaign input) → price + ordered breakdown.

Pure and deterministic: no I/O, no clock, no shared state.  Identical inputs
give identical ``PricingResult`` objects.

Order of application:
  1. Base price              (synthetic BASE step)
  2. Enabled factors         priority 10 → 1, ties in declaration order
  3. Selected time slots     priority high → low, unknown ids ignored
  4. Volume scaling          screens × days × (impressions/day ÷ 100)
  5. Round final price       4 dp, ROUND_HALF_UP

Every step amount is exact.  Each operation runs with as many digits as its
operands can produce and traps ``Inexact``, so a rounded intermediate raises
instead of slipping into the breakdown.
"""

from __future__ import annotations

import operator
from collections.abc import Callable
from decimal import ROUND_HALF_UP, Decimal, Inexact, localcontext

from vsibl_pricing.config.campaign import CampaignInput
from vsibl_pricing.config.factor import FactorType
from vsibl_pricing.config.version import ResolvedPricingVersion
from vsibl_pricing.engine.lookups import resolve_factor_value
from vsibl_pricing.models.results import PricingBreakdownStep, PricingResult, StepType

BASE_PRICE_LABEL = "Base Price"
VOLUME_SCALING_LABEL = "Volume Scaling (Screens * Days * Impressions/100)"
IMPRESSIONS_UNIT = Decimal(100)
FINAL_PRICE_QUANTUM = Decimal("0.0001")


def _exact(op: Callable[[Decimal, Decimal], Decimal], a: Decimal, b: Decimal) -> Decimal:
    """``op(a, b)`` with enough precision that the result is never rounded."""
    with localcontext() as ctx:
        # Bounds the digits of an exact sum, difference or product
        ctx.prec = (
            len(a.as_tuple().digits)
            + len(b.as_tuple().digits)
            + abs(a.adjusted() - b.adjusted())
            + 2
        )
        ctx.traps[Inexact] = True
        return op(a, b)


def round_price(value: Decimal) -> Decimal:
    """Quantize to 4 decimal places, halves rounded away from zero."""
    with localcontext() as ctx:
        ctx.prec = max(value.adjusted(), 0) + 6
        ctx.traps[Inexact] = False
        return value.quantize(FINAL_PRICE_QUANTUM, rounding=ROUND_HALF_UP)


def volume_scale(campaign: CampaignInput) -> Decimal:
    """screens × days × impressions-per-day / 100."""
    units = Decimal(campaign.screen_count * campaign.total_days * campaign.impressions_per_day)
    return _exact(operator.truediv, units, IMPRESSIONS_UNIT)


def _step(
    factor: str,
    priority: int,
    step_type: StepType,
    pre: Decimal,
    post: Decimal,
    change: Decimal | None = None,
) -> PricingBreakdownStep:
    return PricingBreakdownStep(
        factor=factor,
        priority=priority,
        type=step_type,
        pre_value=pre,
        change=_exact(operator.sub, post, pre) if change is None else change,
        post_value=post,
    )


def calculate(version: ResolvedPricingVersion, campaign: CampaignInput) -> PricingResult:
    """Price ``campaign`` against ``version``.

    Inputs are expected to have passed ``validate_campaign_input``; a zero
    screen count or duration would otherwise zero the price.
    """
    current = version.base_price
    breakdown: list[PricingBreakdownStep] = [
        _step(BASE_PRICE_LABEL, 0, StepType.BASE, Decimal(0), current, change=current)
    ]

    # ── Factors ────────────────────────────────────────────────────────
    factors = sorted(
        (f for f in version.factors if f.enabled),
        key=lambda f: f.priority,
        reverse=True,
    )
    for factor in factors:
        pre = current
        value = resolve_factor_value(factor, campaign)
        if factor.type == FactorType.MULTIPLIER:
            current = _exact(operator.mul, pre, value)
            breakdown.append(_step(factor.name, factor.priority, StepType.MULTIPLIER, pre, current))
        else:
            current = _exact(operator.add, pre, value)
            breakdown.append(_step(factor.name, factor.priority, StepType.ADDITIVE, pre, current, change=value))

    # ── Time slots ─────────────────────────────────────────────────────
    selected = set(campaign.time_slots)
    slots = sorted(
        (ts for ts in version.time_slots if ts.id in selected),
        key=lambda ts: ts.priority,
        reverse=True,
    )
    for slot in slots:
        pre = current
        current = _exact(operator.mul, pre, slot.multiplier)
        breakdown.append(_step(f"Time Slot: {slot.name}", slot.priority, StepType.TIME_SLOT, pre, current))

    # ── Volume scaling ─────────────────────────────────────────────────
    pre = current
    current = _exact(operator.mul, pre, volume_scale(campaign))
    breakdown.append(_step(VOLUME_SCALING_LABEL, 0, StepType.VOLUME, pre, current))

    return PricingResult(
        base_price=version.base_price,
        final_price=round_price(current),
        breakdown=breakdown,
        pricing_version_id=version.id,
    )
