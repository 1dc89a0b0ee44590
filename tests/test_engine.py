"""Tests for engine/calculator.py — hand-calculated prices and breakdown shape."""

from __future__ import annotations

from decimal import Decimal, localcontext

import pytest

from vsibl_pricing.config import CampaignInput, Factor, FactorType, KeyedLookup, SlotPriority, TimeSlot
from vsibl_pricing.engine import calculate, round_price, volume_scale
from vsibl_pricing.engine.calculator import BASE_PRICE_LABEL, VOLUME_SCALING_LABEL
from vsibl_pricing.models.results import StepType


def _multiplier(name: str, value: str, priority: int = 1, **kwargs) -> Factor:
    return Factor(name=name, key=name.lower(), type=FactorType.MULTIPLIER,
                  value=Decimal(value), priority=priority, **kwargs)


def _additive(name: str, value: str, priority: int = 1, **kwargs) -> Factor:
    return Factor(name=name, key=name.lower(), type=FactorType.ADDITIVE,
                  value=Decimal(value), priority=priority, **kwargs)


# ═══════════════════════════════════════════════════════════════════════════
# Breakdown shape
# ═══════════════════════════════════════════════════════════════════════════

class TestBreakdownShape:

    def test_base_step_first(self, make_version, unit_campaign):
        result = calculate(make_version(base_price="10"), unit_campaign)
        first = result.breakdown[0]
        assert first.factor == BASE_PRICE_LABEL
        assert first.type == StepType.BASE
        assert first.priority == 0
        assert first.pre_value == 0
        assert first.change == Decimal("10")
        assert first.post_value == Decimal("10")

    def test_volume_step_last(self, make_version, unit_campaign):
        result = calculate(make_version(factors=[_multiplier("A", "2")]), unit_campaign)
        last = result.breakdown[-1]
        assert last.factor == VOLUME_SCALING_LABEL
        assert last.type == StepType.VOLUME
        assert last.priority == 0

    def test_no_factors_gives_base_and_volume_only(self, make_version, unit_campaign):
        result = calculate(make_version(), unit_campaign)
        assert [s.type for s in result.breakdown] == [StepType.BASE, StepType.VOLUME]
        assert result.final_price == Decimal("10")

    def test_steps_chain(self, make_version, evening_slot):
        """Each step starts where the previous ended and change = post − pre."""
        version = make_version(
            base_price="12.5",
            factors=[_multiplier("A", "1.1", priority=7), _additive("B", "3.25", priority=2)],
            time_slots=[evening_slot],
        )
        campaign = CampaignInput(screen_count=3, impressions_per_day=250, total_days=4,
                                 time_slots=["slot-evening"])
        result = calculate(version, campaign)

        for prev, step in zip(result.breakdown, result.breakdown[1:]):
            assert step.pre_value == prev.post_value
        for step in result.breakdown:
            assert step.post_value - step.pre_value == step.change
        assert result.final_price == round_price(result.breakdown[-1].post_value)

    def test_result_carries_version_and_base(self, make_version, unit_campaign):
        result = calculate(make_version(base_price="7", version_id="v-42"), unit_campaign)
        assert result.pricing_version_id == "v-42"
        assert result.base_price == Decimal("7")


# ═══════════════════════════════════════════════════════════════════════════
# Determinism
# ═══════════════════════════════════════════════════════════════════════════

def test_same_inputs_same_result(make_version, evening_slot):
    version = make_version(
        factors=[_multiplier("A", "1.37", priority=4), _additive("B", "2", priority=9)],
        time_slots=[evening_slot],
    )
    campaign = CampaignInput(screen_count=7, impressions_per_day=333, total_days=11,
                             time_slots=["slot-evening"])
    first = calculate(version, campaign)
    second = calculate(version, campaign)
    assert first == second
    assert first.model_dump_json() == second.model_dump_json()


# ═══════════════════════════════════════════════════════════════════════════
# Factors
# ═══════════════════════════════════════════════════════════════════════════

class TestFactors:

    def test_disabled_factor_skipped(self, make_version, unit_campaign):
        version = make_version(
            factors=[
                _multiplier("Double", "2", priority=5),
                _additive("Surcharge", "100", priority=3, enabled=False),
            ],
        )
        result = calculate(version, unit_campaign)
        assert result.final_price == Decimal("20")
        assert "Surcharge" not in [s.factor for s in result.breakdown]

    def test_higher_priority_applied_first(self, make_version, unit_campaign):
        # ×2 at 9 then +5 at 3: 10 × 2 + 5 = 25
        version = make_version(factors=[_multiplier("A", "2", priority=9), _additive("B", "5", priority=3)])
        assert calculate(version, unit_campaign).final_price == Decimal("25")

    def test_two_multipliers_commute(self, make_version, unit_campaign):
        a = _multiplier("A", "2", priority=9)
        b = _multiplier("B", "3", priority=3)
        assert calculate(make_version(factors=[a, b]), unit_campaign).final_price == Decimal("60")
        assert calculate(make_version(factors=[b, a]), unit_campaign).final_price == Decimal("60")

    def test_swapped_priority_changes_price(self, make_version, unit_campaign):
        # +5 at 9 then ×2 at 3: (10 + 5) × 2 = 30
        version = make_version(factors=[_multiplier("A", "2", priority=3), _additive("B", "5", priority=9)])
        assert calculate(version, unit_campaign).final_price == Decimal("30")

    def test_declaration_order_breaks_ties(self, make_version, unit_campaign):
        add_first = make_version(factors=[_additive("B", "5", priority=5), _multiplier("A", "2", priority=5)])
        mul_first = make_version(factors=[_multiplier("A", "2", priority=5), _additive("B", "5", priority=5)])
        assert calculate(add_first, unit_campaign).final_price == Decimal("30")
        assert calculate(mul_first, unit_campaign).final_price == Decimal("25")

    def test_breakdown_lists_factors_in_application_order(self, make_version, unit_campaign):
        version = make_version(factors=[
            _multiplier("Low", "1", priority=1),
            _multiplier("High", "1", priority=10),
            _multiplier("Mid", "1", priority=5),
        ])
        names = [s.factor for s in calculate(version, unit_campaign).breakdown[1:-1]]
        assert names == ["High", "Mid", "Low"]

    def test_additive_change_is_value(self, make_version, unit_campaign):
        version = make_version(factors=[_additive("Fee", "2.5")])
        step = calculate(version, unit_campaign).breakdown[1]
        assert step.type == StepType.ADDITIVE
        assert step.change == Decimal("2.5")
        assert step.post_value == Decimal("12.5")

    def test_multiplier_change_is_difference(self, make_version, unit_campaign):
        version = make_version(factors=[_multiplier("Discount", "0.8")])
        step = calculate(version, unit_campaign).breakdown[1]
        assert step.type == StepType.MULTIPLIER
        assert step.change == Decimal("-2")
        assert step.post_value == Decimal("8")

    def test_zero_multiplier_zeroes_price(self, make_version, unit_campaign):
        version = make_version(factors=[_multiplier("Free", "0")])
        assert calculate(version, unit_campaign).final_price == 0


class TestKeyedOverride:

    @pytest.fixture
    def priority_version(self, make_version):
        return make_version(
            base_price="1",
            factors=[
                Factor(name="Slot Priority", key="slotPriority", type=FactorType.MULTIPLIER,
                       value=Decimal("1"), lookup=KeyedLookup(values={"HIGH": Decimal("3")})),
            ],
        )

    def test_matching_key_uses_override(self, priority_version):
        campaign = CampaignInput(screen_count=1, impressions_per_day=100, total_days=1,
                                 slot_priority=SlotPriority.HIGH)
        assert calculate(priority_version, campaign).final_price == Decimal("3")

    def test_missing_key_falls_back_to_value(self, priority_version):
        campaign = CampaignInput(screen_count=1, impressions_per_day=100, total_days=1,
                                 slot_priority=SlotPriority.NORMAL)
        assert calculate(priority_version, campaign).final_price == Decimal("1")


# ═══════════════════════════════════════════════════════════════════════════
# Time slots
# ═══════════════════════════════════════════════════════════════════════════

class TestTimeSlots:

    @pytest.fixture
    def slots(self, evening_slot) -> list[TimeSlot]:
        morning = TimeSlot(id="slot-morning", name="Morning Peak", start_time="08:00",
                           end_time="11:00", multiplier=Decimal("2"), priority=1)
        return [morning, evening_slot]

    def test_empty_selection_adds_no_step(self, make_version, unit_campaign, slots):
        result = calculate(make_version(time_slots=slots), unit_campaign)
        assert StepType.TIME_SLOT not in [s.type for s in result.breakdown]
        assert result.final_price == Decimal("10")

    def test_selected_slots_by_priority(self, make_version, slots):
        campaign = CampaignInput(screen_count=1, impressions_per_day=100, total_days=1,
                                 time_slots=["slot-morning", "slot-evening"])
        result = calculate(make_version(time_slots=slots), campaign)
        slot_steps = [s for s in result.breakdown if s.type == StepType.TIME_SLOT]
        assert [s.factor for s in slot_steps] == ["Time Slot: Evening Peak", "Time Slot: Morning Peak"]
        # 10 × 1.5 × 2
        assert result.final_price == Decimal("30")

    def test_slots_after_factors(self, make_version, slots):
        campaign = CampaignInput(screen_count=1, impressions_per_day=100, total_days=1,
                                 time_slots=["slot-evening"])
        version = make_version(factors=[_additive("Fee", "2", priority=1)], time_slots=slots)
        result = calculate(version, campaign)
        assert [s.type for s in result.breakdown] == [
            StepType.BASE, StepType.ADDITIVE, StepType.TIME_SLOT, StepType.VOLUME,
        ]
        # (10 + 2) × 1.5
        assert result.final_price == Decimal("18")

    def test_unknown_slot_id_ignored(self, make_version, slots):
        campaign = CampaignInput(screen_count=1, impressions_per_day=100, total_days=1,
                                 time_slots=["no-such-slot", "slot-evening"])
        result = calculate(make_version(time_slots=slots), campaign)
        assert len([s for s in result.breakdown if s.type == StepType.TIME_SLOT]) == 1
        assert result.final_price == Decimal("15")


# ═══════════════════════════════════════════════════════════════════════════
# Volume scaling
# ═══════════════════════════════════════════════════════════════════════════

class TestVolumeScaling:

    def test_volume_scale_formula(self):
        campaign = CampaignInput(screen_count=5, impressions_per_day=300, total_days=2)
        # 5 × 2 × 3
        assert volume_scale(campaign) == Decimal("30")

    def test_volume_scaled_price(self, make_version):
        campaign = CampaignInput(screen_count=5, impressions_per_day=300, total_days=2)
        assert calculate(make_version(base_price="100"), campaign).final_price == Decimal("3000")

    def test_fractional_impressions_unit(self, make_version):
        campaign = CampaignInput(screen_count=1, impressions_per_day=150, total_days=1)
        assert calculate(make_version(base_price="10"), campaign).final_price == Decimal("15")

    def test_decimal_exactness(self, make_version):
        campaign = CampaignInput(screen_count=1, impressions_per_day=150, total_days=1)
        version = make_version(factors=[_multiplier("Discount", "0.95")])
        # 10 × 0.95 × 1.5 = 14.25, not a binary-float approximation
        assert calculate(version, campaign).final_price == Decimal("14.2500")

    def test_long_multiplier_chain_stays_exact(self, make_version, unit_campaign):
        """Products wider than any fixed context precision are carried in full."""
        factors = [_multiplier(f"M{i}", "1.23456789") for i in range(8)]
        result = calculate(make_version(base_price="10.1234567", factors=factors), unit_campaign)

        with localcontext() as ctx:
            ctx.prec = 200
            expected = Decimal("10.1234567") * Decimal("1.23456789") ** 8
            assert len(expected.as_tuple().digits) > 50
            assert result.breakdown[-1].post_value == expected
            for step in result.breakdown:
                assert step.pre_value + step.change == step.post_value
        assert result.final_price == round_price(expected)
        assert result.final_price == Decimal("54.6322")

    def test_wide_price_rounds_without_context_overflow(self):
        wide = Decimal("1234567890123456789012345678901.23456789")
        assert round_price(wide) == Decimal("1234567890123456789012345678901.2346")


# ═══════════════════════════════════════════════════════════════════════════
# Rounding
# ═══════════════════════════════════════════════════════════════════════════

class TestRounding:

    @pytest.mark.parametrize("raw, expected", [
        ("0.00005", "0.0001"),
        ("1.23445", "1.2345"),
        ("2.00004", "2.0000"),
        ("7", "7.0000"),
    ])
    def test_round_price_half_up(self, raw, expected):
        rounded = round_price(Decimal(raw))
        assert rounded == Decimal(expected)
        assert rounded.as_tuple().exponent == -4

    def test_final_price_rounded_half_up(self, make_version, unit_campaign):
        result = calculate(make_version(base_price="0.00005"), unit_campaign)
        assert result.final_price == Decimal("0.0001")
        # Intermediate steps keep full precision
        assert result.breakdown[-1].post_value == Decimal("0.00005")
