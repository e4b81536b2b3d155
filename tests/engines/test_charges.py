"""
Tests for the charge computation engine.

Covers:
- PURE and MARKUP discounts
- Threshold selection among candidates
- Zero-hour and zero-amount guards
- Half-up rounding at 2 and 5 decimal places
- Idempotence
"""

from decimal import Decimal

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from billing_engines.charges import (
    apply_discount,
    calculate_discount_percentage,
    calculate_effective_rate,
    compute_charge,
    round_amount,
    round_percentage,
    select_discount_by_threshold,
)
from billing_kernel.domain.values import DiscountKind
from billing_kernel.exceptions import FormulaEvaluationError, UnknownDiscountKindError
from tests.conftest import make_rule

amounts = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


class TestComputeChargeWithoutDiscount:
    """No candidates: the original amount is billed."""

    def test_no_candidates(self):
        result = compute_charge(hours=Decimal("8"), hourly_rate=Decimal("10"))

        assert result.original_amount == Decimal("80.00")
        assert result.final_amount == Decimal("80.00")
        assert result.discount_amount == Decimal("0.00")
        assert result.discount_percentage == Decimal("0.00000")
        assert result.effective_rate == Decimal("10.00")
        assert result.applied_discount_id is None
        assert not result.has_discount

    def test_amount_below_every_threshold(self):
        """Candidates whose thresholds are not reached leave the amount unchanged."""
        rule = make_rule(amount="500")

        result = compute_charge(
            hours=Decimal("8"), hourly_rate=Decimal("10"), candidates=(rule,)
        )

        assert result.final_amount == Decimal("80.00")
        assert result.applied_discount_id is None

    def test_zero_hours_effective_rate_is_zero(self):
        result = compute_charge(hours=Decimal("0"), hourly_rate=Decimal("150"))

        assert result.original_amount == Decimal("0.00")
        assert result.effective_rate == Decimal("0.00")


class TestComputeChargeWithDiscount:
    """PURE subtracts the formula result, MARKUP adds it."""

    def test_pure_discount(self):
        rule = make_rule(discount_id=7, kind=DiscountKind.PURE, formula="@ * 0.1")

        result = compute_charge(
            hours=Decimal("8"), hourly_rate=Decimal("10"), candidates=(rule,)
        )

        assert result.original_amount == Decimal("80.00")
        assert result.final_amount == Decimal("72.00")
        assert result.discount_amount == Decimal("-8.00")
        assert result.discount_percentage == Decimal("-10.00000")
        assert result.effective_rate == Decimal("9.00")
        assert result.applied_discount_id == 7
        assert result.has_discount

    def test_markup(self):
        rule = make_rule(kind=DiscountKind.MARKUP, formula="@ * 0.1")

        result = compute_charge(
            hours=Decimal("8"), hourly_rate=Decimal("10"), candidates=(rule,)
        )

        assert result.final_amount == Decimal("88.00")
        assert result.discount_amount == Decimal("8.00")
        assert result.discount_percentage == Decimal("10.00000")
        assert result.effective_rate == Decimal("11.00")

    def test_two_and_a_half_hours_pure(self):
        """2.50 h at 25.00 with ten percent off."""
        rule = make_rule(kind=DiscountKind.PURE, formula="@ * 0.1")

        result = compute_charge(
            hours=Decimal("2.50"), hourly_rate=Decimal("25"), candidates=(rule,)
        )

        assert result.original_amount == Decimal("62.50")
        assert result.final_amount == Decimal("56.25")
        assert result.effective_rate == Decimal("22.50")

    def test_two_and_a_half_hours_markup(self):
        """2.50 h at 25.00 with ten percent on top."""
        rule = make_rule(kind=DiscountKind.MARKUP, formula="@ * 0.1")

        result = compute_charge(
            hours=Decimal("2.50"), hourly_rate=Decimal("25"), candidates=(rule,)
        )

        assert result.final_amount == Decimal("68.75")
        assert result.effective_rate == Decimal("27.50")

    def test_decimal_comma_formula_end_to_end(self):
        """A formula written as '@ * 0,1' prices like '@ * 0.1'."""
        rule = make_rule(discount_id=1, kind=DiscountKind.PURE, formula="@ * 0,1")

        result = compute_charge(Decimal("2.50"), Decimal("25"), [rule])

        assert result.original_amount == Decimal("62.50")
        assert result.final_amount == Decimal("56.25")
        assert result.discount_amount == Decimal("-6.25")
        assert result.discount_percentage == Decimal("-10.00000")
        assert result.applied_discount_id == 1

    def test_zero_valued_discount_is_still_applied(self):
        """A discount that changes nothing is distinct from no discount."""
        rule = make_rule(discount_id=3, formula="0")

        result = compute_charge(
            hours=Decimal("1"), hourly_rate=Decimal("100"), candidates=(rule,)
        )

        assert result.final_amount == Decimal("100.00")
        assert result.discount_amount == Decimal("0.00")
        assert result.applied_discount_id == 3
        assert result.has_discount

    def test_zero_hours_with_discount(self):
        """No division by zero when a zero-threshold discount meets zero hours."""
        rule = make_rule(formula="@ * 0.1")

        result = compute_charge(
            hours=Decimal("0"), hourly_rate=Decimal("100"), candidates=(rule,)
        )

        assert result.final_amount == Decimal("0.00")
        assert result.discount_percentage == Decimal("0.00000")
        assert result.effective_rate == Decimal("0.00")
        assert result.applied_discount_id == rule.discount_id

    def test_unknown_kind_rejected(self):
        rule = make_rule(discount_id=9, kind=3)

        with pytest.raises(UnknownDiscountKindError) as exc_info:
            compute_charge(hours=Decimal("1"), hourly_rate=Decimal("10"), candidates=(rule,))

        assert exc_info.value.discount_id == 9
        assert exc_info.value.discount_type == 3

    def test_malformed_formula_propagates(self):
        rule = make_rule(formula="@ *")

        with pytest.raises(FormulaEvaluationError):
            compute_charge(hours=Decimal("1"), hourly_rate=Decimal("10"), candidates=(rule,))

    def test_unselected_rule_with_bad_formula_is_ignored(self):
        """Only the selected rule's formula is evaluated."""
        reached = make_rule(discount_id=1, amount="0", formula="@ * 0.1")
        unreached = make_rule(discount_id=2, amount="1000", formula="@ *")

        result = compute_charge(
            hours=Decimal("1"), hourly_rate=Decimal("100"), candidates=(reached, unreached)
        )

        assert result.applied_discount_id == 1


class TestThresholdSelection:
    """Tests for select_discount_by_threshold."""

    def test_highest_reached_threshold_wins(self):
        low = make_rule(discount_id=1, amount="0")
        mid = make_rule(discount_id=2, amount="50")
        high = make_rule(discount_id=3, amount="100")

        selected = select_discount_by_threshold([low, high, mid], Decimal("75"))

        assert selected is mid

    def test_threshold_equal_to_amount_is_reached(self):
        rule = make_rule(amount="80")

        assert select_discount_by_threshold([rule], Decimal("80")) is rule

    def test_none_reached(self):
        assert select_discount_by_threshold([make_rule(amount="10")], Decimal("9.99")) is None

    def test_equal_thresholds_broken_by_discount_id(self):
        """Store order never decides between equal thresholds."""
        a = make_rule(discount_id=5, amount="10")
        b = make_rule(discount_id=2, amount="10")

        assert select_discount_by_threshold([a, b], Decimal("20")) is b
        assert select_discount_by_threshold([b, a], Decimal("20")) is b

    @given(low=amounts, high=amounts)
    @settings(max_examples=200)
    def test_selected_threshold_is_monotonic_in_amount(self, low, high):
        """A larger amount never selects a smaller threshold."""
        if low > high:
            low, high = high, low
        rules = [
            make_rule(discount_id=i, amount=threshold)
            for i, threshold in enumerate(["0", "10", "100", "1000", "10000"], start=1)
        ]

        at_low = select_discount_by_threshold(rules, low)
        at_high = select_discount_by_threshold(rules, high)

        assert at_high.amount >= at_low.amount


class TestHelpers:
    """Tests for the rounding and ratio helpers."""

    def test_round_amount_half_up(self):
        assert round_amount(Decimal("10.005")) == Decimal("10.01")
        assert round_amount(Decimal("10.004")) == Decimal("10.00")
        assert round_amount(Decimal("-10.005")) == Decimal("-10.01")

    def test_round_percentage_half_up(self):
        assert round_percentage(Decimal("0.000005")) == Decimal("0.00001")
        assert round_percentage(Decimal("0.0000049")) == Decimal("0.00000")

    def test_half_cent_rate_rounds_up(self):
        """Both the amount and the effective rate round half-up."""
        result = compute_charge(hours=Decimal("1"), hourly_rate=Decimal("10.005"))

        assert result.original_amount == Decimal("10.01")
        assert result.effective_rate == Decimal("10.01")

    def test_percentage_repeating_fraction(self):
        assert calculate_discount_percentage(Decimal("3"), Decimal("2")) == Decimal("-33.33333")
        assert calculate_discount_percentage(Decimal("3"), Decimal("5")) == Decimal("66.66667")

    def test_percentage_zero_original(self):
        assert calculate_discount_percentage(Decimal("0"), Decimal("5")) == Decimal("0")

    def test_effective_rate_zero_hours(self):
        assert calculate_effective_rate(Decimal("50"), Decimal("0")) == Decimal("0")

    def test_apply_discount_returns_unrounded(self):
        rule = make_rule(kind=DiscountKind.PURE, formula="@ / 3")

        assert apply_discount(rule, Decimal("10")) == Decimal("10") - Decimal("10") / Decimal("3")


class TestIdempotence:
    """Identical inputs produce equal breakdowns."""

    @given(
        hours=st.decimals(min_value=Decimal("0"), max_value=Decimal("100"), places=2),
        rate=st.decimals(min_value=Decimal("0"), max_value=Decimal("1000"), places=2),
        kind=st.sampled_from([DiscountKind.PURE, DiscountKind.MARKUP]),
    )
    @settings(max_examples=100)
    def test_repeated_computation_is_equal(self, hours, rate, kind):
        rules = (
            make_rule(discount_id=1, kind=kind, amount="0", formula="@ * 0.05"),
            make_rule(discount_id=2, kind=kind, amount="500", formula="@ * 0.1"),
        )

        first = compute_charge(hours=hours, hourly_rate=rate, candidates=rules)
        second = compute_charge(hours=hours, hourly_rate=rate, candidates=rules)

        assert first == second

    @given(
        hours=st.decimals(min_value=Decimal("0.01"), max_value=Decimal("100"), places=2),
        rate=st.decimals(min_value=Decimal("0.01"), max_value=Decimal("1000"), places=2),
    )
    @settings(max_examples=100)
    def test_pure_never_exceeds_markup(self, hours, rate):
        """For the same non-negative formula a PURE result is at most the MARKUP result."""
        pure = compute_charge(
            hours=hours,
            hourly_rate=rate,
            candidates=(make_rule(kind=DiscountKind.PURE, formula="@ * 0.1"),),
        )
        markup = compute_charge(
            hours=hours,
            hourly_rate=rate,
            candidates=(make_rule(kind=DiscountKind.MARKUP, formula="@ * 0.1"),),
        )

        assert pure.final_amount <= pure.original_amount <= markup.final_amount
