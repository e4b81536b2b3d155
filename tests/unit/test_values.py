"""
Tests for the billing domain value objects.
"""

from dataclasses import FrozenInstanceError
from datetime import date
from decimal import Decimal

import pytest

from billing_kernel.domain.values import (
    BillingResolution,
    Case,
    ChargeBreakdown,
    DiscountKind,
    DiscountRule,
    PersonRate,
    PriceListEntry,
    RateLevel,
    RateQuote,
    WorkCode,
    to_decimal,
)


class TestToDecimal:
    """Tests for to_decimal."""

    def test_decimal_passthrough(self):
        value = Decimal("1.10")
        assert to_decimal(value, "x") is value

    def test_float_goes_through_str(self):
        assert to_decimal(0.1, "x") == Decimal("0.1")

    def test_invalid_rejected(self):
        with pytest.raises(ValueError, match="Invalid rate"):
            to_decimal("ten", "rate")


class TestWorkCode:
    """Tests for WorkCode.fixed_rate."""

    def test_fixed_rate_requires_override_flag(self):
        code = WorkCode(work_code_id="PAT", default_amount=Decimal("200"))
        assert code.fixed_rate is None

    def test_fixed_rate_requires_amount(self):
        code = WorkCode(work_code_id="PAT", replace_amount=True)
        assert code.fixed_rate is None

    def test_fixed_rate(self):
        code = WorkCode(work_code_id="PAT", replace_amount=True, default_amount="200")
        assert code.fixed_rate == Decimal("200")


class TestBlankNormalization:
    """Blank strings are stored as None."""

    def test_case_state(self):
        assert Case(case_id=1, case_number="C", state_id=" ").state_id is None

    def test_rule_criteria(self):
        rule = DiscountRule(discount_id=1, discount_type=1, state_id="", work_code_id=" ")
        assert rule.state_id is None
        assert rule.work_code_id is None

    def test_price_list_login(self):
        entry = PriceListEntry(
            price_list_id=1, category_specificity=0, currency="EUR", hourly_rate="1", login_id=""
        )
        assert entry.login_id is None

    def test_person_rate_work_code(self):
        assert PersonRate(login_id="a", hourly_rate="1", work_code_id="").work_code_id is None


class TestDiscountRule:
    """Tests for DiscountRule."""

    def test_known_kinds(self):
        assert DiscountRule(discount_id=1, discount_type=1).kind is DiscountKind.PURE
        assert DiscountRule(discount_id=1, discount_type=2).kind is DiscountKind.MARKUP

    def test_unknown_kind_is_none(self):
        assert DiscountRule(discount_id=1, discount_type=7).kind is None

    def test_amount_defaults_to_zero(self):
        assert DiscountRule(discount_id=1, discount_type=1).amount == Decimal("0")

    def test_amount_coerced(self):
        assert DiscountRule(discount_id=1, discount_type=1, amount="12.50").amount == Decimal("12.50")

    def test_frozen(self):
        rule = DiscountRule(discount_id=1, discount_type=1)
        with pytest.raises(FrozenInstanceError):
            rule.amount = Decimal("1")


class TestBillingResolution:
    """Tests for BillingResolution accessors."""

    def test_rate_accessors(self):
        breakdown = ChargeBreakdown(
            hours=Decimal("1"),
            hourly_rate=Decimal("100"),
            original_amount=Decimal("100.00"),
            final_amount=Decimal("100.00"),
            discount_amount=Decimal("0.00"),
            discount_percentage=Decimal("0.00000"),
            effective_rate=Decimal("100.00"),
        )
        resolution = BillingResolution(
            case=Case(case_id=1, case_number="C-1"),
            work_code_id="PAT",
            login_id="jdoe",
            rate=RateQuote(hourly_rate="100", currency="USD", level=RateLevel.PERSON_DEFAULT),
            chargeable=breakdown,
            actual=breakdown,
        )

        assert resolution.currency == "USD"
        assert resolution.hourly_rate == Decimal("100")
        assert resolution.rate_level is RateLevel.PERSON_DEFAULT
        assert not resolution.chargeable.has_discount

    def test_price_change_date_kept(self):
        entry = PriceListEntry(
            price_list_id=1,
            category_specificity=0,
            currency="EUR",
            hourly_rate=Decimal("1"),
            price_change_date=date(2024, 1, 1),
        )
        assert entry.price_change_date == date(2024, 1, 1)
