"""
Tests for RateResolver.

Covers:
- Fallback order: work code, case price list, default price list,
  person override, person default
- Lower levels are not consulted once a higher level yields a rate
- Price-change dates are evaluated against the injected clock
- Currency policy and fallback
"""

from datetime import date
from decimal import Decimal

import pytest

from billing_config.schema import BillingConfig
from billing_kernel.domain.values import PersonRate, PriceListEntry, RateLevel, WorkCode
from billing_kernel.exceptions import CurrencyNotFoundError, RateNotFoundError
from billing_services.rate_resolver import RateResolver
from tests.conftest import CLIENT_ROLE_TYPE_ID
from tests.fakes import InMemoryReferenceStore


@pytest.fixture
def store(case):
    store = InMemoryReferenceStore()
    store.add_case(case)
    store.case_actors[case.case_id] = 77
    store.case_currencies[case.case_id] = "USD"
    return store


def _entry(rate, price_list_id=10, currency="USD", **kwargs) -> PriceListEntry:
    return PriceListEntry(
        price_list_id=price_list_id,
        category_specificity=kwargs.pop("category_specificity", 1),
        currency=currency,
        hourly_rate=Decimal(rate),
        **kwargs,
    )


class TestFallbackOrder:
    """Each level is used only when every level above it yields nothing."""

    def test_work_code_fixed_rate_short_circuits(self, store, case, config, clock):
        """A fixed work-code rate must not query the price lists."""
        store.work_codes["FIX"] = WorkCode(
            "FIX", replace_amount=True, default_amount=Decimal("150")
        )
        store.case_price_lists[case.case_id] = [_entry("99")]

        quote = RateResolver(store, config, clock).resolve(case, "FIX", "jdoe")

        assert quote.level == RateLevel.WORK_CODE_FIXED
        assert quote.hourly_rate == Decimal("150")
        assert quote.currency == "USD"
        assert "find_case_price_list_entries" not in store.calls
        assert "find_person_rates" not in store.calls

    def test_default_amount_without_replace_flag_is_ignored(self, store, case, config, clock):
        store.work_codes["PAT"] = WorkCode("PAT", default_amount=Decimal("150"))
        store.case_price_lists[case.case_id] = [_entry("99")]

        quote = RateResolver(store, config, clock).resolve(case, "PAT", "jdoe")

        assert quote.level == RateLevel.CASE_PRICE_LIST
        assert quote.hourly_rate == Decimal("99")

    def test_case_price_list_carries_its_own_currency(self, store, case, config, clock):
        store.case_price_lists[case.case_id] = [_entry("120", currency="GBP")]

        quote = RateResolver(store, config, clock).resolve(case, "PAT", "jdoe")

        assert quote.currency == "GBP"
        assert "find_case_currency" not in store.calls
        assert "find_person_rates" not in store.calls

    def test_default_price_list_after_case_price_list(self, store, case, clock):
        config = BillingConfig(role_type_id=CLIENT_ROLE_TYPE_ID, default_price_list_id=1)
        store.price_lists[1] = [_entry("80", price_list_id=1, currency="EUR")]

        quote = RateResolver(store, config, clock).resolve(case, "PAT", "jdoe")

        assert quote.level == RateLevel.DEFAULT_PRICE_LIST
        assert quote.hourly_rate == Decimal("80")
        assert quote.currency == "EUR"

    def test_default_price_list_not_read_when_unconfigured(self, store, case, config, clock):
        store.price_lists[1] = [_entry("80", price_list_id=1)]
        store.person_default_rates["jdoe"] = Decimal("60")

        quote = RateResolver(store, config, clock).resolve(case, "PAT", "jdoe")

        assert quote.level == RateLevel.PERSON_DEFAULT
        assert "find_price_list_entries" not in store.calls

    def test_person_override_before_person_default(self, store, case, config, clock):
        store.person_rates["jdoe"] = [PersonRate("jdoe", Decimal("95"), work_code_id="PAT")]
        store.person_default_rates["jdoe"] = Decimal("60")

        quote = RateResolver(store, config, clock).resolve(case, "PAT", "jdoe")

        assert quote.level == RateLevel.PERSON_OVERRIDE
        assert quote.hourly_rate == Decimal("95")
        assert quote.currency == "USD"
        assert "find_person_default_rate" not in store.calls

    def test_person_override_for_other_work_code_skipped(self, store, case, config, clock):
        store.person_rates["jdoe"] = [PersonRate("jdoe", Decimal("95"), work_code_id="TM")]
        store.person_default_rates["jdoe"] = Decimal("60")

        quote = RateResolver(store, config, clock).resolve(case, "PAT", "jdoe")

        assert quote.level == RateLevel.PERSON_DEFAULT
        assert quote.hourly_rate == Decimal("60")

    def test_no_rate_anywhere(self, store, case, config, clock):
        with pytest.raises(RateNotFoundError) as exc_info:
            RateResolver(store, config, clock).resolve(case, "PAT", "jdoe")

        assert exc_info.value.login_id == "jdoe"
        assert exc_info.value.work_code_id == "PAT"
        assert exc_info.value.code == "RATE_NOT_FOUND"

    def test_rate_resolved_logged(self, store, case, config, clock, captured_logs):
        store.person_default_rates["jdoe"] = Decimal("60")

        RateResolver(store, config, clock).resolve(case, "PAT", "jdoe")

        logs = [r for r in captured_logs() if r["message"] == "rate_resolved"]
        assert logs[0]["rate_level"] == "PERSON_DEFAULT"
        assert logs[0]["hourly_rate"] == "60"


class TestPriceListEffectiveness:
    """Price-list entries apply from their price-change date on."""

    def test_future_entry_skipped(self, store, case, config, clock):
        store.case_price_lists[case.case_id] = [
            _entry("100", price_change_date=date(2024, 1, 1)),
            _entry("130", price_change_date=date(2024, 7, 1)),
        ]

        quote = RateResolver(store, config, clock).resolve(case, "PAT", "jdoe")

        assert quote.hourly_rate == Decimal("100")

    def test_entry_effective_once_clock_reaches_date(self, store, case, config, clock):
        store.case_price_lists[case.case_id] = [
            _entry("100", price_change_date=date(2024, 1, 1)),
            _entry("130", price_change_date=date(2024, 7, 1)),
        ]
        clock.advance(60 * 60 * 24 * 30)

        quote = RateResolver(store, config, clock).resolve(case, "PAT", "jdoe")

        assert quote.hourly_rate == Decimal("130")

    def test_entry_for_other_actor_falls_through(self, store, case, config, clock):
        store.case_price_lists[case.case_id] = [_entry("100", actor_id=5)]
        store.person_default_rates["jdoe"] = Decimal("60")

        quote = RateResolver(store, config, clock).resolve(case, "PAT", "jdoe")

        assert quote.level == RateLevel.PERSON_DEFAULT


class TestResolveCurrency:
    """Currency policy for rates whose source carries no currency."""

    def test_case_currency(self, store, case, config, clock):
        assert RateResolver(store, config, clock).resolve_currency(case) == "USD"
        assert "find_system_default_currency" not in store.calls

    def test_system_default_currency(self, store, case, clock):
        store.system_default_currency = "CHF"
        config = BillingConfig(
            role_type_id=CLIENT_ROLE_TYPE_ID, use_system_default_currency=True
        )

        assert RateResolver(store, config, clock).resolve_currency(case) == "CHF"
        assert "find_case_currency" not in store.calls

    def test_fallback_currency(self, store, case, config, clock):
        store.case_currencies.clear()

        assert RateResolver(store, config, clock).resolve_currency(case) == "EUR"

    def test_no_currency(self, store, case, clock):
        store.case_currencies.clear()
        config = BillingConfig(role_type_id=CLIENT_ROLE_TYPE_ID)

        with pytest.raises(CurrencyNotFoundError) as exc_info:
            RateResolver(store, config, clock).resolve_currency(case)

        assert exc_info.value.case_number == case.case_number

    def test_missing_currency_fails_person_rate(self, store, case, clock):
        store.case_currencies.clear()
        store.person_default_rates["jdoe"] = Decimal("60")
        config = BillingConfig(role_type_id=CLIENT_ROLE_TYPE_ID)

        with pytest.raises(CurrencyNotFoundError):
            RateResolver(store, config, clock).resolve(case, "PAT", "jdoe")
