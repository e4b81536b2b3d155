"""
Tests for DiscountMatcher.
"""

import pytest

from billing_config.schema import BillingConfig
from billing_kernel.exceptions import IndistinctDiscountPolicyError
from billing_services.discount_matcher import DiscountMatcher
from tests.conftest import CLIENT_ROLE_TYPE_ID, make_rule
from tests.fakes import InMemoryReferenceStore


@pytest.fixture
def store(case):
    store = InMemoryReferenceStore()
    store.add_case(case)
    return store


class TestApplicableDiscounts:
    """Narrowing of the store's rules to the top-priority, case-matching set."""

    def test_no_rules(self, store, case, config):
        assert DiscountMatcher(store, config).applicable_discounts("PAT", case) == []

    def test_conflicting_rule_dropped(self, store, case, config):
        store.discount_rules = [
            make_rule(1, case_type_id=case.case_type_id + 1),
            make_rule(2),
        ]

        result = DiscountMatcher(store, config).applicable_discounts("PAT", case)

        assert [r.discount_id for r in result] == [2]

    def test_most_specific_wins(self, store, case, config):
        store.discount_rules = [
            make_rule(1, work_code_id="PAT"),
            make_rule(2, state_id="US", work_code_id="PAT"),
            make_rule(3, state_id="US"),
        ]

        result = DiscountMatcher(store, config).applicable_discounts("PAT", case)

        assert [r.discount_id for r in result] == [2]

    def test_tie_kept_by_default(self, store, case, config):
        store.discount_rules = [
            make_rule(1, state_id="US"),
            make_rule(2, state_id="US", amount="100"),
        ]

        result = DiscountMatcher(store, config).applicable_discounts("PAT", case)

        assert {r.discount_id for r in result} == {1, 2}

    def test_tie_rejected_in_strict_mode(self, store, case):
        store.discount_rules = [
            make_rule(1, state_id="US"),
            make_rule(2, state_id="US", amount="100"),
        ]
        config = BillingConfig(
            role_type_id=CLIENT_ROLE_TYPE_ID, reject_ambiguous_discounts=True
        )

        with pytest.raises(IndistinctDiscountPolicyError) as exc_info:
            DiscountMatcher(store, config).applicable_discounts("PAT", case)

        assert exc_info.value.discount_ids == (1, 2)
        assert exc_info.value.case_number == case.case_number

    def test_threshold_rows_of_one_policy_allowed_in_strict_mode(self, store, case):
        store.discount_rules = [
            make_rule(1, state_id="US", amount="0"),
            make_rule(1, state_id="US", amount="500", formula="@ * 0.2"),
        ]
        config = BillingConfig(
            role_type_id=CLIENT_ROLE_TYPE_ID, reject_ambiguous_discounts=True
        )

        result = DiscountMatcher(store, config).applicable_discounts("PAT", case)

        assert len(result) == 2

    def test_matching_logged(self, store, case, config, captured_logs):
        store.discount_rules = [make_rule(4, state_id="US"), make_rule(5)]

        DiscountMatcher(store, config).applicable_discounts("PAT", case)

        logs = [r for r in captured_logs() if r["message"] == "discounts_matched"]
        assert logs[0]["candidate_count"] == 2
        assert logs[0]["applicable_count"] == 1
        assert logs[0]["discount_ids"] == [4]
        assert logs[0]["priority"] == 8
