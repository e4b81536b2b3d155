"""
DiscountMatcher -- candidate discount rules for a work code and case.

Responsibility:
    Reads the statically eligible discount rules for the case's billed
    actor and narrows them with the pure engines to the case-matching
    subset at the highest priority.

Architecture position:
    Services -- imperative shell around ``billing_engines.discounts``.

Invariants enforced:
    - No returned rule has a concrete criterion conflicting with the case.
    - All returned rules share one priority; an empty list is the normal
      "no discount" outcome.

Failure modes:
    - IndistinctDiscountPolicyError: ``reject_ambiguous_discounts`` is set
      and several policies share the top priority.
    - ReferenceDataUnavailableError: propagated from the store.
"""

from __future__ import annotations

from billing_config.schema import BillingConfig
from billing_engines.discounts import most_applicable_discounts
from billing_engines.priority import rule_priority
from billing_kernel.domain.values import Case, DiscountRule
from billing_kernel.logging_config import get_logger
from billing_services.reference_data import ReferenceDataStore

logger = get_logger("services.discount_matcher")


class DiscountMatcher:
    """Selects the discount rules that compete for a charge."""

    def __init__(self, store: ReferenceDataStore, config: BillingConfig):
        self._store = store
        self._config = config

    def applicable_discounts(self, work_code_id: str, case: Case) -> list[DiscountRule]:
        rules = self._store.find_discount_rules(
            work_code_id, case.case_id, self._config.role_type_id
        )
        candidates = most_applicable_discounts(
            rules,
            case,
            reject_ambiguous=self._config.reject_ambiguous_discounts,
        )

        logger.info(
            "discounts_matched",
            extra={
                "case_number": case.case_number,
                "work_code_id": work_code_id,
                "candidate_count": len(rules),
                "applicable_count": len(candidates),
                "priority": rule_priority(candidates[0]) if candidates else None,
                "discount_ids": sorted({rule.discount_id for rule in candidates}),
            },
        )
        return candidates
