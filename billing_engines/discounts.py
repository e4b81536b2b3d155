"""
Discount rule applicability (``billing_engines.discounts``).

Responsibility
--------------
Pure narrowing of the discount rules the reference data store returned for
a work code and case:

* drop rules whose concrete case criteria conflict with the case
* keep only the rules sharing the highest priority
* optionally reject a tie at the highest priority

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO database,
ZERO clock reads.

Invariants enforced
-------------------
* A rule with a concrete case type, state or application type that differs
  from the case's value is never returned.  Unset criteria always pass.
* Output order follows input order; several rules may share the top
  priority and choosing among them is left to the charge computation.
"""

from __future__ import annotations

from collections.abc import Sequence

from billing_engines.priority import rule_priority
from billing_kernel.domain.values import Case, DiscountRule
from billing_kernel.exceptions import IndistinctDiscountPolicyError


def matches_case(rule: DiscountRule, case: Case) -> bool:
    """True if every concrete case criterion of ``rule`` equals the case's value."""
    if rule.case_type_id is not None and rule.case_type_id != case.case_type_id:
        return False
    if rule.state_id is not None and rule.state_id != case.state_id:
        return False
    if (
        rule.application_type_id is not None
        and rule.application_type_id != case.application_type_id
    ):
        return False
    return True


def filter_matching_case(rules: Sequence[DiscountRule], case: Case) -> list[DiscountRule]:
    """Rules whose case criteria are all wildcards or equal to the case."""
    return [rule for rule in rules if matches_case(rule, case)]


def highest_priority_discounts(rules: Sequence[DiscountRule]) -> list[DiscountRule]:
    """The subset of ``rules`` sharing the maximum priority.

    Returns an empty list for empty input.
    """
    if not rules:
        return []
    top = max(rule_priority(rule) for rule in rules)
    return [rule for rule in rules if rule_priority(rule) == top]


def most_applicable_discounts(
    rules: Sequence[DiscountRule],
    case: Case,
    reject_ambiguous: bool = False,
) -> list[DiscountRule]:
    """Narrow statically-eligible rules to the case-matching top-priority subset.

    Args:
        rules: Rules returned by the store for the work code and case actor.
        case: The case being billed.
        reject_ambiguous: If True, more than one policy (distinct
            ``discount_id``) at the top priority is an error instead of a
            set of candidates.  Threshold rows of one policy share its id.

    Raises:
        IndistinctDiscountPolicyError: ``reject_ambiguous`` is set and the
            top priority is shared.
    """
    candidates = highest_priority_discounts(filter_matching_case(rules, case))
    if reject_ambiguous:
        discount_ids = tuple(dict.fromkeys(rule.discount_id for rule in candidates))
        if len(discount_ids) > 1:
            raise IndistinctDiscountPolicyError(
                case_number=case.case_number,
                priority=rule_priority(candidates[0]),
                discount_ids=discount_ids,
            )
    return candidates
