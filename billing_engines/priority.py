"""
Discount priority classification.

Pure functions with deterministic behavior. No I/O.

A discount rule's priority is its specificity encoded as a 5-bit number.
The four optional match criteria are bits, most significant first:

    case type         16
    state              8
    application type   4
    work code          2
    work code type     1   (set only for an exact activity-type match, "T")

The encoding is total and injective over the 32 possible tuples, and a
rule with a concrete criterion in a more significant position always
outranks one without it.
"""

from __future__ import annotations

from billing_kernel.domain.values import TIME_WORK_CODE_TYPE, DiscountRule

MIN_PRIORITY = 0
MAX_PRIORITY = 31


def discount_priority(
    has_case_type: bool,
    has_state: bool,
    has_app_type: bool,
    has_work_code: bool,
    work_code_type: str | None,
) -> int:
    """Map the specificity of a discount rule to a rank in ``[0, 31]``.

    Args:
        has_case_type: Rule narrows to a case type.
        has_state: Rule narrows to a state.
        has_app_type: Rule narrows to an application type.
        has_work_code: Rule narrows to a work code.
        work_code_type: The rule's work code type; ``"T"`` adds one.

    Returns:
        Higher numbers are more specific.
    """
    return (
        (16 if has_case_type else 0)
        | (8 if has_state else 0)
        | (4 if has_app_type else 0)
        | (2 if has_work_code else 0)
        | (1 if work_code_type == TIME_WORK_CODE_TYPE else 0)
    )


def rule_priority(rule: DiscountRule) -> int:
    """Priority of ``rule`` derived from which of its criteria are set."""
    return discount_priority(
        has_case_type=rule.case_type_id is not None,
        has_state=rule.state_id is not None,
        has_app_type=rule.application_type_id is not None,
        has_work_code=rule.work_code_id is not None,
        work_code_type=rule.work_code_type,
    )
