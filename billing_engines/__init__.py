"""
Module: billing_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    billing calculation sub-modules.  This is the canonical import surface
    for the services layer.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import billing_kernel (domain values, exceptions, logging).
    MUST NOT import billing_services or billing_config.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      Dates are passed in as explicit parameters.
    - Decimal-only arithmetic: all monetary amounts and rates use
      ``Decimal``; floats are never used.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from billing_engines import compute_charge, discount_priority
    from billing_engines import most_applicable_discounts
    from billing_engines import select_price_list_entry, select_person_rate
"""

from billing_kernel.logging_config import get_logger

logger = get_logger("engines")

from billing_engines.charges import (
    apply_discount,
    calculate_discount_percentage,
    calculate_effective_rate,
    compute_charge,
    round_amount,
    round_percentage,
    select_discount_by_threshold,
)
from billing_engines.discounts import (
    filter_matching_case,
    highest_priority_discounts,
    matches_case,
    most_applicable_discounts,
)
from billing_engines.formula import evaluate_formula, normalize_formula
from billing_engines.priority import (
    MAX_PRIORITY,
    MIN_PRIORITY,
    TIME_WORK_CODE_TYPE,
    discount_priority,
    rule_priority,
)
from billing_engines.rates import select_person_rate, select_price_list_entry
from billing_engines.tracer import compute_input_fingerprint, traced_engine
from billing_engines.worked_hours import duration_to_hours, weight_duration

__all__ = [
    # Charges
    "apply_discount",
    "calculate_discount_percentage",
    "calculate_effective_rate",
    "compute_charge",
    "round_amount",
    "round_percentage",
    "select_discount_by_threshold",
    # Discounts
    "filter_matching_case",
    "highest_priority_discounts",
    "matches_case",
    "most_applicable_discounts",
    # Formula
    "evaluate_formula",
    "normalize_formula",
    # Priority
    "MAX_PRIORITY",
    "MIN_PRIORITY",
    "TIME_WORK_CODE_TYPE",
    "discount_priority",
    "rule_priority",
    # Rates
    "select_person_rate",
    "select_price_list_entry",
    # Tracer
    "compute_input_fingerprint",
    "traced_engine",
    # Worked hours
    "duration_to_hours",
    "weight_duration",
]
