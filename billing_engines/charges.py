"""
Charge Computation Engine.

Pure functions with deterministic behavior. No I/O.

Given worked hours, a resolved hourly rate and the narrowed discount
candidates, this engine selects at most one discount to apply and computes
the final chargeable amount, the discount amount, the discount percentage
and the effective hourly rate.

Selection:
    Candidates are ordered by their amount threshold, largest first, and
    the first one whose threshold the undiscounted amount reaches is
    applied.  If no threshold is reached, no discount applies.

Application:
    The selected rule's price change formula is evaluated with ``@`` bound
    to the undiscounted amount.  A pure discount subtracts the result, a
    markup adds it.

Rounding:
    Amounts and rates are rounded to 2 decimal places, the percentage to 5,
    always ROUND_HALF_UP.

Usage:
    from billing_engines.charges import compute_charge

    breakdown = compute_charge(
        hours=Decimal("2.50"),
        hourly_rate=Decimal("25"),
        candidates=[discount],
    )
    breakdown.final_amount  # Decimal("56.25")
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from billing_engines.formula import evaluate_formula
from billing_engines.tracer import traced_engine
from billing_kernel.domain.values import ChargeBreakdown, DiscountKind, DiscountRule
from billing_kernel.exceptions import UnknownDiscountKindError
from billing_kernel.logging_config import get_logger

logger = get_logger("engines.charges")


# ============================================================================
# Constants
# ============================================================================

_TWO_PLACES = Decimal("0.01")
_FIVE_PLACES = Decimal("0.00001")
_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


def round_amount(value: Decimal) -> Decimal:
    """Round a monetary amount or rate to 2 decimal places, half-up."""
    return value.quantize(_TWO_PLACES, rounding=ROUND_HALF_UP)


def round_percentage(value: Decimal) -> Decimal:
    """Round a percentage to 5 decimal places, half-up."""
    return value.quantize(_FIVE_PLACES, rounding=ROUND_HALF_UP)


# ============================================================================
# Discount selection
# ============================================================================


def select_discount_by_threshold(
    candidates: Sequence[DiscountRule],
    original_amount: Decimal,
) -> DiscountRule | None:
    """Pick the candidate with the largest threshold ``original_amount`` reaches.

    Candidates with equal thresholds are ordered by ``discount_id`` so the
    choice never depends on the order the store returned them in.

    Returns:
        The selected rule, or None when the amount is below every threshold.
    """
    ordered = sorted(candidates, key=lambda rule: (-rule.amount, rule.discount_id))
    for rule in ordered:
        if rule.amount <= original_amount:
            return rule
    return None


def apply_discount(rule: DiscountRule, original_amount: Decimal) -> Decimal:
    """Apply ``rule`` to ``original_amount`` and return the unrounded final amount.

    Raises:
        UnknownDiscountKindError: The rule is neither PURE nor MARKUP.
        FormulaEvaluationError: The rule's formula cannot be evaluated.
    """
    kind = rule.kind
    if kind is None:
        raise UnknownDiscountKindError(rule.discount_id, rule.discount_type)

    adjustment = evaluate_formula(rule.price_change_formula, original_amount)
    if kind is DiscountKind.PURE:
        return original_amount - adjustment
    return original_amount + adjustment


# ============================================================================
# Charge computation
# ============================================================================


def calculate_discount_percentage(original_amount: Decimal, final_amount: Decimal) -> Decimal:
    """``(final - original) / original * 100``, or zero for a zero original."""
    if original_amount == _ZERO:
        return round_percentage(_ZERO)
    return round_percentage((final_amount - original_amount) / original_amount * _HUNDRED)


def calculate_effective_rate(final_amount: Decimal, hours: Decimal) -> Decimal:
    """``final / hours``, or zero when no hours were charged."""
    if hours == _ZERO:
        return round_amount(_ZERO)
    return round_amount(final_amount / hours)


@traced_engine("charges", "1.0", fingerprint_fields=("hours", "hourly_rate", "candidates"))
def compute_charge(
    hours: Decimal,
    hourly_rate: Decimal,
    candidates: Sequence[DiscountRule] = (),
) -> ChargeBreakdown:
    """Compute the charge breakdown for ``hours`` at ``hourly_rate``.

    Args:
        hours: Chargeable hours, already duration-weighted by the caller.
        hourly_rate: The resolved hourly rate.
        candidates: Discount rules sharing the top priority for the case.

    Returns:
        A fresh ChargeBreakdown.  Identical inputs always produce an equal
        breakdown.  ``discount_amount`` and ``effective_rate`` are derived
        from the rounded amounts; ``discount_percentage`` from the unrounded
        ones.

    Raises:
        UnknownDiscountKindError: The selected rule has an unknown kind.
        FormulaEvaluationError: The selected rule's formula is malformed.
    """
    original = hours * hourly_rate

    selected = select_discount_by_threshold(candidates, original) if candidates else None
    if selected is None:
        original_amount = round_amount(original)
        return ChargeBreakdown(
            hours=hours,
            hourly_rate=hourly_rate,
            original_amount=original_amount,
            final_amount=original_amount,
            discount_amount=round_amount(_ZERO),
            discount_percentage=round_percentage(_ZERO),
            effective_rate=round_amount(hourly_rate) if hours != _ZERO else round_amount(_ZERO),
        )

    final = apply_discount(selected, original)
    original_amount = round_amount(original)
    final_amount = round_amount(final)

    logger.debug(
        "discount_applied",
        extra={
            "discount_id": selected.discount_id,
            "discount_type": selected.discount_type,
            "threshold": str(selected.amount),
            "original_amount": str(original_amount),
            "final_amount": str(final_amount),
        },
    )

    return ChargeBreakdown(
        hours=hours,
        hourly_rate=hourly_rate,
        original_amount=original_amount,
        final_amount=final_amount,
        discount_amount=final_amount - original_amount,
        discount_percentage=calculate_discount_percentage(original, final),
        effective_rate=calculate_effective_rate(final_amount, hours),
        applied_discount_id=selected.discount_id,
    )
