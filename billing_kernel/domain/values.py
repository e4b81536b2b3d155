"""
Values -- Immutable value objects for billing resolution.

Responsibility:
    Provides the request-scoped types that flow between the reference data
    store, the pure billing engines and the posting layer: cases, work
    codes, price-list and person rates, discount rules, the resolved rate
    quote and the resulting charge breakdown.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by every other layer. No outward dependencies.

Invariants enforced:
    - All monetary amounts and rates are Decimal, never float.  Non-Decimal
      inputs are converted through ``str`` at construction time.
    - Criteria on DiscountRule use ``None`` for "unset" (wildcard); blank
      strings are normalized to ``None``.
    - Every object is frozen; nothing is mutated after construction.

Failure modes:
    - ValueError on construction with unconvertible amounts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum, IntEnum
from typing import Any


def to_decimal(value: Any, field_name: str) -> Decimal:
    """Convert ``value`` to Decimal without going through binary float."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Invalid {field_name}: {value!r}") from e


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


# ============================================================================
# Case and work code
# ============================================================================


@dataclass(frozen=True)
class Case:
    """
    A billable matter in the case-management system.

    The case type, state and application type are the attributes discount
    rules are matched against.  ``case_number`` identifies the case in
    operator-facing error messages.
    """

    case_id: int
    case_number: str
    case_type_id: int | None = None
    state_id: str | None = None
    application_type_id: int | None = None
    catchword: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "state_id", _blank_to_none(self.state_id))


# Work code type of time-based activities.  Discount rules may only narrow
# to this type or leave it unset.
TIME_WORK_CODE_TYPE = "T"


@dataclass(frozen=True)
class WorkCode:
    """
    A type of billable activity.

    When ``replace_amount`` is set, ``default_amount`` is a flat hourly rate
    that overrides every other rate source.
    """

    work_code_id: str
    text: str = ""
    work_code_type: str | None = None
    replace_amount: bool = False
    default_amount: Decimal | None = None

    def __post_init__(self) -> None:
        if self.default_amount is not None:
            object.__setattr__(
                self, "default_amount", to_decimal(self.default_amount, "default_amount")
            )

    @property
    def fixed_rate(self) -> Decimal | None:
        """The override rate, or None when the work code carries none."""
        if self.replace_amount and self.default_amount is not None:
            return self.default_amount
        return None


# ============================================================================
# Rates
# ============================================================================


class RateLevel(str, Enum):
    """Which level of the fallback chain produced an hourly rate."""

    WORK_CODE_FIXED = "WORK_CODE_FIXED"
    CASE_PRICE_LIST = "CASE_PRICE_LIST"
    DEFAULT_PRICE_LIST = "DEFAULT_PRICE_LIST"
    PERSON_OVERRIDE = "PERSON_OVERRIDE"
    PERSON_DEFAULT = "PERSON_DEFAULT"


@dataclass(frozen=True)
class PriceListEntry:
    """
    One row of a price list.

    Attributes:
        price_list_id: Price list the entry belongs to.
        category_specificity: Higher means a more specific price category.
        login_id: Login the price applies to; None matches any login.
        actor_id: Actor (client) the price applies to; None is the default actor.
        currency: Currency of ``hourly_rate``.
        hourly_rate: Price per hour.
        price_change_date: Date the price became effective; None is "always".
    """

    price_list_id: int
    category_specificity: int
    currency: str
    hourly_rate: Decimal
    login_id: str | None = None
    actor_id: int | None = None
    price_change_date: date | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "hourly_rate", to_decimal(self.hourly_rate, "hourly_rate"))
        object.__setattr__(self, "login_id", _blank_to_none(self.login_id))


@dataclass(frozen=True)
class PersonRate:
    """A person-specific hourly rate, optionally narrowed by role type and work code."""

    login_id: str
    hourly_rate: Decimal
    role_type_id: int | None = None
    work_code_id: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "hourly_rate", to_decimal(self.hourly_rate, "hourly_rate"))
        object.__setattr__(self, "work_code_id", _blank_to_none(self.work_code_id))


@dataclass(frozen=True)
class RateQuote:
    """Hourly rate and currency resolved for one billing computation."""

    hourly_rate: Decimal
    currency: str
    level: RateLevel

    def __post_init__(self) -> None:
        object.__setattr__(self, "hourly_rate", to_decimal(self.hourly_rate, "hourly_rate"))


# ============================================================================
# Discounts
# ============================================================================


class DiscountKind(IntEnum):
    """How a discount adjustment is applied to the undiscounted amount."""

    PURE = 1  # subtract
    MARKUP = 2  # add


@dataclass(frozen=True)
class DiscountRule:
    """
    A billing policy record describing when and how to adjust a charge.

    Each criterion is either a concrete value or None (wildcard).
    ``discount_type`` keeps the raw kind value from the store so that an
    unrecognised kind can be reported verbatim; see ``kind``.
    ``amount`` is the threshold the undiscounted charge must reach for the
    rule to apply.
    """

    discount_id: int
    discount_type: int
    price_change_formula: str | None = None
    amount: Decimal = Decimal("0")
    case_type_id: int | None = None
    state_id: str | None = None
    application_type_id: int | None = None
    work_code_id: str | None = None
    work_code_type: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount, "amount"))
        object.__setattr__(self, "state_id", _blank_to_none(self.state_id))
        object.__setattr__(self, "work_code_id", _blank_to_none(self.work_code_id))
        object.__setattr__(self, "work_code_type", _blank_to_none(self.work_code_type))

    @property
    def kind(self) -> DiscountKind | None:
        """The discount kind, or None when ``discount_type`` is not recognised."""
        try:
            return DiscountKind(self.discount_type)
        except ValueError:
            return None


# ============================================================================
# Results
# ============================================================================


@dataclass(frozen=True)
class ChargeBreakdown:
    """
    Charge computed for a number of hours at an hourly rate.

    All amounts and rates are rounded to 2 decimal places and the
    percentage to 5, half-up.  ``applied_discount_id`` is None when no
    discount applied, which is distinct from a discount that evaluated to
    zero.
    """

    hours: Decimal
    hourly_rate: Decimal
    original_amount: Decimal
    final_amount: Decimal
    discount_amount: Decimal
    discount_percentage: Decimal
    effective_rate: Decimal
    applied_discount_id: int | None = None

    @property
    def has_discount(self) -> bool:
        return self.applied_discount_id is not None


@dataclass(frozen=True)
class BillingResolution:
    """Everything the posting layer needs to write ledger rows for one record."""

    case: Case
    work_code_id: str
    login_id: str
    rate: RateQuote
    chargeable: ChargeBreakdown
    actual: ChargeBreakdown

    @property
    def currency(self) -> str:
        return self.rate.currency

    @property
    def hourly_rate(self) -> Decimal:
        return self.rate.hourly_rate

    @property
    def rate_level(self) -> RateLevel:
        return self.rate.level
