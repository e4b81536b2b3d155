"""
Typed Exception Hierarchy for the Billing Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Billing failures end up in front of an operator who has to fix reference
data in the case-management system. Generic exceptions force callers to
parse message text to tell a missing rate from a broken formula, and force
the batch poster to guess whether a failure is worth retrying.

Every exception here therefore has:
  1. A TYPED class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. A RETRYABLE class attribute (permanent data problem vs. transient outage)
  4. Structured DATA attributes naming the offending case/work code/login

Example - WRONG way to handle errors:
    try:
        billing.resolve(...)
    except Exception as e:
        if "hourly rate" in str(e):  # FRAGILE
            skip_record()

Example - RIGHT way:
    try:
        billing.resolve(...)
    except RateNotFoundError as e:
        notify_operator(f"No rate for {e.login_id} / {e.work_code_id}")

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    BillingKernelError (base)
    |
    +-- RateError
    |   +-- RateNotFoundError
    |
    +-- CurrencyError
    |   +-- CurrencyNotFoundError
    |
    +-- DiscountError
    |   +-- UnknownDiscountKindError
    |   +-- FormulaEvaluationError
    |   +-- IndistinctDiscountPolicyError
    |
    +-- ReferenceDataError
    |   +-- CaseNotFoundError
    |   +-- ReferenceDataUnavailableError   (retryable)
    |
    +-- ConfigurationError
        +-- MissingConfigurationError
        +-- InvalidConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Rate            | RATE_NOT_FOUND              | No level of the fallback chain has a rate
----------------|-----------------------------|-----------------------------------------
Currency        | CURRENCY_NOT_FOUND          | No currency for the case, no fallback
----------------|-----------------------------|-----------------------------------------
Discount        | UNKNOWN_DISCOUNT_KIND       | Selected rule is neither PURE nor MARKUP
                | FORMULA_EVALUATION_FAILED   | Price change formula is malformed
                | INDISTINCT_DISCOUNT_POLICY  | Tied top-priority rules (strict mode)
----------------|-----------------------------|-----------------------------------------
Reference data  | CASE_NOT_FOUND              | Case id / number does not exist
                | REFERENCE_DATA_UNAVAILABLE  | Store unreachable (transient)
----------------|-----------------------------|-----------------------------------------
Configuration   | MISSING_CONFIGURATION       | Required setting absent
                | INVALID_CONFIGURATION       | Setting present but unparseable

===============================================================================
PROPAGATION
===============================================================================

Business-rule errors are raised deep in the call chain and propagate
unmodified to the per-record caller. The time posting service marks the
record failed and continues with the next one. ReferenceDataUnavailableError
is the only retryable error; it aborts the batch so the record can be
picked up again on the next run.
"""


class BillingKernelError(Exception):
    """
    Base exception for all billing kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "BILLING_KERNEL_ERROR"
    retryable: bool = False


# Rate-related exceptions


class RateError(BillingKernelError):
    """Base exception for hourly rate resolution errors."""

    code: str = "RATE_ERROR"


class RateNotFoundError(RateError):
    """No level of the rate fallback chain produced an hourly rate."""

    code: str = "RATE_NOT_FOUND"

    def __init__(self, login_id: str, work_code_id: str):
        self.login_id = login_id
        self.work_code_id = work_code_id
        super().__init__(
            f"No hourly rate is found for login {login_id} "
            f"and work code {work_code_id}"
        )


# Currency-related exceptions


class CurrencyError(BillingKernelError):
    """Base exception for currency resolution errors."""

    code: str = "CURRENCY_ERROR"


class CurrencyNotFoundError(CurrencyError):
    """No currency could be resolved for the case."""

    code: str = "CURRENCY_NOT_FOUND"

    def __init__(self, case_id: int, case_number: str):
        self.case_id = case_id
        self.case_number = case_number
        super().__init__(
            f"Could not find currency for case {case_number} (id {case_id})"
        )


# Discount-related exceptions


class DiscountError(BillingKernelError):
    """Base exception for discount rule errors."""

    code: str = "DISCOUNT_ERROR"


class UnknownDiscountKindError(DiscountError):
    """The selected discount rule is neither a pure discount nor a markup."""

    code: str = "UNKNOWN_DISCOUNT_KIND"

    def __init__(self, discount_id: int, discount_type: int):
        self.discount_id = discount_id
        self.discount_type = discount_type
        super().__init__(
            f"Unknown discount type {discount_type} on discount {discount_id}"
        )


class FormulaEvaluationError(DiscountError):
    """A price change formula could not be parsed or evaluated."""

    code: str = "FORMULA_EVALUATION_FAILED"

    def __init__(self, formula: str | None, reason: str):
        self.formula = formula
        self.reason = reason
        super().__init__(f"Cannot evaluate price change formula {formula!r}: {reason}")


class IndistinctDiscountPolicyError(DiscountError):
    """
    More than one discount rule matches the case at the top priority.

    Only raised when the matcher runs with ``reject_ambiguous_discounts``.
    """

    code: str = "INDISTINCT_DISCOUNT_POLICY"

    def __init__(self, case_number: str, priority: int, discount_ids: tuple[int, ...]):
        self.case_number = case_number
        self.priority = priority
        self.discount_ids = discount_ids
        super().__init__(
            f"Indistinct discount policy for case {case_number}: discounts "
            f"{', '.join(str(d) for d in discount_ids)} share priority {priority}. "
            f"Please resolve."
        )


# Reference data exceptions


class ReferenceDataError(BillingKernelError):
    """Base exception for reference data store errors."""

    code: str = "REFERENCE_DATA_ERROR"


class CaseNotFoundError(ReferenceDataError):
    """Case with given id or number does not exist."""

    code: str = "CASE_NOT_FOUND"

    def __init__(self, case_ref: int | str):
        self.case_ref = case_ref
        super().__init__(f"Case not found: {case_ref}")


class ReferenceDataUnavailableError(ReferenceDataError):
    """
    The reference data store could not be queried.

    This is the only transient error in the hierarchy.
    """

    code: str = "REFERENCE_DATA_UNAVAILABLE"
    retryable: bool = True

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Reference data store unavailable during {operation}: {reason}")


# Configuration exceptions


class ConfigurationError(BillingKernelError):
    """Base exception for billing configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class MissingConfigurationError(ConfigurationError):
    """A required configuration setting is not set."""

    code: str = "MISSING_CONFIGURATION"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Required configuration param {key} is not set.")


class InvalidConfigurationError(ConfigurationError):
    """A configuration setting has a value that cannot be used."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, key: str, value: object, reason: str):
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid configuration param {key}={value!r}: {reason}")
