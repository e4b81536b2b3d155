"""
BillingService -- full billing resolution for one unit of work.

Responsibility:
    Orchestrates rate resolution, discount matching and charge computation
    into a ``BillingResolution``: the resolved rate plus two breakdowns,
    one for the chargeable hours (discounts applied) and one for the hours
    actually worked (undiscounted).

Architecture position:
    Services -- imperative shell.  Pure arithmetic lives in
    ``billing_engines.charges.compute_charge``; reads go through the
    ``ReferenceDataStore``.

Invariants enforced:
    - The breakdown is fully computed before anything is written; this
      service never writes.
    - Work codes listed in ``zero_charge_work_codes`` are billed with zero
      chargeable hours.
    - At most one discount is applied, chosen by amount threshold among
      the top-priority candidates.

Failure modes:
    - CaseNotFoundError: ``find_case`` with an unknown case number.
    - RateNotFoundError, CurrencyNotFoundError: from the rate resolver.
    - IndistinctDiscountPolicyError: from the discount matcher.
    - UnknownDiscountKindError, FormulaEvaluationError: from the engine.
"""

from __future__ import annotations

from decimal import Decimal

from billing_config.schema import BillingConfig
from billing_engines.charges import compute_charge
from billing_kernel.domain.clock import Clock
from billing_kernel.domain.values import BillingResolution, Case
from billing_kernel.exceptions import CaseNotFoundError
from billing_kernel.logging_config import get_logger
from billing_services.discount_matcher import DiscountMatcher
from billing_services.rate_resolver import RateResolver
from billing_services.reference_data import ReferenceDataStore

logger = get_logger("services.billing")

_ZERO_HOURS = Decimal("0")


class BillingService:
    """
    Resolves rate, discount and charge for a case, work code and login.

    Contract:
        ``resolve()`` is a pure function of the reference data at the time
        of the call and its arguments.
    """

    def __init__(
        self,
        store: ReferenceDataStore,
        config: BillingConfig,
        clock: Clock | None = None,
    ):
        self._store = store
        self._config = config
        self._rates = RateResolver(store, config, clock)
        self._discounts = DiscountMatcher(store, config)

    def find_case(self, case_number: str) -> Case:
        """
        Look up a case by its number.

        Raises:
            CaseNotFoundError: No case has that number.
        """
        case = self._store.find_case_by_number(case_number)
        if case is None:
            raise CaseNotFoundError(case_number)
        return case

    def resolve(
        self,
        case: Case,
        work_code_id: str,
        login_id: str,
        chargeable_hours: Decimal,
        actual_hours: Decimal | None = None,
    ) -> BillingResolution:
        """
        Price ``chargeable_hours`` of work and the hours actually worked.

        Args:
            case: The case the time is posted against.
            work_code_id: Work code of the activity.
            login_id: Login of the person who did the work.
            chargeable_hours: Hours to bill, already weighted by the caller.
            actual_hours: Hours actually worked; defaults to
                ``chargeable_hours``.
        """
        if actual_hours is None:
            actual_hours = chargeable_hours
        if self._config.is_zero_charge(work_code_id):
            chargeable_hours = _ZERO_HOURS

        rate = self._rates.resolve(case, work_code_id, login_id)
        candidates = self._discounts.applicable_discounts(work_code_id, case)

        chargeable = compute_charge(
            hours=chargeable_hours,
            hourly_rate=rate.hourly_rate,
            candidates=tuple(candidates),
        )
        actual = compute_charge(
            hours=actual_hours,
            hourly_rate=rate.hourly_rate,
            candidates=(),
        )

        resolution = BillingResolution(
            case=case,
            work_code_id=work_code_id,
            login_id=login_id,
            rate=rate,
            chargeable=chargeable,
            actual=actual,
        )

        logger.info(
            "billing_resolved",
            extra={
                "case_number": case.case_number,
                "work_code_id": work_code_id,
                "login_id": login_id,
                "rate_level": rate.level.value,
                "currency": rate.currency,
                "chargeable_hours": str(chargeable.hours),
                "final_amount": str(chargeable.final_amount),
                "applied_discount_id": chargeable.applied_discount_id,
            },
        )
        return resolution
