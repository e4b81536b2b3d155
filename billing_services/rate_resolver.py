"""
RateResolver -- hourly rate and currency for one unit of work.

Responsibility:
    Walks the rate fallback chain for a case, work code and login and
    returns the first level that yields a rate:

    1. work-code fixed rate
    2. case price list, then the configured default price list
    3. person override rate
    4. person default rate

    When the winning level carries no currency, the currency policy of
    ``BillingConfig`` decides it.

Architecture position:
    Services -- imperative shell around the pure ranking functions in
    ``billing_engines.rates``.  Reads through a ``ReferenceDataStore``;
    never writes.

Invariants enforced:
    - At most one rate is produced.  Lower levels are not consulted once a
      higher level yields a rate.
    - Price-list entries are only eligible from their price-change date on,
      as of the injected clock's date.
    - Nothing is cached: every call re-reads the store.

Failure modes:
    - RateNotFoundError: no level yields a rate.
    - CurrencyNotFoundError: the currency policy finds no currency.
    - ReferenceDataUnavailableError: propagated from the store.
"""

from __future__ import annotations

from billing_config.schema import BillingConfig
from billing_engines.rates import select_person_rate, select_price_list_entry
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.values import Case, PriceListEntry, RateLevel, RateQuote
from billing_kernel.exceptions import CurrencyNotFoundError, RateNotFoundError
from billing_kernel.logging_config import get_logger
from billing_services.reference_data import ReferenceDataStore

logger = get_logger("services.rate_resolver")


class RateResolver:
    """
    Resolves the hourly rate and currency for a unit of work.

    Contract:
        ``resolve()`` returns a RateQuote whose ``level`` records which
        level of the chain produced the rate.
    """

    def __init__(
        self,
        store: ReferenceDataStore,
        config: BillingConfig,
        clock: Clock | None = None,
    ):
        self._store = store
        self._config = config
        self._clock = clock or SystemClock()

    def resolve(self, case: Case, work_code_id: str, login_id: str) -> RateQuote:
        """
        Resolve the hourly rate for ``login_id`` working on ``case`` under
        ``work_code_id``.

        Raises:
            RateNotFoundError: No level of the chain yields a rate.
            CurrencyNotFoundError: The rate carries no currency and none
                can be determined for the case.
        """
        quote = (
            self._from_work_code(case, work_code_id)
            or self._from_price_lists(case, work_code_id, login_id)
            or self._from_person_rates(case, work_code_id, login_id)
            or self._from_person_default(case, login_id)
        )
        if quote is None:
            logger.warning(
                "rate_not_found",
                extra={
                    "case_number": case.case_number,
                    "work_code_id": work_code_id,
                    "login_id": login_id,
                },
            )
            raise RateNotFoundError(login_id, work_code_id)

        logger.info(
            "rate_resolved",
            extra={
                "case_number": case.case_number,
                "work_code_id": work_code_id,
                "login_id": login_id,
                "rate_level": quote.level.value,
                "hourly_rate": str(quote.hourly_rate),
                "currency": quote.currency,
            },
        )
        return quote

    def resolve_currency(self, case: Case) -> str:
        """
        Currency for a rate whose source carries none.

        With ``use_system_default_currency`` the system default currency is
        used, otherwise the billing-account currency of the case's billed
        actor.  Either way ``fallback_currency`` is the last resort.

        Raises:
            CurrencyNotFoundError: Neither source nor the fallback yields one.
        """
        if self._config.use_system_default_currency:
            source = "system_default"
            currency = self._store.find_system_default_currency()
        else:
            source = "case"
            currency = self._store.find_case_currency(
                case.case_id, self._config.role_type_id
            )

        if currency is None and self._config.fallback_currency is not None:
            source = "fallback"
            currency = self._config.fallback_currency

        if currency is None:
            raise CurrencyNotFoundError(case.case_id, case.case_number)

        logger.debug(
            "currency_resolved",
            extra={
                "case_number": case.case_number,
                "currency": currency,
                "source": source,
            },
        )
        return currency

    # =========================================================================
    # Chain levels
    # =========================================================================

    def _from_work_code(self, case: Case, work_code_id: str) -> RateQuote | None:
        work_code = self._store.find_work_code(work_code_id)
        if work_code is None or work_code.fixed_rate is None:
            return None
        return RateQuote(
            hourly_rate=work_code.fixed_rate,
            currency=self.resolve_currency(case),
            level=RateLevel.WORK_CODE_FIXED,
        )

    def _from_price_lists(
        self,
        case: Case,
        work_code_id: str,
        login_id: str,
    ) -> RateQuote | None:
        role_type_id = self._config.role_type_id
        entries = self._store.find_case_price_list_entries(
            case.case_id, work_code_id, role_type_id
        )
        actor_id = None
        if entries or self._config.default_price_list_id is not None:
            actor_id = self._store.find_case_actor_id(case.case_id, role_type_id)

        entry = self._select_entry(entries, login_id, actor_id)
        if entry is not None:
            return self._entry_quote(entry, RateLevel.CASE_PRICE_LIST)

        if self._config.default_price_list_id is None:
            return None
        entries = self._store.find_price_list_entries(
            self._config.default_price_list_id, work_code_id
        )
        entry = self._select_entry(entries, login_id, actor_id)
        if entry is not None:
            return self._entry_quote(entry, RateLevel.DEFAULT_PRICE_LIST)
        return None

    def _select_entry(
        self,
        entries: list[PriceListEntry],
        login_id: str,
        actor_id: int | None,
    ) -> PriceListEntry | None:
        if not entries:
            return None
        return select_price_list_entry(entries, login_id, actor_id, self._clock.today())

    @staticmethod
    def _entry_quote(entry: PriceListEntry, level: RateLevel) -> RateQuote:
        return RateQuote(
            hourly_rate=entry.hourly_rate,
            currency=entry.currency,
            level=level,
        )

    def _from_person_rates(
        self,
        case: Case,
        work_code_id: str,
        login_id: str,
    ) -> RateQuote | None:
        rate = select_person_rate(
            self._store.find_person_rates(login_id),
            work_code_id,
            self._config.role_type_id,
        )
        if rate is None:
            return None
        return RateQuote(
            hourly_rate=rate.hourly_rate,
            currency=self.resolve_currency(case),
            level=RateLevel.PERSON_OVERRIDE,
        )

    def _from_person_default(self, case: Case, login_id: str) -> RateQuote | None:
        hourly_rate = self._store.find_person_default_rate(login_id)
        if hourly_rate is None:
            return None
        return RateQuote(
            hourly_rate=hourly_rate,
            currency=self.resolve_currency(case),
            level=RateLevel.PERSON_DEFAULT,
        )
