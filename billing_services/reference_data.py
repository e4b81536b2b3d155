"""
ReferenceDataStore -- read interface the billing services depend on.

Responsibility:
    Declares the lookups the rate resolver, discount matcher and time
    poster need from the case-management system.  Implementations return
    frozen domain values; ``None`` or an empty list means "absent".

Architecture position:
    Services -- port definition.  The SQLAlchemy implementation is
    ``billing_kernel.selectors.reference_data_selector.ReferenceDataSelector``;
    tests use in-memory fakes.

Failure modes:
    - Implementations raise ``ReferenceDataUnavailableError`` (retryable)
      when the backing store cannot be read.  Absence of data is never an
      exception.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Protocol, runtime_checkable

from billing_kernel.domain.values import (
    Case,
    DiscountRule,
    PersonRate,
    PriceListEntry,
    WorkCode,
)


@runtime_checkable
class ReferenceDataStore(Protocol):
    """Read-only access to cases, work codes, rates, discounts and currencies."""

    def find_case(self, case_id: int) -> Case | None: ...

    def find_case_by_number(self, case_number: str) -> Case | None: ...

    def find_work_code(self, work_code_id: str) -> WorkCode | None: ...

    def find_case_actor_id(self, case_id: int, role_type_id: int) -> int | None: ...

    def find_case_price_list_entries(
        self,
        case_id: int,
        work_code_id: str,
        role_type_id: int,
    ) -> list[PriceListEntry]: ...

    def find_price_list_entries(
        self,
        price_list_id: int,
        work_code_id: str,
    ) -> list[PriceListEntry]: ...

    def find_person_rates(self, login_id: str) -> list[PersonRate]: ...

    def find_person_default_rate(self, login_id: str) -> Decimal | None: ...

    def find_discount_rules(
        self,
        work_code_id: str,
        case_id: int,
        role_type_id: int,
    ) -> list[DiscountRule]: ...

    def find_system_default_currency(self) -> str | None: ...

    def find_case_currency(self, case_id: int, role_type_id: int) -> str | None: ...
