"""
Module: billing_kernel.selectors.reference_data_selector
Responsibility: SQLAlchemy implementation of the reference-data store the
    billing services read from: cases, work codes, price lists, person
    rates, discount rules and currencies.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.  Satisfies the
    ``billing_services.reference_data.ReferenceDataStore`` protocol
    structurally; it does not import it.

Invariants enforced:
    - Read-only: no mutations are performed on any queried data.
    - Returns frozen domain values (Case, WorkCode, PriceListEntry,
      PersonRate, DiscountRule), never ORM models.
    - 0 and blank criteria read from the database are normalized to None
      (wildcard) so that the pure engines see a single "unset" value.
    - Login ids are compared case-insensitively.
    - Every query runs fresh; nothing is cached between calls.

Failure modes:
    - Returns None or an empty list when no matching rows exist (never
      raises on absence of data).
    - Any SQLAlchemyError is re-raised as ReferenceDataUnavailableError
      (retryable) naming the failed operation.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from billing_kernel.domain.values import (
    TIME_WORK_CODE_TYPE,
    Case,
    DiscountRule,
    PersonRate,
    PriceListEntry,
    WorkCode,
)
from billing_kernel.exceptions import ReferenceDataUnavailableError
from billing_kernel.logging_config import get_logger
from billing_kernel.models.case import ActorModel, CaseActorModel, CaseModel
from billing_kernel.models.discount import DiscountDetailModel, DiscountHeaderModel
from billing_kernel.models.person import PersonHourlyRateModel, PersonModel
from billing_kernel.models.price_list import PriceListEntryModel
from billing_kernel.models.system_setting import (
    DEFAULT_CURRENCY_KEY,
    SystemSettingModel,
)
from billing_kernel.models.work_code import WorkCodeModel
from billing_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.reference_data")

PRIMARY_ACTOR_SEQUENCE = 1


def _positive_or_none(value: int | None) -> int | None:
    if value is None or value <= 0:
        return None
    return value


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class ReferenceDataSelector(BaseSelector[CaseModel]):
    """
    Read-only access to the case-management reference data.

    Contract:
        One instance wraps one caller-owned Session.  Methods mirror the
        reference-data store the rate resolver and discount matcher consume.
    """

    def __init__(self, session: Session):
        super().__init__(session)

    @contextmanager
    def _reading(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.warning(
                "reference_data_unavailable",
                extra={"operation": operation, "error": str(exc)},
            )
            raise ReferenceDataUnavailableError(operation, str(exc)) from exc

    # =========================================================================
    # Cases and work codes
    # =========================================================================

    @staticmethod
    def _to_case(row: CaseModel) -> Case:
        return Case(
            case_id=row.case_id,
            case_number=row.case_number,
            case_type_id=_positive_or_none(row.case_type_id),
            state_id=row.state_id,
            application_type_id=_positive_or_none(row.application_type_id),
            catchword=row.catchword,
        )

    def find_case(self, case_id: int) -> Case | None:
        with self._reading("find_case"):
            row = self.session.get(CaseModel, case_id)
        return self._to_case(row) if row is not None else None

    def find_case_by_number(self, case_number: str) -> Case | None:
        with self._reading("find_case_by_number"):
            row = self.session.execute(
                select(CaseModel).where(CaseModel.case_number == case_number)
            ).scalar_one_or_none()
        return self._to_case(row) if row is not None else None

    def find_work_code(self, work_code_id: str) -> WorkCode | None:
        with self._reading("find_work_code"):
            row = self.session.get(WorkCodeModel, work_code_id)
        if row is None:
            return None
        return WorkCode(
            work_code_id=row.work_code_id,
            text=row.text,
            work_code_type=row.work_code_type,
            replace_amount=bool(row.replace_amount),
            default_amount=row.default_amount,
        )

    def find_case_actor_id(self, case_id: int, role_type_id: int) -> int | None:
        """Primary actor bound to the case under ``role_type_id``."""
        with self._reading("find_case_actor_id"):
            return self.session.execute(
                self._primary_actor_query(case_id, role_type_id)
            ).scalars().first()

    @staticmethod
    def _primary_actor_query(case_id: int, role_type_id: int):
        return (
            select(CaseActorModel.actor_id)
            .where(
                CaseActorModel.case_id == case_id,
                CaseActorModel.role_type_id == role_type_id,
                CaseActorModel.sequence == PRIMARY_ACTOR_SEQUENCE,
            )
            .order_by(CaseActorModel.id)
            .limit(1)
        )

    # =========================================================================
    # Price lists
    # =========================================================================

    @staticmethod
    def _to_price_list_entry(row: PriceListEntryModel) -> PriceListEntry:
        return PriceListEntry(
            price_list_id=row.price_list_id,
            category_specificity=row.category_specificity,
            currency=row.currency,
            hourly_rate=row.hourly_rate,
            login_id=row.login_id,
            actor_id=_positive_or_none(row.actor_id),
            price_change_date=row.price_change_date,
        )

    def find_case_price_list_entries(
        self,
        case_id: int,
        work_code_id: str,
        role_type_id: int,
    ) -> list[PriceListEntry]:
        """Entries for the work code in the price list of the case's billed actor."""
        actor_id = self._primary_actor_query(case_id, role_type_id).scalar_subquery()
        with self._reading("find_case_price_list_entries"):
            price_list_id = self.session.execute(
                select(ActorModel.price_list_id).where(ActorModel.actor_id == actor_id)
            ).scalar_one_or_none()
        if price_list_id is None:
            return []
        return self.find_price_list_entries(price_list_id, work_code_id)

    def find_price_list_entries(
        self,
        price_list_id: int,
        work_code_id: str,
    ) -> list[PriceListEntry]:
        with self._reading("find_price_list_entries"):
            rows = self.session.execute(
                select(PriceListEntryModel)
                .where(
                    PriceListEntryModel.price_list_id == price_list_id,
                    PriceListEntryModel.work_code_id == work_code_id,
                )
                .order_by(PriceListEntryModel.id)
            ).scalars().all()
        return [self._to_price_list_entry(row) for row in rows]

    # =========================================================================
    # Person rates
    # =========================================================================

    def find_person_rates(self, login_id: str) -> list[PersonRate]:
        with self._reading("find_person_rates"):
            rows = self.session.execute(
                select(PersonHourlyRateModel)
                .where(func.lower(PersonHourlyRateModel.login_id) == login_id.lower())
                .order_by(PersonHourlyRateModel.id)
            ).scalars().all()
        return [
            PersonRate(
                login_id=row.login_id,
                hourly_rate=row.hourly_rate,
                role_type_id=_positive_or_none(row.role_type_id),
                work_code_id=row.work_code_id,
            )
            for row in rows
        ]

    def find_person_default_rate(self, login_id: str) -> Decimal | None:
        with self._reading("find_person_default_rate"):
            return self.session.execute(
                select(PersonModel.hourly_rate).where(
                    func.lower(PersonModel.login_id) == login_id.lower()
                )
            ).scalars().first()

    # =========================================================================
    # Discounts
    # =========================================================================

    def find_discount_rules(
        self,
        work_code_id: str,
        case_id: int,
        role_type_id: int,
    ) -> list[DiscountRule]:
        """
        Candidate discount rules for posting ``work_code_id`` to the case.

        Applies the static criteria only: the policy's actor is bound to
        the case under ``role_type_id``, its work-code type is time or
        unset, and its work code is ``work_code_id`` or unset.  Case type,
        state and application type are matched by the pure engines.
        """
        bound_actors = select(CaseActorModel.actor_id).where(
            CaseActorModel.case_id == case_id,
            CaseActorModel.role_type_id == role_type_id,
        )
        header = DiscountHeaderModel
        with self._reading("find_discount_rules"):
            rows = self.session.execute(
                select(header, DiscountDetailModel)
                .join(DiscountDetailModel, DiscountDetailModel.discount_id == header.discount_id)
                .where(
                    header.actor_id.in_(bound_actors),
                    or_(
                        header.work_code_type.is_(None),
                        header.work_code_type == "",
                        header.work_code_type == TIME_WORK_CODE_TYPE,
                    ),
                    or_(
                        header.work_code_id.is_(None),
                        header.work_code_id == "",
                        header.work_code_id == work_code_id,
                    ),
                )
                .order_by(header.discount_id, DiscountDetailModel.id)
            ).all()
        return [
            DiscountRule(
                discount_id=h.discount_id,
                discount_type=h.discount_type,
                price_change_formula=d.price_change_formula,
                amount=d.amount if d.amount is not None else Decimal("0"),
                case_type_id=_positive_or_none(h.case_type_id),
                state_id=h.state_id,
                application_type_id=_positive_or_none(h.application_type_id),
                work_code_id=h.work_code_id,
                work_code_type=h.work_code_type,
            )
            for h, d in rows
        ]

    # =========================================================================
    # Currencies
    # =========================================================================

    def find_system_default_currency(self) -> str | None:
        with self._reading("find_system_default_currency"):
            value = self.session.execute(
                select(SystemSettingModel.value).where(
                    SystemSettingModel.key == DEFAULT_CURRENCY_KEY
                )
            ).scalar_one_or_none()
        return _blank_to_none(value)

    def find_case_currency(self, case_id: int, role_type_id: int) -> str | None:
        """Billing-account currency of the case's primary actor."""
        actor_id = self._primary_actor_query(case_id, role_type_id).scalar_subquery()
        with self._reading("find_case_currency"):
            value = self.session.execute(
                select(ActorModel.currency).where(ActorModel.actor_id == actor_id)
            ).scalar_one_or_none()
        return _blank_to_none(value)
