"""
LedgerWriter -- persists a billing resolution as budget and time rows.

Responsibility:
    Writes the three rows a posted time record produces for its case:
    the budget header (inserted or its edit date bumped), a budget line
    with the next per-case sequence number, and a time registration that
    references that line.

Architecture position:
    Services -- imperative shell.  Called by TimePostingService inside the
    per-record transaction.

Invariants enforced:
    - Flush-only: never commits or rolls back the session.
    - Budget line sequence numbers are unique per case, starting at 1
      (uq_budget_line_case_seq backs this under concurrency).
    - Amounts are written exactly as computed; no re-rounding here.

Failure modes:
    - IntegrityError: a concurrent writer took the same sequence number.
      The caller's transaction rolls back.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.domain.values import BillingResolution
from billing_kernel.logging_config import get_logger
from billing_kernel.models.budget import (
    BudgetHeaderModel,
    BudgetLineModel,
    TimeRegistrationModel,
)

logger = get_logger("services.ledger_writer")


@dataclass(frozen=True)
class LedgerWriteResult:
    """Identifiers of the rows written for one resolution."""

    case_id: int
    sequence_number: int
    budget_line_id: UUID
    time_registration_id: UUID


class LedgerWriter:
    """
    Appends budget lines and time registrations.

    Non-goals:
        - Does NOT manage the transaction boundary (caller's responsibility).
        - Does NOT price anything; it takes a finished BillingResolution.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()

    def next_sequence_number(self, case_id: int) -> int:
        current = self._session.execute(
            select(func.max(BudgetLineModel.sequence_number)).where(
                BudgetLineModel.case_id == case_id
            )
        ).scalar_one_or_none()
        return (current or 0) + 1

    def _touch_budget_header(self, case_id: int) -> None:
        now = self._clock.now()
        header = self._session.execute(
            select(BudgetHeaderModel).where(BudgetHeaderModel.case_id == case_id)
        ).scalar_one_or_none()
        if header is None:
            self._session.add(BudgetHeaderModel(case_id=case_id, budget_edit_date=now))
        else:
            header.budget_edit_date = now

    def write(
        self,
        resolution: BillingResolution,
        activity_date: date,
        comment: str | None = None,
        source_record_id: str | None = None,
        recorded_at: datetime | None = None,
    ) -> LedgerWriteResult:
        """
        Write the budget header, budget line and time registration.

        Args:
            resolution: The priced work.
            activity_date: Day the work was done.
            comment: Narrative stored on both the line and the registration.
            source_record_id: Identifier of the originating time record.
            recorded_at: When the time was submitted; defaults to now.
        """
        case_id = resolution.case.case_id
        chargeable = resolution.chargeable
        actual = resolution.actual
        if recorded_at is None:
            recorded_at = self._clock.now()

        self._touch_budget_header(case_id)
        sequence_number = self.next_sequence_number(case_id)

        line = BudgetLineModel(
            case_id=case_id,
            sequence_number=sequence_number,
            work_code_id=resolution.work_code_id,
            login_id=resolution.login_id,
            currency=resolution.currency,
            hourly_rate=chargeable.hourly_rate,
            effective_rate=chargeable.effective_rate,
            chargeable_hours=chargeable.hours,
            actual_hours=actual.hours,
            chargeable_amount=chargeable.final_amount,
            actual_amount=actual.final_amount,
            discount_amount=chargeable.discount_amount,
            discount_percentage=chargeable.discount_percentage,
            applied_discount_id=chargeable.applied_discount_id,
            rate_level=resolution.rate_level.value,
            comment=comment,
            recorded_at=recorded_at,
            source_record_id=source_record_id,
        )
        registration = TimeRegistrationModel(
            case_id=case_id,
            sequence_number=sequence_number,
            work_code_id=resolution.work_code_id,
            login_id=resolution.login_id,
            activity_date=activity_date,
            registered_at=recorded_at,
            actual_hours=actual.hours,
            chargeable_hours=chargeable.hours,
            comment=comment,
            source_record_id=source_record_id,
        )
        self._session.add(line)
        self._session.add(registration)
        self._session.flush()

        logger.info(
            "ledger_rows_written",
            extra={
                "case_number": resolution.case.case_number,
                "sequence_number": sequence_number,
                "budget_line_id": str(line.id),
            },
        )
        return LedgerWriteResult(
            case_id=case_id,
            sequence_number=sequence_number,
            budget_line_id=line.id,
            time_registration_id=registration.id,
        )
