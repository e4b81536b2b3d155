"""
TimePostingService -- posts recorded work time against cases.

Responsibility:
    Converts a ``TimePostingRecord`` (durations in seconds, experience
    weighting, case number) into hours, resolves the billing for it and
    writes the ledger rows, one record per transaction.  ``post_batch``
    posts many records and reports one ``PostingOutcome`` per record.

Architecture position:
    Services -- outermost imperative shell.  Owns the transaction boundary
    (``session_scope`` per record); everything below it is flush-only.

Invariants enforced:
    - One record equals one transaction.  A failed record leaves no rows
      behind.
    - The billing resolution is fully computed before any ledger row is
      written.
    - Permanent failures (unknown case, no rate, bad discount policy, ...)
      are isolated to their record; the batch continues.
    - Transient failures (``retryable`` errors such as
      ReferenceDataUnavailableError) abort the batch so that the remaining
      records can be retried later.

Failure modes:
    - ``post`` raises every BillingKernelError unmodified.
    - ``post_batch`` re-raises only retryable errors.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy.orm import Session, sessionmaker

from billing_config.schema import BillingConfig
from billing_engines.worked_hours import duration_to_hours, weight_duration
from billing_kernel.db.engine import session_scope
from billing_kernel.domain.clock import Clock, SystemClock
from billing_kernel.exceptions import BillingKernelError
from billing_kernel.logging_config import LogContext, get_logger
from billing_kernel.selectors.reference_data_selector import ReferenceDataSelector
from billing_services.billing_service import BillingService
from billing_services.ledger_writer import LedgerWriter
from billing_services.reference_data import ReferenceDataStore

logger = get_logger("services.posting")

FULL_WEIGHTING_PERCENT = 100


# =============================================================================
# DTOs
# =============================================================================


@dataclass(frozen=True)
class TimePostingRecord:
    """
    One unit of recorded work to post.

    ``chargeable_seconds`` is scaled by ``experience_weighting_percent``
    before it is converted to hours; ``actual_seconds`` is not.  When the
    user edited the total duration (``duration_edited``) the chargeable
    time is taken as entered, without weighting.
    """

    record_id: str
    case_number: str
    work_code_id: str
    login_id: str
    activity_date: date
    submitted_at: datetime
    actual_seconds: int
    chargeable_seconds: int
    experience_weighting_percent: int = FULL_WEIGHTING_PERCENT
    duration_edited: bool = False
    comment: str | None = None

    def __post_init__(self) -> None:
        if self.actual_seconds < 0:
            raise ValueError(f"actual_seconds must be >= 0, got {self.actual_seconds}")
        if self.chargeable_seconds < 0:
            raise ValueError(
                f"chargeable_seconds must be >= 0, got {self.chargeable_seconds}"
            )
        if not 0 <= self.experience_weighting_percent <= FULL_WEIGHTING_PERCENT:
            raise ValueError(
                "experience_weighting_percent must be within 0..100, "
                f"got {self.experience_weighting_percent}"
            )

    @property
    def chargeable_hours(self) -> Decimal:
        if self.duration_edited:
            return duration_to_hours(self.chargeable_seconds)
        weighted = weight_duration(
            self.chargeable_seconds, self.experience_weighting_percent
        )
        return duration_to_hours(weighted)

    @property
    def actual_hours(self) -> Decimal:
        return duration_to_hours(self.actual_seconds)


class PostingStatus(str, Enum):
    """Outcome of posting one record."""

    POSTED = "posted"
    FAILED = "failed"


@dataclass(frozen=True)
class PostingOutcome:
    """Result of posting one record within a batch."""

    record_id: str
    status: PostingStatus
    case_number: str
    sequence_number: int | None = None
    currency: str | None = None
    final_amount: Decimal | None = None
    error_code: str | None = None
    error_message: str | None = None

    @property
    def is_posted(self) -> bool:
        return self.status == PostingStatus.POSTED


# =============================================================================
# Service
# =============================================================================


class TimePostingService:
    """
    Posts time records, each in its own transaction.

    Contract:
        ``post()`` either writes all rows for the record and returns a
        POSTED outcome, or raises and writes nothing.

    Non-goals:
        - Does NOT retry transient failures; the caller re-submits.
        - Does NOT deduplicate records already posted.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        config: BillingConfig,
        clock: Clock | None = None,
        store_factory: Callable[[Session], ReferenceDataStore] = ReferenceDataSelector,
    ):
        self._session_factory = session_factory
        self._config = config
        self._clock = clock or SystemClock()
        self._store_factory = store_factory

    def post(self, record: TimePostingRecord) -> PostingOutcome:
        """
        Resolve and write one record in one transaction.

        Raises:
            BillingKernelError: Any resolution or reference-data failure,
                unmodified.  The transaction is rolled back.
        """
        with LogContext.bind(
            record_id=record.record_id,
            work_code_id=record.work_code_id,
            login_id=record.login_id,
        ):
            t0 = time.monotonic()
            with session_scope(self._session_factory) as session:
                billing = BillingService(
                    self._store_factory(session), self._config, self._clock
                )
                case = billing.find_case(record.case_number)
                with LogContext.bind(case_id=case.case_id):
                    resolution = billing.resolve(
                        case,
                        record.work_code_id,
                        record.login_id,
                        chargeable_hours=record.chargeable_hours,
                        actual_hours=record.actual_hours,
                    )
                    written = LedgerWriter(session, self._clock).write(
                        resolution,
                        activity_date=record.activity_date,
                        comment=record.comment,
                        source_record_id=record.record_id,
                        recorded_at=record.submitted_at,
                    )

            logger.info(
                "time_posted",
                extra={
                    "case_number": case.case_number,
                    "sequence_number": written.sequence_number,
                    "rate_level": resolution.rate_level.value,
                    "currency": resolution.currency,
                    "final_amount": str(resolution.chargeable.final_amount),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return PostingOutcome(
                record_id=record.record_id,
                status=PostingStatus.POSTED,
                case_number=case.case_number,
                sequence_number=written.sequence_number,
                currency=resolution.currency,
                final_amount=resolution.chargeable.final_amount,
            )

    def post_batch(self, records: Iterable[TimePostingRecord]) -> list[PostingOutcome]:
        """
        Post each record, isolating permanent failures.

        Returns:
            One outcome per record, in input order.

        Raises:
            BillingKernelError: The first retryable failure; records after
                it are not attempted.
        """
        outcomes: list[PostingOutcome] = []
        for record in records:
            try:
                outcomes.append(self.post(record))
            except BillingKernelError as exc:
                if exc.retryable:
                    logger.error(
                        "time_posting_aborted",
                        extra={
                            "record_id": record.record_id,
                            "error_code": exc.code,
                            "posted_before_abort": len(outcomes),
                        },
                    )
                    raise
                logger.warning(
                    "time_posting_failed",
                    extra={
                        "record_id": record.record_id,
                        "case_number": record.case_number,
                        "error_code": exc.code,
                        "error": str(exc),
                    },
                )
                outcomes.append(
                    PostingOutcome(
                        record_id=record.record_id,
                        status=PostingStatus.FAILED,
                        case_number=record.case_number,
                        error_code=exc.code,
                        error_message=str(exc),
                    )
                )

        logger.info(
            "time_batch_posted",
            extra={
                "total": len(outcomes),
                "posted": sum(1 for o in outcomes if o.is_posted),
                "failed": sum(1 for o in outcomes if not o.is_posted),
            },
        )
        return outcomes
