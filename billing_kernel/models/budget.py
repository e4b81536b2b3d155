"""
Module: billing_kernel.models.budget
Responsibility: ORM persistence for the rows a posted time record produces:
    the per-case budget header, the priced budget line and the time
    registration that references it.
Architecture position: Kernel > Models.  May import from db/base.py only.
    Rows are written only by billing_services.ledger_writer.LedgerWriter.

Invariants enforced:
    - One budget header per case (uq_budget_header_case); its edit date is
      bumped on every posting.
    - Budget line sequence numbers are unique per case and start at 1.
    - Amounts and rates are stored at 2 dp, the discount percentage at 5 dp,
      exactly as computed by billing_engines.compute_charge.
    - time_registrations.sequence_number ties the registration to its
      budget line.

Failure modes:
    - IntegrityError on a duplicate (case_id, sequence_number) when two
      writers race for the same case; the losing transaction rolls back.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import LedgerBase


class BudgetHeaderModel(LedgerBase):
    """Per-case budget header."""

    __tablename__ = "budget_headers"

    __table_args__ = (
        UniqueConstraint("case_id", name="uq_budget_header_case"),
    )

    case_id: Mapped[int] = mapped_column(Integer, nullable=False)

    budget_edit_date: Mapped[datetime] = mapped_column(nullable=False)


class BudgetLineModel(LedgerBase):
    """
    Priced line for one posted time record.

    ``chargeable_*`` columns carry the discounted figures billed to the
    client; ``actual_*`` columns carry the undiscounted figures for the
    hours actually worked.
    """

    __tablename__ = "budget_lines"

    __table_args__ = (
        UniqueConstraint("case_id", "sequence_number", name="uq_budget_line_case_seq"),
        Index("idx_budget_line_login", "login_id"),
    )

    case_id: Mapped[int] = mapped_column(Integer, nullable=False)

    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)

    work_code_id: Mapped[str] = mapped_column(String(20), nullable=False)

    login_id: Mapped[str] = mapped_column(String(50), nullable=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    # Resolved rate before any discount
    hourly_rate: Mapped[Decimal] = mapped_column(nullable=False)

    effective_rate: Mapped[Decimal] = mapped_column(nullable=False)

    chargeable_hours: Mapped[Decimal] = mapped_column(nullable=False)

    actual_hours: Mapped[Decimal] = mapped_column(nullable=False)

    chargeable_amount: Mapped[Decimal] = mapped_column(nullable=False)

    actual_amount: Mapped[Decimal] = mapped_column(nullable=False)

    discount_amount: Mapped[Decimal] = mapped_column(nullable=False)

    discount_percentage: Mapped[Decimal] = mapped_column(nullable=False)

    applied_discount_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Rate chain level that produced hourly_rate
    rate_level: Mapped[str] = mapped_column(String(30), nullable=False)

    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    recorded_at: Mapped[datetime] = mapped_column(nullable=False)

    source_record_id: Mapped[str | None] = mapped_column(String(100), nullable=True)


class TimeRegistrationModel(LedgerBase):
    """Time registration referencing a budget line of the same case."""

    __tablename__ = "time_registrations"

    __table_args__ = (
        Index("idx_time_registration_case", "case_id", "sequence_number"),
    )

    case_id: Mapped[int] = mapped_column(Integer, nullable=False)

    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)

    work_code_id: Mapped[str] = mapped_column(String(20), nullable=False)

    login_id: Mapped[str] = mapped_column(String(50), nullable=False)

    activity_date: Mapped[date] = mapped_column(Date, nullable=False)

    registered_at: Mapped[datetime] = mapped_column(nullable=False)

    actual_hours: Mapped[Decimal] = mapped_column(nullable=False)

    chargeable_hours: Mapped[Decimal] = mapped_column(nullable=False)

    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    source_record_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
