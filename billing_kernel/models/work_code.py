"""
Module: billing_kernel.models.work_code
Responsibility: ORM persistence for work codes (billable activity types).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - When replace_amount is set and default_amount is present, the default
      amount is a fixed hourly rate that overrides every other rate source.
"""

from decimal import Decimal

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import Base


class WorkCodeModel(Base):
    """A type of billable activity."""

    __tablename__ = "work_codes"

    work_code_id: Mapped[str] = mapped_column(String(20), primary_key=True)

    text: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # "T" marks time work codes
    work_code_type: Mapped[str | None] = mapped_column(String(1), nullable=True)

    replace_amount: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    default_amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<WorkCode {self.work_code_id}: {self.text}>"
