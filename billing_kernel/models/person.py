"""
Module: billing_kernel.models.person
Responsibility: ORM persistence for persons (time keepers) and their
    person-specific hourly rates.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - login_id is the person's identity; lookups compare it case-insensitively.
    - A person hourly rate may be narrowed by role type, work code, both or
      neither.  The person's own hourly_rate is the last level of the rate
      chain.
"""

from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import Base


class PersonModel(Base):
    """A person who records time."""

    __tablename__ = "persons"

    login_id: Mapped[str] = mapped_column(String(50), primary_key=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Default hourly rate
    hourly_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Person {self.login_id}>"


class PersonHourlyRateModel(Base):
    """Person-specific override rate."""

    __tablename__ = "person_hourly_rates"

    __table_args__ = (
        Index("idx_person_rate_login", "login_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    login_id: Mapped[str] = mapped_column(
        ForeignKey("persons.login_id"),
        nullable=False,
    )

    role_type_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    work_code_id: Mapped[str | None] = mapped_column(String(20), nullable=True)

    hourly_rate: Mapped[Decimal] = mapped_column(nullable=False)
