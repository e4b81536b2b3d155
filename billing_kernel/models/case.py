"""
Module: billing_kernel.models.case
Responsibility: ORM persistence for cases, actors (clients) and the case
    actor bindings that link them under a role type.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from selectors/, domain/, or outer layers.

Invariants enforced:
    - case_number is unique; time is posted against it.
    - The billed actor of a case is the case actor with the configured role
      type and sequence 1.  Its price list and currency drive the case price
      list level of the rate chain and the case currency.
"""

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import Base


class CaseModel(Base):
    """A billable matter.  Case type, state and application type drive discount matching."""

    __tablename__ = "cases"

    __table_args__ = (
        UniqueConstraint("case_number", name="uq_case_number"),
    )

    case_id: Mapped[int] = mapped_column(Integer, primary_key=True)

    case_number: Mapped[str] = mapped_column(String(50), nullable=False)

    case_type_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    state_id: Mapped[str | None] = mapped_column(String(10), nullable=True)

    application_type_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    catchword: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Case {self.case_id}: {self.case_number}>"


class ActorModel(Base):
    """A party bound to cases (client, applicant, ...)."""

    __tablename__ = "actors"

    actor_id: Mapped[int] = mapped_column(Integer, primary_key=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Billing currency of the actor's account
    currency: Mapped[str | None] = mapped_column(String(3), nullable=True)

    # Price list negotiated with the actor
    price_list_id: Mapped[int | None] = mapped_column(Integer, nullable=True)


class CaseActorModel(Base):
    """Binding of an actor to a case under a role type."""

    __tablename__ = "case_actors"

    __table_args__ = (
        Index("idx_case_actor_role", "case_id", "role_type_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    case_id: Mapped[int] = mapped_column(
        ForeignKey("cases.case_id"),
        nullable=False,
    )

    actor_id: Mapped[int] = mapped_column(
        ForeignKey("actors.actor_id"),
        nullable=False,
    )

    role_type_id: Mapped[int] = mapped_column(Integer, nullable=False)

    # 1 = primary actor for the role
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
