"""
Module: billing_kernel.models.discount
Responsibility: ORM persistence for work-code discount policies.  A header
    holds the matching criteria and the discount kind for one actor; its
    details hold the amount thresholds and price-change formulas.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - NULL (or blank) criteria are wildcards.
    - discount_type is stored raw; unknown kinds are rejected when a charge
      is computed, not when the row is read.
    - One header with N details yields N candidate rules sharing the
      header's discount_id.
"""

from decimal import Decimal

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_kernel.db.base import Base


class DiscountHeaderModel(Base):
    """Matching criteria and kind of a discount policy."""

    __tablename__ = "discount_headers"

    __table_args__ = (
        Index("idx_discount_actor", "actor_id"),
    )

    discount_id: Mapped[int] = mapped_column(Integer, primary_key=True)

    # Actor (client) the policy is negotiated with
    actor_id: Mapped[int] = mapped_column(Integer, nullable=False)

    case_type_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    state_id: Mapped[str | None] = mapped_column(String(10), nullable=True)

    application_type_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    work_code_id: Mapped[str | None] = mapped_column(String(20), nullable=True)

    work_code_type: Mapped[str | None] = mapped_column(String(1), nullable=True)

    # 1 = pure discount, 2 = markup
    discount_type: Mapped[int] = mapped_column(Integer, nullable=False)

    details: Mapped[list["DiscountDetailModel"]] = relationship(
        back_populates="header",
        order_by="DiscountDetailModel.id",
    )


class DiscountDetailModel(Base):
    """One amount threshold of a discount policy."""

    __tablename__ = "discount_details"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    discount_id: Mapped[int] = mapped_column(
        ForeignKey("discount_headers.discount_id"),
        nullable=False,
    )

    amount: Mapped[Decimal | None] = mapped_column(nullable=True)

    price_change_formula: Mapped[str | None] = mapped_column(Text, nullable=True)

    header: Mapped[DiscountHeaderModel] = relationship(back_populates="details")
