"""
Module: billing_kernel.models.price_list
Responsibility: ORM persistence for price-list entries: the hourly rate a
    price list charges for a work code, optionally narrowed to a login and
    an actor, effective from a price-change date.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Every entry carries its own currency.
    - NULL login_id / actor_id are wildcards; NULL price_change_date means
      the entry has always been effective.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import Base


class PriceListEntryModel(Base):
    """One priced work code within a price list."""

    __tablename__ = "price_list_entries"

    __table_args__ = (
        Index("idx_price_list_work_code", "price_list_id", "work_code_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    price_list_id: Mapped[int] = mapped_column(Integer, nullable=False)

    work_code_id: Mapped[str] = mapped_column(String(20), nullable=False)

    # Higher is more specific
    category_specificity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    hourly_rate: Mapped[Decimal] = mapped_column(nullable=False)

    login_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    actor_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    price_change_date: Mapped[date | None] = mapped_column(Date, nullable=True)
