"""
Module: billing_kernel.models.system_setting
Responsibility: Key/value system settings of the case-management system,
    such as the system default currency.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import Base

DEFAULT_CURRENCY_KEY = "default_currency"


class SystemSettingModel(Base):
    """A single named system setting."""

    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)

    value: Mapped[str | None] = mapped_column(String(255), nullable=True)
