"""ORM models for the billing kernel."""

from billing_kernel.models.budget import (
    BudgetHeaderModel,
    BudgetLineModel,
    TimeRegistrationModel,
)
from billing_kernel.models.case import ActorModel, CaseActorModel, CaseModel
from billing_kernel.models.discount import DiscountDetailModel, DiscountHeaderModel
from billing_kernel.models.person import PersonHourlyRateModel, PersonModel
from billing_kernel.models.price_list import PriceListEntryModel
from billing_kernel.models.system_setting import (
    DEFAULT_CURRENCY_KEY,
    SystemSettingModel,
)
from billing_kernel.models.work_code import WorkCodeModel

__all__ = [
    # Reference data
    "ActorModel",
    "CaseActorModel",
    "CaseModel",
    "DiscountDetailModel",
    "DiscountHeaderModel",
    "PersonHourlyRateModel",
    "PersonModel",
    "PriceListEntryModel",
    "SystemSettingModel",
    "DEFAULT_CURRENCY_KEY",
    "WorkCodeModel",
    # Ledger
    "BudgetHeaderModel",
    "BudgetLineModel",
    "TimeRegistrationModel",
]
