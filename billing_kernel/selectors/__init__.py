"""Read-only selectors over the billing kernel models."""

from billing_kernel.selectors.base import BaseSelector
from billing_kernel.selectors.reference_data_selector import ReferenceDataSelector

__all__ = [
    "BaseSelector",
    "ReferenceDataSelector",
]
