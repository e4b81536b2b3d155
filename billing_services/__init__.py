"""
billing_services -- imperative shell of the billing resolution engine.

Usage:
    from billing_services import BillingService, TimePostingService
"""

from billing_services.billing_service import BillingService
from billing_services.discount_matcher import DiscountMatcher
from billing_services.ledger_writer import LedgerWriter, LedgerWriteResult
from billing_services.posting_service import (
    PostingOutcome,
    PostingStatus,
    TimePostingRecord,
    TimePostingService,
)
from billing_services.rate_resolver import RateResolver
from billing_services.reference_data import ReferenceDataStore

__all__ = [
    "BillingService",
    "DiscountMatcher",
    "LedgerWriteResult",
    "LedgerWriter",
    "PostingOutcome",
    "PostingStatus",
    "RateResolver",
    "ReferenceDataStore",
    "TimePostingRecord",
    "TimePostingService",
]
