"""
BillingConfig schema.

The explicit configuration value object passed into the billing services.
YAML files and environment-style mappings are parsed into this type by
``billing_config.loader``; nothing in the engines or services reads
configuration from ambient global state.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class BillingConfig:
    """
    Settings that govern billing resolution and time posting.

    Attributes:
        role_type_id: Case role type that identifies the billed actor
            (client) of a case.  Required.
        fallback_currency: Currency used when neither the system default
            nor the case's billing account yields one.
        use_system_default_currency: Always bill in the system default
            currency instead of the case's billing-account currency.
        default_price_list_id: Price list consulted when the case's own
            price list has no applicable entry.
        zero_charge_work_codes: Work codes posted with zero chargeable hours.
        reject_ambiguous_discounts: Treat several discount rules at the top
            priority as a configuration error instead of letting the amount
            threshold choose among them.
    """

    role_type_id: int
    fallback_currency: str | None = None
    use_system_default_currency: bool = False
    default_price_list_id: int | None = None
    zero_charge_work_codes: frozenset[str] = field(default_factory=frozenset)
    reject_ambiguous_discounts: bool = False

    def is_zero_charge(self, work_code_id: str) -> bool:
        return work_code_id in self.zero_charge_work_codes

    def to_dict(self) -> dict:
        """Plain-dict form, used for checksums and trace logging."""
        return {
            "role_type_id": self.role_type_id,
            "fallback_currency": self.fallback_currency,
            "use_system_default_currency": self.use_system_default_currency,
            "default_price_list_id": self.default_price_list_id,
            "zero_charge_work_codes": sorted(self.zero_charge_work_codes),
            "reject_ambiguous_discounts": self.reject_ambiguous_discounts,
        }
