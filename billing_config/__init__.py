"""
billing_config -- typed configuration for the billing services.

Responsibility:
    Turns a YAML file plus environment-style overrides into the frozen
    ``BillingConfig`` value object that is passed explicitly into the
    rate resolver, discount matcher, billing service and time poster.

Failure modes:
    - ``MissingConfigurationError`` -- a required setting is absent.
    - ``InvalidConfigurationError`` -- a setting cannot be parsed.
"""

from pathlib import Path

from billing_config.loader import (
    apply_env_overrides,
    compute_checksum,
    config_from_mapping,
    load_billing_config,
)
from billing_config.schema import BillingConfig

EXAMPLE_CONFIG_PATH = Path(__file__).parent / "sets" / "example.yaml"

__all__ = [
    "BillingConfig",
    "EXAMPLE_CONFIG_PATH",
    "apply_env_overrides",
    "compute_checksum",
    "config_from_mapping",
    "load_billing_config",
]
