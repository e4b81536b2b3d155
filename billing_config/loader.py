"""
Configuration Loader (``billing_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the typed
``billing_config.schema.BillingConfig`` value object, optionally layering
environment-style overrides from an explicitly passed mapping.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  It has no dependency on the
engines or services; services receive the parsed ``BillingConfig``.

Invariants enforced
-------------------
* No silent defaults for required fields: a missing ``role_type_id``
  raises ``MissingConfigurationError``.
* Unparseable values raise ``InvalidConfigurationError`` naming the key.
* ``compute_checksum`` produces a deterministic SHA-256 hash so that every
  posting run can be traced back to the configuration that governed it.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from billing_config.schema import BillingConfig
from billing_kernel.exceptions import (
    InvalidConfigurationError,
    MissingConfigurationError,
)
from billing_kernel.logging_config import get_logger

logger = get_logger("config")

# Environment key -> BillingConfig field
ENV_KEYS: dict[str, str] = {
    "BILLING_ROLE_TYPE_ID": "role_type_id",
    "BILLING_FALLBACK_CURRENCY": "fallback_currency",
    "BILLING_USE_SYSTEM_DEFAULT_CURRENCY": "use_system_default_currency",
    "BILLING_DEFAULT_PRICE_LIST_ID": "default_price_list_id",
    "BILLING_WORK_CODES_ZERO_CHARGE": "zero_charge_work_codes",
    "BILLING_REJECT_AMBIGUOUS_DISCOUNTS": "reject_ambiguous_discounts",
}

_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "false", "no", "off", ""})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


# ---------------------------------------------------------------------------
# Value parsers
# ---------------------------------------------------------------------------


def parse_int(key: str, value: Any) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise InvalidConfigurationError(key, value, "expected an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(key, value, "expected an integer") from e


def parse_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    text = str(value).strip().lower()
    if text in _TRUE_STRINGS:
        return True
    if text in _FALSE_STRINGS:
        return False
    raise InvalidConfigurationError(key, value, "expected a boolean")


def parse_currency(key: str, value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip().upper()
    if not text:
        return None
    if len(text) != 3 or not text.isalpha():
        raise InvalidConfigurationError(key, value, "expected a 3-letter currency code")
    return text


def parse_work_codes(key: str, value: Any) -> frozenset[str]:
    """Accept a YAML list or a comma-separated string."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple, set, frozenset)):
        items = [str(v) for v in value]
    else:
        raise InvalidConfigurationError(key, value, "expected a list of work codes")
    return frozenset(item.strip() for item in items if item.strip())


# ---------------------------------------------------------------------------
# Config assembly
# ---------------------------------------------------------------------------


def config_from_mapping(data: Mapping[str, Any]) -> BillingConfig:
    """
    Parse a ``BillingConfig`` from a dict.

    Accepts either the settings themselves or a document with a top-level
    ``billing`` section.

    Raises:
        MissingConfigurationError: ``role_type_id`` is absent.
        InvalidConfigurationError: a value cannot be parsed.
    """
    section = data.get("billing", data)
    role_type_id = parse_int("role_type_id", section.get("role_type_id"))
    if role_type_id is None:
        raise MissingConfigurationError("role_type_id")

    return BillingConfig(
        role_type_id=role_type_id,
        fallback_currency=parse_currency(
            "fallback_currency", section.get("fallback_currency")
        ),
        use_system_default_currency=parse_bool(
            "use_system_default_currency", section.get("use_system_default_currency")
        ),
        default_price_list_id=parse_int(
            "default_price_list_id", section.get("default_price_list_id")
        ),
        zero_charge_work_codes=parse_work_codes(
            "zero_charge_work_codes", section.get("zero_charge_work_codes")
        ),
        reject_ambiguous_discounts=parse_bool(
            "reject_ambiguous_discounts", section.get("reject_ambiguous_discounts")
        ),
    )


def apply_env_overrides(
    data: Mapping[str, Any],
    environ: Mapping[str, str],
) -> dict[str, Any]:
    """
    Layer ``BILLING_*`` entries of ``environ`` over the settings in ``data``.

    ``environ`` is passed explicitly (typically ``os.environ`` at the
    application entry point) so that nothing below reads the process
    environment.
    """
    merged = dict(data.get("billing", data))
    for env_key, field_name in ENV_KEYS.items():
        if env_key in environ:
            merged[field_name] = environ[env_key]
    return merged


def load_billing_config(
    path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> BillingConfig:
    """
    Load configuration from a YAML file and optional environment overrides.

    Args:
        path: YAML file; if None, only ``environ`` is used.
        environ: Environment-style overrides (``BILLING_*`` keys).

    Returns:
        The parsed, frozen BillingConfig.  A ``BILLING_CONFIG_TRACE`` log
        entry records its checksum.
    """
    data: dict[str, Any] = load_yaml_file(path) if path is not None else {}
    if environ:
        data = apply_env_overrides(data, environ)

    config = config_from_mapping(data)
    logger.info(
        "BILLING_CONFIG_TRACE",
        extra={
            "trace_type": "BILLING_CONFIG_TRACE",
            "source": str(path) if path is not None else "environment",
            "checksum": compute_checksum(config),
        },
    )
    return config


def compute_checksum(config: BillingConfig) -> str:
    """
    Compute SHA-256 checksum of the canonical JSON serialization.

    Identical configurations always produce identical checksums.
    """
    canonical = json.dumps(config.to_dict(), sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
