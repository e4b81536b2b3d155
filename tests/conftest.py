"""
Pytest fixtures for the billing resolution test suite.

Provides:
- Structured logging configuration and a JSON log capture fixture
- An in-memory SQLite engine with all tables created per test
- Factories for common domain values
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from billing_config.schema import BillingConfig
from billing_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from billing_kernel.domain.clock import DeterministicClock
from billing_kernel.domain.values import Case, DiscountKind, DiscountRule
from billing_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)

IN_MEMORY_SQLITE_URL = "sqlite+pysqlite:///:memory:"

# Role type of the billed actor used throughout the suite
CLIENT_ROLE_TYPE_ID = 1


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture billing_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            resolver.resolve(...)
            logs = captured_logs()
            assert any(r["message"] == "rate_resolved" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("billing_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session_factory():
    """Fresh in-memory SQLite database with every table created."""
    init_engine_from_url(IN_MEMORY_SQLITE_URL)
    create_tables()
    yield get_session_factory()
    reset_engine()


@pytest.fixture
def session(session_factory):
    """A session on the in-memory database, closed after the test."""
    s = session_factory()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock():
    return DeterministicClock(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def config():
    return BillingConfig(role_type_id=CLIENT_ROLE_TYPE_ID, fallback_currency="EUR")


@pytest.fixture
def case():
    return Case(
        case_id=1001,
        case_number="P-1001-US",
        case_type_id=3,
        state_id="US",
        application_type_id=5,
        catchword="Widget patent",
    )


def make_rule(
    discount_id: int = 1,
    kind: int = DiscountKind.PURE,
    formula: str | None = "@ * 0.1",
    amount: str | Decimal = "0",
    **criteria,
) -> DiscountRule:
    """Build a DiscountRule with sensible defaults."""
    return DiscountRule(
        discount_id=discount_id,
        discount_type=int(kind),
        price_change_formula=formula,
        amount=Decimal(str(amount)),
        **criteria,
    )
