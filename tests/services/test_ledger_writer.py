"""
Tests for LedgerWriter.

Covers:
- Budget header insert and edit-date update
- Per-case budget line sequence numbers
- Amounts written as computed
- Time registration mirrors the budget line
"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from billing_kernel.domain.values import Case
from billing_kernel.models import BudgetHeaderModel, BudgetLineModel, TimeRegistrationModel
from billing_services.billing_service import BillingService
from billing_services.ledger_writer import LedgerWriter
from tests.conftest import make_rule
from tests.fakes import InMemoryReferenceStore

ACTIVITY_DATE = date(2024, 5, 31)


@pytest.fixture
def billing(case, config, clock):
    store = InMemoryReferenceStore()
    store.add_case(case)
    store.case_currencies[case.case_id] = "USD"
    store.person_default_rates["jdoe"] = Decimal("25")
    store.discount_rules = [make_rule(7, formula="@ * 0.1")]
    return BillingService(store, config, clock)


@pytest.fixture
def writer(session, clock):
    return LedgerWriter(session, clock)


class TestSequenceNumbers:
    """Budget line numbering per case."""

    def test_first_line_is_one(self, writer, case):
        assert writer.next_sequence_number(case.case_id) == 1

    def test_increments_per_case(self, writer, billing, case, session):
        other = Case(case_id=2002, case_number="P-2002")
        for _ in range(2):
            writer.write(billing.resolve(case, "PAT", "jdoe", Decimal("1")), ACTIVITY_DATE)
        result = writer.write(billing.resolve(other, "PAT", "jdoe", Decimal("1")), ACTIVITY_DATE)

        assert writer.next_sequence_number(case.case_id) == 3
        assert result.sequence_number == 1
        assert result.case_id == 2002


class TestBudgetHeader:
    """One header per case, its edit date bumped on every write."""

    def test_inserted_once(self, writer, billing, case, session, clock):
        writer.write(billing.resolve(case, "PAT", "jdoe", Decimal("1")), ACTIVITY_DATE)
        clock.advance(3600)
        writer.write(billing.resolve(case, "PAT", "jdoe", Decimal("1")), ACTIVITY_DATE)

        headers = session.execute(select(BudgetHeaderModel)).scalars().all()
        assert len(headers) == 1
        assert headers[0].case_id == case.case_id
        assert headers[0].budget_edit_date == datetime(2024, 6, 1, 13, 0, tzinfo=timezone.utc)


class TestWrite:
    """Contents of the budget line and time registration."""

    def test_budget_line_amounts(self, writer, billing, case, session):
        resolution = billing.resolve(
            case, "PAT", "jdoe", Decimal("2.50"), actual_hours=Decimal("3.00")
        )

        result = writer.write(
            resolution, ACTIVITY_DATE, comment="Drafted claims", source_record_id="rec-1"
        )

        line = session.get(BudgetLineModel, result.budget_line_id)
        assert line.sequence_number == 1
        assert line.currency == "USD"
        assert line.hourly_rate == Decimal("25")
        assert line.chargeable_hours == Decimal("2.50")
        assert line.actual_hours == Decimal("3.00")
        assert line.chargeable_amount == Decimal("56.25")
        assert line.actual_amount == Decimal("75.00")
        assert line.discount_amount == Decimal("-6.25")
        assert line.discount_percentage == Decimal("-10")
        assert line.effective_rate == Decimal("22.50")
        assert line.applied_discount_id == 7
        assert line.rate_level == "PERSON_DEFAULT"
        assert line.comment == "Drafted claims"
        assert line.source_record_id == "rec-1"

    def test_time_registration(self, writer, billing, case, session):
        submitted = datetime(2024, 5, 31, 18, 30, tzinfo=timezone.utc)
        resolution = billing.resolve(case, "PAT", "jdoe", Decimal("2.50"))

        result = writer.write(
            resolution, ACTIVITY_DATE, source_record_id="rec-1", recorded_at=submitted
        )

        registration = session.get(TimeRegistrationModel, result.time_registration_id)
        assert registration.case_id == case.case_id
        assert registration.sequence_number == result.sequence_number
        assert registration.activity_date == ACTIVITY_DATE
        assert registration.registered_at == submitted
        assert registration.chargeable_hours == Decimal("2.50")
        assert registration.login_id == "jdoe"

    def test_flush_only(self, writer, billing, case, session):
        writer.write(billing.resolve(case, "PAT", "jdoe", Decimal("1")), ACTIVITY_DATE)
        session.rollback()

        count = session.execute(select(func.count()).select_from(BudgetLineModel)).scalar_one()
        assert count == 0

    def test_write_logged(self, writer, billing, case, captured_logs):
        writer.write(billing.resolve(case, "PAT", "jdoe", Decimal("1")), ACTIVITY_DATE)

        logs = [r for r in captured_logs() if r["message"] == "ledger_rows_written"]
        assert logs[0]["sequence_number"] == 1
        assert logs[0]["case_number"] == case.case_number
