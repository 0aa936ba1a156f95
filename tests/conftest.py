"""
Pytest fixtures for the wholesale kernel test suite.

Provides:
- A deterministic clock pinned to a known instant
- Captured structured logs
- In-memory SQLite sessions for the persistence tests
- Small builders for the entities used across modules

Environment Variables:
- DATABASE_URL: optional database URL for the persistence tests.
  Defaults to an in-memory SQLite database.
"""

import json
import logging
import os
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from wholesale_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from wholesale_kernel.domain.clock import DeterministicClock
from wholesale_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from wholesale_modules.purchasing.models import SupplierTransaction
from wholesale_modules.sales.models import Customer, Order

# Editor id used for all test mutations
TEST_EDITOR_ID = 7

# "Now" for every deterministic test: Saturday 15 June 2024, 12:00 UTC
FIXED_NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)
TODAY = FIXED_NOW.date()

DEFAULT_DATABASE_URL = "sqlite:///:memory:"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
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
    Capture wholesale_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            txn.finalize_transaction(...)
            logs = captured_logs()
            assert any(r["message"] == "supplier_transaction_finalized" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("wholesale_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Time
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


# =============================================================================
# Database
# =============================================================================


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


@pytest.fixture
def session():
    """A session on a freshly created schema; rolled back and torn down after."""
    init_engine_from_url(get_database_url())
    create_tables()
    db_session = get_session()
    try:
        yield db_session
    finally:
        db_session.rollback()
        db_session.close()
        drop_tables()
        reset_engine()


# =============================================================================
# Builders
# =============================================================================


@pytest.fixture
def make_invoice(clock):
    def _make(
        amount_excluding_tax="100.00",
        tax_amount="10.00",
        *,
        supplier_id=1,
        supplier_invoice_number="INV-001",
        transaction_date: date = TODAY,
        purchase_order_id=None,
        config=None,
    ) -> SupplierTransaction:
        return SupplierTransaction.create_invoice_transaction(
            supplier_id,
            1,
            supplier_invoice_number,
            transaction_date,
            Decimal(amount_excluding_tax),
            Decimal(tax_amount),
            TEST_EDITOR_ID,
            purchase_order_id=purchase_order_id,
            clock=clock,
            config=config,
        )

    return _make


@pytest.fixture
def make_order(clock):
    def _make(
        *,
        customer_id=10,
        order_date: date = TODAY,
        expected_delivery_date: date = date(2024, 6, 20),
        config=None,
    ) -> Order:
        return Order.create_standard_order(
            customer_id,
            2,
            3,
            order_date,
            expected_delivery_date,
            TEST_EDITOR_ID,
            clock=clock,
            config=config,
        )

    return _make


@pytest.fixture
def make_customer(clock):
    def _make(*, customer_name="Tailspin Toys (Head Office)", **overrides) -> Customer:
        return Customer(
            customer_name,
            overrides.pop("bill_to_customer_id", 1),
            overrides.pop("customer_category_id", 3),
            overrides.pop("primary_contact_person_id", 1001),
            overrides.pop("delivery_method_id", 3),
            overrides.pop("account_opened_date", date(2013, 1, 1)),
            overrides.pop("standard_discount_percentage", Decimal("0")),
            overrides.pop("payment_days", 7),
            TEST_EDITOR_ID,
            clock=clock,
            **overrides,
        )

    return _make
