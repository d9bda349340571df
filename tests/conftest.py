"""
Pytest fixtures for the settlement test suite.

Provides:
- An in-memory SQLite session per test (schema created fresh each time)
- A deterministic clock pinned to 2024-01-15 12:00 UTC
- Service fixtures wired to that session and clock
- Seed helpers that insert payables, payment orders and invoices directly
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from settlement_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from settlement_kernel.db.types import ZERO
from settlement_kernel.domain.clock import DeterministicClock
from settlement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from settlement_modules.invoices.models import AuthenticityOutcome, AuthenticityResult
from settlement_modules.invoices.service import InvoiceService
from settlement_modules.payments.service import PaymentService
from settlement_modules.statements.service import StatementService
from settlement_modules.verification.models import VerificationStatus
from settlement_modules.verification.orm import (
    AccountsPayableModel,
    InvoiceModel,
    PaymentOrderModel,
)
from settlement_modules.verification.service import VerificationService

TEST_ACTOR = "tester"
SUPPLIER_ID = "SUP001"
SUPPLIER_NAME = "Acme Components"


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
    Capture settlement_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, verification_service):
            verification_service.verify(...)
            logs = captured_logs()
            assert any(r["message"] == "verification_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("settlement_kernel")
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
# Database and clock
# =============================================================================


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """Fresh in-memory database for each test."""
    init_engine_from_url("sqlite://")
    create_tables()
    s = get_session()
    yield s
    s.close()
    reset_engine()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


# =============================================================================
# Services
# =============================================================================


class FixedOracle:
    """Authenticity oracle returning a preset outcome."""

    def __init__(self, outcome: AuthenticityOutcome):
        self.outcome = outcome
        self.calls = 0

    def check(self, invoice):
        self.calls += 1
        return self.outcome


@pytest.fixture
def make_oracle():
    """Build an oracle answering with the given result and reason."""
    def _make(result: AuthenticityResult, reason: str | None = None) -> FixedOracle:
        return FixedOracle(AuthenticityOutcome(result, reason))

    return _make


@pytest.fixture
def passing_oracle(make_oracle) -> FixedOracle:
    return make_oracle(AuthenticityResult.VERIFIED)


@pytest.fixture
def verification_service(session, clock) -> VerificationService:
    return VerificationService(session, clock=clock)


@pytest.fixture
def invoice_service(session, clock, passing_oracle) -> InvoiceService:
    return InvoiceService(session, clock=clock, oracle=passing_oracle)


@pytest.fixture
def payment_service(session, clock) -> PaymentService:
    return PaymentService(session, clock=clock)


@pytest.fixture
def statement_service(session, clock) -> StatementService:
    return StatementService(session, clock=clock)


# =============================================================================
# Seed helpers
# =============================================================================


@pytest.fixture
def make_payable(session):
    """Insert an accounts payable with the given total (and prior verification)."""
    counter = iter(range(1, 10_000))

    def _make(amount, verified=ZERO, paid=ZERO) -> AccountsPayableModel:
        amount, verified, paid = Decimal(amount), Decimal(verified), Decimal(paid)
        payable = AccountsPayableModel(
            payable_no=f"YFT{next(counter):04d}",
            supplier_id=SUPPLIER_ID,
            supplier_name=SUPPLIER_NAME,
            payable_amount=amount,
            paid_amount=paid,
            unpaid_amount=amount - paid,
            invoiced_amount=ZERO,
            payment_status="unpaid",
            verified_amount=ZERO,
            unverified_amount=amount,
            verification_status=VerificationStatus.UNVERIFIED.value,
            due_date=date(2024, 2, 14),
            created_by=TEST_ACTOR,
        )
        if verified:
            payable.apply_verified(verified)
        session.add(payable)
        session.commit()
        return payable

    return _make


@pytest.fixture
def make_payment_order(session):
    """Insert a completed payment order."""
    counter = iter(range(1, 10_000))

    def _make(amount, verified=ZERO, request_id=None, payable_id=None) -> PaymentOrderModel:
        amount, verified = Decimal(amount), Decimal(verified)
        order = PaymentOrderModel(
            order_no=f"FKT{next(counter):04d}",
            supplier_id=SUPPLIER_ID,
            supplier_name=SUPPLIER_NAME,
            payment_amount=amount,
            payment_method="bank_transfer",
            payment_date=date(2024, 1, 15),
            status="completed",
            request_id=request_id,
            payable_id=payable_id,
            verified_amount=ZERO,
            unverified_amount=amount,
            verification_status=VerificationStatus.UNVERIFIED.value,
            created_by=TEST_ACTOR,
        )
        if verified:
            order.apply_verified(verified)
        session.add(order)
        session.commit()
        return order

    return _make


@pytest.fixture
def make_invoice(session):
    """Insert an authenticated, usable invoice."""
    counter = iter(range(1, 10_000))

    def _make(amount, verified=ZERO) -> InvoiceModel:
        amount, verified = Decimal(amount), Decimal(verified)
        n = next(counter)
        invoice = InvoiceModel(
            invoice_no=f"{n:08d}",
            invoice_code="044001900111",
            invoice_type="vat_special",
            supplier_id=SUPPLIER_ID,
            supplier_name=SUPPLIER_NAME,
            amount=amount,
            tax_amount=ZERO,
            total_amount=amount,
            invoice_date=date(2024, 1, 10),
            received_date=date(2024, 1, 12),
            input_method="manual",
            authenticity_status="verified",
            usable=True,
            verified_amount=ZERO,
            unverified_amount=amount,
            verification_status=VerificationStatus.UNVERIFIED.value,
            created_by=TEST_ACTOR,
        )
        if verified:
            invoice.apply_verified(verified)
        session.add(invoice)
        session.commit()
        return invoice

    return _make
