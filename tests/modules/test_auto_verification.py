"""
Tests for the auto-verification triggers.

Validates:
- auto_verify_on_payment: amount is the minimum of order, invoices and
  payable; sequential across invoices; no-op on missing or exhausted inputs
- auto_verify_on_prepaid_settlement: one record per consumed order, stops
  once the payable is fully verified
"""

from decimal import Decimal
from uuid import uuid4

from settlement_modules.verification.models import (
    RecordStatus,
    VerificationStatus,
    VerificationType,
)


class TestAutoVerifyOnPayment:
    def test_amount_is_smallest_side(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("800")
        first = make_invoice("300")
        second = make_invoice("400")

        record = verification_service.auto_verify_on_payment(
            order.id, [first.id, second.id], payable.id,
        )

        assert record.amount == Decimal("700")
        assert record.verification_type == VerificationType.AUTO
        assert record.verified_by == "system-auto"
        assert record.remarks == f"payment order {order.order_no} auto verified"
        assert first.verification_status == VerificationStatus.VERIFIED.value
        assert second.verification_status == VerificationStatus.VERIFIED.value
        assert order.unverified_amount == Decimal("100")
        assert payable.verified_amount == Decimal("700")

    def test_only_touched_invoices_referenced(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("250")
        first = make_invoice("300")
        second = make_invoice("400")

        record = verification_service.auto_verify_on_payment(
            order.id, [first.id, second.id], payable.id,
        )

        assert record.invoice_ids == (first.id,)
        assert first.verified_amount == Decimal("250")
        assert second.verified_amount == Decimal("0")

    def test_skips_fully_verified_invoices(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("500")
        done = make_invoice("300", verified="300")
        open_invoice = make_invoice("400")

        record = verification_service.auto_verify_on_payment(
            order.id, [done.id, open_invoice.id], payable.id,
        )

        assert record.invoice_ids == (open_invoice.id,)
        assert record.amount == Decimal("400")

    def test_payable_limits_amount(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000", verified="950")
        order = make_payment_order("500")
        invoice = make_invoice("500")

        record = verification_service.auto_verify_on_payment(order.id, [invoice.id], payable.id)

        assert record.amount == Decimal("50")
        assert payable.verification_status == VerificationStatus.VERIFIED.value

    def test_nothing_eligible_returns_none(
        self, verification_service, make_payable, make_payment_order, make_invoice,
        captured_logs,
    ):
        payable = make_payable("1000")
        order = make_payment_order("500")
        invoice = make_invoice("300", verified="300")

        assert verification_service.auto_verify_on_payment(
            order.id, [invoice.id], payable.id,
        ) is None
        assert order.verified_amount == Decimal("0")
        assert any(r["message"] == "auto_verification_skipped" for r in captured_logs())

    def test_missing_inputs_return_none(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("500")
        invoice = make_invoice("500")

        assert verification_service.auto_verify_on_payment(uuid4(), [invoice.id], payable.id) is None
        assert verification_service.auto_verify_on_payment(order.id, [invoice.id], uuid4()) is None
        assert verification_service.auto_verify_on_payment(order.id, [uuid4()], payable.id) is None
        assert verification_service.list_verifications() == []


class TestAutoVerifyOnPrepaidSettlement:
    def test_one_record_per_order(
        self, verification_service, make_payable, make_payment_order,
    ):
        payable = make_payable("1000")
        first = make_payment_order("300")
        second = make_payment_order("400")

        records = verification_service.auto_verify_on_prepaid_settlement(
            payable.id, [first.id, second.id],
        )

        assert [r.amount for r in records] == [Decimal("300"), Decimal("400")]
        assert [r.payment_order_ids for r in records] == [(first.id,), (second.id,)]
        assert all(r.invoice_ids == () for r in records)
        assert all(r.verified_by == "system-auto-prepaid" for r in records)
        assert all(r.status == RecordStatus.COMPLETED for r in records)
        assert payable.verified_amount == Decimal("700")

    def test_stops_when_payable_verified(
        self, verification_service, make_payable, make_payment_order,
    ):
        payable = make_payable("500")
        first = make_payment_order("300")
        second = make_payment_order("400")
        third = make_payment_order("100")

        records = verification_service.auto_verify_on_prepaid_settlement(
            payable.id, [first.id, second.id, third.id],
        )

        assert [r.amount for r in records] == [Decimal("300"), Decimal("200")]
        assert second.unverified_amount == Decimal("200")
        assert third.verified_amount == Decimal("0")
        assert payable.verification_status == VerificationStatus.VERIFIED.value

    def test_missing_payable_returns_empty(self, verification_service, make_payment_order):
        order = make_payment_order("300")

        assert verification_service.auto_verify_on_prepaid_settlement(uuid4(), [order.id]) == []
        assert order.verified_amount == Decimal("0")

    def test_prepaid_records_reversible(
        self, verification_service, make_payable, make_payment_order,
    ):
        payable = make_payable("500")
        order = make_payment_order("300")
        record, = verification_service.auto_verify_on_prepaid_settlement(payable.id, [order.id])

        verification_service.reverse(
            record.id, payable.id, "business_change", "prepaid order was cancelled",
        )

        assert order.verified_amount == Decimal("0")
        assert payable.verified_amount == Decimal("0")
