"""
Tests for VerificationService.

Validates:
- verify: sequential and manual allocation, caps, validation order
- reverse: reason checks, cross-month approval protocol, conservation
- batch_verify: per-item isolation and commit semantics
- previews: max_verifiable_amount, preview_sequential_allocation
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from settlement_kernel.exceptions import (
    AlreadyReversedError,
    AmountExceedsCapError,
    CrossMonthApprovalRequiredError,
    EmptySelectionError,
    InvalidAmountError,
    MissingReasonError,
    NotFoundError,
    ReasonTooShortError,
)
from settlement_modules.verification.models import (
    InvoiceDetail,
    PaymentOrderDetail,
    RecordStatus,
    ReverseReasonType,
    VerificationStatus,
    VerificationType,
    VerifyRequest,
)
from settlement_modules.verification.orm import (
    INVOICE_SIDE,
    PAYMENT_ORDER_SIDE,
    VerificationRecordModel,
)

REASON = "amount keyed against the wrong invoice"


# =============================================================================
# verify
# =============================================================================


class TestVerify:
    def test_partial_verification_of_single_items(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        invoice = make_invoice("1000")

        record = verification_service.verify(
            payable.id, [order.id], [invoice.id], Decimal("600"), verified_by="alice",
        )

        assert record.amount == Decimal("600")
        assert record.status == RecordStatus.COMPLETED
        assert record.verification_type == VerificationType.MANUAL
        assert record.verified_by == "alice"
        assert record.verification_no == "HX202401150001"
        for item in (order, invoice):
            assert item.verified_amount == Decimal("600")
            assert item.unverified_amount == Decimal("400")
            assert item.verification_status == VerificationStatus.PARTIAL_VERIFIED.value
        assert payable.unverified_amount == Decimal("400")
        assert payable.verification_status == VerificationStatus.PARTIAL_VERIFIED.value

    def test_sequential_allocation_across_invoices(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        first = make_invoice("300")
        second = make_invoice("400")

        record = verification_service.verify(
            payable.id, [order.id], [first.id, second.id], Decimal("500"),
        )

        assert first.verified_amount == Decimal("300")
        assert first.verification_status == VerificationStatus.VERIFIED.value
        assert second.verified_amount == Decimal("200")
        assert second.unverified_amount == Decimal("200")
        assert second.verification_status == VerificationStatus.PARTIAL_VERIFIED.value
        assert record.invoice_details == (
            InvoiceDetail(first.id, Decimal("300")),
            InvoiceDetail(second.id, Decimal("200")),
        )
        assert record.payment_order_details == (PaymentOrderDetail(order.id, Decimal("500")),)

    def test_untouched_items_have_no_detail_rows(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        first = make_invoice("600")
        second = make_invoice("400")

        record = verification_service.verify(
            payable.id, [order.id], [first.id, second.id], Decimal("500"),
        )

        assert record.invoice_ids == (first.id, second.id)
        assert [d.invoice_id for d in record.invoice_details] == [first.id]
        assert second.verified_amount == Decimal("0")

    def test_manual_details_with_mismatched_sides(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("800")
        invoice = make_invoice("800")

        record = verification_service.verify(
            payable.id, [order.id], [invoice.id], Decimal("500"),
            payment_order_details=[PaymentOrderDetail(order.id, Decimal("500"))],
            invoice_details=[InvoiceDetail(invoice.id, Decimal("450"))],
        )

        assert record.amount == Decimal("450")
        assert record.payment_order_detail_total == Decimal("500")
        assert record.invoice_detail_total == Decimal("450")
        assert order.verified_amount == Decimal("500")
        assert invoice.verified_amount == Decimal("450")
        assert payable.verified_amount == Decimal("450")

    def test_manual_details_may_record_more_than_requested(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("800")
        invoice = make_invoice("800")

        record = verification_service.verify(
            payable.id, [order.id], [invoice.id], Decimal("100"),
            payment_order_details=[PaymentOrderDetail(order.id, Decimal("500"))],
            invoice_details=[InvoiceDetail(invoice.id, Decimal("450"))],
        )

        assert record.amount == Decimal("450")
        assert payable.verified_amount == Decimal("450")

    def test_manual_details_clamped_to_item_balance(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("300")
        invoice = make_invoice("300")

        record = verification_service.verify(
            payable.id, [order.id], [invoice.id], Decimal("300"),
            payment_order_details=[PaymentOrderDetail(order.id, Decimal("350"))],
            invoice_details=[InvoiceDetail(invoice.id, Decimal("300"))],
        )

        assert record.payment_order_detail_total == Decimal("300")
        assert order.unverified_amount == Decimal("0")

    def test_one_sided_details_fall_back_to_sequential(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        invoice = make_invoice("1000")

        record = verification_service.verify(
            payable.id, [order.id], [invoice.id], Decimal("200"),
            payment_order_details=[PaymentOrderDetail(order.id, Decimal("700"))],
        )

        assert record.amount == Decimal("200")
        assert order.verified_amount == Decimal("200")

    def test_manual_detail_outside_selection_rejected(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        other = make_payment_order("1000")
        invoice = make_invoice("1000")

        with pytest.raises(NotFoundError, match="not among the selected items"):
            verification_service.verify(
                payable.id, [order.id], [invoice.id], Decimal("100"),
                payment_order_details=[PaymentOrderDetail(other.id, Decimal("100"))],
                invoice_details=[InvoiceDetail(invoice.id, Decimal("100"))],
            )
        assert order.verified_amount == Decimal("0")

    def test_full_verification_completes_payable(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("750")
        order = make_payment_order("750")
        invoice = make_invoice("750")

        verification_service.verify(payable.id, [order.id], [invoice.id], Decimal("750"))

        assert payable.verification_status == VerificationStatus.VERIFIED.value
        assert payable.unverified_amount == Decimal("0")

    def test_duplicate_ids_collapsed(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        invoice = make_invoice("1000")

        record = verification_service.verify(
            payable.id, [order.id, order.id], [invoice.id], Decimal("100"),
        )

        assert record.payment_order_ids == (order.id,)
        assert order.verified_amount == Decimal("100")

    def test_document_numbers_increment(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        invoice = make_invoice("1000")

        first = verification_service.verify(payable.id, [order.id], [invoice.id], Decimal("100"))
        second = verification_service.verify(payable.id, [order.id], [invoice.id], Decimal("100"))

        assert first.verification_no == "HX202401150001"
        assert second.verification_no == "HX202401150002"

    def test_logs_committed_event(
        self, verification_service, make_payable, make_payment_order, make_invoice,
        captured_logs,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        invoice = make_invoice("1000")

        verification_service.verify(payable.id, [order.id], [invoice.id], Decimal("100"))

        committed = [r for r in captured_logs() if r["message"] == "verification_committed"]
        assert len(committed) == 1
        assert committed[0]["payable_id"] == str(payable.id)
        assert committed[0]["amount"] == "100"


class TestVerifyValidation:
    def test_empty_payment_orders(self, verification_service, make_payable, make_invoice):
        payable = make_payable("1000")
        invoice = make_invoice("1000")

        with pytest.raises(EmptySelectionError) as exc_info:
            verification_service.verify(payable.id, [], [invoice.id], Decimal("100"))
        assert exc_info.value.side == "payment order"

    def test_empty_invoices(self, verification_service, make_payable, make_payment_order):
        payable = make_payable("1000")
        order = make_payment_order("1000")

        with pytest.raises(EmptySelectionError) as exc_info:
            verification_service.verify(payable.id, [order.id], [], Decimal("100"))
        assert exc_info.value.side == "invoice"

    def test_missing_payable(self, verification_service, make_payment_order, make_invoice):
        order = make_payment_order("1000")
        invoice = make_invoice("1000")

        with pytest.raises(NotFoundError) as exc_info:
            verification_service.verify(uuid4(), [order.id], [invoice.id], Decimal("100"))
        assert exc_info.value.entity_type == "AccountsPayable"

    def test_missing_invoice(self, verification_service, make_payable, make_payment_order):
        payable = make_payable("1000")
        order = make_payment_order("1000")

        with pytest.raises(NotFoundError) as exc_info:
            verification_service.verify(payable.id, [order.id], [uuid4()], Decimal("100"))
        assert exc_info.value.entity_type == "Invoice"

    @pytest.mark.parametrize("amount", ["0", "-5"])
    def test_non_positive_amount(
        self, verification_service, make_payable, make_payment_order, make_invoice, amount,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        invoice = make_invoice("1000")

        with pytest.raises(InvalidAmountError):
            verification_service.verify(payable.id, [order.id], [invoice.id], Decimal(amount))

    @pytest.mark.parametrize("amount", [100.0, Decimal("NaN"), Decimal("Infinity"), "abc"])
    def test_malformed_amount_rejected(
        self, verification_service, make_payable, make_payment_order, make_invoice, amount,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        invoice = make_invoice("1000")

        with pytest.raises(InvalidAmountError):
            verification_service.verify(payable.id, [order.id], [invoice.id], amount)
        assert order.verified_amount == Decimal("0")

    def test_malformed_manual_detail_rejected(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        invoice = make_invoice("1000")

        with pytest.raises(InvalidAmountError):
            verification_service.verify(
                payable.id, [order.id], [invoice.id], Decimal("100"),
                payment_order_details=[PaymentOrderDetail(order.id, Decimal("NaN"))],
                invoice_details=[InvoiceDetail(invoice.id, Decimal("100"))],
            )
        assert payable.verified_amount == Decimal("0")

    def test_amount_above_cap(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        invoice = make_invoice("600")

        with pytest.raises(AmountExceedsCapError) as exc_info:
            verification_service.verify(payable.id, [order.id], [invoice.id], Decimal("700"))

        assert exc_info.value.cap == Decimal("600")
        assert payable.verified_amount == Decimal("0")
        assert order.verified_amount == Decimal("0")

    def test_cap_respects_prior_verification(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000", verified="900")
        order = make_payment_order("1000")
        invoice = make_invoice("1000")

        with pytest.raises(AmountExceedsCapError) as exc_info:
            verification_service.verify(payable.id, [order.id], [invoice.id], Decimal("200"))
        assert exc_info.value.cap == Decimal("100")

    def test_failed_verify_writes_nothing(
        self, session, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        invoice = make_invoice("100")

        with pytest.raises(AmountExceedsCapError):
            verification_service.verify(payable.id, [order.id], [invoice.id], Decimal("500"))

        assert session.query(VerificationRecordModel).count() == 0


# =============================================================================
# reverse
# =============================================================================


@pytest.fixture
def verified(verification_service, make_payable, make_payment_order, make_invoice):
    """A payable with one 500 verification over one order and two invoices."""
    payable = make_payable("1000")
    order = make_payment_order("1000")
    first = make_invoice("300")
    second = make_invoice("400")
    record = verification_service.verify(
        payable.id, [order.id], [first.id, second.id], Decimal("500"),
    )
    return payable, order, first, second, record


class TestReverse:
    def test_reversal_restores_every_balance(self, verification_service, verified):
        payable, order, first, second, record = verified

        reversed_record = verification_service.reverse(
            record.id, payable.id, ReverseReasonType.INPUT_ERROR, REASON, reversed_by="bob",
        )

        assert reversed_record.status == RecordStatus.REVERSED
        assert reversed_record.reversed_by == "bob"
        assert reversed_record.reverse_reason_type == ReverseReasonType.INPUT_ERROR
        assert reversed_record.cross_month_approved is False
        for item in (payable, order, first, second):
            assert item.verified_amount == Decimal("0")
            assert item.verification_status == VerificationStatus.UNVERIFIED.value
        assert payable.unverified_amount == Decimal("1000")
        assert second.unverified_amount == Decimal("400")

    def test_reason_type_as_string(self, verification_service, verified):
        payable, _, _, _, record = verified

        result = verification_service.reverse(record.id, payable.id, "business_change", REASON)

        assert result.reverse_reason_type == ReverseReasonType.BUSINESS_CHANGE

    @pytest.mark.parametrize("reason_type", [None, "", "typo"])
    def test_reason_type_required(self, verification_service, verified, reason_type):
        payable, _, _, _, record = verified

        with pytest.raises(MissingReasonError):
            verification_service.reverse(record.id, payable.id, reason_type, REASON)

    def test_reason_detail_length_boundary(self, verification_service, verified):
        payable, _, _, _, record = verified

        with pytest.raises(ReasonTooShortError) as exc_info:
            verification_service.reverse(record.id, payable.id, "other", "123456789")
        assert exc_info.value.length == 9

        result = verification_service.reverse(record.id, payable.id, "other", "1234567890")
        assert result.status == RecordStatus.REVERSED

    def test_reason_checked_before_lookup(self, verification_service):
        with pytest.raises(ReasonTooShortError):
            verification_service.reverse(uuid4(), uuid4(), "other", "short")

    def test_record_on_other_payable_not_found(
        self, verification_service, verified, make_payable,
    ):
        _, _, _, _, record = verified
        other = make_payable("10")

        with pytest.raises(NotFoundError):
            verification_service.reverse(record.id, other.id, "other", REASON)

    def test_second_reversal_rejected(self, verification_service, verified):
        payable, order, _, _, record = verified
        verification_service.reverse(record.id, payable.id, "other", REASON)

        with pytest.raises(AlreadyReversedError):
            verification_service.reverse(record.id, payable.id, "other", REASON)
        assert order.verified_amount == Decimal("0")

    def test_manual_mismatch_reversal_is_conservative(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("800")
        invoice = make_invoice("800")
        record = verification_service.verify(
            payable.id, [order.id], [invoice.id], Decimal("500"),
            payment_order_details=[PaymentOrderDetail(order.id, Decimal("500"))],
            invoice_details=[InvoiceDetail(invoice.id, Decimal("450"))],
        )

        verification_service.reverse(record.id, payable.id, "input_error", REASON)

        assert order.verified_amount == Decimal("0")
        assert invoice.verified_amount == Decimal("0")
        assert payable.verified_amount == Decimal("0")

    def test_legacy_record_without_details(
        self, session, verification_service, make_payable, make_payment_order, make_invoice,
        clock,
    ):
        payable = make_payable("1000", verified="200")
        order = make_payment_order("500", verified="200")
        invoice = make_invoice("500", verified="200")
        legacy = VerificationRecordModel(
            verification_no="HX202401010001",
            payable_id=payable.id,
            amount=Decimal("200"),
            verification_date=clock.today(),
            verified_by="migrated",
            verified_at=clock.now(),
            status=RecordStatus.COMPLETED.value,
            verification_type=VerificationType.MANUAL.value,
            cross_month_approved=False,
            created_by="migrated",
        )
        legacy.payment_order_ids = [order.id]
        legacy.invoice_ids = [invoice.id]
        session.add(legacy)
        session.commit()

        verification_service.reverse(legacy.id, payable.id, "other", REASON)

        assert order.verified_amount == Decimal("0")
        assert invoice.verified_amount == Decimal("0")
        assert payable.verified_amount == Decimal("0")


class TestCrossMonthReversal:
    def test_requires_then_accepts_approval(
        self, verification_service, clock, make_payable, make_payment_order, make_invoice,
    ):
        clock.set_time(datetime(2023, 11, 20, 9, 0, tzinfo=timezone.utc))
        payable = make_payable("1000")
        order = make_payment_order("1000")
        invoice = make_invoice("1000")
        record = verification_service.verify(
            payable.id, [order.id], [invoice.id], Decimal("300"),
        )
        clock.set_time(datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc))

        with pytest.raises(CrossMonthApprovalRequiredError) as exc_info:
            verification_service.reverse(record.id, payable.id, "other", REASON)
        assert exc_info.value.verification_month == "2023-11"
        assert exc_info.value.current_month == "2024-01"
        assert exc_info.value.require_approval is True
        assert payable.verified_amount == Decimal("300")

        result = verification_service.reverse(
            record.id, payable.id, "other", REASON, approval_confirmed=True,
        )
        assert result.status == RecordStatus.REVERSED
        assert result.cross_month_approved is True
        assert payable.verified_amount == Decimal("0")

    def test_same_month_ignores_flag(self, verification_service, verified):
        payable, _, _, _, record = verified

        result = verification_service.reverse(
            record.id, payable.id, "other", REASON, approval_confirmed=True,
        )

        assert result.cross_month_approved is False

    def test_blocked_reversal_logged(
        self, verification_service, clock, captured_logs, make_payable,
        make_payment_order, make_invoice,
    ):
        clock.set_time(datetime(2023, 12, 31, 23, 0, tzinfo=timezone.utc))
        payable = make_payable("100")
        record = verification_service.verify(
            payable.id, [make_payment_order("100").id], [make_invoice("100").id],
            Decimal("100"),
        )
        clock.advance(7200)

        with pytest.raises(CrossMonthApprovalRequiredError):
            verification_service.reverse(record.id, payable.id, "other", REASON)

        blocked = [r for r in captured_logs() if r["message"] == "reversal_blocked_cross_month"]
        assert blocked[0]["verification_month"] == "2023-12"
        assert blocked[0]["current_month"] == "2024-01"


# =============================================================================
# batch_verify
# =============================================================================


class TestBatchVerify:
    def _request(self, payable, order, invoice, amount):
        return VerifyRequest(
            payable_id=payable.id,
            payment_order_ids=(order.id,),
            invoice_ids=(invoice.id,),
            amount=Decimal(amount),
        )

    def test_failing_item_isolated(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        items = [
            (make_payable("1000"), make_payment_order("1000"), make_invoice("1000"), "400"),
            (make_payable("1000"), make_payment_order("1000"), make_invoice("100"), "500"),
            (make_payable("1000"), make_payment_order("1000"), make_invoice("1000"), "250"),
        ]

        result = verification_service.batch_verify(
            [self._request(*item) for item in items], verified_by="batcher",
        )

        assert result.success_count == 2
        assert result.fail_count == 1
        assert result.results[1].error_code == "AMOUNT_EXCEEDS_CAP"
        assert result.results[1].verification_no is None
        assert items[0][0].verified_amount == Decimal("400")
        assert items[1][0].verified_amount == Decimal("0")
        assert items[1][1].verified_amount == Decimal("0")
        assert items[2][0].verified_amount == Decimal("250")

    def test_default_remark_applied(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        result = verification_service.batch_verify([
            self._request(payable, make_payment_order("1000"), make_invoice("1000"), "10"),
        ])

        record = verification_service.get_verification(result.results[0].verification_id)
        assert record.remarks == "batch verification"

    def test_all_failures_write_nothing(
        self, session, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        request = self._request(payable, make_payment_order("1000"), make_invoice("1000"), "0")

        result = verification_service.batch_verify([request])

        assert result.success_count == 0
        assert result.results[0].error_code == "INVALID_AMOUNT"
        assert session.query(VerificationRecordModel).count() == 0

    def test_missing_payable_reported(
        self, verification_service, make_payment_order, make_invoice,
    ):
        request = VerifyRequest(
            payable_id=uuid4(),
            payment_order_ids=(make_payment_order("10").id,),
            invoice_ids=(make_invoice("10").id,),
            amount=Decimal("5"),
        )

        result = verification_service.batch_verify([request])

        assert result.results[0].success is False
        assert result.results[0].error_code == "NOT_FOUND"

    def test_later_items_see_earlier_mutations(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        order = make_payment_order("500")
        invoice = make_invoice("500")
        first = make_payable("400")
        second = make_payable("400")

        result = verification_service.batch_verify([
            self._request(first, order, invoice, "400"),
            self._request(second, order, invoice, "200"),
        ])

        assert result.results[0].success
        assert result.results[1].error_code == "AMOUNT_EXCEEDS_CAP"
        assert order.verified_amount == Decimal("400")

    @pytest.mark.parametrize("bad_amount", [100.0, Decimal("NaN")])
    def test_malformed_amount_isolated(
        self, session, verification_service, make_payable, make_payment_order, make_invoice,
        bad_amount,
    ):
        first, bad, last = (make_payable("1000") for _ in range(3))
        requests = [
            self._request(first, make_payment_order("1000"), make_invoice("1000"), "400"),
            VerifyRequest(
                payable_id=bad.id,
                payment_order_ids=(make_payment_order("1000").id,),
                invoice_ids=(make_invoice("1000").id,),
                amount=bad_amount,
            ),
            self._request(last, make_payment_order("1000"), make_invoice("1000"), "250"),
        ]

        result = verification_service.batch_verify(requests)

        assert [r.success for r in result.results] == [True, False, True]
        assert result.results[1].error_code == "INVALID_AMOUNT"
        assert first.verified_amount == Decimal("400")
        assert bad.verified_amount == Decimal("0")
        assert last.verified_amount == Decimal("250")
        assert session.query(VerificationRecordModel).count() == 2


# =============================================================================
# Queries and previews
# =============================================================================


class TestQueries:
    def test_max_verifiable_amount(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000", verified="100")
        orders = [make_payment_order("300"), make_payment_order("400")]
        invoice = make_invoice("2000")

        cap = verification_service.max_verifiable_amount(
            payable.id, [o.id for o in orders], [invoice.id],
        )

        assert cap == Decimal("700")

    def test_preview_matches_verify(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        order = make_payment_order("1000")
        invoices = [make_invoice("300"), make_invoice("400")]

        po_preview, inv_preview = verification_service.preview_sequential_allocation(
            Decimal("500"), [order.id], [i.id for i in invoices],
        )
        record = verification_service.verify(
            payable.id, [order.id], [i.id for i in invoices], Decimal("500"),
        )

        assert po_preview.total_allocated == Decimal("500")
        assert [
            (line.item_id, line.allocated) for line in inv_preview.touched_lines
        ] == [(d.invoice_id, d.amount) for d in record.invoice_details]

    def test_list_verifications_per_payable(
        self, verification_service, make_payable, make_payment_order, make_invoice,
    ):
        payable = make_payable("1000")
        other = make_payable("1000")
        order = make_payment_order("2000")
        invoice = make_invoice("2000")
        verification_service.verify(payable.id, [order.id], [invoice.id], Decimal("100"))
        verification_service.verify(other.id, [order.id], [invoice.id], Decimal("100"))

        assert len(verification_service.list_verifications(payable.id)) == 1
        assert len(verification_service.list_verifications()) == 2

    def test_record_to_dict_carries_singular_references(self, verified):
        _, order, first, _, record = verified

        data = record.to_dict()

        assert data["payment_order_id"] == str(order.id)
        assert data["invoice_id"] == str(first.id)
        assert len(data["invoice_ids"]) == 2

    def test_detail_rows_persisted_per_side(self, session, verified):
        _, _, _, _, record = verified

        model = session.get(VerificationRecordModel, record.id)

        assert len(model.details_for(PAYMENT_ORDER_SIDE)) == 1
        assert len(model.details_for(INVOICE_SIDE)) == 2
