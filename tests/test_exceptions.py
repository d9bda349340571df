"""
Tests for the settlement exception hierarchy.

Every error carries a machine-readable ``code`` and serialises its
structured fields through ``to_dict``.
"""

from decimal import Decimal
from uuid import UUID

import pytest

from settlement_kernel import exceptions as exc


class TestHierarchy:
    @pytest.mark.parametrize("cls,base", [
        (exc.EmptySelectionError, exc.VerificationError),
        (exc.AmountExceedsCapError, exc.VerificationError),
        (exc.ReasonTooShortError, exc.ReversalError),
        (exc.CrossMonthApprovalRequiredError, exc.ReversalError),
        (exc.InvalidTransitionError, exc.WorkflowError),
        (exc.DuplicateInvoiceError, exc.InvoiceError),
        (exc.InvoiceNotAllocatedError, exc.InvoiceError),
        (exc.PaymentAmountExceededError, exc.PaymentError),
        (exc.SupplierNotConfirmedError, exc.StatementError),
    ])
    def test_subclassing(self, cls, base):
        assert issubclass(cls, base)
        assert issubclass(cls, exc.SettlementError)

    def test_codes_are_unique(self):
        classes = [
            obj for obj in vars(exc).values()
            if isinstance(obj, type) and issubclass(obj, exc.SettlementError)
        ]
        codes = [cls.code for cls in classes]

        assert len(codes) == len(set(codes))


class TestToDict:
    def test_amount_exceeds_cap(self):
        err = exc.AmountExceedsCapError(Decimal("700"), Decimal("600"))

        data = err.to_dict()

        assert data["code"] == "AMOUNT_EXCEEDS_CAP"
        assert data["requested"] == "700"
        assert data["cap"] == "600"
        assert "600.00" in data["message"]

    def test_cross_month_flags(self):
        record_id = UUID("00000000-0000-0000-0000-000000000001")
        err = exc.CrossMonthApprovalRequiredError(record_id, "2023-11", "2024-01")

        data = err.to_dict()

        assert data["code"] == "CROSS_MONTH_APPROVAL_REQUIRED"
        assert data["require_approval"] is True
        assert data["cross_month"] is True
        assert data["verification_id"] == str(record_id)
        assert data["verification_month"] == "2023-11"

    def test_not_found_detail(self):
        err = exc.NotFoundError("Invoice", "abc", detail="deleted")

        assert str(err) == "Invoice abc not found: deleted"
        assert err.to_dict()["entity_type"] == "Invoice"

    def test_reason_too_short(self):
        data = exc.ReasonTooShortError(9, 10).to_dict()

        assert data == {
            "code": "REASON_TOO_SHORT",
            "message": "Reversal reason detail needs at least 10 characters, got 9",
            "length": 9,
            "minimum": 10,
        }

    def test_missing_reason_lists_allowed(self):
        err = exc.MissingReasonError(None, ("input_error", "other"))

        assert err.allowed == ["input_error", "other"]
        assert "input_error, other" in str(err)
