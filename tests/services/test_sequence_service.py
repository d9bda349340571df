"""
Tests for SequenceService and DocumentNumberService.
"""

import pytest

from settlement_kernel.services.sequence_service import (
    DocumentNumberService,
    SequenceService,
)


class TestSequenceService:
    def test_monotonic_per_name(self, session):
        seq = SequenceService(session)

        assert [seq.next_value("A") for _ in range(3)] == [1, 2, 3]
        assert seq.next_value("B") == 1
        assert seq.current_value("A") == 3

    def test_unknown_sequence_has_no_value(self, session):
        assert SequenceService(session).current_value("never-used") is None

    def test_rollback_returns_value(self, session):
        seq = SequenceService(session)
        seq.next_value("A")
        session.commit()

        seq.next_value("A")
        session.rollback()

        assert seq.next_value("A") == 2


class TestDocumentNumberService:
    def test_format(self, session, clock):
        numbers = DocumentNumberService(session, clock=clock)

        assert numbers.next_number("HX") == "HX202401150001"
        assert numbers.next_number("HX") == "HX202401150002"
        assert numbers.next_number("YF") == "YF202401150001"

    def test_counter_restarts_each_day(self, session, clock):
        numbers = DocumentNumberService(session, clock=clock)
        numbers.next_number("FK")
        numbers.next_number("FK")

        clock.advance_days(1)

        assert numbers.next_number("FK") == "FK202401160001"

    def test_services_share_counters(self, session, clock):
        a = DocumentNumberService(session, clock=clock)
        b = DocumentNumberService(session, clock=clock)

        assert a.next_number("QK") == "QK202401150001"
        assert b.next_number("QK") == "QK202401150002"

    def test_empty_prefix_rejected(self, session, clock):
        with pytest.raises(ValueError):
            DocumentNumberService(session, clock=clock).next_number("")
