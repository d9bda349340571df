"""JSON log lines, LogContext binding and logger setup."""

import json
import logging
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from settlement_kernel.exceptions import AmountExceedsCapError
from settlement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _fresh_logging():
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()


@pytest.fixture
def json_logs():
    """Route settlement logs to a buffer; calling the fixture parses it."""
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(StructuredFormatter())
    configure_logging(handler=handler)

    def lines() -> list[dict]:
        return [json.loads(raw) for raw in buffer.getvalue().splitlines() if raw]

    return lines


@pytest.fixture
def log():
    return get_logger("verification")


class TestStructuredFormatter:
    def test_envelope(self, json_logs, log):
        log.info("payable_created")

        (entry,) = json_logs()
        assert entry["message"] == "payable_created"
        assert entry["level"] == "INFO"
        assert entry["logger"] == "settlement_kernel.verification"
        assert "ts" in entry

    def test_extra_and_context_merged(self, json_logs, log):
        LogContext.set(payable_id="ap-1", verification_id="hx-1")

        log.info("verified", extra={"amount": "500", "status": "partial"})

        (entry,) = json_logs()
        assert entry["amount"] == "500"
        assert entry["status"] == "partial"
        assert entry["payable_id"] == "ap-1"
        assert entry["verification_id"] == "hx-1"

    def test_uuid_and_decimal_rendered_as_text(self, json_logs, log):
        record_id = uuid4()

        log.info("capped", extra={"record_id": record_id, "cap": Decimal("1.50")})

        (entry,) = json_logs()
        assert entry["record_id"] == str(record_id)
        assert entry["cap"] == "1.50"

    def test_settlement_error_details_flattened(self, json_logs, log):
        try:
            raise AmountExceedsCapError(Decimal("700"), Decimal("600"))
        except AmountExceedsCapError:
            log.error("verify_failed", exc_info=True)

        (entry,) = json_logs()
        assert entry["exc_type"] == "AmountExceedsCapError"
        assert entry["exc_code"] == "AMOUNT_EXCEEDS_CAP"
        assert entry["exc_requested"] == "700"
        assert entry["exc_cap"] == "600"
        assert "traceback" in entry

    def test_builtin_error_reports_message_only(self, json_logs, log):
        try:
            raise ValueError("bad quantity")
        except ValueError:
            log.exception("line_rejected")

        (entry,) = json_logs()
        assert entry["exc_type"] == "ValueError"
        assert entry["exc_message"] == "bad quantity"
        assert "exc_code" not in entry

    def test_debug_suppressed_by_default(self, json_logs, log):
        log.info("first")
        log.debug("hidden")
        log.warning("second")

        assert [e["message"] for e in json_logs()] == ["first", "second"]


class TestLogContext:
    def test_set_then_clear(self):
        LogContext.set(correlation_id="x", actor_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "actor_id": "y"}

        LogContext.clear()

        assert LogContext.get_all() == {}

    def test_nested_bind_restores_outer_value(self):
        LogContext.set(payable_id="outer")

        with LogContext.bind(payable_id="inner"):
            assert LogContext.get_all()["payable_id"] == "inner"

        assert LogContext.get_all()["payable_id"] == "outer"

    def test_bind_stringifies_and_skips_none(self):
        verification_id = uuid4()

        with LogContext.bind(verification_id=verification_id, payable_id=None):
            assert LogContext.get_all() == {"verification_id": str(verification_id)}

        assert LogContext.get_all() == {}

    @pytest.mark.parametrize("field", ["invoice_no", "batch"])
    def test_unknown_field_rejected(self, field):
        with pytest.raises(ValueError):
            LogContext.set(**{field: "x"})
        with pytest.raises(ValueError):
            with LogContext.bind(**{field: "x"}):
                pass


class TestConfigureLogging:
    def test_second_call_keeps_first_handler(self):
        configure_logging(handler=logging.StreamHandler(StringIO()))
        configure_logging(handler=logging.StreamHandler(StringIO()))

        json_handlers = [
            h for h in logging.getLogger("settlement_kernel").handlers
            if isinstance(h.formatter, StructuredFormatter)
        ]
        assert len(json_handlers) == 1

    def test_logger_names_are_namespaced(self):
        name = get_logger("modules.payments.service").name

        assert name == "settlement_kernel.modules.payments.service"
