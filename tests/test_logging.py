"""JSON log lines and request-scoped log context."""

import json
import logging
import threading
from datetime import UTC, datetime
from decimal import Decimal
from io import StringIO

import pytest

from printshop_kernel.domain.statuses import BudgetStatus
from printshop_kernel.exceptions import ConflictDetectedError, ValidationFailedError
from printshop_kernel.logging_config import (
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
def emitted():
    """
    Configure the kernel logger onto an in-memory stream and return a
    reader giving the JSON records written so far.
    """
    buffer = StringIO()
    sink = logging.StreamHandler(buffer)
    sink.setFormatter(StructuredFormatter())
    configure_logging(handler=sink)

    def read() -> list[dict]:
        return [json.loads(line) for line in buffer.getvalue().splitlines() if line]

    return read


log = get_logger("tests.logging")


class TestRecordShape:
    def test_envelope(self, emitted):
        log.info("budget_submitted")

        (record,) = emitted()
        assert record["message"] == "budget_submitted"
        assert record["level"] == "INFO"
        assert record["logger"] == "printshop_kernel.tests.logging"
        assert datetime.fromisoformat(record["ts"]).tzinfo is not None

    def test_extra_becomes_top_level(self, emitted):
        log.info("order_created", extra={"order_id": 42, "numero_pedido": "ORD-0042/202510"})

        (record,) = emitted()
        assert record["order_id"] == 42
        assert record["numero_pedido"] == "ORD-0042/202510"

    def test_prices_dates_and_statuses_are_encoded(self, emitted):
        log.info(
            "budget_quoted",
            extra={
                "preco_total": Decimal("6250.00"),
                "approved_at": datetime(2025, 10, 15, 12, 0, tzinfo=UTC),
                "status": BudgetStatus.APPROVED,
            },
        )

        (record,) = emitted()
        assert record["preco_total"] == "6250.00"
        assert record["approved_at"] == "2025-10-15T12:00:00+00:00"
        assert record["status"] == "APPROVED"

    def test_debug_dropped_at_default_level(self, emitted):
        log.info("kept")
        log.debug("dropped")
        log.warning("also_kept")

        assert [r["message"] for r in emitted()] == ["kept", "also_kept"]


class TestExceptions:
    def test_plain_exception(self, emitted):
        try:
            raise ValueError("boom")
        except ValueError:
            log.exception("unexpected")

        (record,) = emitted()
        assert record["level"] == "ERROR"
        assert record["exc_type"] == "ValueError"
        assert record["exc_message"] == "boom"
        assert "Traceback" in record["traceback"]
        assert "exc_code" not in record

    def test_domain_error_attributes(self, emitted):
        try:
            raise ConflictDetectedError("Budget", 12, details="version 3 != 4")
        except ConflictDetectedError:
            log.warning("lost_race", exc_info=True)

        (record,) = emitted()
        assert record["exc_code"] == "CONFLICT_DETECTED"
        assert record["exc_entity_type"] == "Budget"
        assert record["exc_entity_id"] == 12
        assert record["exc_details"] == "version 3 != 4"

    def test_validation_error_fields(self, emitted):
        try:
            raise ValidationFailedError("Budget fields are invalid", {"tiragem": "must be >= 1"})
        except ValidationFailedError:
            log.info("rejected_input", exc_info=True)

        (record,) = emitted()
        assert record["exc_type"] == "ValidationFailedError"
        assert record["exc_code"] == "VALIDATION_FAILED"
        assert record["exc_field_errors"] == {"tiragem": "must be >= 1"}


class TestLogContext:
    def test_bound_fields_reach_records(self, emitted):
        LogContext.set(correlation_id="abc-123", entity_type="Budget", entity_id="7")
        log.info("with_context")
        LogContext.clear()
        log.info("without_context")

        first, second = emitted()
        assert first["correlation_id"] == "abc-123"
        assert first["entity_type"] == "Budget"
        assert first["entity_id"] == "7"
        assert "correlation_id" not in second
        assert "actor_id" not in second

    def test_values_are_stringified(self):
        LogContext.set(actor_id=101, entity_id=7)
        assert LogContext.get_all() == {"actor_id": "101", "entity_id": "7"}

    def test_set_merges(self):
        LogContext.set(correlation_id="x")
        LogContext.set(actor_role="MODERATOR")
        assert LogContext.get_all() == {"correlation_id": "x", "actor_role": "MODERATOR"}

    def test_bind_restores_previous(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", actor_role="ADMIN"):
            assert LogContext.get_all() == {"correlation_id": "inner", "actor_role": "ADMIN"}
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_bind_restores_after_error(self):
        with pytest.raises(RuntimeError):
            with LogContext.bind(entity_type="Order", entity_id="3"):
                raise RuntimeError("fail")
        assert LogContext.get_all() == {}

    def test_unknown_keys_and_none_are_ignored(self):
        with LogContext.bind(correlation_id=None, tenant="x"):
            assert LogContext.get_all() == {}

    def test_other_threads_start_empty(self):
        LogContext.set(correlation_id="main")
        seen = {}

        worker = threading.Thread(target=lambda: seen.update(ctx=LogContext.get_all()))
        worker.start()
        worker.join()

        assert seen["ctx"] == {}
        assert LogContext.get_all() == {"correlation_id": "main"}


class TestConfiguration:
    def test_first_configuration_wins(self):
        first = logging.NullHandler()
        configure_logging(handler=first)
        configure_logging(handler=logging.NullHandler())

        assert logging.getLogger("printshop_kernel").handlers == [first]

    def test_level_accepts_names(self):
        buffer = StringIO()
        configure_logging(stream=buffer, level="DEBUG")
        get_logger("services.conversion").debug("conversion_check_passed")

        record = json.loads(buffer.getvalue())
        assert record["logger"] == "printshop_kernel.services.conversion"
        assert record["level"] == "DEBUG"
