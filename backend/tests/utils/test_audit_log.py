import json
from datetime import datetime, timezone
from typing import Any, List

import pytest
from tablebook.domain.entities import ReservationStatus
from tablebook.utils import audit_log
from tablebook.utils.request_id import set_request_id


def test_emit_audit_log_outputs_json(monkeypatch) -> None:
    messages: List[str] = []

    class DummyLogger:
        def info(self, message: str) -> None:
            messages.append(message)

    monkeypatch.setattr(audit_log, "_audit_logger", DummyLogger())

    set_request_id("req-123")
    audit_log.emit_audit_log(
        action="reservation.created",
        initiator="customer",
        reservation_id="r1",
        restaurant_id="R1",
        sector_id="S1",
        table_ids=("T1",),
        party_size=2,
        start=datetime(2025, 1, 15, 13, 0, tzinfo=timezone.utc),
        status_from=None,
        status_to=ReservationStatus.CONFIRMED,
        extra={"idempotency_key": "key-1"},
    )
    set_request_id(None)

    assert len(messages) == 1
    payload = json.loads(messages[0])
    assert payload["action"] == "reservation.created"
    assert payload["initiator"] == "customer"
    assert payload["request_id"] == "req-123"
    assert payload["table_ids"] == ["T1"]
    assert payload["start"] == "2025-01-15T13:00:00+00:00"
    assert payload["status_to"] == "CONFIRMED"
    assert payload["idempotency_key"] == "key-1"
    assert "status_from" not in payload
    assert "timestamp" in payload


def test_emit_audit_log_raises_on_logger_failure(monkeypatch) -> None:
    class DummyLogger:
        def info(self, _: Any) -> None:
            raise ValueError("fail")

    monkeypatch.setattr(audit_log, "_audit_logger", DummyLogger())

    with pytest.raises(RuntimeError):
        audit_log.emit_audit_log(
            action="reservation.cancelled",
            initiator="customer",
            reservation_id="r1",
            restaurant_id="R1",
            sector_id="S1",
            table_ids=("T1",),
            party_size=2,
            start=None,
            status_from=ReservationStatus.CONFIRMED,
            status_to=ReservationStatus.CANCELLED,
        )
