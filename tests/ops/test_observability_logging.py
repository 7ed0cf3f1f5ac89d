import json
import logging
from types import SimpleNamespace

from starlette.requests import Request
from starlette.responses import Response

from app.pharmops.core.context import TenantContext
from app.pharmops.middleware.observability import build_request_log_payload
from app.pharmops.middleware.trace import MAX_TRACE_ID_LENGTH, resolve_trace_id
from tests.expired_sales_helpers import bearer, create_pharmacy


def test_build_request_log_payload():
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/pharmops/sales/cleanup-expired",
        "headers": [],
        "route": SimpleNamespace(path="/pharmops/sales/cleanup-expired"),
    }
    request = Request(scope)
    request.state.trace_id = "trace-1"
    request.state.context = TenantContext(role="admin", user_id="user-1", pharmacy_id="pharmacy-1")
    request.state.error_code = None
    request.state.cleanup = {"mode": "manual", "outcome": "noop", "restored_count": 0, "history_record_id": None}
    response = Response(status_code=200)

    payload = build_request_log_payload(
        request=request,
        response=response,
        latency_ms=12.3456,
        db_time_ms=4.5678,
    )

    assert payload["event"] == "http_request"
    assert payload["trace_id"] == "trace-1"
    assert payload["user_id"] == "user-1"
    assert payload["role"] == "admin"
    assert payload["pharmacy_id"] == "pharmacy-1"
    assert payload["branch_id"] is None
    assert payload["route"] == "/pharmops/sales/cleanup-expired"
    assert payload["method"] == "POST"
    assert payload["status_code"] == 200
    assert payload["latency_ms"] == 12.35
    assert payload["db_time_ms"] == 4.57
    assert payload["cleanup"]["outcome"] == "noop"


def test_build_request_log_payload_without_context_or_response():
    request = Request({"type": "http", "method": "GET", "path": "/pharmops/sales/expired-stats", "headers": []})

    payload = build_request_log_payload(request=request, response=None, latency_ms=1.0, db_time_ms=None)

    assert payload["route"] == "/pharmops/sales/expired-stats"
    assert payload["status_code"] == 500
    assert payload["db_time_ms"] is None
    assert payload["trace_id"] == ""
    assert payload["user_id"] is None
    assert "cleanup" not in payload


def test_manual_sweep_request_log_carries_tenant_and_outcome(client, db_session, caplog):
    pharmacy, _branch, _other = create_pharmacy(db_session, suffix="request-log")
    caplog.set_level(logging.INFO, logger="pharmops.request")

    response = client.post(
        "/pharmops/sales/cleanup-expired",
        headers={**bearer("admin", pharmacy_id=pharmacy.id, user_id="op-7"), "X-Trace-ID": "trace-sweep"},
    )

    assert response.status_code == 200
    entries = [
        json.loads(record.getMessage())
        for record in caplog.records
        if record.name == "pharmops.request"
    ]
    entry = next(item for item in entries if item["route"] == "/pharmops/sales/cleanup-expired")
    assert entry["trace_id"] == "trace-sweep"
    assert entry["user_id"] == "op-7"
    assert entry["pharmacy_id"] == str(pharmacy.id)
    assert entry["cleanup"] == {
        "mode": "manual",
        "outcome": "noop",
        "restored_count": 0,
        "history_record_id": None,
    }


def test_resolve_trace_id_rejects_oversized_header():
    assert resolve_trace_id("abc") == "abc"
    generated = resolve_trace_id("x" * (MAX_TRACE_ID_LENGTH + 1))
    assert len(generated) == 36
    assert resolve_trace_id(None) != resolve_trace_id(None)
