from datetime import date
from uuid import uuid4

from conftest import clear_gate, create_order, move


def test_health(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Healthy"
    assert "X-Correlation-ID" in resp.headers


def test_create_order_starts_in_draft_with_timeline(client):
    order = create_order(client)
    assert order["status"] == "draft"
    assert order["version"] == 1
    assert order["sla_priority"] == "normal"
    assert order["order_number"].startswith("ORD-20240101-")
    assert [s["key"] for s in order["timeline"]] == [
        "quoted", "payment", "design", "mockup", "production", "qc", "shipping",
    ]
    assert order["timeline"][0]["deadline"] == "2024-01-02"
    assert order["timeline"][-1]["deadline"] == "2024-01-18"

    events = client.get(f"/api/v1/orders/{order['id']}/status-events").json()
    assert len(events) == 1
    assert events[0]["from_status"] is None
    assert events[0]["to_status"] == "draft"
    assert events[0]["changed_by"] == "alice"


def test_duplicate_order_number_conflicts(client):
    create_order(client, order_number="ORD-X-1")
    resp = client.post("/api/v1/orders", json={"customer_name": "Other", "order_number": "ORD-X-1"})
    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "duplicate_order_number"


def test_list_and_filter_orders(client):
    create_order(client, customer_name="Alpha Tees")
    rush = create_order(client, customer_name="Beta Hoodies", priority_code="rush")
    move(client, rush["id"], "quoted")

    assert len(client.get("/api/v1/orders").json()) == 2
    quoted = client.get("/api/v1/orders", params={"status": "quoted"}).json()
    assert [o["id"] for o in quoted] == [rush["id"]]
    by_name = client.get("/api/v1/orders", params={"customer_name": "alpha"}).json()
    assert [o["customer_name"] for o in by_name] == ["Alpha Tees"]
    assert client.get("/api/v1/orders", params={"priority_code": "rush"}).json()[0]["sla_priority"] == "urgent"


def test_unknown_order_is_404_with_error_envelope(client):
    resp = client.get(f"/api/v1/orders/{uuid4()}", headers={"X-Correlation-ID": "abc-123", "X-Actor": "dan"})
    assert resp.status_code == 404
    body = resp.json()
    assert body["error"]["type"] == "not_found"
    assert body["correlation_id"] == "abc-123"
    assert body["actor"] == "dan"
    assert body["path"].startswith("/api/v1/orders/")


def test_forward_transition_records_event_and_opens_gates(client):
    order = create_order(client)
    result = move(client, order["id"], "awaiting_payment")
    assert result["order"]["status"] == "awaiting_payment"
    assert result["order"]["version"] == 2
    assert result["event"]["direction"] == "forward"
    assert result["event"]["label"] == "Await payment"
    assert result["event"]["changed_by"] == "bob"
    assert result["opened_gates"] == ["payment"]

    result = move(client, order["id"], "designing")
    assert result["opened_gates"] == ["design", "mockup"]
    timeline = result["order"]["timeline"]
    today = date.today().isoformat()
    assert [s["actual"] for s in timeline[:2]] == [today, today]
    assert all(s["actual"] is None for s in timeline[2:])
    assert [s["state"] for s in timeline[:2]] == ["completed", "completed"]


def test_rollback_needs_reason(client):
    order = create_order(client)
    move(client, order["id"], "quoted")

    resp = client.post(f"/api/v1/orders/{order['id']}/transitions", json={"target": "draft"})
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "ReasonRequired"

    result = move(client, order["id"], "draft", reason="Customer changed sizes")
    assert result["event"]["direction"] == "backward"
    assert result["event"]["reason"] == "Customer changed sizes"


def test_illegal_and_terminal_transitions(client):
    order = create_order(client)
    resp = client.post(f"/api/v1/orders/{order['id']}/transitions", json={"target": "shipped"})
    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "IllegalTransition"

    move(client, order["id"], "cancelled", reason="Customer withdrew")
    resp = client.post(
        f"/api/v1/orders/{order['id']}/transitions",
        json={"target": "draft", "reason": "reopen"},
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "TerminalState"


def test_stale_expected_version_conflicts(client):
    order = create_order(client)
    move(client, order["id"], "quoted", expected_version=1)
    resp = client.post(
        f"/api/v1/orders/{order['id']}/transitions",
        json={"target": "awaiting_payment", "expected_version": 1},
    )
    assert resp.status_code == 409
    body = resp.json()
    assert body["error"]["type"] == "version_conflict"
    assert body["error"]["details"] == {"expected_version": 1, "current_version": 2}


def test_available_transitions(client):
    order = create_order(client)
    move(client, order["id"], "quoted")
    options = client.get(f"/api/v1/orders/{order['id']}/transitions").json()
    assert options["status"] == "quoted"
    assert options["phase"] == "draft"
    assert [o["target"] for o in options["forward"]] == ["awaiting_payment"]
    backward = {o["target"]: o for o in options["backward"]}
    assert set(backward) == {"draft", "on_hold", "cancelled"}
    assert all(o["requires_reason"] for o in options["backward"])
    assert backward["draft"]["suggested_reason"] == "Order details need editing"
    assert options["production_unlocked"] is True


def test_production_locked_until_gates_clear(client):
    order = create_order(client)
    for target in ("awaiting_payment", "designing", "awaiting_mockup_approval"):
        move(client, order["id"], target)

    resp = client.post(f"/api/v1/orders/{order['id']}/transitions", json={"target": "in_production"})
    assert resp.status_code == 409
    error = resp.json()["error"]
    assert error["type"] == "production_locked"
    assert error["details"]["blocking_gates"] == ["design", "mockup", "payment"]
    assert error["details"]["blocking_gate_names"] == ["Design Approval", "Mockup Approval", "Payment Confirmed"]

    options = client.get(f"/api/v1/orders/{order['id']}/transitions").json()
    assert options["production_unlocked"] is False

    for gate in client.get(f"/api/v1/orders/{order['id']}/gates").json():
        clear_gate(client, gate)

    result = move(client, order["id"], "in_production")
    assert result["order"]["status"] == "in_production"


def test_resume_from_hold_into_production_is_gated(client):
    order = create_order(client)
    for target in ("awaiting_payment", "designing", "awaiting_mockup_approval", "awaiting_material"):
        move(client, order["id"], target)
    move(client, order["id"], "on_hold", reason="Fabric supplier delayed")

    resp = client.post(f"/api/v1/orders/{order['id']}/transitions", json={"target": "in_production"})
    assert resp.status_code == 409
    assert "material" in resp.json()["error"]["details"]["blocking_gates"]


def test_priority_change_reprojects_timeline(client):
    order = create_order(client)
    move(client, order["id"], "quoted")
    move(client, order["id"], "awaiting_payment")

    resp = client.patch(f"/api/v1/orders/{order['id']}/priority", json={"priority_code": "urgent"})
    assert resp.status_code == 200, resp.text
    updated = resp.json()
    assert updated["priority_code"] == "urgent"
    assert updated["sla_priority"] == "express"
    assert updated["timeline"][-1]["deadline"] == "2024-01-12"
    assert updated["timeline"][0]["actual"] == date.today().isoformat()

    stale = client.patch(
        f"/api/v1/orders/{order['id']}/priority",
        json={"priority_code": "normal", "expected_version": 1},
    )
    assert stale.status_code == 409


def test_timeline_as_of(client):
    order = create_order(client)
    move(client, order["id"], "quoted")

    on_time = client.get(f"/api/v1/orders/{order['id']}/timeline", params={"as_of": "2024-01-01"}).json()
    assert on_time["current_step_index"] == 0
    assert on_time["on_track"] is True
    assert on_time["estimated_days"] == 17
    assert on_time["steps"][0]["state"] == "warning"
    assert on_time["steps"][1]["state"] == "pending"

    late = client.get(f"/api/v1/orders/{order['id']}/timeline", params={"as_of": "2024-01-05"}).json()
    assert late["on_track"] is False
    assert late["steps"][0]["state"] == "overdue"


def test_requests_served_by_application_session(app_session_client):
    order = create_order(app_session_client)
    resp = app_session_client.get("/api/v1/orders")
    assert resp.status_code == 200, resp.text
    assert [o["id"] for o in resp.json()] == [order["id"]]
    assert move(app_session_client, order["id"], "quoted")["order"]["status"] == "quoted"


def test_blank_customer_name_is_rejected(client):
    resp = client.post("/api/v1/orders", json={"customer_name": "   "})
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "validation_error"

    padded = create_order(client, customer_name="  Baan Coffee  ")
    assert padded["customer_name"] == "Baan Coffee"


def test_record_production(client):
    order = create_order(client)
    assert order["produced_qty"] == 0

    resp = client.patch(f"/api/v1/orders/{order['id']}/production", json={"produced_qty": 40})
    assert resp.status_code == 200, resp.text
    updated = resp.json()
    assert updated["produced_qty"] == 40
    assert updated["version"] == 2

    too_many = client.patch(f"/api/v1/orders/{order['id']}/production", json={"produced_qty": 101})
    assert too_many.status_code == 422
    assert too_many.json()["error"]["type"] == "InvalidQuantity"

    stale = client.patch(
        f"/api/v1/orders/{order['id']}/production", json={"produced_qty": 50, "expected_version": 1}
    )
    assert stale.status_code == 409
    assert stale.json()["error"]["type"] == "version_conflict"

    move(client, order["id"], "cancelled", reason="Customer withdrew")
    closed = client.patch(f"/api/v1/orders/{order['id']}/production", json={"produced_qty": 50})
    assert closed.status_code == 409
    assert closed.json()["error"]["type"] == "TerminalState"


def test_overdue_and_progress(client):
    order = create_order(client, due_date="2024-01-10")
    assert order["overdue"] is True
    assert order["progress"] == 5

    on_time = create_order(client, due_date="2999-01-01")
    assert on_time["overdue"] is False

    quoted = move(client, order["id"], "quoted")["order"]
    assert quoted["progress"] == 10

    cancelled = move(client, order["id"], "cancelled", reason="Customer withdrew")["order"]
    assert cancelled["overdue"] is False
    assert cancelled["progress"] == 0
