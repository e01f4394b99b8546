from conftest import clear_gate, create_order, move


def _file(client, order_id, **overrides):
    payload = {"order_id": order_id, "change_type": "add_work", "title": "Add sleeve print"}
    payload.update(overrides)
    resp = client.post("/api/v1/change-requests", json=payload, headers={"X-Actor": "erin"})
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_estimate_is_pure(client):
    resp = client.post(
        "/api/v1/change-requests/estimate",
        json={
            "phase": "in_production",
            "change_type": "quantity_change",
            "base_amount": 10000,
            "quantity_change": 5,
            "is_rush": True,
            "production_started": True,
        },
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["fees"]["material_fee"] == 1000
    assert body["fees"]["rush_fee"] == 500
    assert body["fees"]["total_fee"] == 1500
    assert body["impact_level"] == "high"
    assert client.get("/api/v1/change-requests").json() == []


def test_estimate_rejects_negative_amount(client):
    resp = client.post(
        "/api/v1/change-requests/estimate",
        json={"phase": "design", "change_type": "cancel", "base_amount": -5},
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "InvalidQuantity"


def test_phase_and_base_amount_default_from_order(client):
    order = create_order(client)
    cr = _file(client, order["id"])
    assert cr["order_phase"] == "draft"
    assert cr["base_amount"] == 10000
    assert cr["total_fee"] == 0
    assert cr["impact_level"] == "none"
    assert cr["change_category"] == "minor"
    assert cr["status"] == "pending_quote"
    assert cr["payment_required"] is False
    assert cr["created_by"] == "erin"
    assert cr["request_number"].startswith("CR-")


def test_full_paid_workflow(client):
    order = create_order(client)
    cr = _file(client, order["id"], order_phase="in_production", days_delayed=2)
    assert cr["base_fee"] == 2000
    assert cr["total_fee"] == 2000
    assert cr["impact_level"] == "medium"
    assert cr["affects_schedule"] is True
    assert cr["change_category"] == "major"
    assert cr["payment_required"] is True

    quoted = client.post(
        f"/api/v1/change-requests/{cr['id']}/quote",
        json={"other_fee": 100, "other_fee_description": "Extra film", "discount": 50},
        headers={"X-Actor": "frank"},
    ).json()
    assert quoted["status"] == "awaiting_customer"
    assert quoted["total_fee"] == 2050
    assert quoted["quoted_by"] == "frank"

    accepted = client.post(f"/api/v1/change-requests/{cr['id']}/respond", json={"accept": True}).json()
    assert accepted["status"] == "awaiting_payment"
    assert accepted["customer_response"] == "accepted"

    paid = client.post(f"/api/v1/change-requests/{cr['id']}/payment", json={"payment_reference": "TX-9"}).json()
    assert paid["status"] == "in_progress"
    assert paid["payment_reference"] == "TX-9"

    done = client.post(f"/api/v1/change-requests/{cr['id']}/complete", headers={"X-Actor": "gina"}).json()
    assert done["status"] == "completed"
    assert done["completed_by"] == "gina"

    late_cancel = client.post(f"/api/v1/change-requests/{cr['id']}/cancel", json={"reason": "too late"})
    assert late_cancel.status_code == 409
    assert late_cancel.json()["error"]["type"] == "TerminalState"

    stats = client.get("/api/v1/change-requests/stats").json()
    assert stats["total"] == 1
    assert stats["by_status"] == {"completed": 1}
    assert stats["total_fees_quoted"] == 2050
    assert stats["total_fees_collected"] == 2050
    assert stats["by_type"] == {"add_work": 1}


def test_free_change_skips_payment(client):
    order = create_order(client)
    cr = _file(client, order["id"])
    client.post(f"/api/v1/change-requests/{cr['id']}/quote", json={})
    accepted = client.post(f"/api/v1/change-requests/{cr['id']}/respond", json={"accept": True}).json()
    assert accepted["status"] == "in_progress"

    no_payment = client.post(f"/api/v1/change-requests/{cr['id']}/payment", json={})
    assert no_payment.status_code == 409


def test_customer_rejects_quote(client):
    order = create_order(client)
    cr = _file(client, order["id"])

    early = client.post(f"/api/v1/change-requests/{cr['id']}/respond", json={"accept": False})
    assert early.status_code == 409

    client.post(f"/api/v1/change-requests/{cr['id']}/quote", json={})
    rejected = client.post(
        f"/api/v1/change-requests/{cr['id']}/respond", json={"accept": False, "notes": "Too expensive"}
    ).json()
    assert rejected["status"] == "rejected"
    assert rejected["admin_notes"] == "Too expensive"

    stats = client.get("/api/v1/change-requests/stats", params={"order_id": order["id"]}).json()
    assert stats["total_fees_quoted"] == 0


def test_discount_above_fees_is_rejected(client):
    order = create_order(client)
    cr = _file(client, order["id"], order_phase="in_production")
    resp = client.post(f"/api/v1/change-requests/{cr['id']}/quote", json={"discount": 5000})
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "InvalidQuantity"


def test_cancel_requires_reason(client):
    order = create_order(client)
    cr = _file(client, order["id"])

    blank = client.post(f"/api/v1/change-requests/{cr['id']}/cancel", json={"reason": "   "})
    assert blank.status_code == 422
    assert blank.json()["error"]["type"] == "ReasonRequired"

    cancelled = client.post(f"/api/v1/change-requests/{cr['id']}/cancel", json={"reason": "Filed twice"}).json()
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancel_reason"] == "Filed twice"


def test_production_started_orders_price_as_high_impact(client):
    order = create_order(client)
    for target in ("awaiting_payment", "designing", "awaiting_mockup_approval"):
        move(client, order["id"], target)
    for gate in client.get(f"/api/v1/orders/{order['id']}/gates").json():
        clear_gate(client, gate)
    move(client, order["id"], "in_production")

    cr = _file(client, order["id"], change_type="design_revision")
    assert cr["order_phase"] == "in_production"
    assert cr["production_started"] is True
    assert cr["impact_level"] == "high"
    assert cr["design_fee"] == 500


def test_changes_rejected_for_cancelled_orders_and_on_hold_needs_phase(client):
    cancelled = create_order(client)
    move(client, cancelled["id"], "cancelled", reason="Customer withdrew")
    resp = client.post(
        "/api/v1/change-requests",
        json={"order_id": cancelled["id"], "change_type": "other", "title": "x"},
    )
    assert resp.status_code == 409
    assert resp.json()["error"]["type"] == "TerminalState"

    held = create_order(client)
    move(client, held["id"], "quoted")
    move(client, held["id"], "on_hold", reason="Waiting on artwork")
    resp = client.post(
        "/api/v1/change-requests",
        json={"order_id": held["id"], "change_type": "other", "title": "x"},
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "phase_required"
    assert _file(client, held["id"], order_phase="design")["order_phase"] == "design"


def test_list_filters(client):
    order = create_order(client)
    _file(client, order["id"])
    _file(client, order["id"], change_type="cancel", title="Cancel all")

    assert len(client.get("/api/v1/change-requests", params={"order_id": order["id"]}).json()) == 2
    cancels = client.get("/api/v1/change-requests", params={"change_type": "cancel"}).json()
    assert [c["title"] for c in cancels] == ["Cancel all"]
    assert client.get("/api/v1/change-requests", params={"status": "completed"}).json() == []


def _in_production(client, **overrides):
    order = create_order(client, **overrides)
    for target in ("awaiting_payment", "designing", "awaiting_mockup_approval"):
        move(client, order["id"], target)
    for gate in client.get(f"/api/v1/orders/{order['id']}/gates").json():
        clear_gate(client, gate)
    move(client, order["id"], "in_production")
    return order


def test_change_after_half_produced_is_critical(client):
    order = _in_production(client)
    resp = client.patch(f"/api/v1/orders/{order['id']}/production", json={"produced_qty": 60})
    assert resp.status_code == 200, resp.text

    cr = _file(client, order["id"], change_type="design_revision", title="New logo")
    assert cr["change_category"] == "critical"

    impact = cr["impact_analysis"]
    assert impact["production_already_started"] is True
    assert impact["waste_qty"] == 60
    assert impact["designs_approved"] is True
    assert impact["design_rework_required"] is True
    assert impact["affects_due_date"] is True
    assert impact["delay_days"] == 3
    assert impact["severity"] == "critical"

    assert cr["waste_qty"] == 60
    assert cr["days_delayed"] == 3
    assert cr["affects_schedule"] is True


def test_explicit_waste_and_delay_win_over_analysis(client):
    order = _in_production(client)
    client.patch(f"/api/v1/orders/{order['id']}/production", json={"produced_qty": 10})

    cr = _file(
        client, order["id"], change_type="cancel", title="Stop order",
        waste_qty=4, waste_unit_cost=25, days_delayed=0,
    )
    assert cr["waste_qty"] == 4
    assert cr["waste_fee"] == 100
    assert cr["days_delayed"] == 0
    assert cr["impact_analysis"]["waste_qty"] == 10
    assert cr["impact_analysis"]["severity"] == "high"
    assert cr["change_category"] == "major"


def test_change_before_production_has_no_waste(client):
    order = create_order(client)
    cr = _file(client, order["id"])
    assert cr["waste_qty"] is None
    assert cr["days_delayed"] == 0
    assert cr["impact_analysis"]["severity"] == "low"
    assert cr["impact_analysis"]["production_already_started"] is False


def test_estimate_reports_impact_analysis(client):
    resp = client.post(
        "/api/v1/change-requests/estimate",
        json={
            "phase": "in_production",
            "change_type": "remove_work",
            "base_amount": 10000,
            "produced_qty": 30,
            "ordered_qty": 100,
            "materials_ordered": True,
            "materials_received": True,
        },
    )
    assert resp.status_code == 200, resp.text
    impact = resp.json()["impact_analysis"]
    assert impact["waste_qty"] == 30
    assert impact["material_waste_cost"] == 1500
    assert impact["severity"] == "critical"


def test_blank_title_is_rejected(client):
    order = create_order(client)
    resp = client.post(
        "/api/v1/change-requests",
        json={"order_id": order["id"], "change_type": "other", "title": "   "},
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "validation_error"
