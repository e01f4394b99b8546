from uuid import uuid4

from conftest import create_order


def _record(client, order_id, **overrides):
    payload = {"order_id": order_id, "total_qty": 50, "passed_qty": 50, "failed_qty": 0}
    payload.update(overrides)
    resp = client.post("/api/v1/quality/qc-records", json=payload, headers={"X-Actor": "ivy"})
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_evaluate_without_storing(client):
    resp = client.post(
        "/api/v1/quality/evaluate",
        json={"total_qty": 100, "passed_qty": 82, "failed_qty": 18},
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["pass_rate"] == 82
    assert body["overall_result"] == "pass_with_rework"
    assert body["follow_up_required"] is True
    assert client.get("/api/v1/quality/qc-records").json() == []


def test_evaluate_critical_checkpoint_fails_batch(client):
    body = client.post(
        "/api/v1/quality/evaluate",
        json={
            "total_qty": 10,
            "passed_qty": 10,
            "failed_qty": 0,
            "checkpoints": [
                {"code": "print_quality", "passed": True},
                {"code": "fabric_damage", "passed": False, "defect_severity": "critical"},
            ],
        },
    ).json()
    assert body["pass_rate"] == 100
    assert body["overall_result"] == "fail"
    assert body["has_critical_defect"] is True
    assert body["worst_severity"] == "critical"


def test_evaluate_rejects_inconsistent_quantities(client):
    resp = client.post(
        "/api/v1/quality/evaluate",
        json={"total_qty": 10, "passed_qty": 8, "failed_qty": 5},
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "InvalidQuantity"


def test_record_fills_checkpoints_from_work_type(client):
    order = create_order(client)
    record = _record(client, order["id"])
    assert record["overall_result"] == "pass"
    assert record["checked_by"] == "ivy"
    assert record["qc_stage"] == "final"
    assert [c["code"] for c in record["checkpoints"]] == [
        "color_accuracy",
        "print_alignment",
        "print_quality",
        "fabric_damage",
    ]
    assert all(c["passed"] for c in record["checkpoints"])

    sewn = _record(client, order["id"], work_type_code="sewing", qc_stage="inline")
    assert len(sewn["checkpoints"]) == 3


def test_follow_up_lifecycle_and_stats(client):
    order = create_order(client)
    _record(client, order["id"])
    failed = _record(client, order["id"], passed_qty=30, failed_qty=20)
    assert failed["overall_result"] == "fail"
    assert failed["follow_up_required"] is True
    assert not any(c["passed"] for c in failed["checkpoints"])

    open_records = client.get("/api/v1/quality/qc-records", params={"follow_up_open": True}).json()
    assert [r["id"] for r in open_records] == [failed["id"]]

    stats = client.get("/api/v1/quality/qc-records/stats", params={"order_id": order["id"]}).json()
    assert stats == {
        "total_records": 2,
        "passed": 1,
        "passed_with_rework": 0,
        "failed": 1,
        "follow_up_open": 1,
        "avg_pass_rate": 80.0,
    }

    done = client.post(f"/api/v1/quality/qc-records/{failed['id']}/follow-up")
    assert done.status_code == 200
    assert done.json()["follow_up_completed_at"] is not None

    again = client.post(f"/api/v1/quality/qc-records/{failed['id']}/follow-up")
    assert again.status_code == 409
    assert again.json()["error"]["type"] == "follow_up_not_required"

    assert client.get("/api/v1/quality/qc-records", params={"follow_up_open": True}).json() == []
    assert client.get("/api/v1/quality/qc-records/stats").json()["follow_up_open"] == 0


def test_result_filter_and_empty_stats(client):
    stats = client.get("/api/v1/quality/qc-records/stats").json()
    assert stats["total_records"] == 0
    assert stats["avg_pass_rate"] == 0.0

    order = create_order(client)
    _record(client, order["id"], passed_qty=45, failed_qty=0, rework_qty=5)
    rework = client.get("/api/v1/quality/qc-records", params={"overall_result": "pass_with_rework"}).json()
    assert len(rework) == 1
    assert client.get("/api/v1/quality/qc-records", params={"overall_result": "fail"}).json() == []


def test_checkpoint_templates(client):
    embroidery = client.get("/api/v1/quality/checkpoint-templates", params={"work_type_code": "Embroidery"}).json()
    assert [t["code"] for t in embroidery] == ["thread_color", "stitch_quality", "position", "backing_clean"]

    generic = client.get("/api/v1/quality/checkpoint-templates", params={"work_type_code": "vinyl"}).json()
    assert [t["code"] for t in generic] == ["general_quality", "specifications"]


def test_record_for_unknown_order(client):
    resp = client.post(
        "/api/v1/quality/qc-records",
        json={"order_id": str(uuid4()), "total_qty": 1, "passed_qty": 1, "failed_qty": 0},
    )
    assert resp.status_code == 404
    assert client.post(f"/api/v1/quality/qc-records/{uuid4()}/follow-up").status_code == 404
