import os
import tempfile

_DB_PATH = os.path.join(tempfile.mkdtemp(prefix="apparel-orders-"), "test.db")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["AUTO_SEED"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from src.api.main import app  # noqa: E402
from src.core.deps import get_session  # noqa: E402
from src.db import Base, make_session_factory  # noqa: E402


def _reset_schema():
    sync_engine = create_engine(f"sqlite:///{_DB_PATH}")
    Base.metadata.drop_all(sync_engine)
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()


@pytest.fixture
def client():
    _reset_schema()

    factory = make_session_factory(create_async_engine(os.environ["DATABASE_URL"], poolclass=NullPool))

    async def _session():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def app_session_client():
    """TestClient using the application's own session dependency against DATABASE_URL."""
    _reset_schema()
    app.dependency_overrides.clear()
    with TestClient(app) as test_client:
        yield test_client


def create_order(client, **overrides):
    payload = {
        "customer_name": "Baan Coffee",
        "priority_code": "normal",
        "work_type_code": "dtg",
        "total_amount": 10000,
        "ordered_qty": 100,
        "order_date": "2024-01-01",
    }
    payload.update(overrides)
    resp = client.post("/api/v1/orders", json=payload, headers={"X-Actor": "alice"})
    assert resp.status_code == 200, resp.text
    return resp.json()


def move(client, order_id, target, reason=None, expected_status=200, **extra):
    body = {"target": target, **extra}
    if reason is not None:
        body["reason"] = reason
    resp = client.post(f"/api/v1/orders/{order_id}/transitions", json=body, headers={"X-Actor": "bob"})
    assert resp.status_code == expected_status, resp.text
    return resp.json()


def clear_gate(client, gate):
    gate_id = gate["id"]
    resp = client.patch(f"/api/v1/gates/{gate_id}", json={"status": "in_progress"})
    assert resp.status_code == 200, resp.text
    body = {"status": "approved"}
    if gate["requires_customer_approval"]:
        body["customer_confirmed"] = True
    resp = client.patch(f"/api/v1/gates/{gate_id}", json=body, headers={"X-Actor": "carol"})
    assert resp.status_code == 200, resp.text
    return resp.json()
