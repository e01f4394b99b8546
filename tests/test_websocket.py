import pytest
from starlette.websockets import WebSocketDisconnect

from conftest import create_order, move


def test_order_subscriber_receives_status_change(client):
    order = create_order(client)
    with client.websocket_connect(f"/ws/orders?order={order['id']}") as ws:
        subscribed = ws.receive_json()
        assert subscribed["type"] == "subscribed"
        assert subscribed["channel"] == f"orders:{order['id']}"

        move(client, order["id"], "quoted")
        event = ws.receive_json()
        assert event["type"] == "order.status_changed"
        assert event["actor"] == "bob"
        assert event["payload"]["from_status"] == "draft"
        assert event["payload"]["to_status"] == "quoted"
        assert event["payload"]["version"] == 2

        ws.send_text("ping")
        assert ws.receive_text() == "pong"


def test_invalid_order_id_is_refused(client):
    with pytest.raises(WebSocketDisconnect) as exc:
        with client.websocket_connect("/ws/orders?order=not-a-uuid") as ws:
            ws.receive_json()
    assert exc.value.code == 4400
