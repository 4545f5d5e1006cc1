"""Scenario 1: Order Lifecycle

This module drives one order through the HTTP API:
- Push -> 200, record stored with the carrier message
- Push again while active -> 400, no carrier call
- Label generation -> AWB recorded; a second attempt -> 400 with the AWB
- Cancel -> push of the same order id is accepted again
- A failed cancel, hold or shipment cancel leaves the order active
- Malformed bodies and missing fields -> 400 before any carrier call
"""

import pytest
from fastapi.testclient import TestClient

LABEL_REQUEST = {"order_id": "A1", "carrier_id": 5, "warehouse_id": 6, "return_warehouse_id": 7}


def test_health(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["service"] == "shipway-proxy"
    assert "time" in body


def test_push_then_duplicate(client, carrier, order_payload) -> None:
    carrier.reply("push_orders", body={"success": True, "message": "Order has been added successfully."})

    first = client.post("/api/pushOrders", json=order_payload)
    second = client.post("/api/pushOrders", json=order_payload)

    assert first.status_code == 200
    assert first.json() == {
        "success": True,
        "message": "Order has been added successfully.",
        "data": {"success": True, "message": "Order has been added successfully."},
    }
    assert second.status_code == 400
    assert second.json() == {
        "success": False,
        "error": True,
        "message": 'Order ID "A1" already exists and is active.',
    }
    assert len(carrier.calls_to("push_orders")) == 1


def test_push_missing_fields(client, carrier) -> None:
    response = client.post("/api/pushOrders", json={"order_id": "A1"})

    assert response.status_code == 400
    assert response.json()["message"] == (
        "Missing required fields: products, payment_type, shipping_country, shipping_phone, shipping_zipcode"
    )
    assert carrier.calls == []


def test_malformed_body(client, carrier) -> None:
    response = client.post(
        "/api/pushOrders", content=b"not json", headers={"content-type": "application/json"}
    )

    assert response.status_code == 400
    assert response.json()["success"] is False
    assert carrier.calls == []


def test_push_carrier_failure_relays_status(client, carrier, order_payload) -> None:
    carrier.reply("push_orders", status=422, body={"success": False, "message": "Invalid pincode"})

    response = client.post("/api/pushOrders", json=order_payload)

    assert response.status_code == 422
    assert response.json() == {"success": False, "error": {"success": False, "message": "Invalid pincode"}}
    assert client.get("/api/getAllOrders").json()["total_count"] == 0


def test_label_generation_once(client, carrier, order_payload) -> None:
    awb = {"success": True, "AWB": "1234", "carrier_id": 5}
    carrier.reply("push_orders", body={"success": True})
    carrier.reply("label_generation", body={"message": "Label created", "awb_response": awb})
    client.post("/api/pushOrders", json=order_payload)

    first = client.post("/api/labelGeneration", json=LABEL_REQUEST)
    second = client.post("/api/labelGeneration", json=LABEL_REQUEST)

    assert first.status_code == 200
    assert first.json() == {"success": True, "message": "Label created", "awb_response": awb}
    assert second.status_code == 400
    assert second.json() == {
        "success": False,
        "error": True,
        "message": "AWB already generated for this order.",
        "awb_response": awb,
    }
    assert len(carrier.calls_to("label_generation")) == 1


def test_label_generation_unknown_order(client, carrier) -> None:
    response = client.post("/api/labelGeneration", json={**LABEL_REQUEST, "order_id": "A9"})

    assert response.status_code == 404
    assert response.json()["message"] == 'Order ID "A9" not found.'
    assert carrier.calls == []


def test_cancelled_order_can_be_pushed_again(client, carrier, order_payload) -> None:
    carrier.reply("push_orders", body={"success": True, "message": "Order has been added successfully."})
    carrier.reply("cancel_orders", body=[{"success": True, "message": "Order cancelled"}])

    client.post("/api/pushOrders", json=order_payload)
    cancel = client.post("/api/CancelOrders", json={"order_ids": ["A1"]})
    again = client.post("/api/pushOrders", json=order_payload)

    assert cancel.json() == {"success": True, "data": [{"success": True, "message": "cancelled"}]}
    assert again.status_code == 200
    assert len(carrier.calls_to("push_orders")) == 2

    # The new record is current: cancelling again reaches the carrier
    client.post("/api/CancelOrders", json={"order_ids": ["A1"]})
    assert len(carrier.calls_to("cancel_orders")) == 2


@pytest.mark.parametrize(
    ("path", "operation", "payload"),
    [
        ("/api/CancelShipment", "cancel_shipment", {"awb_number": ["1234"]}),
        ("/api/CancelOrders", "cancel_orders", {"order_ids": ["A1"]}),
        ("/api/OnholdOrders", "onhold_orders", {"order_ids": ["A1"]}),
    ],
)
def test_failed_state_change_keeps_order_active(client, carrier, order_payload, path, operation, payload) -> None:
    carrier.reply("push_orders", body={"success": True, "message": "Order has been added successfully."})
    carrier.reply("label_generation", body={"awb_response": {"success": True, "AWB": "1234"}})
    carrier.fail_network(operation)
    client.post("/api/pushOrders", json=order_payload)
    client.post("/api/labelGeneration", json=LABEL_REQUEST)

    failed = client.post(path, json=payload)
    again = client.post("/api/pushOrders", json=order_payload)

    assert failed.status_code == 200
    assert failed.json()["data"][0]["success"] is False
    assert again.status_code == 400
    assert again.json()["message"] == 'Order ID "A1" already exists and is active.'
    assert len(carrier.calls_to("push_orders")) == 1
    (record,) = client.get("/api/getAllOrders").json()["data"]
    assert record["status_message"] == "Label generated successfully."


def test_get_all_orders(client, carrier, order_payload) -> None:
    empty = client.get("/api/getAllOrders")
    assert empty.json() == {"success": False, "error": True, "message": "empty data", "total_count": 0}

    carrier.reply("push_orders", body={"success": True})
    client.post("/api/pushOrders", json=order_payload)

    listing = client.get("/api/getAllOrders").json()
    assert listing["success"] is True
    assert listing["total_count"] == 1
    (order,) = listing["data"]
    assert order["order_id"] == "A1"
    assert order["_id"]
    assert order["shipping_zipcode"] == "411001"


def test_metrics_endpoint_counts_requests(client, carrier, order_payload) -> None:
    carrier.reply("push_orders", body={"success": True})
    client.post("/api/pushOrders", json=order_payload)

    metrics = client.get("/metrics")

    assert metrics.status_code == 200
    assert "shipway_proxy_requests_total" in metrics.text
    assert 'operation="push_orders"' in metrics.text
