"""Scenario 4: Carrier, Warehouse and Pincode Catalog

This module tests the read-mostly endpoints:
- getcarrier -> normalized carrier names, original fields kept
- warehouse -> always calls the carrier; success only on the exact message
- getwarehouses / getOrders -> relayed; carrier errors wrapped
- pincodeserviceable -> validated locally, prepaid entries only
"""

from fastapi.testclient import TestClient


def test_get_carriers(client: TestClient, carrier) -> None:
    carrier.reply(
        "get_carriers",
        body={
            "success": True,
            "message": [
                {"id": 1, "name": "Delhivery (0.5kg)"},
                {"id": 2, "name": "Blue Dart"},
            ],
        },
    )

    response = client.get("/api/getcarrier")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "error": False,
        "message": [
            {"carrier_id": 1, "carrier_name": "Delhivery", "id": 1, "name": "Delhivery (0.5kg)"},
            {"carrier_id": 2, "carrier_name": "Blue Dart", "id": 2, "name": "Blue Dart"},
        ],
    }
    (call,) = carrier.calls
    assert call.method == "GET"
    assert call.timeout["read"] == 10.0


def test_get_carriers_network_failure(client, carrier) -> None:
    carrier.fail_network("get_carriers")

    response = client.get("/api/getcarrier")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "connection refused"}


def test_warehouse_created(client, carrier, warehouse_payload) -> None:
    carrier.reply(
        "warehouse",
        body={"success": True, "message": "Warehouse Created Successfully", "warehouse_response": {"warehouse_id": 77}},
    )

    response = client.post("/api/warehouse", json=warehouse_payload)

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "error": False,
        "message": "Warehouse Created Successfully",
        "warehouse_response": {"warehouse_id": 77},
    }


def test_warehouse_other_message_is_failure(client, carrier, warehouse_payload) -> None:
    carrier.reply("warehouse", body={"success": True, "message": "Warehouse already exists"})

    response = client.post("/api/warehouse", json=warehouse_payload)
    again = client.post("/api/warehouse", json=warehouse_payload)

    assert response.status_code == 400
    assert response.json()["message"] == "Warehouse already exists"
    # Registration is not deduplicated: the carrier is asked every time
    assert again.status_code == 400
    assert len(carrier.calls_to("warehouse")) == 2


def test_warehouse_missing_field(client, carrier, warehouse_payload) -> None:
    payload = dict(warehouse_payload)
    del payload["pincode"]

    response = client.post("/api/warehouse", json=payload)

    assert response.status_code == 400
    assert response.json()["message"] == "pincode is required"
    assert carrier.calls == []


def test_get_warehouses(client, carrier) -> None:
    carrier.reply("get_warehouses", body={"success": True, "message": [{"warehouse_id": 77}]})

    response = client.get("/api/getwarehouses")

    assert response.json() == {
        "success": True,
        "error": False,
        "data": {"success": True, "message": [{"warehouse_id": 77}]},
    }


def test_get_warehouses_carrier_error(client, carrier) -> None:
    carrier.reply("get_warehouses", status=401, body={"message": "Unauthorized"})

    response = client.get("/api/getwarehouses")

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": "Shipway API error",
        "details": {"message": "Unauthorized"},
    }


def test_get_orders_passthrough(client, carrier) -> None:
    carrier.reply("get_orders", body={"success": 1, "message": [{"order_id": "A1"}]})

    response = client.get("/api/getOrders")

    assert response.status_code == 200
    assert response.json() == {"success": 1, "message": [{"order_id": "A1"}]}


def test_get_orders_carrier_error(client, carrier) -> None:
    carrier.reply("get_orders", status=503, body="Service Unavailable")

    response = client.get("/api/getOrders")

    assert response.status_code == 503
    assert response.json()["details"] == "Service Unavailable"


def test_pincode_serviceable_prepaid_only(client, carrier) -> None:
    carrier.reply(
        "pincode_serviceable",
        body={
            "success": True,
            "message": [
                {"carrier_id": 1, "payment_type": "P"},
                {"carrier_id": 2, "payment_type": "C"},
            ],
        },
    )

    response = client.get("/api/pincodeserviceable", params={"pincode": "411001"})

    assert response.status_code == 200
    assert response.json()["data"]["message"] == [{"carrier_id": 1, "payment_type": "P"}]
    assert carrier.calls[0].params == {"pincode": "411001"}


def test_pincode_not_numeric(client, carrier) -> None:
    response = client.get("/api/pincodeserviceable", params={"pincode": "abc"})

    assert response.status_code == 400
    assert response.json()["message"] == "pincode must be a valid number"
    assert carrier.calls == []


def test_pincode_missing(client, carrier) -> None:
    response = client.get("/api/pincodeserviceable")

    assert response.status_code == 400
    assert response.json()["message"] == "pincode is required"
    assert carrier.calls == []


def test_pincode_not_serviceable(client, carrier) -> None:
    carrier.reply("pincode_serviceable", body={"success": False, "message": "No courier available"})

    response = client.get("/api/pincodeserviceable", params={"pincode": "999999"})

    assert response.status_code == 400
    assert response.json()["message"] == (
        "999999 pincode - our courier service is not available, please change your delivery address."
    )
