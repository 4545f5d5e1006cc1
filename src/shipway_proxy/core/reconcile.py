"""Reconciliation engine for carrier operations.

This module decides, for each operation type, whether a request against a
business entity may reach the carrier given the outcomes already recorded
for that entity, and how a carrier response is merged back into the stored
record. Every function here is pure: no I/O, no clock reads beyond record
construction.

Decisions:

    PROCEED  -> call the carrier with Decision.payload
    SKIP     -> already processed, report Decision.prior_outcome
    REJECT   -> refuse the request with Decision.reason / status_code

Status labels:
    Push, label, manifest and pickup keep the carrier's own message.
    Onhold, cancel and cancel-shipment force a canonical label on success
    ("Onhold", "cancelled", "canceled shipment").

Examples:
    Deciding whether an order may be put on hold::

        from shipway_proxy.core.reconcile import decide_onhold

        decision = decide_onhold(existing, "A1")
        if decision.kind is DecisionKind.PROCEED:
            result = await gateway.call(CarrierOperation.ONHOLD_ORDERS, decision.payload)
            outcome = canonical_outcome(result.body, ONHOLD_LABEL)
"""

import json
import re
from typing import Any

from shipway_proxy.exceptions import RemoteError
from shipway_proxy.models import (
    Decision,
    OrderRecord,
    WarehouseRecord,
    outcome_succeeded,
    utc_now,
)

ONHOLD_LABEL = "Onhold"
CANCELLED_LABEL = "cancelled"
CANCELED_SHIPMENT_LABEL = "canceled shipment"

ALREADY_ONHOLD = "This order is already Onhold"
ALREADY_CANCELLED = "This order is already cancelled"
ALREADY_SHIPMENT_CANCELLED = "This AWB is already canceled shipment"

WAREHOUSE_CREATED = "Warehouse Created Successfully"

# Keys the proxy owns on a stored order; never taken from a pushed payload
_RESERVED_ORDER_KEYS = frozenset({"_id", "record_id", "created_at", "updated_at"})

# Parenthesized annotations in carrier names, e.g. "Delhivery (0.5kg)"
_PARENTHESIZED = re.compile(r"\s*\(.*?\)\s*")

_PINCODE = re.compile(r"[0-9]+")


def carrier_message(body: Any, default: str | None = None) -> str | None:
    """Return the ``message`` string of a carrier body, or the default.

    Examples:
        >>> carrier_message({"message": "Order has been added successfully."}, "x")
        'Order has been added successfully.'
        >>> carrier_message({"message": ""}, "fallback")
        'fallback'
        >>> carrier_message(["not", "a", "dict"], "fallback")
        'fallback'
    """
    if isinstance(body, dict):
        message = body.get("message")
        if isinstance(message, str) and message:
            return message
    return default


# ---------------------------------------------------------------------------
# Order state flags
# ---------------------------------------------------------------------------


def _status_mentions(record: OrderRecord, word: str) -> bool:
    return word in (record.status_message or "").lower()


def is_cancelled(record: OrderRecord) -> bool:
    """True if the order was cancelled (recorded outcome or status text)."""
    return record.succeeded("cancel_response") or _status_mentions(record, "cancel")


def is_onhold(record: OrderRecord) -> bool:
    """True if the order was put on hold (recorded outcome or status text)."""
    return record.succeeded("onhold_response") or _status_mentions(record, "onhold")


def is_shipment_cancelled(record: OrderRecord) -> bool:
    """True if the shipment was cancelled or its AWB generation failed.

    A failed AWB (``success: false`` with a non-empty ``error`` list) leaves
    the order without a shipment, which is treated like a cancelled one.
    """
    if record.succeeded("CancelShipment_response"):
        return True
    awb = record.awb_response
    return (
        isinstance(awb, dict)
        and awb.get("success") is False
        and isinstance(awb.get("error"), list)
        and len(awb["error"]) > 0
    )


# ---------------------------------------------------------------------------
# Push order
# ---------------------------------------------------------------------------


def decide_push_order(existing: OrderRecord | None, payload: dict[str, Any]) -> Decision:
    """An order id may be pushed again only once it is cancelled, on hold or
    its shipment is cancelled."""
    if existing is not None and not (
        is_cancelled(existing) or is_onhold(existing) or is_shipment_cancelled(existing)
    ):
        return Decision.reject(f'Order ID "{payload["order_id"]}" already exists and is active.')
    return Decision.proceed(payload)


def merge_push_order(payload: dict[str, Any], body: Any) -> OrderRecord:
    """Build the new order record for a successful push."""
    fields = {key: value for key, value in payload.items() if key not in _RESERVED_ORDER_KEYS}
    fields["status_message"] = carrier_message(body, "Order has been added successfully.")
    fields["shipway_response"] = body if body not in (None, "") else None
    fields["created_at"] = utc_now()
    return OrderRecord.model_validate(fields)


# ---------------------------------------------------------------------------
# Label generation
# ---------------------------------------------------------------------------

LABEL_IDENTIFIERS = ("carrier_id", "warehouse_id", "return_warehouse_id")


def decide_label_generation(existing: OrderRecord | None, payload: dict[str, Any]) -> Decision:
    if existing is None:
        return Decision.reject(f'Order ID "{payload["order_id"]}" not found.', status_code=404)
    if existing.succeeded("awb_response"):
        return Decision.reject(
            "AWB already generated for this order.",
            outcome_field="awb_response",
            prior_outcome=existing.awb_response,
        )
    return Decision.proceed(payload)


def label_backfill(existing: OrderRecord, payload: dict[str, Any]) -> dict[str, Any]:
    """Identifiers to store before label generation, empty if all are set.

    When any of carrier, warehouse or return warehouse id is missing on the
    record, all three are taken from the request.
    """
    if all(getattr(existing, name) for name in LABEL_IDENTIFIERS):
        return {}
    return {name: payload.get(name) for name in LABEL_IDENTIFIERS}


def merge_label(body: Any) -> dict[str, Any]:
    awb_response = body.get("awb_response") if isinstance(body, dict) else None
    return {
        "status_message": carrier_message(body, "Label generated successfully."),
        "awb_response": awb_response or {},
    }


# ---------------------------------------------------------------------------
# Manifest
# ---------------------------------------------------------------------------


def decide_manifest(existing: OrderRecord | None, order_id: str | int) -> Decision:
    """Orders with any recorded manifest outcome are skipped.

    Ids without a stored record still go to the carrier; there is simply
    nothing to update for them afterwards.
    """
    if existing is not None and existing.has_outcome("manifest_response"):
        return Decision.skip(
            "Order already manifested",
            outcome_field="manifest_response",
            prior_outcome=existing.manifest_response,
        )
    return Decision.proceed(order_id)


def manifest_ids(manifest_response: Any) -> Any:
    """The carrier's ``manifest ids`` value, None when absent."""
    if isinstance(manifest_response, dict):
        return manifest_response.get("manifest ids") or None
    return None


def merge_manifest(body: Any) -> dict[str, Any]:
    return {
        "manifest_response": body,
        "manifest_status_message": carrier_message(body, "Manifest request completed."),
    }


def manifest_failure(error: RemoteError) -> dict[str, Any]:
    return {
        "manifest_response": error.body if error.body is not None else {"message": error.message},
        "manifest_status_message": "Manifest API failed",
    }


# ---------------------------------------------------------------------------
# Pickup
# ---------------------------------------------------------------------------

PICKUP_REQUIRED_FIELDS = (
    "pickup_date",
    "pickup_time",
    "carrier_id",
    "office_close_time",
    "warehouse_id",
    "return_warehouse_id",
    "payment_type",
)


def decide_pickup(
    existing: OrderRecord | None,
    order_id: str | int,
    pickup_fields: dict[str, Any],
) -> Decision:
    """Pickups are requested one order at a time."""
    if existing is None:
        return Decision.reject("Order not found in pushorder", status_code=404)
    if existing.has_outcome("createPickupResponse"):
        return Decision.skip(
            "Pickup already created for this order",
            outcome_field="createPickupResponse",
            prior_outcome=existing.createPickupResponse,
        )
    return Decision.proceed({**pickup_fields, "order_ids": [order_id]})


def merge_pickup(sent: dict[str, Any], body: Any) -> dict[str, Any]:
    return {
        "createPickupData": sent,
        "createPickupResponse": body,
        "pickup_status_message": carrier_message(body, "Pickup request processed."),
    }


def pickup_failure(sent: dict[str, Any], error: RemoteError) -> dict[str, Any]:
    return {
        "createPickupData": sent,
        "createPickupResponse": error.body,
        "pickup_status_message": "Pickup API failed",
    }


# ---------------------------------------------------------------------------
# Onhold / cancel / cancel shipment
# ---------------------------------------------------------------------------


def decide_onhold(existing: OrderRecord | None, order_id: str | int) -> Decision:
    if existing is None:
        return Decision.reject("Order not found in database", status_code=404)
    if existing.succeeded("onhold_response"):
        return Decision.skip(ALREADY_ONHOLD, "onhold_response", existing.onhold_response)
    return Decision.proceed({"order_ids": [order_id]})


def decide_cancel(existing: OrderRecord | None, order_id: str | int) -> Decision:
    if existing is None:
        return Decision.reject("Order not found in database", status_code=404)
    if existing.succeeded("cancel_response"):
        return Decision.skip(ALREADY_CANCELLED, "cancel_response", existing.cancel_response)
    return Decision.proceed({"order_ids": [order_id]})


def decide_cancel_shipment(existing: OrderRecord | None, awb: str | int) -> Decision:
    """Any recorded shipment cancellation outcome blocks another attempt."""
    if existing is None:
        return Decision.reject("Valid AWB number not found", status_code=404)
    if existing.has_outcome("CancelShipment_response"):
        return Decision.skip(
            ALREADY_SHIPMENT_CANCELLED,
            "CancelShipment_response",
            existing.CancelShipment_response,
        )
    return Decision.proceed({"awb_number": [awb]})


def canonical_outcome(body: Any, label: str) -> dict[str, Any]:
    """Turn a carrier response into the stored outcome for one entity.

    Batch endpoints may answer with a list; the first element is the
    outcome. A successful outcome has its message replaced by ``label``.

    Examples:
        >>> canonical_outcome([{"success": True, "message": "done"}], "Onhold")
        {'success': True, 'message': 'Onhold'}
        >>> canonical_outcome({"success": False, "message": "Invalid order"}, "Onhold")
        {'success': False, 'message': 'Invalid order'}
    """
    outcome = body[0] if isinstance(body, list) and body else body
    if not isinstance(outcome, dict):
        return {"success": False, "message": "Unexpected carrier response", "response": body}
    if outcome_succeeded(outcome):
        return {**outcome, "message": label}
    return outcome


def failure_outcome(key_field: str, key: Any, error: RemoteError, default_message: str) -> dict[str, Any]:
    """The outcome recorded for one entity when its carrier call failed."""
    return {
        key_field: key,
        "success": False,
        "error": True,
        "message": error.carrier_message or default_message,
    }


def state_change_fields(outcome_field: str, outcome: dict[str, Any]) -> dict[str, Any]:
    """Fields written for an onhold/cancel/cancel-shipment outcome.

    Only a successful outcome relabels ``status_message``. Failure text such
    as "Shipway CancelShipment failed" would otherwise match the status
    flags that let an order be pushed again.

    Examples:
        >>> state_change_fields("onhold_response", {"success": True, "message": "Onhold"})
        {'onhold_response': {'success': True, 'message': 'Onhold'}, 'status_message': 'Onhold'}
        >>> state_change_fields("cancel_response", {"success": False, "message": "Shipway cancel failed"})
        {'cancel_response': {'success': False, 'message': 'Shipway cancel failed'}}
    """
    fields: dict[str, Any] = {outcome_field: outcome}
    if outcome_succeeded(outcome):
        fields["status_message"] = carrier_message(outcome)
    return fields


# ---------------------------------------------------------------------------
# NDR
# ---------------------------------------------------------------------------


def decide_insert_order(existing: OrderRecord | None, payload: dict[str, Any]) -> Decision:
    """An NDR insert needs a live order whose AWB matches the tracking number."""
    order_id = payload["order_id"]
    if existing is None:
        return Decision.reject(f'Order ID "{order_id}" not found in database', status_code=404)
    if existing.succeeded("onhold_response"):
        return Decision.reject(ALREADY_ONHOLD, outcome_field="onhold_response", prior_outcome=existing.onhold_response)
    if existing.succeeded("cancel_response"):
        return Decision.reject(
            "This order is already Cancelled",
            outcome_field="cancel_response",
            prior_outcome=existing.cancel_response,
        )
    if existing.succeeded("CancelShipment_response"):
        return Decision.reject(
            "This order shipment is already Cancelled",
            outcome_field="CancelShipment_response",
            prior_outcome=existing.CancelShipment_response,
        )

    awb = existing.awb
    if not awb or awb != payload.get("order_tracking_number"):
        return Decision.reject("not found or invalid order_tracking_number")
    return Decision.proceed(payload)


# ---------------------------------------------------------------------------
# Carriers, pincodes, warehouses
# ---------------------------------------------------------------------------


def normalize_carrier_name(name: str) -> str:
    """Strip parenthesized annotations (weights, modes) from a carrier name.

    Applying it twice gives the same result as applying it once.

    Examples:
        >>> normalize_carrier_name("Delhivery (0.5kg)")
        'Delhivery'
        >>> normalize_carrier_name("Blue Dart (Air) Express")
        'Blue DartExpress'
    """
    return _PARENTHESIZED.sub("", name)


def transform_carriers(body: Any) -> list[dict[str, Any]]:
    """Add ``carrier_id`` and a normalized ``carrier_name`` to every carrier.

    All original fields are preserved.
    """
    items = body.get("message") if isinstance(body, dict) else None
    if not isinstance(items, list):
        return []

    carriers = []
    for item in items:
        if not isinstance(item, dict):
            continue
        name = item.get("name")
        carriers.append(
            {
                "carrier_id": item.get("id"),
                "carrier_name": normalize_carrier_name(str(name)) if name is not None else "",
                **item,
            }
        )
    return carriers


def is_numeric_pincode(pincode: str) -> bool:
    """True if the pincode is made of ASCII digits only."""
    return _PINCODE.fullmatch(pincode) is not None


def filter_prepaid(body: Any) -> dict[str, Any] | None:
    """Keep only prepaid (``payment_type == "P"``) serviceability entries.

    Returns:
        The body with its ``message`` list filtered, or None when the
        carrier did not answer with a list (the pincode is not serviceable).
    """
    if not isinstance(body, dict) or not isinstance(body.get("message"), list):
        return None
    return {
        **body,
        "message": [
            item
            for item in body["message"]
            if isinstance(item, dict) and item.get("payment_type") == "P"
        ],
    }


def _nested(body: Any, key: str) -> Any:
    data = body.get("data") if isinstance(body, dict) else None
    if isinstance(data, dict) and data.get(key):
        return data[key]
    if isinstance(body, dict) and body.get(key):
        return body[key]
    return None


def warehouse_outcome(body: Any) -> tuple[str, Any]:
    """Message and warehouse response of a 2xx warehouse call."""
    message = _nested(body, "message") or "No message returned"
    return str(message), _nested(body, "warehouse_response") or {}


def warehouse_failure(error: RemoteError) -> tuple[str, Any]:
    """Message and warehouse response recorded for a failed warehouse call."""
    if error.http_status is None:
        return error.message or "Unknown request error", {}

    body = error.body
    data = body.get("data") if isinstance(body, dict) else None
    message = _nested(body, "message")
    if not message:
        message = json.dumps(body) if body is not None else "Unknown Shipway error"
    response = data.get("warehouse_response") if isinstance(data, dict) else None
    return str(message), response or {}


def new_warehouse(payload: dict[str, Any], message: str, response: Any) -> WarehouseRecord:
    record = WarehouseRecord.from_payload(payload)
    return record.model_copy(update={"status_message": message, "warehouse_response": response})
