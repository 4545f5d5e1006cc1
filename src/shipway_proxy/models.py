"""Core type definitions and models for the Shipway proxy.

This module provides the stored documents (order and warehouse records), the
result of a carrier call, and the decision type produced by the
reconciliation engine.

Examples:
    Creating an order record from a pushed payload::

        from shipway_proxy.models import OrderRecord

        record = OrderRecord(
            order_id="A1",
            products=[{"product": "Mug", "product_quantity": "1"}],
            payment_type="P",
            status_message="Order has been added successfully.",
            shipway_response={"success": True, "message": "Order has been added successfully."},
        )

    Checking a recorded outcome::

        if record.succeeded("onhold_response"):
            ...  # order already on hold
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Attributes that together identify a warehouse
WAREHOUSE_SIGNATURE_FIELDS = (
    "title",
    "contact_person_name",
    "email",
    "phone",
    "address_1",
    "city",
    "state",
    "country",
    "pincode",
)


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)


def outcome_succeeded(outcome: Any) -> bool:
    """Return True if an outcome document reports ``success: true``.

    Examples:
        >>> outcome_succeeded({"success": True})
        True
        >>> outcome_succeeded({"success": "true"})
        False
        >>> outcome_succeeded(None)
        False
    """
    return isinstance(outcome, dict) and outcome.get("success") is True


class OrderRecord(BaseModel):
    """Stored state of one pushed order.

    All fields of the pushed payload are kept as extra attributes; the named
    fields are the ones this service reads or writes itself. Several records
    may share an ``order_id`` when an order is pushed again after being
    cancelled or put on hold; the most recent one is the current record.

    Attributes:
        record_id: Store-assigned identifier of this document.
        order_id: Business order identifier.
        status_message: Last known state description.
        shipway_response: Carrier response to the push.
        awb_response: Carrier label (AWB) generation outcome.
        onhold_response: Onhold outcome.
        cancel_response: Cancel outcome.
        manifest_response: Manifest outcome.
        createPickupResponse: Pickup outcome.
        CancelShipment_response: Shipment cancellation outcome.
        insertorder_response: NDR insert outcome.
        created_at: When the record was inserted.
        updated_at: When the record was last updated.
    """

    model_config = ConfigDict(extra="allow")

    record_id: str | None = Field(default=None, description="Store-assigned document id")
    order_id: str | int = Field(..., description="Business order identifier")
    status_message: str | None = None

    carrier_id: Any = None
    warehouse_id: Any = None
    return_warehouse_id: Any = None

    shipway_response: Any = None
    awb_response: Any = None
    onhold_response: Any = None
    cancel_response: Any = None
    manifest_response: Any = None
    manifest_status_message: str | None = None
    createPickupData: Any = None
    createPickupResponse: Any = None
    pickup_status_message: str | None = None
    CancelShipment_response: Any = None
    insertorder_response: Any = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime | None = None

    def succeeded(self, field: str) -> bool:
        """Return True if the named outcome field reports success."""
        return outcome_succeeded(getattr(self, field, None))

    def has_outcome(self, field: str) -> bool:
        """Return True if the named outcome field holds a non-null value."""
        return getattr(self, field, None) is not None

    @property
    def awb(self) -> Any:
        """AWB number recorded by label generation, if any."""
        if isinstance(self.awb_response, dict):
            return self.awb_response.get("AWB")
        return None

    def to_document(self) -> dict[str, Any]:
        """Dump the record for storage, without the store-assigned id."""
        return self.model_dump(exclude={"record_id"})


class WarehouseRecord(BaseModel):
    """Stored state of one warehouse registration.

    Attributes are stored exactly as the client sent them, numbers included.
    """

    record_id: str | None = None
    title: Any
    company: Any = ""
    contact_person_name: Any
    email: Any
    phone: Any
    phone_print: Any = ""
    address_1: Any
    address_2: Any = ""
    city: Any
    state: Any
    country: Any
    pincode: Any
    longitude: Any = ""
    latitude: Any = ""
    gst_no: Any = ""
    fssai_code: Any = ""
    status_message: str = "Pending"
    warehouse_response: Any = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime | None = None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "WarehouseRecord":
        """Build a pending record from a warehouse request payload.

        Optional attributes missing or empty in the payload default to "".
        """
        fields = {name: payload.get(name) for name in WAREHOUSE_SIGNATURE_FIELDS}
        for name in (
            "company",
            "phone_print",
            "address_2",
            "longitude",
            "latitude",
            "gst_no",
            "fssai_code",
        ):
            fields[name] = payload.get(name) or ""
        return cls(**fields)

    def to_document(self) -> dict[str, Any]:
        """Dump the record for storage, without the store-assigned id."""
        return self.model_dump(exclude={"record_id"})


def warehouse_signature(payload: dict[str, Any]) -> dict[str, Any]:
    """Extract the exact-match identity of a warehouse from a payload.

    No normalization is applied: two warehouses are the same only when every
    signature attribute is equal, case included.

    Example:
        >>> warehouse_signature({"title": "Main", "city": "Pune", "gst_no": "X"})["city"]
        'Pune'
    """
    return {name: payload.get(name) for name in WAREHOUSE_SIGNATURE_FIELDS}


class RemoteResult(BaseModel):
    """A successful (2xx) carrier response.

    Attributes:
        http_status: Carrier HTTP status code.
        body: Decoded JSON body, or the raw text when the body is not JSON.
    """

    http_status: int = Field(..., ge=100, le=599)
    body: Any = None


class DecisionKind(str, Enum):
    """What the reconciliation engine decided for one entity.

    Attributes:
        PROCEED: Call the carrier with the decision payload.
        SKIP: Already processed; report the prior outcome instead.
        REJECT: Refuse the request.
    """

    PROCEED = "PROCEED"
    SKIP = "SKIP"
    REJECT = "REJECT"


class Decision(BaseModel):
    """Result of a reconciliation decision.

    Attributes:
        kind: PROCEED, SKIP or REJECT.
        reason: Message reported for SKIP and REJECT.
        status_code: HTTP status for REJECT.
        payload: Carrier payload for PROCEED.
        outcome_field: Name of the stored outcome that caused SKIP/REJECT.
        prior_outcome: Value of that stored outcome.

    Examples:
        >>> Decision.proceed({"order_ids": ["A1"]}).kind
        <DecisionKind.PROCEED: 'PROCEED'>
        >>> Decision.reject("Order not found", status_code=404).status_code
        404
    """

    kind: DecisionKind
    reason: str | None = None
    status_code: int | None = None
    payload: Any = None
    outcome_field: str | None = None
    prior_outcome: Any = None

    @classmethod
    def proceed(cls, payload: Any) -> "Decision":
        return cls(kind=DecisionKind.PROCEED, payload=payload)

    @classmethod
    def skip(
        cls,
        reason: str,
        outcome_field: str | None = None,
        prior_outcome: Any = None,
    ) -> "Decision":
        return cls(
            kind=DecisionKind.SKIP,
            reason=reason,
            outcome_field=outcome_field,
            prior_outcome=prior_outcome,
        )

    @classmethod
    def reject(
        cls,
        reason: str,
        status_code: int = 400,
        outcome_field: str | None = None,
        prior_outcome: Any = None,
    ) -> "Decision":
        return cls(
            kind=DecisionKind.REJECT,
            reason=reason,
            status_code=status_code,
            outcome_field=outcome_field,
            prior_outcome=prior_outcome,
        )

    @property
    def context(self) -> dict[str, Any]:
        """The stored outcome to echo back, keyed by its field name."""
        if self.outcome_field is None:
            return {}
        return {self.outcome_field: self.prior_outcome}
