"""Operation handlers for the Shipway proxy.

Each public coroutine of :class:`ShipwayHandlers` implements one proxied
operation:

1. Validate the payload (ValidationError, no I/O)
2. Load the current entity state from the store
3. Ask the reconciliation engine whether the carrier may be called
4. Call the carrier through the gateway
5. Merge the outcome back into the store with a guarded update

Batch operations (manifest aside) handle their ids one at a time, in
request order. A failure for one id is reported in that id's entry and
never aborts the rest of the batch.

Examples:
    Wiring handlers by hand::

        handlers = ShipwayHandlers(store=MemoryEntityStore(), gateway=CarrierGateway(config))
        response = await handlers.onhold_orders({"order_ids": ["A1", "A2"]})
        print(response.status, response.body)
"""

from typing import Any, NoReturn

from shipway_proxy.core import reconcile
from shipway_proxy.core.responses import HandlerResponse, carrier_error_response
from shipway_proxy.core.validation import (
    require_all,
    require_each,
    require_fields,
    require_id_list,
)
from shipway_proxy.exceptions import (
    ConflictError,
    NotFoundError,
    RemoteError,
    ShipwayProxyError,
    StoreError,
    ValidationError,
)
from shipway_proxy.gateway import CarrierGateway, CarrierOperation
from shipway_proxy.models import (
    WAREHOUSE_SIGNATURE_FIELDS,
    Decision,
    DecisionKind,
    OrderRecord,
    warehouse_signature,
)
from shipway_proxy.observability.logging import get_logger
from shipway_proxy.observability.metrics import record_skipped
from shipway_proxy.storage.base import EntityStore

logger = get_logger(__name__)

PUSH_ORDER_REQUIRED_FIELDS = (
    "order_id",
    "products",
    "payment_type",
    "shipping_country",
    "shipping_phone",
    "shipping_zipcode",
)

LABEL_REQUIRED_FIELDS = ("order_id", "carrier_id", "warehouse_id", "return_warehouse_id")


def raise_rejection(decision: Decision) -> NoReturn:
    """Raise the error a REJECT decision maps to."""
    error_cls = NotFoundError if decision.status_code == 404 else ConflictError
    raise error_cls(
        decision.reason or "Request rejected",
        status_code=decision.status_code,
        extra=decision.context,
    )


def public_order(record: OrderRecord) -> dict[str, Any]:
    """JSON view of a stored order, with the store id under ``_id``."""
    document = record.model_dump(mode="json", exclude={"record_id"})
    return {"_id": record.record_id, **document}


class ShipwayHandlers:
    """Proxied carrier operations.

    Attributes:
        store: Entity store holding order and warehouse records
        gateway: Carrier API gateway
    """

    def __init__(self, store: EntityStore, gateway: CarrierGateway) -> None:
        self.store = store
        self.gateway = gateway

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def push_orders(self, payload: dict[str, Any]) -> HandlerResponse:
        """Create an order at the carrier and store it.

        Raises:
            ValidationError: If required fields are missing.
            ConflictError: If an active order with the same id exists.
            RemoteError: If the carrier call fails (nothing is stored).
        """
        require_fields(payload, PUSH_ORDER_REQUIRED_FIELDS)
        order_id = payload["order_id"]

        existing = await self.store.find_order(order_id)
        decision = reconcile.decide_push_order(existing, payload)
        if decision.kind is DecisionKind.REJECT:
            logger.warning("order.push_rejected", order_id=order_id, reason=decision.reason)
            raise_rejection(decision)

        result = await self.gateway.call(CarrierOperation.PUSH_ORDERS, decision.payload)
        record = await self.store.insert_order(reconcile.merge_push_order(payload, result.body))

        logger.info(
            "order.pushed",
            order_id=order_id,
            record_id=record.record_id,
            resubmitted=existing is not None,
        )
        return HandlerResponse(
            200,
            {"success": True, "message": record.status_message, "data": result.body},
        )

    async def label_generation(self, payload: dict[str, Any]) -> HandlerResponse:
        """Generate the AWB label for a stored order.

        Raises:
            ValidationError: If required fields are missing.
            NotFoundError: If the order is unknown.
            ConflictError: If an AWB was already generated.
            RemoteError: If the carrier call fails.
        """
        require_fields(payload, LABEL_REQUIRED_FIELDS)
        order_id = payload["order_id"]

        existing = await self.store.find_order(order_id)
        decision = reconcile.decide_label_generation(existing, payload)
        if decision.kind is DecisionKind.REJECT or existing is None:
            logger.warning("label.rejected", order_id=order_id, reason=decision.reason)
            raise_rejection(decision)

        record_id = existing.record_id or ""
        backfill = reconcile.label_backfill(existing, payload)
        if backfill:
            await self.store.update_order(record_id, backfill)

        result = await self.gateway.call(CarrierOperation.LABEL_GENERATION, decision.payload)
        fields = reconcile.merge_label(result.body)
        updated = await self.store.update_order(record_id, fields, unless_succeeded="awb_response")
        if not updated:
            logger.warning("label.outcome_not_recorded", order_id=order_id, record_id=record_id)

        logger.info("label.generated", order_id=order_id, record_id=record_id)
        return HandlerResponse(
            200,
            {
                "success": True,
                "message": fields["status_message"],
                "awb_response": fields["awb_response"],
            },
        )

    async def create_manifest(self, payload: dict[str, Any]) -> HandlerResponse:
        """Manifest every listed order not manifested yet, in one carrier call.

        Raises:
            ValidationError: If order_ids is not a non-empty list.
            RemoteError: If the carrier call fails. The failure is recorded
                on every pending order first.
        """
        order_ids = require_id_list(
            payload, "order_ids", "order_ids is required and must be a non-empty array"
        )
        records = await self.store.find_orders(order_ids)

        skipped: list[dict[str, Any]] = []
        pending: list[Any] = []
        for order_id in order_ids:
            decision = reconcile.decide_manifest(records.get(order_id), order_id)
            if decision.kind is DecisionKind.SKIP:
                skipped.append(
                    {"order_id": order_id, "manifest_ids": reconcile.manifest_ids(decision.prior_outcome)}
                )
            else:
                pending.append(order_id)
        record_skipped("create_manifest", len(skipped))

        if not pending:
            logger.info("manifest.nothing_to_do", skipped=len(skipped))
            return HandlerResponse(
                200,
                {
                    "success": True,
                    "message": "No new orders to manifest.",
                    "manifest ids": None,
                    "skipped": skipped,
                    "processed": [],
                    "manifest_response": None,
                },
            )

        record_ids = [records[i].record_id or "" for i in pending if i in records]
        try:
            result = await self.gateway.call(CarrierOperation.CREATE_MANIFEST, {"order_ids": pending})
        except RemoteError as e:
            await self.store.update_orders(
                record_ids, reconcile.manifest_failure(e), unless_present="manifest_response"
            )
            logger.error("manifest.failed", order_ids=pending, status=e.http_status)
            raise

        fields = reconcile.merge_manifest(result.body)
        updated = await self.store.update_orders(record_ids, fields, unless_present="manifest_response")

        logger.info("manifest.created", processed=len(pending), skipped=len(skipped), updated=updated)
        return HandlerResponse(
            200,
            {
                "success": True,
                "message": fields["manifest_status_message"],
                "manifest ids": reconcile.manifest_ids(result.body),
                "skipped": skipped,
                "processed": pending,
                "manifest_response": result.body,
            },
        )

    async def create_pickup(self, payload: dict[str, Any]) -> HandlerResponse:
        """Request a pickup for each listed order, one carrier call per order.

        Raises:
            ValidationError: If order_ids or a pickup field is missing.
        """
        order_ids = require_id_list(
            payload, "order_ids", "order_ids is required and must be a non-empty array"
        )
        require_each(payload, reconcile.PICKUP_REQUIRED_FIELDS)
        pickup_fields = {key: value for key, value in payload.items() if key != "order_ids"}

        results = []
        for order_id in order_ids:
            results.append(await self._pickup_one(order_id, pickup_fields))

        logger.info("pickup.batch_completed", count=len(results))
        return HandlerResponse(200, {"success": True, "results": results})

    async def _pickup_one(self, order_id: Any, pickup_fields: dict[str, Any]) -> dict[str, Any]:
        try:
            existing = await self.store.find_order(order_id)
            decision = reconcile.decide_pickup(existing, order_id, pickup_fields)
            if decision.kind is not DecisionKind.PROCEED or existing is None:
                if decision.kind is DecisionKind.SKIP:
                    record_skipped("create_pickup")
                logger.info("pickup.skipped", order_id=order_id, reason=decision.reason)
                return {"order_id": order_id, "success": False, "message": decision.reason}

            record_id = existing.record_id or ""
            try:
                result = await self.gateway.call(CarrierOperation.CREATE_PICKUP, decision.payload)
            except RemoteError as e:
                if e.http_status is None:
                    raise
                await self.store.update_order(
                    record_id,
                    reconcile.pickup_failure(decision.payload, e),
                    unless_present="createPickupResponse",
                )
                return {
                    "order_id": order_id,
                    "success": False,
                    "message": e.carrier_message or "Shipway API failed",
                    "response": e.body,
                }

            fields = reconcile.merge_pickup(decision.payload, result.body)
            await self.store.update_order(record_id, fields, unless_present="createPickupResponse")
            logger.info("pickup.created", order_id=order_id)
            return {
                "order_id": order_id,
                "success": True,
                "message": fields["pickup_status_message"],
                "response": result.body,
            }
        except ShipwayProxyError as e:
            logger.error("pickup.failed", order_id=order_id, error=e.message)
            return {"order_id": order_id, "success": False, "message": e.message}
        except Exception as e:
            logger.exception("pickup.unexpected_error", order_id=order_id)
            return {"order_id": order_id, "success": False, "message": str(e) or "Internal Server Error"}

    async def onhold_orders(self, payload: dict[str, Any]) -> HandlerResponse:
        """Put each listed order on hold.

        Raises:
            ValidationError: If order_ids is not a non-empty list.
            ConflictError: If every listed order is already on hold.
        """
        order_ids = require_id_list(payload, "order_ids", "order_ids must be a non-empty array")

        entries = []
        for order_id in order_ids:
            entries.append(
                await self._change_state(
                    CarrierOperation.ONHOLD_ORDERS,
                    "order_id",
                    order_id,
                    outcome_field="onhold_response",
                    label=reconcile.ONHOLD_LABEL,
                    failure_message="Shipway onhold failed",
                )
            )

        if all(
            entry.get("success") is False and entry.get("message") == reconcile.ALREADY_ONHOLD
            for entry in entries
        ):
            raise ConflictError("All provided orders are already Onhold", extra={"data": entries})
        return HandlerResponse(200, {"success": True, "data": entries})

    async def cancel_orders(self, payload: dict[str, Any]) -> HandlerResponse:
        """Cancel each listed order.

        Raises:
            ValidationError: If order_ids is not a non-empty list.
        """
        order_ids = require_id_list(payload, "order_ids", "order_ids must be a non-empty array")

        entries = []
        for order_id in order_ids:
            entries.append(
                await self._change_state(
                    CarrierOperation.CANCEL_ORDERS,
                    "order_id",
                    order_id,
                    outcome_field="cancel_response",
                    label=reconcile.CANCELLED_LABEL,
                    failure_message="Shipway cancel failed",
                )
            )
        return HandlerResponse(200, {"success": True, "data": entries})

    async def cancel_shipment(self, payload: dict[str, Any]) -> HandlerResponse:
        """Cancel the shipment behind each listed AWB number.

        Raises:
            ValidationError: If awb_number is not a non-empty list.
        """
        awbs = require_id_list(payload, "awb_number", "awb_number must be a non-empty array")

        entries = []
        for awb in awbs:
            entries.append(
                await self._change_state(
                    CarrierOperation.CANCEL_SHIPMENT,
                    "awb_number",
                    awb,
                    outcome_field="CancelShipment_response",
                    label=reconcile.CANCELED_SHIPMENT_LABEL,
                    failure_message="Shipway CancelShipment failed",
                )
            )
        return HandlerResponse(200, {"success": True, "data": entries})

    async def _change_state(
        self,
        operation: CarrierOperation,
        key_field: str,
        key: Any,
        *,
        outcome_field: str,
        label: str,
        failure_message: str,
    ) -> dict[str, Any]:
        """Onhold, cancel or cancel-shipment for one entity.

        Returns:
            The entry reported for this entity: the stored outcome, a skip
            notice with the prior outcome, or an error entry.
        """
        try:
            if operation is CarrierOperation.CANCEL_SHIPMENT:
                existing = await self.store.find_order_by_awb(key)
                decision = reconcile.decide_cancel_shipment(existing, key)
                guard = {"unless_present": outcome_field}
            else:
                existing = await self.store.find_order(key)
                if operation is CarrierOperation.ONHOLD_ORDERS:
                    decision = reconcile.decide_onhold(existing, key)
                else:
                    decision = reconcile.decide_cancel(existing, key)
                guard = {"unless_succeeded": outcome_field}

            if decision.kind is not DecisionKind.PROCEED or existing is None:
                if decision.kind is DecisionKind.SKIP:
                    record_skipped(operation.value)
                logger.info(f"{operation.value}.skipped", **{key_field: key}, reason=decision.reason)
                return {
                    key_field: key,
                    "success": False,
                    "error": True,
                    "message": decision.reason,
                    **decision.context,
                }

            try:
                result = await self.gateway.call(operation, decision.payload)
                outcome = reconcile.canonical_outcome(result.body, label)
            except RemoteError as e:
                logger.error(f"{operation.value}.carrier_failed", **{key_field: key}, status=e.http_status)
                outcome = reconcile.failure_outcome(key_field, key, e, failure_message)

            updated = await self.store.update_order(
                existing.record_id or "",
                reconcile.state_change_fields(outcome_field, outcome),
                **guard,
            )
            if not updated:
                logger.warning(f"{operation.value}.outcome_not_recorded", **{key_field: key})
            return outcome
        except ShipwayProxyError as e:
            logger.error(f"{operation.value}.failed", **{key_field: key}, error=e.message)
            return {key_field: key, "success": False, "error": True, "message": e.message}
        except Exception as e:
            logger.exception(f"{operation.value}.unexpected_error", **{key_field: key})
            return {key_field: key, "success": False, "error": True, "message": str(e) or "Internal Server Error"}

    async def get_orders(self) -> HandlerResponse:
        """Relay the carrier's order listing unchanged."""
        try:
            result = await self.gateway.call(CarrierOperation.GET_ORDERS)
        except RemoteError as e:
            if e.http_status is None:
                raise
            return carrier_error_response(e)
        return HandlerResponse(200, result.body)

    async def get_all_orders(self) -> HandlerResponse:
        """List every stored order record."""
        records = await self.store.list_orders()
        if not records:
            return HandlerResponse(
                200,
                {"success": False, "error": True, "message": "empty data", "total_count": 0},
            )
        return HandlerResponse(
            200,
            {
                "success": True,
                "error": False,
                "total_count": len(records),
                "data": [public_order(record) for record in records],
            },
        )

    # ------------------------------------------------------------------
    # NDR (non-delivery report)
    # ------------------------------------------------------------------

    async def insert_order(self, payload: dict[str, Any]) -> HandlerResponse:
        """Insert an NDR order for a live, labelled order.

        Raises:
            ValidationError: If order_id or order_tracking_number is missing.
            NotFoundError: If the order is unknown.
            ConflictError: If the order is on hold, cancelled, its shipment
                is cancelled, or the tracking number does not match its AWB.
            RemoteError: If the carrier call fails.
        """
        require_all(
            payload,
            ("order_id", "order_tracking_number"),
            "order_id and order_tracking_number are required",
        )
        order_id = payload["order_id"]

        existing = await self.store.find_order(order_id)
        decision = reconcile.decide_insert_order(existing, payload)
        if decision.kind is DecisionKind.REJECT or existing is None:
            logger.warning("ndr.insert_rejected", order_id=order_id, reason=decision.reason)
            raise_rejection(decision)

        result = await self.gateway.call(CarrierOperation.INSERT_ORDER, decision.payload)
        try:
            await self.store.update_order(existing.record_id or "", {"insertorder_response": result.body})
        except StoreError as e:
            # The carrier accepted the insert; the caller still gets its answer
            logger.error("ndr.insert_not_recorded", order_id=order_id, error=e.message)

        logger.info("ndr.inserted", order_id=order_id)
        return HandlerResponse(200, {"success": True, "data": result.body})

    async def reattempt(self, payload: dict[str, Any]) -> HandlerResponse:
        require_all(
            payload,
            ("order_id", "order_tracking_number", "date_time"),
            "order_id, order_tracking_number, and date_time are required",
        )
        return await self._relay(CarrierOperation.REATTEMPT, payload)

    async def rto(self, payload: dict[str, Any]) -> HandlerResponse:
        require_all(
            payload,
            ("order_id", "order_tracking_number", "date_time", "reason"),
            "order_id, order_tracking_number, date_time, and reason are required",
        )
        return await self._relay(CarrierOperation.RTO, payload)

    async def order_details(self, payload: dict[str, Any]) -> HandlerResponse:
        require_all(payload, ("order_id",), "order_id is required")
        return await self._relay(CarrierOperation.ORDER_DETAILS, payload)

    async def _relay(self, operation: CarrierOperation, payload: dict[str, Any]) -> HandlerResponse:
        result = await self.gateway.call(operation, payload)
        logger.info(f"ndr.{operation.value}", order_id=payload.get("order_id"))
        return HandlerResponse(200, {"success": True, "data": result.body})

    # ------------------------------------------------------------------
    # Catalog: carriers, warehouses, pincodes
    # ------------------------------------------------------------------

    async def get_carriers(self) -> HandlerResponse:
        """List carriers with an id and a normalized display name."""
        result = await self.gateway.call(CarrierOperation.GET_CARRIERS)
        return HandlerResponse(
            200,
            {"success": True, "error": False, "message": reconcile.transform_carriers(result.body)},
        )

    async def warehouse(self, payload: dict[str, Any]) -> HandlerResponse:
        """Register a warehouse at the carrier and record the result.

        The carrier is always called; an exact-signature match only decides
        whether the stored record is updated or a new one inserted.

        Raises:
            ValidationError: If a required warehouse attribute is missing.
        """
        require_each(payload, WAREHOUSE_SIGNATURE_FIELDS, truthy=True)

        existing = await self.store.find_warehouse(warehouse_signature(payload))
        try:
            result = await self.gateway.call(CarrierOperation.WAREHOUSE, payload)
        except RemoteError as e:
            message, response = reconcile.warehouse_failure(e)
            if existing is not None:
                await self.store.update_warehouse(
                    existing.record_id or "",
                    {"status_message": message, "warehouse_response": response},
                )
            logger.error("warehouse.failed", title=payload.get("title"), status=e.http_status, message=message)
            return HandlerResponse(
                e.status_code,
                {"success": False, "error": True, "message": message, "warehouse_response": response},
            )

        message, response = reconcile.warehouse_outcome(result.body)
        if existing is not None:
            await self.store.update_warehouse(
                existing.record_id or "",
                {"status_message": message, "warehouse_response": response},
            )
        else:
            await self.store.insert_warehouse(reconcile.new_warehouse(payload, message, response))

        created = message == reconcile.WAREHOUSE_CREATED
        logger.info("warehouse.registered", title=payload.get("title"), created=created, existing=existing is not None)
        return HandlerResponse(
            200 if created else 400,
            {"success": created, "error": not created, "message": message, "warehouse_response": response},
        )

    async def get_warehouses(self) -> HandlerResponse:
        try:
            result = await self.gateway.call(CarrierOperation.GET_WAREHOUSES)
        except RemoteError as e:
            if e.http_status is None:
                raise
            return carrier_error_response(e)
        return HandlerResponse(200, {"success": True, "error": False, "data": result.body})

    async def pincode_serviceable(self, pincode: str | None) -> HandlerResponse:
        """Check prepaid serviceability of a pincode.

        Raises:
            ValidationError: If the pincode is missing, not numeric, or not
                serviceable.
        """
        if not pincode:
            raise ValidationError("pincode is required")
        if not reconcile.is_numeric_pincode(pincode):
            raise ValidationError("pincode must be a valid number")

        try:
            result = await self.gateway.call(
                CarrierOperation.PINCODE_SERVICEABLE, params={"pincode": pincode}
            )
        except RemoteError as e:
            if e.http_status is None:
                raise
            return carrier_error_response(e)

        filtered = reconcile.filter_prepaid(result.body)
        if filtered is None:
            raise ValidationError(
                f"{pincode} pincode - our courier service is not available, "
                "please change your delivery address."
            )
        return HandlerResponse(200, {"success": True, "error": False, "data": filtered})
