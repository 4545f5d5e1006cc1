"""Entity store protocol for the Shipway proxy.

This module defines the interface every entity store backend implements.
The store holds two document collections: order records keyed by
``order_id`` (several documents may share one id after a resubmission) and
warehouse records keyed by their exact-match signature.

Examples:
    Using an entity store::

        from shipway_proxy.storage.base import EntityStore

        async def put_on_hold(store: EntityStore, order_id: str, outcome: dict) -> bool:
            record = await store.find_order(order_id)
            if record is None:
                return False
            return await store.update_order(
                record.record_id,
                {"onhold_response": outcome, "status_message": outcome["message"]},
                unless_succeeded="onhold_response",
            )

Guarded Updates:
    ``update_order`` and ``update_orders`` accept a guard that turns the
    write into an atomic conditional update:

    1. ``unless_present=field`` writes only when ``field`` is absent or null.
    2. ``unless_succeeded=field`` writes only when ``field.success`` is not
       ``true``.

    Two requests racing on the same order may both observe "not yet
    processed"; the guard keeps the first recorded outcome and the losing
    write reports that nothing was updated.

Error Handling:
    Implementations raise StoreError for backend failures and must not leak
    backend-specific exceptions.
"""

from collections.abc import Iterable
from typing import Any, Protocol, runtime_checkable

from shipway_proxy.models import OrderRecord, WarehouseRecord


@runtime_checkable
class EntityStore(Protocol):
    """Protocol defining the interface for entity store backends.

    All methods are async. Every update sets ``updated_at`` to the current
    time. No operation spans more than one document atomically.
    """

    async def find_order(self, order_id: str | int) -> OrderRecord | None:
        """Return the current (most recently created) record for an order id.

        Args:
            order_id: Business order identifier.

        Returns:
            The newest record with that order id, None if there is none.
        """
        ...

    async def find_orders(self, order_ids: Iterable[str | int]) -> dict[str | int, OrderRecord]:
        """Return the current record for each order id that has one.

        Args:
            order_ids: Business order identifiers.

        Returns:
            Mapping of order id to its newest record. Ids without a record
            are absent from the mapping.
        """
        ...

    async def find_order_by_awb(self, awb: str | int) -> OrderRecord | None:
        """Return the record whose ``awb_response.AWB`` equals ``awb``."""
        ...

    async def list_orders(self) -> list[OrderRecord]:
        """Return every stored order record in insertion order."""
        ...

    async def insert_order(self, record: OrderRecord) -> OrderRecord:
        """Insert a new order record.

        Returns:
            The stored record with ``record_id`` assigned.
        """
        ...

    async def update_order(
        self,
        record_id: str,
        fields: dict[str, Any],
        *,
        unless_present: str | None = None,
        unless_succeeded: str | None = None,
    ) -> bool:
        """Set fields on one order record.

        Args:
            record_id: Store-assigned id of the record.
            fields: Field values to set.
            unless_present: Only write if this field is absent or null.
            unless_succeeded: Only write if this field's ``success`` is not true.

        Returns:
            True if the record was updated, False if it does not exist or
            the guard prevented the write.
        """
        ...

    async def update_orders(
        self,
        record_ids: Iterable[str],
        fields: dict[str, Any],
        *,
        unless_present: str | None = None,
    ) -> int:
        """Set the same fields on several order records independently.

        Returns:
            The number of records updated.
        """
        ...

    async def find_warehouse(self, signature: dict[str, Any]) -> WarehouseRecord | None:
        """Return the warehouse whose signature attributes all match exactly."""
        ...

    async def insert_warehouse(self, record: WarehouseRecord) -> WarehouseRecord:
        """Insert a new warehouse record and return it with ``record_id`` set."""
        ...

    async def update_warehouse(self, record_id: str, fields: dict[str, Any]) -> bool:
        """Set fields on one warehouse record.

        Returns:
            True if the record exists and was updated.
        """
        ...
