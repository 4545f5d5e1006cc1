"""In-memory entity store with asyncio concurrency control.

This module provides an in-memory implementation of the EntityStore
interface. Records live in dictionaries and every read-modify-write runs
under a single asyncio.Lock, which makes guarded updates atomic.

The MemoryEntityStore is suitable for:
    - Development and testing
    - Single-process deployments that do not need persistence

Records are copied on the way in and out, so callers never share mutable
state with the store.

Examples:
    Basic usage::

        from shipway_proxy.models import OrderRecord
        from shipway_proxy.storage.memory import MemoryEntityStore

        store = MemoryEntityStore()
        record = await store.insert_order(OrderRecord(order_id="A1"))

        updated = await store.update_order(
            record.record_id,
            {"onhold_response": {"success": True, "message": "Onhold"}},
            unless_succeeded="onhold_response",
        )
"""

import asyncio
import uuid
from collections.abc import Iterable
from typing import Any

from shipway_proxy.models import OrderRecord, WarehouseRecord, utc_now
from shipway_proxy.storage.base import EntityStore


class MemoryEntityStore(EntityStore):
    """In-memory entity store.

    Attributes:
        _orders: Order records by record id, in insertion order.
        _warehouses: Warehouse records by record id, in insertion order.
        _lock: Lock serializing all writes.
    """

    def __init__(self) -> None:
        self._orders: dict[str, OrderRecord] = {}
        self._warehouses: dict[str, WarehouseRecord] = {}
        self._lock = asyncio.Lock()

    def _current(self, order_id: str | int) -> OrderRecord | None:
        # Newest by created_at; later insertion wins a tie
        current: OrderRecord | None = None
        for record in self._orders.values():
            if record.order_id != order_id:
                continue
            if current is None or record.created_at >= current.created_at:
                current = record
        return current

    async def find_order(self, order_id: str | int) -> OrderRecord | None:
        record = self._current(order_id)
        return record.model_copy(deep=True) if record else None

    async def find_orders(self, order_ids: Iterable[str | int]) -> dict[str | int, OrderRecord]:
        found: dict[str | int, OrderRecord] = {}
        for order_id in order_ids:
            record = self._current(order_id)
            if record is not None:
                found[order_id] = record.model_copy(deep=True)
        return found

    async def find_order_by_awb(self, awb: str | int) -> OrderRecord | None:
        for record in self._orders.values():
            if record.awb is not None and record.awb == awb:
                return record.model_copy(deep=True)
        return None

    async def list_orders(self) -> list[OrderRecord]:
        return [record.model_copy(deep=True) for record in self._orders.values()]

    async def insert_order(self, record: OrderRecord) -> OrderRecord:
        async with self._lock:
            record_id = uuid.uuid4().hex
            stored = record.model_copy(deep=True, update={"record_id": record_id})
            self._orders[record_id] = stored
            return stored.model_copy(deep=True)

    async def update_order(
        self,
        record_id: str,
        fields: dict[str, Any],
        *,
        unless_present: str | None = None,
        unless_succeeded: str | None = None,
    ) -> bool:
        async with self._lock:
            record = self._orders.get(record_id)
            if record is None:
                return False

            # Guards are checked under the lock so the write is conditional
            if unless_present is not None and record.has_outcome(unless_present):
                return False
            if unless_succeeded is not None and record.succeeded(unless_succeeded):
                return False

            self._orders[record_id] = self._apply(record, fields)
            return True

    async def update_orders(
        self,
        record_ids: Iterable[str],
        fields: dict[str, Any],
        *,
        unless_present: str | None = None,
    ) -> int:
        updated = 0
        for record_id in record_ids:
            if await self.update_order(record_id, fields, unless_present=unless_present):
                updated += 1
        return updated

    async def find_warehouse(self, signature: dict[str, Any]) -> WarehouseRecord | None:
        for record in self._warehouses.values():
            if all(getattr(record, name) == value for name, value in signature.items()):
                return record.model_copy(deep=True)
        return None

    async def insert_warehouse(self, record: WarehouseRecord) -> WarehouseRecord:
        async with self._lock:
            record_id = uuid.uuid4().hex
            stored = record.model_copy(deep=True, update={"record_id": record_id})
            self._warehouses[record_id] = stored
            return stored.model_copy(deep=True)

    async def update_warehouse(self, record_id: str, fields: dict[str, Any]) -> bool:
        async with self._lock:
            record = self._warehouses.get(record_id)
            if record is None:
                return False
            self._warehouses[record_id] = self._apply(record, fields)
            return True

    @staticmethod
    def _apply(record: Any, fields: dict[str, Any]) -> Any:
        """Return a copy of ``record`` with ``fields`` set and ``updated_at`` bumped."""
        data = record.model_dump()
        data.update(fields)
        data["updated_at"] = utc_now()
        return type(record).model_validate(data)
