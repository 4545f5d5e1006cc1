"""MongoDB entity store.

Order records live in the ``pushorder`` collection and warehouse records in
the ``warehouse`` collection. The store-assigned ``_id`` (an ObjectId) is
exposed on records as the string ``record_id``.

Guarded updates are expressed as extra conditions in the update filter, so
the check and the write happen in one server-side operation.

Examples:
    Creating the store from configuration::

        from shipway_proxy.config import ProxyConfig
        from shipway_proxy.storage.mongo import MongoEntityStore

        store = MongoEntityStore.from_config(ProxyConfig.from_env())
        record = await store.find_order("A1")
        await store.close()
"""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, AsyncMongoClient
from pymongo.errors import PyMongoError

from shipway_proxy.config import ProxyConfig
from shipway_proxy.exceptions import StoreError
from shipway_proxy.models import OrderRecord, WarehouseRecord, utc_now
from shipway_proxy.observability.logging import get_logger
from shipway_proxy.storage.base import EntityStore

ORDERS_COLLECTION = "pushorder"
WAREHOUSES_COLLECTION = "warehouse"

logger = get_logger(__name__)


def _object_id(record_id: str) -> ObjectId | None:
    try:
        return ObjectId(record_id)
    except (InvalidId, TypeError):
        return None


def _to_fields(document: dict[str, Any]) -> dict[str, Any]:
    fields = dict(document)
    object_id = fields.pop("_id", None)
    fields["record_id"] = str(object_id) if object_id is not None else None
    return fields


def guarded_filter(
    object_id: ObjectId,
    unless_present: str | None = None,
    unless_succeeded: str | None = None,
) -> dict[str, Any]:
    """Build the update filter for a (possibly guarded) single-record write.

    Examples:
        >>> guarded_filter(oid, unless_present="manifest_response")
        {'_id': oid, 'manifest_response': None}
        >>> guarded_filter(oid, unless_succeeded="onhold_response")
        {'_id': oid, 'onhold_response.success': {'$ne': True}}
    """
    query: dict[str, Any] = {"_id": object_id}
    if unless_present is not None:
        # Matches both a missing field and an explicit null
        query[unless_present] = None
    if unless_succeeded is not None:
        query[f"{unless_succeeded}.success"] = {"$ne": True}
    return query


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as e:
        logger.error("store.operation_failed", action=action, error=str(e))
        raise StoreError(f"Database {action} failed: {e}", cause=e) from e


class MongoEntityStore(EntityStore):
    """Entity store backed by MongoDB.

    Attributes:
        client: The async MongoDB client, shared for the process lifetime.
        orders: The order records collection.
        warehouses: The warehouse records collection.
    """

    def __init__(self, client: AsyncMongoClient, db_name: str) -> None:
        self.client = client
        database = client[db_name]
        self.orders = database[ORDERS_COLLECTION]
        self.warehouses = database[WAREHOUSES_COLLECTION]

    @classmethod
    def from_config(cls, config: ProxyConfig) -> "MongoEntityStore":
        """Create a store from configuration.

        The client connects lazily on first use, so constructing the store
        never blocks.
        """
        client: AsyncMongoClient = AsyncMongoClient(config.mongo_url, tz_aware=True)
        return cls(client, config.mongo_db_name)

    async def close(self) -> None:
        """Close the underlying client."""
        await self.client.close()

    async def find_order(self, order_id: str | int) -> OrderRecord | None:
        with _store_errors("query"):
            document = await self.orders.find_one(
                {"order_id": order_id},
                sort=[("created_at", DESCENDING)],
            )
        return OrderRecord.model_validate(_to_fields(document)) if document else None

    async def find_orders(self, order_ids: Iterable[str | int]) -> dict[str | int, OrderRecord]:
        found: dict[str | int, OrderRecord] = {}
        with _store_errors("query"):
            cursor = self.orders.find({"order_id": {"$in": list(order_ids)}}).sort(
                "created_at", ASCENDING
            )
            # Oldest first, so the newest record per id is the one kept
            async for document in cursor:
                record = OrderRecord.model_validate(_to_fields(document))
                found[record.order_id] = record
        return found

    async def find_order_by_awb(self, awb: str | int) -> OrderRecord | None:
        with _store_errors("query"):
            document = await self.orders.find_one({"awb_response.AWB": awb})
        return OrderRecord.model_validate(_to_fields(document)) if document else None

    async def list_orders(self) -> list[OrderRecord]:
        with _store_errors("query"):
            return [
                OrderRecord.model_validate(_to_fields(document))
                async for document in self.orders.find()
            ]

    async def insert_order(self, record: OrderRecord) -> OrderRecord:
        with _store_errors("insert"):
            result = await self.orders.insert_one(record.to_document())
        return record.model_copy(update={"record_id": str(result.inserted_id)})

    async def update_order(
        self,
        record_id: str,
        fields: dict[str, Any],
        *,
        unless_present: str | None = None,
        unless_succeeded: str | None = None,
    ) -> bool:
        object_id = _object_id(record_id)
        if object_id is None:
            return False

        with _store_errors("update"):
            result = await self.orders.update_one(
                guarded_filter(object_id, unless_present, unless_succeeded),
                {"$set": {**fields, "updated_at": utc_now()}},
            )
        return result.matched_count == 1

    async def update_orders(
        self,
        record_ids: Iterable[str],
        fields: dict[str, Any],
        *,
        unless_present: str | None = None,
    ) -> int:
        object_ids = [oid for oid in map(_object_id, record_ids) if oid is not None]
        if not object_ids:
            return 0

        query: dict[str, Any] = {"_id": {"$in": object_ids}}
        if unless_present is not None:
            query[unless_present] = None

        with _store_errors("update"):
            result = await self.orders.update_many(
                query,
                {"$set": {**fields, "updated_at": utc_now()}},
            )
        return result.matched_count

    async def find_warehouse(self, signature: dict[str, Any]) -> WarehouseRecord | None:
        with _store_errors("query"):
            document = await self.warehouses.find_one(signature)
        return WarehouseRecord.model_validate(_to_fields(document)) if document else None

    async def insert_warehouse(self, record: WarehouseRecord) -> WarehouseRecord:
        with _store_errors("insert"):
            result = await self.warehouses.insert_one(record.to_document())
        return record.model_copy(update={"record_id": str(result.inserted_id)})

    async def update_warehouse(self, record_id: str, fields: dict[str, Any]) -> bool:
        object_id = _object_id(record_id)
        if object_id is None:
            return False

        with _store_errors("update"):
            result = await self.warehouses.update_one(
                {"_id": object_id},
                {"$set": {**fields, "updated_at": utc_now()}},
            )
        return result.matched_count == 1
