"""Unit tests for MongoEntityStore.

The collections are replaced by mocks; these tests check the queries the
store issues and how driver errors surface, not MongoDB itself.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError

from shipway_proxy.exceptions import StoreError
from shipway_proxy.models import OrderRecord
from shipway_proxy.storage.mongo import MongoEntityStore, guarded_filter

OID = ObjectId("65a1b2c3d4e5f60718293a4b")


@pytest.fixture
def store():
    mongo = MongoEntityStore(MagicMock(), "SHIPWAY_SERVICE")
    mongo.orders = MagicMock()
    mongo.warehouses = MagicMock()
    return mongo


class TestGuardedFilter:
    def test_plain(self):
        assert guarded_filter(OID) == {"_id": OID}

    def test_unless_present(self):
        assert guarded_filter(OID, unless_present="manifest_response") == {
            "_id": OID,
            "manifest_response": None,
        }

    def test_unless_succeeded(self):
        assert guarded_filter(OID, unless_succeeded="onhold_response") == {
            "_id": OID,
            "onhold_response.success": {"$ne": True},
        }


@pytest.mark.asyncio
async def test_find_order_maps_id(store):
    store.orders.find_one = AsyncMock(return_value={"_id": OID, "order_id": "A1", "status_message": "Pushed"})

    record = await store.find_order("A1")

    assert record.record_id == str(OID)
    assert record.status_message == "Pushed"
    query, = store.orders.find_one.call_args.args
    assert query == {"order_id": "A1"}
    assert store.orders.find_one.call_args.kwargs["sort"] == [("created_at", -1)]


@pytest.mark.asyncio
async def test_find_order_by_awb_query(store):
    store.orders.find_one = AsyncMock(return_value=None)

    assert await store.find_order_by_awb("1234") is None
    store.orders.find_one.assert_awaited_once_with({"awb_response.AWB": "1234"})


@pytest.mark.asyncio
async def test_update_order_uses_guard(store):
    store.orders.update_one = AsyncMock(return_value=SimpleNamespace(matched_count=1))

    updated = await store.update_order(str(OID), {"status_message": "Onhold"}, unless_succeeded="onhold_response")

    assert updated is True
    query, update = store.orders.update_one.call_args.args
    assert query == {"_id": OID, "onhold_response.success": {"$ne": True}}
    assert update["$set"]["status_message"] == "Onhold"
    assert "updated_at" in update["$set"]


@pytest.mark.asyncio
async def test_update_order_guard_blocked(store):
    store.orders.update_one = AsyncMock(return_value=SimpleNamespace(matched_count=0))
    assert await store.update_order(str(OID), {"x": 1}, unless_present="x") is False


@pytest.mark.asyncio
async def test_update_order_invalid_id(store):
    store.orders.update_one = AsyncMock()
    assert await store.update_order("not-an-object-id", {"x": 1}) is False
    store.orders.update_one.assert_not_called()


@pytest.mark.asyncio
async def test_insert_order_returns_record_id(store):
    store.orders.insert_one = AsyncMock(return_value=SimpleNamespace(inserted_id=OID))

    stored = await store.insert_order(OrderRecord(order_id="A1"))

    assert stored.record_id == str(OID)
    document, = store.orders.insert_one.call_args.args
    assert "record_id" not in document


@pytest.mark.asyncio
async def test_driver_errors_become_store_errors(store):
    store.orders.find_one = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))

    with pytest.raises(StoreError) as exc_info:
        await store.find_order("A1")

    assert isinstance(exc_info.value.cause, ServerSelectionTimeoutError)
    assert exc_info.value.status_code == 500
