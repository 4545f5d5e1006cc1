"""Entity store adapters for the Shipway proxy.

This package provides the document store that records order and warehouse
state. All adapters implement the EntityStore protocol defined in base.py.

Available Adapters:
    - MemoryEntityStore: In-memory storage with asyncio concurrency
    - MongoEntityStore: MongoDB storage through the pymongo async client
"""

from shipway_proxy.storage.base import EntityStore
from shipway_proxy.storage.memory import MemoryEntityStore
from shipway_proxy.storage.mongo import MongoEntityStore

__all__ = [
    "EntityStore",
    "MemoryEntityStore",
    "MongoEntityStore",
]
