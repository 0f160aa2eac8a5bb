"""
Order storage for OrderService
MongoDB-backed store with an in-memory fallback
"""
import copy
import logging
import threading
import time
from typing import List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import PyMongoError

from common.ids import current_millis, generate_order_id
from .config import DEFAULT_DATABASE

logger = logging.getLogger(__name__)


class StorageUnavailableError(Exception):
    """Raised when the database is unreachable and fallback is disabled"""


class OrderStore:
    """Interface shared by the MongoDB store and the in-memory fallback"""

    backend = 'base'

    def find_all(self) -> List[dict]:
        """All orders, newest first"""
        raise NotImplementedError

    def find_by_id(self, order_id: str) -> Optional[dict]:
        raise NotImplementedError

    def create(self, order: dict) -> dict:
        """Persist an order and return it with its assigned _id"""
        raise NotImplementedError

    def update_status(self, order_id: str, status: str) -> Optional[dict]:
        """Set the status of an order, returning the updated order or None"""
        raise NotImplementedError

    def delete(self, order_id: str) -> bool:
        raise NotImplementedError

    def is_connected(self) -> bool:
        return False


class InMemoryOrderStore(OrderStore):
    """
    Fallback store used when MongoDB is unreachable.
    Orders live in process memory and are lost on restart.
    """

    backend = 'memory'

    def __init__(self):
        self.orders: List[dict] = []
        self.lock = threading.Lock()
        self._last_millis = 0

    def _next_id(self) -> str:
        # bump the timestamp so two creates in the same millisecond get distinct ids
        millis = max(current_millis(), self._last_millis + 1)
        self._last_millis = millis
        return generate_order_id(millis)

    def _index_of(self, order_id: str) -> int:
        for idx, order in enumerate(self.orders):
            if str(order['_id']) == str(order_id):
                return idx
        return -1

    def find_all(self) -> List[dict]:
        with self.lock:
            orders = [copy.deepcopy(order) for order in self.orders]
        return sorted(orders, key=lambda o: o['date'], reverse=True)

    def find_by_id(self, order_id: str) -> Optional[dict]:
        with self.lock:
            idx = self._index_of(order_id)
            if idx == -1:
                return None
            return copy.deepcopy(self.orders[idx])

    def create(self, order: dict) -> dict:
        with self.lock:
            created = {"_id": self._next_id(), **copy.deepcopy(order)}
            self.orders.append(created)
            return copy.deepcopy(created)

    def update_status(self, order_id: str, status: str) -> Optional[dict]:
        with self.lock:
            idx = self._index_of(order_id)
            if idx == -1:
                return None
            self.orders[idx] = {**self.orders[idx], "status": status}
            return copy.deepcopy(self.orders[idx])

    def delete(self, order_id: str) -> bool:
        with self.lock:
            idx = self._index_of(order_id)
            if idx == -1:
                return False
            del self.orders[idx]
            return True


def _object_id(order_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(order_id)
    except (InvalidId, TypeError):
        return None


class MongoOrderStore(OrderStore):
    """Store backed by the `orders` collection in MongoDB"""

    backend = 'mongo'

    def __init__(self, collection, client):
        self.collection = collection
        self.client = client

    @classmethod
    def connect(cls, uri: str, timeout_ms: int = 2000) -> 'MongoOrderStore':
        """Open a client and ping the server, raising PyMongoError if unreachable"""
        client = MongoClient(uri, serverSelectionTimeoutMS=timeout_ms)
        try:
            client.admin.command('ping')
        except PyMongoError:
            client.close()
            raise
        db = client.get_default_database(default=DEFAULT_DATABASE)
        logger.info(f"Connected to MongoDB database '{db.name}'")
        return cls(db['orders'], client=client)

    def find_all(self) -> List[dict]:
        return list(self.collection.find().sort('date', DESCENDING))

    def find_by_id(self, order_id: str) -> Optional[dict]:
        oid = _object_id(order_id)
        if oid is None:
            return None
        return self.collection.find_one({"_id": oid})

    def create(self, order: dict) -> dict:
        document = copy.deepcopy(order)
        result = self.collection.insert_one(document)
        document['_id'] = result.inserted_id
        return document

    def update_status(self, order_id: str, status: str) -> Optional[dict]:
        oid = _object_id(order_id)
        if oid is None:
            return None
        return self.collection.find_one_and_update(
            {"_id": oid},
            {"$set": {"status": status}},
            return_document=ReturnDocument.AFTER
        )

    def delete(self, order_id: str) -> bool:
        oid = _object_id(order_id)
        if oid is None:
            return False
        return self.collection.delete_one({"_id": oid}).deleted_count == 1

    def is_connected(self) -> bool:
        try:
            self.client.admin.command('ping')
            return True
        except PyMongoError:
            return False

    def close(self):
        """Close the MongoDB client"""
        self.client.close()
        logger.info("Closed MongoDB connection")


def connect_store(settings, sleep=time.sleep) -> OrderStore:
    """
    Pick the order store once at startup.

    Tries MongoDB up to `mongo_connect_retries` times. On failure falls back
    to memory, or raises StorageUnavailableError when fallback is disabled.
    """
    last_error = None
    for attempt in range(1, settings.mongo_connect_retries + 1):
        try:
            return MongoOrderStore.connect(
                settings.mongodb_uri,
                timeout_ms=settings.mongo_connect_timeout_ms
            )
        except PyMongoError as e:
            last_error = e
            logger.warning(
                f"MongoDB connection failed ({attempt}/{settings.mongo_connect_retries}): {e}"
            )
            if attempt < settings.mongo_connect_retries:
                sleep(settings.mongo_retry_delay)

    if not settings.storage_fallback:
        raise StorageUnavailableError(f"Cannot connect to MongoDB: {last_error}")

    logger.warning("Using in-memory order storage, orders will not survive a restart")
    return InMemoryOrderStore()
