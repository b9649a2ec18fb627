from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any, AsyncIterator, Iterable, List, Optional

import structlog
from bson import ObjectId
from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorClientSession,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from housemate.core.config import settings
from housemate.core.exceptions import StoreError
from housemate.db.store import Record, RecordStore

logger = structlog.get_logger(__name__)

# Session of the transaction running in the current task, if any
_active_session: ContextVar[Optional[AsyncIOMotorClientSession]] = ContextVar(
    "housemate_mongo_session", default=None
)


class MongoDatabase:
    """MongoDB connection manager."""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

mongodb = MongoDatabase()


def _to_key(record_id: Any) -> Any:
    """Stored ids are ObjectIds whenever the string form allows it."""
    if isinstance(record_id, str) and ObjectId.is_valid(record_id):
        return ObjectId(record_id)
    return record_id


def _from_doc(doc: Optional[dict]) -> Optional[Record]:
    if doc is None:
        return None
    doc["id"] = str(doc.pop("_id"))
    return doc


class MongoRecordStore(RecordStore):
    """
    RecordStore over one motor collection.

    With `transactional` set, `transaction()` opens a client session and a
    multi-document transaction (this needs a replica set). Every call made
    inside it, on any MongoRecordStore of the same client, joins it.
    """

    def __init__(self, collection: AsyncIOMotorCollection, transactional: bool = False):
        self.collection = collection
        self.name = collection.name
        self.transactional = transactional

    def _fail(self, operation: str, exc: Exception) -> StoreError:
        logger.error("store_call_failed", collection=self.name, operation=operation, error=str(exc))
        return StoreError(
            f"{self.name}.{operation} failed: {exc}",
            operation=f"{self.name}.{operation}",
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        if not self.transactional or _active_session.get() is not None:
            yield
            return

        client = self.collection.database.client
        try:
            async with await client.start_session() as session:
                async with session.start_transaction():
                    token = _active_session.set(session)
                    try:
                        yield
                    finally:
                        _active_session.reset(token)
        except PyMongoError as exc:
            raise self._fail("transaction", exc) from exc

    async def insert(self, record: Record) -> Record:
        doc = dict(record)
        record_id = doc.pop("id", None)
        if record_id:
            doc["_id"] = _to_key(record_id)
        try:
            result = await self.collection.insert_one(doc, session=_active_session.get())
        except DuplicateKeyError as exc:
            logger.error("store_call_failed", collection=self.name, operation="insert", error="duplicate id")
            raise StoreError(
                f"{self.name}.insert failed: id {record_id} already exists",
                operation=f"{self.name}.insert",
            ) from exc
        except PyMongoError as exc:
            raise self._fail("insert", exc) from exc
        return _from_doc({**doc, "_id": result.inserted_id})

    async def get(self, record_id: str) -> Optional[Record]:
        try:
            doc = await self.collection.find_one(
                {"_id": _to_key(record_id)}, session=_active_session.get()
            )
        except PyMongoError as exc:
            raise self._fail("get", exc) from exc
        return _from_doc(doc)

    async def query_by(
        self,
        match: Optional[Record] = None,
        any_of: Optional[List[Record]] = None,
        sort_by: Optional[str] = None,
        descending: bool = True,
    ) -> List[Record]:
        query: dict = dict(match or {})
        if any_of:
            query["$or"] = [dict(option) for option in any_of]
        try:
            cursor = self.collection.find(query, session=_active_session.get())
            if sort_by:
                cursor = cursor.sort(sort_by, DESCENDING if descending else ASCENDING)
            docs = await cursor.to_list(None)
        except PyMongoError as exc:
            raise self._fail("query_by", exc) from exc
        return [_from_doc(doc) for doc in docs]

    async def update(self, record_id: str, fields: Record) -> Optional[Record]:
        changes = {key: value for key, value in fields.items() if key != "id"}
        try:
            doc = await self.collection.find_one_and_update(
                {"_id": _to_key(record_id)},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
                session=_active_session.get(),
            )
        except PyMongoError as exc:
            raise self._fail("update", exc) from exc
        return _from_doc(doc)

    async def delete(self, record_id: str) -> bool:
        try:
            result = await self.collection.delete_one(
                {"_id": _to_key(record_id)}, session=_active_session.get()
            )
        except PyMongoError as exc:
            raise self._fail("delete", exc) from exc
        return result.deleted_count > 0

    async def delete_many(self, record_ids: Iterable[str]) -> int:
        keys = [_to_key(record_id) for record_id in record_ids]
        if not keys:
            return 0
        try:
            result = await self.collection.delete_many(
                {"_id": {"$in": keys}}, session=_active_session.get()
            )
        except PyMongoError as exc:
            raise self._fail("delete_many", exc) from exc
        return result.deleted_count


async def connect_to_mongo() -> AsyncIOMotorDatabase:
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    await create_indexes()
    logger.info("mongo_connected", database=settings.DATABASE_NAME)
    return mongodb.db


async def disconnect_from_mongo():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
        mongodb.client = None
        mongodb.db = None
        logger.info("mongo_disconnected")


async def create_indexes():
    """Create database indexes."""
    bills = mongodb.db[settings.BILLS_COLLECTION]
    await bills.create_index("created_by")
    await bills.create_index("payers")
    await bills.create_index("payee")
    await bills.create_index([("created_at", DESCENDING)])

    settlements = mongodb.db[settings.SETTLEMENTS_COLLECTION]
    await settlements.create_index("payer_id")
    await settlements.create_index("original_bill_id")
    await settlements.create_index("bill_snapshot.created_by")
    await settlements.create_index([("archived_at", DESCENDING)])
