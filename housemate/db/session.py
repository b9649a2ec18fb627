"""Record store lifecycle and the FastAPI dependency that hands stores out."""

from dataclasses import dataclass

import structlog

from housemate.core.config import settings
from housemate.db.memory import InMemoryRecordStore
from housemate.db.mongo import MongoRecordStore, connect_to_mongo, disconnect_from_mongo
from housemate.db.store import RecordStore

logger = structlog.get_logger(__name__)


@dataclass
class RecordStores:
    bills: RecordStore
    settlements: RecordStore
    members: RecordStore


class _StoreHolder:
    stores: RecordStores | None = None

_holder = _StoreHolder()


def memory_stores() -> RecordStores:
    return RecordStores(
        bills=InMemoryRecordStore(settings.BILLS_COLLECTION),
        settlements=InMemoryRecordStore(settings.SETTLEMENTS_COLLECTION),
        members=InMemoryRecordStore(settings.MEMBERS_COLLECTION),
    )


async def open_stores() -> RecordStores:
    """Open the configured backend. Called on application startup."""
    if settings.STORE_BACKEND == "memory":
        _holder.stores = memory_stores()
    elif settings.STORE_BACKEND == "mongo":
        db = await connect_to_mongo()
        _holder.stores = RecordStores(
            bills=MongoRecordStore(db[settings.BILLS_COLLECTION], settings.MONGO_TRANSACTIONS),
            settlements=MongoRecordStore(db[settings.SETTLEMENTS_COLLECTION], settings.MONGO_TRANSACTIONS),
            members=MongoRecordStore(db[settings.MEMBERS_COLLECTION], settings.MONGO_TRANSACTIONS),
        )
    else:
        raise RuntimeError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND}")
    logger.info("record_store_ready", backend=settings.STORE_BACKEND)
    return _holder.stores


async def close_stores():
    if settings.STORE_BACKEND == "mongo":
        await disconnect_from_mongo()
    _holder.stores = None


async def get_stores() -> RecordStores:
    """Return the active record stores."""
    if _holder.stores is None:
        raise RuntimeError("Record stores are not open")
    return _holder.stores
