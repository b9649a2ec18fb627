"""In-process record store, used for tests and STORE_BACKEND=memory."""

import copy
from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId

from housemate.core.exceptions import StoreError
from housemate.db.store import Record, RecordStore

_MISSING = object()


def _lookup(record: Record, path: str) -> Any:
    value: Any = record
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return _MISSING
        value = value[part]
    return value


def _field_matches(record: Record, path: str, wanted: Any) -> bool:
    value = _lookup(record, path)
    if value is _MISSING:
        return wanted is None
    if isinstance(value, list) and not isinstance(wanted, list):
        return wanted in value
    return value == wanted


def _matches(record: Record, match: Record) -> bool:
    return all(_field_matches(record, path, wanted) for path, wanted in match.items())


class InMemoryRecordStore(RecordStore):
    """Dict-backed collection. Records are copied on the way in and out."""

    def __init__(self, name: str = "records"):
        self.name = name
        self._records: Dict[str, Record] = {}

    async def insert(self, record: Record) -> Record:
        doc = copy.deepcopy(record)
        if not doc.get("id"):
            doc["id"] = str(ObjectId())
        elif doc["id"] in self._records:
            raise StoreError(
                f"{self.name}.insert failed: id {doc['id']} already exists",
                operation=f"{self.name}.insert",
            )
        self._records[doc["id"]] = doc
        return copy.deepcopy(doc)

    async def get(self, record_id: str) -> Optional[Record]:
        doc = self._records.get(record_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def query_by(
        self,
        match: Optional[Record] = None,
        any_of: Optional[List[Record]] = None,
        sort_by: Optional[str] = None,
        descending: bool = True,
    ) -> List[Record]:
        found = [
            doc for doc in self._records.values()
            if _matches(doc, match or {})
            and (not any_of or any(_matches(doc, option) for option in any_of))
        ]
        if sort_by:
            found.sort(key=lambda doc: str(doc.get(sort_by) or ""), reverse=descending)
        return [copy.deepcopy(doc) for doc in found]

    async def update(self, record_id: str, fields: Record) -> Optional[Record]:
        doc = self._records.get(record_id)
        if doc is None:
            return None
        doc.update(copy.deepcopy(fields))
        doc["id"] = record_id
        return copy.deepcopy(doc)

    async def delete(self, record_id: str) -> bool:
        return self._records.pop(record_id, None) is not None

    async def delete_many(self, record_ids: Iterable[str]) -> int:
        removed = 0
        for record_id in list(record_ids):
            if self._records.pop(record_id, None) is not None:
                removed += 1
        return removed

    def __len__(self) -> int:
        return len(self._records)
