"""
Record store interface.

The ledger talks to persistence through keyed read/write/delete calls on a
single collection of plain dict records. Each record carries its key as a
string under "id". Backends raise StoreError for any failure of the
underlying storage; an absent record is reported as None (or a zero count),
never as an exception.
"""

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional


Record = Dict[str, Any]


class RecordStore(ABC):
    """Keyed CRUD over one collection of records."""

    name: str = ""
    transactional: bool = False

    @abstractmethod
    async def insert(self, record: Record) -> Record:
        """
        Persist a new record and return it with its durable id.

        If the record already carries an "id" it is kept, which lets a
        deleted record be recreated under its former key.
        """

    @abstractmethod
    async def get(self, record_id: str) -> Optional[Record]:
        """Return the record stored under record_id, or None."""

    @abstractmethod
    async def query_by(
        self,
        match: Optional[Record] = None,
        any_of: Optional[List[Record]] = None,
        sort_by: Optional[str] = None,
        descending: bool = True,
    ) -> List[Record]:
        """
        Return records matching every field of `match` and at least one
        of the field sets in `any_of`.

        Field names may be dotted to reach into nested records. A field
        whose stored value is a list matches when the list contains the
        wanted value.
        """

    @abstractmethod
    async def update(self, record_id: str, fields: Record) -> Optional[Record]:
        """Overwrite the given fields and return the stored record, or None."""

    @abstractmethod
    async def delete(self, record_id: str) -> bool:
        """Remove a record. Returns False if nothing was stored under the id."""

    @abstractmethod
    async def delete_many(self, record_ids: Iterable[str]) -> int:
        """Remove several records in one call and return how many went."""

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """
        Scope in which writes to this store, and to stores sharing its
        backend, commit or roll back together.

        Only meaningful when `transactional` is set. The base version runs
        the block without any atomicity.
        """
        yield
