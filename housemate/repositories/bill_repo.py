"""
BillRepository - live bills.

Turns raw store records into Bill models and back. No authorization or
lifecycle rules live here; those belong to the ledger service.
"""

from typing import Any, Iterable, List, Optional

from pydantic_core import to_jsonable_python

from housemate.db.store import RecordStore
from housemate.models.bill import Bill


class BillRepository:
    """Repository for live bills."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def insert(self, bill: Bill) -> Bill:
        """Persist a bill; the returned copy carries the durable id."""
        record = await self.store.insert(bill.to_record())
        return Bill.from_record(record)

    async def get(self, bill_id: str) -> Optional[Bill]:
        record = await self.store.get(bill_id)
        return Bill.from_record(record) if record else None

    async def list_for_member(self, member_id: str) -> List[Bill]:
        """Bills the member created, is owed or owes a share of, newest first."""
        records = await self.store.query_by(
            any_of=[{"created_by": member_id}, {"payee": member_id}, {"payers": member_id}],
            sort_by="created_at",
        )
        return [Bill.from_record(record) for record in records]

    async def list_created_by(self, member_id: str) -> List[Bill]:
        records = await self.store.query_by({"created_by": member_id}, sort_by="created_at")
        return [Bill.from_record(record) for record in records]

    async def update_fields(self, bill_id: str, **fields: Any) -> Optional[Bill]:
        """Write only the given fields. Returns None if the bill is gone."""
        record = await self.store.update(bill_id, to_jsonable_python(fields))
        return Bill.from_record(record) if record else None

    async def set_payers(self, bill_id: str, payers: Iterable[str]) -> Optional[Bill]:
        return await self.update_fields(bill_id, payers=list(payers))

    async def delete(self, bill_id: str) -> bool:
        return await self.store.delete(bill_id)
