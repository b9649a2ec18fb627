from typing import Iterable, List, Optional

from housemate.db.store import RecordStore
from housemate.models.settlement import Settlement


class SettlementRepository:
    """Repository for archived (settled) shares."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def insert(self, settlement: Settlement) -> Settlement:
        record = await self.store.insert(settlement.to_record())
        return Settlement.from_record(record)

    async def get(self, settlement_id: str) -> Optional[Settlement]:
        record = await self.store.get(settlement_id)
        return Settlement.from_record(record) if record else None

    async def list_for_member(self, member_id: str) -> List[Settlement]:
        """Settlements where the member was the payer or created the bill, newest first."""
        records = await self.store.query_by(
            any_of=[{"payer_id": member_id}, {"bill_snapshot.created_by": member_id}],
            sort_by="archived_at",
        )
        return [Settlement.from_record(record) for record in records]

    async def list_for_payer(self, payer_id: str) -> List[Settlement]:
        records = await self.store.query_by({"payer_id": payer_id}, sort_by="archived_at")
        return [Settlement.from_record(record) for record in records]

    async def list_created_by(self, member_id: str) -> List[Settlement]:
        records = await self.store.query_by(
            {"bill_snapshot.created_by": member_id},
            sort_by="archived_at",
        )
        return [Settlement.from_record(record) for record in records]

    async def delete(self, settlement_id: str) -> bool:
        return await self.store.delete(settlement_id)

    async def delete_many(self, settlement_ids: Iterable[str]) -> int:
        return await self.store.delete_many(settlement_ids)
