from typing import List, Optional

from housemate.db.store import RecordStore
from housemate.models.member import Member


class MemberRepository:
    """Member profile lookups."""

    def __init__(self, store: RecordStore):
        self.store = store

    async def create(self, member: Member) -> Member:
        record = await self.store.insert(member.to_record())
        return Member.from_record(record)

    async def get(self, member_id: str) -> Optional[Member]:
        record = await self.store.get(member_id)
        return Member.from_record(record) if record else None

    async def list_all(self) -> List[Member]:
        records = await self.store.query_by(sort_by="username", descending=False)
        return [Member.from_record(record) for record in records]
