import asyncio
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from housemate.core.auth import create_access_token
from housemate.db.session import RecordStores, get_stores, memory_stores
from housemate.main import app
from housemate.models.member import Member
from housemate.repositories.bill_repo import BillRepository
from housemate.repositories.member_repo import MemberRepository
from housemate.repositories.settlement_repo import SettlementRepository
from housemate.services.ledger_service import LedgerService

HOUSEHOLD = ["alice", "bob", "carol", "dave"]


async def seed_members(stores: RecordStores) -> dict[str, Member]:
    repo = MemberRepository(stores.members)
    members = {}
    for name in HOUSEHOLD:
        members[name] = await repo.create(Member(username=name.capitalize()))
    return members


def make_ledger(stores: RecordStores) -> LedgerService:
    return LedgerService(
        BillRepository(stores.bills),
        SettlementRepository(stores.settlements),
    )


@pytest.fixture
def stores() -> RecordStores:
    """Fresh in-memory collections for each test."""
    return memory_stores()


@pytest.fixture
def ledger(stores) -> LedgerService:
    return make_ledger(stores)


@pytest_asyncio.fixture
async def members(stores) -> dict[str, Member]:
    return await seed_members(stores)


@pytest_asyncio.fixture
async def ids(members) -> dict[str, str]:
    """Member ids by first name."""
    return {name: member.id for name, member in members.items()}


@pytest_asyncio.fixture
async def three_way_bill(ledger, ids):
    """Alice's 100.00 bill split between Alice, Bob and Carol."""
    return await ledger.create_bill(
        creator=ids["alice"],
        title="Electricity",
        amount=Decimal("100.00"),
        payee=ids["alice"],
        payers=[ids["alice"], ids["bob"], ids["carol"]],
        due_date=date(2026, 10, 1),
    )


@pytest.fixture
def api_stores() -> tuple[RecordStores, dict[str, Member]]:
    stores = memory_stores()
    members = asyncio.run(seed_members(stores))
    return stores, members


@pytest.fixture
def client(api_stores):
    """TestClient wired to in-memory stores. Lifespan is not run."""
    stores, _ = api_stores
    app.dependency_overrides[get_stores] = lambda: stores
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(api_stores):
    """Bearer headers by first name."""
    _, members = api_stores
    return {
        name: {"Authorization": f"Bearer {create_access_token(member.id)}"}
        for name, member in members.items()
    }


@pytest.fixture
def member_ids(api_stores) -> dict[str, str]:
    _, members = api_stores
    return {name: member.id for name, member in members.items()}
