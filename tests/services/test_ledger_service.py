"""
Tests for the ledger service.

Covers:
- Bill creation and validation
- Creator-only edits, payer removal and deletion
- Settling shares and the archived snapshot
- Restoring and deleting settlements
"""

from datetime import date
from decimal import Decimal

import pytest

from housemate.core.exceptions import AuthorizationError, NotFoundError, ValidationError


@pytest.mark.asyncio
class TestCreateBill:

    async def test_create_bill_assigns_durable_id(self, ledger, ids, stores):
        bill = await ledger.create_bill(
            creator=ids["alice"],
            title="Internet",
            amount="45.00",
            payee=ids["alice"],
            payers=[ids["bob"]],
            due_date=date(2026, 11, 1),
            notes="  ",
        )

        assert bill.id is not None
        assert bill.amount == Decimal("45.00")
        assert bill.payers == [ids["bob"]]
        assert bill.notes is None
        assert await stores.bills.get(bill.id) is not None

    async def test_create_bill_does_not_add_creator_to_payers(self, ledger, ids):
        bill = await ledger.create_bill(
            creator=ids["alice"], title="Water", amount=30, payee=ids["alice"], payers=[ids["bob"]]
        )
        assert ids["alice"] not in bill.payers

    async def test_create_bill_defaults_due_date(self, ledger, ids):
        bill = await ledger.create_bill(
            creator=ids["alice"], title="Water", amount=30, payee=ids["alice"], payers=[ids["bob"]]
        )
        assert isinstance(bill.due_date, date)

    async def test_duplicate_payers_collapse(self, ledger, ids):
        bill = await ledger.create_bill(
            creator=ids["alice"],
            title="Rent",
            amount="900",
            payee=ids["alice"],
            payers=[ids["bob"], ids["bob"], ids["carol"]],
        )
        assert bill.payers == [ids["bob"], ids["carol"]]
        assert bill.share == Decimal("450.00")

    @pytest.mark.parametrize(
        "title,amount,payee_key,payers_key",
        [
            ("", "10.00", "alice", "bob"),
            ("   ", "10.00", "alice", "bob"),
            ("Gas", "0", "alice", "bob"),
            ("Gas", "-5.00", "alice", "bob"),
            ("Gas", "ten", "alice", "bob"),
            ("Gas", "10.00", None, "bob"),
            ("Gas", "10.00", "alice", None),
        ],
    )
    async def test_create_bill_rejects_malformed_input(
        self, ledger, ids, stores, title, amount, payee_key, payers_key
    ):
        with pytest.raises(ValidationError):
            await ledger.create_bill(
                creator=ids["alice"],
                title=title,
                amount=amount,
                payee=ids[payee_key] if payee_key else None,
                payers=[ids[payers_key]] if payers_key else [],
            )
        assert len(stores.bills) == 0


@pytest.mark.asyncio
class TestUpdateBill:

    async def test_creator_can_edit_fields(self, ledger, ids, three_way_bill):
        updated = await ledger.update_bill(
            three_way_bill.id,
            ids["alice"],
            {"title": "Electricity (Oct)", "amount": "120.00", "notes": "meter read"},
        )

        assert updated.title == "Electricity (Oct)"
        assert updated.amount == Decimal("120.00")
        assert updated.notes == "meter read"
        assert updated.share == Decimal("40.00")
        assert updated.payers == three_way_bill.payers

    async def test_creator_can_replace_payers(self, ledger, ids, three_way_bill):
        updated = await ledger.update_bill(
            three_way_bill.id, ids["alice"], {"payers": [ids["dave"]]}
        )
        assert updated.payers == [ids["dave"]]

    async def test_empty_payers_rejected(self, ledger, ids, three_way_bill):
        with pytest.raises(ValidationError):
            await ledger.update_bill(three_way_bill.id, ids["alice"], {"payers": []})

        bill = await ledger.get_bill(three_way_bill.id)
        assert len(bill.payers) == 3

    async def test_non_positive_amount_rejected(self, ledger, ids, three_way_bill):
        with pytest.raises(ValidationError):
            await ledger.update_bill(three_way_bill.id, ids["alice"], {"amount": "0"})

    async def test_unknown_field_rejected(self, ledger, ids, three_way_bill):
        with pytest.raises(ValidationError):
            await ledger.update_bill(three_way_bill.id, ids["alice"], {"created_by": ids["bob"]})

    async def test_missing_bill(self, ledger, ids):
        with pytest.raises(NotFoundError):
            await ledger.update_bill("missing", ids["alice"], {"title": "x"})


@pytest.mark.asyncio
class TestRemovePayer:

    async def test_remove_one_of_several(self, ledger, ids, three_way_bill):
        bill = await ledger.remove_payer(three_way_bill.id, ids["alice"], ids["bob"])
        assert bill.payers == [ids["alice"], ids["carol"]]

    async def test_remove_absent_payer_is_noop(self, ledger, ids, three_way_bill):
        bill = await ledger.remove_payer(three_way_bill.id, ids["alice"], ids["dave"])
        assert bill.payers == three_way_bill.payers

    async def test_removing_last_payer_deletes_bill(self, ledger, ids, stores):
        bill = await ledger.create_bill(
            creator=ids["alice"], title="Snacks", amount="8.00", payee=ids["alice"], payers=[ids["bob"]]
        )

        result = await ledger.remove_payer(bill.id, ids["alice"], ids["bob"])

        assert result is None
        assert await stores.bills.get(bill.id) is None


@pytest.mark.asyncio
class TestDeleteBill:

    async def test_delete_regardless_of_payers(self, ledger, ids, three_way_bill, stores):
        await ledger.delete_bill(three_way_bill.id, ids["alice"])
        assert await stores.bills.get(three_way_bill.id) is None

    async def test_delete_missing_bill_is_tolerated(self, ledger, ids):
        await ledger.delete_bill("does-not-exist", ids["alice"])


@pytest.mark.asyncio
class TestCreatorOnly:
    """Non-creators get AuthorizationError and nothing is written."""

    async def test_update(self, ledger, ids, three_way_bill, stores):
        with pytest.raises(AuthorizationError):
            await ledger.update_bill(three_way_bill.id, ids["bob"], {"title": "Mine now"})
        assert (await ledger.get_bill(three_way_bill.id)).title == "Electricity"

    async def test_delete(self, ledger, ids, three_way_bill, stores):
        with pytest.raises(AuthorizationError):
            await ledger.delete_bill(three_way_bill.id, ids["bob"])
        assert await stores.bills.get(three_way_bill.id) is not None

    async def test_remove_payer(self, ledger, ids, three_way_bill):
        with pytest.raises(AuthorizationError):
            await ledger.remove_payer(three_way_bill.id, ids["bob"], ids["bob"])
        assert len((await ledger.get_bill(three_way_bill.id)).payers) == 3

    async def test_settle(self, ledger, ids, three_way_bill, stores):
        with pytest.raises(AuthorizationError):
            await ledger.settle_payer_share(three_way_bill.id, ids["bob"], ids["bob"])
        assert len(stores.settlements) == 0
        assert len((await ledger.get_bill(three_way_bill.id)).payers) == 3


@pytest.mark.asyncio
class TestSettlePayerShare:

    async def test_settle_one_of_several(self, ledger, ids, three_way_bill, stores):
        settlement = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["bob"])

        bill = await ledger.get_bill(three_way_bill.id)
        assert bill.payers == [ids["alice"], ids["carol"]]
        assert len(stores.settlements) == 1
        assert settlement.original_bill_id == three_way_bill.id
        assert settlement.payer_id == ids["bob"]
        assert settlement.bill_snapshot.payers == [ids["bob"]]
        assert settlement.bill_snapshot.amount == Decimal("100.00")
        assert settlement.share == Decimal("33.33")
        assert settlement.archived_at is not None
        assert settlement.id != three_way_bill.id

    async def test_settle_last_payer_deletes_bill(self, ledger, ids, stores):
        bill = await ledger.create_bill(
            creator=ids["alice"], title="Pizza", amount="24.00", payee=ids["alice"], payers=[ids["dave"]]
        )

        settlement = await ledger.settle_payer_share(bill.id, ids["alice"], ids["dave"])

        assert await stores.bills.get(bill.id) is None
        assert len(stores.settlements) == 1
        assert settlement.bill_snapshot.payers == [ids["dave"]]

    async def test_settle_every_payer_gives_independent_settlements(self, ledger, ids, three_way_bill, stores):
        for key in ("alice", "bob", "carol"):
            await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids[key])

        assert await stores.bills.get(three_way_bill.id) is None
        settlements = await ledger.list_settlements(ids["alice"])
        assert sorted(s.payer_id for s in settlements) == sorted([ids["alice"], ids["bob"], ids["carol"]])
        assert all(len(s.bill_snapshot.payers) == 1 for s in settlements)

    async def test_snapshot_ignores_later_edits(self, ledger, ids, three_way_bill):
        settlement = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["bob"])
        await ledger.update_bill(three_way_bill.id, ids["alice"], {"title": "Renamed", "amount": "1.00"})

        stored = await ledger.settlements.get(settlement.id)
        assert stored.bill_snapshot.title == "Electricity"
        assert stored.bill_snapshot.amount == Decimal("100.00")

    async def test_unknown_payer(self, ledger, ids, three_way_bill, stores):
        with pytest.raises(NotFoundError):
            await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["dave"])
        assert len(stores.settlements) == 0

    async def test_unknown_bill(self, ledger, ids):
        with pytest.raises(NotFoundError):
            await ledger.settle_payer_share("missing", ids["alice"], ids["bob"])


@pytest.mark.asyncio
async def test_end_to_end_settle_then_delete(ledger, ids, stores):
    bill = await ledger.create_bill(
        creator=ids["alice"],
        title="Groceries",
        amount=Decimal("100.00"),
        payee=ids["alice"],
        payers=["A", "B", "C"],
    )
    assert bill.share == Decimal("33.33")
    assert abs(bill.share * 3 - bill.amount) <= Decimal("0.01")

    settlement = await ledger.settle_payer_share(bill.id, ids["alice"], "A")
    assert settlement.bill_snapshot.payers == ["A"]
    assert (await ledger.get_bill(bill.id)).payers == ["B", "C"]

    await ledger.delete_bill(bill.id, ids["alice"])
    assert await stores.bills.get(bill.id) is None

    with pytest.raises(NotFoundError):
        await ledger.settle_payer_share(bill.id, ids["alice"], "B")


@pytest.mark.asyncio
class TestSettleAllForCounterparty:

    async def test_settles_every_bill_with_counterparty(self, ledger, ids, three_way_bill):
        other = await ledger.create_bill(
            creator=ids["alice"], title="Gas", amount="40.00", payee=ids["alice"], payers=[ids["bob"]]
        )
        untouched = await ledger.create_bill(
            creator=ids["alice"], title="Water", amount="20.00", payee=ids["alice"], payers=[ids["carol"]]
        )

        result = await ledger.settle_all_for_counterparty(ids["alice"], ids["bob"])

        assert result.ok
        assert sorted(s.original_bill_id for s in result.succeeded) == sorted([three_way_bill.id, other.id])
        assert not (await ledger.get_bill(three_way_bill.id)).has_payer(ids["bob"])
        assert (await ledger.get_bill(untouched.id)).payers == [ids["carol"]]

    async def test_skips_bills_created_by_others(self, ledger, ids):
        foreign = await ledger.create_bill(
            creator=ids["carol"], title="Gym", amount="30.00", payee=ids["carol"], payers=[ids["bob"]]
        )

        result = await ledger.settle_all_for_counterparty(ids["alice"], ids["bob"], bills=[foreign])

        assert result.succeeded == []
        assert (await ledger.get_bill(foreign.id)).payers == [ids["bob"]]

    async def test_reports_failures_without_rollback(self, ledger, ids, three_way_bill):
        gone = three_way_bill.model_copy(update={"id": "vanished"})

        result = await ledger.settle_all_for_counterparty(
            ids["alice"], ids["bob"], bills=[three_way_bill, gone]
        )

        assert len(result.succeeded) == 1
        assert len(result.failed) == 1
        assert result.failed[0].item_id == "vanished"
        assert isinstance(result.failed[0].error, NotFoundError)
        assert not (await ledger.get_bill(three_way_bill.id)).has_payer(ids["bob"])


@pytest.mark.asyncio
class TestRestoreSettlement:

    async def test_restore_rejoins_live_bill(self, ledger, ids, three_way_bill, stores):
        settlement = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["bob"])

        bill = await ledger.restore_settlement(settlement.id, ids["alice"])

        assert bill.id == three_way_bill.id
        assert sorted(bill.payers) == sorted(three_way_bill.payers)
        assert await stores.settlements.get(settlement.id) is None

    async def test_second_restore_is_not_found_and_payer_not_duplicated(self, ledger, ids, three_way_bill):
        settlement = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["bob"])
        await ledger.restore_settlement(settlement.id, ids["alice"])

        with pytest.raises(NotFoundError):
            await ledger.restore_settlement(settlement.id, ids["alice"])

        bill = await ledger.get_bill(three_way_bill.id)
        assert bill.payers.count(ids["bob"]) == 1

    async def test_restore_when_payer_already_back_does_not_duplicate(self, ledger, ids, three_way_bill):
        settlement = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["bob"])
        await ledger.update_bill(
            three_way_bill.id, ids["alice"], {"payers": [ids["alice"], ids["bob"], ids["carol"]]}
        )

        bill = await ledger.restore_settlement(settlement.id, ids["alice"])

        assert bill.payers.count(ids["bob"]) == 1

    async def test_restore_recreates_deleted_bill_with_single_payer(self, ledger, ids, three_way_bill, stores):
        bob_settlement = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["bob"])
        await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["carol"])
        await ledger.delete_bill(three_way_bill.id, ids["alice"])

        bill = await ledger.restore_settlement(bob_settlement.id, ids["alice"])

        assert bill.id == three_way_bill.id
        assert bill.payers == [ids["bob"]]
        assert bill.title == "Electricity"
        assert await stores.bills.get(three_way_bill.id) is not None
        assert len(stores.settlements) == 1

    async def test_restores_after_recreation_rejoin_the_same_bill(self, ledger, ids, three_way_bill):
        first = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["bob"])
        second = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["carol"])
        third = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["alice"])

        await ledger.restore_settlement(first.id, ids["alice"])
        await ledger.restore_settlement(second.id, ids["alice"])
        bill = await ledger.restore_settlement(third.id, ids["alice"])

        assert sorted(bill.payers) == sorted(three_way_bill.payers)

    async def test_restore_requires_bill_creator(self, ledger, ids, three_way_bill, stores):
        settlement = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["bob"])

        with pytest.raises(AuthorizationError):
            await ledger.restore_settlement(settlement.id, ids["bob"])
        assert await stores.settlements.get(settlement.id) is not None

    async def test_restore_all_for_payer(self, ledger, ids, three_way_bill):
        other = await ledger.create_bill(
            creator=ids["alice"], title="Gas", amount="40.00", payee=ids["alice"], payers=[ids["bob"]]
        )
        await ledger.settle_all_for_counterparty(ids["alice"], ids["bob"])

        result = await ledger.restore_all_for_payer(ids["alice"], ids["bob"])

        assert result.ok
        assert sorted(bill.id for bill in result.succeeded) == sorted([three_way_bill.id, other.id])
        assert await ledger.list_settlements(ids["bob"]) == []


@pytest.mark.asyncio
class TestDeleteSettlements:

    async def test_delete_settlement_leaves_bill_alone(self, ledger, ids, three_way_bill, stores):
        settlement = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["bob"])

        await ledger.delete_settlement(settlement.id, ids["alice"])

        assert len(stores.settlements) == 0
        assert (await ledger.get_bill(three_way_bill.id)).payers == [ids["alice"], ids["carol"]]

    async def test_delete_settlement_requires_creator(self, ledger, ids, three_way_bill, stores):
        settlement = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["bob"])
        with pytest.raises(AuthorizationError):
            await ledger.delete_settlement(settlement.id, ids["bob"])
        assert len(stores.settlements) == 1

    async def test_bulk_delete_is_all_or_nothing(self, ledger, ids, three_way_bill, stores):
        mine = await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["bob"])
        carols_bill = await ledger.create_bill(
            creator=ids["carol"], title="Gym", amount="30.00", payee=ids["carol"], payers=[ids["dave"]]
        )
        foreign = await ledger.settle_payer_share(carols_bill.id, ids["carol"], ids["dave"])

        with pytest.raises(AuthorizationError):
            await ledger.bulk_delete_settlements([mine.id, foreign.id], ids["alice"])
        assert len(stores.settlements) == 2

        deleted = await ledger.bulk_delete_settlements([mine.id, "unknown"], ids["alice"])
        assert deleted == 1
        assert len(stores.settlements) == 1

    async def test_delete_all_only_touches_own_bills(self, ledger, ids, three_way_bill, stores):
        await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["bob"])
        await ledger.settle_payer_share(three_way_bill.id, ids["alice"], ids["carol"])
        carols_bill = await ledger.create_bill(
            creator=ids["carol"], title="Gym", amount="30.00", payee=ids["carol"], payers=[ids["dave"]]
        )
        await ledger.settle_payer_share(carols_bill.id, ids["carol"], ids["dave"])

        deleted = await ledger.delete_all_settlements(ids["alice"])

        assert deleted == 2
        assert len(stores.settlements) == 1
