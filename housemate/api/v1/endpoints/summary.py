from typing import List
from fastapi import APIRouter, Depends
from housemate.api.deps import get_ledger_service, get_member_index, to_http_exception
from housemate.core.auth import get_current_member
from housemate.core.exceptions import LedgerError
from housemate.models.member import Member
from housemate.schemas.bill import BillResponse
from housemate.schemas.summary import (
    CounterpartyGroup,
    CreatorGroup,
    DateGroup,
    LedgerSummaryResponse,
)
from housemate.services import aggregation
from housemate.services.aggregation import Direction
from housemate.services.ledger_service import LedgerService
from housemate.utils.naming import resolve_name

router = APIRouter()


async def _member_bills(ledger: LedgerService, member: Member):
    try:
        return await ledger.list_bills(member.id)
    except LedgerError as exc:
        raise to_http_exception(exc)


def _counterparty_groups(groups: dict, self_id: str, member_index: dict) -> List[CounterpartyGroup]:
    return [
        CounterpartyGroup(
            counterparty_id=counterparty_id,
            name=resolve_name(counterparty_id, self_id, member_index),
            total=aggregation.group_total(bills),
            bills=[BillResponse.from_bill(bill) for bill in bills],
        )
        for counterparty_id, bills in groups.items()
    ]


@router.get("/", response_model=LedgerSummaryResponse)
async def get_summary(
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service),
    member_index: dict = Depends(get_member_index)
):
    """What others owe the current member and what they owe others, per person"""
    bills = await _member_bills(ledger, current_member)
    owed_to_me = aggregation.group_by_counterparty(bills, current_member.id, Direction.OWED_TO_ME)
    i_owe = aggregation.group_by_counterparty(bills, current_member.id, Direction.I_OWE)

    return LedgerSummaryResponse(
        owed_to_me=_counterparty_groups(owed_to_me, current_member.id, member_index),
        owed_to_me_total=aggregation.grand_total(owed_to_me),
        i_owe=_counterparty_groups(i_owe, current_member.id, member_index),
        i_owe_total=aggregation.grand_total(i_owe),
    )


@router.get("/by-date", response_model=List[DateGroup])
async def get_summary_by_date(
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Live bills grouped by due date, latest first"""
    bills = await _member_bills(ledger, current_member)
    return [
        DateGroup(
            date=day,
            total=aggregation.group_total(items),
            bills=[BillResponse.from_bill(bill) for bill in items],
        )
        for day, items in aggregation.group_by_date(bills).items()
    ]


@router.get("/by-creator", response_model=List[CreatorGroup])
async def get_summary_by_creator(
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service),
    member_index: dict = Depends(get_member_index)
):
    """Live bills grouped by who created them"""
    bills = await _member_bills(ledger, current_member)
    return [
        CreatorGroup(
            creator_id=creator_id,
            name=resolve_name(creator_id, current_member.id, member_index),
            total=aggregation.creator_total(items, current_member.id),
            bills=[BillResponse.from_bill(bill) for bill in items],
        )
        for creator_id, items in aggregation.group_by_creator(bills).items()
    ]
