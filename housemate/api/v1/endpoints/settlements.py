from fastapi import APIRouter, Depends
from housemate.api.deps import (
    failure_responses,
    get_ledger_service,
    get_member_index,
    to_http_exception,
)
from housemate.core.auth import get_current_member
from housemate.core.exceptions import LedgerError
from housemate.models.member import Member
from housemate.schemas.bill import BillResponse
from housemate.schemas.settlement import (
    BulkDeleteRequest,
    DeleteCountResponse,
    PayerSettlementGroup,
    RestoreAllResponse,
    SettlementListResponse,
    SettlementResponse,
)
from housemate.services import aggregation
from housemate.services.ledger_service import LedgerService
from housemate.utils.naming import resolve_name

router = APIRouter()

@router.get("/", response_model=SettlementListResponse)
async def list_settlements(
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service),
    member_index: dict = Depends(get_member_index)
):
    """Archived shares the current member paid or is owed, grouped by payer"""
    try:
        settlements = await ledger.list_settlements(current_member.id)
    except LedgerError as exc:
        raise to_http_exception(exc)

    groups = aggregation.group_settlements_by_payer(settlements)
    return SettlementListResponse(
        groups=[
            PayerSettlementGroup(
                payer_id=payer_id,
                name=resolve_name(payer_id, current_member.id, member_index),
                total=aggregation.settlement_total(items),
                settlements=[SettlementResponse.from_settlement(s) for s in items],
            )
            for payer_id, items in groups.items()
        ],
        total=aggregation.settlement_total(settlements),
    )

@router.post("/bulk-delete", response_model=DeleteCountResponse)
async def bulk_delete_settlements(
    request: BulkDeleteRequest,
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Delete several settlements; rejected as a whole if any is not the member's"""
    try:
        deleted = await ledger.bulk_delete_settlements(request.settlement_ids, current_member.id)
    except LedgerError as exc:
        raise to_http_exception(exc)
    return DeleteCountResponse(deleted=deleted)

@router.delete("/", response_model=DeleteCountResponse)
async def delete_all_settlements(
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Delete every settlement on bills the current member created"""
    try:
        deleted = await ledger.delete_all_settlements(current_member.id)
    except LedgerError as exc:
        raise to_http_exception(exc)
    return DeleteCountResponse(deleted=deleted)

@router.post("/restore-all/{payer_id}", response_model=RestoreAllResponse)
async def restore_all_for_payer(
    payer_id: str,
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Restore every settled share of one payer on the member's bills"""
    try:
        result = await ledger.restore_all_for_payer(current_member.id, payer_id)
    except LedgerError as exc:
        raise to_http_exception(exc)
    return RestoreAllResponse(
        restored=[BillResponse.from_bill(bill) for bill in result.succeeded],
        failed=failure_responses(result.failed),
    )

@router.post("/{settlement_id}/restore", response_model=BillResponse)
async def restore_settlement(
    settlement_id: str,
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Put a settled share back on its live bill"""
    try:
        bill = await ledger.restore_settlement(settlement_id, current_member.id)
    except LedgerError as exc:
        raise to_http_exception(exc)
    return BillResponse.from_bill(bill)

@router.delete("/{settlement_id}")
async def delete_settlement(
    settlement_id: str,
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Permanently discard a settlement"""
    try:
        await ledger.delete_settlement(settlement_id, current_member.id)
    except LedgerError as exc:
        raise to_http_exception(exc)
    return {"message": "Settlement deleted successfully"}
