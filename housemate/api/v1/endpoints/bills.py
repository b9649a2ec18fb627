from typing import List
from fastapi import APIRouter, Depends
from housemate.api.deps import failure_responses, get_ledger_service, to_http_exception
from housemate.core.auth import get_current_member
from housemate.core.exceptions import LedgerError
from housemate.models.member import Member
from housemate.schemas.bill import (
    BillCreate,
    BillResponse,
    BillUpdate,
    PayerRemovalResponse,
)
from housemate.schemas.settlement import SettleAllResponse, SettlementResponse
from housemate.services.ledger_service import LedgerService

router = APIRouter()

@router.get("/", response_model=List[BillResponse])
async def list_bills(
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """List live bills the current member created, is owed or owes a share of"""
    try:
        bills = await ledger.list_bills(current_member.id)
    except LedgerError as exc:
        raise to_http_exception(exc)
    return [BillResponse.from_bill(bill) for bill in bills]

@router.post("/", response_model=BillResponse)
async def create_bill(
    bill_in: BillCreate,
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Create a bill. The creator joins the payers unless include_creator is false"""
    payers = list(bill_in.payers)
    if bill_in.include_creator and current_member.id not in payers:
        payers.append(current_member.id)

    try:
        bill = await ledger.create_bill(
            creator=current_member.id,
            title=bill_in.title,
            amount=bill_in.amount,
            payee=bill_in.payee or current_member.id,
            payers=payers,
            due_date=bill_in.due_date,
            notes=bill_in.notes,
        )
    except LedgerError as exc:
        raise to_http_exception(exc)
    return BillResponse.from_bill(bill, client_id=bill_in.client_id)

@router.post("/settle-all/{counterparty_id}", response_model=SettleAllResponse)
async def settle_all_for_counterparty(
    counterparty_id: str,
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Settle the counterparty's share on every bill the current member created"""
    try:
        result = await ledger.settle_all_for_counterparty(current_member.id, counterparty_id)
    except LedgerError as exc:
        raise to_http_exception(exc)
    return SettleAllResponse(
        settled=[SettlementResponse.from_settlement(s) for s in result.succeeded],
        failed=failure_responses(result.failed),
    )

@router.get("/{bill_id}", response_model=BillResponse)
async def get_bill(
    bill_id: str,
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Get a bill by ID"""
    try:
        bill = await ledger.get_visible_bill(bill_id, current_member.id)
    except LedgerError as exc:
        raise to_http_exception(exc)
    return BillResponse.from_bill(bill)

@router.patch("/{bill_id}", response_model=BillResponse)
async def update_bill(
    bill_id: str,
    bill_in: BillUpdate,
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Edit a bill (creator only)"""
    try:
        bill = await ledger.update_bill(
            bill_id,
            current_member.id,
            bill_in.model_dump(exclude_unset=True),
        )
    except LedgerError as exc:
        raise to_http_exception(exc)
    return BillResponse.from_bill(bill)

@router.delete("/{bill_id}")
async def delete_bill(
    bill_id: str,
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Delete a bill regardless of remaining payers (creator only)"""
    try:
        await ledger.delete_bill(bill_id, current_member.id)
    except LedgerError as exc:
        raise to_http_exception(exc)
    return {"message": "Bill deleted successfully"}

@router.delete("/{bill_id}/payers/{payer_id}", response_model=PayerRemovalResponse)
async def remove_payer(
    bill_id: str,
    payer_id: str,
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Remove a payer; the bill is deleted when its last payer goes"""
    try:
        bill = await ledger.remove_payer(bill_id, current_member.id, payer_id)
    except LedgerError as exc:
        raise to_http_exception(exc)
    return PayerRemovalResponse(
        bill_id=bill_id,
        payer_id=payer_id,
        bill_deleted=bill is None,
        bill=BillResponse.from_bill(bill) if bill else None,
    )

@router.post("/{bill_id}/payers/{payer_id}/settle", response_model=SettlementResponse)
async def settle_payer_share(
    bill_id: str,
    payer_id: str,
    current_member: Member = Depends(get_current_member),
    ledger: LedgerService = Depends(get_ledger_service)
):
    """Archive one payer's share of a bill (creator only)"""
    try:
        settlement = await ledger.settle_payer_share(bill_id, current_member.id, payer_id)
    except LedgerError as exc:
        raise to_http_exception(exc)
    return SettlementResponse.from_settlement(settlement)
