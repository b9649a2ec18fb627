from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel

from housemate.models.settlement import Settlement
from housemate.schemas.bill import BillResponse, BulkFailureResponse


class SettlementResponse(BaseModel):
    id: str
    original_bill_id: str
    payer_id: str
    share: Decimal
    archived_at: datetime
    bill: BillResponse

    @classmethod
    def from_settlement(cls, settlement: Settlement) -> "SettlementResponse":
        return cls(
            id=settlement.id,
            original_bill_id=settlement.original_bill_id,
            payer_id=settlement.payer_id,
            share=settlement.settled_amount,
            archived_at=settlement.displayed_at,
            bill=BillResponse.from_bill(settlement.bill_snapshot),
        )


class SettleAllResponse(BaseModel):
    settled: List[SettlementResponse]
    failed: List[BulkFailureResponse]


class RestoreAllResponse(BaseModel):
    restored: List[BillResponse]
    failed: List[BulkFailureResponse]


class BulkDeleteRequest(BaseModel):
    settlement_ids: List[str]


class DeleteCountResponse(BaseModel):
    deleted: int


class PayerSettlementGroup(BaseModel):
    payer_id: str
    name: str
    total: Decimal
    settlements: List[SettlementResponse]


class SettlementListResponse(BaseModel):
    groups: List[PayerSettlementGroup]
    total: Decimal
