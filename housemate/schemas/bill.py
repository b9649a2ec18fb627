from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, computed_field

from housemate.models.bill import Bill
from housemate.utils import money


class BillCreate(BaseModel):
    """Request body to create a bill."""
    title: str
    amount: Decimal
    payers: List[str] = []
    payee: Optional[str] = None  # defaults to the creator
    due_date: Optional[date] = None
    notes: Optional[str] = None
    include_creator: bool = True
    client_id: Optional[str] = None  # caller's temporary id, echoed back


class BillUpdate(BaseModel):
    """Request body to edit a bill. Only the fields sent are changed."""
    title: Optional[str] = None
    amount: Optional[Decimal] = None
    payee: Optional[str] = None
    payers: Optional[List[str]] = None
    due_date: Optional[date] = None
    notes: Optional[str] = None


class BillResponse(BaseModel):
    id: str
    title: str
    amount: Decimal
    payee: str
    payers: List[str]
    created_by: str
    due_date: date
    notes: Optional[str] = None
    created_at: datetime
    client_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def per_person_share(self) -> Decimal:
        return money.per_person_share(self.amount, len(self.payers))

    @classmethod
    def from_bill(cls, bill: Bill, client_id: Optional[str] = None) -> "BillResponse":
        return cls.model_validate({**bill.model_dump(), "client_id": client_id})


class PayerRemovalResponse(BaseModel):
    bill_id: str
    payer_id: str
    bill_deleted: bool
    bill: Optional[BillResponse] = None


class BulkFailureResponse(BaseModel):
    item_id: Optional[str] = None
    error: str
    detail: str
