from decimal import Decimal
from typing import List

from pydantic import BaseModel

from housemate.schemas.bill import BillResponse


class CounterpartyGroup(BaseModel):
    counterparty_id: str
    name: str
    total: Decimal
    bills: List[BillResponse]


class LedgerSummaryResponse(BaseModel):
    owed_to_me: List[CounterpartyGroup]
    owed_to_me_total: Decimal
    i_owe: List[CounterpartyGroup]
    i_owe_total: Decimal


class DateGroup(BaseModel):
    date: str
    total: Decimal
    bills: List[BillResponse]


class CreatorGroup(BaseModel):
    creator_id: str
    name: str
    total: Decimal
    bills: List[BillResponse]
