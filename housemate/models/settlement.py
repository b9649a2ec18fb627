"""
Settlement model - one payer's archived share of one bill.

The snapshot is a self-contained copy of the bill at settlement time with
payers narrowed to exactly [payer_id]. original_bill_id is a weak
back-reference used only to rejoin the live bill on restore. Because the
narrowed snapshot has a single payer, the payer's share is recorded
separately at settlement time.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator, model_validator

from housemate.models.base import StoredModel, utcnow
from housemate.models.bill import Bill
from housemate.utils.money import to_decimal


class Settlement(StoredModel):
    original_bill_id: str
    payer_id: str
    bill_snapshot: Bill
    share: Optional[Decimal] = None
    archived_at: Optional[datetime] = Field(default_factory=utcnow)

    @field_validator("share", mode="before")
    @classmethod
    def exact_share(cls, value):
        return None if value is None else to_decimal(value)

    @model_validator(mode="after")
    def single_payer_snapshot(self) -> "Settlement":
        if self.bill_snapshot.payers != [self.payer_id]:
            raise ValueError("settlement snapshot must carry exactly its own payer")
        return self

    @property
    def created_by(self) -> str:
        return self.bill_snapshot.created_by

    @property
    def payee(self) -> str:
        return self.bill_snapshot.payee

    @property
    def settled_amount(self) -> Decimal:
        """The payer's share when settled; records without one count the snapshot amount."""
        if self.share is not None:
            return self.share
        return self.bill_snapshot.amount

    @property
    def displayed_at(self) -> datetime:
        """When the share was archived; older records fall back to the bill's creation time."""
        return self.archived_at or self.bill_snapshot.created_at

    @classmethod
    def from_bill(cls, bill: Bill, payer_id: str) -> "Settlement":
        return cls(
            original_bill_id=bill.id,
            payer_id=payer_id,
            bill_snapshot=bill.snapshot_for(payer_id),
            share=bill.share,
        )
