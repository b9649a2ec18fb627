"""
Bill model - a live obligation split evenly among its payers.

Invariants:
- payers is non-empty and holds no duplicates
- amount is an exact Decimal, never a float
- amount / len(payers) is the per-person share every total is built from
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import Field, field_validator

from housemate.models.base import StoredModel, utcnow
from housemate.utils.money import per_person_share, to_decimal


class Bill(StoredModel):
    title: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)
    payee: str = Field(..., min_length=1)
    payers: List[str] = Field(..., min_length=1)
    created_by: str = Field(..., min_length=1)
    due_date: date
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("title")
    @classmethod
    def strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("amount", mode="before")
    @classmethod
    def exact_amount(cls, value):
        return to_decimal(value)

    @field_validator("payers")
    @classmethod
    def unique_payers(cls, value: List[str]) -> List[str]:
        return list(dict.fromkeys(value))

    @field_validator("notes")
    @classmethod
    def blank_notes_are_absent(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @property
    def share(self) -> Decimal:
        """Per-person share of this bill."""
        return per_person_share(self.amount, len(self.payers))

    def has_payer(self, member_id: str) -> bool:
        return member_id in self.payers

    def is_creator(self, member_id: Optional[str]) -> bool:
        return member_id is not None and member_id == self.created_by

    def involves(self, member_id: Optional[str]) -> bool:
        """Creator, payee or payer of this bill."""
        return member_id is not None and (
            member_id in (self.created_by, self.payee) or self.has_payer(member_id)
        )

    def snapshot_for(self, payer_id: str) -> "Bill":
        """Frozen copy of this bill narrowed to a single payer."""
        return self.model_copy(update={"payers": [payer_id]}, deep=True)
