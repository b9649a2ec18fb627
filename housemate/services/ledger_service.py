"""
LedgerService - lifecycle of bills and their settlements.

Core rules:
1. Only a bill's creator may edit, delete, settle or remove payers from it
2. A bill always has at least one payer; losing the last one deletes it
3. Settling a payer archives a single-payer snapshot, then shrinks the bill
4. Restoring a settlement rejoins the live bill, or recreates it from the
   snapshot when the bill is gone, then drops the settlement

Settle and restore each write to two collections. When the store supports
transactions both writes run inside one and a failure rolls both back.
Otherwise the archive side is always written first when settling, so a
failure midway duplicates a share instead of losing it, and is raised as
SettlementInconsistencyError.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, AsyncIterator, Dict, Generic, Iterable, List, Optional, TypeVar

import structlog
from pydantic import ValidationError as ModelValidationError

from housemate.core.exceptions import (
    AuthorizationError,
    LedgerError,
    NotFoundError,
    SettlementInconsistencyError,
    StoreError,
    ValidationError,
)
from housemate.models.bill import Bill
from housemate.models.settlement import Settlement
from housemate.repositories.bill_repo import BillRepository
from housemate.repositories.settlement_repo import SettlementRepository
from housemate.utils.money import to_decimal

logger = structlog.get_logger(__name__)

T = TypeVar("T")

EDITABLE_FIELDS = {"title", "amount", "payee", "due_date", "notes", "payers"}


@dataclass
class BulkFailure:
    item_id: Optional[str]
    error: LedgerError


@dataclass
class BulkResult(Generic[T]):
    """Outcome of a sequential bulk operation. Successful items stay committed."""
    succeeded: List[T] = field(default_factory=list)
    failed: List[BulkFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def _today() -> date:
    return datetime.now(timezone.utc).date()


def _first_error(exc: ModelValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    return f"{location}: {error.get('msg')}" if location else str(error.get("msg"))


def _validated_amount(amount: Any) -> Decimal:
    try:
        value = to_decimal(amount)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if not value.is_finite() or value <= 0:
        raise ValidationError("Amount must be a positive number")
    return value


def _validated_payers(payers: Optional[Iterable[str]]) -> List[str]:
    cleaned = [payer for payer in (payers or []) if payer]
    if not cleaned:
        raise ValidationError("A bill needs at least one payer")
    return list(dict.fromkeys(cleaned))


class LedgerService:
    """Bill and settlement operations on behalf of an acting member."""

    def __init__(self, bills: BillRepository, settlements: SettlementRepository):
        self.bills = bills
        self.settlements = settlements

    @asynccontextmanager
    async def _atomic(self) -> AsyncIterator[bool]:
        """Yield True when the writes inside share a store transaction."""
        store = self.settlements.store
        if not store.transactional:
            yield False
            return
        async with store.transaction():
            yield True

    # ===== BILLS =====

    async def create_bill(
        self,
        creator: str,
        title: str,
        amount: Any,
        payee: Optional[str],
        payers: Iterable[str],
        due_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> Bill:
        """
        Create and persist a bill.

        The payer list is taken as given; whether the creator joins it is
        decided by the caller. Returns the stored bill with its durable id.
        """
        if not creator:
            raise ValidationError("A bill needs a creator")
        if not title or not title.strip():
            raise ValidationError("Title must not be empty")
        if not payee:
            raise ValidationError("A bill needs a payee")

        try:
            bill = Bill(
                title=title,
                amount=_validated_amount(amount),
                payee=payee,
                payers=_validated_payers(payers),
                created_by=creator,
                due_date=due_date or _today(),
                notes=notes,
            )
        except ModelValidationError as exc:
            raise ValidationError(_first_error(exc)) from exc

        stored = await self.bills.insert(bill)
        logger.info(
            "bill_created",
            bill_id=stored.id,
            created_by=creator,
            amount=str(stored.amount),
            payers=len(stored.payers),
        )
        return stored

    async def get_bill(self, bill_id: str) -> Bill:
        bill = await self.bills.get(bill_id)
        if bill is None:
            raise NotFoundError("Bill", bill_id)
        return bill

    async def get_visible_bill(self, bill_id: str, member_id: str) -> Bill:
        """A bill as seen by a member: only its creator, payee and payers may read it."""
        bill = await self.get_bill(bill_id)
        if not bill.involves(member_id):
            logger.warning("bill_action_denied", bill_id=bill_id, actor=member_id, action="view")
            raise AuthorizationError("Only members on a bill may view it")
        return bill

    async def list_bills(self, member_id: str) -> List[Bill]:
        return await self.bills.list_for_member(member_id)

    async def _owned_bill(self, bill_id: str, actor: str, action: str) -> Bill:
        bill = await self.get_bill(bill_id)
        if not bill.is_creator(actor):
            logger.warning("bill_action_denied", bill_id=bill_id, actor=actor, action=action)
            raise AuthorizationError(f"Only the creator of a bill may {action} it")
        return bill

    async def update_bill(self, bill_id: str, actor: str, fields: Dict[str, Any]) -> Bill:
        """Apply creator edits. An empty resulting payer list is rejected; delete instead."""
        bill = await self._owned_bill(bill_id, actor, "edit")

        unknown = set(fields) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        if not fields:
            return bill

        changes = dict(fields)
        if "title" in changes and (not changes["title"] or not str(changes["title"]).strip()):
            raise ValidationError("Title must not be empty")
        if "amount" in changes:
            changes["amount"] = _validated_amount(changes["amount"])
        if "payee" in changes and not changes["payee"]:
            raise ValidationError("A bill needs a payee")
        if "payers" in changes:
            changes["payers"] = _validated_payers(changes["payers"])
        if "due_date" in changes and changes["due_date"] is None:
            raise ValidationError("A bill needs a due date")

        try:
            merged = Bill.model_validate({**bill.model_dump(), **changes})
        except ModelValidationError as exc:
            raise ValidationError(_first_error(exc)) from exc

        written = {name: getattr(merged, name) for name in changes}
        updated = await self.bills.update_fields(bill_id, **written)
        if updated is None:
            raise NotFoundError("Bill", bill_id)
        logger.info("bill_updated", bill_id=bill_id, actor=actor, fields=sorted(written))
        return updated

    async def remove_payer(self, bill_id: str, actor: str, payer_id: str) -> Optional[Bill]:
        """
        Drop one payer from a bill.

        Returns the shrunk bill, or None when the last payer left and the
        bill was deleted. Removing someone who is not a payer changes nothing.
        """
        bill = await self._owned_bill(bill_id, actor, "remove payers from")
        return await self._drop_payer(bill, payer_id)

    async def _drop_payer(self, bill: Bill, payer_id: str) -> Optional[Bill]:
        if not bill.has_payer(payer_id):
            return bill

        remaining = [payer for payer in bill.payers if payer != payer_id]
        if not remaining:
            await self.bills.delete(bill.id)
            logger.info("bill_deleted", bill_id=bill.id, reason="last_payer_removed")
            return None

        updated = await self.bills.set_payers(bill.id, remaining)
        if updated is None:
            raise NotFoundError("Bill", bill.id)
        logger.info("payer_removed", bill_id=bill.id, payer_id=payer_id, remaining=len(remaining))
        return updated

    async def delete_bill(self, bill_id: str, actor: str) -> None:
        """Delete a bill outright. Deleting a bill that is already gone is a no-op."""
        bill = await self.bills.get(bill_id)
        if bill is None:
            logger.info("bill_delete_skipped", bill_id=bill_id, reason="not_found")
            return
        if not bill.is_creator(actor):
            logger.warning("bill_action_denied", bill_id=bill_id, actor=actor, action="delete")
            raise AuthorizationError("Only the creator of a bill may delete it")
        await self.bills.delete(bill_id)
        logger.info("bill_deleted", bill_id=bill_id, actor=actor, reason="deleted")

    # ===== SETTLEMENT =====

    async def settle_payer_share(self, bill_id: str, actor: str, payer_id: str) -> Settlement:
        """
        Archive one payer's share of a bill.

        Order is fixed: the settlement is inserted first, then the payer is
        removed from the live bill (deleting it if they were the last one).
        If the insert fails nothing has changed. If the removal fails the
        share exists twice and SettlementInconsistencyError is raised with
        the committed settlement attached, unless both writes ran in one
        transaction, in which case the plain StoreError is raised and
        nothing was kept.

        A bill deleted between the two writes no longer owes anything, so
        the settlement stands and is returned.
        """
        bill = await self._owned_bill(bill_id, actor, "settle")
        if not bill.has_payer(payer_id):
            raise NotFoundError("Payer", payer_id)

        async with self._atomic() as atomic:
            settlement = await self.settlements.insert(Settlement.from_bill(bill, payer_id))
            await self._finish_settle(bill, payer_id, settlement, atomic)

        logger.info(
            "payer_settled",
            bill_id=bill_id,
            payer_id=payer_id,
            settlement_id=settlement.id,
            actor=actor,
            atomic=atomic,
        )
        return settlement

    async def _finish_settle(
        self, bill: Bill, payer_id: str, settlement: Settlement, atomic: bool
    ) -> None:
        bill_id = bill.id
        try:
            await self._drop_payer(bill, payer_id)
        except NotFoundError:
            logger.warning(
                "settle_bill_vanished",
                bill_id=bill_id,
                payer_id=payer_id,
                settlement_id=settlement.id,
            )
        except StoreError as exc:
            if atomic:
                raise
            logger.error(
                "settle_inconsistency",
                bill_id=bill_id,
                payer_id=payer_id,
                settlement_id=settlement.id,
                error=exc.message,
            )
            raise SettlementInconsistencyError(
                f"Settlement {settlement.id} was recorded but bill {bill_id} "
                f"still lists payer {payer_id}",
                settlement=settlement,
                bill_id=bill_id,
                cause=exc,
                committed=["insert_settlement"],
            ) from exc

    async def settle_all_for_counterparty(
        self,
        actor: str,
        counterparty_id: str,
        bills: Optional[List[Bill]] = None,
    ) -> BulkResult[Settlement]:
        """
        Settle the counterparty's share on every bill the actor created.

        Runs one settlement at a time. A failure does not undo earlier ones;
        it is recorded in the result and the loop moves on.
        """
        if bills is None:
            bills = await self.bills.list_created_by(actor)

        result: BulkResult[Settlement] = BulkResult()
        for bill in bills:
            if not bill.is_creator(actor) or not bill.has_payer(counterparty_id):
                continue
            try:
                result.succeeded.append(
                    await self.settle_payer_share(bill.id, actor, counterparty_id)
                )
            except LedgerError as exc:
                result.failed.append(BulkFailure(item_id=bill.id, error=exc))

        logger.info(
            "counterparty_settled",
            actor=actor,
            counterparty_id=counterparty_id,
            settled=len(result.succeeded),
            failed=len(result.failed),
        )
        return result

    async def list_settlements(self, member_id: str) -> List[Settlement]:
        return await self.settlements.list_for_member(member_id)

    async def _owned_settlement(self, settlement_id: str, actor: str, action: str) -> Settlement:
        settlement = await self.settlements.get(settlement_id)
        if settlement is None:
            raise NotFoundError("Settlement", settlement_id)
        if settlement.created_by != actor:
            logger.warning(
                "settlement_action_denied",
                settlement_id=settlement_id,
                actor=actor,
                action=action,
            )
            raise AuthorizationError(f"Only the creator of the bill may {action} this settlement")
        return settlement

    async def restore_settlement(self, settlement_id: str, actor: str) -> Bill:
        """
        Put a settled share back on the live bill.

        If the original bill still exists the payer rejoins it (once). If it
        was deleted it is recreated under its original id from the snapshot,
        carrying only this payer. The settlement is deleted afterwards.
        """
        settlement = await self._owned_settlement(settlement_id, actor, "restore")
        bill_id = settlement.original_bill_id
        payer_id = settlement.payer_id

        async with self._atomic() as atomic:
            bill = await self._rejoin(bill_id, payer_id)
            if bill is None:
                bill = await self.bills.insert(settlement.bill_snapshot.model_copy(update={"id": bill_id}))
                outcome = "recreated"
            else:
                outcome = "rejoined"
            await self._finish_restore(settlement, bill, outcome, atomic)

        logger.info(
            "settlement_restored",
            settlement_id=settlement_id,
            bill_id=bill.id,
            payer_id=payer_id,
            outcome=outcome,
            actor=actor,
            atomic=atomic,
        )
        return bill

    async def _finish_restore(
        self, settlement: Settlement, bill: Bill, outcome: str, atomic: bool
    ) -> None:
        settlement_id = settlement.id
        payer_id = settlement.payer_id
        try:
            await self.settlements.delete(settlement_id)
        except StoreError as exc:
            if atomic:
                raise
            logger.error(
                "restore_inconsistency",
                bill_id=bill.id,
                payer_id=payer_id,
                settlement_id=settlement_id,
                error=exc.message,
            )
            raise SettlementInconsistencyError(
                f"Bill {bill.id} was restored for payer {payer_id} but settlement "
                f"{settlement_id} could not be removed",
                settlement=settlement,
                bill_id=bill.id,
                cause=exc,
                committed=[f"{outcome}_bill"],
            ) from exc

    async def _rejoin(self, bill_id: str, payer_id: str) -> Optional[Bill]:
        bill = await self.bills.get(bill_id)
        if bill is None:
            return None
        if bill.has_payer(payer_id):
            return bill
        return await self.bills.set_payers(bill_id, [*bill.payers, payer_id])

    async def restore_all_for_payer(self, actor: str, payer_id: str) -> BulkResult[Bill]:
        """Restore, one by one, every settlement of payer_id on bills the actor created."""
        settlements = [
            settlement
            for settlement in await self.settlements.list_for_payer(payer_id)
            if settlement.created_by == actor
        ]

        result: BulkResult[Bill] = BulkResult()
        for settlement in settlements:
            try:
                result.succeeded.append(await self.restore_settlement(settlement.id, actor))
            except LedgerError as exc:
                result.failed.append(BulkFailure(item_id=settlement.id, error=exc))
        return result

    async def delete_settlement(self, settlement_id: str, actor: str) -> None:
        """Discard a settlement for good. Live bills are untouched."""
        settlement = await self.settlements.get(settlement_id)
        if settlement is None:
            logger.info("settlement_delete_skipped", settlement_id=settlement_id, reason="not_found")
            return
        if settlement.created_by != actor:
            raise AuthorizationError("Only the creator of the bill may delete this settlement")
        await self.settlements.delete(settlement_id)
        logger.info("settlement_deleted", settlement_id=settlement_id, actor=actor)

    async def bulk_delete_settlements(self, settlement_ids: Iterable[str], actor: str) -> int:
        """
        Delete several settlements in one store call.

        Every id is checked before anything is deleted: one foreign
        settlement rejects the whole batch. Unknown ids are ignored.
        """
        ids = list(dict.fromkeys(settlement_ids))
        found: List[Settlement] = []
        for settlement_id in ids:
            settlement = await self.settlements.get(settlement_id)
            if settlement is not None:
                found.append(settlement)

        foreign = [settlement.id for settlement in found if settlement.created_by != actor]
        if foreign:
            raise AuthorizationError(
                f"Only the creator of the bill may delete settlements: {', '.join(foreign)}"
            )

        deleted = await self.settlements.delete_many([settlement.id for settlement in found])
        logger.info("settlements_deleted", actor=actor, requested=len(ids), deleted=deleted)
        return deleted

    async def delete_all_settlements(self, actor: str) -> int:
        """Delete every settlement of a bill the actor created."""
        owned = await self.settlements.list_created_by(actor)
        deleted = await self.settlements.delete_many([settlement.id for settlement in owned])
        logger.info("settlements_deleted", actor=actor, requested=len(owned), deleted=deleted)
        return deleted
