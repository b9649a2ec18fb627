from fastapi import Depends, HTTPException, status

from housemate.core.exceptions import (
    AuthorizationError,
    LedgerError,
    NotFoundError,
    SettlementInconsistencyError,
    StoreError,
    ValidationError,
)
from housemate.db.session import RecordStores, get_stores
from housemate.repositories.bill_repo import BillRepository
from housemate.repositories.member_repo import MemberRepository
from housemate.repositories.settlement_repo import SettlementRepository
from housemate.schemas.bill import BulkFailureResponse
from housemate.services.ledger_service import BulkFailure, LedgerService
from housemate.utils.naming import index_members


async def get_ledger_service(stores: RecordStores = Depends(get_stores)) -> LedgerService:
    return LedgerService(
        BillRepository(stores.bills),
        SettlementRepository(stores.settlements),
    )


async def get_member_index(stores: RecordStores = Depends(get_stores)) -> dict:
    """id -> Member for every household member, for display names."""
    return index_members(await MemberRepository(stores.members).list_all())


def to_http_exception(exc: LedgerError) -> HTTPException:
    """Map a ledger failure onto an HTTP error response."""
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=exc.message)
    if isinstance(exc, AuthorizationError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message)
    if isinstance(exc, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, SettlementInconsistencyError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": exc.message,
                "settlement_id": exc.settlement.id,
                "bill_id": exc.bill_id,
                "committed": exc.committed,
            },
        )
    if isinstance(exc, StoreError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "message": exc.message,
                "operation": exc.operation,
                "committed": exc.committed,
            },
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=exc.message)


def failure_responses(failures: list[BulkFailure]) -> list[BulkFailureResponse]:
    return [
        BulkFailureResponse(
            item_id=failure.item_id,
            error=type(failure.error).__name__,
            detail=failure.error.message,
        )
        for failure in failures
    ]
