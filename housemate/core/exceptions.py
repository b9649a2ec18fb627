"""
Ledger error taxonomy.

Every failure path of the ledger engine raises one of these. The HTTP layer
maps them to status codes; nothing below the route layer swallows them.
"""

from typing import Any, List, Optional


class LedgerError(Exception):
    """Base class for all ledger failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LedgerError):
    """Malformed input: empty title, non-positive amount, empty payer set."""


class AuthorizationError(LedgerError):
    """The actor is not allowed to perform a creator-only action."""


class NotFoundError(LedgerError):
    """A referenced bill, payer or settlement does not exist."""

    def __init__(self, kind: str, identifier: Optional[str]):
        super().__init__(f"{kind} '{identifier}' not found")
        self.kind = kind
        self.identifier = identifier


class StoreError(LedgerError):
    """
    The record store failed.

    `operation` names the store call that failed, `committed` lists the
    steps of the enclosing engine operation that were already durable
    when it did. An empty `committed` means nothing changed.
    """

    def __init__(
        self,
        message: str,
        operation: str = "",
        committed: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.operation = operation
        self.committed = list(committed or [])


class SettlementInconsistencyError(StoreError):
    """
    A two-step settle or restore stopped halfway.

    The first write is durable and the second failed, so the payer's share
    is visible both on the live bill and as a settlement. Nothing was lost;
    the duplicate has to be reported.
    """

    def __init__(
        self,
        message: str,
        settlement: Any,
        bill_id: Optional[str],
        cause: StoreError,
        committed: List[str],
    ):
        super().__init__(
            f"{message}: {cause.message}",
            operation=cause.operation,
            committed=committed,
        )
        self.settlement = settlement
        self.bill_id = bill_id
        self.cause = cause
