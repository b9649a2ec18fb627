"""
Grouped views and totals over bills and settlements.

Every total is a sum of per-person shares, never of raw bill amounts, so a
bill split four ways contributes a quarter of its amount to each of the
four totals it appears in.
"""

from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Dict, Iterable, List, Mapping

from housemate.models.bill import Bill
from housemate.models.settlement import Settlement
from housemate.utils.money import sum_shares

DATE_KEY_FORMAT = "%B %d, %Y"


class Direction(str, Enum):
    OWED_TO_ME = "owed_to_me"
    I_OWE = "i_owe"


def group_by_counterparty(
    bills: Iterable[Bill],
    self_id: str,
    direction: Direction = Direction.OWED_TO_ME,
) -> Dict[str, List[Bill]]:
    """
    Group bills by the other member involved.

    OWED_TO_ME: bills whose payee is self, filed under each payer other
    than self. I_OWE: bills self is a payer of, filed under their payee,
    skipping bills self is owed.
    """
    groups: Dict[str, List[Bill]] = defaultdict(list)
    for bill in bills:
        if direction == Direction.OWED_TO_ME:
            if bill.payee != self_id:
                continue
            for payer in bill.payers:
                if payer != self_id:
                    groups[payer].append(bill)
        else:
            if bill.payee == self_id or not bill.has_payer(self_id):
                continue
            groups[bill.payee].append(bill)
    return dict(groups)


def group_by_date(
    bills: Iterable[Bill],
    date_of: Callable[[Bill], date] = lambda bill: bill.due_date,
) -> Dict[str, List[Bill]]:
    """Group bills under a formatted calendar date, most recent date first."""
    by_day: Dict[date, List[Bill]] = defaultdict(list)
    for bill in bills:
        day = date_of(bill)
        if isinstance(day, datetime):
            day = day.date()
        by_day[day].append(bill)
    return {
        day.strftime(DATE_KEY_FORMAT): by_day[day]
        for day in sorted(by_day, reverse=True)
    }


def group_by_creator(bills: Iterable[Bill]) -> Dict[str, List[Bill]]:
    groups: Dict[str, List[Bill]] = defaultdict(list)
    for bill in bills:
        groups[bill.created_by].append(bill)
    return dict(groups)


def group_settlements_by_payer(settlements: Iterable[Settlement]) -> Dict[str, List[Settlement]]:
    groups: Dict[str, List[Settlement]] = defaultdict(list)
    for settlement in settlements:
        groups[settlement.payer_id].append(settlement)
    return dict(groups)


def group_total(bills: Iterable[Bill]) -> Decimal:
    """Sum of per-person shares over the bills."""
    return sum_shares(bill.share for bill in bills)


def grand_total(groups: Mapping[str, Iterable[Bill]]) -> Decimal:
    return sum_shares(group_total(bills) for bills in groups.values())


def creator_total(bills: Iterable[Bill], viewer_id: str) -> Decimal:
    """
    What a creator's bills mean to the viewer.

    A bill someone else created that the viewer pays into counts the
    viewer's share. Every other bill, the viewer's own included, counts in
    full.
    """
    return sum_shares(
        bill.share if bill.has_payer(viewer_id) and not bill.is_creator(viewer_id) else bill.amount
        for bill in bills
    )


def settlement_total(settlements: Iterable[Settlement]) -> Decimal:
    return sum_shares(settlement.settled_amount for settlement in settlements)
