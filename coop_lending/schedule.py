"""
Schedule Generator Module

Bi-monthly installment dates: payments fall only on the 10th or the 25th.
The first installment lands in the month after the anchor (one month of
grace), snapped forward to whichever payday comes next.
"""

from decimal import Decimal
from datetime import date, datetime
from dataclasses import dataclass
from typing import List, Union
from enum import Enum

from .errors import InvalidLoanState, InvalidTerm
from .loans import Loan

FIRST_PAYDAY = 10
SECOND_PAYDAY = 25


class InstallmentStatus(Enum):
    """Repayment state of a single installment"""
    PAID = "paid"
    OVERDUE = "overdue"
    UPCOMING = "upcoming"


@dataclass(frozen=True)
class Installment:
    """One projected due date in a loan's repayment plan"""
    index: int                      # 1-based position in the schedule
    due_date: date
    principal_portion: Decimal
    interest_portion: Decimal
    total_due: Decimal
    status: InstallmentStatus = InstallmentStatus.UPCOMING


def _add_months(year: int, month: int, months: int):
    """Shift a (year, month) pair, rolling past December into the next year"""
    index = month - 1 + months
    return year + index // 12, index % 12 + 1


def first_due_date(anchor: Union[date, datetime]) -> date:
    """
    First payday for a loan anchored on the given date.
    
    Day 1-10 -> 10th of next month, day 11-25 -> 25th of next month,
    day 26+ -> 10th of the month after next.
    """
    if isinstance(anchor, datetime):
        anchor = anchor.date()
    
    if anchor.day <= FIRST_PAYDAY:
        year, month = _add_months(anchor.year, anchor.month, 1)
        return date(year, month, FIRST_PAYDAY)
    if anchor.day <= SECOND_PAYDAY:
        year, month = _add_months(anchor.year, anchor.month, 1)
        return date(year, month, SECOND_PAYDAY)
    year, month = _add_months(anchor.year, anchor.month, 2)
    return date(year, month, FIRST_PAYDAY)


def next_due_date(current: date) -> date:
    """Payday following ``current``: 10th -> 25th, 25th -> next month's 10th"""
    if current.day == FIRST_PAYDAY:
        return date(current.year, current.month, SECOND_PAYDAY)
    if current.day == SECOND_PAYDAY:
        year, month = _add_months(current.year, current.month, 1)
        return date(year, month, FIRST_PAYDAY)
    raise ValueError(f"{current.isoformat()} is not a payday")


def generate_installment_dates(anchor: Union[date, datetime], count: int) -> List[date]:
    """
    Generate the ordered bi-monthly due dates for a loan
    
    Args:
        anchor: Disbursement (approval) date; time-of-day is ignored
        count: Number of installments, normally duration_months * 2
        
    Returns:
        Strictly increasing list of ``count`` dates alternating 10th/25th
        
    Raises:
        InvalidTerm: If count is not a positive integer
    """
    if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
        raise InvalidTerm(f"Installment count must be a positive integer, got {count!r}")
    
    dates = [first_due_date(anchor)]
    while len(dates) < count:
        dates.append(next_due_date(dates[-1]))
    return dates


def build_installments(loan: Loan) -> List[Installment]:
    """
    Project the full repayment plan for an approved loan.
    
    Every installment carries an equal share of principal and of the
    simple term interest; status is left as UPCOMING for the classifier.
    """
    if loan.start_date is None:
        raise InvalidLoanState(
            f"Loan {loan.id} has no start date; only approved loans have a schedule", loan.id
        )
    
    count = loan.installment_count
    dates = generate_installment_dates(loan.start_date, count)
    
    principal_portion = loan.principal / count
    interest_portion = loan.total_term_interest / count
    total_due = loan.total_term_debt / count
    
    return [
        Installment(
            index=number,
            due_date=due_date,
            principal_portion=principal_portion,
            interest_portion=interest_portion,
            total_due=total_due
        )
        for number, due_date in enumerate(dates, start=1)
    ]
