"""
Installment Status Classifier Module

Labels each scheduled installment paid, overdue or upcoming by comparing the
running total of gross payments against the cumulative amount required.
Classification is recomputed on every call; nothing is persisted.
"""

from decimal import Decimal
from datetime import date, datetime
from dataclasses import replace
from typing import Iterable, List, Optional, Union

from .debt import DEFAULT_POLICY, DebtState, LendingPolicy
from .loans import Payment, as_calendar_date
from .schedule import Installment, InstallmentStatus


def classify_installments(
    schedule: Iterable[Installment],
    payments: Iterable[Payment],
    debt_state: DebtState,
    as_of: Optional[Union[date, datetime]] = None,
    policy: LendingPolicy = DEFAULT_POLICY
) -> List[Installment]:
    """
    Classify every installment of a schedule
    
    Args:
        schedule: Installments in due-date order
        payments: All payments recorded against the loan
        debt_state: Debt state supplying the installment amount
        as_of: Day to evaluate at (defaults to today)
        policy: Rounding tolerance
        
    Returns:
        New Installment objects with status set; inputs are untouched
    """
    as_of = as_calendar_date(as_of or date.today())
    total_paid = sum((p.amount for p in payments), Decimal('0'))
    
    classified = []
    cumulative_required = Decimal('0')
    for installment in schedule:
        cumulative_required += debt_state.installment_amount
        if total_paid >= cumulative_required - policy.epsilon:
            status = InstallmentStatus.PAID
        elif installment.due_date < as_of:
            status = InstallmentStatus.OVERDUE
        else:
            status = InstallmentStatus.UPCOMING
        classified.append(replace(installment, status=status))
    
    return classified


def summarize_statuses(installments: Iterable[Installment]) -> dict:
    """Count installments per status, e.g. for a collection-rate display"""
    counts = {status.value: 0 for status in InstallmentStatus}
    for installment in installments:
        counts[installment.status.value] += 1
    return counts
