"""
Debt Aggregator Module

Reconstructs a loan's current debt position from its static terms and the
ordered payment log: live term interest, post-term default detection and
penalty totals. Every function here is pure; identical inputs always give
identical outputs.
"""

from decimal import Decimal
from datetime import date, datetime
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .loans import Loan, LoanStatus, Payment, as_calendar_date
from .schedule import build_installments


@dataclass(frozen=True)
class LendingPolicy:
    """Numeric rules shared by the aggregator, allocator and classifier"""
    epsilon: Decimal = Decimal('0.1')                 # Rounding tolerance in currency units
    penalty_rate: Decimal = Decimal('0.10')           # Flat penalty as a fraction of principal
    penalty_surcharge_rate: Decimal = Decimal('0.10') # Monthly surcharge as a fraction of the flat penalty


DEFAULT_POLICY = LendingPolicy()


@dataclass(frozen=True)
class DebtState:
    """Debt position of a loan as of a given day"""
    remaining_principal: Decimal
    remaining_term_interest: Decimal   # Interest reached by past due dates, net of interest paid
    installment_amount: Decimal
    total_term_debt: Decimal
    is_post_term: bool
    months_overdue: int
    penalty_total: Decimal
    penalty_paid: Decimal = Decimal('0')
    penalty_outstanding: Decimal = Decimal('0')
    final_due_date: Optional[date] = None
    is_settled: bool = False           # Paid off; no further collection
    
    @property
    def total_outstanding(self) -> Decimal:
        """Everything collectible today: penalty, live interest and principal"""
        if self.is_settled:
            return Decimal('0')
        return self.penalty_outstanding + self.remaining_term_interest + self.remaining_principal


@dataclass(frozen=True)
class PrincipalReconciliation:
    """Result of recomputing the remaining-principal cache from the payment log"""
    loan_id: str
    cached: Decimal
    recomputed: Decimal
    drift: Decimal
    consistent: bool


def months_between(start: date, end: date) -> int:
    """Whole calendar months elapsed from start to end, floor-rounded"""
    if end <= start:
        return 0
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(0, months)


def compute_debt_state(
    loan: Loan,
    payments: Iterable[Payment],
    as_of: Optional[Union[date, datetime]] = None,
    policy: LendingPolicy = DEFAULT_POLICY
) -> DebtState:
    """
    Fold a loan's payment history into its current debt position
    
    Args:
        loan: Loan with its static terms and cached remaining principal
        payments: Every payment recorded against the loan
        as_of: Day to evaluate at (defaults to today)
        policy: Epsilon and penalty rates
        
    Returns:
        DebtState snapshot
    """
    as_of = as_calendar_date(as_of or date.today())
    payments = list(payments)
    
    total_term_debt = loan.total_term_debt
    installment_amount = total_term_debt / loan.installment_count
    remaining_principal = loan.remaining_principal
    
    interest_paid = sum((p.interest_paid for p in payments), Decimal('0'))
    penalty_paid = sum((p.penalty_paid for p in payments), Decimal('0'))
    
    interest_reached = Decimal('0')
    final_due_date = None
    if loan.start_date is not None:
        schedule = build_installments(loan)
        final_due_date = schedule[-1].due_date
        # A paid-off loan stops accruing
        if loan.is_active:
            for installment in schedule:
                if installment.due_date <= as_of:
                    interest_reached += installment.interest_portion
    
    remaining_term_interest = max(Decimal('0'), interest_reached - interest_paid)
    
    is_post_term = (
        loan.is_active
        and final_due_date is not None
        and as_of > final_due_date
        and remaining_principal > policy.epsilon
    )
    
    months_overdue = 0
    penalty_total = Decimal('0')
    if is_post_term:
        months_overdue = months_between(final_due_date, as_of)
        base_penalty = loan.principal * policy.penalty_rate
        # Surcharge stays simple: base penalty times elapsed months
        penalty_total = base_penalty + base_penalty * policy.penalty_surcharge_rate * months_overdue
    
    return DebtState(
        remaining_principal=remaining_principal,
        remaining_term_interest=remaining_term_interest,
        installment_amount=installment_amount,
        total_term_debt=total_term_debt,
        is_post_term=is_post_term,
        months_overdue=months_overdue,
        penalty_total=penalty_total,
        penalty_paid=penalty_paid,
        penalty_outstanding=max(Decimal('0'), penalty_total - penalty_paid),
        final_due_date=final_due_date,
        is_settled=loan.status == LoanStatus.PAID
    )


def reconcile_remaining_principal(
    loan: Loan,
    payments: Iterable[Payment],
    policy: LendingPolicy = DEFAULT_POLICY
) -> PrincipalReconciliation:
    """Recompute remaining principal from the payment log and flag cache drift"""
    principal_paid = sum((p.principal_paid for p in payments), Decimal('0'))
    recomputed = max(Decimal('0'), loan.principal - principal_paid)
    drift = loan.remaining_principal - recomputed
    return PrincipalReconciliation(
        loan_id=loan.id,
        cached=loan.remaining_principal,
        recomputed=recomputed,
        drift=drift,
        consistent=abs(drift) <= policy.epsilon
    )
