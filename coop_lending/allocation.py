"""
Payment Allocator Module

Splits an incoming payment across outstanding penalty, current-cycle
interest and principal, always exhausting the higher-priority bucket first.
"""

from decimal import Decimal
from datetime import date, datetime
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from .currency import to_decimal
from .debt import DEFAULT_POLICY, DebtState, LendingPolicy, compute_debt_state
from .errors import InvalidAmount, InvalidLoanState
from .loans import Loan, Payment


@dataclass(frozen=True)
class PaymentAllocation:
    """How one gross payment is split, and its effect on the loan"""
    gross_amount: Decimal
    penalty_paid: Decimal
    interest_paid: Decimal
    principal_paid: Decimal
    updated_remaining_principal: Decimal
    pays_off: bool


def cycle_interest_due(loan: Loan) -> Decimal:
    """Interest for the current bi-monthly cycle: half a month on the remaining principal"""
    return loan.remaining_principal * (loan.interest_rate_percent / Decimal('100')) / Decimal('2')


def allocate_payment(
    loan: Loan,
    existing_payments: Iterable[Payment],
    gross_amount: Union[Decimal, int, str],
    as_of: Optional[Union[date, datetime]] = None,
    policy: LendingPolicy = DEFAULT_POLICY,
    debt_state: Optional[DebtState] = None
) -> PaymentAllocation:
    """
    Allocate a payment: penalty first (post-term only), then interest, then principal
    
    Args:
        loan: Active loan receiving the payment
        existing_payments: Payments already recorded against the loan
        gross_amount: Amount received
        as_of: Payment day (defaults to today)
        policy: Epsilon and penalty rates
        debt_state: Precomputed debt state for the same inputs, if available
        
    Returns:
        PaymentAllocation whose three portions sum to gross_amount
        
    Raises:
        InvalidAmount: If gross_amount is not positive
        InvalidLoanState: If the loan is not active
    """
    gross_amount = to_decimal(gross_amount)
    if gross_amount <= Decimal('0'):
        raise InvalidAmount(f"Payment amount must be positive, got {gross_amount}", loan.id)
    if not loan.is_active:
        raise InvalidLoanState(
            f"Loan {loan.id} is not active for payments, loan is {loan.status.value}", loan.id
        )
    
    if debt_state is None:
        debt_state = compute_debt_state(loan, existing_payments, as_of, policy)
    
    remainder = gross_amount
    
    penalty_paid = Decimal('0')
    if debt_state.is_post_term:
        penalty_paid = min(remainder, debt_state.penalty_outstanding)
        remainder -= penalty_paid
    
    interest_paid = min(remainder, cycle_interest_due(loan))
    principal_paid = remainder - interest_paid
    
    updated_remaining = max(Decimal('0'), loan.remaining_principal - principal_paid)
    
    return PaymentAllocation(
        gross_amount=gross_amount,
        penalty_paid=penalty_paid,
        interest_paid=interest_paid,
        principal_paid=principal_paid,
        updated_remaining_principal=updated_remaining,
        pays_off=updated_remaining <= policy.epsilon
    )
