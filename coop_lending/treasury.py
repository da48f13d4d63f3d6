"""
Treasury Module

Member contributions and the cooperative's treasury position. The balance is
never stored: it is derived from the sum of flows (approved contributions in,
loan payments in, disbursed principal out).
"""

from decimal import Decimal
from datetime import date, datetime, timezone
from dataclasses import dataclass
from typing import Iterable
from enum import Enum

from .currency import to_decimal
from .errors import InvalidAmount, InvalidContributionState
from .loans import Loan, LoanStatus, Payment
from .storage import StorageRecord


class ContributionStatus(Enum):
    """Review state of a member deposit"""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ContributionType(Enum):
    """Kinds of member deposits"""
    MONTHLY_DEPOSIT = "monthly_deposit"
    ONE_TIME = "one_time"


@dataclass
class Contribution(StorageRecord):
    """Equity deposited by a member"""
    member_id: str
    amount: Decimal
    contribution_date: date
    contribution_type: ContributionType = ContributionType.MONTHLY_DEPOSIT
    status: ContributionStatus = ContributionStatus.PENDING
    
    def __post_init__(self):
        self.amount = to_decimal(self.amount)
        if self.amount <= Decimal('0'):
            raise InvalidAmount(f"Contribution amount must be positive, got {self.amount}")
    
    def approve(self) -> None:
        """Count the deposit toward member equity and the treasury"""
        if self.status != ContributionStatus.PENDING:
            raise InvalidContributionState(
                f"Contribution {self.id} already {self.status.value}", self.id
            )
        self.status = ContributionStatus.APPROVED
        self.updated_at = datetime.now(timezone.utc)
    
    def reject(self) -> None:
        """Decline a pending deposit"""
        if self.status != ContributionStatus.PENDING:
            raise InvalidContributionState(
                f"Contribution {self.id} already {self.status.value}", self.id
            )
        self.status = ContributionStatus.REJECTED
        self.updated_at = datetime.now(timezone.utc)


@dataclass(frozen=True)
class TreasuryMetrics:
    """Cooperative cash position derived from all recorded flows"""
    balance: Decimal
    total_contributions: Decimal
    total_payments: Decimal
    total_disbursed: Decimal
    total_interest_collected: Decimal
    total_principal_repaid: Decimal
    total_penalty_collected: Decimal
    active_loan_volume: Decimal


def compute_treasury_metrics(
    contributions: Iterable[Contribution],
    loans: Iterable[Loan],
    payments: Iterable[Payment]
) -> TreasuryMetrics:
    """
    Fold contributions, loans and payments into the treasury position
    
    Args:
        contributions: All member contributions (only approved ones count)
        loans: All loans (principal of active and paid loans counts as disbursed)
        payments: All loan payments
        
    Returns:
        TreasuryMetrics snapshot
    """
    zero = Decimal('0')
    loans = list(loans)
    payments = list(payments)
    
    total_contributions = sum(
        (c.amount for c in contributions if c.status == ContributionStatus.APPROVED), zero
    )
    total_payments = sum((p.amount for p in payments), zero)
    total_disbursed = sum(
        (loan.principal for loan in loans if loan.status in (LoanStatus.ACTIVE, LoanStatus.PAID)),
        zero
    )
    
    return TreasuryMetrics(
        balance=total_contributions + total_payments - total_disbursed,
        total_contributions=total_contributions,
        total_payments=total_payments,
        total_disbursed=total_disbursed,
        total_interest_collected=sum((p.interest_paid for p in payments), zero),
        total_principal_repaid=sum((p.principal_paid for p in payments), zero),
        total_penalty_collected=sum((p.penalty_paid for p in payments), zero),
        active_loan_volume=sum(
            (loan.remaining_principal for loan in loans if loan.status == LoanStatus.ACTIVE), zero
        )
    )


def member_equity(contributions: Iterable[Contribution], member_id: str) -> Decimal:
    """A member's cumulative approved contributions"""
    return sum(
        (
            c.amount for c in contributions
            if c.member_id == member_id and c.status == ContributionStatus.APPROVED
        ),
        Decimal('0')
    )
