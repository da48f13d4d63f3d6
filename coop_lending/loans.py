"""
Loan Module

Loan and payment records plus the loan lifecycle state machine:
pending -> active -> paid, or pending -> rejected. Payments are immutable,
append-only ledger entries; every derived debt figure is a fold over them.
"""

from decimal import Decimal
from datetime import datetime, timezone, date
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union, TYPE_CHECKING
from enum import Enum

from .currency import to_decimal
from .errors import InvalidAmount, InvalidLoanState, InvalidTerm
from .storage import StorageRecord

if TYPE_CHECKING:
    from .allocation import PaymentAllocation


class LoanStatus(Enum):
    """Loan lifecycle states"""
    PENDING = "pending"      # Requested by a member, awaiting review
    ACTIVE = "active"        # Approved and disbursed, accepting payments
    REJECTED = "rejected"    # Declined by an administrator (terminal)
    PAID = "paid"            # Remaining principal settled (terminal)


def as_calendar_date(value: Union[date, datetime]) -> date:
    """Drop any time-of-day component"""
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass
class Loan(StorageRecord):
    """Borrowing agreement between a member and the cooperative"""
    borrower_id: str
    principal: Decimal
    duration_months: int
    interest_rate_percent: Decimal         # Per-month rate, e.g. 10 for 10%
    purpose: str = ""
    status: LoanStatus = LoanStatus.PENDING
    start_date: Optional[date] = None      # Stamped on approval
    remaining_principal: Decimal = None    # Cached fold over principal_paid
    interest_accrued: Decimal = Decimal('0')  # Cached live interest figure
    
    def __post_init__(self):
        self.principal = to_decimal(self.principal)
        self.interest_rate_percent = to_decimal(self.interest_rate_percent)
        self.interest_accrued = to_decimal(self.interest_accrued)
        
        if self.principal <= Decimal('0'):
            raise InvalidAmount(f"Loan principal must be positive, got {self.principal}", self.id)
        if not isinstance(self.duration_months, int) or self.duration_months <= 0:
            raise InvalidTerm(f"Loan duration must be a positive number of months, got {self.duration_months}", self.id)
        if self.interest_rate_percent < Decimal('0'):
            raise InvalidAmount(f"Interest rate cannot be negative, got {self.interest_rate_percent}", self.id)
        
        if self.remaining_principal is None:
            self.remaining_principal = self.principal
        else:
            self.remaining_principal = to_decimal(self.remaining_principal)
        
        if self.remaining_principal > self.principal:
            raise InvalidAmount("Remaining principal cannot exceed the original principal", self.id)
        
        if self.start_date is not None:
            self.start_date = as_calendar_date(self.start_date)
    
    @property
    def installment_count(self) -> int:
        """Two installments (10th and 25th) per month of duration"""
        return self.duration_months * 2
    
    @property
    def total_term_interest(self) -> Decimal:
        """Simple interest for the whole term: rate% of principal per month"""
        return self.principal * (self.interest_rate_percent / Decimal('100')) * self.duration_months
    
    @property
    def total_term_debt(self) -> Decimal:
        """Principal plus total term interest"""
        return self.principal + self.total_term_interest
    
    @property
    def is_active(self) -> bool:
        """Check if loan is in active repayment"""
        return self.status == LoanStatus.ACTIVE
    
    @property
    def is_terminal(self) -> bool:
        """Rejected and paid loans accept no further transitions"""
        return self.status in (LoanStatus.REJECTED, LoanStatus.PAID)
    
    def approve(
        self,
        interest_rate_percent: Optional[Decimal] = None,
        approved_at: Optional[Union[date, datetime]] = None
    ) -> Decimal:
        """
        Move a pending loan to active
        
        Args:
            interest_rate_percent: Final rate set by the administrator; keeps
                the requested rate when omitted
            approved_at: Approval timestamp (defaults to now); becomes the
                schedule anchor
            
        Returns:
            Total term interest at the locked rate, for audit display
        """
        if self.status != LoanStatus.PENDING:
            raise InvalidLoanState(
                f"Can only approve pending loans, loan is {self.status.value}", self.id
            )
        
        if interest_rate_percent is not None:
            rate = to_decimal(interest_rate_percent)
            if rate < Decimal('0'):
                raise InvalidAmount(f"Interest rate cannot be negative, got {rate}", self.id)
            self.interest_rate_percent = rate
        
        now = datetime.now(timezone.utc)
        self.start_date = as_calendar_date(approved_at or now)
        self.status = LoanStatus.ACTIVE
        self.updated_at = now
        return self.total_term_interest
    
    def reject(self) -> None:
        """Move a pending loan to rejected"""
        if self.status != LoanStatus.PENDING:
            raise InvalidLoanState(
                f"Can only reject pending loans, loan is {self.status.value}", self.id
            )
        self.status = LoanStatus.REJECTED
        self.updated_at = datetime.now(timezone.utc)
    
    def apply_allocation(self, allocation: 'PaymentAllocation') -> None:
        """Decrement the principal cache and settle the loan when paid off"""
        if self.status != LoanStatus.ACTIVE:
            raise InvalidLoanState(
                f"Loan {self.id} is not active for payments, loan is {self.status.value}", self.id
            )
        self.remaining_principal = allocation.updated_remaining_principal
        if allocation.pays_off:
            self.status = LoanStatus.PAID
        self.updated_at = datetime.now(timezone.utc)


@dataclass(frozen=True)
class Payment:
    """
    Immutable ledger entry for funds received against a loan.
    
    penalty_paid + interest_paid + principal_paid always equals amount.
    """
    id: str
    loan_id: str
    amount: Decimal
    payment_date: date
    interest_paid: Decimal
    principal_paid: Decimal
    penalty_paid: Decimal = Decimal('0')
    created_at: Optional[datetime] = None
    
    def __post_init__(self):
        for name in ('amount', 'interest_paid', 'principal_paid', 'penalty_paid'):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        object.__setattr__(self, 'payment_date', as_calendar_date(self.payment_date))
        
        if self.amount <= Decimal('0'):
            raise InvalidAmount(f"Payment amount must be positive, got {self.amount}", self.loan_id)
        
        parts = (self.penalty_paid, self.interest_paid, self.principal_paid)
        if any(part < Decimal('0') for part in parts):
            raise ValueError("Payment components cannot be negative")
        if abs(sum(parts) - self.amount) > Decimal('0.01'):
            raise ValueError(f"Payment amount {self.amount} does not equal "
                             f"penalty {self.penalty_paid} + interest {self.interest_paid} + "
                             f"principal {self.principal_paid}")
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            'id': self.id,
            'loan_id': self.loan_id,
            'amount': str(self.amount),
            'payment_date': self.payment_date.isoformat(),
            'interest_paid': str(self.interest_paid),
            'principal_paid': str(self.principal_paid),
            'penalty_paid': str(self.penalty_paid),
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Payment':
        """Create instance from dictionary"""
        created_at = data.get('created_at')
        return cls(
            id=data['id'],
            loan_id=data['loan_id'],
            amount=Decimal(data['amount']),
            payment_date=date.fromisoformat(data['payment_date']),
            interest_paid=Decimal(data['interest_paid']),
            principal_paid=Decimal(data['principal_paid']),
            penalty_paid=Decimal(data.get('penalty_paid', '0')),
            created_at=datetime.fromisoformat(created_at) if created_at else None
        )
