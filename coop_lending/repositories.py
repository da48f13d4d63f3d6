"""
Repository Module

Storage-backed repositories for loans, payments and contributions. The
engine never touches storage directly; the LoanManager receives these
repositories and persists the engine's results through them.
"""

from decimal import Decimal
from datetime import date, datetime
from typing import Dict, List, Optional

from .loans import Loan, LoanStatus, Payment
from .storage import StorageInterface
from .treasury import Contribution, ContributionStatus, ContributionType


def _ledger_order(payment: Payment):
    return (payment.payment_date, payment.created_at.isoformat() if payment.created_at else "")


class LoanRepository:
    """Loan records keyed by loan ID"""
    
    def __init__(self, storage: StorageInterface, table_name: str = "loans"):
        self.storage = storage
        self.table_name = table_name
    
    def save(self, loan: Loan) -> None:
        """Insert or update a loan"""
        self.storage.save(self.table_name, loan.id, loan.to_dict())
    
    def get(self, loan_id: str) -> Optional[Loan]:
        """Get loan by ID"""
        data = self.storage.load(self.table_name, loan_id)
        if data:
            return self._loan_from_dict(data)
        return None
    
    def list_all(self) -> List[Loan]:
        """All loans, oldest request first"""
        loans = [self._loan_from_dict(data) for data in self.storage.load_all(self.table_name)]
        loans.sort(key=lambda loan: loan.created_at)
        return loans
    
    def find_by_status(self, status: LoanStatus) -> List[Loan]:
        """Loans currently in the given status"""
        loans = [
            self._loan_from_dict(data)
            for data in self.storage.find(self.table_name, {"status": status.value})
        ]
        loans.sort(key=lambda loan: loan.created_at)
        return loans
    
    def find_by_borrower(self, borrower_id: str) -> List[Loan]:
        """Loans requested by one member"""
        loans = [
            self._loan_from_dict(data)
            for data in self.storage.find(self.table_name, {"borrower_id": borrower_id})
        ]
        loans.sort(key=lambda loan: loan.created_at)
        return loans
    
    def _loan_from_dict(self, data: Dict) -> Loan:
        """Convert dictionary to loan"""
        start_date = data.get('start_date')
        return Loan(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            borrower_id=data['borrower_id'],
            principal=Decimal(data['principal']),
            duration_months=int(data['duration_months']),
            interest_rate_percent=Decimal(data['interest_rate_percent']),
            purpose=data.get('purpose', ''),
            status=LoanStatus(data['status']),
            start_date=date.fromisoformat(start_date) if start_date else None,
            remaining_principal=Decimal(data['remaining_principal']),
            interest_accrued=Decimal(data.get('interest_accrued', '0'))
        )


class PaymentRepository:
    """Append-only payment log"""
    
    def __init__(self, storage: StorageInterface, table_name: str = "payments"):
        self.storage = storage
        self.table_name = table_name
    
    def append(self, payment: Payment) -> None:
        """Record a new payment; existing entries are never overwritten"""
        if self.storage.exists(self.table_name, payment.id):
            raise ValueError(f"Payment {payment.id} already recorded; payments are immutable")
        self.storage.save(self.table_name, payment.id, payment.to_dict())
    
    def get(self, payment_id: str) -> Optional[Payment]:
        """Get payment by ID"""
        data = self.storage.load(self.table_name, payment_id)
        if data:
            return Payment.from_dict(data)
        return None
    
    def for_loan(self, loan_id: str) -> List[Payment]:
        """Payment history for a loan in ledger order"""
        payments = [
            Payment.from_dict(data)
            for data in self.storage.find(self.table_name, {"loan_id": loan_id})
        ]
        payments.sort(key=_ledger_order)
        return payments
    
    def list_all(self) -> List[Payment]:
        """Every payment across all loans"""
        payments = [Payment.from_dict(data) for data in self.storage.load_all(self.table_name)]
        payments.sort(key=_ledger_order)
        return payments


class ContributionRepository:
    """Member equity deposits"""
    
    def __init__(self, storage: StorageInterface, table_name: str = "contributions"):
        self.storage = storage
        self.table_name = table_name
    
    def save(self, contribution: Contribution) -> None:
        """Insert or update a contribution"""
        self.storage.save(self.table_name, contribution.id, contribution.to_dict())
    
    def get(self, contribution_id: str) -> Optional[Contribution]:
        """Get contribution by ID"""
        data = self.storage.load(self.table_name, contribution_id)
        if data:
            return self._contribution_from_dict(data)
        return None
    
    def list_all(self) -> List[Contribution]:
        """All contributions by date"""
        contributions = [
            self._contribution_from_dict(data) for data in self.storage.load_all(self.table_name)
        ]
        contributions.sort(key=lambda c: c.contribution_date)
        return contributions
    
    def _contribution_from_dict(self, data: Dict) -> Contribution:
        """Convert dictionary to contribution"""
        return Contribution(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            member_id=data['member_id'],
            amount=Decimal(data['amount']),
            contribution_date=date.fromisoformat(data['contribution_date']),
            contribution_type=ContributionType(data['contribution_type']),
            status=ContributionStatus(data['status'])
        )
