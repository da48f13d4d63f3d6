"""
Test suite for loans module

Tests loan record validation, the pending -> active -> paid lifecycle,
rejection, and the immutable payment ledger entry.
"""

import pytest
from decimal import Decimal
from datetime import date, datetime, timezone

from coop_lending.allocation import PaymentAllocation
from coop_lending.errors import (
    ErrorKind, InvalidAmount, InvalidLoanState, InvalidTerm, LendingError, LoanNotFound
)
from coop_lending.loans import Loan, LoanStatus, Payment, as_calendar_date

from conftest import make_loan, make_payment


def allocation(remaining: str, pays_off: bool = False) -> PaymentAllocation:
    return PaymentAllocation(
        gross_amount=Decimal('1000'),
        penalty_paid=Decimal('0'),
        interest_paid=Decimal('250'),
        principal_paid=Decimal('750'),
        updated_remaining_principal=Decimal(remaining),
        pays_off=pays_off
    )


class TestLoanRecord:
    """Test loan construction and derived figures"""
    
    def test_defaults(self):
        loan = make_loan(start_date=None, status=LoanStatus.PENDING)
        
        assert loan.status == LoanStatus.PENDING
        assert loan.remaining_principal == Decimal('5000')
        assert loan.interest_accrued == Decimal('0')
        assert loan.start_date is None
        assert not loan.is_active
        assert not loan.is_terminal
    
    def test_term_figures(self):
        loan = make_loan()
        
        assert loan.installment_count == 6
        assert loan.total_term_interest == Decimal('1500')
        assert loan.total_term_debt == Decimal('6500')
    
    def test_datetime_start_date_truncated(self):
        now = datetime.now(timezone.utc)
        loan = Loan(
            id="LOAN002", created_at=now, updated_at=now, borrower_id="MEMBER001",
            principal=Decimal('1000'), duration_months=1, interest_rate_percent=Decimal('10'),
            start_date=datetime(2024, 3, 4, 15, 30, tzinfo=timezone.utc)
        )
        
        assert loan.start_date == date(2024, 3, 4)
    
    @pytest.mark.parametrize("principal", ["0", "-100"])
    def test_non_positive_principal(self, principal):
        with pytest.raises(InvalidAmount, match="principal must be positive"):
            make_loan(principal=principal)
    
    @pytest.mark.parametrize("duration", [0, -1])
    def test_non_positive_duration(self, duration):
        with pytest.raises(InvalidTerm, match="duration must be a positive"):
            make_loan(duration_months=duration)
    
    def test_negative_rate(self):
        with pytest.raises(InvalidAmount, match="Interest rate cannot be negative"):
            make_loan(rate="-1")
    
    def test_remaining_above_principal(self):
        with pytest.raises(InvalidAmount, match="cannot exceed"):
            make_loan(remaining_principal="5000.01")
    
    def test_float_principal_rejected(self):
        now = datetime.now(timezone.utc)
        
        with pytest.raises(TypeError, match="float"):
            Loan(
                id="LOAN003", created_at=now, updated_at=now, borrower_id="MEMBER001",
                principal=5000.0, duration_months=3, interest_rate_percent=Decimal('10')
            )
    
    def test_to_dict(self):
        data = make_loan().to_dict()
        
        assert data['principal'] == "5000"
        assert data['status'] == "active"
        assert data['start_date'] == "2024-01-05"


class TestLoanLifecycle:
    """Test loan state transitions"""
    
    def setup_method(self):
        """Set up test fixtures"""
        self.loan = make_loan(start_date=None, status=LoanStatus.PENDING)
    
    def test_approve(self):
        total_interest = self.loan.approve(approved_at=date(2024, 1, 5))
        
        assert self.loan.status == LoanStatus.ACTIVE
        assert self.loan.start_date == date(2024, 1, 5)
        assert total_interest == Decimal('1500')
    
    def test_approve_stamps_today_by_default(self):
        self.loan.approve()
        
        assert self.loan.start_date == datetime.now(timezone.utc).date()
    
    def test_approve_with_rate_override(self):
        total_interest = self.loan.approve(Decimal('5'), approved_at=date(2024, 1, 5))
        
        assert self.loan.interest_rate_percent == Decimal('5')
        assert total_interest == Decimal('750')
    
    def test_approve_negative_rate(self):
        with pytest.raises(InvalidAmount):
            self.loan.approve(Decimal('-2'))
        assert self.loan.status == LoanStatus.PENDING
    
    def test_reject(self):
        self.loan.reject()
        
        assert self.loan.status == LoanStatus.REJECTED
        assert self.loan.is_terminal
        assert self.loan.remaining_principal == Decimal('5000')
    
    def test_cannot_approve_twice(self):
        self.loan.approve(approved_at=date(2024, 1, 5))
        
        with pytest.raises(InvalidLoanState, match="Can only approve pending loans"):
            self.loan.approve()
    
    def test_cannot_approve_rejected(self):
        self.loan.reject()
        
        with pytest.raises(InvalidLoanState):
            self.loan.approve()
    
    def test_cannot_reject_active(self):
        self.loan.approve(approved_at=date(2024, 1, 5))
        
        with pytest.raises(InvalidLoanState, match="Can only reject pending loans"):
            self.loan.reject()
    
    def test_apply_allocation(self):
        self.loan.approve(approved_at=date(2024, 1, 5))
        
        self.loan.apply_allocation(allocation("4250"))
        
        assert self.loan.remaining_principal == Decimal('4250')
        assert self.loan.status == LoanStatus.ACTIVE
    
    def test_apply_allocation_pays_off(self):
        self.loan.approve(approved_at=date(2024, 1, 5))
        
        self.loan.apply_allocation(allocation("0.05", pays_off=True))
        
        assert self.loan.status == LoanStatus.PAID
        assert self.loan.remaining_principal == Decimal('0.05')
        assert self.loan.is_terminal
    
    def test_apply_allocation_requires_active(self):
        with pytest.raises(InvalidLoanState, match="not active"):
            self.loan.apply_allocation(allocation("4250"))
    
    def test_no_transition_out_of_paid(self):
        self.loan.approve(approved_at=date(2024, 1, 5))
        self.loan.apply_allocation(allocation("0", pays_off=True))
        
        with pytest.raises(InvalidLoanState):
            self.loan.apply_allocation(allocation("0", pays_off=True))
        with pytest.raises(InvalidLoanState):
            self.loan.reject()


class TestPayment:
    """Test the immutable payment ledger entry"""
    
    def test_valid_payment(self):
        payment = make_payment("1000", date(2024, 2, 10), interest="250", penalty="100")
        
        assert payment.principal_paid == Decimal('650')
        assert payment.penalty_paid + payment.interest_paid + payment.principal_paid == payment.amount
    
    def test_payment_is_frozen(self):
        payment = make_payment("1000", date(2024, 2, 10), interest="250")
        
        with pytest.raises(AttributeError):
            payment.amount = Decimal('1')
    
    def test_non_positive_amount(self):
        with pytest.raises(InvalidAmount):
            make_payment("0", date(2024, 2, 10))
    
    def test_parts_must_sum_to_amount(self):
        with pytest.raises(ValueError, match="does not equal"):
            make_payment("1000", date(2024, 2, 10), interest="250", principal="700")
    
    def test_negative_part(self):
        with pytest.raises(ValueError, match="cannot be negative"):
            make_payment("1000", date(2024, 2, 10), interest="1100", principal="-100")
    
    def test_dict_round_trip(self):
        created = datetime(2024, 2, 10, 9, 0, tzinfo=timezone.utc)
        payment = Payment(
            id="PAY009", loan_id="LOAN001", amount=Decimal('1000'),
            payment_date=date(2024, 2, 10), interest_paid=Decimal('250'),
            principal_paid=Decimal('650'), penalty_paid=Decimal('100'), created_at=created
        )
        
        assert Payment.from_dict(payment.to_dict()) == payment
    
    def test_legacy_dict_without_penalty(self):
        data = make_payment("1000", date(2024, 2, 10), interest="250").to_dict()
        del data['penalty_paid']
        
        assert Payment.from_dict(data).penalty_paid == Decimal('0')


class TestErrors:
    """Test the lending error taxonomy"""
    
    def test_errors_are_value_errors(self):
        for error_class in (InvalidAmount, InvalidLoanState, InvalidTerm, LoanNotFound):
            assert issubclass(error_class, LendingError)
            assert issubclass(error_class, ValueError)
    
    def test_kinds(self):
        assert InvalidAmount("x").kind == ErrorKind.INVALID_AMOUNT
        assert InvalidLoanState("x").kind == ErrorKind.INVALID_LOAN_STATE
        assert InvalidTerm("x").kind == ErrorKind.INVALID_TERM
        assert LoanNotFound("x").kind == ErrorKind.LOAN_NOT_FOUND
    
    def test_to_dict(self):
        error = LoanNotFound("Loan LOAN404 not found", "LOAN404")
        
        assert error.to_dict() == {
            "error": "loan_not_found",
            "message": "Loan LOAN404 not found",
            "loan_id": "LOAN404"
        }
        assert str(error) == "Loan LOAN404 not found"
    
    def test_as_calendar_date(self):
        assert as_calendar_date(datetime(2024, 1, 1, 12, 0)) == date(2024, 1, 1)
        assert as_calendar_date(date(2024, 1, 1)) == date(2024, 1, 1)
