"""
Test suite for allocation module

Tests the penalty -> interest -> principal cascade, conservation of the
gross amount, and payoff detection.
"""

import pytest
from decimal import Decimal
from datetime import date

from coop_lending.allocation import allocate_payment, cycle_interest_due
from coop_lending.debt import compute_debt_state
from coop_lending.errors import ErrorKind, InvalidAmount, InvalidLoanState
from coop_lending.loans import LoanStatus

from conftest import make_loan, make_payment


class TestCycleInterest:
    """Test per-cycle interest cap"""
    
    def test_half_month_on_remaining(self):
        assert cycle_interest_due(make_loan()) == Decimal('250')
        assert cycle_interest_due(make_loan(remaining_principal="4250")) == Decimal('212.5')
    
    def test_zero_rate(self):
        assert cycle_interest_due(make_loan(rate="0")) == Decimal('0')


class TestAllocateInTerm:
    """Test allocation before the final due date"""
    
    def setup_method(self):
        """Set up test fixtures"""
        self.loan = make_loan()
    
    def test_interest_then_principal(self):
        allocation = allocate_payment(self.loan, [], Decimal('1000'), as_of=date(2024, 2, 10))
        
        assert allocation.penalty_paid == Decimal('0')
        assert allocation.interest_paid == Decimal('250')
        assert allocation.principal_paid == Decimal('750')
        assert allocation.updated_remaining_principal == Decimal('4250')
        assert not allocation.pays_off
    
    def test_small_payment_all_interest(self):
        allocation = allocate_payment(self.loan, [], Decimal('100'), as_of=date(2024, 2, 10))
        
        assert allocation.interest_paid == Decimal('100')
        assert allocation.principal_paid == Decimal('0')
        assert allocation.updated_remaining_principal == Decimal('5000')
    
    def test_accepts_string_amount(self):
        allocation = allocate_payment(self.loan, [], "1000", as_of=date(2024, 2, 10))
        
        assert allocation.gross_amount == Decimal('1000')
    
    def test_exact_payoff(self):
        allocation = allocate_payment(self.loan, [], Decimal('5250'), as_of=date(2024, 2, 10))
        
        assert allocation.principal_paid == Decimal('5000')
        assert allocation.updated_remaining_principal == Decimal('0')
        assert allocation.pays_off
    
    def test_payoff_within_epsilon(self):
        allocation = allocate_payment(self.loan, [], Decimal('5249.92'), as_of=date(2024, 2, 10))
        
        assert allocation.updated_remaining_principal == Decimal('0.08')
        assert allocation.pays_off
    
    def test_just_outside_epsilon_is_not_payoff(self):
        allocation = allocate_payment(self.loan, [], Decimal('5249.80'), as_of=date(2024, 2, 10))
        
        assert allocation.updated_remaining_principal == Decimal('0.20')
        assert not allocation.pays_off
    
    def test_overpayment_conserves_amount(self):
        """Excess lands in principal; remaining principal never goes negative"""
        allocation = allocate_payment(self.loan, [], Decimal('6000'), as_of=date(2024, 2, 10))
        
        assert allocation.principal_paid == Decimal('5750')
        assert allocation.updated_remaining_principal == Decimal('0')
        assert allocation.pays_off
    
    def test_zero_rate_all_principal(self):
        loan = make_loan(rate="0")
        
        allocation = allocate_payment(loan, [], Decimal('1000'), as_of=date(2024, 2, 10))
        
        assert allocation.interest_paid == Decimal('0')
        assert allocation.principal_paid == Decimal('1000')
    
    def test_pure_function(self):
        allocate_payment(self.loan, [], Decimal('1000'), as_of=date(2024, 2, 10))
        
        assert self.loan.remaining_principal == Decimal('5000')
        assert self.loan.status == LoanStatus.ACTIVE


class TestAllocatePostTerm:
    """Test allocation once the loan is in default"""
    
    def setup_method(self):
        """Set up test fixtures"""
        self.loan = make_loan()
    
    def test_penalty_first(self):
        allocation = allocate_payment(self.loan, [], Decimal('1000'), as_of=date(2024, 7, 1))
        
        assert allocation.penalty_paid == Decimal('600')
        assert allocation.interest_paid == Decimal('250')
        assert allocation.principal_paid == Decimal('150')
        assert allocation.updated_remaining_principal == Decimal('4850')
    
    def test_payment_smaller_than_penalty(self):
        allocation = allocate_payment(self.loan, [], Decimal('300'), as_of=date(2024, 7, 1))
        
        assert allocation.penalty_paid == Decimal('300')
        assert allocation.interest_paid == Decimal('0')
        assert allocation.principal_paid == Decimal('0')
    
    def test_previously_paid_penalty_not_charged_again(self):
        history = [make_payment("300", date(2024, 6, 30), penalty="300")]
        
        allocation = allocate_payment(self.loan, history, Decimal('1000'), as_of=date(2024, 7, 1))
        
        assert allocation.penalty_paid == Decimal('300')
        assert allocation.interest_paid == Decimal('250')
        assert allocation.principal_paid == Decimal('450')
    
    def test_uses_supplied_debt_state(self):
        state = compute_debt_state(self.loan, [], as_of=date(2024, 7, 1))
        
        allocation = allocate_payment(
            self.loan, [], Decimal('1000'), as_of=date(2024, 7, 1), debt_state=state
        )
        
        assert allocation.penalty_paid == state.penalty_outstanding
    
    @pytest.mark.parametrize("amount", ["0.01", "1", "250", "600", "850.5", "1000", "5850", "9999.99"])
    def test_conservation(self, amount):
        allocation = allocate_payment(self.loan, [], Decimal(amount), as_of=date(2024, 7, 1))
        
        parts = [allocation.penalty_paid, allocation.interest_paid, allocation.principal_paid]
        assert sum(parts) == Decimal(amount)
        assert all(part >= Decimal('0') for part in parts)
        assert allocation.updated_remaining_principal >= Decimal('0')


class TestAllocationErrors:
    """Test rejected payments"""
    
    @pytest.mark.parametrize("amount", ["0", "-50"])
    def test_non_positive_amount(self, amount):
        with pytest.raises(InvalidAmount, match="must be positive"):
            allocate_payment(make_loan(), [], Decimal(amount))
    
    @pytest.mark.parametrize("status", [LoanStatus.PENDING, LoanStatus.REJECTED, LoanStatus.PAID])
    def test_inactive_loan(self, status):
        loan = make_loan(status=status)
        
        with pytest.raises(InvalidLoanState) as exc_info:
            allocate_payment(loan, [], Decimal('100'))
        assert exc_info.value.kind == ErrorKind.INVALID_LOAN_STATE
        assert exc_info.value.loan_id == loan.id
    
    def test_amount_checked_before_state(self):
        loan = make_loan(status=LoanStatus.PAID)
        
        with pytest.raises(InvalidAmount):
            allocate_payment(loan, [], Decimal('0'))
