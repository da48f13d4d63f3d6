"""
Test suite for schedule module

Tests bi-monthly due date generation (10th/25th), anchor snapping,
year rollover and per-installment amounts.
"""

import pytest
from decimal import Decimal
from datetime import date, datetime, timezone

from coop_lending.errors import InvalidLoanState, InvalidTerm
from coop_lending.loans import LoanStatus
from coop_lending.schedule import (
    Installment, InstallmentStatus, build_installments, first_due_date,
    generate_installment_dates, next_due_date
)

from conftest import make_loan


class TestFirstDueDate:
    """Test snapping of the anchor date to the first payday"""
    
    def test_early_month_anchor_goes_to_next_tenth(self):
        assert first_due_date(date(2024, 1, 5)) == date(2024, 2, 10)
    
    def test_anchor_on_tenth_goes_to_next_tenth(self):
        assert first_due_date(date(2024, 1, 10)) == date(2024, 2, 10)
    
    def test_mid_month_anchor_goes_to_next_twenty_fifth(self):
        assert first_due_date(date(2024, 1, 15)) == date(2024, 2, 25)
    
    def test_anchor_on_twenty_fifth_goes_to_next_twenty_fifth(self):
        assert first_due_date(date(2024, 1, 25)) == date(2024, 2, 25)
    
    def test_late_month_anchor_skips_a_month(self):
        """Day 26+ lands on the 10th of the month after next"""
        assert first_due_date(date(2024, 1, 28)) == date(2024, 3, 10)
        assert first_due_date(date(2024, 1, 31)) == date(2024, 3, 10)
    
    def test_datetime_anchor_drops_time(self):
        anchor = datetime(2024, 1, 15, 23, 59, tzinfo=timezone.utc)
        assert first_due_date(anchor) == date(2024, 2, 25)
    
    def test_year_rollover(self):
        assert first_due_date(date(2024, 12, 3)) == date(2025, 1, 10)
        assert first_due_date(date(2024, 11, 30)) == date(2025, 1, 10)
        assert first_due_date(date(2024, 12, 28)) == date(2025, 2, 10)


class TestNextDueDate:
    """Test alternation between paydays"""
    
    def test_tenth_to_twenty_fifth(self):
        assert next_due_date(date(2024, 3, 10)) == date(2024, 3, 25)
    
    def test_twenty_fifth_to_next_month(self):
        assert next_due_date(date(2024, 3, 25)) == date(2024, 4, 10)
    
    def test_december_rolls_into_january(self):
        assert next_due_date(date(2024, 12, 25)) == date(2025, 1, 10)
    
    def test_non_payday_rejected(self):
        with pytest.raises(ValueError, match="not a payday"):
            next_due_date(date(2024, 3, 11))


class TestGenerateInstallmentDates:
    """Test full due date sequences"""
    
    def test_early_anchor_sequence(self):
        dates = generate_installment_dates(date(2024, 1, 5), 6)
        
        assert dates == [
            date(2024, 2, 10), date(2024, 2, 25),
            date(2024, 3, 10), date(2024, 3, 25),
            date(2024, 4, 10), date(2024, 4, 25),
        ]
    
    def test_mid_month_anchor_sequence(self):
        dates = generate_installment_dates(date(2024, 1, 15), 4)
        
        assert dates == [
            date(2024, 2, 25), date(2024, 3, 10),
            date(2024, 3, 25), date(2024, 4, 10),
        ]
    
    def test_sequence_across_year_end(self):
        dates = generate_installment_dates(date(2024, 11, 20), 3)
        
        assert dates == [date(2024, 12, 25), date(2025, 1, 10), date(2025, 1, 25)]
    
    def test_dates_strictly_increasing_on_paydays(self):
        """Long schedules stay on the 10th/25th and never repeat a date"""
        for anchor in (date(2023, 1, 1), date(2023, 6, 17), date(2023, 10, 29)):
            dates = generate_installment_dates(anchor, 48)
            
            assert len(dates) == 48
            assert all(d.day in (10, 25) for d in dates)
            assert all(earlier < later for earlier, later in zip(dates, dates[1:]))
    
    def test_first_date_after_anchor(self):
        anchor = date(2024, 5, 26)
        assert generate_installment_dates(anchor, 1)[0] > anchor
    
    def test_single_installment(self):
        assert generate_installment_dates(date(2024, 1, 5), 1) == [date(2024, 2, 10)]
    
    @pytest.mark.parametrize("count", [0, -2])
    def test_non_positive_count_rejected(self, count):
        with pytest.raises(InvalidTerm, match="positive integer"):
            generate_installment_dates(date(2024, 1, 5), count)
    
    def test_non_integer_count_rejected(self):
        with pytest.raises(InvalidTerm):
            generate_installment_dates(date(2024, 1, 5), 2.5)


class TestBuildInstallments:
    """Test installment amounts projected for a loan"""
    
    def test_installment_amounts(self):
        loan = make_loan()
        installments = build_installments(loan)
        
        assert len(installments) == 6
        assert [i.index for i in installments] == [1, 2, 3, 4, 5, 6]
        
        first = installments[0]
        assert first.due_date == date(2024, 2, 10)
        assert first.interest_portion == Decimal('250')
        assert first.total_due == Decimal('6500') / 6
        assert first.principal_portion == Decimal('5000') / 6
        assert first.status == InstallmentStatus.UPCOMING
    
    def test_portions_sum_to_term_totals(self):
        loan = make_loan(principal="7500", duration_months=5, rate="7")
        installments = build_installments(loan)
        
        tolerance = Decimal('0.000001')
        assert abs(sum(i.principal_portion for i in installments) - loan.principal) < tolerance
        assert abs(sum(i.interest_portion for i in installments) - loan.total_term_interest) < tolerance
        assert abs(sum(i.total_due for i in installments) - loan.total_term_debt) < tolerance
    
    def test_zero_rate_has_no_interest(self):
        installments = build_installments(make_loan(rate="0"))
        
        assert all(i.interest_portion == Decimal('0') for i in installments)
    
    def test_pending_loan_has_no_schedule(self):
        loan = make_loan(start_date=None, status=LoanStatus.PENDING)
        
        with pytest.raises(InvalidLoanState, match="no start date"):
            build_installments(loan)
    
    def test_installments_are_immutable(self):
        installment = build_installments(make_loan())[0]
        
        with pytest.raises(AttributeError):
            installment.status = InstallmentStatus.PAID
        assert isinstance(installment, Installment)
