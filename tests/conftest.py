"""
Shared fixtures for the lending test suite
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional

import pytest

from coop_lending.loans import Loan, LoanStatus, Payment


def make_loan(
    principal: str = "5000",
    duration_months: int = 3,
    rate: str = "10",
    start_date: Optional[date] = date(2024, 1, 5),
    status: LoanStatus = LoanStatus.ACTIVE,
    remaining_principal: Optional[str] = None,
    loan_id: str = "LOAN001"
) -> Loan:
    """Loan with the standard test terms: 5000 over 3 months at 10% monthly"""
    now = datetime.now(timezone.utc)
    return Loan(
        id=loan_id,
        created_at=now,
        updated_at=now,
        borrower_id="MEMBER001",
        principal=Decimal(principal),
        duration_months=duration_months,
        interest_rate_percent=Decimal(rate),
        status=status,
        start_date=start_date,
        remaining_principal=Decimal(remaining_principal) if remaining_principal else None
    )


def make_payment(
    amount: str,
    payment_date: date,
    interest: str = "0",
    principal: Optional[str] = None,
    penalty: str = "0",
    payment_id: str = "PAY001",
    loan_id: str = "LOAN001"
) -> Payment:
    """Payment whose principal share defaults to whatever interest and penalty leave"""
    amount_dec = Decimal(amount)
    if principal is None:
        principal_dec = amount_dec - Decimal(interest) - Decimal(penalty)
    else:
        principal_dec = Decimal(principal)
    return Payment(
        id=payment_id,
        loan_id=loan_id,
        amount=amount_dec,
        payment_date=payment_date,
        interest_paid=Decimal(interest),
        principal_paid=principal_dec,
        penalty_paid=Decimal(penalty)
    )


@pytest.fixture
def active_loan() -> Loan:
    return make_loan()
