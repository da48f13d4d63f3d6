"""
Pydantic schemas for API requests and response serialization helpers
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field

from ..classifier import summarize_statuses
from ..config import get_config
from ..currency import Currency, decimal_from_string, round_amount
from ..debt import DebtState, PrincipalReconciliation
from ..loans import Loan, Payment
from ..schedule import Installment
from ..treasury import Contribution, TreasuryMetrics


def amount_str(value: Decimal) -> str:
    """Decimal amount rounded to the configured currency, as a string"""
    return str(round_amount(value, Currency[get_config().currency]))


# Loan schemas
class CreateLoanRequest(BaseModel):
    borrower_id: str
    principal: str = Field(..., description="Decimal amount as string")
    duration_months: int = Field(..., description="Term length in months")
    purpose: str = ""
    interest_rate_percent: Optional[str] = Field(None, description="Monthly rate in percent; default applies when omitted")
    
    def principal_decimal(self) -> Decimal:
        return decimal_from_string(self.principal)
    
    def rate_decimal(self) -> Optional[Decimal]:
        if self.interest_rate_percent is None:
            return None
        return decimal_from_string(self.interest_rate_percent)


class ApproveLoanRequest(BaseModel):
    interest_rate_percent: Optional[str] = Field(None, description="Final monthly rate in percent")
    approved_at: Optional[date] = Field(None, description="Approval date; defaults to today")
    approved_by: Optional[str] = None
    
    def rate_decimal(self) -> Optional[Decimal]:
        if self.interest_rate_percent is None:
            return None
        return decimal_from_string(self.interest_rate_percent)


class RejectLoanRequest(BaseModel):
    rejected_by: Optional[str] = None


class LoanPaymentRequest(BaseModel):
    amount: str = Field(..., description="Gross amount received, decimal string")
    payment_date: Optional[date] = None
    received_by: Optional[str] = None
    
    def amount_decimal(self) -> Decimal:
        return decimal_from_string(self.amount)


# Contribution schemas
class CreateContributionRequest(BaseModel):
    member_id: str
    amount: str = Field(..., description="Decimal amount as string")
    contribution_date: Optional[date] = None
    contribution_type: str = Field("monthly_deposit", description="monthly_deposit or one_time")
    recorded_by: Optional[str] = None
    
    def amount_decimal(self) -> Decimal:
        return decimal_from_string(self.amount)


class ReviewContributionRequest(BaseModel):
    reviewed_by: Optional[str] = None


def loan_to_response(loan: Loan) -> Dict[str, Any]:
    return {
        "id": loan.id,
        "borrower_id": loan.borrower_id,
        "status": loan.status.value,
        "purpose": loan.purpose,
        "principal": amount_str(loan.principal),
        "interest_rate_percent": str(loan.interest_rate_percent),
        "duration_months": loan.duration_months,
        "installment_count": loan.installment_count,
        "total_term_interest": amount_str(loan.total_term_interest),
        "total_term_debt": amount_str(loan.total_term_debt),
        "remaining_principal": amount_str(loan.remaining_principal),
        "interest_accrued": amount_str(loan.interest_accrued),
        "start_date": loan.start_date.isoformat() if loan.start_date else None,
        "created_at": loan.created_at.isoformat()
    }


def payment_to_response(payment: Payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "loan_id": payment.loan_id,
        "amount": amount_str(payment.amount),
        "payment_date": payment.payment_date.isoformat(),
        "penalty_paid": amount_str(payment.penalty_paid),
        "interest_paid": amount_str(payment.interest_paid),
        "principal_paid": amount_str(payment.principal_paid)
    }


def debt_state_to_response(state: DebtState) -> Dict[str, Any]:
    return {
        "remaining_principal": amount_str(state.remaining_principal),
        "remaining_term_interest": amount_str(state.remaining_term_interest),
        "installment_amount": amount_str(state.installment_amount),
        "total_term_debt": amount_str(state.total_term_debt),
        "is_post_term": state.is_post_term,
        "months_overdue": state.months_overdue,
        "penalty_total": amount_str(state.penalty_total),
        "penalty_paid": amount_str(state.penalty_paid),
        "penalty_outstanding": amount_str(state.penalty_outstanding),
        "total_outstanding": amount_str(state.total_outstanding),
        "is_settled": state.is_settled,
        "final_due_date": state.final_due_date.isoformat() if state.final_due_date else None
    }


def installment_to_response(installment: Installment) -> Dict[str, Any]:
    return {
        "index": installment.index,
        "due_date": installment.due_date.isoformat(),
        "principal_portion": amount_str(installment.principal_portion),
        "interest_portion": amount_str(installment.interest_portion),
        "total_due": amount_str(installment.total_due),
        "status": installment.status.value
    }


def schedule_to_response(installments) -> Dict[str, Any]:
    installments = list(installments)
    counts = summarize_statuses(installments)
    total = len(installments)
    collection_rate = (Decimal(counts["paid"]) / Decimal(total) * 100) if total else Decimal('0')
    return {
        "installments": [installment_to_response(i) for i in installments],
        "summary": {**counts, "collection_rate": str(collection_rate.quantize(Decimal('0.01')))}
    }


def reconciliation_to_response(result: PrincipalReconciliation) -> Dict[str, Any]:
    return {
        "loan_id": result.loan_id,
        "cached": amount_str(result.cached),
        "recomputed": amount_str(result.recomputed),
        "drift": str(result.drift),
        "consistent": result.consistent
    }


def contribution_to_response(contribution: Contribution) -> Dict[str, Any]:
    return {
        "id": contribution.id,
        "member_id": contribution.member_id,
        "amount": amount_str(contribution.amount),
        "contribution_date": contribution.contribution_date.isoformat(),
        "contribution_type": contribution.contribution_type.value,
        "status": contribution.status.value
    }


def treasury_to_response(metrics: TreasuryMetrics) -> Dict[str, Any]:
    return {
        "balance": amount_str(metrics.balance),
        "total_contributions": amount_str(metrics.total_contributions),
        "total_payments": amount_str(metrics.total_payments),
        "total_disbursed": amount_str(metrics.total_disbursed),
        "total_interest_collected": amount_str(metrics.total_interest_collected),
        "total_principal_repaid": amount_str(metrics.total_principal_repaid),
        "total_penalty_collected": amount_str(metrics.total_penalty_collected),
        "active_loan_volume": amount_str(metrics.active_loan_volume)
    }
