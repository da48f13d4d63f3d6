"""
Loan endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, HTTPException, Depends, status

from .deps import LendingSystem, get_lending_system, http_error
from .schemas import (
    ApproveLoanRequest, CreateLoanRequest, LoanPaymentRequest, RejectLoanRequest,
    debt_state_to_response, loan_to_response, payment_to_response,
    reconciliation_to_response, schedule_to_response
)
from ..loans import LoanStatus


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED)
async def request_loan(
    request: CreateLoanRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Submit a loan request"""
    try:
        loan = system.loan_manager.request_loan(
            borrower_id=request.borrower_id,
            principal=request.principal_decimal(),
            duration_months=request.duration_months,
            purpose=request.purpose,
            interest_rate_percent=request.rate_decimal()
        )
    except ValueError as e:
        raise http_error(e)
    
    return {
        "loan_id": loan.id,
        "status": loan.status.value,
        "message": "Loan requested successfully"
    }


@router.get("")
async def list_loans(
    status_filter: Optional[str] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """List loans, optionally filtered by status"""
    if status_filter:
        try:
            loans = system.loan_repository.find_by_status(LoanStatus(status_filter))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown loan status: {status_filter}")
    else:
        loans = system.loan_repository.list_all()
    return {"loans": [loan_to_response(loan) for loan in loans]}


@router.post("/{loan_id}/approve")
async def approve_loan(
    loan_id: str,
    request: ApproveLoanRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Approve a pending loan"""
    try:
        loan = system.loan_manager.approve_loan(
            loan_id=loan_id,
            interest_rate_percent=request.rate_decimal(),
            approved_at=request.approved_at,
            approved_by=request.approved_by
        )
    except ValueError as e:
        raise http_error(e)
    
    return loan_to_response(loan)


@router.post("/{loan_id}/reject")
async def reject_loan(
    loan_id: str,
    request: Optional[RejectLoanRequest] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """Reject a pending loan"""
    try:
        loan = system.loan_manager.reject_loan(
            loan_id=loan_id,
            rejected_by=request.rejected_by if request else None
        )
    except ValueError as e:
        raise http_error(e)
    
    return loan_to_response(loan)


@router.post("/{loan_id}/payments", status_code=status.HTTP_201_CREATED)
async def make_loan_payment(
    loan_id: str,
    request: LoanPaymentRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Record a loan payment"""
    try:
        payment = system.loan_manager.make_payment(
            loan_id=loan_id,
            amount=request.amount_decimal(),
            payment_date=request.payment_date,
            received_by=request.received_by
        )
        loan = system.loan_manager.get_loan(loan_id)
    except ValueError as e:
        raise http_error(e)
    
    return {
        "payment": payment_to_response(payment),
        "loan_status": loan.status.value,
        "message": "Loan payment recorded successfully"
    }


@router.get("/{loan_id}")
async def get_loan(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get loan details"""
    loan = system.loan_manager.get_loan(loan_id)
    if not loan:
        raise HTTPException(status_code=404, detail="Loan not found")
    return loan_to_response(loan)


@router.get("/{loan_id}/payments")
async def get_loan_payments(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get loan payment history"""
    try:
        payments = system.loan_manager.get_loan_payments(loan_id)
    except ValueError as e:
        raise http_error(e)
    return {"payments": [payment_to_response(p) for p in payments]}


@router.get("/{loan_id}/debt")
async def get_loan_debt(
    loan_id: str,
    as_of: Optional[date] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get live debt position"""
    try:
        state = system.loan_manager.get_debt_state(loan_id, as_of)
    except ValueError as e:
        raise http_error(e)
    return debt_state_to_response(state)


@router.get("/{loan_id}/schedule")
async def get_loan_schedule(
    loan_id: str,
    as_of: Optional[date] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """Get classified installment schedule"""
    try:
        installments = system.loan_manager.get_installments(loan_id, as_of)
    except ValueError as e:
        raise http_error(e)
    return schedule_to_response(installments)


@router.get("/{loan_id}/reconcile")
async def reconcile_loan(
    loan_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Verify the remaining-principal cache against the payment log"""
    try:
        result = system.loan_manager.reconcile_loan(loan_id)
    except ValueError as e:
        raise http_error(e)
    return reconciliation_to_response(result)
