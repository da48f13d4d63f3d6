"""
Treasury, contribution and collection-calendar endpoints
"""

from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, status

from .deps import LendingSystem, get_lending_system, http_error
from .schemas import (
    CreateContributionRequest, ReviewContributionRequest, amount_str, contribution_to_response,
    loan_to_response, installment_to_response, treasury_to_response
)


router = APIRouter()


@router.get("/treasury")
async def get_treasury(system: LendingSystem = Depends(get_lending_system)):
    """Treasury position derived from all recorded flows"""
    return treasury_to_response(system.contribution_manager.get_treasury_metrics())


@router.get("/schedules")
async def get_upcoming_schedules(
    as_of: Optional[date] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """Collection calendar across all active loans"""
    entries = system.loan_manager.get_upcoming_schedules(as_of)
    return {
        "schedules": [
            {
                "loan_id": entry.loan_id,
                "borrower_id": entry.borrower_id,
                "title": f"Loan Repayment ({entry.installment.index}/{entry.installment_count})",
                **installment_to_response(entry.installment)
            }
            for entry in entries
        ]
    }


@router.post("/accruals/recalculate")
async def recalculate_accruals(
    as_of: Optional[date] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """Refresh cached accrued interest on active loans"""
    return system.loan_manager.recalculate_interest_accruals(as_of)


@router.post("/contributions", status_code=status.HTTP_201_CREATED)
async def create_contribution(
    request: CreateContributionRequest,
    system: LendingSystem = Depends(get_lending_system)
):
    """Record a pending member contribution"""
    try:
        contribution = system.contribution_manager.record_contribution(
            member_id=request.member_id,
            amount=request.amount_decimal(),
            contribution_date=request.contribution_date,
            contribution_type=request.contribution_type,
            recorded_by=request.recorded_by
        )
    except ValueError as e:
        raise http_error(e)
    
    return contribution_to_response(contribution)


@router.post("/contributions/{contribution_id}/approve")
async def approve_contribution(
    contribution_id: str,
    request: Optional[ReviewContributionRequest] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """Approve a pending contribution"""
    try:
        contribution = system.contribution_manager.approve_contribution(
            contribution_id, approved_by=request.reviewed_by if request else None
        )
    except ValueError as e:
        raise http_error(e)
    
    return contribution_to_response(contribution)


@router.post("/contributions/{contribution_id}/reject")
async def reject_contribution(
    contribution_id: str,
    request: Optional[ReviewContributionRequest] = None,
    system: LendingSystem = Depends(get_lending_system)
):
    """Reject a pending contribution"""
    try:
        contribution = system.contribution_manager.reject_contribution(
            contribution_id, rejected_by=request.reviewed_by if request else None
        )
    except ValueError as e:
        raise http_error(e)
    
    return contribution_to_response(contribution)


@router.get("/members/{member_id}/equity")
async def get_member_equity(
    member_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """A member's cumulative approved contributions"""
    equity = system.contribution_manager.get_member_equity(member_id)
    return {"member_id": member_id, "equity": amount_str(equity)}


@router.get("/members/{member_id}/loans")
async def get_member_loans(
    member_id: str,
    system: LendingSystem = Depends(get_lending_system)
):
    """Every loan requested by a member"""
    loans = system.loan_repository.find_by_borrower(member_id)
    return {"member_id": member_id, "loans": [loan_to_response(loan) for loan in loans]}
