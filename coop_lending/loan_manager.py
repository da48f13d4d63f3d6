"""
Loan Manager Module

Orchestrates the loan lifecycle on top of the pure engine: request, approval,
rejection, payment application, live debt and schedule views, cache
reconciliation and interest-accrual refresh. This is the only layer that
persists, audits and logs.
"""

from decimal import Decimal
from datetime import datetime, timezone, timedelta, date
from dataclasses import dataclass
from typing import Dict, List, Optional, Union
import threading
import uuid

from .allocation import allocate_payment
from .audit import AuditTrail, AuditEventType
from .classifier import classify_installments
from .config import get_config
from .currency import to_decimal
from .debt import DebtState, LendingPolicy, PrincipalReconciliation, compute_debt_state, reconcile_remaining_principal
from .errors import LoanNotFound
from .logging_config import get_logger, log_action
from .loans import Loan, LoanStatus, Payment, as_calendar_date
from .repositories import LoanRepository, PaymentRepository
from .schedule import Installment, build_installments


@dataclass(frozen=True)
class ScheduledInstallment:
    """An installment in the portfolio-wide collection calendar"""
    loan_id: str
    borrower_id: str
    installment_count: int
    installment: Installment


class LoanManager:
    """
    Manages loan lifecycle from request through payoff
    """
    
    def __init__(
        self,
        loans: LoanRepository,
        payments: PaymentRepository,
        audit_trail: Optional[AuditTrail] = None,
        policy: Optional[LendingPolicy] = None
    ):
        config = get_config()
        self.loans = loans
        self.payments = payments
        self.audit_trail = audit_trail
        self.policy = policy or config.lending_policy()
        self.default_interest_rate = Decimal(config.default_interest_rate)
        self.schedule_lookback_days = config.schedule_lookback_days
        self.logger = get_logger("coop_lending.loans")
        self._payment_lock = threading.Lock()
    
    def request_loan(
        self,
        borrower_id: str,
        principal: Union[Decimal, int, str],
        duration_months: int,
        purpose: str = "",
        interest_rate_percent: Optional[Union[Decimal, int, str]] = None
    ) -> Loan:
        """
        Create a pending loan request
        
        Args:
            borrower_id: Requesting member
            principal: Amount requested
            duration_months: Term length in months
            purpose: Free-text purpose of the loan
            interest_rate_percent: Requested monthly rate; the configured
                default applies when omitted
            
        Returns:
            Created Loan in PENDING status
        """
        now = datetime.now(timezone.utc)
        rate = self.default_interest_rate if interest_rate_percent is None else to_decimal(interest_rate_percent)
        
        loan = Loan(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            borrower_id=borrower_id,
            principal=principal,
            duration_months=duration_months,
            interest_rate_percent=rate,
            purpose=purpose
        )
        self.loans.save(loan)
        
        log_action(
            self.logger, "info", "Loan requested",
            user_id=borrower_id, action="request_loan", resource=f"loan:{loan.id}",
            extra={
                "principal": str(loan.principal),
                "duration_months": loan.duration_months,
                "interest_rate_percent": str(loan.interest_rate_percent)
            }
        )
        self._audit(
            AuditEventType.LOAN_REQUESTED, loan.id,
            {
                "borrower_id": borrower_id,
                "principal": loan.principal,
                "duration_months": loan.duration_months,
                "interest_rate_percent": loan.interest_rate_percent,
                "purpose": purpose
            },
            user_id=borrower_id
        )
        return loan
    
    def approve_loan(
        self,
        loan_id: str,
        interest_rate_percent: Optional[Union[Decimal, int, str]] = None,
        approved_at: Optional[Union[date, datetime]] = None,
        approved_by: Optional[str] = None
    ) -> Loan:
        """
        Approve a pending loan, locking its rate and anchoring its schedule
        
        Args:
            loan_id: Loan to approve
            interest_rate_percent: Administrator's final monthly rate
            approved_at: Approval timestamp (defaults to now)
            approved_by: Administrator ID for the audit trail
            
        Returns:
            Updated Loan in ACTIVE status
        """
        loan = self._require_loan(loan_id)
        total_term_interest = loan.approve(interest_rate_percent, approved_at)
        self.loans.save(loan)
        
        log_action(
            self.logger, "info", "Loan approved",
            user_id=approved_by, action="approve_loan", resource=f"loan:{loan.id}",
            extra={
                "interest_rate_percent": str(loan.interest_rate_percent),
                "start_date": loan.start_date.isoformat()
            }
        )
        self._audit(
            AuditEventType.LOAN_APPROVED, loan.id,
            {
                "interest_rate_percent": loan.interest_rate_percent,
                "start_date": loan.start_date,
                "total_term_interest": total_term_interest,
                "total_term_debt": loan.total_term_debt
            },
            user_id=approved_by
        )
        return loan
    
    def reject_loan(self, loan_id: str, rejected_by: Optional[str] = None) -> Loan:
        """Reject a pending loan"""
        loan = self._require_loan(loan_id)
        loan.reject()
        self.loans.save(loan)
        
        log_action(
            self.logger, "info", "Loan rejected",
            user_id=rejected_by, action="reject_loan", resource=f"loan:{loan.id}"
        )
        self._audit(AuditEventType.LOAN_REJECTED, loan.id, {}, user_id=rejected_by)
        return loan
    
    def make_payment(
        self,
        loan_id: str,
        amount: Union[Decimal, int, str],
        payment_date: Optional[Union[date, datetime]] = None,
        received_by: Optional[str] = None
    ) -> Payment:
        """
        Record a payment: allocate it, append it to the log and update the loan
        
        Args:
            loan_id: Loan being repaid
            amount: Gross amount received
            payment_date: Date of payment (defaults to today)
            received_by: Administrator recording the payment
            
        Returns:
            The appended Payment
        """
        payment_date = as_calendar_date(payment_date or date.today())
        
        # One allocation at a time so two payments never read the same remaining principal
        with self._payment_lock, self.loans.storage.atomic():
            loan = self._require_loan(loan_id)
            history = self.payments.for_loan(loan_id)
            
            debt_state = compute_debt_state(loan, history, payment_date, self.policy)
            allocation = allocate_payment(
                loan, history, amount, payment_date, self.policy, debt_state=debt_state
            )
            
            payment = Payment(
                id=str(uuid.uuid4()),
                loan_id=loan.id,
                amount=allocation.gross_amount,
                payment_date=payment_date,
                interest_paid=allocation.interest_paid,
                principal_paid=allocation.principal_paid,
                penalty_paid=allocation.penalty_paid,
                created_at=datetime.now(timezone.utc)
            )
            self.payments.append(payment)
            
            loan.apply_allocation(allocation)
            self.loans.save(loan)
            
            log_action(
                self.logger, "info", "Loan payment recorded",
                user_id=received_by, action="make_payment", resource=f"loan:{loan.id}",
                extra={
                    "payment_id": payment.id,
                    "amount": str(payment.amount),
                    "penalty_paid": str(payment.penalty_paid),
                    "interest_paid": str(payment.interest_paid),
                    "principal_paid": str(payment.principal_paid),
                    "remaining_principal": str(loan.remaining_principal),
                    "is_post_term": debt_state.is_post_term
                }
            )
            self._audit(
                AuditEventType.LOAN_PAYMENT_MADE, loan.id,
                {
                    "payment_id": payment.id,
                    "amount": payment.amount,
                    "interest_paid": payment.interest_paid,
                    "principal_paid": payment.principal_paid,
                    "penalty_paid": payment.penalty_paid,
                    "remaining_principal": loan.remaining_principal
                },
                user_id=received_by
            )
            if payment.penalty_paid > Decimal('0'):
                self._audit(
                    AuditEventType.PENALTY_COLLECTED, loan.id,
                    {
                        "payment_id": payment.id,
                        "penalty_paid": payment.penalty_paid,
                        "penalty_total": debt_state.penalty_total,
                        "months_overdue": debt_state.months_overdue
                    },
                    user_id=received_by
                )
            if loan.status == LoanStatus.PAID:
                log_action(
                    self.logger, "info", "Loan paid off",
                    action="make_payment", resource=f"loan:{loan.id}"
                )
                self._audit(
                    AuditEventType.LOAN_PAID_OFF, loan.id,
                    {"final_payment_id": payment.id, "remaining_principal": loan.remaining_principal}
                )
        
        return payment
    
    def get_loan(self, loan_id: str) -> Optional[Loan]:
        """Get loan by ID"""
        return self.loans.get(loan_id)
    
    def get_loan_payments(self, loan_id: str) -> List[Payment]:
        """Get payment history for loan"""
        self._require_loan(loan_id)
        return self.payments.for_loan(loan_id)
    
    def get_debt_state(self, loan_id: str, as_of: Optional[Union[date, datetime]] = None) -> DebtState:
        """Live debt position of a loan"""
        loan = self._require_loan(loan_id)
        return compute_debt_state(loan, self.payments.for_loan(loan_id), as_of, self.policy)
    
    def get_installments(
        self,
        loan_id: str,
        as_of: Optional[Union[date, datetime]] = None
    ) -> List[Installment]:
        """Classified repayment schedule of an approved loan"""
        loan = self._require_loan(loan_id)
        history = self.payments.for_loan(loan_id)
        debt_state = compute_debt_state(loan, history, as_of, self.policy)
        return classify_installments(build_installments(loan), history, debt_state, as_of, self.policy)
    
    def reconcile_loan(self, loan_id: str) -> PrincipalReconciliation:
        """
        Recompute the remaining-principal cache from the payment log
        
        Drift beyond the rounding epsilon is logged and audited; the cached
        value is left untouched for an operator to investigate.
        """
        loan = self._require_loan(loan_id)
        result = reconcile_remaining_principal(loan, self.payments.for_loan(loan_id), self.policy)
        
        if not result.consistent:
            log_action(
                self.logger, "warning", "Remaining principal drift detected",
                action="reconcile_loan", resource=f"loan:{loan.id}",
                extra={
                    "cached": str(result.cached),
                    "recomputed": str(result.recomputed),
                    "drift": str(result.drift)
                }
            )
            self._audit(
                AuditEventType.PRINCIPAL_DRIFT_DETECTED, loan.id,
                {"cached": result.cached, "recomputed": result.recomputed, "drift": result.drift}
            )
        return result
    
    def recalculate_interest_accruals(self, as_of: Optional[Union[date, datetime]] = None) -> Dict[str, int]:
        """Refresh the interest_accrued cache on every active loan"""
        results = {"loans_processed": 0, "loans_updated": 0}
        
        for loan in self.loans.find_by_status(LoanStatus.ACTIVE):
            debt_state = compute_debt_state(loan, self.payments.for_loan(loan.id), as_of, self.policy)
            results["loans_processed"] += 1
            
            if debt_state.remaining_term_interest != loan.interest_accrued:
                previous = loan.interest_accrued
                loan.interest_accrued = debt_state.remaining_term_interest
                loan.updated_at = datetime.now(timezone.utc)
                self.loans.save(loan)
                results["loans_updated"] += 1
                self._audit(
                    AuditEventType.INTEREST_ACCRUED, loan.id,
                    {"previous": previous, "interest_accrued": loan.interest_accrued}
                )
        
        log_action(
            self.logger, "info", "Interest accruals recalculated",
            action="recalculate_interest_accruals", extra=results
        )
        return results
    
    def get_upcoming_schedules(
        self,
        as_of: Optional[Union[date, datetime]] = None
    ) -> List[ScheduledInstallment]:
        """
        Collection calendar across all active loans
        
        Includes installments due no earlier than the configured lookback
        window before ``as_of``, sorted by due date.
        """
        as_of = as_calendar_date(as_of or date.today())
        cutoff = as_of - timedelta(days=self.schedule_lookback_days)
        
        entries = []
        for loan in self.loans.find_by_status(LoanStatus.ACTIVE):
            for installment in self.get_installments(loan.id, as_of):
                if installment.due_date >= cutoff:
                    entries.append(ScheduledInstallment(
                        loan_id=loan.id,
                        borrower_id=loan.borrower_id,
                        installment_count=loan.installment_count,
                        installment=installment
                    ))
        
        entries.sort(key=lambda e: (e.installment.due_date, e.loan_id))
        return entries
    
    def _require_loan(self, loan_id: str) -> Loan:
        loan = self.loans.get(loan_id)
        if not loan:
            raise LoanNotFound(f"Loan {loan_id} not found", loan_id)
        return loan
    
    def _audit(self, event_type: AuditEventType, loan_id: str, metadata: Dict,
               user_id: Optional[str] = None) -> None:
        if self.audit_trail is not None:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="loan",
                entity_id=loan_id,
                metadata=metadata,
                user_id=user_id
            )
