#!/usr/bin/env python3
"""
Example: One loan from request to payoff

Walks a 5,000 loan at 10% monthly over three months through approval,
on-time and post-term payments, showing the schedule, live debt and the
treasury position after each step.
"""

import os
import sys
from datetime import date

# Add the lending package to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from coop_lending.api.deps import LendingSystem
from coop_lending.currency import format_amount


def print_debt(system: LendingSystem, loan_id: str, as_of: date):
    state = system.loan_manager.get_debt_state(loan_id, as_of)
    print(f"   As of {as_of.isoformat()}:")
    print(f"     Remaining principal: {format_amount(state.remaining_principal)}")
    print(f"     Live interest:       {format_amount(state.remaining_term_interest)}")
    if state.is_post_term:
        print(f"     Penalty outstanding: {format_amount(state.penalty_outstanding)} "
              f"({state.months_overdue} months overdue)")


def main():
    print("🤝 Cooperative Lending - Loan Walkthrough")
    print("=" * 60)
    
    system = LendingSystem()
    manager = system.loan_manager
    
    # 1. Member equity funds the treasury
    print("\n1. 💰 Member Contribution")
    contribution = system.contribution_manager.record_contribution(
        "MEMBER001", "20000", date(2024, 1, 1)
    )
    contribution = system.contribution_manager.approve_contribution(contribution.id, approved_by="ADMIN001")
    print(f"   Approved deposit of {format_amount(contribution.amount)}")
    
    # 2. Request and approval
    print("\n2. 📝 Loan Request and Approval")
    loan = manager.request_loan("MEMBER002", "5000", 3, "Sari-sari store inventory")
    loan = manager.approve_loan(loan.id, approved_at=date(2024, 1, 5), approved_by="ADMIN001")
    print(f"   Loan {loan.id} active from {loan.start_date.isoformat()}")
    print(f"   Total term interest: {format_amount(loan.total_term_interest)}")
    
    # 3. Schedule
    print("\n3. 📅 Repayment Schedule")
    for installment in manager.get_installments(loan.id, date(2024, 1, 5)):
        print(f"   {installment.index}. {installment.due_date.isoformat()}  "
              f"{format_amount(installment.total_due)}  {installment.status.value}")
    
    # 4. Payments
    print("\n4. 💳 Payments")
    for payment_date, amount in [(date(2024, 2, 10), "1000"), (date(2024, 2, 25), "1000")]:
        payment = manager.make_payment(loan.id, amount, payment_date, received_by="ADMIN001")
        print(f"   {payment_date.isoformat()}: interest {format_amount(payment.interest_paid)}, "
              f"principal {format_amount(payment.principal_paid)}")
    print_debt(system, loan.id, date(2024, 3, 1))
    
    # 5. Default and recovery
    print("\n5. ⚠️  Post-Term Default")
    print_debt(system, loan.id, date(2024, 7, 1))
    payment = manager.make_payment(loan.id, "4500", date(2024, 7, 1), received_by="ADMIN001")
    print(f"   Recovery payment: penalty {format_amount(payment.penalty_paid)}, "
          f"interest {format_amount(payment.interest_paid)}, "
          f"principal {format_amount(payment.principal_paid)}")
    print(f"   Loan status: {manager.get_loan(loan.id).status.value}")
    
    # 6. Treasury
    print("\n6. 🏦 Treasury Position")
    metrics = system.contribution_manager.get_treasury_metrics()
    print(f"   Balance:            {format_amount(metrics.balance)}")
    print(f"   Penalty collected:  {format_amount(metrics.total_penalty_collected)}")
    
    integrity = system.audit_trail.verify_integrity()
    print(f"\n🔒 Audit trail: {integrity['total_events']} events, valid={integrity['valid']}")


if __name__ == "__main__":
    main()
