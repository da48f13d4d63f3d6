"""
Contribution Manager Module

Member deposits from recording through review, and the treasury views that
depend on them. Every state change is persisted, logged and audited here.
"""

from decimal import Decimal
from datetime import datetime, timezone, date
from typing import Dict, Optional, Union
import uuid

from .audit import AuditTrail, AuditEventType
from .errors import ContributionNotFound
from .logging_config import get_logger, log_action
from .loans import as_calendar_date
from .repositories import ContributionRepository, LoanRepository, PaymentRepository
from .treasury import (
    Contribution, ContributionType, TreasuryMetrics, compute_treasury_metrics, member_equity
)


class ContributionManager:
    """
    Manages member contributions and the treasury position
    """

    def __init__(
        self,
        contributions: ContributionRepository,
        loans: LoanRepository,
        payments: PaymentRepository,
        audit_trail: Optional[AuditTrail] = None
    ):
        self.contributions = contributions
        self.loans = loans
        self.payments = payments
        self.audit_trail = audit_trail
        self.logger = get_logger("coop_lending.treasury")

    def record_contribution(
        self,
        member_id: str,
        amount: Union[Decimal, int, str],
        contribution_date: Optional[Union[date, datetime]] = None,
        contribution_type: Union[ContributionType, str] = ContributionType.MONTHLY_DEPOSIT,
        recorded_by: Optional[str] = None
    ) -> Contribution:
        """
        Record a pending member deposit

        Args:
            member_id: Contributing member
            amount: Amount deposited
            contribution_date: Day of the deposit (defaults to today)
            contribution_type: Monthly deposit or one-time contribution
            recorded_by: User entering the deposit; the member when omitted

        Returns:
            Created Contribution in PENDING status
        """
        now = datetime.now(timezone.utc)
        contribution = Contribution(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            member_id=member_id,
            amount=amount,
            contribution_date=as_calendar_date(contribution_date or now.date()),
            contribution_type=ContributionType(contribution_type)
        )
        self.contributions.save(contribution)

        user_id = recorded_by or member_id
        log_action(
            self.logger, "info", "Contribution recorded",
            user_id=user_id, action="record_contribution",
            resource=f"contribution:{contribution.id}",
            extra={
                "member_id": member_id,
                "amount": str(contribution.amount),
                "contribution_type": contribution.contribution_type.value
            }
        )
        self._audit(
            AuditEventType.CONTRIBUTION_RECORDED, contribution.id,
            {
                "member_id": member_id,
                "amount": contribution.amount,
                "contribution_type": contribution.contribution_type.value,
                "contribution_date": contribution.contribution_date
            },
            user_id=user_id
        )
        return contribution

    def approve_contribution(
        self,
        contribution_id: str,
        approved_by: Optional[str] = None
    ) -> Contribution:
        """Count a pending deposit toward member equity and the treasury"""
        contribution = self._require_contribution(contribution_id)
        contribution.approve()
        self.contributions.save(contribution)

        log_action(
            self.logger, "info", "Contribution approved",
            user_id=approved_by, action="approve_contribution",
            resource=f"contribution:{contribution.id}",
            extra={"member_id": contribution.member_id, "amount": str(contribution.amount)}
        )
        self._audit(
            AuditEventType.CONTRIBUTION_APPROVED, contribution.id,
            {"member_id": contribution.member_id, "amount": contribution.amount},
            user_id=approved_by
        )
        return contribution

    def reject_contribution(
        self,
        contribution_id: str,
        rejected_by: Optional[str] = None
    ) -> Contribution:
        """Decline a pending deposit"""
        contribution = self._require_contribution(contribution_id)
        contribution.reject()
        self.contributions.save(contribution)

        log_action(
            self.logger, "info", "Contribution rejected",
            user_id=rejected_by, action="reject_contribution",
            resource=f"contribution:{contribution.id}",
            extra={"member_id": contribution.member_id}
        )
        self._audit(
            AuditEventType.CONTRIBUTION_REJECTED, contribution.id,
            {"member_id": contribution.member_id},
            user_id=rejected_by
        )
        return contribution

    def get_contribution(self, contribution_id: str) -> Optional[Contribution]:
        return self.contributions.get(contribution_id)

    def get_member_equity(self, member_id: str) -> Decimal:
        return member_equity(self.contributions.list_all(), member_id)

    def get_treasury_metrics(self) -> TreasuryMetrics:
        """Treasury position derived from every recorded flow"""
        return compute_treasury_metrics(
            self.contributions.list_all(),
            self.loans.list_all(),
            self.payments.list_all()
        )

    def _require_contribution(self, contribution_id: str) -> Contribution:
        contribution = self.contributions.get(contribution_id)
        if not contribution:
            raise ContributionNotFound(
                f"Contribution {contribution_id} not found", contribution_id
            )
        return contribution

    def _audit(self, event_type: AuditEventType, contribution_id: str, metadata: Dict,
               user_id: Optional[str] = None) -> None:
        if self.audit_trail is not None:
            self.audit_trail.log_event(
                event_type=event_type,
                entity_type="contribution",
                entity_id=contribution_id,
                metadata=metadata,
                user_id=user_id
            )
