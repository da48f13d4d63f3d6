"""
Lending system wiring and shared API dependencies
"""

from typing import Optional

from fastapi import HTTPException, status

from ..audit import AuditTrail
from ..config import get_config
from ..contribution_manager import ContributionManager
from ..errors import ErrorKind, LendingError
from ..loan_manager import LoanManager
from ..repositories import ContributionRepository, LoanRepository, PaymentRepository
from ..storage import InMemoryStorage, StorageInterface


class LendingSystem:
    """Lending engine with repositories, audit trail and managers initialized"""
    
    def __init__(self, storage: Optional[StorageInterface] = None):
        config = get_config()
        self.storage = storage or InMemoryStorage()
        self.audit_trail = AuditTrail(self.storage) if config.enable_audit_logging else None
        
        self.loan_repository = LoanRepository(self.storage)
        self.payment_repository = PaymentRepository(self.storage)
        self.contribution_repository = ContributionRepository(self.storage)
        
        self.loan_manager = LoanManager(
            self.loan_repository, self.payment_repository, self.audit_trail
        )
        self.contribution_manager = ContributionManager(
            self.contribution_repository, self.loan_repository, self.payment_repository,
            self.audit_trail
        )


_lending_system: Optional[LendingSystem] = None


def get_lending_system() -> LendingSystem:
    """Process-wide lending system, created on first use"""
    global _lending_system
    if _lending_system is None:
        _lending_system = LendingSystem()
    return _lending_system


_STATUS_BY_KIND = {
    ErrorKind.INVALID_AMOUNT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_TERM: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_LOAN_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.LOAN_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_CONTRIBUTION_STATE: status.HTTP_409_CONFLICT,
    ErrorKind.CONTRIBUTION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def http_error(error: ValueError) -> HTTPException:
    """Translate an engine error into an HTTP error response"""
    if isinstance(error, LendingError):
        return HTTPException(status_code=_STATUS_BY_KIND[error.kind], detail=error.to_dict())
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
