"""
Error Taxonomy Module

Closed set of failure kinds raised by the lending engine. Every engine
function fails fast with one of these instead of clamping invalid input.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Kinds of lending failures"""
    INVALID_AMOUNT = "invalid_amount"          # Non-positive money amount
    INVALID_LOAN_STATE = "invalid_loan_state"  # Operation forbidden by loan status
    INVALID_TERM = "invalid_term"              # Non-positive duration or installment count
    LOAN_NOT_FOUND = "loan_not_found"          # Unknown loan ID
    INVALID_CONTRIBUTION_STATE = "invalid_contribution_state"  # Contribution already reviewed
    CONTRIBUTION_NOT_FOUND = "contribution_not_found"          # Unknown contribution ID


class LendingError(ValueError):
    """Base class for all lending engine errors"""
    kind: ErrorKind = ErrorKind.INVALID_AMOUNT

    def __init__(self, message: str, loan_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.loan_id = loan_id

    def to_dict(self) -> dict:
        """Serialize for API error payloads"""
        result = {"error": self.kind.value, "message": self.message}
        if self.loan_id:
            result["loan_id"] = self.loan_id
        return result


class InvalidAmount(LendingError):
    """Raised when a payment or principal amount is not positive"""
    kind = ErrorKind.INVALID_AMOUNT


class InvalidLoanState(LendingError):
    """Raised when the loan's status forbids the requested operation"""
    kind = ErrorKind.INVALID_LOAN_STATE


class InvalidTerm(LendingError):
    """Raised for non-positive durations or installment counts"""
    kind = ErrorKind.INVALID_TERM


class LoanNotFound(LendingError):
    """Raised when a loan ID does not resolve to a stored loan"""
    kind = ErrorKind.LOAN_NOT_FOUND


class ContributionError(LendingError):
    """Base class for contribution review errors"""

    def __init__(self, message: str, contribution_id: Optional[str] = None):
        super().__init__(message)
        self.contribution_id = contribution_id

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.contribution_id:
            result["contribution_id"] = self.contribution_id
        return result


class InvalidContributionState(ContributionError):
    """Raised when a contribution that is no longer pending is reviewed again"""
    kind = ErrorKind.INVALID_CONTRIBUTION_STATE


class ContributionNotFound(ContributionError):
    """Raised when a contribution ID does not resolve to a stored contribution"""
    kind = ErrorKind.CONTRIBUTION_NOT_FOUND
