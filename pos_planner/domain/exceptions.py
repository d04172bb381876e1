"""Domain-specific exceptions"""

from dataclasses import dataclass
from typing import List

from pos_planner.domain.models import CheckoutStep


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidPlanInputError(DomainException):
    """Plan, cart or payment input is out of range"""

    pass


@dataclass(frozen=True)
class ValidationIssue:
    """Step-scoped reason a transition or submission was refused"""

    step: CheckoutStep
    message: str


class StepGuardError(DomainException):
    """Forward transition refused by the current step's guard"""

    def __init__(self, step: CheckoutStep, message: str):
        super().__init__(message)
        self.step = step
        self.message = message


class SubmissionBlockedError(DomainException):
    """Reconciliation failed; nothing was sent to the Settlement Service"""

    def __init__(self, issues: List[ValidationIssue]):
        super().__init__("; ".join(issue.message for issue in issues))
        self.issues = issues


class MissingAccountContextError(DomainException):
    """No account/seller context available at submission time"""

    pass


class SubmissionInFlightError(DomainException):
    """A settlement request is already outstanding for this session"""

    pass


class SettlementServiceError(DomainException):
    """Settlement Service rejected the sale or is unavailable"""

    pass


class DirectoryServiceError(DomainException):
    """Customer directory or catalog lookup failed"""

    pass
