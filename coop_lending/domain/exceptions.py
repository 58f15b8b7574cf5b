"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input rejected before any mutation (bad amount, missing or malformed identifier/date)"""

    pass


class NotFoundError(DomainException):
    """Loan or payment identifier does not resolve"""

    pass


class AuthorizationError(DomainException):
    """Actor role lacks the capability required by the operation"""

    pass


class StateError(DomainException):
    """Operation conflicts with current state (already approved, terminal loan)"""

    pass


class LoanCodeExhaustedError(DomainException):
    """Could not generate an unused loan code within the configured attempts"""

    pass


class DirectoryAPIError(DomainException):
    """User directory returned an error or is unavailable"""

    pass
