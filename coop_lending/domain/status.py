"""Loan lifecycle: derived status and manual review decisions"""

from datetime import date, datetime

from coop_lending.domain import balance, overdue
from coop_lending.domain.exceptions import StateError, ValidationError
from coop_lending.domain.models import Loan, LoanStatus
from coop_lending.domain.roles import Capability, Role, require_capability

TERMINAL_STATUSES = frozenset({LoanStatus.DENIED, LoanStatus.COMPLETED})
DECISION_STATUSES = frozenset({LoanStatus.APPROVED, LoanStatus.DENIED})


def derive_status(
    loan: Loan,
    reference_date: date | datetime | None = None,
    tz_name: str = "UTC",
) -> LoanStatus:
    """
    Effective status of a loan, recomputed on every read.

    Only the review decision is stored. An approved loan becomes COMPLETED
    once approved payments reach total payable, whatever its adherence, and
    shows OVERDUE while it is behind schedule. OVERDUE clears as soon as the
    loan catches up.
    """
    if loan.status in (LoanStatus.PENDING, LoanStatus.DENIED):
        return loan.status

    paid = balance.paid_amount(loan.payments)
    if balance.is_paid_off(loan.schedule, paid):
        return LoanStatus.COMPLETED

    report = overdue.analyze(loan, reference_date, tz_name)
    if report.unpaid_days > 0:
        return LoanStatus.OVERDUE
    return LoanStatus.APPROVED


def is_terminal(status: LoanStatus) -> bool:
    return status in TERMINAL_STATUSES


def check_decision(loan: Loan, new_status: LoanStatus | str, actor_role: Role | str) -> LoanStatus:
    """
    Validate a manual review decision (PENDING → APPROVED | DENIED).

    COMPLETED and OVERDUE are derived and can never be set by hand.

    Raises:
        ValidationError: Target status is not a review decision
        AuthorizationError: Role may not decide loans
        StateError: Loan was already decided
    """
    try:
        target = LoanStatus(new_status)
    except ValueError as e:
        raise ValidationError(f"Unknown loan status: {new_status}") from e
    if target not in DECISION_STATUSES:
        raise ValidationError(f"Status {target.value} is derived and cannot be set directly")

    require_capability(actor_role, Capability.DECIDE_LOAN)
    if loan.status != LoanStatus.PENDING:
        raise StateError(f"Loan {loan.loan_code} was already {loan.status.value.lower()}")
    return target


def check_schedule_editable(
    loan: Loan,
    actor_role: Role | str,
    reference_date: date | datetime | None = None,
    tz_name: str = "UTC",
) -> None:
    """
    Raises:
        AuthorizationError: Role may not edit schedules
        StateError: Loan is DENIED or COMPLETED
    """
    require_capability(actor_role, Capability.EDIT_SCHEDULE)
    current = derive_status(loan, reference_date, tz_name)
    if is_terminal(current):
        raise StateError(f"Loan {loan.loan_code} is {current.value.lower()} and cannot be edited")
