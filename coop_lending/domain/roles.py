"""Actors, roles and the capabilities each role holds"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet

from coop_lending.domain.exceptions import AuthorizationError, ValidationError


class Role(str, Enum):
    BORROWER = "BORROWER"
    CASHIER = "CASHIER"
    ACCOUNTANT = "ACCOUNTANT"
    ADMIN = "ADMIN"


class Capability(str, Enum):
    RECORD_PAYMENT = "record_payment"
    AUTO_APPROVE_PAYMENT = "auto_approve_payment"  # Reconciliation staff post pre-approved payments
    APPROVE_PAYMENT = "approve_payment"
    CREATE_LOAN = "create_loan"
    DECIDE_LOAN = "decide_loan"
    EDIT_SCHEDULE = "edit_schedule"
    VIEW_PORTFOLIO = "view_portfolio"


ROLE_CAPABILITIES: Dict[Role, FrozenSet[Capability]] = {
    Role.BORROWER: frozenset(),
    Role.CASHIER: frozenset({Capability.RECORD_PAYMENT, Capability.VIEW_PORTFOLIO}),
    Role.ACCOUNTANT: frozenset(
        {
            Capability.RECORD_PAYMENT,
            Capability.AUTO_APPROVE_PAYMENT,
            Capability.APPROVE_PAYMENT,
            Capability.CREATE_LOAN,
            Capability.DECIDE_LOAN,
            Capability.EDIT_SCHEDULE,
            Capability.VIEW_PORTFOLIO,
        }
    ),
    Role.ADMIN: frozenset(
        {
            Capability.RECORD_PAYMENT,
            Capability.APPROVE_PAYMENT,
            Capability.CREATE_LOAN,
            Capability.DECIDE_LOAN,
            Capability.EDIT_SCHEDULE,
            Capability.VIEW_PORTFOLIO,
        }
    ),
}


@dataclass(frozen=True)
class Actor:
    """Caller identity, passed explicitly to every capability-gated operation"""

    id: str
    name: str
    role: Role


def parse_role(value: str | Role) -> Role:
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value).upper())
    except ValueError as e:
        raise ValidationError(f"Unknown role: {value}") from e


def has_capability(role: Role | str, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES[parse_role(role)]


def require_capability(role: Role | str, capability: Capability) -> None:
    """
    Raises:
        AuthorizationError: If the role does not hold the capability
    """
    if not has_capability(role, capability):
        raise AuthorizationError(f"Role {parse_role(role).value} may not {capability.value.replace('_', ' ')}")


def portfolio_scope(actor: Actor, requested_assignee: str | None = None) -> str | None:
    """
    Resolve which assignee a portfolio read is restricted to.

    Cashiers only ever see their own assignments, whatever they ask for.
    Returns None for an unscoped read.
    """
    require_capability(actor.role, Capability.VIEW_PORTFOLIO)
    if actor.role == Role.CASHIER:
        return actor.id
    return requested_assignee


def check_assigned_cashier(actor: Actor, assigned_cashier_id: str) -> None:
    """
    Cashiers only read and collect on loans assigned to them.

    Raises:
        AuthorizationError: Cashier acting on another cashier's loan
    """
    if actor.role == Role.CASHIER and actor.id != assigned_cashier_id:
        raise AuthorizationError(f"Cashier {actor.id} is not assigned to this loan")


def check_cashier_assignment(cashier_id: str, directory_role: Role | None) -> None:
    """
    A loan can only be assigned to a user the directory knows as a cashier.

    Raises:
        ValidationError: Unknown user or user is not a cashier
    """
    if directory_role is None:
        raise ValidationError(f"Assigned cashier {cashier_id} does not exist")
    if directory_role != Role.CASHIER:
        raise ValidationError(f"User {cashier_id} is not a cashier")
