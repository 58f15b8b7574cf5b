"""Payment ledger rules: recording and approving repayment events"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List

from coop_lending.domain.exceptions import StateError, ValidationError
from coop_lending.domain.models import Payment, PaymentStatus
from coop_lending.domain.roles import Capability, Role, has_capability, require_capability
from coop_lending.utils.date_utils import ensure_aware, utc_now
from coop_lending.utils.money import MINOR_UNIT, quantize, to_decimal


def new_payment(
    loan_id: str,
    amount: Decimal | int | float | str,
    recorded_by: str,
    actor_role: Role | str,
    paid_at: datetime | None = None,
) -> Payment:
    """
    Build a payment event for a loan's ledger.

    Front-line collectors submit payments for review (PENDING); roles holding
    the reconciliation capability post them already APPROVED.

    Raises:
        ValidationError: Amount under one minor unit after rounding, or missing identifiers
        AuthorizationError: Role may not record payments at all
    """
    if not loan_id:
        raise ValidationError("Loan id is required")
    if not recorded_by:
        raise ValidationError("Payment must name who recorded it")
    try:
        value = quantize(to_decimal(amount))
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if value <= 0:
        raise ValidationError(f"Payment amount must be at least {MINOR_UNIT}")

    require_capability(actor_role, Capability.RECORD_PAYMENT)
    auto_approved = has_capability(actor_role, Capability.AUTO_APPROVE_PAYMENT)

    return Payment(
        id=str(uuid.uuid4()),
        loan_id=loan_id,
        amount=value,
        recorded_by=recorded_by,
        paid_at=ensure_aware(paid_at) if paid_at else utc_now(),
        status=PaymentStatus.APPROVED if auto_approved else PaymentStatus.PENDING,
        approved_by=recorded_by if auto_approved else None,
    )


def check_approvable(payment: Payment, approver_role: Role | str) -> None:
    """
    Gate a PENDING → APPROVED transition.

    Approval is not idempotent: approving an approved payment is an error.

    Raises:
        AuthorizationError: Role lacks the approval capability
        StateError: Payment is already approved
    """
    require_capability(approver_role, Capability.APPROVE_PAYMENT)
    if payment.status == PaymentStatus.APPROVED:
        raise StateError(f"Payment {payment.id} is already approved")


def approved(payments: Iterable[Payment]) -> List[Payment]:
    return [p for p in payments if p.status == PaymentStatus.APPROVED]


def pending(payments: Iterable[Payment]) -> List[Payment]:
    return [p for p in payments if p.status == PaymentStatus.PENDING]
