"""Ledger use cases: recording and approving payments"""

import dataclasses
from typing import Optional

from sqlalchemy.orm import Session

from coop_lending.config import Settings, settings
from coop_lending.domain import ledger
from coop_lending.domain.exceptions import AuthorizationError, StateError
from coop_lending.domain.models import Payment, PaymentStatus
from coop_lending.domain.roles import Actor, Role, check_assigned_cashier
from coop_lending.infrastructure.database.repositories import LoanRepository, PaymentRepository
from coop_lending.infrastructure.observability.logging import log_payment_event
from coop_lending.infrastructure.observability.metrics import payment_approval_counter, record_payment
from coop_lending.services.transaction import atomic
from coop_lending.utils.date_utils import utc_now


class PaymentService:
    """
    Append-only payment ledger.

    recordPayment is not idempotent: a retried call posts a second payment.
    Callers that retry must deduplicate upstream.
    """

    def __init__(self, db: Session, config: Settings = settings):
        self.db = db
        self.config = config
        self.loans = LoanRepository(db)
        self.payments = PaymentRepository(db)

    def record_payment(self, loan_id: str, amount, actor: Actor, recorded_by: Optional[str] = None) -> Payment:
        """
        Append a payment to a loan's ledger.

        recorded_by defaults to the actor's display name.

        Raises:
            ValidationError: Amount under one minor unit or missing identifiers
            AuthorizationError: Role may not record payments, or cashier is not assigned to the loan
            NotFoundError: Loan does not exist
        """
        recorded_by = recorded_by or actor.name
        payment = ledger.new_payment(loan_id, amount, recorded_by, actor.role)

        with atomic(self.db):
            loan = self.loans.get_loan(loan_id)
            check_assigned_cashier(actor, loan.assigned_cashier_id)
            stored = self.payments.add_payment(payment)

        record_payment(stored.status, stored.amount)
        log_payment_event("recorded", stored.id, stored.loan_id, stored.amount, stored.status.value, recorded_by)
        return stored

    def approve_payment(self, payment_id: str, approver_role: Role | str, approver: str = "") -> Payment:
        """
        Flip a PENDING payment to APPROVED, irreversibly.

        Raises:
            NotFoundError: Payment does not exist
            AuthorizationError: Role lacks the approval capability
            StateError: Payment already approved, including by a concurrent call
        """
        with atomic(self.db):
            payment = self.payments.get_payment(payment_id)
            try:
                ledger.check_approvable(payment, approver_role)
            except AuthorizationError:
                payment_approval_counter.labels(outcome="rejected_auth").inc()
                raise
            except StateError:
                payment_approval_counter.labels(outcome="rejected_state").inc()
                raise

            if not self.payments.approve(payment.id, approver, utc_now()):
                payment_approval_counter.labels(outcome="rejected_state").inc()
                raise StateError(f"Payment {payment.id} is already approved")

        payment_approval_counter.labels(outcome="approved").inc()
        log_payment_event("approved", payment.id, payment.loan_id, payment.amount, PaymentStatus.APPROVED.value, approver)
        return dataclasses.replace(payment, status=PaymentStatus.APPROVED, approved_by=approver)
