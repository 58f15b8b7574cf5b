"""
Loan use cases: origination, lookup, review decisions and schedule edits.

Every read returns a LoanView whose status and balances are derived from the
schedule and ledger at read time; nothing derived is stored.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from coop_lending.config import Settings, settings
from coop_lending.domain import balance, overdue, status
from coop_lending.domain.exceptions import AuthorizationError, NotFoundError, StateError, ValidationError
from coop_lending.domain.models import BalanceSummary, Loan, LoanStatus, OverdueReport
from coop_lending.domain.roles import (
    Actor,
    Capability,
    Role,
    check_assigned_cashier,
    portfolio_scope,
    require_capability,
)
from coop_lending.domain.schedule import calculate_schedule
from coop_lending.infrastructure.database.repositories import LoanRepository
from coop_lending.infrastructure.observability.logging import log_loan_event
from coop_lending.infrastructure.observability.metrics import loan_decision_counter, loans_created_counter
from coop_lending.services.transaction import atomic
from coop_lending.utils.date_utils import utc_now


@dataclass
class LoanView:
    """A loan together with everything derived from it for one reference date"""

    loan: Loan
    status: LoanStatus
    balance: BalanceSummary
    overdue: OverdueReport
    paid_on_date: Decimal


def build_view(loan: Loan, reference: date | datetime, tz_name: str) -> LoanView:
    return LoanView(
        loan=loan,
        status=status.derive_status(loan, reference, tz_name),
        balance=balance.summarize(loan),
        overdue=overdue.analyze(loan, reference, tz_name),
        paid_on_date=overdue.paid_on_date(loan.payments, reference, tz_name),
    )


def check_can_read(actor: Actor, loan: Loan) -> None:
    """Borrowers may only read their own loan, cashiers only loans assigned to them"""
    if actor.role == Role.BORROWER and loan.borrower_id != actor.id:
        raise AuthorizationError("Borrowers may only view their own loan")
    check_assigned_cashier(actor, loan.assigned_cashier_id)


class LoanService:
    """Loan origination and maintenance"""

    def __init__(self, db: Session, config: Settings = settings):
        self.db = db
        self.config = config
        self.loans = LoanRepository(db)

    def _view(self, loan: Loan, reference: date | datetime | None = None) -> LoanView:
        return build_view(loan, reference or utc_now(), self.config.business_timezone)

    def create_loan(
        self,
        actor: Actor,
        borrower_id: str,
        borrower_name: str,
        requested_amount: Decimal,
        assigned_cashier_id: str,
        start_date: datetime | None = None,
    ) -> LoanView:
        """
        Originate a PENDING loan with a freshly computed schedule.

        Raises:
            AuthorizationError: Actor may not create loans
            ValidationError: Missing party identifiers or invalid principal
            LoanCodeExhaustedError: No unused loan code could be generated
        """
        require_capability(actor.role, Capability.CREATE_LOAN)
        if not borrower_id or not borrower_name:
            raise ValidationError("Borrower id and name are required")
        if not assigned_cashier_id:
            raise ValidationError("An assigned cashier is required")

        schedule = calculate_schedule(requested_amount, self.config.deduction_rate, start_date or utc_now())

        with atomic(self.db):
            loan = self.loans.create_loan(
                borrower_id=borrower_id,
                borrower_name=borrower_name,
                assigned_cashier_id=assigned_cashier_id,
                schedule=schedule,
                max_attempts=self.config.loan_code_max_attempts,
            )

        loans_created_counter.inc()
        log_loan_event(
            "created",
            loan.id,
            loan.loan_code,
            actor.id,
            requested_amount=schedule.requested_amount,
            assigned_cashier_id=assigned_cashier_id,
        )
        return self._view(loan)

    def get_loan(self, actor: Actor, loan_id: str, reference: date | datetime | None = None) -> LoanView:
        loan = self.loans.get_loan(loan_id)
        check_can_read(actor, loan)
        return self._view(loan, reference)

    def get_borrower_loan(self, actor: Actor, borrower_id: str) -> LoanView:
        """Most recent loan of a borrower"""
        if actor.role == Role.BORROWER and actor.id != borrower_id:
            raise AuthorizationError("Borrowers may only view their own loan")
        loan = self.loans.find_by_borrower(borrower_id)
        if loan is None:
            raise NotFoundError(f"No loan found for borrower {borrower_id}")
        check_can_read(actor, loan)
        return self._view(loan)

    def list_loans(self, actor: Actor, assignee_id: Optional[str] = None) -> List[LoanView]:
        """Loans visible to the actor; cashiers are always scoped to their own"""
        scope = portfolio_scope(actor, assignee_id)
        now = utc_now()
        return [self._view(loan, now) for loan in self.loans.list_loans(scope)]

    def edit_loan(
        self,
        actor: Actor,
        loan_id: str,
        requested_amount: Decimal | None = None,
        start_date: datetime | None = None,
        new_status: LoanStatus | str | None = None,
    ) -> LoanView:
        """
        Apply an authorized schedule edit and/or review decision.

        A schedule edit recomputes every dependent amount from the principal
        with the configured deduction rate and writes them as one unit. Both
        parts of a patch commit together or not at all.

        Raises:
            ValidationError: Empty patch, bad principal or non-decision status
            AuthorizationError: Actor lacks the edit or decision capability
            StateError: Loan is terminal or already decided
        """
        if requested_amount is None and start_date is None and new_status is None:
            raise ValidationError("Nothing to update")

        tz_name = self.config.business_timezone
        with atomic(self.db):
            loan = self.loans.get_loan(loan_id)

            if requested_amount is not None or start_date is not None:
                status.check_schedule_editable(loan, actor.role, utc_now(), tz_name)
                schedule = calculate_schedule(
                    requested_amount if requested_amount is not None else loan.schedule.requested_amount,
                    self.config.deduction_rate,
                    start_date or loan.schedule.start_date,
                )
                self.loans.replace_schedule(loan.id, schedule)
                log_loan_event(
                    "schedule_edited",
                    loan.id,
                    loan.loan_code,
                    actor.id,
                    requested_amount=schedule.requested_amount,
                    total_payable=schedule.total_payable,
                )

            if new_status is not None:
                target = status.check_decision(loan, new_status, actor.role)
                if not self.loans.decide(loan.id, target, actor.id):
                    raise StateError(f"Loan {loan.loan_code} was decided concurrently")
                loan_decision_counter.labels(outcome=target.value).inc()
                log_loan_event("decided", loan.id, loan.loan_code, actor.id, decision=target.value)

        return self._view(self.loans.get_loan(loan_id))
