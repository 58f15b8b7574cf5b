"""Data access layer for loans and payments"""

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from coop_lending.domain.exceptions import LoanCodeExhaustedError, NotFoundError, ValidationError
from coop_lending.domain.models import Loan, LoanStatus, Payment, PaymentStatus, Schedule
from coop_lending.domain.schedule import generate_loan_code
from coop_lending.infrastructure.database.models import LoanRecord, PaymentRecord
from coop_lending.infrastructure.observability.metrics import loan_code_collision_counter
from coop_lending.utils.date_utils import ensure_aware

logger = logging.getLogger(__name__)


def parse_id(value: str, kind: str) -> uuid.UUID:
    """Raises ValidationError for identifiers that are not UUIDs"""
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise ValidationError(f"Invalid {kind} ID format") from e


def to_domain_payment(record: PaymentRecord) -> Payment:
    return Payment(
        id=str(record.id),
        loan_id=str(record.loan_id),
        amount=record.amount,
        recorded_by=record.recorded_by,
        paid_at=ensure_aware(record.paid_at),
        status=PaymentStatus(record.status),
        approved_by=record.approved_by,
    )


def to_domain_loan(record: LoanRecord) -> Loan:
    return Loan(
        id=str(record.id),
        loan_code=record.loan_code,
        borrower_id=record.borrower_id,
        borrower_name=record.borrower_name,
        assigned_cashier_id=record.assigned_cashier_id,
        schedule=Schedule(
            requested_amount=record.requested_amount,
            deduction_rate=record.deduction_rate,
            deduction_amount=record.deduction_amount,
            disbursed_amount=record.disbursed_amount,
            daily_payment=record.daily_payment,
            total_payable=record.total_payable,
            term_days=record.term_days,
            start_date=ensure_aware(record.start_date),
            expected_end_date=ensure_aware(record.expected_end_date),
        ),
        status=LoanStatus(record.status),
        payments=[to_domain_payment(p) for p in record.payments],
    )


def schedule_columns(schedule: Schedule) -> dict:
    """All schedule columns, so writes never touch a subset"""
    return {
        "requested_amount": schedule.requested_amount,
        "deduction_rate": schedule.deduction_rate,
        "deduction_amount": schedule.deduction_amount,
        "disbursed_amount": schedule.disbursed_amount,
        "daily_payment": schedule.daily_payment,
        "total_payable": schedule.total_payable,
        "term_days": schedule.term_days,
        "start_date": schedule.start_date,
        "expected_end_date": schedule.expected_end_date,
    }


class LoanRepository:
    """Repository for loans"""

    def __init__(self, db: Session):
        self.db = db

    def create_loan(
        self,
        borrower_id: str,
        borrower_name: str,
        assigned_cashier_id: str,
        schedule: Schedule,
        max_attempts: int,
        code_factory: Callable[[], str] = generate_loan_code,
    ) -> Loan:
        """
        Persist a new PENDING loan under a fresh, unused loan code.

        Codes are random, so each candidate is checked and the insert retried
        on collision, including a concurrent insert racing on the unique index.

        Raises:
            LoanCodeExhaustedError: No free code after max_attempts
        """
        for attempt in range(1, max_attempts + 1):
            code = code_factory()
            if self._code_taken(code):
                loan_code_collision_counter.inc()
                logger.warning("Loan code collision", extra={"loan_code": code, "attempt": attempt})
                continue

            record = LoanRecord(
                loan_code=code,
                borrower_id=borrower_id,
                borrower_name=borrower_name,
                assigned_cashier_id=assigned_cashier_id,
                status=LoanStatus.PENDING.value,
                schedule_version=1,
                **schedule_columns(schedule),
            )
            self.db.add(record)
            try:
                self.db.flush()  # Get ID and hit the unique index without committing
            except IntegrityError:
                self.db.rollback()
                loan_code_collision_counter.inc()
                logger.warning("Loan code insert race", extra={"loan_code": code, "attempt": attempt})
                continue
            return to_domain_loan(record)

        raise LoanCodeExhaustedError(f"No unused loan code after {max_attempts} attempts")

    def _code_taken(self, code: str) -> bool:
        return self.db.query(LoanRecord.id).filter(LoanRecord.loan_code == code).first() is not None

    def get_loan(self, loan_id: str) -> Loan:
        """Fetch loan with its ledger in one statement"""
        record = (
            self.db.query(LoanRecord)
            .options(joinedload(LoanRecord.payments))
            .filter(LoanRecord.id == parse_id(loan_id, "loan"))
            .first()
        )
        if record is None:
            raise NotFoundError(f"Loan {loan_id} not found")
        return to_domain_loan(record)

    def find_by_borrower(self, borrower_id: str) -> Optional[Loan]:
        """Most recent loan of a borrower"""
        record = (
            self.db.query(LoanRecord)
            .options(joinedload(LoanRecord.payments))
            .filter(LoanRecord.borrower_id == borrower_id)
            .order_by(LoanRecord.start_date.desc(), LoanRecord.created_at.desc())
            .first()
        )
        return to_domain_loan(record) if record else None

    def list_loans(self, assignee_id: Optional[str] = None) -> List[Loan]:
        """
        Fetch loans with payments, optionally restricted to one cashier.

        The assignee filter is part of the query, so unscoped rows are never loaded.
        """
        query = self.db.query(LoanRecord).options(joinedload(LoanRecord.payments))
        if assignee_id is not None:
            query = query.filter(LoanRecord.assigned_cashier_id == assignee_id)
        records = query.order_by(LoanRecord.start_date.desc()).all()
        return [to_domain_loan(r) for r in records]

    def replace_schedule(self, loan_id: str, schedule: Schedule) -> None:
        """Overwrite every schedule column in a single UPDATE"""
        values = schedule_columns(schedule)
        values["schedule_version"] = LoanRecord.schedule_version + 1
        updated = (
            self.db.query(LoanRecord)
            .filter(LoanRecord.id == parse_id(loan_id, "loan"))
            .update(values, synchronize_session=False)
        )
        if updated == 0:
            raise NotFoundError(f"Loan {loan_id} not found")

    def decide(self, loan_id: str, new_status: LoanStatus, decided_by: str) -> bool:
        """
        Compare-and-set the review decision from PENDING.

        Returns False when another caller decided the loan first.
        """
        updated = (
            self.db.query(LoanRecord)
            .filter(
                LoanRecord.id == parse_id(loan_id, "loan"),
                LoanRecord.status == LoanStatus.PENDING.value,
            )
            .update({"status": new_status.value, "decided_by": decided_by}, synchronize_session=False)
        )
        return updated == 1


class PaymentRepository:
    """Repository for ledger entries"""

    def __init__(self, db: Session):
        self.db = db

    def add_payment(self, payment: Payment) -> Payment:
        """Append a payment; existing rows are never rewritten here"""
        record = PaymentRecord(
            id=parse_id(payment.id, "payment"),
            loan_id=parse_id(payment.loan_id, "loan"),
            amount=payment.amount,
            recorded_by=payment.recorded_by,
            paid_at=payment.paid_at,
            status=payment.status.value,
            approved_by=payment.approved_by,
            approved_at=payment.paid_at if payment.status == PaymentStatus.APPROVED else None,
        )
        self.db.add(record)
        self.db.flush()
        return to_domain_payment(record)

    def get_payment(self, payment_id: str) -> Payment:
        record = self.db.query(PaymentRecord).filter(PaymentRecord.id == parse_id(payment_id, "payment")).first()
        if record is None:
            raise NotFoundError(f"Payment {payment_id} not found")
        return to_domain_payment(record)

    def approve(self, payment_id: str, approved_by: str, approved_at: datetime) -> bool:
        """
        Compare-and-set PENDING → APPROVED in one conditional UPDATE.

        Returns False if the row was no longer PENDING, so of two concurrent
        approvals exactly one succeeds.
        """
        updated = (
            self.db.query(PaymentRecord)
            .filter(
                PaymentRecord.id == parse_id(payment_id, "payment"),
                PaymentRecord.status == PaymentStatus.PENDING.value,
            )
            .update(
                {
                    "status": PaymentStatus.APPROVED.value,
                    "approved_by": approved_by,
                    "approved_at": approved_at,
                },
                synchronize_session=False,
            )
        )
        return updated == 1
