"""Pydantic schemas for API request/response validation (camelCase wire contract)"""

from datetime import date, datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Annotated, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

from coop_lending.domain.models import (
    AdherenceRow,
    AdherenceSummary,
    Loan,
    LoanStatus,
    Payment,
    PaymentStatus,
    PortfolioStats,
    RegisterEntry,
    RegisterStats,
    Schedule,
)
from coop_lending.services.loans import LoanView

# Decimal internally, plain JSON number on the wire
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

RATE_PRECISION = Decimal("0.0001")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaymentRecord(CamelModel):
    """Payment as exchanged with consumers"""

    id: str
    amount: Amount
    payment_by: str
    paid_at: datetime
    status: PaymentStatus

    @classmethod
    def from_domain(cls, payment: Payment) -> "PaymentRecord":
        return cls(
            id=payment.id,
            amount=payment.amount,
            payment_by=payment.recorded_by,
            paid_at=payment.paid_at,
            status=payment.status,
        )


class LoanRecord(CamelModel):
    """Loan as exchanged with consumers; derived fields are computed at read time"""

    id: str
    user_id: str
    full_name: str
    loan_id: str
    loan_amount: Amount
    daily_payment: Amount
    start_date: datetime
    expect_date: datetime
    remaining_days: int
    unpaid_loan: Amount
    paid_loan: Amount
    status: LoanStatus
    requested_amount: Amount
    deduction: Amount
    actual_amount: Amount
    total_to_pay: Amount
    assigned_cashier: str
    payments: List[PaymentRecord] = Field(default_factory=list)

    @classmethod
    def from_view(cls, view: LoanView) -> "LoanRecord":
        loan = view.loan
        schedule = loan.schedule
        return cls(
            id=loan.id,
            user_id=loan.borrower_id,
            full_name=loan.borrower_name,
            loan_id=loan.loan_code,
            loan_amount=schedule.requested_amount,
            daily_payment=schedule.daily_payment,
            start_date=schedule.start_date,
            expect_date=schedule.expected_end_date,
            remaining_days=view.balance.remaining_days,
            unpaid_loan=view.balance.unpaid_amount,
            paid_loan=view.balance.paid_amount,
            status=view.status,
            requested_amount=schedule.requested_amount,
            deduction=schedule.deduction_amount,
            actual_amount=schedule.disbursed_amount,
            total_to_pay=schedule.total_payable,
            assigned_cashier=loan.assigned_cashier_id,
            payments=[PaymentRecord.from_domain(p) for p in loan.payments],
        )

    def to_domain(self) -> Loan:
        """
        Rebuild the domain loan from a wire record.

        Derived statuses collapse back to the stored review decision. The record
        carries no rate, so the deduction rate is recovered from the rounded
        amounts and is only approximate; rounding it to four places gives back
        configured rates such as 0.10 or 0.15.
        """
        stored_status = (
            LoanStatus.APPROVED
            if self.status in (LoanStatus.COMPLETED, LoanStatus.OVERDUE)
            else self.status
        )
        return Loan(
            id=self.id,
            loan_code=self.loan_id,
            borrower_id=self.user_id,
            borrower_name=self.full_name,
            assigned_cashier_id=self.assigned_cashier,
            schedule=Schedule(
                requested_amount=self.requested_amount,
                deduction_rate=(self.deduction / self.requested_amount).quantize(RATE_PRECISION, rounding=ROUND_HALF_UP),
                deduction_amount=self.deduction,
                disbursed_amount=self.actual_amount,
                daily_payment=self.daily_payment,
                total_payable=self.total_to_pay,
                term_days=(self.expect_date - self.start_date).days,
                start_date=self.start_date,
                expected_end_date=self.expect_date,
            ),
            status=stored_status,
            payments=[
                Payment(
                    id=p.id,
                    loan_id=self.id,
                    amount=p.amount,
                    recorded_by=p.payment_by,
                    paid_at=p.paid_at,
                    status=p.status,
                )
                for p in self.payments
            ],
        )


class CreateLoanRequest(CamelModel):
    """Request body for POST /v1/loans"""

    user_id: str = Field(..., min_length=1, description="Borrower identifier")
    full_name: str = Field(..., min_length=1, description="Borrower full name")
    loan_amount: Decimal = Field(..., gt=0, description="Requested principal")
    assigned_cashier: str = Field(..., min_length=1, description="Cashier collecting repayments")
    start_date: Optional[datetime] = None


class PatchLoanRequest(CamelModel):
    """
    Request body for PATCH /v1/loans/{id}.

    Only the principal, start date and review decision are accepted; derived
    amounts sent by older clients are ignored and recomputed.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    requested_amount: Optional[Decimal] = None
    start_date: Optional[datetime] = None
    status: Optional[str] = None


class CreatePaymentRequest(CamelModel):
    """Request body for POST /v1/payments"""

    loan_id: str = Field(..., min_length=1, description="Loan system identifier")
    amount: Decimal
    payment_by: Optional[str] = None


class PatchPaymentRequest(CamelModel):
    """Request body for PATCH /v1/payments/{id}"""

    status: Literal["APPROVED"]


class DashboardResponse(CamelModel):
    total_loans: int
    total_daily_expected: Amount
    today_collected: Amount
    pending_approval_amount: Amount
    scope: str

    @classmethod
    def from_domain(cls, stats: PortfolioStats) -> "DashboardResponse":
        return cls(
            total_loans=stats.total_loans,
            total_daily_expected=stats.total_daily_expected,
            today_collected=stats.today_collected,
            pending_approval_amount=stats.pending_approval_amount,
            scope=stats.scope,
        )


class BalanceResponse(CamelModel):
    """Response for GET /v1/loans/{id}/balance"""

    id: str
    loan_id: str
    as_of: date
    status: LoanStatus
    paid_amount: Amount
    pending_amount: Amount
    unpaid_amount: Amount
    scheduled_unpaid_amount: Amount
    remaining_days: int
    is_paid_off: bool
    days_elapsed: int
    days_expected_paid: int
    unpaid_days: int
    adherence: str
    paid_on_date: Amount

    @classmethod
    def from_view(cls, view: LoanView) -> "BalanceResponse":
        return cls(
            id=view.loan.id,
            loan_id=view.loan.loan_code,
            as_of=view.overdue.reference_date,
            status=view.status,
            paid_amount=view.balance.paid_amount,
            pending_amount=view.balance.pending_amount,
            unpaid_amount=view.balance.unpaid_amount,
            scheduled_unpaid_amount=view.balance.scheduled_unpaid_amount,
            remaining_days=view.balance.remaining_days,
            is_paid_off=view.balance.is_paid_off,
            days_elapsed=view.overdue.days_elapsed,
            days_expected_paid=view.overdue.days_expected_paid,
            unpaid_days=view.overdue.unpaid_days,
            adherence=view.overdue.adherence.value,
            paid_on_date=view.paid_on_date,
        )


class AdherenceItem(CamelModel):
    id: str
    loan_id: str
    full_name: str
    status: LoanStatus
    days_since_start: int
    days_should_have_paid: int
    unpaid_days: int
    adherence: str

    @classmethod
    def from_domain(cls, row: AdherenceRow) -> "AdherenceItem":
        return cls(
            id=row.loan.id,
            loan_id=row.loan.loan_code,
            full_name=row.loan.borrower_name,
            status=row.status,
            days_since_start=row.report.days_elapsed,
            days_should_have_paid=row.report.days_expected_paid,
            unpaid_days=row.report.unpaid_days,
            adherence=row.report.adherence.value,
        )


class AdherenceCounts(CamelModel):
    overdue: int
    on_track: int
    ahead: int


class AdherenceReportResponse(CamelModel):
    """Response for GET /v1/reports/adherence"""

    as_of: date
    summary: AdherenceCounts
    loans: List[AdherenceItem]

    @classmethod
    def from_domain(cls, as_of: date, rows: List[AdherenceRow], summary: AdherenceSummary) -> "AdherenceReportResponse":
        return cls(
            as_of=as_of,
            summary=AdherenceCounts(overdue=summary.overdue, on_track=summary.on_track, ahead=summary.ahead),
            loans=[AdherenceItem.from_domain(r) for r in rows],
        )


class RegisterItem(CamelModel):
    id: str
    loan_id: str
    borrower_name: str
    amount: Amount
    payment_by: str
    paid_at: datetime
    status: PaymentStatus

    @classmethod
    def from_domain(cls, entry: RegisterEntry) -> "RegisterItem":
        return cls(
            id=entry.payment.id,
            loan_id=entry.loan_code,
            borrower_name=entry.borrower_name,
            amount=entry.payment.amount,
            payment_by=entry.payment.recorded_by,
            paid_at=entry.payment.paid_at,
            status=entry.payment.status,
        )


class RegisterStatsSchema(CamelModel):
    total_amount: Amount
    average_amount: Amount
    total_payments: int


class RegisterResponse(CamelModel):
    """Response for GET /v1/payments"""

    payments: List[RegisterItem]
    stats: RegisterStatsSchema

    @classmethod
    def from_domain(cls, entries: List[RegisterEntry], stats: RegisterStats) -> "RegisterResponse":
        return cls(
            payments=[RegisterItem.from_domain(e) for e in entries],
            stats=RegisterStatsSchema(
                total_amount=stats.total_amount,
                average_amount=stats.average_amount,
                total_payments=stats.total_payments,
            ),
        )
