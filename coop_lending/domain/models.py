"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class LoanStatus(str, Enum):
    """Loan lifecycle states"""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DENIED = "DENIED"
    COMPLETED = "COMPLETED"
    OVERDUE = "OVERDUE"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"


class Adherence(str, Enum):
    """Position of a loan relative to its daily repayment schedule"""

    BEHIND = "BEHIND"
    ON_TRACK = "ON_TRACK"
    AHEAD = "AHEAD"


@dataclass(frozen=True)
class Schedule:
    """
    Repayment terms fixed at origination.

    Frozen: an authorized edit replaces the whole schedule, never single fields.
    """

    requested_amount: Decimal
    deduction_rate: Decimal
    deduction_amount: Decimal
    disbursed_amount: Decimal
    daily_payment: Decimal
    total_payable: Decimal
    term_days: int
    start_date: datetime
    expected_end_date: datetime


@dataclass
class Payment:
    """Single repayment event in a loan's ledger"""

    id: str
    loan_id: str  # Loan.id, not the human-readable code
    amount: Decimal
    recorded_by: str
    paid_at: datetime
    status: PaymentStatus = PaymentStatus.PENDING
    approved_by: Optional[str] = None


@dataclass
class Loan:
    """One origination of credit with its payment ledger"""

    id: str
    loan_code: str  # LOAN-######
    borrower_id: str
    borrower_name: str
    assigned_cashier_id: str
    schedule: Schedule
    status: LoanStatus = LoanStatus.PENDING  # Stored review decision; see status.derive_status
    payments: List[Payment] = field(default_factory=list)


@dataclass
class BalanceSummary:
    """Ledger-derived financial position of a loan"""

    paid_amount: Decimal
    pending_amount: Decimal
    unpaid_amount: Decimal  # total_payable - paid_amount, authoritative
    scheduled_unpaid_amount: Decimal  # remaining_days * daily_payment, legacy display figure
    days_covered: int
    remaining_days: int
    is_paid_off: bool


@dataclass
class OverdueReport:
    """Calendar adherence of a loan as of a reference date"""

    reference_date: date
    days_elapsed: int
    days_expected_paid: int
    unpaid_days: int
    adherence: Adherence

    @property
    def overdue_days(self) -> int:
        return max(self.unpaid_days, 0)

    @property
    def days_ahead(self) -> int:
        return max(-self.unpaid_days, 0)


@dataclass
class PortfolioStats:
    """Dashboard totals over the loans visible to one actor"""

    total_loans: int
    total_daily_expected: Decimal
    today_collected: Decimal
    pending_approval_amount: Decimal
    scope: str  # "assigned" or "total"


@dataclass
class AdherenceRow:
    loan: Loan
    status: LoanStatus
    report: OverdueReport


@dataclass
class AdherenceSummary:
    overdue: int
    on_track: int
    ahead: int


@dataclass
class RegisterEntry:
    """Payment joined with the loan it belongs to"""

    payment: Payment
    loan_code: str
    borrower_name: str
    assigned_cashier_id: str


@dataclass
class RegisterStats:
    """Totals over the approved entries of a payment register"""

    total_amount: Decimal
    average_amount: Decimal
    total_payments: int
