"""Portfolio roll-ups: dashboard totals, adherence report and payment register"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from coop_lending.domain import ledger, overdue, status
from coop_lending.domain.models import (
    Adherence,
    AdherenceRow,
    AdherenceSummary,
    Loan,
    LoanStatus,
    PortfolioStats,
    RegisterEntry,
    RegisterStats,
)
from coop_lending.utils.date_utils import to_calendar_date
from coop_lending.utils.money import ZERO, quantize, total

ACTIVE_STATUSES = frozenset({LoanStatus.APPROVED, LoanStatus.OVERDUE})


def scope_loans(loans: Iterable[Loan], assignee_id: Optional[str] = None) -> List[Loan]:
    """Restrict loans to one assigned cashier (no restriction when assignee_id is None)"""
    if assignee_id is None:
        return list(loans)
    return [loan for loan in loans if loan.assigned_cashier_id == assignee_id]


def aggregate_portfolio(
    loans: Iterable[Loan],
    today: date | datetime,
    assignee_id: Optional[str] = None,
    tz_name: str = "UTC",
) -> PortfolioStats:
    """
    Dashboard statistics for the loans an actor may see.

    Scoping happens first so every total is computed from in-scope loans only:
    - total_loans: count of in-scope loans
    - total_daily_expected: daily payments of non-terminal loans
    - today_collected: approved payments dated today
    - pending_approval_amount: payments awaiting approval
    """
    in_scope = scope_loans(loans, assignee_id)

    daily_expected = ZERO
    collected = ZERO
    pending = ZERO
    for loan in in_scope:
        if not status.is_terminal(status.derive_status(loan, today, tz_name)):
            daily_expected += loan.schedule.daily_payment
        collected += overdue.paid_on_date(loan.payments, today, tz_name)
        pending += total(p.amount for p in ledger.pending(loan.payments))

    return PortfolioStats(
        total_loans=len(in_scope),
        total_daily_expected=daily_expected,
        today_collected=collected,
        pending_approval_amount=pending,
        scope="assigned" if assignee_id is not None else "total",
    )


def adherence_report(
    loans: Iterable[Loan],
    as_of: date | datetime,
    tz_name: str = "UTC",
) -> Tuple[List[AdherenceRow], AdherenceSummary]:
    """
    Per-loan schedule adherence as of an operator-chosen date.

    Only loans that are active on that date are reported; pending, denied and
    completed loans have no schedule to fall behind on.
    """
    rows = []
    for loan in loans:
        current = status.derive_status(loan, as_of, tz_name)
        if current not in ACTIVE_STATUSES:
            continue
        rows.append(AdherenceRow(loan=loan, status=current, report=overdue.analyze(loan, as_of, tz_name)))

    summary = AdherenceSummary(
        overdue=sum(1 for r in rows if r.report.adherence == Adherence.BEHIND),
        on_track=sum(1 for r in rows if r.report.adherence == Adherence.ON_TRACK),
        ahead=sum(1 for r in rows if r.report.adherence == Adherence.AHEAD),
    )
    return rows, summary


def register_entries(loans: Iterable[Loan]) -> List[RegisterEntry]:
    """Flatten loan ledgers into one register, newest payment first"""
    entries = [
        RegisterEntry(
            payment=payment,
            loan_code=loan.loan_code,
            borrower_name=loan.borrower_name,
            assigned_cashier_id=loan.assigned_cashier_id,
        )
        for loan in loans
        for payment in loan.payments
    ]
    entries.sort(key=lambda e: e.payment.paid_at, reverse=True)
    return entries


def filter_register(
    entries: Iterable[RegisterEntry],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    recorded_by: Optional[str] = None,
    search: Optional[str] = None,
    tz_name: str = "UTC",
) -> List[RegisterEntry]:
    """
    Filter register entries.

    Date bounds are inclusive calendar days. Search matches loan code or
    borrower name, case-insensitive.
    """
    needle = search.lower() if search else None
    result = []
    for entry in entries:
        paid_day = to_calendar_date(entry.payment.paid_at, tz_name)
        if start_date and paid_day < start_date:
            continue
        if end_date and paid_day > end_date:
            continue
        if recorded_by and entry.payment.recorded_by != recorded_by:
            continue
        if needle and needle not in entry.loan_code.lower() and needle not in entry.borrower_name.lower():
            continue
        result.append(entry)
    return result


def register_stats(entries: Iterable[RegisterEntry]) -> RegisterStats:
    amounts = [p.amount for p in ledger.approved(e.payment for e in entries)]
    count = len(amounts)
    amount_sum = total(amounts)
    average: Decimal = quantize(amount_sum / count) if count else ZERO
    return RegisterStats(total_amount=amount_sum, average_amount=average, total_payments=count)
