"""Calendar adherence: elapsed days versus days paid for"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable

from coop_lending.domain import balance, ledger
from coop_lending.domain.models import Adherence, Loan, OverdueReport, Payment
from coop_lending.utils.date_utils import days_between, same_calendar_day, to_calendar_date, utc_now
from coop_lending.utils.money import total


def classify(unpaid_days: int) -> Adherence:
    if unpaid_days > 0:
        return Adherence.BEHIND
    if unpaid_days < 0:
        return Adherence.AHEAD
    return Adherence.ON_TRACK


def analyze(
    loan: Loan,
    reference_date: date | datetime | None = None,
    tz_name: str = "UTC",
) -> OverdueReport:
    """
    Compare elapsed calendar days with the days already paid for.

    Both dates are truncated to midnight in the business timezone before
    subtracting, so counts are whole days:
    - days_elapsed = reference - start (negative before the loan starts)
    - days_expected_paid = term_days - remaining_days
    - unpaid_days = days_elapsed - days_expected_paid

    Example:
        term 105, remaining 100, reference = start + 10 days
        → elapsed 10, expected paid 5, unpaid 5 (behind by 5)

    reference_date defaults to now but any past or future "as of" date is valid.
    """
    reference = reference_date if reference_date is not None else utc_now()
    schedule = loan.schedule

    paid = balance.paid_amount(loan.payments)
    days_elapsed = days_between(schedule.start_date, reference, tz_name)
    days_expected_paid = schedule.term_days - balance.remaining_days(schedule, paid)
    unpaid_days = days_elapsed - days_expected_paid

    return OverdueReport(
        reference_date=to_calendar_date(reference, tz_name),
        days_elapsed=days_elapsed,
        days_expected_paid=days_expected_paid,
        unpaid_days=unpaid_days,
        adherence=classify(unpaid_days),
    )


def paid_on_date(
    payments: Iterable[Payment],
    reference_date: date | datetime,
    tz_name: str = "UTC",
) -> Decimal:
    """Approved amounts whose paid_at falls on the reference calendar day"""
    return total(
        p.amount
        for p in ledger.approved(payments)
        if same_calendar_day(p.paid_at, reference_date, tz_name)
    )
