"""Balance derivation from a loan's schedule and payment ledger"""

from decimal import Decimal
from typing import Iterable

from coop_lending.domain import ledger
from coop_lending.domain.models import BalanceSummary, Loan, Payment, Schedule
from coop_lending.utils.money import ZERO, total


def paid_amount(payments: Iterable[Payment]) -> Decimal:
    """Sum of APPROVED payments; pending ones never count toward payoff"""
    return total(p.amount for p in ledger.approved(payments))


def pending_amount(payments: Iterable[Payment]) -> Decimal:
    return total(p.amount for p in ledger.pending(payments))


def days_covered(schedule: Schedule, paid: Decimal) -> int:
    """Number of whole scheduled days the approved payments pay for"""
    if schedule.daily_payment <= 0:
        return 0
    return min(int(paid // schedule.daily_payment), schedule.term_days)


def remaining_days(schedule: Schedule, paid: Decimal) -> int:
    return schedule.term_days - days_covered(schedule, paid)


def is_paid_off(schedule: Schedule, paid: Decimal) -> bool:
    return paid >= schedule.total_payable


def summarize(loan: Loan) -> BalanceSummary:
    """
    Derive paid/unpaid totals for a loan.

    Two unpaid figures are reported:
    - unpaid_amount: total_payable - paid (authoritative, floored at zero)
    - scheduled_unpaid_amount: remaining_days * daily_payment (legacy loan-table figure)

    They agree only when payments land in whole daily instalments.
    """
    schedule = loan.schedule
    paid = paid_amount(loan.payments)
    remaining = remaining_days(schedule, paid)

    return BalanceSummary(
        paid_amount=paid,
        pending_amount=pending_amount(loan.payments),
        unpaid_amount=max(schedule.total_payable - paid, ZERO),
        scheduled_unpaid_amount=schedule.daily_payment * remaining,
        days_covered=schedule.term_days - remaining,
        remaining_days=remaining,
        is_paid_off=is_paid_off(schedule, paid),
    )
