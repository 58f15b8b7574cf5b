"""Repayment schedule calculation for fixed-term daily micro-loans"""

import secrets
from datetime import datetime
from decimal import Decimal

from coop_lending.domain.exceptions import ValidationError
from coop_lending.domain.models import Schedule
from coop_lending.utils.date_utils import add_calendar_days, ensure_aware
from coop_lending.utils.money import MINOR_UNIT, quantize, to_decimal

TERM_DAYS = 105
DAILY_RATE = Decimal("0.01")  # Share of principal due each day, independent of the deduction rate
LOAN_CODE_PREFIX = "LOAN-"


def calculate_schedule(
    requested_amount: Decimal | int | float | str,
    deduction_rate: Decimal,
    start_date: datetime,
) -> Schedule:
    """
    Compute the complete repayment schedule for a principal.

    Requirements:
    - deduction = principal * deduction_rate, withheld at disbursement
    - disbursed = principal - deduction (sums back to principal exactly)
    - daily payment = principal * 1%, total payable = daily * 105
    - expected end = start + 105 calendar days

    Example:
        10,000 at 10% → deduction 1,000, disbursed 9,000,
        daily 100, total 10,500

    Raises:
        ValidationError: Principal too small to yield a daily payment, or rate outside [0, 1)
    """
    try:
        principal = to_decimal(requested_amount)
        rate = to_decimal(deduction_rate)
    except ValueError as e:
        raise ValidationError(str(e)) from e

    principal = quantize(principal)
    if principal <= 0:
        raise ValidationError(f"Requested amount must be at least {MINOR_UNIT}")
    if rate < 0 or rate >= 1:
        raise ValidationError("Deduction rate must be in [0, 1)")
    if start_date is None:
        raise ValidationError("Start date is required")

    deduction = quantize(principal * rate)
    # Derive disbursed by subtraction so the two always add back to the principal
    disbursed = principal - deduction
    daily_payment = quantize(principal * DAILY_RATE)
    if daily_payment <= 0:
        raise ValidationError(f"Requested amount {principal} is too small for a daily payment of {MINOR_UNIT}")
    start = ensure_aware(start_date)

    return Schedule(
        requested_amount=principal,
        deduction_rate=rate,
        deduction_amount=deduction,
        disbursed_amount=disbursed,
        daily_payment=daily_payment,
        total_payable=daily_payment * TERM_DAYS,
        term_days=TERM_DAYS,
        start_date=start,
        expected_end_date=add_calendar_days(start, TERM_DAYS),
    )


def generate_loan_code() -> str:
    """
    Random human-readable loan code, LOAN- plus six digits.

    Uniqueness is enforced by the repository, which retries on collision.
    """
    return f"{LOAN_CODE_PREFIX}{100000 + secrets.randbelow(900000)}"
