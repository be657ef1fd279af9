"""Monthly deduction schedule: end date, maturity total and installment plan"""

from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, Optional

from payflow_deductions.domain.models import Installment
from payflow_deductions.utils.date_utils import add_months

MINOR_UNIT = Decimal("0.01")
MAX_INSTALLMENTS = 600
MAX_AMOUNT = Decimal("999999999999.99")


def to_money(value) -> Decimal:
    """Quantize to the currency minor unit (2 decimal places)"""
    return Decimal(str(value)).quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def parse_installment_count(value) -> Optional[int]:
    """
    Interpret a user-entered installment count.

    Returns None for blank or non-numeric input. Non-positive integers are
    returned as-is so callers can report them; they never produce a schedule.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    # Magnitude check first; int() of "1e999999999" would allocate the digits
    if not number.is_finite() or number.adjusted() > 9 or number != number.to_integral_value():
        return None
    return int(number)


def compute_end_date(start_date: Optional[date], months) -> Optional[date]:
    """
    End date of a deduction running ``months`` calendar months from ``start_date``.

    Returns None when there is nothing to compute: no start date, a months
    value that is blank, non-numeric, not positive or above MAX_INSTALLMENTS,
    or an end date past the last representable day. Callers keep their prior
    end date in that case rather than coercing the count.

    Example:
        2025-01-15 + 12 months → 2026-01-15
        2025-01-31 + 1 month   → 2025-02-28
    """
    count = parse_installment_count(months)
    if start_date is None or count is None or not 0 < count <= MAX_INSTALLMENTS:
        return None
    try:
        return add_months(start_date, count)
    except (ValueError, OverflowError):
        return None


def compute_maturity_total(amount, months) -> Decimal:
    """Sum of all installments: amount × months, no compounding"""
    return to_money(Decimal(str(amount)) * int(months))


def generate_installment_schedule(amount, months, start_date: date) -> List[Installment]:
    """
    Generate equal monthly installments for a deduction.

    Requirements:
    - One installment per month, first one due on ``start_date``
    - Every installment equals the monthly amount
    - Installments sum exactly to the maturity total

    Returns [] for a non-positive amount, an installment count outside
    1..MAX_INSTALLMENTS, or a schedule running past the calendar.
    """
    if amount is None or compute_end_date(start_date, months) is None:
        return []
    count = parse_installment_count(months)

    monthly = to_money(amount)
    if monthly <= 0:
        return []

    return [
        Installment(sequence=i + 1, due_date=add_months(start_date, i), amount=monthly)
        for i in range(count)
    ]
