"""
Month-indexed date arithmetic for payment schedules.
"""

from datetime import date
from typing import Optional
import calendar


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(start_date: date, months: int, day: Optional[int] = None) -> date:
    """Add months to a date, clamping the day to the target month's length"""
    month = start_date.month - 1 + months
    year = start_date.year + month // 12
    month = month % 12 + 1
    wanted_day = day if day is not None else start_date.day
    return date(year, month, min(wanted_day, days_in_month(year, month)))


def clamp_payment_day(payment_day: Optional[int], start_date: date) -> int:
    """
    Normalize a day-of-month for payments.

    Missing or out-of-range values (outside 1..31) fall back to the start
    date's own day. Shorter months are handled later by add_months.
    """
    if payment_day is None or not 1 <= payment_day <= 31:
        return start_date.day
    return payment_day


def payment_date(start_date: date, month_number: int, payment_day: Optional[int] = None) -> date:
    """
    Date of the payment for a 1-based month number.

    Month 1 always falls in the start date's own month, even when the
    payment day precedes the start day.
    """
    if month_number < 1:
        raise ValueError(f"Month number must be 1 or greater, got {month_number}")
    day = clamp_payment_day(payment_day, start_date)
    return add_months(start_date, month_number - 1, day)
