"""
Payment Ledger Module

Records and reverses real payments against schedule line items and answers
overdue/upcoming queries across a portfolio of credits.

Recording a payment never reshapes the planned schedule: remaining balances
are fixed when the schedule is built, and paying more or less than planned
is stored on the line item only. Reshaping is an explicit rebuild.
"""

from datetime import date, datetime, timezone, timedelta
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Union
from enum import Enum
import logging

from .config import get_config
from .credits import Credit
from .currency import Money
from .errors import InvalidInputError
from .schedule import Schedule


logger = logging.getLogger(__name__)


class DueStatus(Enum):
    """Classification of an unpaid line item relative to today"""
    OVERDUE = "overdue"     # Payment date already passed
    UPCOMING = "upcoming"   # Due today or within the look-ahead window


@dataclass(frozen=True)
class DuePayment:
    """One unpaid line item surfaced by due_within"""
    credit_id: str
    credit_name: str
    line_item_id: str
    month_number: int
    payment_date: date
    amount: Money
    status: DueStatus

    @property
    def is_overdue(self) -> bool:
        return self.status == DueStatus.OVERDUE


def apply_payment(
    schedule: Schedule,
    line_item_id: str,
    paid_amount: Optional[Money] = None,
    paid_at: Optional[date] = None
) -> Schedule:
    """
    Mark one line item as paid.

    Applying to an already-paid item overwrites the recorded amount and date.

    Args:
        schedule: Schedule holding the line item
        line_item_id: Id of the line item to pay
        paid_amount: Amount actually paid (defaults to the planned payment)
        paid_at: Date of payment (defaults to today)

    Returns:
        New Schedule with the line item updated

    Raises:
        LineItemNotFoundError: If the id is not part of this schedule
        InvalidInputError: If paid_amount is not positive or in another currency
    """
    index = schedule.index_of(line_item_id)
    item = schedule.items[index]

    if paid_amount is None:
        paid_amount = item.planned_payment
    elif paid_amount.currency != schedule.currency:
        raise InvalidInputError('paid_amount', paid_amount.to_string(),
                                f"currency must be {schedule.currency.code}")
    elif not paid_amount.is_positive():
        raise InvalidInputError('paid_amount', paid_amount.to_string(), "must be a positive amount")

    updated = schedule.replace_item(index, replace(
        item,
        paid=True,
        paid_amount=paid_amount,
        paid_at=paid_at or date.today()
    ))

    if paid_amount != item.planned_payment:
        logger.info("Recorded payment %s against planned %s for month %d",
                    paid_amount.to_string(), item.planned_payment.to_string(), item.month_number)
    else:
        logger.info("Recorded planned payment %s for month %d",
                    paid_amount.to_string(), item.month_number)
    return updated


def reverse_payment(schedule: Schedule, line_item_id: str) -> Schedule:
    """
    Clear the paid state of exactly one line item.

    Raises:
        LineItemNotFoundError: If the id is not part of this schedule
    """
    index = schedule.index_of(line_item_id)
    item = schedule.items[index]

    updated = schedule.replace_item(index, replace(item, paid=False, paid_amount=None, paid_at=None))
    logger.info("Reversed payment for month %d", item.month_number)
    return updated


def current_balance(target: Union[Credit, Schedule]) -> Money:
    """Outstanding principal of a credit or schedule as of its first unpaid item"""
    if isinstance(target, Schedule):
        return target.outstanding_balance()
    return target.current_balance


def _require_schedule(credit: Credit) -> Schedule:
    if not credit.has_schedule:
        raise InvalidInputError('schedule', credit.id, "credit has no payment schedule")
    return credit.schedule


def apply_credit_payment(
    credit: Credit,
    line_item_id: str,
    paid_amount: Optional[Money] = None,
    paid_at: Optional[date] = None
) -> Credit:
    """apply_payment on a credit's schedule, returning the updated credit"""
    schedule = apply_payment(_require_schedule(credit), line_item_id, paid_amount, paid_at)
    updated = replace(credit, schedule=schedule, updated_at=datetime.now(timezone.utc))
    logger.debug("Credit %s balance now %s", credit.id, updated.current_balance.to_string())
    return updated


def reverse_credit_payment(credit: Credit, line_item_id: str) -> Credit:
    """reverse_payment on a credit's schedule, returning the updated credit"""
    schedule = reverse_payment(_require_schedule(credit), line_item_id)
    updated = replace(credit, schedule=schedule, updated_at=datetime.now(timezone.utc))
    logger.debug("Credit %s balance now %s", credit.id, updated.current_balance.to_string())
    return updated


def due_within(
    credits: Iterable[Credit],
    days_ahead: Optional[int] = None,
    today: Optional[date] = None
) -> List[DuePayment]:
    """
    Overdue and upcoming unpaid payments across active credits.

    Overdue: payment date before today. Upcoming: from today through
    today + days_ahead inclusive. Credits without a schedule and archived
    credits are skipped.

    Returns:
        DuePayment entries sorted by payment date ascending
    """
    if days_ahead is None:
        days_ahead = get_config().upcoming_days_ahead
    if days_ahead < 0:
        raise InvalidInputError('days_ahead', days_ahead, "must be zero or positive")
    today = today or date.today()
    horizon = today + timedelta(days=days_ahead)

    due = []
    for credit in credits:
        if not credit.is_active or not credit.has_schedule:
            continue
        for item in credit.schedule.items:
            if item.paid or item.payment_date > horizon:
                continue
            status = DueStatus.OVERDUE if item.payment_date < today else DueStatus.UPCOMING
            due.append(DuePayment(
                credit_id=credit.id,
                credit_name=credit.name,
                line_item_id=item.id,
                month_number=item.month_number,
                payment_date=item.payment_date,
                amount=item.planned_payment,
                status=status
            ))

    due.sort(key=lambda payment: (payment.payment_date, payment.credit_name, payment.month_number))
    return due
