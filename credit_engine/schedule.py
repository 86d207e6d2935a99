"""
Schedule Generator Module

Builds month-by-month payment schedules under the annuity and differentiated
policies. Every amount is rounded to the currency's minor unit as it is
produced, and the final line item absorbs whatever rounding drift is left so
the terminal balance is exactly zero.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass, field, replace
from typing import Dict, Iterator, List, Optional, Tuple
import uuid
import logging

from .currency import Money, monthly_rate
from .dates import payment_date
from .errors import LineItemNotFoundError, ScheduleInvariantError
from .solver import solve_payment
from .terms import LoanTerms, ScheduleType


logger = logging.getLogger(__name__)


def new_line_item_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ScheduleLineItem:
    """Single scheduled monthly payment"""
    id: str
    month_number: int
    payment_date: date
    planned_payment: Money
    interest_part: Money
    principal_part: Money
    remaining_balance: Money
    paid: bool = False
    paid_amount: Optional[Money] = None
    paid_at: Optional[date] = None


@dataclass(frozen=True)
class Schedule:
    """Ordered line items of one credit, from month 1 to the last month"""
    principal: Money
    schedule_type: ScheduleType
    items: Tuple[ScheduleLineItem, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not isinstance(self.items, tuple):
            object.__setattr__(self, 'items', tuple(self.items))

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[ScheduleLineItem]:
        return iter(self.items)

    @property
    def currency(self):
        return self.principal.currency

    @property
    def last(self) -> Optional[ScheduleLineItem]:
        return self.items[-1] if self.items else None

    def index_of(self, line_item_id: str) -> int:
        """Position of a line item; raises LineItemNotFoundError for stale ids"""
        for index, item in enumerate(self.items):
            if item.id == line_item_id:
                return index
        raise LineItemNotFoundError(line_item_id)

    def get(self, line_item_id: str) -> ScheduleLineItem:
        return self.items[self.index_of(line_item_id)]

    def replace_item(self, index: int, item: ScheduleLineItem) -> 'Schedule':
        items = list(self.items)
        items[index] = item
        return replace(self, items=tuple(items))

    def first_unpaid_index(self) -> Optional[int]:
        for index, item in enumerate(self.items):
            if not item.paid:
                return index
        return None

    def unpaid_items(self) -> List[ScheduleLineItem]:
        return [item for item in self.items if not item.paid]

    def outstanding_balance(self) -> Money:
        """
        Remaining balance before the first unpaid line item.

        The principal when month 1 is unpaid, zero when every item is paid.
        """
        index = self.first_unpaid_index()
        if index is None:
            return self.items[-1].remaining_balance if self.items else Money.zero(self.currency)
        if index == 0:
            return self.principal
        return self.items[index - 1].remaining_balance

    @property
    def is_fully_paid(self) -> bool:
        return bool(self.items) and self.first_unpaid_index() is None

    def total_interest(self) -> Money:
        return sum((item.interest_part for item in self.items), Money.zero(self.currency))

    def total_principal(self) -> Money:
        return sum((item.principal_part for item in self.items), Money.zero(self.currency))

    def total_planned(self) -> Money:
        return sum((item.planned_payment for item in self.items), Money.zero(self.currency))


def build(terms: LoanTerms) -> Schedule:
    """
    Generate the payment schedule for resolved loan terms.

    Args:
        terms: Terms already resolved by the solver

    Returns:
        Schedule with term_months unpaid line items
    """
    if terms.schedule_type == ScheduleType.DIFFERENTIATED:
        items = _build_differentiated(terms)
    elif terms.schedule_type == ScheduleType.ANNUITY:
        payment = terms.monthly_payment
        if payment is None:
            payment = solve_payment(terms.principal, terms.annual_rate_percent, terms.term_months)
        items = _build_annuity(terms, payment)
    else:
        raise ValueError(f"Unsupported schedule type: {terms.schedule_type}")

    schedule = Schedule(principal=terms.principal, schedule_type=terms.schedule_type, items=tuple(items))
    ensure_invariants(schedule)

    logger.info("Built %s schedule: %d items, principal %s, total interest %s",
                terms.schedule_type.value, len(schedule), terms.principal.to_string(),
                schedule.total_interest().to_string())
    return schedule


def _build_annuity(terms: LoanTerms, payment: Money) -> List[ScheduleLineItem]:
    """Equal payments; the interest/principal mix shifts month by month"""
    rate = monthly_rate(terms.annual_rate_percent)
    remaining_balance = terms.principal
    zero = Money.zero(terms.currency)
    items = []

    for month_number in range(1, terms.term_months + 1):
        interest_amount = remaining_balance * rate

        if month_number == terms.term_months:
            # Final payment retires exactly what is left
            principal_amount = remaining_balance
        else:
            principal_amount = payment - interest_amount
            # Ensure we don't overpay before the final month
            if principal_amount > remaining_balance:
                principal_amount = remaining_balance
            if principal_amount.is_negative():
                principal_amount = zero

        planned_payment = principal_amount + interest_amount
        remaining_balance = remaining_balance - principal_amount

        items.append(ScheduleLineItem(
            id=new_line_item_id(),
            month_number=month_number,
            payment_date=payment_date(terms.start_date, month_number, terms.payment_day),
            planned_payment=planned_payment,
            interest_part=interest_amount,
            principal_part=principal_amount,
            remaining_balance=remaining_balance
        ))

    return items


def _build_differentiated(terms: LoanTerms) -> List[ScheduleLineItem]:
    """Equal principal portions plus interest on the declining balance"""
    rate = monthly_rate(terms.annual_rate_percent)
    principal_per_payment = terms.principal / Decimal(terms.term_months)
    remaining_balance = terms.principal
    items = []

    for month_number in range(1, terms.term_months + 1):
        interest_amount = remaining_balance * rate

        if month_number == terms.term_months:
            principal_amount = remaining_balance
        else:
            principal_amount = principal_per_payment
            if principal_amount > remaining_balance:
                principal_amount = remaining_balance

        planned_payment = principal_amount + interest_amount
        remaining_balance = remaining_balance - principal_amount

        items.append(ScheduleLineItem(
            id=new_line_item_id(),
            month_number=month_number,
            payment_date=payment_date(terms.start_date, month_number, terms.payment_day),
            planned_payment=planned_payment,
            interest_part=interest_amount,
            principal_part=principal_amount,
            remaining_balance=remaining_balance
        ))

    return items


def check_invariants(schedule: Schedule) -> List[str]:
    """
    Describe every way a schedule breaks the structural rules.

    Returns:
        Human-readable violations; empty when the schedule is sound
    """
    violations = []
    if not schedule.items:
        return ["schedule has no line items"]

    previous_balance = schedule.principal
    for expected_month, item in enumerate(schedule.items, start=1):
        label = f"month {item.month_number}"
        if item.month_number != expected_month:
            violations.append(f"{label}: expected month number {expected_month}")
        if item.principal_part.is_negative():
            violations.append(f"{label}: negative principal part")
        if item.principal_part + item.interest_part != item.planned_payment:
            violations.append(f"{label}: principal + interest != planned payment")
        if item.remaining_balance != previous_balance - item.principal_part:
            violations.append(f"{label}: remaining balance does not follow previous balance")
        if item.remaining_balance.is_negative():
            violations.append(f"{label}: negative remaining balance")
        if item.paid and (item.paid_amount is None or item.paid_at is None):
            violations.append(f"{label}: paid without amount or date")
        if not item.paid and (item.paid_amount is not None or item.paid_at is not None):
            violations.append(f"{label}: unpaid but carries payment details")
        previous_balance = item.remaining_balance

    if not schedule.items[-1].remaining_balance.is_zero():
        violations.append("final remaining balance is not zero")
    return violations


def ensure_invariants(schedule: Schedule) -> Schedule:
    """Raise ScheduleInvariantError if the schedule is structurally broken"""
    violations = check_invariants(schedule)
    if violations:
        logger.error("Schedule invariant violated: %s", "; ".join(violations))
        raise ScheduleInvariantError("; ".join(violations))
    return schedule


def rebuild(schedule: Optional[Schedule], terms: LoanTerms, keep_paid: bool = True) -> Schedule:
    """
    Replace a schedule wholesale after the loan terms change.

    All line item ids are regenerated. With keep_paid, months that were paid
    in the old schedule stay paid (matched by month number) with their
    recorded amount and date.
    """
    fresh = build(terms)
    if not keep_paid or schedule is None:
        return fresh

    paid_by_month: Dict[int, ScheduleLineItem] = {
        item.month_number: item for item in schedule.items if item.paid
    }
    items = []
    for item in fresh.items:
        old = paid_by_month.get(item.month_number)
        if old is not None:
            item = replace(
                item,
                paid=True,
                paid_amount=old.paid_amount,
                paid_at=old.paid_at
            )
        items.append(item)

    rebuilt = replace(fresh, items=tuple(items))
    logger.info("Rebuilt schedule keeping %d paid months", len(paid_by_month))
    return rebuilt
