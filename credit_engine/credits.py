"""
Credit Module

The Credit record that owns a schedule, plus creation, term-change and
summary helpers. Every helper returns a new Credit; nothing here touches
storage.
"""

from decimal import Decimal
from datetime import datetime, timezone, date
from dataclasses import dataclass, field, replace
from typing import Any, List, Optional
from enum import Enum
import uuid
import logging

from .config import get_config
from .currency import Currency, Money
from .errors import InsufficientDataError
from .schedule import Schedule, build, rebuild
from .solver import solve, validate_terms
from .terms import LoanTerms, ScheduleType, partial_terms_from_fields


logger = logging.getLogger(__name__)


class CreditStatus(Enum):
    """Credit lifecycle states"""
    ACTIVE = "active"
    ARCHIVED = "archived"


TERM_FIELDS = ('principal', 'annual_rate_percent', 'term_months', 'monthly_payment')


@dataclass
class Credit:
    """
    A loan as the application stores it.

    The four term fields are optional because legacy records may carry only
    some of them; records created through create_credit always have all four.
    """
    id: str
    name: str
    principal: Optional[Money] = None
    annual_rate_percent: Optional[Decimal] = None
    term_months: Optional[int] = None
    monthly_payment: Optional[Money] = None
    schedule_type: ScheduleType = ScheduleType.ANNUITY
    start_date: Optional[date] = None
    payment_day: Optional[int] = None
    status: CreditStatus = CreditStatus.ACTIVE
    schedule: Optional[Schedule] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.annual_rate_percent is not None and not isinstance(self.annual_rate_percent, Decimal):
            self.annual_rate_percent = Decimal(str(self.annual_rate_percent))

    @property
    def is_active(self) -> bool:
        return self.status == CreditStatus.ACTIVE

    @property
    def has_schedule(self) -> bool:
        return self.schedule is not None and len(self.schedule) > 0

    @property
    def missing_term_fields(self) -> List[str]:
        return [name for name in TERM_FIELDS if getattr(self, name) is None]

    @property
    def current_balance(self) -> Money:
        """Outstanding principal as of the first unpaid line item, zero without a schedule"""
        if self.has_schedule:
            return self.schedule.outstanding_balance()
        currency = self.principal.currency if self.principal else Currency[get_config().default_currency]
        return Money.zero(currency)

    def loan_terms(self) -> LoanTerms:
        """
        Terms of this credit as LoanTerms.

        Raises:
            InsufficientDataError: If principal, rate, term or start date is missing
        """
        missing = [name for name in ('principal', 'annual_rate_percent', 'term_months', 'start_date')
                   if getattr(self, name) is None]
        if missing:
            raise InsufficientDataError(missing)
        return LoanTerms(
            principal=self.principal,
            annual_rate_percent=self.annual_rate_percent,
            term_months=self.term_months,
            start_date=self.start_date,
            schedule_type=self.schedule_type,
            monthly_payment=self.monthly_payment,
            payment_day=self.payment_day
        )


@dataclass
class CreditSummary:
    """Totals for one credit, derived from its schedule"""
    total_interest: Money
    total_planned: Money
    actual_paid: Money
    current_balance: Money
    months_remaining: int


def with_schedule(credit: Credit, terms: LoanTerms, schedule: Schedule) -> Credit:
    """Copy of credit carrying the given terms and schedule"""
    return replace(
        credit,
        principal=terms.principal,
        annual_rate_percent=terms.annual_rate_percent,
        term_months=terms.term_months,
        monthly_payment=terms.monthly_payment,
        schedule_type=terms.schedule_type,
        start_date=terms.start_date,
        payment_day=terms.payment_day,
        schedule=schedule,
        updated_at=datetime.now(timezone.utc)
    )


def resolve_terms(
    principal: Optional[Money] = None,
    annual_rate_percent: Optional[Decimal] = None,
    term_months: Optional[int] = None,
    monthly_payment: Optional[Money] = None,
    schedule_type: ScheduleType = ScheduleType.ANNUITY,
    start_date: Optional[date] = None,
    payment_day: Optional[int] = None,
    today: Optional[date] = None
) -> LoanTerms:
    """
    Turn whichever term fields are known into validated LoanTerms.

    When all four are given the supplied payment is kept and checked for
    consistency; otherwise the single missing field is solved.
    """
    if None not in (principal, annual_rate_percent, term_months, monthly_payment):
        return validate_terms(LoanTerms(
            principal=principal,
            annual_rate_percent=annual_rate_percent,
            term_months=term_months,
            start_date=start_date or today or date.today(),
            schedule_type=schedule_type,
            monthly_payment=monthly_payment,
            payment_day=payment_day
        ))

    partial = partial_terms_from_fields(
        principal=principal,
        annual_rate_percent=annual_rate_percent,
        term_months=term_months,
        monthly_payment=monthly_payment,
        schedule_type=schedule_type,
        start_date=start_date,
        payment_day=payment_day
    )
    return solve(partial, today=today)


def create_credit(
    name: str,
    principal: Optional[Money] = None,
    annual_rate_percent: Optional[Decimal] = None,
    term_months: Optional[int] = None,
    monthly_payment: Optional[Money] = None,
    schedule_type: ScheduleType = ScheduleType.ANNUITY,
    start_date: Optional[date] = None,
    payment_day: Optional[int] = None,
    credit_id: Optional[str] = None,
    today: Optional[date] = None
) -> Credit:
    """
    Create an active credit with a freshly built schedule.

    Raises:
        SolverError: If the terms cannot be resolved
    """
    terms = resolve_terms(
        principal=principal,
        annual_rate_percent=annual_rate_percent,
        term_months=term_months,
        monthly_payment=monthly_payment,
        schedule_type=schedule_type,
        start_date=start_date,
        payment_day=payment_day,
        today=today
    )
    credit = with_schedule(Credit(id=credit_id or str(uuid.uuid4()), name=name), terms, build(terms))
    logger.info("Created credit %s (%s) with %d scheduled payments",
                credit.id, name, len(credit.schedule))
    return credit


def update_credit_terms(credit: Credit, keep_paid: bool = True, today: Optional[date] = None,
                        **changes: Any) -> Credit:
    """
    Apply changed term fields and replace the schedule wholesale.

    Changing principal, rate or term re-solves the monthly payment unless a
    new payment is passed explicitly. Passing term_months=None together with
    a monthly_payment solves the term instead.

    Args:
        credit: Credit to update
        keep_paid: Carry paid months over to the rebuilt schedule
        **changes: Any of principal, annual_rate_percent, term_months,
            monthly_payment, schedule_type, start_date, payment_day
    """
    allowed = set(TERM_FIELDS) | {'schedule_type', 'start_date', 'payment_day'}
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Unknown credit term fields: {', '.join(sorted(unknown))}")

    values = {name: getattr(credit, name) for name in allowed}
    values.update(changes)
    if 'monthly_payment' not in changes and set(changes) & {'principal', 'annual_rate_percent', 'term_months'}:
        values['monthly_payment'] = None

    terms = resolve_terms(today=today, **values)
    updated = with_schedule(credit, terms, rebuild(credit.schedule, terms, keep_paid=keep_paid))
    logger.info("Updated terms of credit %s: %s", credit.id, ", ".join(sorted(changes)))
    return updated


def archive_credit(credit: Credit) -> Credit:
    """Copy of credit in the archived state"""
    return replace(credit, status=CreditStatus.ARCHIVED, updated_at=datetime.now(timezone.utc))


def summarize(credit: Credit) -> CreditSummary:
    """Planned totals, what has actually been paid, and what remains"""
    if not credit.has_schedule:
        zero = credit.current_balance
        return CreditSummary(zero, zero, zero, zero, 0)

    schedule = credit.schedule
    actual_paid = Money.zero(schedule.currency)
    for item in schedule.items:
        if item.paid:
            actual_paid = actual_paid + (item.paid_amount or item.planned_payment)

    return CreditSummary(
        total_interest=schedule.total_interest(),
        total_planned=schedule.total_planned(),
        actual_paid=actual_paid,
        current_balance=credit.current_balance,
        months_remaining=len(schedule.unpaid_items())
    )
