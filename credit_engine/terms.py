"""
Loan Terms

Fully resolved loan terms and the three partial forms the solver accepts.
Each partial form names exactly which parameter is unknown, so an ambiguous
combination can never reach the solver.
"""

from decimal import Decimal
from datetime import date
from dataclasses import dataclass
from typing import Optional, Union
from enum import Enum

from .currency import Money
from .errors import InsufficientDataError


class ScheduleType(Enum):
    """Amortization policies"""
    ANNUITY = "annuity"                 # Equal total payments
    DIFFERENTIATED = "differentiated"   # Equal principal, declining payments


@dataclass(frozen=True)
class LoanTerms:
    """Resolved loan terms, immutable for the life of one schedule build"""
    principal: Money
    annual_rate_percent: Decimal        # e.g. Decimal('12') for 12%; 0 = interest-free
    term_months: int
    start_date: date
    schedule_type: ScheduleType = ScheduleType.ANNUITY
    monthly_payment: Optional[Money] = None
    payment_day: Optional[int] = None   # 1-31, defaults to start_date.day

    def __post_init__(self):
        if not isinstance(self.annual_rate_percent, Decimal):
            object.__setattr__(self, 'annual_rate_percent', Decimal(str(self.annual_rate_percent)))

        if self.monthly_payment is not None and self.monthly_payment.currency != self.principal.currency:
            raise ValueError("Monthly payment currency must match principal currency")

    @property
    def currency(self):
        return self.principal.currency

    @property
    def is_interest_free(self) -> bool:
        return self.annual_rate_percent == Decimal('0')


@dataclass(frozen=True)
class PaymentUnknown:
    """Principal, rate and term known: solve for the monthly payment"""
    principal: Money
    annual_rate_percent: Decimal
    term_months: int
    schedule_type: ScheduleType = ScheduleType.ANNUITY
    start_date: Optional[date] = None
    payment_day: Optional[int] = None


@dataclass(frozen=True)
class TermUnknown:
    """Principal, rate and payment known: solve for the term in months"""
    principal: Money
    annual_rate_percent: Decimal
    monthly_payment: Money
    schedule_type: ScheduleType = ScheduleType.ANNUITY
    start_date: Optional[date] = None
    payment_day: Optional[int] = None


@dataclass(frozen=True)
class PrincipalUnknown:
    """Rate, term and payment known: solve for the principal"""
    annual_rate_percent: Decimal
    term_months: int
    monthly_payment: Money
    schedule_type: ScheduleType = ScheduleType.ANNUITY
    start_date: Optional[date] = None
    payment_day: Optional[int] = None


PartialLoanTerms = Union[PaymentUnknown, TermUnknown, PrincipalUnknown]


def partial_terms_from_fields(
    principal: Optional[Money] = None,
    annual_rate_percent: Optional[Decimal] = None,
    term_months: Optional[int] = None,
    monthly_payment: Optional[Money] = None,
    schedule_type: ScheduleType = ScheduleType.ANNUITY,
    start_date: Optional[date] = None,
    payment_day: Optional[int] = None
) -> PartialLoanTerms:
    """
    Pick the partial-terms variant matching the fields that are present.

    The annual rate is always required. Exactly one of principal, term and
    payment must be missing; when all three are present the payment is
    treated as unknown and recomputed.

    Raises:
        InsufficientDataError: If the rate or more than one other field is missing
    """
    missing = [
        name for name, value in (
            ('principal', principal),
            ('annual_rate_percent', annual_rate_percent),
            ('term_months', term_months),
            ('monthly_payment', monthly_payment),
        )
        if value is None
    ]
    if 'annual_rate_percent' in missing or len(missing) > 1:
        raise InsufficientDataError(missing)

    common = dict(schedule_type=schedule_type, start_date=start_date, payment_day=payment_day)

    if term_months is None:
        return TermUnknown(principal, annual_rate_percent, monthly_payment, **common)
    if principal is None:
        return PrincipalUnknown(annual_rate_percent, term_months, monthly_payment, **common)
    return PaymentUnknown(principal, annual_rate_percent, term_months, **common)
