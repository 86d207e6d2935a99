"""
Parameter Solver Module

Given any three of principal, term and monthly payment (the annual rate is
always known), computes the missing one with the closed-form annuity
formulas. Also validates fully specified terms and, for legacy records,
recovers an unknown rate by bisection.
"""

from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP
from datetime import date
from typing import Optional
import logging

from .config import get_config
from .currency import Money, monthly_rate
from .errors import (
    InvalidInputError, InfeasiblePaymentError, NonconvergentError
)
from .terms import (
    LoanTerms, PartialLoanTerms, PaymentUnknown, TermUnknown, PrincipalUnknown,
    ScheduleType
)


logger = logging.getLogger(__name__)

ONE = Decimal('1')
ZERO = Decimal('0')


def _require_positive_money(field: str, value: Money) -> None:
    if value is None or not value.amount.is_finite() or not value.is_positive():
        raise InvalidInputError(field, value, "must be a positive amount")


def _require_positive_term(term_months) -> None:
    if isinstance(term_months, bool) or not isinstance(term_months, int) or term_months <= 0:
        raise InvalidInputError('term_months', term_months, "must be a positive whole number of months")


def _require_rate(annual_rate_percent) -> Decimal:
    if annual_rate_percent is None:
        raise InvalidInputError('annual_rate_percent', annual_rate_percent, "is required")
    if not isinstance(annual_rate_percent, Decimal):
        annual_rate_percent = Decimal(str(annual_rate_percent))
    if not annual_rate_percent.is_finite() or annual_rate_percent < ZERO:
        raise InvalidInputError('annual_rate_percent', annual_rate_percent, "must be zero or positive")
    return annual_rate_percent


def _require_payment_day(payment_day: Optional[int]) -> None:
    if payment_day is not None and not 1 <= payment_day <= 31:
        raise InvalidInputError('payment_day', payment_day, "must be between 1 and 31")


def annuity_payment(principal: Decimal, rate: Decimal, term_months: int) -> Decimal:
    """
    Unrounded annuity payment: A = P * i / (1 - (1 + i)^-n)

    Args:
        principal: Loan amount
        rate: Monthly nominal rate (0.01 for 12% annual)
        term_months: Number of monthly payments

    Returns:
        Exact payment as Decimal (interest-free loans: P / n)
    """
    if rate == ZERO:
        return principal / Decimal(term_months)
    denominator = ONE - (ONE + rate) ** -term_months
    if denominator <= ZERO:
        raise NonconvergentError("annuity factor is not positive", {'rate': str(rate)})
    return principal * rate / denominator


def solve_payment(principal: Money, annual_rate_percent: Decimal, term_months: int) -> Money:
    """Monthly payment for a known principal, rate and term"""
    _require_positive_money('principal', principal)
    rate_percent = _require_rate(annual_rate_percent)
    _require_positive_term(term_months)

    payment = Money(annuity_payment(principal.amount, monthly_rate(rate_percent), term_months),
                    principal.currency)
    logger.debug("Solved payment %s for principal %s over %d months at %s%%",
                 payment.to_string(), principal.to_string(), term_months, rate_percent)
    return payment


def solve_term(principal: Money, annual_rate_percent: Decimal, monthly_payment: Money) -> int:
    """
    Whole months needed to repay principal with a fixed payment.

    n = -ln(1 - P*i/A) / ln(1 + i), rounded up unless the payment is within
    half a minor unit of the exact payment for the whole term below.
    Interest-free: ceil(P / A).

    Raises:
        InfeasiblePaymentError: If the payment does not exceed the first month's interest
    """
    _require_positive_money('principal', principal)
    rate_percent = _require_rate(annual_rate_percent)
    _require_positive_money('monthly_payment', monthly_payment)
    if monthly_payment.currency != principal.currency:
        raise InvalidInputError('monthly_payment', monthly_payment.currency.code,
                                "currency must match principal currency")

    rate = monthly_rate(rate_percent)
    if rate == ZERO:
        exact_term = principal.amount / monthly_payment.amount
    else:
        interest = principal.amount * rate
        if monthly_payment.amount <= interest:
            raise InfeasiblePaymentError(monthly_payment.to_string(),
                                         Money(interest, principal.currency).to_string())

        log_argument = ONE - interest / monthly_payment.amount
        if log_argument <= ZERO:
            raise NonconvergentError("logarithm of a non-positive value",
                                     {'argument': str(log_argument)})
        exact_term = -log_argument.ln() / (ONE + rate).ln()

    term = int(exact_term.to_integral_value(rounding=ROUND_CEILING))
    whole = int(exact_term.to_integral_value(rounding=ROUND_FLOOR))
    # A payment rounded from the exact payment for a whole term solves
    # back to that term
    half_unit = principal.currency.minor_unit / 2
    if 0 < whole < term and \
            monthly_payment.amount >= annuity_payment(principal.amount, rate, whole) - half_unit:
        term = whole

    logger.debug("Solved term %d months (exact %s) for payment %s",
                 term, exact_term, monthly_payment.to_string())
    return term


def solve_principal(annual_rate_percent: Decimal, term_months: int, monthly_payment: Money) -> Money:
    """Largest principal a fixed payment repays: P = A * (1 - (1 + i)^-n) / i"""
    rate_percent = _require_rate(annual_rate_percent)
    _require_positive_term(term_months)
    _require_positive_money('monthly_payment', monthly_payment)

    rate = monthly_rate(rate_percent)
    if rate == ZERO:
        principal = monthly_payment * Decimal(term_months)
    else:
        factor = ONE - (ONE + rate) ** -term_months
        principal = Money(monthly_payment.amount * factor / rate, monthly_payment.currency)

    logger.debug("Solved principal %s for payment %s over %d months",
                 principal.to_string(), monthly_payment.to_string(), term_months)
    return principal


def solve(known: PartialLoanTerms, today: Optional[date] = None) -> LoanTerms:
    """
    Fill in the one missing loan parameter.

    Args:
        known: One of PaymentUnknown, TermUnknown or PrincipalUnknown
        today: Start date to use when the partial terms carry none

    Returns:
        Fully resolved LoanTerms with monthly_payment always set

    Raises:
        InvalidInputError: Non-positive principal/term/payment, negative rate
        InfeasiblePaymentError: Payment never covers the monthly interest
        NonconvergentError: Formula would need ln of a non-positive value
    """
    _require_payment_day(known.payment_day)
    start_date = known.start_date or today or date.today()

    if isinstance(known, PaymentUnknown):
        principal = known.principal
        term_months = known.term_months
        payment = solve_payment(principal, known.annual_rate_percent, term_months)
    elif isinstance(known, TermUnknown):
        principal = known.principal
        payment = known.monthly_payment
        term_months = solve_term(principal, known.annual_rate_percent, payment)
    elif isinstance(known, PrincipalUnknown):
        term_months = known.term_months
        payment = known.monthly_payment
        principal = solve_principal(known.annual_rate_percent, term_months, payment)
        _require_positive_money('principal', principal)
    else:
        raise InvalidInputError('terms', type(known).__name__, "unsupported partial terms")

    terms = LoanTerms(
        principal=principal,
        annual_rate_percent=_require_rate(known.annual_rate_percent),
        term_months=term_months,
        start_date=start_date,
        schedule_type=known.schedule_type,
        monthly_payment=payment,
        payment_day=known.payment_day
    )
    logger.info("Resolved loan terms via %s: principal=%s rate=%s%% term=%d payment=%s",
                type(known).__name__, principal.to_string(), terms.annual_rate_percent,
                term_months, payment.to_string())
    return terms


def validate_terms(terms: LoanTerms) -> LoanTerms:
    """
    Check a fully specified LoanTerms before building a schedule.

    For an annuity with a supplied payment, the payment must repay the
    principal in exactly term_months: not less than the exact annuity payment
    for the term (within half a minor unit), and below the exact payment for
    one month fewer unless it is the term's own rounded payment.

    Returns:
        The same terms, for chaining

    Raises:
        InvalidInputError, InfeasiblePaymentError
    """
    _require_positive_money('principal', terms.principal)
    rate_percent = _require_rate(terms.annual_rate_percent)
    _require_positive_term(terms.term_months)
    _require_payment_day(terms.payment_day)

    payment = terms.monthly_payment
    if payment is None:
        return terms
    _require_positive_money('monthly_payment', payment)

    if terms.schedule_type != ScheduleType.ANNUITY:
        return terms

    rate = monthly_rate(rate_percent)
    principal = terms.principal.amount
    if rate > ZERO and payment.amount <= principal * rate:
        raise InfeasiblePaymentError(payment.to_string(),
                                     Money(principal * rate, terms.currency).to_string())

    half_unit = terms.currency.minor_unit / 2
    required = annuity_payment(principal, rate, terms.term_months)
    if payment.amount < required - half_unit:
        raise InvalidInputError('monthly_payment', payment.to_string(),
                                f"does not repay the principal within {terms.term_months} months")

    # The rounded payment for the term is always accepted, even when it
    # equals the rounded payment for a shorter term
    solved = Money(required, terms.currency)
    if terms.term_months > 1 and payment != solved:
        shorter = annuity_payment(principal, rate, terms.term_months - 1)
        if payment.amount >= shorter:
            raise InvalidInputError('monthly_payment', payment.to_string(),
                                    f"repays the principal before month {terms.term_months}")
    return terms


def solve_rate(
    principal: Money,
    term_months: int,
    monthly_payment: Money,
    max_iterations: Optional[int] = None,
    tolerance: Optional[Decimal] = None
) -> Decimal:
    """
    Annual rate percent at which a fixed payment repays the principal.

    The annuity payment grows monotonically with the rate, so the monthly
    rate is found by bisection on [0, A / P].

    Raises:
        InfeasiblePaymentError: If payment * term is below the principal
        NonconvergentError: If the search does not narrow within max_iterations
    """
    _require_positive_money('principal', principal)
    _require_positive_term(term_months)
    _require_positive_money('monthly_payment', monthly_payment)

    cfg = get_config()
    if max_iterations is None:
        max_iterations = cfg.rate_solver_max_iterations
    if tolerance is None:
        tolerance = Decimal(cfg.rate_solver_tolerance)
    places = Decimal(1).scaleb(-cfg.rate_precision)

    total = monthly_payment.amount * Decimal(term_months)
    if total < principal.amount:
        raise InfeasiblePaymentError(monthly_payment.to_string(),
                                     (principal / Decimal(term_months)).to_string(),
                                     reason="is below the interest-free payment")
    if total == principal.amount:
        return ZERO.quantize(places)

    low = ZERO
    high = monthly_payment.amount / principal.amount
    for iteration in range(max_iterations):
        middle = (low + high) / 2
        if annuity_payment(principal.amount, middle, term_months) > monthly_payment.amount:
            high = middle
        else:
            low = middle
        if high - low < tolerance:
            annual = ((low + high) / 2 * Decimal('1200')).quantize(places, rounding=ROUND_HALF_UP)
            logger.debug("Solved annual rate %s%% after %d iterations", annual, iteration + 1)
            return annual

    raise NonconvergentError("rate search did not converge",
                             {'iterations': max_iterations, 'interval': str(high - low)})
