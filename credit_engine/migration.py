"""
Credit Schedule Migration

Retrofits payment schedules onto credits created before schedules existed,
or whose stored schedule no longer holds together. Each credit is migrated
independently; a batch never stops on a failed record.
"""

from datetime import date
from dataclasses import dataclass, field
from typing import Iterable, List, Optional
import logging

from .credits import Credit, resolve_terms, with_schedule
from .errors import CreditEngineError, InsufficientDataError, MigrationError
from .schedule import check_invariants, rebuild
from .solver import solve_rate
from .terms import LoanTerms


logger = logging.getLogger(__name__)


@dataclass
class MigrationFailure:
    """A credit that could not be migrated and why"""
    credit: Credit
    error: MigrationError


@dataclass
class MigrationReport:
    """Outcome of a batch migration"""
    succeeded: List[Credit] = field(default_factory=list)
    failed: List[MigrationFailure] = field(default_factory=list)
    defaulted_start_dates: List[str] = field(default_factory=list)  # Credit ids

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)


def schedule_problems(credit: Credit) -> List[str]:
    """Reasons the credit's stored schedule cannot be used as is"""
    if not credit.has_schedule:
        return ["no schedule"]

    problems = check_invariants(credit.schedule)
    if credit.principal is not None and credit.schedule.principal != credit.principal:
        problems.append("schedule principal differs from credit principal")
    if credit.term_months is not None and len(credit.schedule) != credit.term_months:
        problems.append("schedule length differs from credit term")
    if credit.schedule_type != credit.schedule.schedule_type:
        problems.append("schedule type differs from credit schedule type")
    return problems


def needs_migration(credit: Credit) -> bool:
    return bool(schedule_problems(credit))


def find_credits_needing_migration(credits: Iterable[Credit]) -> List[Credit]:
    """Credits without a usable schedule"""
    return [credit for credit in credits if needs_migration(credit)]


def migrate(legacy: Credit, today: Optional[date] = None) -> Credit:
    """
    Derive and attach a schedule for one legacy credit.

    Whichever single term field is missing gets solved (the rate by
    iteration). When all four are stored, the payment is re-solved from
    principal, rate and term. A missing start date defaults to today, which
    makes every past line item appear unpaid until the caller reconciles
    them. Paid months of a stale schedule are carried over by month number.

    Args:
        legacy: Credit possibly lacking a schedule
        today: Date used for a missing start date

    Returns:
        The credit unchanged when its schedule is already valid, otherwise
        a copy with solved terms and a new schedule

    Raises:
        MigrationError: Wrapping the solver or data error for this credit
    """
    problems = schedule_problems(legacy)
    if not problems:
        logger.info("Credit %s already has a valid schedule, skipping migration", legacy.id)
        return legacy

    try:
        missing = legacy.missing_term_fields
        if len(missing) > 1:
            raise InsufficientDataError(missing)

        annual_rate_percent = legacy.annual_rate_percent
        if missing == ['annual_rate_percent']:
            annual_rate_percent = solve_rate(legacy.principal, legacy.term_months, legacy.monthly_payment)
            logger.info("Solved missing rate %s%% for credit %s", annual_rate_percent, legacy.id)

        start_date = legacy.start_date
        if start_date is None:
            start_date = today or date.today()
            logger.warning("Credit %s has no start date, scheduling from %s; "
                           "past payments will show as unpaid", legacy.id, start_date.isoformat())

        payment_day = legacy.payment_day
        if payment_day is not None and not 1 <= payment_day <= 31:
            logger.warning("Credit %s has invalid payment day %s, using start day",
                           legacy.id, payment_day)
            payment_day = None

        if missing == ['annual_rate_percent']:
            # The solved rate is rounded, so the stored payment is kept as is
            terms = LoanTerms(
                principal=legacy.principal,
                annual_rate_percent=annual_rate_percent,
                term_months=legacy.term_months,
                start_date=start_date,
                schedule_type=legacy.schedule_type,
                monthly_payment=legacy.monthly_payment,
                payment_day=payment_day
            )
        else:
            monthly_payment = legacy.monthly_payment if missing else None
            terms = resolve_terms(
                principal=legacy.principal,
                annual_rate_percent=annual_rate_percent,
                term_months=legacy.term_months,
                monthly_payment=monthly_payment,
                schedule_type=legacy.schedule_type,
                start_date=start_date,
                payment_day=payment_day,
                today=today
            )
    except CreditEngineError as e:
        logger.error("Cannot migrate credit %s: %s", legacy.id, e)
        raise MigrationError(legacy.id, e) from e

    migrated = with_schedule(legacy, terms, rebuild(legacy.schedule, terms, keep_paid=True))
    logger.info("Migrated credit %s (%s) with %d schedule items",
                legacy.id, "; ".join(problems), len(migrated.schedule))
    return migrated


def migrate_all(credits: Iterable[Credit], today: Optional[date] = None) -> MigrationReport:
    """
    Migrate every credit independently.

    Every input credit ends up in exactly one of succeeded or failed.
    """
    report = MigrationReport()

    for credit in credits:
        try:
            migrated = migrate(credit, today=today)
        except MigrationError as e:
            report.failed.append(MigrationFailure(credit=credit, error=e))
            continue
        except Exception as e:
            # Log error but continue with other credits
            logger.exception("Unexpected failure migrating credit %s", credit.id)
            report.failed.append(MigrationFailure(credit=credit, error=MigrationError(credit.id, e)))
            continue

        report.succeeded.append(migrated)
        if credit.start_date is None and migrated is not credit:
            report.defaulted_start_dates.append(credit.id)

    logger.info("Migration complete: %d succeeded, %d failed",
                len(report.succeeded), len(report.failed))
    return report
