"""
Pydantic schemas for the engine's data boundary

Amounts travel as decimal strings with a currency code, dates as ISO
calendar dates, so nothing passes through float on the way in or out.
"""

from decimal import Decimal
from datetime import date, datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator

from .config import get_config
from .credits import Credit, CreditStatus
from .currency import Money, Currency, decimal_from_string
from .ledger import DuePayment
from .migration import MigrationReport
from .schedule import Schedule, ScheduleLineItem
from .terms import LoanTerms, PartialLoanTerms, ScheduleType, partial_terms_from_fields


def _default_currency() -> str:
    return get_config().default_currency


def _decimal_or_none(value: Optional[str]) -> Optional[Decimal]:
    return decimal_from_string(value) if value is not None else None


class MoneyModel(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")
    currency: str = Field(default_factory=_default_currency, description="Currency code (RUB, USD, etc.)")

    @field_validator('currency')
    @classmethod
    def _known_currency(cls, value: str) -> str:
        code = value.strip().upper()
        if code not in Currency.__members__:
            raise ValueError(f"Unknown currency code: {value}")
        return code

    def to_money(self) -> Money:
        return Money(decimal_from_string(self.amount), Currency[self.currency])

    @classmethod
    def from_money(cls, money: Money) -> 'MoneyModel':
        return cls(amount=str(money.amount), currency=money.currency.code)


def _money_or_none(model: Optional[MoneyModel]) -> Optional[Money]:
    return model.to_money() if model is not None else None


def _model_or_none(money: Optional[Money]) -> Optional[MoneyModel]:
    return MoneyModel.from_money(money) if money is not None else None


# Solver schemas
class PartialTermsRequest(BaseModel):
    """Loan parameters as collected from a form; one of the four may be absent"""
    principal: Optional[MoneyModel] = None
    annual_rate_percent: Optional[str] = None  # Decimal as string
    term_months: Optional[int] = None
    monthly_payment: Optional[MoneyModel] = None
    schedule_type: str = Field(default_factory=lambda: get_config().default_schedule_type)
    start_date: Optional[date] = None
    payment_day: Optional[int] = None

    def to_partial_terms(self) -> PartialLoanTerms:
        return partial_terms_from_fields(
            principal=_money_or_none(self.principal),
            annual_rate_percent=_decimal_or_none(self.annual_rate_percent),
            term_months=self.term_months,
            monthly_payment=_money_or_none(self.monthly_payment),
            schedule_type=ScheduleType(self.schedule_type),
            start_date=self.start_date,
            payment_day=self.payment_day
        )


class LoanTermsModel(BaseModel):
    principal: MoneyModel
    annual_rate_percent: str  # Decimal as string
    term_months: int
    start_date: date
    schedule_type: str = "annuity"
    monthly_payment: Optional[MoneyModel] = None
    payment_day: Optional[int] = None

    def to_loan_terms(self) -> LoanTerms:
        return LoanTerms(
            principal=self.principal.to_money(),
            annual_rate_percent=decimal_from_string(self.annual_rate_percent),
            term_months=self.term_months,
            start_date=self.start_date,
            schedule_type=ScheduleType(self.schedule_type),
            monthly_payment=_money_or_none(self.monthly_payment),
            payment_day=self.payment_day
        )

    @classmethod
    def from_loan_terms(cls, terms: LoanTerms) -> 'LoanTermsModel':
        return cls(
            principal=MoneyModel.from_money(terms.principal),
            annual_rate_percent=str(terms.annual_rate_percent),
            term_months=terms.term_months,
            start_date=terms.start_date,
            schedule_type=terms.schedule_type.value,
            monthly_payment=_model_or_none(terms.monthly_payment),
            payment_day=terms.payment_day
        )


# Schedule schemas
class ScheduleLineItemModel(BaseModel):
    id: str
    month_number: int
    payment_date: date
    planned_payment: MoneyModel
    interest_part: MoneyModel
    principal_part: MoneyModel
    remaining_balance: MoneyModel
    paid: bool = False
    paid_amount: Optional[MoneyModel] = None
    paid_at: Optional[date] = None

    def to_line_item(self) -> ScheduleLineItem:
        return ScheduleLineItem(
            id=self.id,
            month_number=self.month_number,
            payment_date=self.payment_date,
            planned_payment=self.planned_payment.to_money(),
            interest_part=self.interest_part.to_money(),
            principal_part=self.principal_part.to_money(),
            remaining_balance=self.remaining_balance.to_money(),
            paid=self.paid,
            paid_amount=_money_or_none(self.paid_amount),
            paid_at=self.paid_at
        )

    @classmethod
    def from_line_item(cls, item: ScheduleLineItem) -> 'ScheduleLineItemModel':
        return cls(
            id=item.id,
            month_number=item.month_number,
            payment_date=item.payment_date,
            planned_payment=MoneyModel.from_money(item.planned_payment),
            interest_part=MoneyModel.from_money(item.interest_part),
            principal_part=MoneyModel.from_money(item.principal_part),
            remaining_balance=MoneyModel.from_money(item.remaining_balance),
            paid=item.paid,
            paid_amount=_model_or_none(item.paid_amount),
            paid_at=item.paid_at
        )


class ScheduleModel(BaseModel):
    principal: MoneyModel
    schedule_type: str = "annuity"
    items: List[ScheduleLineItemModel] = Field(default_factory=list)

    def to_schedule(self) -> Schedule:
        return Schedule(
            principal=self.principal.to_money(),
            schedule_type=ScheduleType(self.schedule_type),
            items=tuple(item.to_line_item() for item in sorted(self.items, key=lambda i: i.month_number))
        )

    @classmethod
    def from_schedule(cls, schedule: Schedule) -> 'ScheduleModel':
        return cls(
            principal=MoneyModel.from_money(schedule.principal),
            schedule_type=schedule.schedule_type.value,
            items=[ScheduleLineItemModel.from_line_item(item) for item in schedule.items]
        )


# Credit schemas
class CreditModel(BaseModel):
    id: str
    name: str
    principal: Optional[MoneyModel] = None
    annual_rate_percent: Optional[str] = None
    term_months: Optional[int] = None
    monthly_payment: Optional[MoneyModel] = None
    schedule_type: str = "annuity"
    start_date: Optional[date] = None
    payment_day: Optional[int] = None
    status: str = "active"
    schedule: Optional[ScheduleModel] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_credit(self) -> Credit:
        timestamps: Dict[str, Any] = {}
        if self.created_at is not None:
            timestamps['created_at'] = self.created_at
        if self.updated_at is not None:
            timestamps['updated_at'] = self.updated_at
        return Credit(
            id=self.id,
            name=self.name,
            principal=_money_or_none(self.principal),
            annual_rate_percent=_decimal_or_none(self.annual_rate_percent),
            term_months=self.term_months,
            monthly_payment=_money_or_none(self.monthly_payment),
            schedule_type=ScheduleType(self.schedule_type),
            start_date=self.start_date,
            payment_day=self.payment_day,
            status=CreditStatus(self.status),
            schedule=self.schedule.to_schedule() if self.schedule is not None else None,
            **timestamps
        )

    @classmethod
    def from_credit(cls, credit: Credit) -> 'CreditModel':
        return cls(
            id=credit.id,
            name=credit.name,
            principal=_model_or_none(credit.principal),
            annual_rate_percent=str(credit.annual_rate_percent) if credit.annual_rate_percent is not None else None,
            term_months=credit.term_months,
            monthly_payment=_model_or_none(credit.monthly_payment),
            schedule_type=credit.schedule_type.value,
            start_date=credit.start_date,
            payment_day=credit.payment_day,
            status=credit.status.value,
            schedule=ScheduleModel.from_schedule(credit.schedule) if credit.schedule is not None else None,
            created_at=credit.created_at,
            updated_at=credit.updated_at
        )


# Ledger and migration responses
class DuePaymentModel(BaseModel):
    credit_id: str
    credit_name: str
    line_item_id: str
    month_number: int
    payment_date: date
    amount: MoneyModel
    status: str

    @classmethod
    def from_due_payment(cls, due: DuePayment) -> 'DuePaymentModel':
        return cls(
            credit_id=due.credit_id,
            credit_name=due.credit_name,
            line_item_id=due.line_item_id,
            month_number=due.month_number,
            payment_date=due.payment_date,
            amount=MoneyModel.from_money(due.amount),
            status=due.status.value
        )


class MigrationFailureModel(BaseModel):
    credit_id: str
    error: str
    details: Dict[str, Any] = Field(default_factory=dict)


class MigrationReportModel(BaseModel):
    succeeded: List[CreditModel] = Field(default_factory=list)
    failed: List[MigrationFailureModel] = Field(default_factory=list)
    defaulted_start_dates: List[str] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: MigrationReport) -> 'MigrationReportModel':
        return cls(
            succeeded=[CreditModel.from_credit(credit) for credit in report.succeeded],
            failed=[
                MigrationFailureModel(
                    credit_id=failure.credit.id,
                    error=failure.error.message,
                    details=failure.error.details
                )
                for failure in report.failed
            ],
            defaulted_start_dates=list(report.defaulted_start_dates)
        )
