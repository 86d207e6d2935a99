"""
Tests for the pydantic boundary schemas
"""

import pytest
from decimal import Decimal
from datetime import date
from pydantic import ValidationError

from credit_engine.credits import Credit, create_credit
from credit_engine.currency import Money, Currency
from credit_engine.ledger import apply_credit_payment, due_within
from credit_engine.migration import migrate_all
from credit_engine.schemas import (
    MoneyModel, PartialTermsRequest, LoanTermsModel, ScheduleModel, CreditModel,
    DuePaymentModel, MigrationReportModel
)
from credit_engine.solver import solve
from credit_engine.terms import TermUnknown, PaymentUnknown, ScheduleType


def rub(amount: str) -> Money:
    return Money(Decimal(amount), Currency.RUB)


class TestMoneyModel:
    
    def test_parse_formatted_amount(self):
        """Test parsing formatted amounts"""
        assert MoneyModel(amount="120 000,50").to_money() == rub('120000.50')
        assert MoneyModel(amount="1,000.25", currency="usd").to_money() == Money(Decimal('1000.25'), Currency.USD)
    
    def test_unknown_currency(self):
        """Test rejection of unknown currency codes"""
        with pytest.raises(ValidationError):
            MoneyModel(amount="1", currency="XYZ")
    
    def test_from_money(self):
        """Test Money to model conversion"""
        model = MoneyModel.from_money(rub('10661.85'))
        assert model.amount == "10661.85"
        assert model.currency == "RUB"


class TestTermsSchemas:
    
    def test_partial_request_picks_variant(self):
        """Test request conversion to partial terms"""
        request = PartialTermsRequest(
            principal={"amount": "50000"},
            annual_rate_percent="10",
            monthly_payment={"amount": "1000"},
            start_date="2024-01-15"
        )
        partial = request.to_partial_terms()
        
        assert isinstance(partial, TermUnknown)
        assert partial.start_date == date(2024, 1, 15)
        assert solve(partial).term_months == 65
    
    def test_partial_request_schedule_type(self):
        """Test schedule type on partial requests"""
        request = PartialTermsRequest(principal={"amount": "1000"}, annual_rate_percent="5",
                                      term_months=10, schedule_type="differentiated")
        partial = request.to_partial_terms()
        assert isinstance(partial, PaymentUnknown)
        assert partial.schedule_type == ScheduleType.DIFFERENTIATED
    
    def test_loan_terms_round_trip(self):
        """Test loan terms through JSON"""
        terms = solve(PaymentUnknown(rub('120000'), Decimal('12'), 12, start_date=date(2024, 1, 15),
                                     payment_day=20))
        model = LoanTermsModel.from_loan_terms(terms)
        restored = LoanTermsModel.model_validate(model.model_dump(mode="json")).to_loan_terms()
        assert restored == terms


class TestCreditSchemas:
    """Test that credits survive serialization unchanged"""
    
    def setup_method(self):
        credit = create_credit('Car loan', principal=rub('120000'), annual_rate_percent=Decimal('12'),
                               term_months=12, start_date=date(2024, 1, 10))
        self.credit = apply_credit_payment(credit, credit.schedule.items[0].id,
                                           rub('11000'), date(2024, 1, 9))
    
    def test_credit_round_trip(self):
        """Test a credit through JSON"""
        data = CreditModel.from_credit(self.credit).model_dump(mode="json")
        restored = CreditModel.model_validate(data).to_credit()
        
        assert restored == self.credit
        assert restored.current_balance == rub('110538.15')
    
    def test_amounts_serialized_as_strings(self):
        """Test amounts and dates in JSON output"""
        data = CreditModel.from_credit(self.credit).model_dump(mode="json")
        first = data["schedule"]["items"][0]
        
        assert first["planned_payment"] == {"amount": "10661.85", "currency": "RUB"}
        assert first["paid_amount"]["amount"] == "11000.00"
        assert first["payment_date"] == "2024-01-10"
    
    def test_schedule_items_sorted_on_load(self):
        """Test that line items are ordered on load"""
        data = ScheduleModel.from_schedule(self.credit.schedule).model_dump()
        data["items"].reverse()
        assert ScheduleModel.model_validate(data).to_schedule() == self.credit.schedule
    
    def test_legacy_credit_without_schedule(self):
        """Test a credit without schedule through JSON"""
        legacy = Credit(id='legacy-1', name='Legacy', principal=rub('5000'))
        restored = CreditModel.model_validate(
            CreditModel.from_credit(legacy).model_dump(mode="json")
        ).to_credit()
        assert restored == legacy


class TestResponseSchemas:
    
    def test_due_payment(self):
        """Test due payment response model"""
        credit = create_credit('Phone', principal=rub('1200'), annual_rate_percent=Decimal('0'),
                               term_months=12, start_date=date(2024, 1, 10))
        due = due_within([credit], days_ahead=0, today=date(2024, 2, 1))
        model = DuePaymentModel.from_due_payment(due[0])
        
        assert model.status == "overdue"
        assert model.amount.amount == "100.00"
        assert model.credit_name == "Phone"
    
    def test_migration_report(self):
        """Test migration report response model"""
        credits = [
            Credit(id='ok', name='Ok', principal=rub('1200'), annual_rate_percent=Decimal('0'),
                   term_months=12, start_date=date(2024, 1, 10)),
            Credit(id='sparse', name='Sparse'),
        ]
        model = MigrationReportModel.from_report(migrate_all(credits, today=date(2024, 2, 1)))
        
        assert [c.id for c in model.succeeded] == ['ok']
        assert model.failed[0].credit_id == 'sparse'
        assert model.failed[0].details['credit_id'] == 'sparse'
        assert model.defaulted_start_dates == []
