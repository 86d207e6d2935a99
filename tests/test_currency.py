"""
Test suite for currency module

Tests Money rounding and arithmetic, minor-unit conversion, monthly rate
derivation and string parsing. All amounts must stay Decimal.
"""

import pytest
from decimal import Decimal

from credit_engine.currency import (
    Money, Currency, monthly_rate, decimal_from_string, validate_decimal_precision
)


class TestMoney:
    """Test Money class operations"""
    
    def test_money_creation(self):
        """Test Money object creation and rounding"""
        money = Money(Decimal('100.50'), Currency.RUB)
        assert money.amount == Decimal('100.50')
        assert money.currency == Currency.RUB
        
        # Half-up rounding to kopecks
        assert Money(Decimal('100.555'), Currency.RUB).amount == Decimal('100.56')
        assert Money(Decimal('100.554'), Currency.RUB).amount == Decimal('100.55')
        
        # JPY has no minor unit
        assert Money(Decimal('100.7'), Currency.JPY).amount == Decimal('101')
    
    def test_non_decimal_input_converted(self):
        """Test that ints and strings are converted to Decimal"""
        assert Money(5, Currency.USD).amount == Decimal('5.00')
        assert Money('10.10', Currency.USD).amount == Decimal('10.10')
    
    def test_money_arithmetic(self):
        """Test Money arithmetic operations"""
        money1 = Money(Decimal('100.50'), Currency.RUB)
        money2 = Money(Decimal('50.25'), Currency.RUB)
        
        assert (money1 + money2).amount == Decimal('150.75')
        assert (money1 - money2).amount == Decimal('50.25')
        assert (money1 * Decimal('2')).amount == Decimal('201.00')
        assert (money1 / Decimal('3')).amount == Decimal('33.50')
        assert (-money1).amount == Decimal('-100.50')
        assert abs(Money(Decimal('-50.00'), Currency.RUB)).amount == Decimal('50.00')
    
    def test_interest_multiplication_rounds(self):
        """Test that applying a monthly rate rounds to the minor unit"""
        balance = Money(Decimal('110538.15'), Currency.RUB)
        assert (balance * Decimal('0.01')).amount == Decimal('1105.38')
    
    def test_currency_mismatch(self):
        """Test that mixing currencies is rejected"""
        rub = Money(Decimal('10'), Currency.RUB)
        usd = Money(Decimal('10'), Currency.USD)
        
        with pytest.raises(ValueError, match="Cannot add"):
            rub + usd
        with pytest.raises(ValueError, match="Cannot compare"):
            rub < usd
    
    def test_money_comparison(self):
        """Test Money comparison operations"""
        money1 = Money(Decimal('100.00'), Currency.RUB)
        money2 = Money(Decimal('50.00'), Currency.RUB)
        
        assert money1 == Money(Decimal('100'), Currency.RUB)
        assert money1 != money2
        assert money1 != Money(Decimal('100.00'), Currency.USD)
        assert money2 < money1
        assert money1 >= money2
        assert money1 != Decimal('100.00')
    
    def test_state_checks(self):
        """Test zero/positive/negative helpers"""
        assert Money.zero(Currency.RUB).is_zero()
        assert Money(Decimal('0.01'), Currency.RUB).is_positive()
        assert Money(Decimal('-0.01'), Currency.RUB).is_negative()
    
    def test_minor_units(self):
        """Test conversion to and from integer minor units"""
        money = Money(Decimal('10664.18'), Currency.RUB)
        assert money.to_minor_units() == 1066418
        assert Money.from_minor_units(1066418, Currency.RUB) == money
        assert Money(Decimal('250'), Currency.JPY).to_minor_units() == 250
    
    def test_sum_with_zero_start(self):
        """Test that Money values can be summed from a zero start"""
        amounts = [Money(Decimal('0.10'), Currency.RUB)] * 3
        assert sum(amounts, Money.zero(Currency.RUB)) == Money(Decimal('0.30'), Currency.RUB)
    
    def test_to_string(self):
        """Test display formatting"""
        assert Money(Decimal('120000'), Currency.RUB).to_string() == "RUB 120,000.00"
        assert Money(Decimal('1500'), Currency.JPY).to_string() == "JPY 1,500"


class TestRates:
    """Test monthly rate derivation"""
    
    def test_monthly_rate(self):
        """Test annual percent to monthly rate conversion"""
        assert monthly_rate(Decimal('12')) == Decimal('0.01')
        assert monthly_rate(Decimal('0')) == Decimal('0')
        assert monthly_rate(6) == Decimal('0.005')


class TestDecimalParsing:
    """Test decimal_from_string"""
    
    def test_plain_and_formatted_values(self):
        """Test parsing of plain and formatted numbers"""
        assert decimal_from_string("1000.25") == Decimal('1000.25')
        assert decimal_from_string("1,000.25") == Decimal('1000.25')
        assert decimal_from_string("120 000,50") == Decimal('120000.50')
        assert decimal_from_string("1,000") == Decimal('1000')
        assert decimal_from_string("1,000,000") == Decimal('1000000')
        assert decimal_from_string("-5.5") == Decimal('-5.5')
    
    def test_invalid_values(self):
        """Test that unparseable strings are rejected"""
        with pytest.raises(ValueError):
            decimal_from_string("")
        with pytest.raises(ValueError, match="Cannot convert"):
            decimal_from_string("abc")
    
    def test_validate_precision(self):
        """Test rounding to currency precision"""
        assert validate_decimal_precision(Decimal('1.005'), Currency.RUB) == Decimal('1.01')
        assert validate_decimal_precision(Decimal('1.5'), Currency.JPY) == Decimal('2')
