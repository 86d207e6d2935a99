"""
Credit Engine

Loan parameter solving, amortization schedule generation (annuity and
differentiated), payment ledger and legacy schedule migration. All monetary
math uses Decimal, never float.
"""

__version__ = "1.0.0"
