"""
Cooperative Lending Engine

Loan amortization, interest accrual and penalty computation for a member-owned
micro-finance cooperative. All financial math uses Decimal precision.
"""

__version__ = "1.0.0"
