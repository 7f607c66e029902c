"""
Teller

A small banking ledger with snapshot persistence: accounts with deposit,
withdrawal and transaction history, plus a credential store for login.
All monetary values use Decimal.
"""

__version__ = "1.0.0"
