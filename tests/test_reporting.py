"""
Tests for the per-account transaction report
"""

from decimal import Decimal

from teller.accounts import Account
from teller.reporting import render_account_report, report_name


def test_report_sections():
    account = Account(
        account_number=1001,
        holder="Alice",
        balance=Decimal("300"),
        history=[
            "2024-01-15 09:30:00 - Account created with initial balance: 0.00",
            "2024-01-15 09:31:00 - Deposited: 500.00, New Balance: 500.00",
            "2024-01-15 09:32:00 - Withdrew: 200.00, New Balance: 300.00",
        ]
    )

    assert render_account_report(account) == (
        "Transaction History for Account #1001\n"
        "Account Holder: Alice\n"
        "Current Balance: 300.00\n"
        "\n"
        "Transactions:\n"
        "2024-01-15 09:30:00 - Account created with initial balance: 0.00\n"
        "2024-01-15 09:31:00 - Deposited: 500.00, New Balance: 500.00\n"
        "2024-01-15 09:32:00 - Withdrew: 200.00, New Balance: 300.00\n"
    )


def test_report_name():
    assert report_name(42) == "account_42"
