"""
Transaction Report Module

Renders the per-account plain-text transaction report: title, holder,
current balance and the full chronological history.
"""

from typing import List

from .currency import format_amount


def report_name(account_number: int) -> str:
    """Artifact name for an account's report, e.g. account_1001"""
    return f"account_{account_number}"


def render_account_report(account) -> str:
    """Render the report for an Account"""
    lines: List[str] = [
        f"Transaction History for Account #{account.account_number}",
        f"Account Holder: {account.holder}",
        f"Current Balance: {format_amount(account.balance)}",
        "",
        "Transactions:",
    ]
    lines.extend(account.history)
    return "\n".join(lines) + "\n"
