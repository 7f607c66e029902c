"""
Account Ledger Module

Owns the collection of bank accounts: creation, lookup, deposits and
withdrawals. The whole collection is written to storage as one snapshot after
every successful mutation, and each mutation also regenerates the account's
plain-text transaction report.
"""

from decimal import Decimal
from datetime import datetime
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union
import re
import threading

from .currency import AmountLike, MAX_AMOUNT, ZERO, format_amount, parse_amount
from .errors import (
    AccountNotFoundError, DuplicateAccountError, InsufficientFundsError,
    InvalidInputError, PersistenceError
)
from .logging_config import get_logger, log_action
from .reporting import render_account_report, report_name
from .storage import SnapshotStorage


logger = get_logger("teller.ledger")

DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass
class Account:
    """
    Bank account

    account_number and holder never change after creation. history is
    append-only; every entry is "<timestamp> - <message>".
    """
    account_number: int
    holder: str
    balance: Decimal = ZERO
    history: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage"""
        return {
            "account_number": self.account_number,
            "holder": self.holder,
            "balance": str(self.balance),
            "history": list(self.history),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Account':
        """Create instance from dictionary"""
        return cls(
            account_number=int(data["account_number"]),
            holder=data["holder"],
            balance=Decimal(data["balance"]),
            history=list(data["history"]),
        )

    def copy(self) -> 'Account':
        return Account(self.account_number, self.holder, self.balance, list(self.history))

    def summary(self) -> str:
        """Balance inquiry text"""
        return f"Account #{self.account_number}: {self.holder}\nBalance: {format_amount(self.balance)}"


@dataclass
class LedgerReceipt:
    """
    Outcome of a mutating ledger operation

    The in-memory change is always committed when a receipt is returned.
    persisted is False when the account snapshot could not be written;
    warning describes any artifact (snapshot or report) that failed.
    """
    account: Account
    persisted: bool = True
    warning: Optional[str] = None

    @property
    def balance(self) -> Decimal:
        return self.account.balance


_DIGITS = re.compile(r'^\d+$')

# Same ceiling as a signed 32-bit account number
MAX_ACCOUNT_NUMBER = 2147483647


def parse_account_number(value: Union[int, str]) -> int:
    """Accept an int or digit-only text and return an account number in 1..MAX_ACCOUNT_NUMBER"""
    if isinstance(value, bool):
        raise InvalidInputError("Invalid Account Number format.")

    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise InvalidInputError("Account number cannot be empty.")
        if not _DIGITS.match(text):
            raise InvalidInputError("Account number must contain only numbers (0-9).")
        # Checked on length first so int() never sees thousands of digits
        if len(text.lstrip("0")) > len(str(MAX_ACCOUNT_NUMBER)):
            raise InvalidInputError("Invalid Account Number format.")
        number = int(text)
    elif isinstance(value, int):
        number = value
    else:
        raise InvalidInputError("Invalid Account Number format.")

    if number <= 0:
        raise InvalidInputError("Account number must be a positive number.")
    if number > MAX_ACCOUNT_NUMBER:
        raise InvalidInputError("Invalid Account Number format.")
    return number


class LedgerStore:
    """
    In-memory account collection with snapshot persistence

    Accounts are kept in a dict keyed by number, which preserves insertion
    order for listing. All public operations hold one lock so a
    mutate-then-write sequence never interleaves with another.
    """

    def __init__(
        self,
        storage: SnapshotStorage,
        clock: Optional[Callable[[], datetime]] = None,
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
        snapshot_name: str = "accounts",
        max_balance: Decimal = MAX_AMOUNT
    ):
        self.storage = storage
        self.snapshot_name = snapshot_name
        self.max_balance = max_balance
        self.timestamp_format = timestamp_format
        self._clock = clock or datetime.now
        self._accounts: Dict[int, Account] = {}
        self._lock = threading.RLock()
        self._opened = False
        self._dirty = False

    # Lifecycle

    def open(self) -> 'LedgerStore':
        """
        Load the account snapshot

        A missing snapshot means an empty ledger.

        Raises:
            PersistenceError: If the snapshot cannot be read or decoded
        """
        with self._lock:
            payload = self.storage.read_snapshot(self.snapshot_name)
            accounts: Dict[int, Account] = {}
            if payload is not None:
                try:
                    for record in payload:
                        account = Account.from_dict(record)
                        accounts[account.account_number] = account
                except (KeyError, TypeError, ValueError, ArithmeticError) as e:
                    raise PersistenceError(f"Malformed account snapshot: {e}", e)

            self._accounts = accounts
            self._opened = True
            self._dirty = False
            log_action(
                logger, "info", f"Loaded {len(accounts)} accounts",
                action="ledger_open", resource=self.snapshot_name
            )
            return self

    def save(self) -> None:
        """
        Write the full account snapshot

        Raises:
            PersistenceError: If the backend cannot write it
        """
        with self._lock:
            self._require_open()
            payload = [account.to_dict() for account in self._accounts.values()]
            self.storage.write_snapshot(self.snapshot_name, payload)
            self._dirty = False

    def close(self) -> None:
        with self._lock:
            self.storage.close()
            self._opened = False

    def __enter__(self) -> 'LedgerStore':
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def is_dirty(self) -> bool:
        """True while a committed change has not reached storage"""
        return self._dirty

    # Mutations

    def create_account(self, account_number: Union[int, str], holder: str) -> LedgerReceipt:
        """
        Create a zero-balance account

        Raises:
            InvalidInputError: Non-positive/malformed number or blank holder
            DuplicateAccountError: Number already in use
        """
        number = parse_account_number(account_number)
        holder = (holder or "").strip()
        if not holder:
            raise InvalidInputError("Account Holder name cannot be empty.")

        with self._lock:
            self._require_open()
            if number in self._accounts:
                raise DuplicateAccountError(number)

            account = Account(account_number=number, holder=holder)
            account.history.append(
                self._history_entry(f"Account created with initial balance: {format_amount(ZERO)}")
            )
            self._accounts[number] = account
            self._dirty = True

            log_action(
                logger, "info", f"Account #{number} created",
                action="create_account", resource=report_name(number),
                extra={"holder": holder}
            )
            return self._persist(account)

    def deposit(self, account_number: Union[int, str], amount: AmountLike) -> LedgerReceipt:
        """
        Add funds to an account

        Raises:
            InvalidInputError: Amount not positive, not a number, or would
                push the balance above max_balance
            AccountNotFoundError: Unknown account number
        """
        number = parse_account_number(account_number)
        value = parse_amount(amount)
        if value <= ZERO:
            raise InvalidInputError("Deposit amount must be positive.")

        with self._lock:
            account = self._find(number)
            new_balance = account.balance + value
            if new_balance > self.max_balance:
                raise InvalidInputError("Deposit would exceed the maximum balance.")
            entry = self._history_entry(
                f"Deposited: {format_amount(value)}, New Balance: {format_amount(new_balance)}"
            )
            self._apply(account, new_balance, entry)

            log_action(
                logger, "info", f"Deposited {format_amount(value)} to account #{number}",
                action="deposit", resource=report_name(number),
                extra={"amount": str(value), "balance": str(account.balance)}
            )
            return self._persist(account)

    def withdraw(self, account_number: Union[int, str], amount: AmountLike) -> LedgerReceipt:
        """
        Remove funds from an account

        Raises:
            InvalidInputError: Amount not positive or not a number
            AccountNotFoundError: Unknown account number
            InsufficientFundsError: Amount exceeds the balance
        """
        number = parse_account_number(account_number)
        value = parse_amount(amount)
        if value <= ZERO:
            raise InvalidInputError("Withdrawal amount must be positive.")

        with self._lock:
            account = self._find(number)
            if value > account.balance:
                log_action(
                    logger, "info", f"Withdrawal of {format_amount(value)} from account #{number} refused",
                    action="withdraw_refused", resource=report_name(number),
                    extra={"amount": str(value), "balance": str(account.balance)}
                )
                raise InsufficientFundsError()

            new_balance = account.balance - value
            entry = self._history_entry(
                f"Withdrew: {format_amount(value)}, New Balance: {format_amount(new_balance)}"
            )
            self._apply(account, new_balance, entry)

            log_action(
                logger, "info", f"Withdrew {format_amount(value)} from account #{number}",
                action="withdraw", resource=report_name(number),
                extra={"amount": str(value), "balance": str(account.balance)}
            )
            return self._persist(account)

    def export_report(self, account_number: Union[int, str]) -> LedgerReceipt:
        """Regenerate an account's report without changing the account"""
        number = parse_account_number(account_number)
        with self._lock:
            account = self._find(number)
            warning = self._write_report(account)
            return LedgerReceipt(account=account.copy(), persisted=warning is None, warning=warning)

    # Queries

    def get_account(self, account_number: Union[int, str]) -> Account:
        """Get a copy of an account"""
        number = parse_account_number(account_number)
        with self._lock:
            return self._find(number).copy()

    def get_balance(self, account_number: Union[int, str]) -> Decimal:
        return self.get_account(account_number).balance

    def list_history(self, account_number: Union[int, str]) -> List[str]:
        """Transaction history, oldest first"""
        return self.get_account(account_number).history

    def list_accounts(self) -> List[Account]:
        """All accounts in creation order"""
        with self._lock:
            self._require_open()
            return [account.copy() for account in self._accounts.values()]

    def __len__(self) -> int:
        with self._lock:
            self._require_open()
            return len(self._accounts)

    def __contains__(self, account_number: int) -> bool:
        with self._lock:
            self._require_open()
            return account_number in self._accounts

    # Internals

    def _require_open(self) -> None:
        if not self._opened:
            raise RuntimeError("LedgerStore is not open")

    def _find(self, number: int) -> Account:
        self._require_open()
        account = self._accounts.get(number)
        if account is None:
            raise AccountNotFoundError(number)
        return account

    def _history_entry(self, message: str) -> str:
        timestamp = self._clock().strftime(self.timestamp_format)
        return f"{timestamp} - {message}"

    def _apply(self, account: Account, new_balance: Decimal, entry: str) -> None:
        # Single point where balance and history change together
        account.balance = new_balance
        account.history.append(entry)
        self._dirty = True

    def _write_report(self, account: Account) -> Optional[str]:
        try:
            self.storage.write_report(report_name(account.account_number), render_account_report(account))
        except PersistenceError as e:
            log_action(
                logger, "warning", f"Transaction report not saved: {e.message}",
                action="write_report_failed", resource=report_name(account.account_number)
            )
            return f"Error saving transaction history: {e.message}"
        return None

    def _persist(self, account: Account) -> LedgerReceipt:
        warnings = []
        persisted = True
        try:
            self.save()
        except PersistenceError as e:
            persisted = False
            log_action(
                logger, "warning", f"Account snapshot not saved: {e.message}",
                action="save_accounts_failed", resource=self.snapshot_name
            )
            warnings.append(f"Error saving accounts: {e.message}")

        report_warning = self._write_report(account)
        if report_warning:
            warnings.append(report_warning)

        return LedgerReceipt(
            account=account.copy(),
            persisted=persisted,
            warning="; ".join(warnings) if warnings else None
        )
