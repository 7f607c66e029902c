"""
Banking Error Module

Domain exceptions raised by the ledger and credential stores. Every error
carries an ErrorKind so callers (API, CLI, tests) can branch on the kind
instead of the message text.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Kinds of failure an operation can report"""
    INVALID_INPUT = "invalid_input"
    DUPLICATE_ACCOUNT = "duplicate_account"
    DUPLICATE_USERNAME = "duplicate_username"
    ACCOUNT_NOT_FOUND = "account_not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INVALID_CREDENTIALS = "invalid_credentials"
    PERSISTENCE_FAILURE = "persistence_failure"


class BankingError(Exception):
    """Base class for all teller errors"""

    kind: ErrorKind = ErrorKind.INVALID_INPUT

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInputError(BankingError):
    """Non-positive amount, empty required field or malformed numeric text"""
    kind = ErrorKind.INVALID_INPUT


class DuplicateAccountError(BankingError):
    kind = ErrorKind.DUPLICATE_ACCOUNT

    def __init__(self, account_number: int):
        super().__init__("Account number already exists.")
        self.account_number = account_number


class DuplicateUsernameError(BankingError):
    kind = ErrorKind.DUPLICATE_USERNAME

    def __init__(self, username: str):
        super().__init__("Username already exists.")
        self.username = username


class AccountNotFoundError(BankingError):
    kind = ErrorKind.ACCOUNT_NOT_FOUND

    def __init__(self, account_number: int):
        super().__init__("Account not found.")
        self.account_number = account_number


class InsufficientFundsError(BankingError):
    kind = ErrorKind.INSUFFICIENT_FUNDS

    def __init__(self, message: str = "Insufficient balance."):
        super().__init__(message)


class InvalidCredentialsError(BankingError):
    kind = ErrorKind.INVALID_CREDENTIALS

    def __init__(self, message: str = "Invalid username or password."):
        super().__init__(message)


class PersistenceError(BankingError):
    """Raised by storage backends when a snapshot or report cannot be written or read"""
    kind = ErrorKind.PERSISTENCE_FAILURE

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause
