"""
Pydantic schemas for API requests and responses
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from ..accounts import Account, LedgerReceipt
from ..currency import format_amount


class CredentialsRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    username: str
    message: str = "Login successful"


class CreateAccountRequest(BaseModel):
    account_number: str = Field(..., description="Positive account number, digits only")
    holder: str = Field(..., description="Account holder name")


class AmountRequest(BaseModel):
    amount: str = Field(..., description="Decimal amount as string")


class AccountModel(BaseModel):
    account_number: int
    holder: str
    balance: str
    summary: str

    @classmethod
    def from_account(cls, account: Account) -> 'AccountModel':
        return cls(
            account_number=account.account_number,
            holder=account.holder,
            balance=format_amount(account.balance),
            summary=account.summary()
        )


class ReceiptModel(BaseModel):
    account: AccountModel
    balance: str
    persisted: bool
    warning: Optional[str] = None
    message: str

    @classmethod
    def from_receipt(cls, receipt: LedgerReceipt, message: str) -> 'ReceiptModel':
        return cls(
            account=AccountModel.from_account(receipt.account),
            balance=format_amount(receipt.balance),
            persisted=receipt.persisted,
            warning=receipt.warning,
            message=message
        )


class HistoryModel(BaseModel):
    account_number: int
    holder: str
    balance: str
    transactions: List[str]
