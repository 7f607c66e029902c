"""
Account endpoints
"""

from fastapi import APIRouter, Depends, status

from .auth import BankingSystem, get_banking_system, get_current_user
from .schemas import (
    AccountModel, AmountRequest, CreateAccountRequest, HistoryModel, ReceiptModel
)
from ..currency import format_amount
from ..reporting import report_name


router = APIRouter()


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ReceiptModel)
async def create_account(
    request: CreateAccountRequest,
    system: BankingSystem = Depends(get_banking_system),
    user: str = Depends(get_current_user)
):
    """Create a new zero-balance account"""
    receipt = system.ledger.create_account(request.account_number, request.holder)
    return ReceiptModel.from_receipt(receipt, "Account created successfully")


@router.get("")
async def list_accounts(
    system: BankingSystem = Depends(get_banking_system),
    user: str = Depends(get_current_user)
):
    """List all accounts in creation order"""
    return {
        "accounts": [AccountModel.from_account(a).dict() for a in system.ledger.list_accounts()]
    }


@router.get("/{account_number}", response_model=AccountModel)
async def get_account(
    account_number: str,
    system: BankingSystem = Depends(get_banking_system),
    user: str = Depends(get_current_user)
):
    """Balance inquiry"""
    return AccountModel.from_account(system.ledger.get_account(account_number))


@router.post("/{account_number}/deposit", response_model=ReceiptModel)
async def deposit(
    account_number: str,
    request: AmountRequest,
    system: BankingSystem = Depends(get_banking_system),
    user: str = Depends(get_current_user)
):
    """Deposit funds"""
    receipt = system.ledger.deposit(account_number, request.amount)
    return ReceiptModel.from_receipt(
        receipt, f"Deposited to Account #{receipt.account.account_number}"
    )


@router.post("/{account_number}/withdraw", response_model=ReceiptModel)
async def withdraw(
    account_number: str,
    request: AmountRequest,
    system: BankingSystem = Depends(get_banking_system),
    user: str = Depends(get_current_user)
):
    """Withdraw funds"""
    receipt = system.ledger.withdraw(account_number, request.amount)
    return ReceiptModel.from_receipt(
        receipt, f"Withdrew from Account #{receipt.account.account_number}"
    )


@router.get("/{account_number}/history", response_model=HistoryModel)
async def get_history(
    account_number: str,
    system: BankingSystem = Depends(get_banking_system),
    user: str = Depends(get_current_user)
):
    """Transaction history, oldest first"""
    account = system.ledger.get_account(account_number)
    return HistoryModel(
        account_number=account.account_number,
        holder=account.holder,
        balance=format_amount(account.balance),
        transactions=account.history
    )


@router.post("/{account_number}/report", response_model=ReceiptModel)
async def export_report(
    account_number: str,
    system: BankingSystem = Depends(get_banking_system),
    user: str = Depends(get_current_user)
):
    """Regenerate the account's transaction report"""
    receipt = system.ledger.export_report(account_number)
    return ReceiptModel.from_receipt(
        receipt, f"Transaction history saved to file: {report_name(receipt.account.account_number)}.txt"
    )
