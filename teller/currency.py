"""
Amount Handling Module

Decimal parsing, rounding and display for account balances and transaction
amounts. NEVER uses float for monetary values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Union
import re

from .errors import InvalidInputError

# Set global decimal context for financial precision
getcontext().prec = 28

AMOUNT_PRECISION = 2
ZERO = Decimal('0.00')
# Largest amount or balance accepted, well inside the 28-digit context
MAX_AMOUNT = Decimal('999999999999999.99')

AmountLike = Union[Decimal, int, float, str]

_NUMERIC_PATTERN = re.compile(r'^[+-]?(\d+(\.\d*)?|\.\d+)$')


def quantize_amount(value: Decimal) -> Decimal:
    """
    Round a Decimal to two places using half-up rounding

    Raises:
        InvalidInputError: If the value has too many digits to represent
    """
    try:
        return value.quantize(
            Decimal('0.1') ** AMOUNT_PRECISION,
            rounding=ROUND_HALF_UP
        )
    except InvalidOperation:
        raise InvalidInputError("Amount is too large.")


def decimal_from_string(value: str) -> Decimal:
    """
    Convert user-entered text to Decimal

    Args:
        value: Text such as "500", "1,250.00" or " 12.5 "

    Returns:
        Decimal value (not yet rounded)

    Raises:
        InvalidInputError: If the text is empty or not a plain number
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError("Invalid input. Please enter numeric values.")

    clean_value = value.strip()

    # Comma only ever acts as a thousands separator here
    if ',' in clean_value:
        clean_value = clean_value.replace(',', '')

    if not _NUMERIC_PATTERN.match(clean_value):
        raise InvalidInputError("Invalid input. Please enter numeric values.")

    try:
        return Decimal(clean_value)
    except InvalidOperation:
        raise InvalidInputError("Invalid input. Please enter numeric values.")


def parse_amount(value: AmountLike) -> Decimal:
    """
    Normalize an amount from any accepted input type

    Floats go through str() first so 0.1 stays 0.1. Booleans are rejected.
    The result is rounded half-up to two places without telling the caller,
    so "0.005" becomes 0.01 and "0.004" becomes 0.00 (and is then refused
    as non-positive by the ledger).

    Raises:
        InvalidInputError: Malformed text, non-finite values or an amount
            above MAX_AMOUNT
    """
    if isinstance(value, bool):
        raise InvalidInputError("Invalid input. Please enter numeric values.")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        amount = decimal_from_string(value)
    else:
        raise InvalidInputError("Invalid input. Please enter numeric values.")

    if not amount.is_finite():
        raise InvalidInputError("Invalid input. Please enter numeric values.")

    amount = quantize_amount(amount)
    if abs(amount) > MAX_AMOUNT:
        raise InvalidInputError("Amount is too large.")
    return amount


def format_amount(value: Decimal) -> str:
    """Format for history lines and reports, e.g. 1250.5 -> '1250.50'"""
    return f"{quantize_amount(value):.{AMOUNT_PRECISION}f}"
