"""
Currency Support Module

Decimal parsing, rounding and display helpers for loan amounts.
NEVER uses float for monetary values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from enum import Enum
from typing import Union
import re

# High precision for repeated installment division
getcontext().prec = 28


class Currency(Enum):
    """ISO 4217 Currency Codes with precision info"""
    PHP = ("PHP", 2, "₱")  # Philippine Peso
    USD = ("USD", 2, "$")  # US Dollar
    EUR = ("EUR", 2, "€")  # Euro
    JPY = ("JPY", 0, "¥")  # Japanese Yen
    
    def __init__(self, code: str, precision: int, symbol: str):
        self.code = code
        self.precision = precision
        self.symbol = symbol


def to_decimal(value: Union[Decimal, int, str]) -> Decimal:
    """
    Convert an int, string or Decimal into Decimal.
    
    Floats are rejected: they cannot represent currency amounts exactly.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or isinstance(value, float):
        raise TypeError(f"Monetary values must not be {type(value).__name__}")
    if isinstance(value, int):
        return Decimal(value)
    return decimal_from_string(value)


_AMOUNT_PATTERN = re.compile(r'[+-]?[\d.,]+')


def _strip_currency(value: str) -> str:
    """Drop one leading or trailing currency symbol or ISO code"""
    for currency in Currency:
        for marker in (currency.symbol, currency.code):
            if value.startswith(marker):
                return value[len(marker):].strip()
            if value.endswith(marker):
                return value[:-len(marker)].strip()
    return value


def decimal_from_string(value: str) -> Decimal:
    """
    Safely convert string to Decimal, handling common formats
    
    Args:
        value: String representation of number
        
    Returns:
        Decimal value
        
    Raises:
        ValueError: If string cannot be converted to valid Decimal
    """
    if not value or not isinstance(value, str):
        raise ValueError("Value must be a non-empty string")
    
    clean_value = _strip_currency(value.strip())
    # Only a sign, digits and separators remain in a valid amount
    if not _AMOUNT_PATTERN.fullmatch(clean_value):
        raise ValueError(f"Cannot convert '{value}' to Decimal")
    
    # Comma with a dot present is a thousands separator
    if ',' in clean_value and '.' in clean_value:
        clean_value = clean_value.replace(',', '')
    elif ',' in clean_value and clean_value.count(',') == 1:
        parts = clean_value.split(',')
        if len(parts[1]) <= 2:
            clean_value = clean_value.replace(',', '.')
        else:
            clean_value = clean_value.replace(',', '')
    else:
        clean_value = clean_value.replace(',', '')
    
    try:
        return Decimal(clean_value)
    except InvalidOperation:
        raise ValueError(f"Cannot convert '{value}' to Decimal")


def round_amount(value: Decimal, currency: Currency = Currency.PHP) -> Decimal:
    """Round a Decimal to the currency's minor unit"""
    return value.quantize(
        Decimal('0.1') ** currency.precision,
        rounding=ROUND_HALF_UP
    )


def format_amount(value: Decimal, currency: Currency = Currency.PHP) -> str:
    """Format for display, e.g. ``₱5,000.00``"""
    rounded = round_amount(value, currency)
    if currency.precision == 0:
        return f"{currency.symbol}{rounded:,.0f}"
    return f"{currency.symbol}{rounded:,.{currency.precision}f}"
