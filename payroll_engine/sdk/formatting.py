"""Display formatting for calculation results.

Formatted strings are for presentation only and are never parsed back.
The calculator takes any CurrencyFormatter, so the arithmetic can be
tested without touching display conventions.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Protocol

CURRENCY_SYMBOLS = {
    "THB": "฿",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


class CurrencyFormatter(Protocol):
    """Renders monetary amounts as display strings."""

    def format_money(self, amount: Decimal) -> str:
        ...


class SymbolCurrencyFormatter:
    """Symbol-prefixed amounts with thousands separators, e.g. ฿55,000.00."""

    def __init__(self, symbol: str = "฿", places: int = 2):
        self.symbol = symbol
        self.places = places

    def format_money(self, amount: Decimal) -> str:
        quantum = Decimal(1).scaleb(-self.places)
        value = Decimal(amount).quantize(quantum, rounding=ROUND_HALF_UP)
        sign = "-" if value < 0 else ""
        return f"{sign}{self.symbol}{abs(value):,.{self.places}f}"


def formatter_for_currency(currency: str) -> SymbolCurrencyFormatter:
    """Default formatter for an ISO currency code (code + space if no symbol is known)."""
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    return SymbolCurrencyFormatter(symbol)


def format_percentage(rate: Decimal) -> str:
    """Format percentage"""
    return f"{rate:.2f}%"
