"""Currency and number formatting package."""

from finance_tracker.formatting.currency import (
    CURRENCIES,
    DEFAULT_CURRENCY,
    CurrencyConfig,
    CurrencyFormatter,
    CurrencyOption,
    SymbolPosition,
)
from finance_tracker.formatting.numbers import (
    ABBREVIATIONS,
    ChartRange,
    NumberAbbreviator,
)

__all__ = [
    "ABBREVIATIONS",
    "CURRENCIES",
    "DEFAULT_CURRENCY",
    "ChartRange",
    "CurrencyConfig",
    "CurrencyFormatter",
    "CurrencyOption",
    "NumberAbbreviator",
    "SymbolPosition",
]
