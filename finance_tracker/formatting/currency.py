"""
Currency Formatting

Locale-aware rendering and parsing of monetary amounts for ~30 currencies.

DESIGN DECISION: Grouping is dispatched per currency code, not assumed.
A currency can put its symbol before (no space) or after (one space) the
number, use 0 or 2 decimals, and group digits in one of these ways:
- Standard: triplets from the right          1,234,567
- Dot thousands: same triplets, '.' grouping  1.234.567,89
- Indian (lakh/crore): last three, then pairs 12,34,567

Parsing is the inverse of formatting and is relaxed: an
unparseable string yields 0 instead of raising. It runs on
text the user is still typing.
"""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field


Number = Union[Decimal, float, int]

# Leading numeric prefix, the way a lenient float parser reads it
_NUMERIC_PREFIX = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


class SymbolPosition(str, Enum):
    BEFORE = "before"
    AFTER = "after"


class CurrencyConfig(BaseModel):
    """Static description of how one currency is displayed."""
    model_config = ConfigDict(frozen=True)

    code: str = Field(..., min_length=3, max_length=3)
    symbol: str
    name: str
    locale: str = Field(..., description="Informational BCP 47 tag")
    decimals: int = Field(..., ge=0, le=2)
    symbol_position: SymbolPosition
    thousands_separator: str
    decimal_separator: str


class CurrencyOption(BaseModel):
    """Entry for a currency selector."""
    model_config = ConfigDict(frozen=True)

    code: str
    symbol: str
    name: str


def _currency(
    code: str,
    symbol: str,
    name: str,
    locale: str,
    decimals: int = 2,
    position: SymbolPosition = SymbolPosition.BEFORE,
    thousands: str = ",",
    decimal: str = ".",
) -> CurrencyConfig:
    return CurrencyConfig(
        code=code,
        symbol=symbol,
        name=name,
        locale=locale,
        decimals=decimals,
        symbol_position=position,
        thousands_separator=thousands,
        decimal_separator=decimal,
    )


_AFTER = SymbolPosition.AFTER

# Order matters: it is the order shown in the currency selector.
CURRENCIES: dict[str, CurrencyConfig] = {
    c.code: c
    for c in (
        _currency("USD", "$", "US Dollar", "en-US"),
        _currency("EUR", "€", "Euro", "de-DE", position=_AFTER, thousands=".", decimal=","),
        _currency("GBP", "£", "British Pound", "en-GB"),
        _currency("JPY", "¥", "Japanese Yen", "ja-JP", decimals=0),
        _currency("IDR", "Rp", "Indonesian Rupiah", "id-ID", thousands=".", decimal=","),
        _currency("INR", "₹", "Indian Rupee", "en-IN"),
        _currency("CNY", "¥", "Chinese Yuan", "zh-CN"),
        _currency("KRW", "₩", "South Korean Won", "ko-KR", decimals=0),
        _currency("AUD", "A$", "Australian Dollar", "en-AU"),
        _currency("CAD", "C$", "Canadian Dollar", "en-CA"),
        _currency("CHF", "CHF", "Swiss Franc", "de-CH", thousands="'"),
        _currency("SEK", "kr", "Swedish Krona", "sv-SE", position=_AFTER, thousands=" ", decimal=","),
        _currency("NOK", "kr", "Norwegian Krone", "nb-NO", position=_AFTER, thousands=" ", decimal=","),
        _currency("DKK", "kr", "Danish Krone", "da-DK", position=_AFTER, thousands=".", decimal=","),
        _currency("PLN", "zł", "Polish Zloty", "pl-PL", position=_AFTER, thousands=" ", decimal=","),
        _currency("RUB", "₽", "Russian Ruble", "ru-RU", position=_AFTER, thousands=" ", decimal=","),
        _currency("BRL", "R$", "Brazilian Real", "pt-BR", thousands=".", decimal=","),
        _currency("MXN", "$", "Mexican Peso", "es-MX"),
        _currency("ZAR", "R", "South African Rand", "en-ZA", thousands=" ", decimal=","),
        _currency("SGD", "S$", "Singapore Dollar", "en-SG"),
        _currency("HKD", "HK$", "Hong Kong Dollar", "en-HK"),
        _currency("TWD", "NT$", "Taiwan Dollar", "zh-TW", decimals=0),
        _currency("THB", "฿", "Thai Baht", "th-TH"),
        _currency("MYR", "RM", "Malaysian Ringgit", "ms-MY"),
        _currency("PHP", "₱", "Philippine Peso", "en-PH"),
        _currency("VND", "₫", "Vietnamese Dong", "vi-VN", decimals=0, position=_AFTER, thousands=".", decimal=","),
        _currency("AED", "AED", "UAE Dirham", "ar-AE"),
        _currency("SAR", "SR", "Saudi Riyal", "ar-SA"),
        _currency("EGP", "E£", "Egyptian Pound", "ar-EG"),
        _currency("ILS", "₪", "Israeli Shekel", "he-IL"),
        _currency("TRY", "₺", "Turkish Lira", "tr-TR", thousands=".", decimal=","),
    )
}

DEFAULT_CURRENCY = "USD"

# Currencies grouped lakh/crore style
_INDIAN_GROUPING = frozenset({"INR"})


def to_decimal(amount: Number) -> Decimal:
    """
    Convert an input amount to Decimal.

    Floats go through str() so 1234567.89 stays 1234567.89 rather than
    its binary expansion.
    """
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, float):
        return Decimal(str(amount))
    return Decimal(amount)


def _group_standard(digits: str, separator: str) -> str:
    groups = []
    while len(digits) > 3:
        groups.append(digits[-3:])
        digits = digits[:-3]
    groups.append(digits)
    return separator.join(reversed(groups))


def _group_indian(digits: str, separator: str) -> str:
    if len(digits) <= 3:
        return digits
    head, last_three = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.append(head[-2:])
        head = head[:-2]
    pairs.append(head)
    return separator.join(reversed(pairs)) + separator + last_three


class CurrencyFormatter:
    """
    Formats and parses amounts per currency.

    All methods are static lookups against the CURRENCIES table; unknown
    codes fall back to USD (except is_valid_currency).
    """

    @staticmethod
    def get_currency(currency_code: str = DEFAULT_CURRENCY) -> CurrencyConfig:
        return CURRENCIES.get(currency_code, CURRENCIES[DEFAULT_CURRENCY])

    @staticmethod
    def get_symbol(currency_code: str = DEFAULT_CURRENCY) -> str:
        return CurrencyFormatter.get_currency(currency_code).symbol

    @staticmethod
    def get_all_currencies() -> list[CurrencyConfig]:
        return list(CURRENCIES.values())

    @staticmethod
    def is_valid_currency(currency_code: str) -> bool:
        return currency_code in CURRENCIES

    @staticmethod
    def currency_options() -> list[CurrencyOption]:
        """Read-only {code, symbol, name} list in table order."""
        return [
            CurrencyOption(code=c.code, symbol=c.symbol, name=c.name)
            for c in CURRENCIES.values()
        ]

    @staticmethod
    def _format_number(amount: Number, config: CurrencyConfig) -> str:
        value = to_decimal(amount)
        quantum = Decimal(1).scaleb(-config.decimals)
        fixed = abs(value).quantize(quantum, rounding=ROUND_HALF_UP)
        integer_part, _, decimal_part = f"{fixed:f}".partition(".")

        if config.code in _INDIAN_GROUPING:
            grouped = _group_indian(integer_part, config.thousands_separator)
        else:
            grouped = _group_standard(integer_part, config.thousands_separator)

        if config.decimals > 0 and decimal_part:
            grouped = f"{grouped}{config.decimal_separator}{decimal_part}"

        # A value that rounds to zero is shown unsigned
        if value < 0 and fixed != 0:
            return f"-{grouped}"
        return grouped

    @staticmethod
    def format(amount: Number, currency_code: str = DEFAULT_CURRENCY) -> str:
        """
        Render an amount with its currency symbol.

        Examples:
            format(1234567.89, "INR")  -> "₹12,34,567.89"
            format(1234567.5, "IDR")   -> "Rp1.234.567,50"
            format(1234.5, "EUR")      -> "1.234,50 €"
        """
        config = CurrencyFormatter.get_currency(currency_code)
        number = CurrencyFormatter._format_number(amount, config)
        sign = ""
        if number.startswith("-"):
            sign, number = "-", number[1:]

        if config.symbol_position == SymbolPosition.BEFORE:
            return f"{sign}{config.symbol}{number}"
        return f"{sign}{number} {config.symbol}"

    @staticmethod
    def format_without_symbol(amount: Number, currency_code: str = DEFAULT_CURRENCY) -> str:
        config = CurrencyFormatter.get_currency(currency_code)
        return CurrencyFormatter._format_number(amount, config)

    @staticmethod
    def parse(formatted_amount: str, currency_code: str = DEFAULT_CURRENCY) -> Decimal:
        """
        Parse a formatted string back to a Decimal.

        The string is split on the decimal separator FIRST, so currencies
        that group with '.' (IDR, EUR, BRL, ...) never confuse a grouping
        dot with a decimal point.

        Returns Decimal(0) when nothing numeric can be read. Never raises.
        """
        if not isinstance(formatted_amount, str):
            return Decimal(0)

        config = CurrencyFormatter.get_currency(currency_code)
        cleaned = formatted_amount.replace(config.symbol, "", 1).strip()

        integer_part, separator, decimal_part = cleaned.rpartition(config.decimal_separator)
        if not separator:
            integer_part, decimal_part = cleaned, ""

        integer_part = integer_part.replace(config.thousands_separator, "")
        integer_part = "".join(integer_part.split())
        if decimal_part:
            normalized = f"{integer_part}.{decimal_part.strip()}"
        else:
            normalized = integer_part

        match = _NUMERIC_PREFIX.match(normalized)
        if match is None:
            return Decimal(0)
        try:
            value = Decimal(match.group(0))
        except InvalidOperation:
            return Decimal(0)
        if not value.is_finite():
            return Decimal(0)
        return value
