"""
Number Abbreviation

Compresses large magnitudes into K/M/B/T short forms for chart axes and
summary tiles.

DESIGN DECISION: abbreviate() and format_for_chart() carry two separate
decimal policies. They agree for most inputs but not all (3000000 is
"3M" from one and "3.0M" from the other), so they stay separate helpers.
"""

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, NamedTuple, Union


Number = Union[Decimal, float, int]


class Abbreviation(NamedTuple):
    threshold: float
    suffix: str
    decimals: int


# Largest first: the first threshold not exceeding the value wins
ABBREVIATIONS: tuple[Abbreviation, ...] = (
    Abbreviation(1e12, "T", 1),
    Abbreviation(1e9, "B", 1),
    Abbreviation(1e6, "M", 1),
    Abbreviation(1e3, "K", 1),
)


class ChartRange(NamedTuple):
    """Axis range with a nice round maximum and step."""
    min: float
    max: float
    step: float


def _to_fixed(value: float, places: int) -> str:
    """Fixed-point text with ties rounded away from zero."""
    quantum = Decimal(1).scaleb(-places)
    return f"{Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP):f}"


def _round(value: float) -> int:
    """Nearest integer, ties towards +infinity."""
    return math.floor(value + 0.5)


def _plain(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return str(value)


def _has_fraction(value: float) -> bool:
    return value % 1 != 0


def _non_finite(value: float) -> str:
    """NaN and infinities render the way a browser prints them."""
    if math.isnan(value):
        return "NaN"
    return "Infinity" if value > 0 else "-Infinity"


def _select(value: float) -> Abbreviation:
    magnitude = abs(value)
    for abbrev in ABBREVIATIONS:
        if magnitude >= abbrev.threshold:
            return abbrev
    raise ValueError(f"No abbreviation below {value}")


class NumberAbbreviator:
    """K/M/B/T formatting helpers."""

    @staticmethod
    def abbreviate(value: Number, force_decimals: bool = False) -> str:
        """
        Abbreviate a number.

        Below 1000 the value is returned as-is (or with one decimal when
        forced). Above, one decimal is shown only when forced, or when the
        quotient is fractional and below 100.

        Examples:
            abbreviate(1500)       -> "1.5K"
            abbreviate(150000000)  -> "150M"
            abbreviate(2000)       -> "2K"
        """
        value = float(value)
        if not math.isfinite(value):
            return _non_finite(value)
        if abs(value) < 1000:
            return _to_fixed(value, 1) if force_decimals else _plain(value)

        abbrev = _select(value)
        quotient = value / abbrev.threshold
        show_decimals = force_decimals or (_has_fraction(quotient) and quotient < 100)
        if show_decimals:
            return f"{_to_fixed(quotient, abbrev.decimals)}{abbrev.suffix}"
        return f"{_round(quotient)}{abbrev.suffix}"

    @staticmethod
    def abbreviate_currency(
        value: Number,
        currency_symbol: str,
        force_decimals: bool = False,
    ) -> str:
        return f"{currency_symbol}{NumberAbbreviator.abbreviate(value, force_decimals)}"

    @staticmethod
    def format_for_chart(value: Number, currency_symbol: str = "") -> str:
        """
        Chart-tuned abbreviation.

        - 0            -> "{symbol}0"
        - below 1000   -> rounded integer, never decimals
        - quotient 100+     -> integer       (150M)
        - quotient 10..100  -> 1 decimal only if fractional (15.5M, 20M)
        - quotient below 10 -> always 1 decimal (2.5M, 3.0M)
        """
        value = float(value)
        if not math.isfinite(value):
            return f"{currency_symbol}{_non_finite(value)}"
        if value == 0:
            return f"{currency_symbol}0"

        if abs(value) < 1000:
            return f"{currency_symbol}{_round(value)}"

        abbrev = _select(value)
        quotient = value / abbrev.threshold
        if quotient >= 100:
            formatted = f"{_round(quotient)}{abbrev.suffix}"
        elif quotient >= 10:
            if _has_fraction(quotient):
                formatted = f"{_to_fixed(quotient, 1)}{abbrev.suffix}"
            else:
                formatted = f"{_round(quotient)}{abbrev.suffix}"
        else:
            formatted = f"{_to_fixed(quotient, 1)}{abbrev.suffix}"

        return f"{currency_symbol}{formatted}"

    @staticmethod
    def suggest_chart_range(max_value: Number) -> ChartRange:
        """
        Suggest a nice axis range for a dataset maximum.

        Pads the maximum by 20 %, then snaps its mantissa to 1, 2, 5 or 10.
        Non-positive and non-finite maxima get the default 0..100 range.
        """
        max_value = float(max_value)
        if not math.isfinite(max_value) or max_value <= 0:
            return ChartRange(min=0, max=100, step=20)

        padded = max_value * 1.2
        magnitude = 10 ** math.floor(math.log10(padded))
        normalized = padded / magnitude

        if normalized <= 1:
            nice_max, step = 1, 0.2
        elif normalized <= 2:
            nice_max, step = 2, 0.5
        elif normalized <= 5:
            nice_max, step = 5, 1
        else:
            nice_max, step = 10, 2

        return ChartRange(min=0, max=nice_max * magnitude, step=step * magnitude)

    @staticmethod
    def format_for_tooltip(value: Number, format_currency: Callable[[Number], str]) -> str:
        """Full precision tooltip text through the caller's currency formatter."""
        return format_currency(value)
