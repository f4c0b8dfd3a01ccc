# Event Ledger - Cash-flow dashboard for event-planning businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Presentation formatting for Event Ledger.

Amounts are rendered in the Argentine (es-AR) convention used across the
dashboard: ``.`` as thousands separator, ``,`` as decimal separator and the
currency symbol in front (``$ 1.234,56``, ``US$ 1.234,56``).

Formatters never raise: invalid input yields a human-readable sentinel
(``"N/A"``, ``"Invalid date"``) so one bad value cannot break a report.
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import pandas as pd

from .movements import FOREIGN, LOCAL, parse_amount

NOT_AVAILABLE = "N/A"
INVALID_DATE = "Invalid date"

CURRENCY_CODES = {LOCAL: "ARS", FOREIGN: "USD"}
CURRENCY_SYMBOLS = {"ARS": "$", "USD": "US$"}


def currency_code(currency: str) -> str:
    """Map ``local``/``foreign``/``ars``/``usd`` (any case) to an ISO code."""
    key = str(currency).strip().lower()
    return CURRENCY_CODES.get(key, key.upper())


def format_currency(amount: Any, currency: str, decimals: int = 2) -> str:
    """
    Format an amount as an es-AR currency string.

    Examples:
        format_currency(1234.5, "local")   -> "$ 1.234,50"
        format_currency(-20, "usd")        -> "-US$ 20,00"
        format_currency("abc", "ars")      -> "N/A"
    """
    value = parse_amount(amount)
    if value is None:
        return NOT_AVAILABLE

    code = currency_code(currency)
    symbol = CURRENCY_SYMBOLS.get(code, code)

    quantum = Decimal(1).scaleb(-decimals)
    rounded = value.quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""

    # 1,234.56 -> 1.234,56
    text = f"{abs(rounded):,.{decimals}f}"
    text = text.replace(",", "_").replace(".", ",").replace("_", ".")

    return f"{sign}{symbol} {text}"


def format_local_equivalent(amount: Any, rate_available: bool) -> str:
    """Format a local-currency equivalent, marking fallback-rate figures."""
    text = format_currency(amount, LOCAL)
    if not rate_available and text != NOT_AVAILABLE:
        return f"{text} (estimate, rate unavailable)"
    return text


def format_percentage(value: Any, decimals: int = 1) -> str:
    """Signed percentage such as ``+12,5%``; ``N/A`` when not numeric."""
    parsed = parse_amount(value)
    if parsed is None:
        return NOT_AVAILABLE
    rounded = parsed.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)
    sign = "+" if rounded > 0 else ""
    return f"{sign}{rounded}%".replace(".", ",")


def format_date(value: Any, with_time: bool = True) -> str:
    """
    Format a date as ``dd/mm/YYYY HH:MM`` (or ``dd/mm/YYYY``).

    Returns ``"N/A"`` for missing values and ``"Invalid date"`` for values
    that cannot be parsed.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return NOT_AVAILABLE

    if isinstance(value, datetime):
        ts = value
    elif isinstance(value, date):
        ts = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        ts = pd.to_datetime(value.strip(), errors="coerce")
    else:
        return INVALID_DATE

    if pd.isna(ts):
        return INVALID_DATE

    return ts.strftime("%d/%m/%Y %H:%M" if with_time else "%d/%m/%Y")
