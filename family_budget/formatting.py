"""Display formatting for amounts and months (es-AR conventions)."""

import math
from datetime import date
from typing import Optional, Union

from family_budget.domain import USD

_MONTHS = ("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sep", "oct", "nov", "dic")


def format_currency(amount: Optional[Union[float, int]], currency: str = "ARS") -> str:
    """Format like es-AR: ``$ 1.234,56`` for pesos, ``US$ 1.234,56`` for dollars.

    >>> format_currency(-1234.5)
    '-$ 1.234,50'
    """
    if amount is None or (isinstance(amount, float) and math.isnan(amount)):
        return "N/A"
    symbol = "US$" if currency == USD else "$"
    digits = f"{abs(amount):,.2f}".replace(",", "_").replace(".", ",").replace("_", ".")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol} {digits}"


def format_month(month: str) -> str:
    """'2025-03' -> 'mar 25'"""
    year, mon = month.split("-")
    return f"{_MONTHS[int(mon) - 1]} {year[2:]}"


def format_date(d: date) -> str:
    return d.strftime("%d/%m/%Y")
