"""Display formatting for numbers, percentages and dates."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

import pandas as pd


def format_number(value: object) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    v = float(value)
    if v.is_integer():
        return f"{int(v):,}"
    return f"{v:,.2f}"


def format_number_k(value: object) -> str:
    """12500 -> '12.5k'; values under 1000 are left unsuffixed."""
    if value is None or pd.isna(value):
        return "N/A"
    v = float(value)
    if v >= 1000:
        return f"{v / 1000:,.3f}".rstrip("0").rstrip(".") + "k"
    return format_number(v)


def format_percent(value: object, decimals: int = 1) -> str:
    """Format a ratio (0.125) as a percentage string ('12.5%')."""
    if value is None or pd.isna(value):
        return "N/A"
    return f"{float(value) * 100:.{decimals}f}%"


def format_growth(value: object) -> str:
    if value is None or pd.isna(value):
        return "N/A"
    v = float(value)
    sign = "+" if v > 0 else ""
    return f"{sign}{v:.1f}%"


def format_month_year(value: object, *, full: bool = False) -> str:
    d: Optional[date] = None
    if isinstance(value, datetime):
        d = value.date()
    elif isinstance(value, date):
        d = value
    elif isinstance(value, str) and value.strip():
        ts = pd.to_datetime(value.strip(), errors="coerce")
        d = None if pd.isna(ts) else ts.date()
    if d is None:
        return ""
    return d.strftime("%B %Y" if full else "%b %Y")
