"""Formatting helpers for alert, plan and agenda text."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from config.settings import get_settings

__all__ = ["format_currency", "format_month_label"]


def format_currency(value: float, symbol: Optional[str] = None) -> str:
    symbol = get_settings().currency_symbol if symbol is None else symbol
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol} {abs(value):,.2f}"


def format_month_label(value: date | datetime) -> str:
    return value.strftime("%B %Y")