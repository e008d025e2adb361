"""Ledger query helpers shared by every engine component."""

from __future__ import annotations

import calendar
from datetime import date, datetime
from typing import Iterable, Union

import pandas as pd

from analytics.matching import normalize_description
from core.models import ImportedInvoiceGroup, Transaction, TransactionKind

__all__ = [
    "LEDGER_COLUMNS",
    "LedgerLike",
    "ledger_frame",
    "in_month",
    "filter_by_period",
    "expenses",
    "incomes",
    "total_amount",
    "spend_by_category",
    "trailing_window",
    "invoice_member_ids",
    "recurring_definitions",
    "days_in_month",
    "month_key",
    "anchor_day",
    "month_progress",
]

LEDGER_COLUMNS: tuple[str, ...] = (
    "id",
    "description",
    "amount",
    "category",
    "kind",
    "occurred_at",
    "effective_at",
    "is_recurring",
    "is_credit_purchase",
    "credit_card_issuer",
    "linked_to_invoice_group",
    "created_at",
)
_BOOL_COLUMNS = ("is_recurring", "is_credit_purchase", "linked_to_invoice_group")

LedgerLike = Union[pd.DataFrame, Iterable[Transaction]]


def ledger_frame(ledger: LedgerLike) -> pd.DataFrame:
    """Return the ledger as a DataFrame, preserving input order.

    ``effective_at`` is filled from ``occurred_at`` so callers can always
    filter on the cash-flow date.
    """

    if isinstance(ledger, pd.DataFrame):
        return ledger

    records = [
        {
            "id": txn.id,
            "description": txn.description,
            "amount": txn.amount,
            "category": txn.category.value,
            "kind": txn.kind.value,
            "occurred_at": txn.occurred_at,
            "effective_at": txn.effective_at,
            "is_recurring": txn.is_recurring,
            "is_credit_purchase": txn.is_credit_purchase,
            "credit_card_issuer": txn.credit_card_issuer,
            "linked_to_invoice_group": txn.linked_to_invoice_group,
            "created_at": txn.created_at,
        }
        for txn in ledger
    ]
    frame = pd.DataFrame.from_records(records, columns=list(LEDGER_COLUMNS))
    frame["amount"] = frame["amount"].astype(float)
    frame["occurred_at"] = pd.to_datetime(frame["occurred_at"])
    frame["effective_at"] = pd.to_datetime(frame["effective_at"]).fillna(frame["occurred_at"])
    for column in _BOOL_COLUMNS:
        frame[column] = frame[column].fillna(False).astype(bool)
    return frame


def in_month(dates: pd.Series, year: int, month: int) -> pd.Series:
    """Boolean mask selecting ``dates`` inside the given calendar month."""

    return (dates.dt.year == year) & (dates.dt.month == month)


def filter_by_period(
    frame: pd.DataFrame,
    anchor: date | datetime,
    period: str = "month",
    *,
    column: str = "effective_at",
) -> pd.DataFrame:
    """Return rows whose ``column`` falls in the month or year of ``anchor``."""

    if period == "all" or frame.empty:
        return frame
    if period == "year":
        return frame[frame[column].dt.year == anchor.year]
    if period == "month":
        return frame[in_month(frame[column], anchor.year, anchor.month)]
    raise ValueError(f"Unsupported period: {period}")


def expenses(frame: pd.DataFrame) -> pd.DataFrame:
    return frame[frame["kind"] == TransactionKind.EXPENSE.value]


def incomes(frame: pd.DataFrame) -> pd.DataFrame:
    return frame[frame["kind"] == TransactionKind.INCOME.value]


def total_amount(frame: pd.DataFrame) -> float:
    if frame.empty:
        return 0.0
    return float(frame["amount"].sum())


def spend_by_category(frame: pd.DataFrame) -> pd.Series:
    """Total expense per category, largest first (ties keep first-seen order)."""

    spend = expenses(frame)
    if spend.empty:
        return pd.Series(dtype=float)
    totals = spend.groupby("category", sort=False)["amount"].sum()
    return totals.sort_values(ascending=False, kind="mergesort")


def trailing_window(
    frame: pd.DataFrame,
    now: datetime,
    days: int,
    *,
    column: str = "occurred_at",
) -> pd.DataFrame:
    """Rows dated within ``days`` before ``now`` (inclusive, never future)."""

    if frame.empty:
        return frame
    now_ts = pd.Timestamp(now)
    start = now_ts - pd.Timedelta(days=days)
    mask = (frame[column] >= start) & (frame[column] <= now_ts)
    return frame[mask]


def invoice_member_ids(invoices: Iterable[ImportedInvoiceGroup]) -> set[str]:
    """Every transaction id referenced by an imported statement."""

    members: set[str] = set()
    for invoice in invoices:
        members.update(invoice.transaction_ids)
    return members


def recurring_definitions(frame: pd.DataFrame, excluded_ids: Iterable[str] = ()) -> pd.DataFrame:
    """Derive one recurring definition per normalised description.

    The most recent recurring transaction (by ``occurred_at``) wins; ties keep
    the later row in ledger order. Transactions belonging to an imported
    statement never define a recurring obligation.
    """

    if frame.empty:
        return frame.assign(match_key=pd.Series(dtype=str))

    excluded = set(excluded_ids)
    candidates = frame[frame["is_recurring"] & ~frame["id"].isin(excluded)]
    candidates = candidates.assign(match_key=candidates["description"].map(normalize_description))
    candidates = candidates[candidates["match_key"] != ""]
    if candidates.empty:
        return candidates

    ordered = candidates.sort_values("occurred_at", kind="mergesort")
    definitions = ordered.drop_duplicates(subset="match_key", keep="last")
    return definitions.sort_values("match_key", kind="mergesort")


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_key(value: date | datetime) -> str:
    """Return the ``YYYY-MM`` key used by the agenda checklist."""

    return f"{value.year:04d}-{value.month:02d}"


def anchor_day(year: int, month: int, day: int) -> date:
    """Re-anchor a day-of-month into ``year``/``month``, clamping short months."""

    return date(year, month, min(max(day, 1), days_in_month(year, month)))


def month_progress(as_of: date | datetime, now: datetime) -> tuple[int, int]:
    """Return ``(days_passed, days_remaining)`` for the month containing ``as_of``.

    Only the real current month is in progress; any other month counts as
    fully elapsed.
    """

    month_days = days_in_month(as_of.year, as_of.month)
    if (as_of.year, as_of.month) != (now.year, now.month):
        return month_days, 0
    days_passed = max(1, now.day)
    return days_passed, month_days - days_passed
