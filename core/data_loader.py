"""Load exported ledgers from CSV into transactions."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Final

import pandas as pd

from core.logging_setup import get_logger
from core.models import Category, Transaction
from core.transactions import build_transaction

__all__ = ["read_ledger_csv", "load_transactions"]


_CACHE_SIZE: Final[int] = 8
_REQUIRED_COLUMNS: Final[tuple[str, ...]] = ("description", "amount", "kind", "occurred_at")
_BOOL_COLUMNS: Final[tuple[str, ...]] = ("is_recurring", "is_credit_purchase", "linked_to_invoice_group")
_TRUE_VALUES: Final[frozenset[str]] = frozenset({"true", "1", "yes", "y", "t"})

logger = get_logger("ledgerwise.data_loader")


@lru_cache(maxsize=_CACHE_SIZE)
def read_ledger_csv(csv_path: str | Path) -> pd.DataFrame:
    """Return the parsed ledger export for ``csv_path``.

    Results are cached per path so recomputing a month for the same export
    does not re-read the file. Callers must not mutate the returned frame.
    """

    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    df = pd.read_csv(path, dtype={"id": str, "credit_card_issuer": str})
    missing = [column for column in _REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise ValueError(f"Ledger export is missing columns: {', '.join(missing)}")

    df["occurred_at"] = pd.to_datetime(df["occurred_at"], format="ISO8601")
    if "effective_at" in df.columns:
        df["effective_at"] = pd.to_datetime(df["effective_at"], format="ISO8601")
    df["category"] = df["category"].fillna(Category.OTHER.value) if "category" in df.columns else Category.OTHER.value
    for column in _BOOL_COLUMNS:
        if column in df.columns:
            df[column] = df[column].map(_to_bool)
        else:
            df[column] = False
    return df


def _to_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if value is None or pd.isna(value):
        return False
    return str(value).strip().lower() in _TRUE_VALUES


def _optional(value):
    if value is None or pd.isna(value):
        return None
    return value


def load_transactions(csv_path: str | Path) -> list[Transaction]:
    """Build validated transactions from a ledger export.

    Rows without an ``id`` get a fresh one. Invalid rows raise
    :class:`core.errors.InvalidTransactionError`.
    """

    df = read_ledger_csv(csv_path)
    transactions: list[Transaction] = []
    for row in df.to_dict(orient="records"):
        effective_at = _optional(row.get("effective_at"))
        created_at = _optional(row.get("created_at"))
        transactions.append(
            build_transaction(
                row["description"],
                row["amount"],
                row["category"],
                str(row["kind"]).strip().lower(),
                row["occurred_at"].to_pydatetime(),
                effective_at=effective_at.to_pydatetime() if effective_at is not None else None,
                is_recurring=row["is_recurring"],
                is_credit_purchase=row["is_credit_purchase"],
                credit_card_issuer=_optional(row.get("credit_card_issuer")),
                linked_to_invoice_group=row["linked_to_invoice_group"],
                transaction_id=_optional(row.get("id")),
                created_at=float(created_at) if created_at is not None else None,
            )
        )
    logger.debug("Loaded %d transactions from %s", len(transactions), csv_path)
    return transactions
