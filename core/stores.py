"""Provider interfaces the engine reads from, with in-memory implementations.

The engine itself never mutates state. Hosts persist transactions, settings,
statement imports, savings reviews and checklist marks through these
providers and pass snapshots of them into the analytics functions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from core.logging_setup import get_logger
from core.models import (
    AgendaChecklistEntry,
    BudgetLimit,
    ImportedInvoiceGroup,
    SavingsReview,
    Transaction,
    UserSettings,
    parse_user_settings,
)

__all__ = [
    "LedgerStore",
    "SettingsProvider",
    "InvoiceRegistry",
    "ReviewStore",
    "ChecklistStore",
    "BudgetLimitStore",
    "InMemoryLedger",
    "InMemorySettingsProvider",
    "InMemoryInvoiceRegistry",
    "InMemoryReviewStore",
    "InMemoryChecklistStore",
    "InMemoryBudgetLimitStore",
]

logger = get_logger("ledgerwise.stores")


class LedgerStore:
    def list(self) -> list[Transaction]:
        raise NotImplementedError

    def upsert(self, transaction: Transaction) -> None:
        raise NotImplementedError

    def delete_by_id(self, transaction_id: str) -> None:
        raise NotImplementedError


class SettingsProvider:
    def get(self) -> Optional[UserSettings]:
        raise NotImplementedError


class InvoiceRegistry:
    def list(self) -> list[ImportedInvoiceGroup]:
        raise NotImplementedError

    def record_import(self, invoice: ImportedInvoiceGroup) -> None:
        raise NotImplementedError

    def remove(self, invoice_id: str) -> None:
        raise NotImplementedError


class ReviewStore:
    def list(self) -> list[SavingsReview]:
        raise NotImplementedError

    def upsert(self, review: SavingsReview) -> None:
        raise NotImplementedError


class ChecklistStore:
    def list(self) -> list[AgendaChecklistEntry]:
        raise NotImplementedError

    def toggle(self, target_id: str, month_key: str, *, marked_at: Optional[datetime] = None) -> list[AgendaChecklistEntry]:
        raise NotImplementedError


class BudgetLimitStore:
    def list(self) -> list[BudgetLimit]:
        raise NotImplementedError

    def upsert(self, limit: BudgetLimit) -> None:
        raise NotImplementedError


class InMemoryLedger(LedgerStore):
    """Transactions keyed by id, listed in insertion order."""

    def __init__(self, transactions: Iterable[Transaction] = ()):
        self._transactions: dict[str, Transaction] = {}
        for transaction in transactions:
            self.upsert(transaction)

    def list(self) -> list[Transaction]:
        return list(self._transactions.values())

    def upsert(self, transaction: Transaction) -> None:
        self._transactions[transaction.id] = transaction

    def delete_by_id(self, transaction_id: str) -> None:
        self._transactions.pop(transaction_id, None)

    def ids(self) -> set[str]:
        return set(self._transactions)


class InMemorySettingsProvider(SettingsProvider):
    def __init__(self, raw: UserSettings | Mapping[str, Any] | None = None):
        self._raw = raw

    def get(self) -> Optional[UserSettings]:
        return parse_user_settings(self._raw)

    def update(self, raw: UserSettings | Mapping[str, Any] | None) -> None:
        self._raw = raw


class InMemoryInvoiceRegistry(InvoiceRegistry):
    def __init__(self, invoices: Iterable[ImportedInvoiceGroup] = ()):
        self._invoices: dict[str, ImportedInvoiceGroup] = {invoice.id: invoice for invoice in invoices}

    def list(self) -> list[ImportedInvoiceGroup]:
        return list(self._invoices.values())

    def get(self, invoice_id: str) -> Optional[ImportedInvoiceGroup]:
        return self._invoices.get(invoice_id)

    def record_import(self, invoice: ImportedInvoiceGroup) -> None:
        self._invoices[invoice.id] = invoice

    def remove(self, invoice_id: str) -> None:
        self._invoices.pop(invoice_id, None)


class InMemoryReviewStore(ReviewStore):
    """At most one review per opportunity id; the latest upsert wins."""

    def __init__(self, reviews: Iterable[SavingsReview] = ()):
        self._reviews: dict[str, SavingsReview] = {review.id: review for review in reviews}

    def list(self) -> list[SavingsReview]:
        return list(self._reviews.values())

    def upsert(self, review: SavingsReview) -> None:
        self._reviews[review.id] = review


class InMemoryChecklistStore(ChecklistStore):
    def __init__(self, entries: Iterable[AgendaChecklistEntry] = ()):
        self._entries: dict[tuple[str, str], AgendaChecklistEntry] = {entry.key: entry for entry in entries}

    def list(self) -> list[AgendaChecklistEntry]:
        return list(self._entries.values())

    def toggle(self, target_id: str, month_key: str, *, marked_at: Optional[datetime] = None) -> list[AgendaChecklistEntry]:
        """Add the mark when absent, remove it when present."""

        key = (target_id, month_key)
        if key in self._entries:
            del self._entries[key]
            logger.debug("Unmarked %s for %s", target_id, month_key)
        else:
            self._entries[key] = AgendaChecklistEntry(target_id=target_id, month_key=month_key, marked_at=marked_at)
            logger.debug("Marked %s as paid for %s", target_id, month_key)
        return self.list()


class InMemoryBudgetLimitStore(BudgetLimitStore):
    def __init__(self, limits: Iterable[BudgetLimit] = ()):
        self._limits: dict[str, BudgetLimit] = {limit.id: limit for limit in limits}

    def list(self) -> list[BudgetLimit]:
        return list(self._limits.values())

    def upsert(self, limit: BudgetLimit) -> None:
        self._limits[limit.id] = limit
