"""Credit-card statement import and revert workflow."""

from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import date, datetime, time
from typing import Optional, Sequence

from analytics.invoices import find_duplicate_import, invoice_fingerprint
from config.settings import EngineSettings, get_settings
from core.errors import DuplicateImportError, ImportRevertError
from core.logging_setup import get_logger
from core.models import ImportedInvoiceGroup, Transaction
from core.stores import InvoiceRegistry, LedgerStore

__all__ = ["import_statement", "revert_import"]

logger = get_logger("ledgerwise.imports")


def _statement_line(transaction: Transaction, issuer: Optional[str], due_date: Optional[date]) -> Transaction:
    effective_at = transaction.effective_at
    if effective_at is None and due_date is not None:
        effective_at = datetime.combine(due_date, time())
    return replace(
        transaction,
        is_credit_purchase=True,
        credit_card_issuer=transaction.credit_card_issuer or issuer,
        effective_at=effective_at,
    )


def import_statement(
    ledger: LedgerStore,
    registry: InvoiceRegistry,
    *,
    issuer: Optional[str],
    due_date: Optional[date],
    transactions: Sequence[Transaction],
    now: datetime,
    force: bool = False,
    config: Optional[EngineSettings] = None,
) -> ImportedInvoiceGroup:
    """Add a statement's lines to the ledger and record the import.

    Parameters
    ----------
    ledger, registry:
        Stores receiving the transactions and the import record.
    issuer:
        Card issuer printed on the statement.
    due_date:
        Statement due date. Lines without a payment date are scheduled on it.
    transactions:
        Statement lines in statement order.
    now:
        Import timestamp.
    force:
        Import even when the same statement is still present.

    Raises
    ------
    DuplicateImportError
        When an earlier import with the same fingerprint still has most of
        its transactions in the ledger and ``force`` is ``False``.
    """

    config = config or get_settings()
    lines = list(transactions)
    total = float(sum(line.amount for line in lines))
    fingerprint = invoice_fingerprint(due_date, total, lines, config=config)

    if not force:
        live_ids = {transaction.id for transaction in ledger.list()}
        existing = find_duplicate_import(fingerprint, registry.list(), live_ids, config=config)
        if existing is not None:
            logger.warning("Rejected duplicate import of statement %s", existing.id)
            raise DuplicateImportError(existing)

    imported = [_statement_line(line, issuer, due_date) for line in lines]
    for transaction in imported:
        ledger.upsert(transaction)

    invoice = ImportedInvoiceGroup(
        id=uuid.uuid4().hex,
        issuer=issuer,
        due_date=due_date,
        total_amount=total,
        transaction_count=len(imported),
        imported_at=now,
        fingerprint=fingerprint,
        transaction_ids=tuple(transaction.id for transaction in imported),
    )
    registry.record_import(invoice)
    logger.info("Imported %d transactions from %s statement %s", len(imported), issuer or "card", invoice.id)
    return invoice


def revert_import(ledger: LedgerStore, registry: InvoiceRegistry, invoice_id: str) -> list[str]:
    """Delete an import's transactions and its record; return the deleted ids.

    Raises
    ------
    ImportRevertError
        For unknown imports and legacy records without transaction ids.
    """

    invoice = next((item for item in registry.list() if item.id == invoice_id), None)
    if invoice is None:
        raise ImportRevertError(f"Unknown import {invoice_id!r}")
    if not invoice.transaction_ids:
        raise ImportRevertError(f"Import {invoice_id!r} predates transaction tracking and cannot be reverted")

    for transaction_id in invoice.transaction_ids:
        ledger.delete_by_id(transaction_id)
    registry.remove(invoice_id)
    logger.info("Reverted import %s (%d transactions)", invoice_id, len(invoice.transaction_ids))
    return list(invoice.transaction_ids)
