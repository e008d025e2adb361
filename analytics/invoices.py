"""Credit-card statement fingerprints, survival checks and issuer clusters."""

from __future__ import annotations

import hashlib
from datetime import date
from typing import Iterable, Optional, Sequence

from analytics.matching import normalize_issuer
from config.settings import EngineSettings, get_settings
from core.logging_setup import get_logger
from core.models import ImportedInvoiceGroup, Transaction

__all__ = [
    "invoice_fingerprint",
    "invoice_still_present",
    "find_duplicate_import",
    "cluster_invoices_by_issuer",
]

logger = get_logger("ledgerwise.invoices")


def invoice_fingerprint(
    due_date: Optional[date],
    total_amount: float,
    line_items: Sequence[Transaction],
    *,
    config: Optional[EngineSettings] = None,
) -> str:
    """Return the deterministic statement fingerprint.

    Parameters
    ----------
    due_date:
        Statement due date, ``None`` for statements without one.
    total_amount:
        Statement total as printed on the statement.
    line_items:
        Statement lines in statement order; only the first
        ``config.fingerprint_line_items`` take part in the hash.

    Returns
    -------
    str
        Hex SHA-256 digest. Two statements with the same due date, total and
        leading lines share a fingerprint.
    """

    config = config or get_settings()
    parts = [due_date.isoformat() if due_date else "no-date", f"{total_amount:.2f}"]
    for item in list(line_items)[: config.fingerprint_line_items]:
        parts.append(f"{item.description.strip().upper()}|{item.amount:.2f}")
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


def invoice_still_present(invoice: ImportedInvoiceGroup, live_ids: Iterable[str], threshold: float) -> bool:
    """``True`` when enough of the invoice's transactions are still in the ledger.

    Legacy records without transaction ids cannot be verified and are
    assumed present.
    """

    if not invoice.transaction_ids:
        logger.warning("Invoice %s has no transaction ids; assuming it is still present", invoice.id)
        return True

    live = set(live_ids)
    alive = sum(1 for transaction_id in invoice.transaction_ids if transaction_id in live)
    return alive / len(invoice.transaction_ids) >= threshold


def find_duplicate_import(
    fingerprint: str,
    invoices: Iterable[ImportedInvoiceGroup],
    live_ids: Iterable[str],
    *,
    config: Optional[EngineSettings] = None,
) -> Optional[ImportedInvoiceGroup]:
    """Return the earlier import of the same statement, if it still stands."""

    config = config or get_settings()
    live = set(live_ids)
    for invoice in invoices:
        if invoice.fingerprint != fingerprint:
            continue
        if invoice_still_present(invoice, live, config.invoice_survival_threshold):
            return invoice
        logger.debug("Invoice %s matches the fingerprint but its transactions were deleted", invoice.id)
    return None


def cluster_invoices_by_issuer(invoices: Iterable[ImportedInvoiceGroup]) -> dict[str, list[ImportedInvoiceGroup]]:
    """Group invoices by normalised issuer, keeping first-seen order."""

    clusters: dict[str, list[ImportedInvoiceGroup]] = {}
    for invoice in invoices:
        clusters.setdefault(normalize_issuer(invoice.issuer), []).append(invoice)
    return clusters
