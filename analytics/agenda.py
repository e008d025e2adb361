"""Monthly payment agenda reconciled from invoices, recurring bills and one-offs.

Every item is recomputed from the ledger snapshot on each call. An item is
``paid`` when a matching transaction or a manual checklist entry exists for
its target in the month, ``overdue`` when its due date has passed without
either, and ``pending`` otherwise.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional

import pandas as pd

from analytics.invoices import cluster_invoices_by_issuer
from analytics.ledger import (
    LedgerLike,
    anchor_day,
    filter_by_period,
    in_month,
    invoice_member_ids,
    ledger_frame,
    month_key,
    recurring_definitions,
)
from analytics.matching import issuer_matches, same_obligation
from core.logging_setup import get_logger
from core.models import (
    AgendaChecklistEntry,
    AgendaItem,
    AgendaStatus,
    Category,
    ImportedInvoiceGroup,
    TransactionKind,
)

__all__ = ["build_agenda", "agenda_item_id", "SOURCE_INVOICE", "SOURCE_RECURRING", "SOURCE_ONE_OFF"]

SOURCE_INVOICE = "invoice"
SOURCE_RECURRING = "recurring"
SOURCE_ONE_OFF = "one_off"
_SOURCE_RANK = {SOURCE_INVOICE: 0, SOURCE_RECURRING: 1, SOURCE_ONE_OFF: 2}
_DEFAULT_CARD_TITLE = "Credit card"

logger = get_logger("ledgerwise.agenda")

Checklist = dict[tuple[str, str], AgendaChecklistEntry]


def agenda_item_id(target_id: str, key: str) -> str:
    return f"{target_id}:{key}"


def _to_datetime(value) -> Optional[datetime]:
    if value is None or pd.isna(value):
        return None
    return pd.Timestamp(value).to_pydatetime()


def _date_status(due: date, now: datetime) -> str:
    return AgendaStatus.OVERDUE.value if now.date() > due else AgendaStatus.PENDING.value


def build_agenda(
    ledger: LedgerLike,
    invoices: Iterable[ImportedInvoiceGroup] = (),
    checklist: Iterable[AgendaChecklistEntry] = (),
    *,
    month: date | datetime,
    now: datetime,
) -> list[AgendaItem]:
    """Return the agenda for the month containing ``month``, ordered by due date.

    Parameters
    ----------
    ledger:
        Transactions or a frame built by :func:`analytics.ledger.ledger_frame`.
    invoices:
        Imported statements; their transactions are grouped per issuer.
    checklist:
        Manual "paid" marks keyed by ``(target_id, month_key)``.
    month:
        Any date inside the month being viewed.
    now:
        Reference time for the overdue and future checks.

    Returns
    -------
    list[AgendaItem]
        Statement items first on a shared due date, then recurring bills,
        then one-off transactions.
    """

    frame = ledger_frame(ledger)
    invoices = list(invoices)
    key = month_key(month)
    marks: Checklist = {entry.key: entry for entry in checklist}
    members = invoice_member_ids(invoices)
    month_frame = filter_by_period(frame, month)
    definitions = recurring_definitions(frame, members)

    items: list[AgendaItem] = []
    consumed: set[str] = set()
    for cluster_key, group in cluster_invoices_by_issuer(invoices).items():
        item = _invoice_item(cluster_key, group, month_frame, definitions, marks, month, key, now, consumed)
        if item is not None:
            items.append(item)

    items.extend(_recurring_items(frame, definitions, consumed, marks, month, key, now))
    items.extend(_one_off_items(month_frame, members, marks, key, now))

    items.sort(key=lambda item: (item["due_date"], _SOURCE_RANK[item["source"]], item["title"], item["id"]))
    logger.debug("Built agenda for %s with %d items", key, len(items))
    return items


def _reference_invoice(group: list[ImportedInvoiceGroup], year: int, month: int) -> ImportedInvoiceGroup:
    dated = [invoice for invoice in group if invoice.due_date is not None]
    for invoice in dated:
        if (invoice.due_date.year, invoice.due_date.month) == (year, month):
            return invoice
    if dated:
        return max(dated, key=lambda invoice: invoice.due_date)
    return max(group, key=lambda invoice: invoice.imported_at)


def _invoice_item(
    cluster_key: str,
    group: list[ImportedInvoiceGroup],
    month_frame: pd.DataFrame,
    definitions: pd.DataFrame,
    marks: Checklist,
    month: date | datetime,
    key: str,
    now: datetime,
    consumed: set[str],
) -> Optional[AgendaItem]:
    charges = month_frame[month_frame["id"].isin(invoice_member_ids(group))]
    if definitions.empty:
        linked = definitions
    else:
        linked = definitions[
            definitions["linked_to_invoice_group"]
            & definitions["credit_card_issuer"].map(lambda issuer: issuer_matches(cluster_key, issuer)).astype(bool)
        ]
    if charges.empty and linked.empty:
        return None

    consumed.update(linked["id"])
    reference = _reference_invoice(group, month.year, month.month)
    anchor = reference.due_date if reference.due_date is not None else reference.imported_at
    due = anchor_day(month.year, month.month, anchor.day)

    mark = marks.get((reference.id, key))
    status = AgendaStatus.PAID.value if mark is not None else _date_status(due, now)
    title = next((invoice.issuer.strip() for invoice in group if invoice.issuer and invoice.issuer.strip()), _DEFAULT_CARD_TITLE)

    return {
        "id": agenda_item_id(reference.id, key),
        "target_id": reference.id,
        "source": SOURCE_INVOICE,
        "title": title,
        "amount": float(charges["amount"].sum() + linked["amount"].sum()),
        "due_date": due,
        "month_key": key,
        "kind": TransactionKind.EXPENSE.value,
        "category": Category.OTHER.value,
        "status": status,
        "paid_at": mark.marked_at if mark is not None else None,
        "transaction_ids": [str(value) for value in charges["id"]] + [str(value) for value in linked["id"]],
    }


def _recurring_items(
    frame: pd.DataFrame,
    definitions: pd.DataFrame,
    consumed: set[str],
    marks: Checklist,
    month: date | datetime,
    key: str,
    now: datetime,
) -> list[AgendaItem]:
    if definitions.empty:
        return []

    occurred_this_month = frame[in_month(frame["occurred_at"], month.year, month.month)]
    items: list[AgendaItem] = []
    for row in definitions.itertuples(index=False):
        if row.id in consumed:
            continue
        due = anchor_day(month.year, month.month, row.occurred_at.day)
        matches = occurred_this_month["description"].map(
            lambda description: same_obligation(description, row.description)
        )
        occurrences = occurred_this_month[matches.astype(bool)]
        mark = marks.get((row.id, key))

        if not occurrences.empty:
            status = AgendaStatus.PAID.value
            paid_at = _to_datetime(occurrences["occurred_at"].min())
        elif mark is not None:
            status = AgendaStatus.PAID.value
            paid_at = mark.marked_at
        else:
            status = _date_status(due, now)
            paid_at = None

        items.append(
            {
                "id": agenda_item_id(row.id, key),
                "target_id": row.id,
                "source": SOURCE_RECURRING,
                "title": row.description,
                "amount": float(row.amount),
                "due_date": due,
                "month_key": key,
                "kind": row.kind,
                "category": row.category,
                "status": status,
                "paid_at": paid_at,
                "transaction_ids": [str(value) for value in occurrences["id"]],
            }
        )
    return items


def _one_off_items(
    month_frame: pd.DataFrame,
    members: set[str],
    marks: Checklist,
    key: str,
    now: datetime,
) -> list[AgendaItem]:
    if month_frame.empty:
        return []

    one_offs = month_frame[~month_frame["is_recurring"] & ~month_frame["id"].isin(members)]
    now_ts = pd.Timestamp(now)
    items: list[AgendaItem] = []
    for row in one_offs.itertuples(index=False):
        mark = marks.get((row.id, key))
        if mark is not None:
            status, paid_at = AgendaStatus.PAID.value, mark.marked_at
        elif row.effective_at > now_ts:
            status, paid_at = AgendaStatus.PENDING.value, None
        else:
            status, paid_at = AgendaStatus.PAID.value, _to_datetime(row.effective_at)

        items.append(
            {
                "id": agenda_item_id(row.id, key),
                "target_id": row.id,
                "source": SOURCE_ONE_OFF,
                "title": row.description,
                "amount": float(row.amount),
                "due_date": row.effective_at.date(),
                "month_key": key,
                "kind": row.kind,
                "category": row.category,
                "status": status,
                "paid_at": paid_at,
                "transaction_ids": [str(row.id)],
            }
        )
    return items
