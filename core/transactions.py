"""Boundary constructors for ledger transactions."""

from __future__ import annotations

import calendar
import re
import time
import uuid
from datetime import datetime
from typing import Optional

from core.errors import InvalidTransactionError
from core.models import Category, Transaction, TransactionKind

__all__ = [
    "build_transaction",
    "expand_installments",
    "parse_installment",
    "installment_label",
    "add_months",
]

_INSTALLMENT_PATTERN = re.compile(r"\((\d+)/(\d+)\)")


def add_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` by whole calendar months, clamping the day."""

    index = value.month - 1 + months
    year, month = value.year + index // 12, index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def build_transaction(
    description: str,
    amount: float,
    category: Category | str,
    kind: TransactionKind | str,
    occurred_at: datetime,
    *,
    effective_at: Optional[datetime] = None,
    is_recurring: bool = False,
    is_credit_purchase: bool = False,
    credit_card_issuer: Optional[str] = None,
    linked_to_invoice_group: bool = False,
    transaction_id: Optional[str] = None,
    created_at: Optional[float] = None,
) -> Transaction:
    """Create a validated transaction with a fresh id.

    Raises
    ------
    InvalidTransactionError
        For empty descriptions, non-positive amounts or unknown enum values.
    """

    return Transaction(
        id=transaction_id or uuid.uuid4().hex,
        description=description.strip() if isinstance(description, str) else "",
        amount=amount,
        category=category,
        kind=kind,
        occurred_at=occurred_at,
        effective_at=effective_at,
        is_recurring=is_recurring,
        is_credit_purchase=is_credit_purchase,
        credit_card_issuer=credit_card_issuer,
        linked_to_invoice_group=linked_to_invoice_group,
        created_at=time.time() if created_at is None else created_at,
    )


def installment_label(description: str, number: int, count: int) -> str:
    return f"{description.strip()} ({number}/{count})"


def parse_installment(description: str) -> Optional[tuple[int, int]]:
    """Return ``(number, count)`` from an ``"(i/N)"`` label, if present."""

    match = _INSTALLMENT_PATTERN.search(description or "")
    if match is None:
        return None
    number, count = int(match.group(1)), int(match.group(2))
    if count <= 0 or not 1 <= number <= count:
        return None
    return number, count


def expand_installments(
    description: str,
    total_amount: float,
    installments: int,
    category: Category | str,
    occurred_at: datetime,
    *,
    first_effective_at: Optional[datetime] = None,
    credit_card_issuer: Optional[str] = None,
    created_at: Optional[float] = None,
) -> list[Transaction]:
    """Split a credit purchase into one expense per installment.

    Every installment keeps the purchase date; the cash-flow date moves one
    calendar month per installment starting at ``first_effective_at``
    (defaults to ``occurred_at``).
    """

    if installments < 1:
        raise InvalidTransactionError(f"Installment count must be at least 1, got {installments}")

    per_installment = round(total_amount / installments, 2)
    start = first_effective_at or occurred_at
    stamp = time.time() if created_at is None else created_at
    return [
        build_transaction(
            installment_label(description, number, installments) if installments > 1 else description,
            per_installment,
            category,
            TransactionKind.EXPENSE,
            occurred_at,
            effective_at=add_months(start, number - 1),
            is_credit_purchase=True,
            credit_card_issuer=credit_card_issuer,
            created_at=stamp + number * 1e-6,
        )
        for number in range(1, installments + 1)
    ]
