"""Exceptions raised at the ledger construction and import boundary.

The analytics functions never raise for data-shape problems; these errors
only surface where transactions are built or statements are imported.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - import for typing only
    from core.models import ImportedInvoiceGroup

__all__ = [
    "LedgerError",
    "InvalidTransactionError",
    "DuplicateImportError",
    "ImportRevertError",
]


class LedgerError(ValueError):
    """Base class for ledger boundary errors."""


class InvalidTransactionError(LedgerError):
    """Raised when a transaction cannot be constructed from the given values."""


class DuplicateImportError(LedgerError):
    """Raised when a statement with the same fingerprint is still present.

    The caller decides whether to re-import with ``force=True``.
    """

    def __init__(self, existing: "ImportedInvoiceGroup"):
        self.existing = existing
        due = existing.due_date.isoformat() if existing.due_date else "no due date"
        super().__init__(
            f"Statement already imported on {existing.imported_at:%Y-%m-%d} "
            f"(due {due}, {existing.transaction_count} transactions)"
        )


class ImportRevertError(LedgerError):
    """Raised when an import cannot be reverted."""
