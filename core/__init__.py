"""Core domain package for the ledgerwise engine."""

from .errors import DuplicateImportError, ImportRevertError, InvalidTransactionError, LedgerError
from .models import (
    AgendaChecklistEntry,
    BudgetLimit,
    Category,
    FixedExpense,
    ForecastResult,
    ImportedInvoiceGroup,
    ReviewStatus,
    SavingsReview,
    Transaction,
    TransactionKind,
    UserSettings,
)

__all__ = [
    "AgendaChecklistEntry",
    "BudgetLimit",
    "Category",
    "FixedExpense",
    "ForecastResult",
    "ImportedInvoiceGroup",
    "ReviewStatus",
    "SavingsReview",
    "Transaction",
    "TransactionKind",
    "UserSettings",
    "LedgerError",
    "InvalidTransactionError",
    "DuplicateImportError",
    "ImportRevertError",
]
