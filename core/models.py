"""Shared data model definitions for the ledgerwise engine."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Literal, Mapping, Optional, TypedDict

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from core.errors import InvalidTransactionError
from core.logging_setup import get_logger

logger = get_logger("ledgerwise.models")


class Category(str, Enum):
    """Closed set of transaction categories."""

    FOOD = "Food"
    TRANSPORT = "Transport"
    HOUSING = "Housing"
    UTILITIES = "Utilities"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    SHOPPING = "Shopping"
    SUBSCRIPTIONS = "Subscriptions"
    EDUCATION = "Education"
    SAVINGS = "Savings"
    SALARY = "Salary"
    OTHER = "Other"


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class ReviewStatus(str, Enum):
    """User decision recorded against a savings opportunity."""

    PENDING = "pending"
    KEPT = "kept"
    DISMISSED = "dismissed"
    ADJUSTED = "adjusted"


class AgendaStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"


def _coerce_enum(enum_cls: type[Enum], value: Any, field_name: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise InvalidTransactionError(f"Unknown {field_name}: {value!r}") from exc


@dataclass(frozen=True, slots=True)
class Transaction:
    """An immutable ledger fact.

    ``effective_at`` is when money actually moves (credit-card float); it
    falls back to ``occurred_at``. ``created_at`` only orders insertions.
    """

    id: str
    description: str
    amount: float
    category: Category
    kind: TransactionKind
    occurred_at: datetime
    effective_at: Optional[datetime] = None
    is_recurring: bool = False
    is_credit_purchase: bool = False
    credit_card_issuer: Optional[str] = None
    linked_to_invoice_group: bool = False
    created_at: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.id:
            raise InvalidTransactionError("Transaction id must not be empty")
        if not self.description or not self.description.strip():
            raise InvalidTransactionError(f"Transaction {self.id} has an empty description")
        try:
            amount = float(self.amount)
        except (TypeError, ValueError) as exc:
            raise InvalidTransactionError(f"Transaction {self.id} has a non-numeric amount") from exc
        if not math.isfinite(amount) or amount <= 0:
            raise InvalidTransactionError(f"Transaction {self.id} amount must be positive, got {self.amount!r}")
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "category", _coerce_enum(Category, self.category, "category"))
        object.__setattr__(self, "kind", _coerce_enum(TransactionKind, self.kind, "kind"))

    @property
    def payment_date(self) -> datetime:
        return self.effective_at or self.occurred_at

    @property
    def is_expense(self) -> bool:
        return self.kind is TransactionKind.EXPENSE


@dataclass(frozen=True, slots=True)
class ImportedInvoiceGroup:
    """One imported credit-card statement.

    ``transaction_ids`` is empty for legacy records that predate id tracking.
    """

    id: str
    issuer: Optional[str]
    due_date: Optional[date]
    total_amount: float
    transaction_count: int
    imported_at: datetime
    fingerprint: str
    transaction_ids: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class SavingsReview:
    """Override keyed by the detector-derived opportunity id."""

    id: str
    status: ReviewStatus
    adjusted_amount: Optional[float] = None
    justification: Optional[str] = None
    reviewed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if not isinstance(self.status, ReviewStatus):
            object.__setattr__(self, "status", ReviewStatus(self.status))

    @property
    def counted_amount_override(self) -> Optional[float]:
        if self.status is ReviewStatus.ADJUSTED and self.adjusted_amount is not None:
            return float(self.adjusted_amount)
        return None


@dataclass(frozen=True, slots=True)
class AgendaChecklistEntry:
    """Presence means "marked paid manually" for ``target_id`` in ``month_key``."""

    target_id: str
    month_key: str
    marked_at: Optional[datetime] = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.target_id, self.month_key)


class FixedExpense(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)


class UserSettings(BaseModel):
    """User-declared income, savings goal and fixed obligations."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    monthly_income: Optional[float] = Field(default=None, ge=0)
    savings_goal: float = Field(default=0.0, ge=0)
    fixed_expenses: list[FixedExpense] = Field(default_factory=list)


def parse_user_settings(raw: UserSettings | Mapping[str, Any] | None) -> Optional[UserSettings]:
    """Return validated user settings, or ``None`` when missing or malformed."""

    if raw is None:
        return None
    if isinstance(raw, UserSettings):
        return raw
    try:
        return UserSettings.model_validate(raw)
    except ValidationError as exc:
        logger.warning("Ignoring malformed user settings: %s", exc.errors()[0].get("msg", "invalid"))
        return None


class BudgetLimit(BaseModel):
    """A monthly spending cap scoped globally, per category or per card."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: str
    scope: Literal["global", "category", "card"]
    monthly_limit: float = Field(..., gt=0)
    category: Optional[Category] = None
    card_issuer: Optional[str] = None
    is_active: bool = True

    @model_validator(mode="after")
    def validate_scope(self) -> "BudgetLimit":
        if self.scope == "category" and self.category is None:
            raise ValueError("Category budget limits require a category")
        if self.scope == "card" and not self.card_issuer:
            raise ValueError("Card budget limits require a card issuer")
        return self


class RiskCategory(TypedDict):
    category: str
    current: float
    projected: float
    limit: float


@dataclass(frozen=True)
class ForecastResult:
    predicted_income: float
    predicted_expense: float
    predicted_balance: float
    risk_categories: list[RiskCategory]
    actual_income: float
    actual_expense: float
    pending_fixed: float
    days_passed: int
    days_remaining: int
    is_current_month: bool


class SmartAlert(TypedDict):
    id: str
    severity: str
    title: str
    message: str
    action: Optional[str]


class SavingsItem(TypedDict):
    id: str
    kind: str
    transaction_id: str
    title: str
    description: str
    amount: float
    original_amount: float
    status: str
    justification: Optional[str]


class SavingsResult(TypedDict):
    total_potential: float
    items: list[SavingsItem]


class PlanAction(TypedDict):
    id: str
    title: str
    description: str
    impact: float
    level: str
    status: str
    justification: Optional[str]
    original_amount: Optional[float]


class ExecutiveSummary(TypedDict):
    min_savings: float
    max_savings: float
    monthly_goal: float
    reviewed_count: int
    forecast: str
    summary_text: str


class MonthlyStrategy(TypedDict):
    adjustments: str
    alerts: str
    forecasts: str


class PlanSteps(TypedDict):
    high_impact: list[PlanAction]
    medium_impact: list[PlanAction]
    low_impact: list[PlanAction]


class SavingsPlan(TypedDict):
    executive_summary: ExecutiveSummary
    diagnosis: str
    strategy: MonthlyStrategy
    steps: PlanSteps
    items: list[SavingsItem]


class AgendaItem(TypedDict):
    id: str
    target_id: str
    source: str
    title: str
    amount: float
    due_date: date
    month_key: str
    kind: str
    category: str
    status: str
    paid_at: Optional[datetime]
    transaction_ids: list[str]


class BudgetStatus(TypedDict):
    limit_id: str
    scope: str
    category: Optional[str]
    card_issuer: Optional[str]
    limit: float
    spent: float
    remaining: float
    percentage_used: float
    is_over_budget: bool
    projected_spend: float
    projected_percentage: float
    will_exceed: bool


class OverspendProjection(TypedDict):
    will_overspend: bool
    projected_total: float
    projected_overspend_amount: float
    days_until_overspend: Optional[int]
    projected_overspend_date: Optional[date]
    category_at_risk: Optional[str]
    recommended_daily_limit: Optional[float]


class GoalFeasibility(TypedDict):
    is_feasible: bool
    target: float
    available: float
    shortfall: float
    message: str


class MonthSnapshot(TypedDict):
    month_key: str
    month_label: str
    forecast: ForecastResult
    alerts: list[SmartAlert]
    savings: SavingsResult
    plan: SavingsPlan
    agenda: list[AgendaItem]
    budget_statuses: list[BudgetStatus]
    overspend: Optional[OverspendProjection]
    budget_alerts: list[SmartAlert]
    goal_feasibility: Optional[GoalFeasibility]


__all__ = [
    "Category",
    "TransactionKind",
    "ReviewStatus",
    "AgendaStatus",
    "AlertSeverity",
    "Transaction",
    "ImportedInvoiceGroup",
    "SavingsReview",
    "AgendaChecklistEntry",
    "FixedExpense",
    "UserSettings",
    "parse_user_settings",
    "BudgetLimit",
    "RiskCategory",
    "ForecastResult",
    "SmartAlert",
    "SavingsItem",
    "SavingsResult",
    "PlanAction",
    "ExecutiveSummary",
    "MonthlyStrategy",
    "PlanSteps",
    "SavingsPlan",
    "AgendaItem",
    "BudgetStatus",
    "OverspendProjection",
    "GoalFeasibility",
    "MonthSnapshot",
]
