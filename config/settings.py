"""Centralised configuration handling for the ledgerwise engine."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CATEGORY_BUDGET_FRACTIONS: dict[str, float] = {
    "Food": 0.25,
    "Housing": 0.35,
    "Transport": 0.15,
    "Entertainment": 0.10,
}
DEFAULT_NON_ESSENTIAL_CATEGORIES: tuple[str, ...] = ("Entertainment", "Shopping", "Subscriptions")
DEFAULT_FEE_KEYWORDS: tuple[str, ...] = (
    "tarifa",
    "anuidade",
    "juros",
    "multa",
    "fee",
    "annual fee",
    "interest",
    "penalty",
)


class EngineSettings(BaseSettings):
    """Tunable engine constants sourced from ``LEDGERWISE_*`` env vars.

    The projection damping and the budget-fraction table are heuristics kept
    for behavioural compatibility, not derived values.
    """

    # forecasting
    projection_damping: float = 0.8
    turbo_limit_factor: float = 0.8
    fixed_expense_tolerance: float = 0.10
    category_budget_fractions: dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_CATEGORY_BUDGET_FRACTIONS)
    )
    non_essential_categories: tuple[str, ...] = DEFAULT_NON_ESSENTIAL_CATEGORIES

    # alerts
    overspend_warning_ratio: float = 0.9
    habit_window_days: int = 7
    habit_min_count: int = 5
    large_expense_threshold: float = 1000.0
    large_expense_window_days: int = 3
    late_night_window_days: int = 2
    late_night_start_hour: int = 23
    late_night_end_hour: int = 4

    # savings
    duplicate_window_days: int = 3
    duplicate_min_amount: float = 10.0
    duplicate_min_amount_frequent: float = 30.0
    fee_keywords: tuple[str, ...] = DEFAULT_FEE_KEYWORDS
    high_impact_threshold: float = 100.0
    medium_impact_threshold: float = 30.0

    # budgets
    budget_warning_percent: float = 80.0
    unusual_spending_percent: float = 150.0
    unusual_spending_lookback_months: int = 3

    # invoices
    invoice_survival_threshold: float = 0.5
    fingerprint_line_items: int = 3

    # presentation
    currency_symbol: str = "R$"
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="LEDGERWISE_", extra="ignore")

    def budget_fraction(self, category: str, *, turbo_mode: bool = False) -> float | None:
        fraction = self.category_budget_fractions.get(category)
        if fraction is None:
            return None
        return fraction * (self.turbo_limit_factor if turbo_mode else 1.0)


@lru_cache
def get_settings() -> EngineSettings:
    """Load and cache engine settings."""

    return EngineSettings()
