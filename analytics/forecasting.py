"""Month-end balance projection and category risk analytics."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Mapping, Optional

import pandas as pd

from analytics.ledger import (
    LedgerLike,
    expenses,
    filter_by_period,
    incomes,
    ledger_frame,
    month_progress,
    spend_by_category,
    total_amount,
)
from analytics.matching import descriptions_overlap
from config.settings import EngineSettings, get_settings
from core.logging_setup import get_logger
from core.models import Category, ForecastResult, RiskCategory, UserSettings, parse_user_settings

__all__ = [
    "project_month_end",
    "compute_pending_fixed_expenses",
    "compute_risk_categories",
    "is_current_month",
]

logger = get_logger("ledgerwise.forecasting")


def is_current_month(as_of: date | datetime, now: datetime) -> bool:
    return (as_of.year, as_of.month) == (now.year, now.month)


def project_month_end(
    ledger: LedgerLike,
    as_of: date | datetime,
    settings: UserSettings | Mapping[str, Any] | None,
    *,
    now: datetime,
    turbo_mode: bool = False,
    config: Optional[EngineSettings] = None,
) -> ForecastResult:
    """Project income, expense and balance for the month containing ``as_of``.

    Parameters
    ----------
    ledger:
        Transactions or a frame built by :func:`analytics.ledger.ledger_frame`.
    as_of:
        Any date inside the month being viewed.
    settings:
        User settings; ``None`` or malformed payloads disable fixed-expense
        projection and risk categories.
    now:
        Reference "today". Only the real current month is extrapolated;
        past and future months report actuals.
    turbo_mode:
        Tightens category limits by ``config.turbo_limit_factor``.

    Returns
    -------
    ForecastResult
        Predicted totals plus the categories projected over their limit.
    """

    config = config or get_settings()
    user = parse_user_settings(settings)
    frame = ledger_frame(ledger)
    month_frame = filter_by_period(frame, as_of)

    actual_income = total_amount(incomes(month_frame))
    actual_expense = total_amount(expenses(month_frame))

    current = is_current_month(as_of, now)
    days_passed, days_remaining = month_progress(as_of, now)

    pending_fixed = 0.0
    predicted_expense = actual_expense
    if current:
        pending_fixed = compute_pending_fixed_expenses(month_frame, user, config=config)
        avg_daily_expense = actual_expense / days_passed
        predicted_expense = (
            actual_expense + pending_fixed + avg_daily_expense * days_remaining * config.projection_damping
        )

    risk_categories = compute_risk_categories(
        month_frame,
        user,
        days_passed=days_passed,
        days_remaining=days_remaining,
        turbo_mode=turbo_mode,
        config=config,
    )

    logger.debug(
        "Projected %s-%02d: expense %.2f (actual %.2f, pending fixed %.2f), %d risk categories",
        as_of.year,
        as_of.month,
        predicted_expense,
        actual_expense,
        pending_fixed,
        len(risk_categories),
    )

    return ForecastResult(
        predicted_income=actual_income,
        predicted_expense=predicted_expense,
        predicted_balance=actual_income - predicted_expense,
        risk_categories=risk_categories,
        actual_income=actual_income,
        actual_expense=actual_expense,
        pending_fixed=pending_fixed,
        days_passed=days_passed,
        days_remaining=days_remaining,
        is_current_month=current,
    )


def compute_pending_fixed_expenses(
    month_frame: pd.DataFrame,
    user: Optional[UserSettings],
    *,
    config: Optional[EngineSettings] = None,
) -> float:
    """Sum declared fixed expenses with no matching expense yet this month."""

    if user is None or not user.fixed_expenses:
        return 0.0

    config = config or get_settings()
    tolerance = config.fixed_expense_tolerance
    month_expenses = expenses(month_frame)

    pending = 0.0
    for fixed in user.fixed_expenses:
        low = fixed.amount * (1 - tolerance)
        high = fixed.amount * (1 + tolerance)
        candidates = month_expenses[(month_expenses["amount"] >= low) & (month_expenses["amount"] <= high)]
        matched = any(descriptions_overlap(description, fixed.description) for description in candidates["description"])
        if not matched:
            pending += fixed.amount
    return pending


def compute_risk_categories(
    month_frame: pd.DataFrame,
    user: Optional[UserSettings],
    *,
    days_passed: int,
    days_remaining: int,
    turbo_mode: bool = False,
    config: Optional[EngineSettings] = None,
) -> list[RiskCategory]:
    """Return categories whose projected spend exceeds their income share.

    A Housing flag is dropped whenever a non-essential category is also at
    risk, so discretionary overspend is surfaced on its own.
    """

    if user is None or not user.monthly_income:
        return []

    config = config or get_settings()
    risks: list[RiskCategory] = []
    for category, spent in spend_by_category(month_frame).items():
        fraction = config.budget_fraction(str(category), turbo_mode=turbo_mode)
        if fraction is None:
            continue
        current = float(spent)
        projected = current + (current / max(1, days_passed)) * days_remaining
        limit = user.monthly_income * fraction
        if projected > limit:
            risks.append(
                {
                    "category": str(category),
                    "current": current,
                    "projected": projected,
                    "limit": limit,
                }
            )

    non_essential = set(config.non_essential_categories)
    if any(risk["category"] in non_essential for risk in risks):
        risks = [risk for risk in risks if risk["category"] != Category.HOUSING.value]
    return risks
