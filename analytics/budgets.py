"""User budget limits and the month-end overspend projection."""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from analytics.ledger import (
    LedgerLike,
    expenses,
    filter_by_period,
    ledger_frame,
    month_progress,
    spend_by_category,
    total_amount,
)
from analytics.matching import issuer_matches, normalize_description
from core.logging_setup import get_logger
from core.formatting import format_currency
from core.models import BudgetLimit, BudgetStatus, GoalFeasibility, OverspendProjection

__all__ = [
    "calculate_budget_status",
    "calculate_overspend_projection",
    "check_savings_goal_feasibility",
    "spent_against_limit",
]

logger = get_logger("ledgerwise.budgets")


def spent_against_limit(month_expenses: pd.DataFrame, limit: BudgetLimit) -> float:
    """Month-to-date expense counted against ``limit``."""

    if limit.scope == "global":
        return total_amount(month_expenses)
    if limit.scope == "category":
        return total_amount(month_expenses[month_expenses["category"] == limit.category.value])

    issuers = month_expenses["credit_card_issuer"].map(normalize_description)
    on_card = issuers.map(lambda issuer: issuer_matches(issuer, limit.card_issuer))
    return total_amount(month_expenses[on_card.astype(bool)])


def calculate_budget_status(
    ledger: LedgerLike,
    limits: Iterable[BudgetLimit],
    *,
    as_of: date | datetime,
    now: datetime,
) -> list[BudgetStatus]:
    """Return spend and linear month-end projection for every active limit."""

    month_expenses = expenses(filter_by_period(ledger_frame(ledger), as_of))
    days_passed, days_remaining = month_progress(as_of, now)

    statuses: list[BudgetStatus] = []
    for limit in limits:
        if not limit.is_active:
            continue
        spent = spent_against_limit(month_expenses, limit)
        projected = spent + spent / days_passed * days_remaining
        statuses.append(
            {
                "limit_id": limit.id,
                "scope": limit.scope,
                "category": limit.category.value if limit.category else None,
                "card_issuer": limit.card_issuer,
                "limit": limit.monthly_limit,
                "spent": spent,
                "remaining": limit.monthly_limit - spent,
                "percentage_used": spent / limit.monthly_limit * 100,
                "is_over_budget": spent > limit.monthly_limit,
                "projected_spend": projected,
                "projected_percentage": projected / limit.monthly_limit * 100,
                "will_exceed": projected > limit.monthly_limit,
            }
        )

    logger.debug("Evaluated %d active budget limits", len(statuses))
    return statuses


def calculate_overspend_projection(
    ledger: LedgerLike,
    monthly_income: Optional[float],
    *,
    as_of: date | datetime,
    now: datetime,
) -> OverspendProjection:
    """Project whether month-to-date spending will outrun ``monthly_income``.

    Parameters
    ----------
    ledger:
        Transactions or a ledger frame.
    monthly_income:
        Declared income; ``None`` or ``0`` means nothing can be projected and
        the result reports no overspend.
    as_of, now:
        Month being viewed and the reference time. Past and future months
        are treated as fully elapsed and carry no overspend date.

    Returns
    -------
    OverspendProjection
        ``days_until_overspend`` is ``0`` once income is already exceeded.
    """

    result: OverspendProjection = {
        "will_overspend": False,
        "projected_total": 0.0,
        "projected_overspend_amount": 0.0,
        "days_until_overspend": None,
        "projected_overspend_date": None,
        "category_at_risk": None,
        "recommended_daily_limit": None,
    }

    month_expenses = expenses(filter_by_period(ledger_frame(ledger), as_of))
    days_passed, days_remaining = month_progress(as_of, now)
    spent = total_amount(month_expenses)
    avg_daily = spent / days_passed
    projected_total = spent + avg_daily * days_remaining
    result["projected_total"] = projected_total

    if not monthly_income or projected_total <= monthly_income:
        return result

    remaining_budget = monthly_income - spent
    is_current_month = (as_of.year, as_of.month) == (now.year, now.month)
    days_until = int(max(0.0, np.floor(remaining_budget / avg_daily)))
    category_totals = spend_by_category(month_expenses)

    result.update(
        {
            "will_overspend": True,
            "projected_overspend_amount": projected_total - monthly_income,
            "days_until_overspend": days_until,
            "projected_overspend_date": now.date() + timedelta(days=days_until) if is_current_month else None,
            "category_at_risk": str(category_totals.index[0]) if not category_totals.empty else None,
            "recommended_daily_limit": remaining_budget / max(1, days_remaining),
        }
    )
    logger.debug("Projected overspend of %.2f in %d days", result["projected_overspend_amount"], days_until)
    return result


def check_savings_goal_feasibility(
    limits: Iterable[BudgetLimit],
    monthly_income: float,
    savings_goal: float,
) -> GoalFeasibility:
    """Check whether the active global limits leave room for ``savings_goal``.

    Only global limits count as budgeted money; category and card limits
    are slices of it.
    """

    budgeted = sum(limit.monthly_limit for limit in limits if limit.is_active and limit.scope == "global")
    available = monthly_income - budgeted
    if available >= savings_goal:
        return {
            "is_feasible": True,
            "target": savings_goal,
            "available": available,
            "shortfall": 0.0,
            "message": f"You can save {format_currency(savings_goal)} a month with your current budget.",
        }

    shortfall = savings_goal - available
    return {
        "is_feasible": False,
        "target": savings_goal,
        "available": available,
        "shortfall": shortfall,
        "message": f"Your current budget rules out this goal. Cut {format_currency(shortfall)} from your limits.",
    }
