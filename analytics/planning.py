"""Savings plan composition on top of the opportunity detector."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from analytics.ledger import LedgerLike, ledger_frame, spend_by_category
from analytics.savings import DUPLICATE, FEE, SUBSCRIPTION, annotate_opportunities, is_counted, scan_opportunities
from config.settings import EngineSettings, get_settings
from core.formatting import format_currency
from core.logging_setup import get_logger
from core.models import (
    ForecastResult,
    MonthlyStrategy,
    PlanAction,
    PlanSteps,
    ReviewStatus,
    SavingsItem,
    SavingsPlan,
    SavingsReview,
    UserSettings,
    parse_user_settings,
)

__all__ = ["compose_savings_plan", "impact_level", "FALLBACK_ACTION_ID"]

FALLBACK_ACTION_ID = "generic:renegotiate-fixed-bills"
_FALLBACK_IMPACT = 150.0
_GENERAL_CATEGORY = "General"

logger = get_logger("ledgerwise.planning")


def impact_level(amount: float, config: Optional[EngineSettings] = None) -> str:
    config = config or get_settings()
    if amount > config.high_impact_threshold:
        return "high"
    if amount > config.medium_impact_threshold:
        return "medium"
    return "low"


def compose_savings_plan(
    ledger: LedgerLike,
    settings: UserSettings | Mapping[str, Any] | None,
    reviews: Iterable[SavingsReview] | Mapping[str, SavingsReview] | None = None,
    *,
    forecast: Optional[ForecastResult] = None,
    config: Optional[EngineSettings] = None,
) -> SavingsPlan:
    """Build the executive summary, diagnosis, strategy and triaged actions.

    Every detected opportunity is listed with its review status, including
    dismissed and kept ones; only pending and adjusted items count towards
    the savings figures.
    """

    config = config or get_settings()
    user = parse_user_settings(settings)
    frame = ledger_frame(ledger)

    items = annotate_opportunities(scan_opportunities(frame, config=config), reviews)
    items.sort(key=lambda item: -item["amount"])
    counted = [item for item in items if is_counted(item)]

    max_savings = float(sum(item["amount"] for item in counted))
    min_savings = float(sum(item["amount"] for item in counted if item["kind"] in (DUPLICATE, FEE)))
    monthly_goal = float(user.savings_goal) if user is not None else 0.0
    reviewed_count = sum(1 for item in items if item["status"] != ReviewStatus.PENDING.value)

    category_totals = spend_by_category(frame)
    top_category = str(category_totals.index[0]) if not category_totals.empty else _GENERAL_CATEGORY

    subscription_count = sum(1 for item in items if item["kind"] == SUBSCRIPTION)
    fee_count = sum(1 for item in items if item["kind"] == FEE)

    summary_text = (
        f"Based on your spending patterns you could save between {format_currency(min_savings)} "
        f"and {format_currency(max_savings)} this month. To reach your goal of saving "
        f"{format_currency(monthly_goal)}, follow the plan below."
    )
    diagnosis = (
        f"{top_category} is your largest expense category. We also found {subscription_count} "
        f"subscriptions that may be underused and {fee_count} avoidable fees."
    )

    logger.debug(
        "Composed savings plan: %d items, %d counted, %.2f-%.2f potential",
        len(items),
        len(counted),
        min_savings,
        max_savings,
    )

    return {
        "executive_summary": {
            "min_savings": min_savings,
            "max_savings": max_savings,
            "monthly_goal": monthly_goal,
            "reviewed_count": reviewed_count,
            "forecast": _forecast_label(forecast),
            "summary_text": summary_text,
        },
        "diagnosis": diagnosis,
        "strategy": _build_strategy(top_category, min_savings, max_savings, forecast),
        "steps": _triage(items, config),
        "items": items,
    }


def _forecast_label(forecast: Optional[ForecastResult]) -> str:
    if forecast is None:
        return "Stable"
    if forecast.predicted_balance < 0:
        return "Deficit"
    if forecast.risk_categories:
        return "At risk"
    return "Stable"


def _build_strategy(
    top_category: str,
    min_savings: float,
    max_savings: float,
    forecast: Optional[ForecastResult],
) -> MonthlyStrategy:
    forecasts = (
        f"Fees and duplicate charges give a confident minimum of {format_currency(min_savings)}; "
        f"acting on every suggestion raises the maximum to {format_currency(max_savings)}."
    )
    if forecast is not None and forecast.predicted_balance < 0:
        forecasts += f" If nothing changes you may end the month {format_currency(-forecast.predicted_balance)} short."
    elif forecast is not None and forecast.risk_categories:
        at_risk = ", ".join(risk["category"] for risk in forecast.risk_categories)
        forecasts += f" Projected spend is above the limit in {at_risk}."

    return {
        "adjustments": f"Reduce {top_category} spending by 15% and cancel non-essential subscriptions.",
        "alerts": f"Turn on spending alerts for {top_category} and keep an eye on late-night purchases.",
        "forecasts": forecasts,
    }


def _to_action(item: SavingsItem, level: str) -> PlanAction:
    return {
        "id": item["id"],
        "title": item["title"],
        "description": item["description"],
        "impact": item["amount"],
        "level": level,
        "status": item["status"],
        "justification": item["justification"],
        "original_amount": item["original_amount"],
    }


def _triage(items: list[SavingsItem], config: EngineSettings) -> PlanSteps:
    steps: PlanSteps = {"high_impact": [], "medium_impact": [], "low_impact": []}
    for item in items:
        level = impact_level(item["amount"], config)
        steps[f"{level}_impact"].append(_to_action(item, level))  # type: ignore[literal-required]

    if not items:
        steps["high_impact"].append(
            {
                "id": FALLBACK_ACTION_ID,
                "title": "Renegotiate rent or internet",
                "description": "Try to get a 10% discount on your fixed bills.",
                "impact": _FALLBACK_IMPACT,
                "level": "high",
                "status": ReviewStatus.PENDING.value,
                "justification": None,
                "original_amount": None,
            }
        )
    return steps
