"""Rule-based warnings derived from the ledger and user settings."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Mapping, Optional

import pandas as pd

from analytics.budgets import calculate_budget_status, calculate_overspend_projection
from analytics.ledger import (
    LedgerLike,
    expenses,
    filter_by_period,
    ledger_frame,
    month_key,
    month_progress,
    spend_by_category,
    total_amount,
    trailing_window,
)
from config.settings import EngineSettings, get_settings
from core.formatting import format_currency
from core.logging_setup import get_logger
from core.models import (
    AlertSeverity,
    BudgetLimit,
    BudgetStatus,
    Category,
    SmartAlert,
    UserSettings,
    parse_user_settings,
)

__all__ = [
    "generate_smart_alerts",
    "generate_budget_alerts",
    "TURBO_ALERT_ID",
    "OVERSPEND_DANGER_ID",
    "OVERSPEND_WARNING_ID",
    "LATE_NIGHT_ALERT_ID",
]

TURBO_ALERT_ID = "turbo-active"
OVERSPEND_DANGER_ID = "overspend-danger"
OVERSPEND_WARNING_ID = "overspend-warning"
LATE_NIGHT_ALERT_ID = "late-night-spending"

logger = get_logger("ledgerwise.alerts")


def _alert(alert_id: str, severity: AlertSeverity, title: str, message: str, action: Optional[str] = None) -> SmartAlert:
    return {
        "id": alert_id,
        "severity": severity.value,
        "title": title,
        "message": message,
        "action": action,
    }


def generate_smart_alerts(
    ledger: LedgerLike,
    settings: UserSettings | Mapping[str, Any] | None,
    *,
    now: datetime,
    turbo_mode: bool = False,
    config: Optional[EngineSettings] = None,
) -> list[SmartAlert]:
    """Return the ordered alert list for ``now``.

    Rules are independent: turbo banner, overspend, frequent-category
    habits, large one-off expenses, then late-night spending. Alert ids are
    derived from the rule and the offending category or transaction, so the
    same inputs always yield the same ids.
    """

    config = config or get_settings()
    user = parse_user_settings(settings)
    frame = ledger_frame(ledger)
    all_expenses = expenses(frame)
    month_expenses = filter_by_period(all_expenses, now)

    alerts: list[SmartAlert] = []
    if turbo_mode:
        alerts.append(
            _alert(
                TURBO_ALERT_ID,
                AlertSeverity.INFO,
                "Turbo mode active",
                f"Category limits are reduced by {(1 - config.turbo_limit_factor) * 100:.0f}% to maximise savings.",
            )
        )

    alerts.extend(_overspend_alerts(month_expenses, user, config))
    alerts.extend(_habit_alerts(all_expenses, now, config))
    alerts.extend(_large_expense_alerts(month_expenses, now, config))
    alerts.extend(_late_night_alerts(month_expenses, now, config))

    logger.debug("Generated %d alerts for %s", len(alerts), now.date().isoformat())
    return alerts


def _overspend_alerts(
    month_expenses: pd.DataFrame,
    user: Optional[UserSettings],
    config: EngineSettings,
) -> list[SmartAlert]:
    if user is None or not user.monthly_income:
        return []

    income = user.monthly_income
    spent = total_amount(month_expenses)
    if spent > income:
        return [
            _alert(
                OVERSPEND_DANGER_ID,
                AlertSeverity.DANGER,
                "Budget exceeded",
                f"You have spent {format_currency(spent - income)} more than your monthly income.",
                "Review expenses",
            )
        ]
    if spent > income * config.overspend_warning_ratio:
        return [
            _alert(
                OVERSPEND_WARNING_ID,
                AlertSeverity.WARNING,
                "Approaching your limit",
                f"You have already used {config.overspend_warning_ratio * 100:.0f}% of your monthly income.",
                "See details",
            )
        ]
    return []


def _habit_alerts(all_expenses: pd.DataFrame, now: datetime, config: EngineSettings) -> list[SmartAlert]:
    recent = trailing_window(all_expenses, now, config.habit_window_days)
    recent = recent[recent["category"] != Category.HOUSING.value]
    if recent.empty:
        return []

    alerts: list[SmartAlert] = []
    counts = recent.groupby("category", sort=True).size()
    for category, count in counts.items():
        if count < config.habit_min_count:
            continue
        alerts.append(
            _alert(
                f"habit:{category}",
                AlertSeverity.INFO,
                f"Frequent habit: {category}",
                f"You made {int(count)} {category} purchases in the last {config.habit_window_days} days.",
                "View history",
            )
        )
    return alerts


def _large_expense_alerts(month_expenses: pd.DataFrame, now: datetime, config: EngineSettings) -> list[SmartAlert]:
    recent = trailing_window(month_expenses, now, config.large_expense_window_days)
    large = recent[(recent["amount"] > config.large_expense_threshold) & (recent["category"] != Category.HOUSING.value)]
    if large.empty:
        return []

    large = large.sort_values(["occurred_at", "id"], ascending=[False, True], kind="mergesort")
    return [
        _alert(
            f"large-expense:{row.id}",
            AlertSeverity.INFO,
            "Large expense detected",
            f"A purchase of {format_currency(row.amount)} in {row.category} impacted your balance.",
        )
        for row in large.itertuples(index=False)
    ]


def _late_night_alerts(month_expenses: pd.DataFrame, now: datetime, config: EngineSettings) -> list[SmartAlert]:
    recent = trailing_window(month_expenses, now, config.late_night_window_days)
    if recent.empty:
        return []

    hours = recent["occurred_at"].dt.hour
    late = (hours >= config.late_night_start_hour) | (hours <= config.late_night_end_hour)
    if not late.any():
        return []
    return [
        _alert(
            LATE_NIGHT_ALERT_ID,
            AlertSeverity.WARNING,
            "Late-night purchases",
            "We noticed spending in the small hours. Purchases at this time tend to be impulsive.",
            "See tips",
        )
    ]


def _limit_name(status: BudgetStatus) -> str:
    if status["scope"] == "category":
        return status["category"]
    if status["scope"] == "card":
        return status["card_issuer"]
    return "Budget"


def generate_budget_alerts(
    ledger: LedgerLike,
    limits: Iterable[BudgetLimit],
    settings: UserSettings | Mapping[str, Any] | None,
    *,
    as_of: date | datetime,
    now: datetime,
    config: Optional[EngineSettings] = None,
) -> list[SmartAlert]:
    """Return alerts for budget limits, unusual category spend and projected overspend.

    Ids carry the limit or category and the ``YYYY-MM`` key of ``as_of``, so
    a host that stores alerts can merge repeated runs by id. Order is:
    limits nearing their cap, limits exceeded, unusual categories (by name),
    then the overspend projection.
    """

    config = config or get_settings()
    user = parse_user_settings(settings)
    frame = ledger_frame(ledger)
    key = month_key(as_of)
    statuses = calculate_budget_status(frame, limits, as_of=as_of, now=now)

    alerts: list[SmartAlert] = []
    for status in statuses:
        if config.budget_warning_percent <= status["percentage_used"] < 100 and not status["is_over_budget"]:
            alerts.append(
                _alert(
                    f"limit_80_{status['limit_id']}_{key}",
                    AlertSeverity.WARNING,
                    f"{_limit_name(status)} at {status['percentage_used']:.0f}%",
                    f"You have used {status['percentage_used']:.0f}% of this limit. "
                    f"{format_currency(status['remaining'])} left.",
                )
            )
    for status in statuses:
        if status["is_over_budget"]:
            alerts.append(
                _alert(
                    f"limit_100_{status['limit_id']}_{key}",
                    AlertSeverity.DANGER,
                    f"Limit exceeded: {_limit_name(status)}",
                    f"You went over the limit by {format_currency(abs(status['remaining']))} "
                    f"({status['percentage_used']:.0f}%).",
                )
            )

    alerts.extend(_unusual_spending_alerts(frame, as_of, key, config))

    if user is not None and user.monthly_income:
        alerts.extend(_overspend_projection_alerts(frame, user.monthly_income, as_of, now, key))

    logger.debug("Generated %d budget alerts for %s", len(alerts), key)
    return alerts


def _unusual_spending_alerts(
    frame: pd.DataFrame,
    as_of: date | datetime,
    key: str,
    config: EngineSettings,
) -> list[SmartAlert]:
    all_expenses = expenses(frame)
    current = spend_by_category(filter_by_period(all_expenses, as_of))
    if current.empty:
        return []

    period = pd.Period(year=as_of.year, month=as_of.month, freq="M")
    lookback = config.unusual_spending_lookback_months
    history = pd.concat(
        [filter_by_period(all_expenses, period - offset) for offset in range(1, lookback + 1)]
    )
    averages = history.groupby("category")["amount"].sum() / lookback

    alerts: list[SmartAlert] = []
    for category in sorted(current.index):
        total = float(current[category])
        average = float(averages.get(category, 0.0))
        if average <= 0 or total <= average * config.unusual_spending_percent / 100:
            continue
        alerts.append(
            _alert(
                f"unusual_{category}_{key}",
                AlertSeverity.WARNING,
                f"Unusual spending: {category}",
                f"You spent {format_currency(total)} on {category}, "
                f"{(total / average - 1) * 100:.0f}% above your average.",
            )
        )
    return alerts


def _overspend_projection_alerts(
    frame: pd.DataFrame,
    monthly_income: float,
    as_of: date | datetime,
    now: datetime,
    key: str,
) -> list[SmartAlert]:
    _, days_remaining = month_progress(as_of, now)
    if days_remaining <= 0:
        return []

    projection = calculate_overspend_projection(frame, monthly_income, as_of=as_of, now=now)
    if not projection["will_overspend"]:
        return []
    return [
        _alert(
            f"overspend_proj_{key}",
            AlertSeverity.DANGER,
            "Overspend projected",
            f"At this pace you will run out of income in {projection['days_until_overspend']} days. "
            f"Daily limit: {format_currency(projection['recommended_daily_limit'])}.",
            "Review expenses",
        )
    ]
