"""Core logic for assembling one month's engine outputs from the stores."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from analytics.agenda import build_agenda
from analytics.alerts import generate_budget_alerts, generate_smart_alerts
from analytics.budgets import (
    calculate_budget_status,
    calculate_overspend_projection,
    check_savings_goal_feasibility,
)
from analytics.forecasting import project_month_end
from analytics.ledger import ledger_frame, month_key
from analytics.planning import compose_savings_plan
from analytics.savings import detect_savings
from config.settings import EngineSettings, get_settings
from core.formatting import format_month_label
from core.logging_setup import get_logger
from core.models import MonthSnapshot
from core.stores import (
    BudgetLimitStore,
    ChecklistStore,
    InvoiceRegistry,
    LedgerStore,
    ReviewStore,
    SettingsProvider,
)

__all__ = ["prepare_month_snapshot"]

logger = get_logger("ledgerwise.snapshot")


def prepare_month_snapshot(
    ledger: LedgerStore,
    settings: SettingsProvider,
    invoices: InvoiceRegistry,
    reviews: ReviewStore,
    checklist: ChecklistStore,
    *,
    month: date | datetime,
    now: datetime,
    budget_limits: Optional[BudgetLimitStore] = None,
    turbo_mode: bool = False,
    config: Optional[EngineSettings] = None,
) -> MonthSnapshot:
    """Read every store once and compute all outputs for ``month``.

    Alerts always describe the real current month (``now``); the remaining
    outputs follow ``month``.
    """

    config = config or get_settings()
    frame = ledger_frame(ledger.list())
    user = settings.get()
    review_list = reviews.list()

    forecast = project_month_end(frame, month, user, now=now, turbo_mode=turbo_mode, config=config)
    alerts = generate_smart_alerts(frame, user, now=now, turbo_mode=turbo_mode, config=config)
    savings = detect_savings(frame, review_list, config=config)
    plan = compose_savings_plan(frame, user, review_list, forecast=forecast, config=config)
    agenda = build_agenda(frame, invoices.list(), checklist.list(), month=month, now=now)

    limits = budget_limits.list() if budget_limits is not None else []
    budget_statuses = calculate_budget_status(frame, limits, as_of=month, now=now) if limits else []
    budget_alerts = generate_budget_alerts(frame, limits, user, as_of=month, now=now, config=config)

    overspend = None
    goal_feasibility = None
    if user is not None and user.monthly_income:
        overspend = calculate_overspend_projection(frame, user.monthly_income, as_of=month, now=now)
        if user.savings_goal:
            goal_feasibility = check_savings_goal_feasibility(limits, user.monthly_income, user.savings_goal)

    logger.info(
        "Prepared snapshot for %s: %d transactions, %d alerts, %d agenda items",
        month_key(month),
        len(frame),
        len(alerts),
        len(agenda),
    )

    return {
        "month_key": month_key(month),
        "month_label": format_month_label(month),
        "forecast": forecast,
        "alerts": alerts,
        "savings": savings,
        "plan": plan,
        "agenda": agenda,
        "budget_statuses": budget_statuses,
        "overspend": overspend,
        "budget_alerts": budget_alerts,
        "goal_feasibility": goal_feasibility,
    }
