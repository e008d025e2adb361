"""Analytics helpers shared across ledgerwise services."""

from analytics.agenda import build_agenda
from analytics.alerts import generate_budget_alerts, generate_smart_alerts
from analytics.budgets import (
    calculate_budget_status,
    calculate_overspend_projection,
    check_savings_goal_feasibility,
)
from analytics.forecasting import compute_pending_fixed_expenses, compute_risk_categories, project_month_end
from analytics.invoices import cluster_invoices_by_issuer, find_duplicate_import, invoice_fingerprint
from analytics.ledger import ledger_frame, recurring_definitions
from analytics.planning import compose_savings_plan
from analytics.savings import annotate_opportunities, detect_savings, opportunity_id, scan_opportunities

__all__ = [
    "ledger_frame",
    "recurring_definitions",
    "project_month_end",
    "compute_pending_fixed_expenses",
    "compute_risk_categories",
    "generate_smart_alerts",
    "generate_budget_alerts",
    "opportunity_id",
    "scan_opportunities",
    "annotate_opportunities",
    "detect_savings",
    "compose_savings_plan",
    "invoice_fingerprint",
    "find_duplicate_import",
    "cluster_invoices_by_issuer",
    "build_agenda",
    "calculate_budget_status",
    "calculate_overspend_projection",
    "check_savings_goal_feasibility",
]
