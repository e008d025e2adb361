"""Tests for the rule-based alert generator."""

from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from analytics.alerts import (
    LATE_NIGHT_ALERT_ID,
    OVERSPEND_DANGER_ID,
    OVERSPEND_WARNING_ID,
    TURBO_ALERT_ID,
    generate_budget_alerts,
    generate_smart_alerts,
)
from core.models import BudgetLimit

NOW = datetime(2025, 6, 15, 14, 0)


def _ids(alerts):
    return [alert["id"] for alert in alerts]


def test_no_alerts_for_quiet_ledger(make_txn, engine_settings):
    ledger = [make_txn("a", "Bakery", 12.0, datetime(2025, 6, 14, 9, 0), category="Food")]

    assert generate_smart_alerts(ledger, {"monthly_income": 3000}, now=NOW, config=engine_settings) == []


def test_turbo_banner_comes_first(make_txn, engine_settings):
    ledger = [make_txn("a", "Bakery", 12.0, datetime(2025, 6, 14, 9, 0), category="Food")]

    alerts = generate_smart_alerts(ledger, None, now=NOW, turbo_mode=True, config=engine_settings)

    assert _ids(alerts) == [TURBO_ALERT_ID]
    assert alerts[0]["severity"] == "info"
    assert "20%" in alerts[0]["message"]


@pytest.mark.parametrize(
    ("spent", "expected"),
    [(150.0, [OVERSPEND_DANGER_ID]), (95.0, [OVERSPEND_WARNING_ID]), (50.0, [])],
)
def test_overspend_danger_and_warning_are_exclusive(make_txn, engine_settings, spent, expected):
    ledger = [make_txn("a", "Groceries", spent, datetime(2025, 6, 2, 10, 0), category="Food")]

    alerts = generate_smart_alerts(ledger, {"monthly_income": 100.0}, now=NOW, config=engine_settings)

    assert _ids(alerts) == expected


def test_overspend_needs_monthly_income(make_txn, engine_settings):
    ledger = [make_txn("a", "Groceries", 150.0, datetime(2025, 6, 2, 10, 0), category="Food")]

    assert generate_smart_alerts(ledger, {"savings_goal": 10}, now=NOW, config=engine_settings) == []


def test_habit_alert_per_frequent_category_except_housing(make_txn, engine_settings):
    ledger = [
        make_txn(f"f{day}", "Coffee", 8.0, NOW - timedelta(days=day, hours=2), category="Food") for day in range(5)
    ] + [
        make_txn(f"h{day}", "Condo fee split", 8.0, NOW - timedelta(days=day, hours=2), category="Housing")
        for day in range(5)
    ] + [make_txn("old", "Coffee", 8.0, NOW - timedelta(days=9), category="Food")]

    alerts = generate_smart_alerts(ledger, None, now=NOW, config=engine_settings)

    assert _ids(alerts) == ["habit:Food"]
    assert "5 Food purchases" in alerts[0]["message"]


def test_large_expense_alerts_are_per_transaction(make_txn, engine_settings):
    ledger = [
        make_txn("tv", "Television", 2500.0, datetime(2025, 6, 14, 10, 0), category="Shopping"),
        make_txn("sofa", "Sofa", 1800.0, datetime(2025, 6, 13, 10, 0), category="Shopping"),
        make_txn("rent", "Rent", 2000.0, datetime(2025, 6, 14, 11, 0), category="Housing"),
        make_txn("bike", "Bike", 1200.0, datetime(2025, 6, 5, 10, 0), category="Transport"),
    ]

    alerts = generate_smart_alerts(ledger, None, now=NOW, config=engine_settings)

    assert _ids(alerts) == ["large-expense:tv", "large-expense:sofa"]
    assert "R$ 2,500.00" in alerts[0]["message"]


def test_late_night_spending_triggers_a_single_alert(make_txn, engine_settings):
    ledger = [
        make_txn("n1", "Delivery", 30.0, datetime(2025, 6, 14, 23, 30), category="Food"),
        make_txn("n2", "Game store", 20.0, datetime(2025, 6, 15, 2, 10), category="Entertainment"),
        make_txn("n3", "Delivery", 25.0, datetime(2025, 6, 10, 1, 0), category="Food"),
    ]

    alerts = generate_smart_alerts(ledger, None, now=NOW, config=engine_settings)

    assert _ids(alerts) == [LATE_NIGHT_ALERT_ID]
    assert alerts[0]["severity"] == "warning"


def test_alert_ids_are_deterministic(make_txn, engine_settings):
    ledger = [
        make_txn("tv", "Television", 2500.0, datetime(2025, 6, 14, 23, 10), category="Shopping"),
        make_txn("c1", "Coffee", 8.0, datetime(2025, 6, 12, 9, 0), category="Food"),
    ]
    settings = {"monthly_income": 2600.0}

    first = generate_smart_alerts(ledger, settings, now=NOW, turbo_mode=True, config=engine_settings)
    second = generate_smart_alerts(list(reversed(ledger)), settings, now=NOW, turbo_mode=True, config=engine_settings)

    assert first == second
    assert _ids(first) == [TURBO_ALERT_ID, OVERSPEND_WARNING_ID, "large-expense:tv", LATE_NIGHT_ALERT_ID]


@pytest.mark.parametrize(
    ("hour", "minute", "alerts_expected"),
    [
        (23, 0, True),
        (23, 30, True),
        (0, 30, True),
        (4, 30, True),
        (4, 59, True),
        (5, 0, False),
        (5, 30, False),
        (22, 30, False),
        (22, 59, False),
    ],
)
def test_late_night_window_edges(make_txn, engine_settings, hour, minute, alerts_expected):
    ledger = [make_txn("n", "Delivery", 30.0, datetime(2025, 6, 14, hour, minute), category="Food")]

    alerts = generate_smart_alerts(ledger, None, now=NOW, config=engine_settings)

    assert (LATE_NIGHT_ALERT_ID in _ids(alerts)) is alerts_expected


@pytest.mark.parametrize(("amount", "alerts_expected"), [(1000.0, False), (1000.01, True), (999.99, False)])
def test_large_expense_threshold_is_strict(make_txn, engine_settings, amount, alerts_expected):
    ledger = [make_txn("big", "Laptop", amount, datetime(2025, 6, 14, 10, 0), category="Shopping")]

    alerts = generate_smart_alerts(ledger, None, now=NOW, config=engine_settings)

    assert ("large-expense:big" in _ids(alerts)) is alerts_expected


@pytest.fixture()
def budget_limits():
    return [
        BudgetLimit(id="food", scope="category", monthly_limit=100, category="Food"),
        BudgetLimit(id="shop", scope="category", monthly_limit=100, category="Shopping"),
        BudgetLimit(id="all", scope="global", monthly_limit=1000),
        BudgetLimit(id="paused", scope="category", monthly_limit=10, category="Food", is_active=False),
    ]


def test_budget_alerts_for_limits_nearing_and_over_cap(make_txn, engine_settings, budget_limits):
    ledger = [
        make_txn("f1", "Market", 90.0, datetime(2025, 6, 2, 10, 0), category="Food"),
        make_txn("s1", "Sneakers", 150.0, datetime(2025, 6, 3, 10, 0), category="Shopping"),
    ]

    alerts = generate_budget_alerts(ledger, budget_limits, None, as_of=NOW, now=NOW, config=engine_settings)

    assert _ids(alerts) == ["limit_80_food_2025-06", "limit_100_shop_2025-06"]
    assert [alert["severity"] for alert in alerts] == ["warning", "danger"]
    assert alerts[0]["title"] == "Food at 90%"
    assert "R$ 10.00 left" in alerts[0]["message"]
    assert "R$ 50.00" in alerts[1]["message"]


def test_budget_alert_at_exactly_the_limit_is_neither_warning_nor_exceeded(make_txn, engine_settings):
    ledger = [make_txn("f1", "Market", 100.0, datetime(2025, 6, 2, 10, 0), category="Food")]
    limits = [BudgetLimit(id="food", scope="category", monthly_limit=100, category="Food")]

    assert generate_budget_alerts(ledger, limits, None, as_of=NOW, now=NOW, config=engine_settings) == []


def test_unusual_spending_against_trailing_average(make_txn, engine_settings):
    ledger = [
        make_txn("f-apr", "Market", 300.0, datetime(2025, 4, 10), category="Food"),
        make_txn("t-mar", "Bus", 10.0, datetime(2025, 3, 10), category="Transport"),
        make_txn("t-apr", "Bus", 10.0, datetime(2025, 4, 10), category="Transport"),
        make_txn("t-may", "Bus", 10.0, datetime(2025, 5, 10), category="Transport"),
        make_txn("old", "Market", 900.0, datetime(2025, 2, 10), category="Food"),
        make_txn("f-jun", "Market", 160.0, datetime(2025, 6, 10), category="Food"),
        make_txn("t-jun", "Bus", 15.0, datetime(2025, 6, 11), category="Transport"),
        make_txn("e-jun", "Concert", 500.0, datetime(2025, 6, 12), category="Entertainment"),
    ]

    alerts = generate_budget_alerts(ledger, [], None, as_of=NOW, now=NOW, config=engine_settings)

    assert _ids(alerts) == ["unusual_Food_2025-06"]
    assert "60% above your average" in alerts[0]["message"]


def test_overspend_projection_alert_only_for_current_month(make_txn, engine_settings):
    ledger = [make_txn("a", "Groceries", 600.0, datetime(2025, 6, 2, 10, 0), category="Food")]
    settings = {"monthly_income": 1000.0}

    alerts = generate_budget_alerts(ledger, [], settings, as_of=NOW, now=NOW, config=engine_settings)

    assert _ids(alerts) == ["overspend_proj_2025-06"]
    assert alerts[0]["severity"] == "danger"
    assert "10 days" in alerts[0]["message"]

    past = generate_budget_alerts(ledger, [], settings, as_of=NOW, now=datetime(2025, 7, 20), config=engine_settings)
    assert past == []
    assert generate_budget_alerts(ledger, [], None, as_of=date(2025, 6, 1), now=NOW, config=engine_settings) == []


def test_budget_alert_ids_do_not_depend_on_ledger_order(make_txn, engine_settings, budget_limits):
    ledger = [
        make_txn("f1", "Market", 95.0, datetime(2025, 6, 2, 10, 0), category="Food"),
        make_txn("s1", "Sneakers", 120.0, datetime(2025, 6, 3, 10, 0), category="Shopping"),
        make_txn("s0", "Sneakers", 40.0, datetime(2025, 5, 3, 10, 0), category="Shopping"),
    ]
    settings = {"monthly_income": 300.0}

    first = generate_budget_alerts(ledger, budget_limits, settings, as_of=NOW, now=NOW, config=engine_settings)
    second = generate_budget_alerts(
        list(reversed(ledger)), budget_limits, settings, as_of=NOW, now=NOW, config=engine_settings
    )

    assert first == second
