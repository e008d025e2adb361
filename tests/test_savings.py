"""Tests for the savings opportunity detector and its review overrides."""

from __future__ import annotations

from datetime import datetime

import pytest

from analytics.savings import annotate_opportunities, detect_savings, opportunity_id, scan_opportunities
from core.models import ReviewStatus, SavingsReview


@pytest.fixture()
def savings_ledger(make_txn):
    return [
        make_txn("gym-1", "Gym", 80.0, datetime(2025, 1, 3, 8, 0), category="Health"),
        make_txn("gym-2", "Gym", 80.0, datetime(2025, 1, 5, 8, 0), category="Health"),
        make_txn("spotify", "Spotify", 21.9, datetime(2025, 1, 7, 8, 0), category="Subscriptions"),
        make_txn("fee", "Tarifa bancaria", 45.0, datetime(2025, 1, 10, 8, 0), category="Other"),
        make_txn("salary", "Salary", 5000.0, datetime(2025, 1, 5, 8, 0), category="Salary", kind="income"),
    ]


def _ids(items):
    return [item["id"] for item in items]


def test_opportunity_id_is_detector_and_transaction():
    assert opportunity_id("fee", "abc") == "fee:abc"


def test_scan_finds_each_detector_in_order(savings_ledger, engine_settings):
    items = scan_opportunities(savings_ledger, config=engine_settings)

    assert _ids(items) == ["duplicate:gym-2", "subscription:spotify", "fee:fee"]
    assert all(item["status"] == "pending" for item in items)


def test_small_frequent_repeats_are_not_duplicates(make_txn, engine_settings):
    ledger = [
        make_txn("u1", "Uber", 25.0, datetime(2025, 1, 3, 18, 0), category="Transport"),
        make_txn("u2", "Uber", 25.0, datetime(2025, 1, 4, 18, 0), category="Transport"),
    ]

    result = detect_savings(ledger, config=engine_settings)

    assert result == {"total_potential": 0.0, "items": []}


@pytest.mark.parametrize(
    ("category", "amount", "flagged"),
    [("Food", 35.0, True), ("Food", 29.0, False), ("Other", 12.0, True), ("Other", 9.0, False)],
)
def test_duplicate_noise_threshold_depends_on_category(make_txn, engine_settings, category, amount, flagged):
    ledger = [
        make_txn("a", "Lunch spot", amount, datetime(2025, 1, 3, 12, 0), category=category),
        make_txn("b", "Lunch spot", amount, datetime(2025, 1, 4, 12, 0), category=category),
    ]

    items = scan_opportunities(ledger, config=engine_settings)

    assert (_ids(items) == ["duplicate:b"]) is flagged


def test_duplicates_need_identical_charge_within_window(make_txn, engine_settings):
    ledger = [
        make_txn("a", "Gym", 80.0, datetime(2025, 1, 1), category="Health"),
        make_txn("b", "Gym", 80.0, datetime(2025, 1, 6), category="Health"),
        make_txn("c", "Gym", 81.0, datetime(2025, 1, 7), category="Health"),
    ]

    assert scan_opportunities(ledger, config=engine_settings) == []


def test_recurring_expense_counts_as_subscription(make_txn, engine_settings):
    ledger = [make_txn("net", "Internet", 120.0, datetime(2025, 1, 2), category="Utilities", is_recurring=True)]

    items = scan_opportunities(ledger, config=engine_settings)

    assert _ids(items) == ["subscription:net"]


def test_fee_keywords_are_case_insensitive(make_txn, engine_settings):
    ledger = [
        make_txn("a", "ANNUAL FEE - card", 300.0, datetime(2025, 1, 2)),
        make_txn("b", "Juros rotativo", 60.0, datetime(2025, 1, 2)),
        make_txn("c", "Bookstore", 60.0, datetime(2025, 1, 2)),
    ]

    assert _ids(scan_opportunities(ledger, config=engine_settings)) == ["fee:a", "fee:b"]


def test_income_is_never_an_opportunity(make_txn, engine_settings):
    ledger = [make_txn("i", "Interest payout", 10.0, datetime(2025, 1, 2), category="Salary", kind="income")]

    assert scan_opportunities(ledger, config=engine_settings) == []


def test_detect_savings_orders_by_amount(savings_ledger, engine_settings):
    result = detect_savings(savings_ledger, config=engine_settings)

    assert _ids(result["items"]) == ["duplicate:gym-2", "fee:fee", "subscription:spotify"]
    assert result["total_potential"] == pytest.approx(80.0 + 45.0 + 21.9)


def test_reviews_override_counted_items(savings_ledger, engine_settings):
    reviews = [
        SavingsReview(id="duplicate:gym-2", status=ReviewStatus.DISMISSED, justification="Two family plans"),
        SavingsReview(id="subscription:spotify", status="kept"),
        SavingsReview(id="fee:fee", status=ReviewStatus.ADJUSTED, adjusted_amount=15.0),
    ]

    result = detect_savings(savings_ledger, reviews, config=engine_settings)

    assert _ids(result["items"]) == ["fee:fee"]
    fee = result["items"][0]
    assert fee["amount"] == pytest.approx(15.0)
    assert fee["original_amount"] == pytest.approx(45.0)
    assert fee["status"] == "adjusted"
    assert result["total_potential"] == pytest.approx(15.0)


def test_annotate_keeps_every_item(savings_ledger, engine_settings):
    reviews = {"duplicate:gym-2": SavingsReview(id="duplicate:gym-2", status="dismissed", justification="ok")}

    items = annotate_opportunities(scan_opportunities(savings_ledger, config=engine_settings), reviews)

    assert len(items) == 3
    assert items[0]["status"] == "dismissed"
    assert items[0]["justification"] == "ok"


def test_review_ids_survive_ledger_growth(savings_ledger, make_txn, engine_settings):
    before = _ids(scan_opportunities(savings_ledger, config=engine_settings))
    extended = savings_ledger + [
        make_txn("late-fee", "Multa atraso", 12.0, datetime(2025, 2, 1), category="Other"),
        make_txn("gym-3", "Gym", 80.0, datetime(2025, 2, 3), category="Health"),
    ]

    after = _ids(scan_opportunities(extended, config=engine_settings))

    assert set(before) <= set(after)


def test_dismissing_never_increases_total_and_keeping_removes_item(savings_ledger, engine_settings):
    baseline = detect_savings(savings_ledger, config=engine_settings)["total_potential"]
    dismissed = detect_savings(
        savings_ledger, [SavingsReview(id="fee:fee", status="dismissed")], config=engine_settings
    )["total_potential"]
    pending = detect_savings(
        savings_ledger, [SavingsReview(id="fee:fee", status="pending")], config=engine_settings
    )["total_potential"]

    assert dismissed <= baseline
    assert dismissed == pytest.approx(baseline - 45.0)
    assert pending == pytest.approx(baseline)


def test_fee_keywords_match_whole_words_only(make_txn, engine_settings):
    ledger = [
        make_txn("a", "Coffee house", 40.0, datetime(2025, 1, 2), category="Food"),
        make_txn("b", "Tarifas de manutencao", 40.0, datetime(2025, 1, 2)),
    ]

    assert _ids(scan_opportunities(ledger, config=engine_settings)) == ["fee:b"]
