"""Savings opportunity detection with a persisted review override layer."""

from __future__ import annotations

import re
from typing import Iterable, Mapping, Optional

import pandas as pd

from analytics.ledger import LedgerLike, expenses, ledger_frame
from config.settings import EngineSettings, get_settings
from core.logging_setup import get_logger
from core.models import Category, ReviewStatus, SavingsItem, SavingsResult, SavingsReview

__all__ = [
    "DUPLICATE",
    "SUBSCRIPTION",
    "FEE",
    "opportunity_id",
    "scan_opportunities",
    "annotate_opportunities",
    "detect_savings",
    "is_counted",
]

DUPLICATE = "duplicate"
SUBSCRIPTION = "subscription"
FEE = "fee"

_FREQUENT_CATEGORIES = (Category.FOOD.value, Category.TRANSPORT.value)
_EXCLUDED_STATUSES = (ReviewStatus.DISMISSED.value, ReviewStatus.KEPT.value)

logger = get_logger("ledgerwise.savings")


def opportunity_id(kind: str, transaction_id: str) -> str:
    """Return the stable id reviews are keyed by.

    The id depends only on the detector type and the source transaction, so a
    review stays attached across recomputations and ledger growth.
    """

    return f"{kind}:{transaction_id}"


def is_counted(item: SavingsItem) -> bool:
    """``True`` when the item contributes to the potential savings total."""

    return item["status"] not in _EXCLUDED_STATUSES


def _item(kind: str, row, title: str, description: str) -> SavingsItem:
    amount = float(row.amount)
    return {
        "id": opportunity_id(kind, str(row.id)),
        "kind": kind,
        "transaction_id": str(row.id),
        "title": title,
        "description": description,
        "amount": amount,
        "original_amount": amount,
        "status": ReviewStatus.PENDING.value,
        "justification": None,
    }


def scan_opportunities(ledger: LedgerLike, *, config: Optional[EngineSettings] = None) -> list[SavingsItem]:
    """Detect every opportunity at face value, ignoring reviews.

    Returns duplicates, then subscriptions, then fees, each in ledger order.
    """

    config = config or get_settings()
    spend = expenses(ledger_frame(ledger))
    if spend.empty:
        return []

    items = _detect_duplicates(spend, config)
    items.extend(_detect_subscriptions(spend))
    items.extend(_detect_fees(spend, config))
    logger.debug("Scanned %d expenses, found %d savings opportunities", len(spend), len(items))
    return items


def _detect_duplicates(spend: pd.DataFrame, config: EngineSettings) -> list[SavingsItem]:
    ordered = spend.sort_values("occurred_at", kind="mergesort")
    previous = ordered.shift(1)

    gap = ordered["occurred_at"] - previous["occurred_at"]
    same_charge = (ordered["description"] == previous["description"]) & (ordered["amount"] == previous["amount"])
    within_window = gap <= pd.Timedelta(days=config.duplicate_window_days)
    minimum = previous["category"].isin(_FREQUENT_CATEGORIES).map(
        {True: config.duplicate_min_amount_frequent, False: config.duplicate_min_amount}
    )
    above_noise = previous["amount"] >= minimum

    flagged = ordered[same_charge & within_window & above_noise]
    return [
        _item(
            DUPLICATE,
            row,
            "Possible duplicate charge",
            f"{row.description} appears twice within {config.duplicate_window_days} days.",
        )
        for row in flagged.itertuples(index=False)
    ]


def _detect_subscriptions(spend: pd.DataFrame) -> list[SavingsItem]:
    subscriptions = spend[(spend["category"] == Category.SUBSCRIPTIONS.value) | spend["is_recurring"]]
    return [
        _item(SUBSCRIPTION, row, "Recurring subscription", f"Review your {row.description} subscription.")
        for row in subscriptions.itertuples(index=False)
    ]


def _detect_fees(spend: pd.DataFrame, config: EngineSettings) -> list[SavingsItem]:
    keywords = [keyword for keyword in config.fee_keywords if keyword]
    if not keywords:
        return []

    # leading word boundary so "fee" does not match "coffee"
    pattern = r"\b(?:" + "|".join(re.escape(keyword) for keyword in keywords) + ")"
    fees = spend[spend["description"].str.contains(pattern, case=False, regex=True, na=False)]
    return [
        _item(FEE, row, "Bank fee or interest", f"Avoid paying {row.description}.")
        for row in fees.itertuples(index=False)
    ]


def _index_reviews(reviews: Iterable[SavingsReview] | Mapping[str, SavingsReview] | None) -> dict[str, SavingsReview]:
    if reviews is None:
        return {}
    if isinstance(reviews, Mapping):
        return dict(reviews)
    return {review.id: review for review in reviews}


def annotate_opportunities(
    items: Iterable[SavingsItem],
    reviews: Iterable[SavingsReview] | Mapping[str, SavingsReview] | None,
) -> list[SavingsItem]:
    """Attach review status to every item without filtering any out.

    ``adjusted`` reviews replace the counted amount and keep the detected
    amount in ``original_amount``.
    """

    by_id = _index_reviews(reviews)
    annotated: list[SavingsItem] = []
    for item in items:
        review = by_id.get(item["id"])
        updated: SavingsItem = dict(item)  # type: ignore[assignment]
        if review is not None:
            updated["status"] = review.status.value
            updated["justification"] = review.justification
            override = review.counted_amount_override
            if override is not None:
                updated["amount"] = override
        annotated.append(updated)
    return annotated


def detect_savings(
    ledger: LedgerLike,
    reviews: Iterable[SavingsReview] | Mapping[str, SavingsReview] | None = None,
    *,
    config: Optional[EngineSettings] = None,
) -> SavingsResult:
    """Return counted opportunities and their total, largest first.

    Dismissed and kept items are removed from both the list and the total;
    :func:`annotate_opportunities` still exposes them for display.
    """

    annotated = annotate_opportunities(scan_opportunities(ledger, config=config), reviews)
    counted = [item for item in annotated if is_counted(item)]
    counted.sort(key=lambda item: -item["amount"])
    return {
        "total_potential": float(sum(item["amount"] for item in counted)),
        "items": counted,
    }
