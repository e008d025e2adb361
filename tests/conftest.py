"""Shared fixtures for the ledgerwise test-suite."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.settings import EngineSettings, get_settings
from core.models import Transaction


@pytest.fixture(autouse=True)
def fresh_settings_cache():
    """Make sure environment overrides from one test never leak into another."""

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def engine_settings() -> EngineSettings:
    return EngineSettings()


@pytest.fixture()
def make_txn():
    def _make(
        txn_id: str,
        description: str,
        amount: float,
        occurred_at: datetime,
        *,
        category: str = "Other",
        kind: str = "expense",
        **extra,
    ) -> Transaction:
        return Transaction(
            id=txn_id,
            description=description,
            amount=amount,
            category=category,
            kind=kind,
            occurred_at=occurred_at,
            **extra,
        )

    return _make
