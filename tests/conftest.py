"""Shared fixtures for memberawards tests."""

from __future__ import annotations

import pytest

from memberawards.catalog import RuleCatalog, default_catalog
from memberawards.managers import AwardManager
from memberawards.store import InMemoryAwardStore


@pytest.fixture
def award_store() -> InMemoryAwardStore:
    """Empty in-memory ledger and milestone store."""
    return InMemoryAwardStore()


@pytest.fixture
def stock_catalog() -> RuleCatalog:
    """Fresh catalog seeded with the stock badges and achievements."""
    return default_catalog()


@pytest.fixture
def award_manager(
    stock_catalog: RuleCatalog, award_store: InMemoryAwardStore
) -> AwardManager:
    """AwardManager over the stock catalog and an empty store."""
    return AwardManager(stock_catalog, award_store)
