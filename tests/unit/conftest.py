"""Fixtures for pm_pool unit tests."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.pm_pool.application.service import PoolSettlementService
from src.pm_pool.domain.simulator import TradeSimulator
from tests.unit.pool_fakes import (
    FixedRandom,
    InMemoryPointsRepository,
    InMemoryPoolConfigRepository,
    InMemoryTransactionRepository,
)


@pytest.fixture
def db() -> AsyncMock:
    """AsyncSession stand-in; begin_nested() works as an async context manager."""
    session = AsyncMock()
    session.begin_nested = MagicMock()
    session.begin_nested.return_value.__aexit__.return_value = False
    return session

@pytest.fixture
def config_repo() -> InMemoryPoolConfigRepository:
    return InMemoryPoolConfigRepository()

@pytest.fixture
def tx_repo() -> InMemoryTransactionRepository:
    return InMemoryTransactionRepository()

@pytest.fixture
def points_repo() -> InMemoryPointsRepository:
    return InMemoryPointsRepository(
        balances={"alice": Decimal("1000"), "bob": Decimal("500"), "carol": Decimal("0")},
        usernames={"alice": "alice_pxb", "bob": "bobby"},
    )

@pytest.fixture
def rng() -> FixedRandom:
    return FixedRandom(fraction=0.0)

@pytest.fixture
def service(
    config_repo: InMemoryPoolConfigRepository,
    tx_repo: InMemoryTransactionRepository,
    points_repo: InMemoryPointsRepository,
    rng: FixedRandom,
) -> PoolSettlementService:
    return PoolSettlementService(
        config_repo=config_repo,
        tx_repo=tx_repo,
        points_repo=points_repo,
        simulator=TradeSimulator(rng),
        vault_threshold=Decimal("100"),
    )
