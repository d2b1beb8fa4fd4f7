"""Unit tests for the stochastic trade simulator."""

import random
from decimal import Decimal

import pytest

from src.pm_common.enums import PoolTransactionType, TradeDirection
from src.pm_common.errors import InvalidAmountError
from src.pm_pool.domain.simulator import TradeSimulator


class _Stub:
    def __init__(self, value: float) -> None:
        self.value = value
        self.calls: list[tuple[float, float]] = []

    def uniform(self, a: float, b: float) -> float:
        self.calls.append((a, b))
        return self.value


class TestSimulate:
    def test_up_draws_between_5_and_20_percent(self) -> None:
        rng = _Stub(12.5)
        outcome = TradeSimulator(rng).simulate(TradeDirection.UP, Decimal("200"))
        assert rng.calls == [(5.0, 20.0)]
        assert outcome.percent == Decimal("12.5000")
        assert outcome.change_amount == Decimal("25.00")
        assert outcome.tx_type == PoolTransactionType.TRADE_UP

    def test_down_draws_between_2_and_15_percent(self) -> None:
        rng = _Stub(15.0)
        outcome = TradeSimulator(rng).simulate(TradeDirection.DOWN, Decimal("100"))
        assert rng.calls == [(2.0, 15.0)]
        assert outcome.change_amount == Decimal("-15.00")
        assert outcome.tx_type == PoolTransactionType.TRADE_DOWN

    def test_change_rounded_to_cents(self) -> None:
        outcome = TradeSimulator(_Stub(7.3333)).simulate(TradeDirection.UP, Decimal("33.33"))
        # 33.33 * 7.3333% = 2.44418889
        assert outcome.change_amount == Decimal("2.44")

    def test_zero_value_moves_nothing(self) -> None:
        outcome = TradeSimulator(_Stub(10.0)).simulate(TradeDirection.DOWN, Decimal("0"))
        assert outcome.change_amount == Decimal("0")

    def test_negative_value_rejected(self) -> None:
        with pytest.raises(InvalidAmountError):
            TradeSimulator(_Stub(10.0)).simulate(TradeDirection.UP, Decimal("-1"))

    def test_seeded_random_stays_in_range(self) -> None:
        sim = TradeSimulator(random.Random(42))
        for _ in range(200):
            up = sim.simulate(TradeDirection.UP, Decimal("100"))
            down = sim.simulate(TradeDirection.DOWN, Decimal("100"))
            assert Decimal("5") <= up.percent <= Decimal("20")
            assert Decimal("5") <= up.change_amount <= Decimal("20")
            assert Decimal("2") <= down.percent <= Decimal("15")
            assert Decimal("-15") <= down.change_amount <= Decimal("-2")

    def test_same_seed_same_sequence(self) -> None:
        a = TradeSimulator(random.Random(7))
        b = TradeSimulator(random.Random(7))
        for direction in [TradeDirection.UP, TradeDirection.DOWN, TradeDirection.UP]:
            assert a.simulate(direction, Decimal("100")) == b.simulate(direction, Decimal("100"))
