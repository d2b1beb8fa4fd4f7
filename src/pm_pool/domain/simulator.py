"""Stochastic trade simulator for the demo trading pool.

Not market-data driven: each tick moves the position by a uniformly drawn
percentage of its current value. The random source is injected so tests and
demo runs can be seeded.
"""

import random
from decimal import Decimal
from typing import Protocol

from src.pm_common.amounts import HUNDRED, ZERO, round_pxb
from src.pm_common.errors import InvalidAmountError
from src.pm_common.enums import TradeDirection
from src.pm_pool.domain.models import TradeOutcome

UP_PERCENT_RANGE = (5.0, 20.0)
DOWN_PERCENT_RANGE = (2.0, 15.0)
_PERCENT_QUANTUM = Decimal("0.0001")


class RandomSource(Protocol):
    def uniform(self, a: float, b: float) -> float: ...


class TradeSimulator:
    def __init__(self, rng: RandomSource | None = None) -> None:
        self._rng: RandomSource = rng or random.Random()

    def simulate(self, direction: TradeDirection, current_value: Decimal) -> TradeOutcome:
        if current_value < ZERO:
            raise InvalidAmountError(f"position value must be >= 0, got {current_value}")

        low, high = UP_PERCENT_RANGE if direction == TradeDirection.UP else DOWN_PERCENT_RANGE
        percent = Decimal(str(self._rng.uniform(low, high))).quantize(_PERCENT_QUANTUM)
        change = round_pxb(current_value * percent / HUNDRED)
        if direction == TradeDirection.DOWN:
            change = -change
        return TradeOutcome(direction=direction, percent=percent, change_amount=change)
