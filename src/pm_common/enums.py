"""Global enums — must match DB CHECK constraints exactly."""

from enum import Enum


class PoolTransactionType(str, Enum):
    DEPOSIT = "deposit"
    TRADE_UP = "trade_up"
    TRADE_DOWN = "trade_down"
    WITHDRAW = "withdraw"


class TradeDirection(str, Enum):
    UP = "up"
    DOWN = "down"


class PointsAction(str, Enum):
    """points_history.action values written by the pool."""
    POOL_DEPOSIT = "pool_deposit"
    POOL_WITHDRAW = "pool_withdraw"
    VAULT_REWARD = "vault_reward"
