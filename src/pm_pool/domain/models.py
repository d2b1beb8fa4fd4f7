"""Domain models for pm_pool — pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.pm_common.amounts import HUNDRED, round_pxb
from src.pm_common.enums import PoolTransactionType, TradeDirection

DEFAULT_POOL_SIZE = Decimal("10000")
DEFAULT_VAULT_BALANCE = Decimal("0")
DEFAULT_CAP_MULTIPLIER = Decimal("5")
DEFAULT_MINIMUM_GUARANTEE = Decimal("0.5")
DEFAULT_VAULT_RATE = Decimal("0.03")


@dataclass(frozen=True)
class PoolConfig:
    pool_size: Decimal = DEFAULT_POOL_SIZE
    vault_balance: Decimal = DEFAULT_VAULT_BALANCE
    cap_multiplier: Decimal = DEFAULT_CAP_MULTIPLIER
    minimum_guarantee: Decimal = DEFAULT_MINIMUM_GUARANTEE
    vault_rate: Decimal = DEFAULT_VAULT_RATE


@dataclass(frozen=True)
class TransactionRecord:
    id: int                          # BIGSERIAL, also the replay tie-break sequence
    user_id: str
    tx_type: PoolTransactionType
    quantity: Decimal
    pxb_amount: Decimal
    timestamp: datetime

    @property
    def sort_key(self) -> tuple[datetime, int]:
        return (self.timestamp, self.id)


@dataclass
class Position:
    user_id: str
    initial_pxb: Decimal
    current_pxb: Decimal
    opened_at: datetime
    opened_seq: int
    username: str | None = None

    @property
    def percent_change(self) -> Decimal:
        """Unrounded (current - initial) / initial * 100."""
        return (self.current_pxb - self.initial_pxb) / self.initial_pxb * HUNDRED

    @property
    def display_percent_change(self) -> Decimal:
        return round_pxb(self.percent_change)


@dataclass(frozen=True)
class WithdrawalResult:
    base_payout: Decimal
    minimum_guarantee: Decimal       # amount, i.e. initial * guarantee fraction
    guaranteed_payout: Decimal
    entitled_payout: Decimal         # capped payout before the solvency clamp
    capped_payout: Decimal           # what leaves the pool
    vault_deduction: Decimal
    final_payout: Decimal            # what the user receives
    solvency_clamped: bool = False


@dataclass(frozen=True)
class TradeOutcome:
    direction: TradeDirection
    percent: Decimal                 # magnitude, always positive
    change_amount: Decimal           # signed, cents

    @property
    def tx_type(self) -> PoolTransactionType:
        if self.direction == TradeDirection.UP:
            return PoolTransactionType.TRADE_UP
        return PoolTransactionType.TRADE_DOWN


@dataclass(frozen=True)
class PointHolder:
    user_id: str
    points: Decimal
