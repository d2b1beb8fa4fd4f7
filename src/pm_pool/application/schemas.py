"""Pydantic schemas for pm_pool API."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.pm_common.amounts import round_pxb
from src.pm_common.datetime_utils import to_iso
from src.pm_common.enums import TradeDirection
from src.pm_pool.domain.models import (
    PoolConfig,
    Position,
    TradeOutcome,
    WithdrawalResult,
)

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class DepositRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    amount: Decimal = Field(..., gt=0, decimal_places=2, description="PXB to deposit")


class TradeRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)
    direction: TradeDirection


class WithdrawRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=64)


class PoolConfigUpdateRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    pool_size: Decimal | None = None
    vault_balance: Decimal | None = None
    cap_multiplier: Decimal | None = None
    minimum_guarantee: Decimal | None = None
    vault_rate: Decimal | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PoolConfigResponse(BaseModel):
    pool_size: Decimal
    vault_balance: Decimal
    cap_multiplier: Decimal
    minimum_guarantee: Decimal
    vault_rate: Decimal

    @classmethod
    def from_config(cls, config: PoolConfig) -> "PoolConfigResponse":
        return cls(
            pool_size=config.pool_size,
            vault_balance=config.vault_balance,
            cap_multiplier=config.cap_multiplier,
            minimum_guarantee=config.minimum_guarantee,
            vault_rate=config.vault_rate,
        )


class PositionResponse(BaseModel):
    user_id: str
    username: str | None
    initial_pxb: Decimal
    current_pxb: Decimal
    percent_change: Decimal
    opened_at: str  # ISO8601 string

    @classmethod
    def from_position(cls, position: Position) -> "PositionResponse":
        return cls(
            user_id=position.user_id,
            username=position.username,
            initial_pxb=round_pxb(position.initial_pxb),
            current_pxb=round_pxb(position.current_pxb),
            percent_change=position.display_percent_change,
            opened_at=to_iso(position.opened_at),
        )


class WithdrawalBreakdown(BaseModel):
    base_payout: Decimal
    minimum_guarantee: Decimal
    guaranteed_payout: Decimal
    entitled_payout: Decimal
    capped_payout: Decimal
    vault_deduction: Decimal
    final_payout: Decimal
    solvency_clamped: bool

    @classmethod
    def from_result(cls, result: WithdrawalResult) -> "WithdrawalBreakdown":
        return cls(
            base_payout=result.base_payout,
            minimum_guarantee=result.minimum_guarantee,
            guaranteed_payout=result.guaranteed_payout,
            entitled_payout=result.entitled_payout,
            capped_payout=result.capped_payout,
            vault_deduction=result.vault_deduction,
            final_payout=result.final_payout,
            solvency_clamped=result.solvency_clamped,
        )


class DepositResponse(BaseModel):
    message: str
    transaction_id: int
    position: PositionResponse
    points_balance: Decimal
    pool_size: Decimal


class TradeResponse(BaseModel):
    message: str
    transaction_id: int
    direction: TradeDirection
    trade_percent: Decimal
    change_amount: Decimal
    current_pxb: Decimal
    percent_change: Decimal

    @classmethod
    def from_trade(
        cls, message: str, transaction_id: int, outcome: TradeOutcome, position: Position
    ) -> "TradeResponse":
        return cls(
            message=message,
            transaction_id=transaction_id,
            direction=outcome.direction,
            trade_percent=round_pxb(outcome.percent),
            change_amount=outcome.change_amount,
            current_pxb=round_pxb(position.current_pxb),
            percent_change=position.display_percent_change,
        )


class WithdrawResponse(BaseModel):
    message: str
    transaction_id: int
    payout: WithdrawalBreakdown
    points_balance: Decimal
    pool_size: Decimal
    vault_balance: Decimal


class LeaderboardResponse(BaseModel):
    items: list[PositionResponse]


class VaultDistributionResponse(BaseModel):
    message: str
    distributed: Decimal
    recipients: int
    vault_balance: Decimal
