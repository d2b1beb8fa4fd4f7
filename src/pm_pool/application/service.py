"""PoolSettlementService — deposit, trade, withdraw, leaderboard, vault distribution.

Every mutating operation runs in one DB transaction: commit on success,
rollback on any error, so a failed step never leaves an earlier one applied
(e.g. a pool-size increase without its deposit record).

Locking order is always: per-user lock (asyncio + advisory) -> pool row lock
-> users rows.
Pool balances only change through PoolConfigRepository.apply_delta.

Secondary bookkeeping (points_history) runs in a SAVEPOINT; a failure there
is logged and the operation continues. Read-only queries degrade to empty
results on storage errors.
"""

import asyncio
import logging
import random
from collections import defaultdict
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.pm_common.amounts import CENT, ZERO, pxb_to_display, round_pxb, to_decimal
from src.pm_common.enums import PointsAction, PoolTransactionType, TradeDirection
from src.pm_common.errors import (
    ActivePositionExistsError,
    AppError,
    ConfigValidationError,
    InvalidAmountError,
    NoActivePositionError,
    NoEligibleHoldersError,
    PersistenceError,
    VaultBelowThresholdError,
)
from src.pm_pool.application.schemas import (
    DepositResponse,
    LeaderboardResponse,
    PoolConfigResponse,
    PositionResponse,
    TradeResponse,
    VaultDistributionResponse,
    WithdrawalBreakdown,
    WithdrawResponse,
)
from src.pm_pool.domain.config import merge_config
from src.pm_pool.domain.leaderboard import rank_positions
from src.pm_pool.domain.models import Position
from src.pm_pool.domain.payout import calculate_withdrawal
from src.pm_pool.domain.replay import derive_position
from src.pm_pool.domain.repository import (
    PoolConfigRepositoryProtocol,
    TransactionRepositoryProtocol,
    UserPointsRepositoryProtocol,
)
from src.pm_pool.domain.simulator import TradeSimulator
from src.pm_pool.domain.vault import allocate_vault_rewards
from src.pm_pool.infrastructure.config_store import PoolConfigRepository
from src.pm_pool.infrastructure.persistence import TransactionRepository
from src.pm_pool.infrastructure.points import UserPointsRepository

logger = logging.getLogger(__name__)

VAULT_REFERENCE_ID = "vault_distribution"


@asynccontextmanager
async def _transaction(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    """Commit on success; roll back and re-raise on failure.

    SQLAlchemy errors surface as PersistenceError so callers see a typed AppError.
    """
    try:
        yield
        await db.commit()
    except AppError:
        await db.rollback()
        raise
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("%s failed; transaction rolled back", operation)
        raise PersistenceError(f"{operation} failed: storage error") from exc
    except Exception:
        await db.rollback()
        raise


def _default_simulator() -> TradeSimulator:
    if settings.TRADE_RNG_SEED is not None:
        return TradeSimulator(random.Random(settings.TRADE_RNG_SEED))
    return TradeSimulator()


class PoolSettlementService:
    def __init__(
        self,
        config_repo: PoolConfigRepositoryProtocol | None = None,
        tx_repo: TransactionRepositoryProtocol | None = None,
        points_repo: UserPointsRepositoryProtocol | None = None,
        simulator: TradeSimulator | None = None,
        vault_threshold: Decimal | None = None,
    ) -> None:
        self._config: PoolConfigRepositoryProtocol = config_repo or PoolConfigRepository()
        self._tx: TransactionRepositoryProtocol = tx_repo or TransactionRepository()
        self._points: UserPointsRepositoryProtocol = points_repo or UserPointsRepository()
        self._simulator = simulator or _default_simulator()
        self._vault_threshold = (
            vault_threshold
            if vault_threshold is not None
            else settings.VAULT_DISTRIBUTION_THRESHOLD
        )
        self._user_locks: dict[str, asyncio.Lock] = {}
        self._user_lock_holders: dict[str, int] = defaultdict(int)

    # ------------------------------------------------------------------
    # Pool config
    # ------------------------------------------------------------------

    async def initialize(self, db: AsyncSession) -> bool:
        """Create the pool config row with defaults if it does not exist yet."""
        async with _transaction(db, "Initialize trading pool"):
            created = await self._config.initialize(db)
        if created:
            logger.info("Trading pool initialized with default configuration")
        return created

    async def get_config(self, db: AsyncSession) -> PoolConfigResponse:
        try:
            config = await self._config.get(db)
        except SQLAlchemyError as exc:
            logger.exception("Error fetching pool config")
            raise PersistenceError("Fetching pool config failed: storage error") from exc
        return PoolConfigResponse.from_config(config)

    async def update_config(self, db: AsyncSession, partial: dict[str, Any]) -> bool:
        """Merge and persist a partial config. False if it could not be persisted.

        Out-of-range values raise ConfigValidationError and change nothing.
        """
        try:
            current = await self._config.lock(db)
            merged = merge_config(current, partial)
            await self._config.save(db, merged)
            await db.commit()
        except ConfigValidationError:
            await db.rollback()
            raise
        except SQLAlchemyError:
            await db.rollback()
            logger.exception("Error updating pool config")
            return False
        logger.info("Pool config updated: %s", ", ".join(sorted(partial)))
        return True

    # ------------------------------------------------------------------
    # Position lifecycle
    # ------------------------------------------------------------------

    async def deposit(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> DepositResponse:
        amount = self._validate_amount(amount)
        async with self._user_lock(user_id):
            async with _transaction(db, "Deposit to trading pool"):
                await self._tx.lock_user(db, user_id)
                records = await self._tx.list_for_user(db, user_id)
                if derive_position(user_id, records) is not None:
                    raise ActivePositionExistsError(user_id)

                await self._config.lock(db)
                points_balance = await self._points.debit_points(db, user_id, amount)
                record = await self._tx.append(
                    db, user_id, PoolTransactionType.DEPOSIT, amount, amount
                )
                config = await self._config.apply_delta(db, amount, ZERO)
                await self._record_history(
                    db, user_id, -amount, PointsAction.POOL_DEPOSIT, str(record.id)
                )

        position = Position(
            user_id=user_id,
            initial_pxb=amount,
            current_pxb=amount,
            opened_at=record.timestamp,
            opened_seq=record.id,
        )
        logger.info(
            "Pool deposit: user=%s amount=%s tx=%s pool_size=%s",
            user_id, amount, record.id, config.pool_size,
        )
        return DepositResponse(
            message=f"Successfully deposited {pxb_to_display(amount)} into the trading pool",
            transaction_id=record.id,
            position=PositionResponse.from_position(position),
            points_balance=points_balance,
            pool_size=config.pool_size,
        )

    async def trade(
        self, db: AsyncSession, user_id: str, direction: TradeDirection
    ) -> TradeResponse:
        async with self._user_lock(user_id):
            async with _transaction(db, f"Execute {direction.value} trade"):
                await self._tx.lock_user(db, user_id)
                records = await self._tx.list_for_user(db, user_id)
                position = derive_position(user_id, records)
                if position is None:
                    raise NoActivePositionError(user_id)

                outcome = self._simulator.simulate(direction, position.current_pxb)
                change = abs(outcome.change_amount)
                record = await self._tx.append(db, user_id, outcome.tx_type, change, change)

        updated = derive_position(user_id, [*records, record])
        if updated is None:
            raise NoActivePositionError(user_id)
        if direction == TradeDirection.UP:
            message = (
                f"Trade successful! Gained {pxb_to_display(change)} "
                f"(+{round_pxb(outcome.percent)}%)"
            )
        else:
            message = (
                f"Trade resulted in a loss of {pxb_to_display(change)} "
                f"(-{round_pxb(outcome.percent)}%)"
            )
        logger.info(
            "Pool trade: user=%s direction=%s change=%s current=%s",
            user_id, direction.value, outcome.change_amount, updated.current_pxb,
        )
        return TradeResponse.from_trade(message, record.id, outcome, updated)

    async def withdraw(self, db: AsyncSession, user_id: str) -> WithdrawResponse:
        async with self._user_lock(user_id):
            async with _transaction(db, "Withdraw from trading pool"):
                await self._tx.lock_user(db, user_id)
                position = derive_position(user_id, await self._tx.list_for_user(db, user_id))
                if position is None:
                    raise NoActivePositionError(user_id)

                config = await self._config.lock(db)
                result = calculate_withdrawal(
                    position.initial_pxb, position.current_pxb, config
                )
                record = await self._tx.append(
                    db,
                    user_id,
                    PoolTransactionType.WITHDRAW,
                    round_pxb(position.current_pxb),
                    result.final_payout,
                )
                config = await self._config.apply_delta(
                    db, -result.capped_payout, result.vault_deduction
                )
                points_balance = await self._points.credit_points(
                    db, user_id, result.final_payout
                )
                await self._record_history(
                    db, user_id, result.final_payout, PointsAction.POOL_WITHDRAW, str(record.id)
                )

        message = (
            f"Successfully withdrawn {pxb_to_display(result.final_payout)} "
            f"from the trading pool"
        )
        if result.solvency_clamped:
            logger.warning(
                "Solvency clamp on withdrawal: user=%s entitled=%s paid_from_pool=%s",
                user_id, result.entitled_payout, result.capped_payout,
            )
            message += (
                f" (reduced from {pxb_to_display(result.entitled_payout)}: "
                f"the pool could not cover the full payout)"
            )
        logger.info(
            "Pool withdrawal: user=%s final=%s vault=%s pool_size=%s",
            user_id, result.final_payout, result.vault_deduction, config.pool_size,
        )
        return WithdrawResponse(
            message=message,
            transaction_id=record.id,
            payout=WithdrawalBreakdown.from_result(result),
            points_balance=points_balance,
            pool_size=config.pool_size,
            vault_balance=config.vault_balance,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_position(
        self, db: AsyncSession, user_id: str
    ) -> PositionResponse | None:
        try:
            records = await self._tx.list_for_user(db, user_id)
            position = derive_position(user_id, records)
            if position is not None:
                usernames = await self._points.get_usernames(db, [user_id])
                position.username = usernames.get(user_id)
        except SQLAlchemyError:
            logger.exception("Error fetching trading position for user %s", user_id)
            return None
        return PositionResponse.from_position(position) if position else None

    async def preview_withdrawal(
        self, db: AsyncSession, user_id: str
    ) -> WithdrawalBreakdown:
        """Payout the user would receive right now. Writes nothing."""
        try:
            records = await self._tx.list_for_user(db, user_id)
            config = await self._config.get(db)
        except SQLAlchemyError as exc:
            logger.exception("Error previewing withdrawal for user %s", user_id)
            raise PersistenceError("Withdrawal preview failed: storage error") from exc
        position = derive_position(user_id, records)
        if position is None:
            raise NoActivePositionError(user_id)
        result = calculate_withdrawal(position.initial_pxb, position.current_pxb, config)
        return WithdrawalBreakdown.from_result(result)

    async def leaderboard(self, db: AsyncSession) -> LeaderboardResponse:
        try:
            records = await self._tx.list_all(db)
            user_ids = sorted({r.user_id for r in records})
            usernames = await self._points.get_usernames(db, user_ids)
        except SQLAlchemyError:
            logger.exception("Error fetching trading leaderboard")
            return LeaderboardResponse(items=[])
        ranked = rank_positions(records, usernames)
        return LeaderboardResponse(items=[PositionResponse.from_position(p) for p in ranked])

    # ------------------------------------------------------------------
    # Vault
    # ------------------------------------------------------------------

    async def distribute_vault(self, db: AsyncSession) -> VaultDistributionResponse:
        """Pay the vault out pro-rata to every user holding points."""
        async with _transaction(db, "Distribute vault rewards"):
            config = await self._config.lock(db)
            if config.vault_balance < self._vault_threshold:
                raise VaultBelowThresholdError(config.vault_balance, self._vault_threshold)
            holders = await self._points.list_holders(db)
            if not holders:
                raise NoEligibleHoldersError()

            rewards = allocate_vault_rewards(config.vault_balance, holders)
            for user_id, reward in rewards.items():
                await self._points.credit_points(db, user_id, reward)
                await self._record_history(
                    db, user_id, reward, PointsAction.VAULT_REWARD, VAULT_REFERENCE_ID
                )
            distributed = sum(rewards.values(), ZERO)
            config = await self._config.apply_delta(db, ZERO, -distributed)

        logger.info(
            "Vault distributed: %s to %d holders, %s left in vault",
            distributed, len(rewards), config.vault_balance,
        )
        return VaultDistributionResponse(
            message=(
                f"Successfully distributed {pxb_to_display(distributed)} from the vault "
                f"to {len(rewards)} holders"
            ),
            distributed=distributed,
            recipients=len(rewards),
            vault_balance=config.vault_balance,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _user_lock(self, user_id: str) -> AsyncIterator[None]:
        """Serialize operations per user; the lock is dropped once nobody holds or awaits it."""
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = self._user_locks[user_id] = asyncio.Lock()
        self._user_lock_holders[user_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._user_lock_holders[user_id] -= 1
            if self._user_lock_holders[user_id] == 0:
                del self._user_lock_holders[user_id]
                del self._user_locks[user_id]

    @staticmethod
    def _validate_amount(amount: Decimal) -> Decimal:
        try:
            value = to_decimal(amount)
        except ValueError as exc:
            raise InvalidAmountError(str(exc)) from exc
        if value < CENT:
            raise InvalidAmountError(f"amount must be at least {CENT}, got {value}")
        if value != round_pxb(value):
            raise InvalidAmountError(f"amount must have at most 2 decimal places, got {value}")
        return round_pxb(value)

    async def _record_history(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        action: PointsAction,
        reference_id: str,
    ) -> None:
        try:
            async with db.begin_nested():
                await self._points.record_history(db, user_id, amount, action, reference_id)
        except SQLAlchemyError:
            logger.warning(
                "points_history write failed: user=%s action=%s amount=%s",
                user_id, action.value, amount,
                exc_info=True,
            )
