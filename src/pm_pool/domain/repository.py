"""Repository Protocols — dependency inversion for testability.

Unit tests inject mocks or in-memory fakes that conform to these Protocols.
Infrastructure layer provides the PostgreSQL implementations.
"""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import PointsAction, PoolTransactionType
from src.pm_pool.domain.models import PointHolder, PoolConfig, TransactionRecord


class PoolConfigRepositoryProtocol(Protocol):
    async def get(self, db: AsyncSession) -> PoolConfig: ...

    async def lock(self, db: AsyncSession) -> PoolConfig: ...

    async def save(self, db: AsyncSession, config: PoolConfig) -> PoolConfig: ...

    async def apply_delta(
        self, db: AsyncSession, pool_delta: Decimal, vault_delta: Decimal
    ) -> PoolConfig: ...

    async def initialize(self, db: AsyncSession) -> bool: ...


class TransactionRepositoryProtocol(Protocol):
    async def lock_user(self, db: AsyncSession, user_id: str) -> None: ...

    async def append(
        self,
        db: AsyncSession,
        user_id: str,
        tx_type: PoolTransactionType,
        quantity: Decimal,
        pxb_amount: Decimal,
    ) -> TransactionRecord: ...

    async def list_for_user(
        self, db: AsyncSession, user_id: str
    ) -> list[TransactionRecord]: ...

    async def list_all(self, db: AsyncSession) -> list[TransactionRecord]: ...


class UserPointsRepositoryProtocol(Protocol):
    async def debit_points(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> Decimal: ...

    async def credit_points(
        self, db: AsyncSession, user_id: str, amount: Decimal
    ) -> Decimal: ...

    async def record_history(
        self,
        db: AsyncSession,
        user_id: str,
        amount: Decimal,
        action: PointsAction,
        reference_id: str,
    ) -> None: ...

    async def list_holders(self, db: AsyncSession) -> list[PointHolder]: ...

    async def get_usernames(
        self, db: AsyncSession, user_ids: list[str]
    ) -> dict[str, str]: ...
