"""TransactionRepository — append-only pool_transactions log.

Rows are never updated or deleted; positions are derived by replay.
Per-user serialization uses a transaction-scoped advisory lock, released
automatically when the caller commits or rolls back.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.pm_common.enums import PoolTransactionType
from src.pm_common.errors import InternalError
from src.pm_pool.domain.models import TransactionRecord

_LOCK_USER_SQL = text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))")

_INSERT_TX_SQL = text("""
    INSERT INTO pool_transactions (user_id, tx_type, quantity, pxb_amount)
    VALUES (:user_id, :tx_type, :quantity, :pxb_amount)
    RETURNING id, user_id, tx_type, quantity, pxb_amount, timestamp
""")

_LIST_USER_TX_SQL = text("""
    SELECT id, user_id, tx_type, quantity, pxb_amount, timestamp
    FROM pool_transactions
    WHERE user_id = :user_id
    ORDER BY timestamp ASC, id ASC
""")

_LIST_ALL_TX_SQL = text("""
    SELECT id, user_id, tx_type, quantity, pxb_amount, timestamp
    FROM pool_transactions
    ORDER BY timestamp ASC, id ASC
""")


def _row_to_record(row: object) -> TransactionRecord:
    return TransactionRecord(
        id=row.id,  # type: ignore[attr-defined]
        user_id=row.user_id,  # type: ignore[attr-defined]
        tx_type=PoolTransactionType(row.tx_type),  # type: ignore[attr-defined]
        quantity=Decimal(row.quantity),  # type: ignore[attr-defined]
        pxb_amount=Decimal(row.pxb_amount),  # type: ignore[attr-defined]
        timestamp=row.timestamp,  # type: ignore[attr-defined]
    )


class TransactionRepository:
    async def lock_user(self, db: AsyncSession, user_id: str) -> None:
        await db.execute(_LOCK_USER_SQL, {"lock_key": f"pool_user:{user_id}"})

    async def append(
        self,
        db: AsyncSession,
        user_id: str,
        tx_type: PoolTransactionType,
        quantity: Decimal,
        pxb_amount: Decimal,
    ) -> TransactionRecord:
        result = await db.execute(
            _INSERT_TX_SQL,
            {
                "user_id": user_id,
                "tx_type": tx_type.value,
                "quantity": quantity,
                "pxb_amount": pxb_amount,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Pool transaction insert returned no rows")
        return _row_to_record(row)

    async def list_for_user(
        self, db: AsyncSession, user_id: str
    ) -> list[TransactionRecord]:
        result = await db.execute(_LIST_USER_TX_SQL, {"user_id": user_id})
        return [_row_to_record(row) for row in result.fetchall()]

    async def list_all(self, db: AsyncSession) -> list[TransactionRecord]:
        result = await db.execute(_LIST_ALL_TX_SQL)
        return [_row_to_record(row) for row in result.fetchall()]
